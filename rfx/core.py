from pathlib import Path
from typing import Any, Dict, Optional, Tuple
import pandas as pd
from . import data_processing
from . import interpret
from . import plotting
from . import train
from .config import PipelineConfig
from .errors import RenderError
from .logger_setup import setup_logger
from .predictor import Predictor
from .results import InterpretationResult

logger = setup_logger("rfx_log.txt", to_console=True)


class ModelInterpreter:
    """Runs the load → filter → split → train → interpret → plot pipeline.

    Each step stores its output on the instance, so the steps can also be
    called one by one. ``current_stage`` names the step being executed, which
    is what a caller reports when a step raises.
    """

    def __init__(self, config: Optional[PipelineConfig] = None):
        """Initializes the interpreter with a pipeline configuration (defaults if omitted)."""
        self.config = config if config is not None else PipelineConfig()
        self.current_stage = None
        self.raw_data = None
        self.data = None
        self.grid_search = None
        self.model = None
        self.predictor = None
        self.results: Dict[str, InterpretationResult] = {}
        self.figures: Dict[str, Path] = {}

    def load_data(self) -> pd.DataFrame:
        """Loads the raw data file."""
        self.current_stage = "load"
        self.raw_data = data_processing.load_data(
            self.config.filepath,
            sep=self.config.sep,
            quotechar=self.config.quotechar,
            na_values=self.config.na_values,
            encoding=self.config.encoding,
        )
        logger.info("Data loaded successfully.")
        return self.raw_data

    def filter_features(self, data: pd.DataFrame = None) -> pd.DataFrame:
        """Drops the configured columns and incomplete rows."""
        self.current_stage = "filter"
        if data is None:
            data = self.raw_data
        self.data = data_processing.filter_features(
            data,
            self.config.target_column,
            columns_to_drop=self.config.columns_to_drop,
            drop_substrings=self.config.drop_substrings,
        )
        logger.info("Data filtered successfully.")
        return self.data

    def split_data(
        self, data: pd.DataFrame = None
    ) -> Tuple[pd.DataFrame, pd.DataFrame, pd.Series, pd.Series]:
        """Splits the data into training and testing sets.

        :param: data: DataFrame to split (defaults to the filtered data).

        :return: Tuple of (X_train, X_test, y_train, y_test)
        """
        self.current_stage = "split"
        if data is None:
            data = self.data

        (
            self.X_train,
            self.X_test,
            self.y_train,
            self.y_test,
        ) = data_processing.split_data(
            data,
            self.config.target_column,
            train_size=self.config.train_size,
            random_state=self.config.split_seed,
            stratify_bins=self.config.stratify_bins,
        )
        return self.X_train, self.X_test, self.y_train, self.y_test

    def train_model(
        self,
        X_train: pd.DataFrame = None,
        y_train: pd.Series = None,
    ) -> Any:
        """Tunes the forest by cross-validated grid search and keeps the refitted best model.

        :param:  X_train: Training features (defaults to the split's training set).
        :param:  y_train: Training targets.

        :return: The trained model.
        """
        self.current_stage = "train"
        if X_train is None:
            X_train, y_train = self.X_train, self.y_train
        self.grid_search = train.tune_forest(
            X_train,
            y_train,
            self.config.param_grid,
            cv_folds=self.config.cv_folds,
            seed=self.config.train_seed,
            estimator=self.config.estimator,
            n_jobs=self.config.n_jobs,
        )
        self.model = self.grid_search.model
        self.best_params = self.grid_search.best_params
        logger.info(f"Best hyperparameters found: {self.best_params}")
        return self.model

    def build_predictor(
        self, X: pd.DataFrame = None, y: pd.Series = None
    ) -> Predictor:
        """Wraps the trained model and the held-out data for the interpretation methods."""
        self.current_stage = "predictor"
        if X is None:
            X, y = self.X_test, self.y_test
        self.predictor = Predictor(self.model, X, y)
        logger.info(f"Built {self.predictor!r}")
        return self.predictor

    def interpret(
        self, method: str, settings: Optional[Dict[str, Any]] = None
    ) -> InterpretationResult:
        """Runs one interpretation method on the predictor."""
        self.current_stage = method
        if settings is None:
            settings = self.config.methods.get(method) or {}
        result = interpret.evaluate(method, self.predictor, settings)
        self.results[method] = result
        return result

    def export_plot(self, result: InterpretationResult) -> Path:
        """Writes the result's figure to the configured output directory."""
        self.current_stage = "render"
        output_dir = Path(self.config.output_dir)
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise RenderError(f"Cannot create output directory {output_dir}: {exc}") from exc
        path = plotting.export_plot(
            result,
            output_dir / plotting.FILE_NAMES[result.method],
            width=self.config.fig_width,
            height=self.config.fig_height,
            dpi=self.config.dpi,
        )
        self.figures[result.method] = path
        return path

    def display_ranking(self, result: InterpretationResult, top_n: int = None) -> None:
        """Logs the top features of a ranking result."""
        interpret.display_ranking(result, top_n=top_n or self.config.top_n)

    def run(self) -> Dict[str, InterpretationResult]:
        """Runs the entire pipeline, one interpretation method at a time."""
        self.load_data()
        self.filter_features()
        self.split_data()
        self.train_model()
        self.build_predictor()
        for method in self.config.methods:
            result = self.interpret(method)
            if result.method in interpret.RANKING_COLUMNS:
                self.display_ranking(result)
            self.export_plot(result)
        self.current_stage = None
        logger.info("Model interpretation pipeline completed.")
        return self.results
