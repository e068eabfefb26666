import codecs
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

import yaml

from .errors import ConfigError
from .logger_setup import setup_logger

logger = setup_logger("rfx_log.txt", to_console=True)

# identifiers and every crime count/rate other than the outcome
COMMUNITIES_COLUMNS_TO_DROP = (
    "communityname",
    "state",
    "countyCode",
    "communityCode",
    "fold",
    "murders",
    "murdPerPop",
    "rapes",
    "rapesPerPop",
    "robberies",
    "robbbPerPop",
    "assaults",
    "assaultPerPop",
    "burglaries",
    "burglPerPop",
    "larcenies",
    "larcPerPop",
    "autoTheft",
    "autoTheftPerPop",
    "arsons",
    "arsonsPerPop",
    "nonViolPerPop",
)

# LEMAS police survey columns, missing for most communities
COMMUNITIES_DROP_SUBSTRINGS = ("Lemas", "Polic", "Offic", "Drug")


def _default_param_grid() -> Dict[str, List[Any]]:
    return {
        "n_estimators": [500],
        "max_features": [0.1, 0.2, 0.33, 0.5],
        "min_samples_leaf": [5],
    }


def _default_methods() -> Dict[str, Dict[str, Any]]:
    return {
        "permutation_importance": {"loss": "mse", "n_repeats": 10, "random_state": 2401},
        "interaction": {"grid_resolution": 30, "random_state": 2401},
        "partial_dependence": {"feature": "PctKids2Par", "center": None, "grid_resolution": 20},
        "ale": {"feature": "PctKids2Par", "grid_size": 20},
        "surrogate_tree": {"max_depth": 2},
        "lime": {"instance": None, "k": 3, "random_state": 2401},
        "shapley": {"instance": None, "random_state": 2401},
    }


@dataclass
class PipelineConfig:
    """All tunable constants of a pipeline run.

    Defaults reproduce the Communities-and-Crime analysis of
    ``ViolentCrimesPerPop``.
    """

    filepath: str = "data/crimedata.csv"
    target_column: str = "ViolentCrimesPerPop"
    sep: str = ","
    quotechar: str = '"'
    na_values: Tuple[str, ...] = ("?",)
    encoding: str = "utf-8"
    columns_to_drop: Tuple[str, ...] = COMMUNITIES_COLUMNS_TO_DROP
    drop_substrings: Tuple[str, ...] = COMMUNITIES_DROP_SUBSTRINGS
    train_size: float = 0.8
    split_seed: int = 49043
    stratify_bins: int = 5
    estimator: str = "random_forest"
    param_grid: Union[Dict[str, List[Any]], List[Dict[str, Any]]] = field(
        default_factory=_default_param_grid
    )
    cv_folds: int = 5
    train_seed: int = 65948
    n_jobs: int = 1
    methods: Dict[str, Dict[str, Any]] = field(default_factory=_default_methods)
    output_dir: str = "figures"
    fig_width: float = 6.0
    fig_height: float = 6.0
    dpi: int = 100
    top_n: int = 10
    log_file: str = "rfx_log.txt"

    def __post_init__(self):
        for name in ("na_values", "columns_to_drop", "drop_substrings"):
            value = getattr(self, name)
            if value is None:
                value = ()
            elif isinstance(value, str):
                value = (value,)
            setattr(self, name, tuple(value))
        if self.methods is None:
            self.methods = {}
        self.validate()

    def validate(self) -> None:
        """Raises ConfigError on any out-of-range setting."""
        if not self.filepath:
            raise ConfigError("filepath must be set.")
        if not self.target_column:
            raise ConfigError("target_column must be set.")
        try:
            codecs.lookup(self.encoding)
        except (LookupError, TypeError) as exc:
            raise ConfigError(f"Unknown text encoding {self.encoding!r}.") from exc
        if not 0 < self.train_size < 1:
            raise ConfigError(f"train_size must be in (0, 1), got {self.train_size}.")
        if not isinstance(self.cv_folds, int) or self.cv_folds < 2:
            raise ConfigError(f"cv_folds must be an integer >= 2, got {self.cv_folds}.")
        if not isinstance(self.stratify_bins, int) or self.stratify_bins < 1:
            raise ConfigError("stratify_bins must be a positive integer.")
        for name in ("split_seed", "train_seed"):
            if not isinstance(getattr(self, name), int):
                raise ConfigError(f"{name} must be an integer.")
        if not self.param_grid:
            raise ConfigError("param_grid must not be empty.")
        if self.fig_width <= 0 or self.fig_height <= 0 or self.dpi <= 0:
            raise ConfigError("Figure dimensions and dpi must be positive.")
        if not isinstance(self.methods, dict):
            raise ConfigError("methods must map method names to their settings.")
        for name, settings in self.methods.items():
            if settings is not None and not isinstance(settings, dict):
                raise ConfigError(f"Settings for method '{name}' must be a mapping.")


def load_config(config_path: Union[str, Path]) -> PipelineConfig:
    """
    Loads a YAML configuration file into a validated PipelineConfig.

    Keys missing from the file keep their defaults. ``methods`` replaces the
    default method table as a whole, so a file can run a subset of methods.

    :param config_path: Path to the YAML file.

    :raises ConfigError: If the file is missing, is not a mapping, has unknown keys or invalid values.

    :return: PipelineConfig built from the file.
    """
    path = Path(config_path)
    if not path.exists():
        logger.error(f"Config file not found: {path}")
        raise ConfigError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Config file {path} is not valid YAML: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a mapping.")

    known = {f.name for f in fields(PipelineConfig)}
    unknown = set(raw) - known
    if unknown:
        logger.error(f"Unknown configuration key(s): {sorted(unknown)}")
        raise ConfigError(f"Unknown configuration key(s): {sorted(unknown)}")

    config = PipelineConfig(**raw)
    logger.info(f"Loaded configuration from {path}")
    return config
