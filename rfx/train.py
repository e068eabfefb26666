from dataclasses import dataclass
import pandas as pd
import numpy as np
from sklearn.ensemble import RandomForestRegressor
from sklearn.model_selection import GridSearchCV, KFold, ParameterGrid
from time import perf_counter
from xgboost import XGBRFRegressor
from xgboost.core import XGBoostError
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union
from .errors import ConfigError, TrainingError
from .logger_setup import setup_logger

logger = setup_logger("rfx_log.txt", to_console=True)

ESTIMATORS = {
    "random_forest": RandomForestRegressor,
    "xgb_random_forest": XGBRFRegressor,
}

ParamGrid = Union[Mapping[str, Sequence[Any]], Sequence[Mapping[str, Any]]]


@dataclass
class GridSearchResult:
    """Outcome of a cross-validated grid search.

    ``scores`` holds one row per grid point, in grid order, with the mean and
    standard deviation of the fold MSEs and the rank (1 = best).
    """

    model: Any
    best_params: Dict[str, Any]
    best_score: float
    scores: pd.DataFrame


def _estimator_class(estimator: str):
    if estimator not in ESTIMATORS:
        logger.error(f"Unknown estimator '{estimator}'. Choose from {sorted(ESTIMATORS)}.")
        raise ConfigError(
            f"Unknown estimator '{estimator}'. Choose from {sorted(ESTIMATORS)}."
        )
    return ESTIMATORS[estimator]


def expand_grid(param_grid: ParamGrid) -> List[Dict[str, Any]]:
    """
    Turns a hyperparameter grid into an ordered list of grid points.

    A mapping of name -> list of values is expanded to its Cartesian product; a
    sequence of mappings is taken as the list of points, in the given order.

    :param param_grid: Mapping of lists, or sequence of mappings.

    :raises ConfigError: If the grid, any value list, or any point is empty.

    :return: List of grid points.
    """
    if param_grid is None or len(param_grid) == 0:
        raise ConfigError("Hyperparameter grid is empty.")

    if isinstance(param_grid, Mapping):
        grid = {}
        for name, values in param_grid.items():
            if isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
                values = [values]
            if len(values) == 0:
                raise ConfigError(f"Hyperparameter '{name}' has no values.")
            grid[name] = list(values)
        return [dict(point) for point in ParameterGrid(grid)]

    points = []
    for point in param_grid:
        if not isinstance(point, Mapping) or len(point) == 0:
            raise ConfigError(f"Invalid grid point: {point!r}")
        points.append(dict(point))
    return points


def _validate_training_data(X_train, y_train) -> None:
    if not isinstance(X_train, (pd.DataFrame, np.ndarray)):
        raise ConfigError("X_train must be a pandas DataFrame or numpy array.")
    if y_train is None or len(X_train) == 0 or len(y_train) == 0:
        raise ConfigError("Input data cannot be empty.")
    if len(X_train) != len(y_train):
        raise ConfigError("X_train and y_train must have the same length.")
    if isinstance(X_train, pd.DataFrame):
        non_numeric = [
            col for col, dtype in X_train.dtypes.items() if not pd.api.types.is_numeric_dtype(dtype)
        ]
        if non_numeric:
            logger.error(f"All features must be numeric; non-numeric: {non_numeric}")
            raise ConfigError(f"All features must be numeric; non-numeric: {non_numeric}")

    y_arr = np.asarray(y_train)
    if not np.issubdtype(y_arr.dtype, np.number):
        logger.error("Regression target must be numeric.")
        raise ConfigError("Regression target must be numeric.")
    if np.all(y_arr == y_arr[0]):
        logger.error("Regression target is constant; cannot fit model.")
        raise TrainingError("Regression target is constant; cannot fit model.")


def tune_forest(
    X_train: pd.DataFrame,
    y_train: pd.Series,
    param_grid: ParamGrid,
    cv_folds: int = 5,
    seed: int = 65948,
    estimator: str = "random_forest",
    n_jobs: Optional[int] = 1,
) -> GridSearchResult:
    """
    Selects random forest hyperparameters by k-fold cross-validated MSE and refits the best point.

    Every grid point is scored on the same shuffled, seeded folds. The point with the
    lowest mean MSE wins; on an exact tie the point that comes first in grid order wins.
    The fold x point fits can run on n_jobs workers; with a fixed seed the result does
    not depend on the number of workers.

    :param X_train: Training features. All features must be numeric.
    :param y_train: Training target.
    :param param_grid: Mapping of name -> values, or a sequence of grid points.
    :param cv_folds: Number of cross-validation folds (>= 2).
    :param seed: Random seed for the folds and the forest.
    :param estimator: "random_forest" or "xgb_random_forest".
    :param n_jobs: Number of parallel workers for the search.

    :raises ConfigError: If the grid is invalid, contains unknown hyperparameters, or the data is malformed.
    :raises TrainingError: If the target is constant or fitting fails.

    :return: GridSearchResult with the refitted best model and the per-point score table.
    """
    if not isinstance(seed, (int, np.integer)) or isinstance(seed, bool):
        raise ConfigError("seed must be an integer.")
    if not isinstance(cv_folds, int) or cv_folds < 2:
        raise ConfigError("cv_folds must be an integer >= 2.")
    _validate_training_data(X_train, y_train)
    if cv_folds > len(X_train):
        raise ConfigError(
            f"cv_folds={cv_folds} is larger than the number of training rows ({len(X_train)})."
        )

    model_type = _estimator_class(estimator)
    points = expand_grid(param_grid)
    valid_params = model_type().get_params().keys()
    for point in points:
        unknown_params = set(point) - set(valid_params)
        if unknown_params:
            logger.error(f"Unknown parameter(s) for {model_type.__name__}: {unknown_params}")
            raise ConfigError(
                f"Unknown parameter(s) for {model_type.__name__}: {unknown_params}"
            )
        if "random_state" in point:
            raise ConfigError("random_state is set by the training seed, not the grid.")

    # single-valued lists keep GridSearchCV's candidate order equal to grid order
    search_space = [{name: [value] for name, value in point.items()} for point in points]
    folds = KFold(n_splits=cv_folds, shuffle=True, random_state=seed)
    search = GridSearchCV(
        model_type(random_state=seed, n_jobs=1),
        param_grid=search_space,
        scoring="neg_mean_squared_error",
        cv=folds,
        n_jobs=n_jobs,
        refit=True,
        error_score="raise",
    )

    logger.info(
        f"Grid search over {len(points)} point(s) x {cv_folds} folds for {model_type.__name__}..."
    )
    start = perf_counter()
    try:
        search.fit(X_train, y_train)
    except (ValueError, FloatingPointError, XGBoostError) as exc:
        logger.error(f"Model fitting failed: {exc}")
        raise TrainingError(f"Model fitting failed: {exc}") from exc
    end = perf_counter()
    logger.info(f"✔ Grid search completed in {end - start:.2f} seconds")

    results = search.cv_results_
    scores = pd.DataFrame(points)
    scores["mean_mse"] = -np.asarray(results["mean_test_score"], dtype=float)
    scores["std_mse"] = np.asarray(results["std_test_score"], dtype=float)
    scores["rank"] = np.asarray(results["rank_test_score"], dtype=int)

    if not np.all(np.isfinite(scores["mean_mse"])):
        logger.error("Cross-validation produced non-finite scores.")
        raise TrainingError("Cross-validation produced non-finite scores.")

    for i, row in scores.iterrows():
        logger.info(
            f"Grid point {i}: {points[i]} -> mean MSE {row['mean_mse']:.6f} (+/- {row['std_mse']:.6f})"
        )

    # first minimum in grid order breaks exact ties
    best_index = int(np.argmin(scores["mean_mse"].to_numpy()))
    best_params = points[best_index]
    if best_index != search.best_index_:
        model = model_initializer(
            X_train, y_train, params_dict=best_params, estimator=estimator, seed=seed
        )
    else:
        model = search.best_estimator_

    best_score = float(scores.loc[best_index, "mean_mse"])
    logger.info(f"Best params: {best_params} (mean CV MSE {best_score:.6f})")
    return GridSearchResult(
        model=model, best_params=best_params, best_score=best_score, scores=scores
    )


def model_initializer(
    X_train: pd.DataFrame,
    y_train: pd.Series,
    params_dict: Optional[Dict[str, Any]] = None,
    estimator: str = "random_forest",
    seed: int = 65948,
) -> Any:
    """
    Initializes and trains a random-forest-family regressor with fixed hyperparameters.

    :param X_train: Training input features as a pandas DataFrame or numpy array. All features must be numeric.
    :param y_train: Target values corresponding to X_train.
    :param params_dict: Dictionary of hyperparameters to pass to the model.
    :param estimator: "random_forest" or "xgb_random_forest".
    :param seed: Random seed for the model.

    :raises ConfigError: If input data is empty, features are not numeric, lengths mismatch, or unknown parameters are provided.
    :raises TrainingError: If the target is constant or fitting fails.

    :return: Trained model.
    """
    if params_dict is None:
        params_dict = {}

    _validate_training_data(X_train, y_train)

    model_type = _estimator_class(estimator)
    valid_params = model_type().get_params().keys()
    unknown_params = set(params_dict) - set(valid_params)
    if unknown_params:
        logger.error(f"Unknown parameter(s) for {model_type.__name__}: {unknown_params}")
        raise ConfigError(
            f"Unknown parameter(s) for {model_type.__name__}: {unknown_params}"
        )

    model = model_type(**{"random_state": seed, **params_dict})

    start = perf_counter()
    try:
        model.fit(X_train, y_train)
    except (ValueError, FloatingPointError, XGBoostError) as exc:
        logger.error(f"Model fitting failed: {exc}")
        raise TrainingError(f"Model fitting failed: {exc}") from exc
    end = perf_counter()
    logger.info(f"✔ {model_type.__name__} completed fitting in {end-start:.2f} seconds")

    return model
