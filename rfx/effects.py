from typing import Optional
import numpy as np
import pandas as pd
from PyALE import ale
from sklearn.inspection import partial_dependence
from .errors import ConfigError
from .logger_setup import setup_logger
from .predictor import Predictor
from .results import InterpretationResult

logger = setup_logger("rfx_log.txt", to_console=True)


def _check_effect_feature(predictor: Predictor, feature: Optional[str]) -> None:
    if feature is None or feature not in predictor.feature_names:
        logger.error(f"Feature '{feature}' is not one of the predictor's features.")
        raise ConfigError(f"Feature '{feature}' is not one of the predictor's features.")
    if predictor.X[feature].nunique() < 2:
        logger.error(f"Feature '{feature}' has a single value; its effect is undefined.")
        raise ConfigError(f"Feature '{feature}' has a single value; its effect is undefined.")


def partial_dependence_ice(
    predictor: Predictor,
    feature: Optional[str] = None,
    center: Optional[float] = None,
    grid_resolution: int = 20,
) -> InterpretationResult:
    """
    Computes the partial dependence curve and the individual conditional expectation curves of one feature.

    The grid spans the feature's full observed range. When center is given, every ICE
    curve is shifted so that it equals zero at the feature value center, and the
    average curve is recomputed from the shifted curves.

    :param predictor: Predictor to explain.
    :param feature: Feature to vary.
    :param center: Optional feature value at which the curves are anchored to zero.
    :param grid_resolution: Maximum number of grid points.

    :raises ConfigError: If the feature is unknown or constant, or grid_resolution < 2.

    :return: InterpretationResult whose table has columns <feature>, average; details hold the ICE matrix.
    """
    _check_effect_feature(predictor, feature)
    if not isinstance(grid_resolution, int) or grid_resolution < 2:
        raise ConfigError("grid_resolution must be an integer >= 2.")

    X = predictor.X.astype(float)
    pdp = partial_dependence(
        predictor,
        X,
        features=[feature],
        kind="both",
        grid_resolution=grid_resolution,
        percentiles=(0.0, 1.0),
        method="brute",
    )
    grid = np.asarray(pdp["grid_values"][0], dtype=float)
    individual = np.asarray(pdp["individual"][0], dtype=float)
    average = np.asarray(pdp["average"][0], dtype=float)

    if center is not None:
        anchored = X.copy()
        anchored[feature] = float(center)
        individual = individual - predictor.predict(anchored)[:, None]
        average = individual.mean(axis=0)

    logger.info(
        f"Partial dependence for {feature}: {len(grid)} grid points, {individual.shape[0]} ICE curves."
    )
    table = pd.DataFrame({feature: grid, "average": average})
    return InterpretationResult(
        method="partial_dependence",
        table=table,
        details={"feature": feature, "individual": individual, "centered_at": center},
    )


def accumulated_local_effects(
    predictor: Predictor,
    feature: Optional[str] = None,
    grid_size: int = 20,
) -> InterpretationResult:
    """
    Computes the accumulated local effects curve of one feature with PyALE.

    The feature's range is cut at quantiles; within each interval the prediction
    difference between the interval's edges is averaged over the rows that fall in
    it, accumulated, and centred. Unlike partial dependence this only evaluates the
    model near observed data, so correlated features do not distort the curve.

    :param predictor: Predictor to explain.
    :param feature: Feature whose effect is computed.
    :param grid_size: Number of quantile intervals.

    :raises ConfigError: If the feature is unknown or constant, or grid_size < 1.

    :return: InterpretationResult whose table has columns <feature>, eff, size.
    """
    _check_effect_feature(predictor, feature)
    if not isinstance(grid_size, int) or grid_size < 1:
        raise ConfigError("grid_size must be a positive integer.")

    ale_eff = ale(
        X=predictor.X.astype(float),
        model=predictor,
        feature=[feature],
        feature_type="continuous",
        grid_size=grid_size,
        include_CI=False,
        plot=False,
    )
    table = ale_eff.reset_index()
    table = table.rename(columns={table.columns[0]: feature})[[feature, "eff", "size"]]
    logger.info(f"Accumulated local effects for {feature}: {len(table)} interval edges.")
    return InterpretationResult(
        method="ale", table=table, details={"feature": feature, "grid_size": grid_size}
    )
