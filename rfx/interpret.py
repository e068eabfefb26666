import inspect
from time import perf_counter
from typing import Any, Callable, Dict, Optional
from . import effects, importance, surrogates
from .errors import ConfigError
from .logger_setup import setup_logger
from .predictor import Predictor
from .results import InterpretationResult

logger = setup_logger("rfx_log.txt", to_console=True)

METHODS: Dict[str, Callable[..., InterpretationResult]] = {
    "permutation_importance": importance.permutation_feature_importance,
    "interaction": importance.interaction_strength,
    "partial_dependence": effects.partial_dependence_ice,
    "ale": effects.accumulated_local_effects,
    "surrogate_tree": surrogates.surrogate_tree,
    "lime": surrogates.lime_explanation,
    "shapley": surrogates.shapley_values,
}

# column holding the ranked statistic, per feature-ranking method
RANKING_COLUMNS = {
    "permutation_importance": "importance",
    "interaction": "interaction",
    "surrogate_tree": "importance",
    "lime": "weight",
    "shapley": "phi",
}


def evaluate(
    method: str,
    predictor: Predictor,
    settings: Optional[Dict[str, Any]] = None,
) -> InterpretationResult:
    """
    Runs one interpretation method on a predictor.

    All methods share this entry point, so they can be run in any order or on their
    own. Settings are passed to the method as keyword arguments.

    :param method: Key of the method in METHODS.
    :param predictor: Predictor to explain; never modified.
    :param settings: Method-specific settings.

    :raises ConfigError: If the method or one of the settings is unknown.

    :return: The method's InterpretationResult.
    """
    if method not in METHODS:
        logger.error(f"Unknown interpretation method '{method}'.")
        raise ConfigError(
            f"Unknown interpretation method '{method}'. Choose from {sorted(METHODS)}."
        )
    func = METHODS[method]
    settings = dict(settings or {})

    accepted = set(inspect.signature(func).parameters) - {"predictor"}
    unknown = set(settings) - accepted
    if unknown:
        logger.error(f"Unknown setting(s) for {method}: {sorted(unknown)}")
        raise ConfigError(f"Unknown setting(s) for {method}: {sorted(unknown)}")

    logger.info(f"Running {method} with {settings}")
    start = perf_counter()
    result = func(predictor, **settings)
    end = perf_counter()
    logger.info(f"✔ {method} completed in {end - start:.2f} seconds")
    return result


def display_ranking(result: InterpretationResult, top_n: int = 10) -> None:
    """
    Logs the top N features of a feature-ranking result as an aligned table.

    Column widths follow the longest feature name; when the result carries a
    percentile band (lower/upper) it is shown next to the statistic.

    :param result: Result of a method listed in RANKING_COLUMNS.
    :param top_n: Number of top features to display (default: 10).
    """
    if result.method not in RANKING_COLUMNS:
        raise ConfigError(f"Results of {result.method} are not a feature ranking.")
    stat_col = RANKING_COLUMNS[result.method]
    rows = result.table.head(top_n)

    feature_names = [str(f) for f in rows["feature"]]
    max_feat_len = max(len("FEATURE"), max((len(f) for f in feature_names), default=0))
    stat_col_width = max(12, len(stat_col))
    has_band = {"lower", "upper"}.issubset(rows.columns)
    band_strs = (
        [f"[{lo:.5f}, {hi:.5f}]" for lo, hi in zip(rows["lower"], rows["upper"])]
        if has_band
        else []
    )
    max_band_len = max([len("5%-95% BAND")] + [len(b) for b in band_strs])

    header = (
        f"{'RANK':<5} "
        f"{'FEATURE':<{max_feat_len}} "
        f"{stat_col.upper():>{stat_col_width}}"
    )
    if has_band:
        header += f" {'5%-95% BAND':>{max_band_len}}"
    logger.info("\n" + header)
    logger.info("-" * len(header))

    for i, (feat, value) in enumerate(zip(feature_names, rows[stat_col]), 1):
        line = f"{i:<5} " f"{feat:<{max_feat_len}} " f"{value:>{stat_col_width}.5f}"
        if has_band:
            line += f" {band_strs[i - 1]:>{max_band_len}}"
        logger.info(line)
