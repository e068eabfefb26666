from typing import List, Optional
import numpy as np
import pandas as pd
from sklearn.inspection import permutation_importance
from sklearn.metrics import get_scorer
from time import perf_counter
from .errors import ConfigError
from .logger_setup import setup_logger
from .predictor import Predictor
from .results import InterpretationResult

logger = setup_logger("rfx_log.txt", to_console=True)

# sklearn scorers are "greater is better", so baseline minus permuted score is the loss increase
LOSSES = {
    "mse": "neg_mean_squared_error",
    "mae": "neg_mean_absolute_error",
    "rmse": "neg_root_mean_squared_error",
}


def permutation_feature_importance(
    predictor: Predictor,
    loss: str = "mse",
    n_repeats: int = 5,
    random_state: int = 0,
    n_jobs: Optional[int] = None,
) -> InterpretationResult:
    """
    Measures how much the loss grows when each feature's values are shuffled.

    Each feature is permuted n_repeats times on the predictor's data. The importance is
    the mean increase in loss over the repeats; lower and upper are the 5th and 95th
    percentiles of the repeats. A feature the model never uses scores about zero.

    :param predictor: Predictor with labels.
    :param loss: "mse", "mae" or "rmse".
    :param n_repeats: Number of shuffles per feature.
    :param random_state: Random seed for the shuffles.
    :param n_jobs: Number of parallel workers.

    :raises ConfigError: If the loss is unknown, n_repeats < 1, or the predictor has no labels.

    :return: InterpretationResult with columns feature, importance, lower, upper, sorted by importance.
    """
    if loss not in LOSSES:
        raise ConfigError(f"Unknown loss '{loss}'. Choose from {sorted(LOSSES)}.")
    if not isinstance(n_repeats, int) or n_repeats < 1:
        raise ConfigError("n_repeats must be a positive integer.")
    if predictor.y is None:
        raise ConfigError("Permutation importance needs a predictor with labels.")

    logger.info(f"Computing permutation importance ({loss}, {n_repeats} repeats)...")
    start = perf_counter()
    perm = permutation_importance(
        predictor,
        predictor.X,
        predictor.y,
        scoring=LOSSES[loss],
        n_repeats=n_repeats,
        random_state=random_state,
        n_jobs=n_jobs,
    )
    end = perf_counter()
    logger.info(f"✔ Permutation importance finished in {end - start:.2f} seconds")

    importances = np.asarray(perm.importances, dtype=float)
    table = pd.DataFrame(
        {
            "feature": predictor.feature_names,
            "importance": importances.mean(axis=1),
            "lower": np.percentile(importances, 5, axis=1),
            "upper": np.percentile(importances, 95, axis=1),
        }
    )
    # stable sort keeps column order among ties
    table = table.sort_values("importance", ascending=False, kind="mergesort").reset_index(
        drop=True
    )
    baseline_loss = -get_scorer(LOSSES[loss])(predictor, predictor.X, predictor.y)
    return InterpretationResult(
        method="permutation_importance",
        table=table,
        details={"loss": loss, "baseline_loss": float(baseline_loss), "n_repeats": n_repeats},
    )


def _near_constant(values: pd.Series, share: float = 0.95) -> bool:
    return values.value_counts(normalize=True).iloc[0] >= share


def interaction_strength(
    predictor: Predictor,
    grid_resolution: int = 30,
    random_state: int = 0,
    features: Optional[List[str]] = None,
    sample_size: Optional[int] = None,
) -> InterpretationResult:
    """
    Estimates, for each feature, how much of the prediction depends on its interactions.

    Uses Friedman's overall H-statistic. For grid_resolution sampled rows x_i it compares
    the centred prediction f(x_i) with the sum of the feature's partial dependence
    PD_j(x_ij) and the partial dependence on all other features PD_-j(x_i,-j):

        H_j^2 = sum_i (f(x_i) - PD_j(x_ij) - PD_-j(x_i,-j))^2 / sum_i f(x_i)^2

    H is 0 when the feature acts purely additively and approaches 1 when its effect
    comes entirely from interactions. Partial dependences are averaged over the
    predictor's data, or over sample_size rows of it.

    Near-constant features are kept; they are logged as a warning because their
    statistic rests on very few distinct values.

    :param predictor: Predictor to explain.
    :param grid_resolution: Number of data rows sampled as evaluation points. This is a row
        count, not a grid of feature values; it is capped at the number of rows.
    :param random_state: Random seed for the row samples.
    :param features: Features to score (defaults to all).
    :param sample_size: Number of background rows for the partial dependences (defaults to all).

    :raises ConfigError: If grid_resolution < 2 or an unknown feature is requested.

    :return: InterpretationResult with columns feature, interaction, sorted by interaction.
    """
    if not isinstance(grid_resolution, int) or grid_resolution < 2:
        raise ConfigError("grid_resolution must be an integer >= 2.")
    names = predictor.feature_names
    if features is None:
        features = names
    unknown = [feat for feat in features if feat not in names]
    if unknown:
        raise ConfigError(f"Unknown feature(s) for interaction strength: {unknown}")

    rng = np.random.RandomState(random_state)
    X = predictor.X.reset_index(drop=True)
    if sample_size is not None and sample_size < len(X):
        X = X.iloc[rng.choice(len(X), size=sample_size, replace=False)].reset_index(drop=True)
    n = len(X)
    m = min(grid_resolution, n)
    points = X.iloc[rng.choice(n, size=m, replace=False)].reset_index(drop=True)

    near_constant = [feat for feat in features if _near_constant(X[feat])]
    if near_constant:
        logger.warning(f"Interaction strength on near-constant feature(s): {near_constant}")

    f_hat = predictor.predict(points)
    f_hat = f_hat - f_hat.mean()
    denominator = float(np.sum(f_hat**2))

    logger.info(f"Computing interaction strength for {len(features)} features...")
    start = perf_counter()
    strengths = []
    for feat in features:
        if denominator == 0.0:
            strengths.append(0.0)
            continue
        # PD_j: every background row with feat set to each sampled value
        stacked = pd.concat([X] * m, ignore_index=True)
        stacked[feat] = np.repeat(points[feat].to_numpy(), n)
        pd_j = predictor.predict(stacked).reshape(m, n).mean(axis=1)

        # PD_-j: each sampled row repeated, feat taken from every background row
        stacked = points.iloc[np.repeat(np.arange(m), n)].reset_index(drop=True)
        stacked[feat] = np.tile(X[feat].to_numpy(), m)
        pd_rest = predictor.predict(stacked).reshape(m, n).mean(axis=1)

        pd_j = pd_j - pd_j.mean()
        pd_rest = pd_rest - pd_rest.mean()
        h_squared = np.sum((f_hat - pd_j - pd_rest) ** 2) / denominator
        strengths.append(float(np.sqrt(max(h_squared, 0.0))))
    end = perf_counter()
    logger.info(f"✔ Interaction strength finished in {end - start:.2f} seconds")

    if denominator == 0.0:
        logger.warning("Predictions are constant on the sampled rows; all interactions are 0.")

    table = pd.DataFrame({"feature": list(features), "interaction": strengths})
    table = table.sort_values("interaction", ascending=False, kind="mergesort").reset_index(
        drop=True
    )
    return InterpretationResult(
        method="interaction",
        table=table,
        details={"grid_resolution": m, "near_constant": near_constant},
    )
