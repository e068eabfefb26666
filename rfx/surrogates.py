from typing import Optional
import numpy as np
import pandas as pd
import shap
from lime.lime_tabular import LimeTabularExplainer
from sklearn.metrics import r2_score
from sklearn.tree import DecisionTreeRegressor, export_text
from .errors import ConfigError
from .logger_setup import setup_logger
from .predictor import Predictor
from .results import InterpretationResult

logger = setup_logger("rfx_log.txt", to_console=True)


def pick_instance(predictor: Predictor, instance: Optional[int], random_state: int) -> int:
    """Returns the row position to explain; samples one with random_state when instance is None."""
    n_rows = len(predictor.X)
    if instance is None:
        return int(np.random.RandomState(random_state).randint(n_rows))
    if not isinstance(instance, (int, np.integer)) or not 0 <= instance < n_rows:
        raise ConfigError(f"instance must be a row position in [0, {n_rows}), got {instance!r}.")
    return int(instance)


def surrogate_tree(
    predictor: Predictor,
    max_depth: int = 2,
    random_state: int = 0,
) -> InterpretationResult:
    """
    Fits a shallow decision tree to the black-box model's own predictions.

    r_squared measures how well the tree reproduces the model (not the outcome).

    :param predictor: Predictor to explain.
    :param max_depth: Depth of the surrogate tree.
    :param random_state: Random seed for the tree.

    :raises ConfigError: If max_depth < 1.

    :return: InterpretationResult with the tree's feature importances; details hold the tree and its rules.
    """
    if not isinstance(max_depth, int) or max_depth < 1:
        raise ConfigError("max_depth must be a positive integer.")

    black_box = predictor.predict(predictor.X)
    tree = DecisionTreeRegressor(max_depth=max_depth, random_state=random_state)
    tree.fit(predictor.X, black_box)
    r_squared = float(r2_score(black_box, tree.predict(predictor.X)))
    logger.info(f"Surrogate tree of depth {max_depth} fitted, R^2 to the model = {r_squared:.3f}")

    table = pd.DataFrame(
        {"feature": predictor.feature_names, "importance": tree.feature_importances_}
    )
    table = table.sort_values("importance", ascending=False, kind="mergesort").reset_index(
        drop=True
    )
    return InterpretationResult(
        method="surrogate_tree",
        table=table,
        details={
            "tree": tree,
            "feature_names": predictor.feature_names,
            "r_squared": r_squared,
            "rules": export_text(tree, feature_names=predictor.feature_names),
        },
    )


def _first(value):
    if isinstance(value, dict):
        value = value.get(0, next(iter(value.values()), None))
    if value is None:
        return None
    return float(np.ravel(value)[0])


def lime_explanation(
    predictor: Predictor,
    instance: Optional[int] = None,
    k: int = 3,
    random_state: int = 0,
    num_samples: int = 5000,
) -> InterpretationResult:
    """
    Explains one prediction with a sparse linear model fitted around the instance (LIME).

    :param predictor: Predictor to explain.
    :param instance: Row position in the predictor's data; sampled with random_state when None.
    :param k: Number of features in the local model.
    :param random_state: Random seed for the instance draw and LIME's neighbourhood sampling.
    :param num_samples: Size of the perturbed neighbourhood.

    :raises ConfigError: If k is out of range or instance is not a valid row position.

    :return: InterpretationResult with columns feature, weight; details hold the instance and predictions.
    """
    names = predictor.feature_names
    if not isinstance(k, int) or not 1 <= k <= len(names):
        raise ConfigError(f"k must be between 1 and {len(names)}, got {k!r}.")
    idx = pick_instance(predictor, instance, random_state)

    explainer = LimeTabularExplainer(
        training_data=predictor.X.to_numpy(dtype=float),
        mode="regression",
        feature_names=names,
        discretize_continuous=True,
        random_state=random_state,
    )
    row = predictor.X.iloc[idx].to_numpy(dtype=float)
    explanation = explainer.explain_instance(
        row, predictor.predict, num_features=k, num_samples=num_samples
    )
    weights = explanation.as_list()
    logger.info(f"LIME explanation for row {predictor.X.index[idx]}: {weights}")

    table = pd.DataFrame(weights, columns=["feature", "weight"])
    return InterpretationResult(
        method="lime",
        table=table,
        details={
            "instance_index": idx,
            "instance_label": predictor.X.index[idx],
            "prediction": float(explanation.predicted_value),
            "local_prediction": _first(explanation.local_pred),
            "intercept": _first(explanation.intercept),
        },
    )


def shapley_values(
    predictor: Predictor,
    instance: Optional[int] = None,
    random_state: int = 0,
) -> InterpretationResult:
    """
    Attributes one prediction to the features with Shapley values.

    Tree ensembles use SHAP's exact TreeExplainer; any other model falls back to the
    model-agnostic permutation explainer over a background sample of the data.

    :param predictor: Predictor to explain.
    :param instance: Row position in the predictor's data; sampled with random_state when None.
    :param random_state: Random seed for the instance draw and the fallback explainer.

    :raises ConfigError: If instance is not a valid row position.

    :return: InterpretationResult with columns feature, value, phi sorted by |phi|.
    """
    idx = pick_instance(predictor, instance, random_state)
    row = predictor.X.iloc[[idx]]
    model = predictor.model

    if hasattr(model, "estimators_") or hasattr(model, "get_booster"):
        explainer = shap.TreeExplainer(model)
        shap_values = explainer(row)
    else:
        masker = shap.maskers.Independent(predictor.X, max_samples=100)
        explainer = shap.Explainer(predictor.predict, masker, seed=random_state)
        shap_values = explainer(row)

    phi = np.asarray(shap_values.values, dtype=float).reshape(len(predictor.feature_names))
    base_value = float(np.ravel(shap_values.base_values)[0])
    logger.info(
        f"Shapley values for row {predictor.X.index[idx]} computed with {type(explainer).__name__}"
    )

    table = pd.DataFrame(
        {"feature": predictor.feature_names, "value": row.iloc[0].to_numpy(), "phi": phi}
    )
    order = np.argsort(-np.abs(table["phi"].to_numpy()), kind="mergesort")
    table = table.iloc[order].reset_index(drop=True)
    return InterpretationResult(
        method="shapley",
        table=table,
        details={
            "instance_index": idx,
            "instance_label": predictor.X.index[idx],
            "base_value": base_value,
            "prediction": float(predictor.predict(row)[0]),
        },
    )
