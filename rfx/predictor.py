from typing import Any, List, Optional
import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, RegressorMixin


class Predictor(RegressorMixin, BaseEstimator):
    """
    Read-only view of a fitted model together with the data it is explained on.

    Every interpretation method talks to the model through ``predict`` only, so the
    methods do not depend on the model type. The object behaves as a fitted
    scikit-learn regressor, which lets sklearn.inspection routines accept it directly.
    Attributes cannot be reassigned once the predictor is built, and ``X`` and ``y``
    hand out copies, so changing them leaves the predictor untouched.

    :param model: Any fitted object with a ``predict`` method.
    :param X: Feature matrix the model is explained on (outcome excluded).
    :param y: Outcome values matching the rows of X.
    """

    def __init__(self, model: Any = None, X: Optional[pd.DataFrame] = None, y: Any = None):
        if model is None or not hasattr(model, "predict"):
            raise TypeError("model must be a fitted object with a predict method.")
        if X is None or len(X) == 0:
            raise ValueError("X must contain at least one row.")
        if y is not None and len(y) != len(X):
            raise ValueError("X and y must have the same length.")
        self.model = model
        self._X = X.copy()
        self._y = None if y is None else pd.Series(np.asarray(y, dtype=float), index=X.index)
        self._sealed = True

    def __setattr__(self, name, value):
        if getattr(self, "_sealed", False):
            raise AttributeError(f"Predictor is read-only; cannot set '{name}'.")
        super().__setattr__(name, value)

    def __repr__(self):
        return (
            f"Predictor(model={type(self.model).__name__}, "
            f"rows={len(self._X)}, features={len(self.feature_names)})"
        )

    def __sklearn_is_fitted__(self):
        return True

    @property
    def X(self) -> pd.DataFrame:
        return self._X.copy()

    @property
    def y(self) -> Optional[pd.Series]:
        return None if self._y is None else self._y.copy()

    @property
    def feature_names(self) -> List[str]:
        return list(self._X.columns)

    def fit(self, X=None, y=None):
        """No-op; the wrapped model is already fitted."""
        return self

    def predict(self, rows) -> np.ndarray:
        """Predicts the outcome for a DataFrame or 2-D array of rows in feature order."""
        if not isinstance(rows, pd.DataFrame):
            rows = pd.DataFrame(np.atleast_2d(np.asarray(rows, dtype=float)), columns=self.feature_names)
        return np.asarray(self.model.predict(rows[self.feature_names]), dtype=float).ravel()
