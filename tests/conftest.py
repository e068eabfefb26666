"""Shared fixtures: small synthetic regression data and models.

``x4`` never enters the outcome, so importance-style methods should rank it
last. ``AdditiveModel`` and ``ProductModel`` are hand-written black boxes
whose interpretations are known exactly.
"""

import numpy as np
import pandas as pd
import pytest
from sklearn.ensemble import RandomForestRegressor

from rfx.predictor import Predictor


class AdditiveModel:
    """y = 10 * x1 + x2; ignores every other column."""

    def predict(self, X):
        X = pd.DataFrame(X)
        return 10 * X["x1"].to_numpy(dtype=float) + X["x2"].to_numpy(dtype=float)


class ProductModel:
    """y = x1 * x2 + x3; x1 and x2 act only through their interaction."""

    def predict(self, X):
        X = pd.DataFrame(X)
        return (X["x1"] * X["x2"] + X["x3"]).to_numpy(dtype=float)


def make_regression_frame(n_rows: int = 200, seed: int = 0) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    df = pd.DataFrame(
        {
            "x1": rng.uniform(0, 1, n_rows),
            "x2": rng.uniform(-1, 1, n_rows),
            "x3": rng.normal(0, 1, n_rows),
            "x4": rng.normal(0, 1, n_rows),
        }
    )
    df["y"] = 5 * df["x1"] + 2 * df["x2"] ** 2 + df["x1"] * df["x3"] + rng.normal(0, 0.1, n_rows)
    return df


@pytest.fixture
def regression_frame():
    return make_regression_frame()


@pytest.fixture
def forest_predictor(regression_frame):
    X = regression_frame.drop(columns=["y"])
    y = regression_frame["y"]
    model = RandomForestRegressor(n_estimators=30, random_state=0).fit(X, y)
    return Predictor(model, X, y)


@pytest.fixture
def additive_predictor(regression_frame):
    X = regression_frame.drop(columns=["y"])
    y = AdditiveModel().predict(X)
    return Predictor(AdditiveModel(), X, y)


@pytest.fixture
def product_predictor(regression_frame):
    X = regression_frame.drop(columns=["y"])
    return Predictor(ProductModel(), X, ProductModel().predict(X))


def make_crime_like_frame(n_rows: int = 150, seed: int = 1) -> pd.DataFrame:
    """A small table shaped like the Communities-and-Crime data."""
    df = make_regression_frame(n_rows, seed).rename(columns={"y": "ViolentCrimesPerPop"})
    rng = np.random.default_rng(seed)
    df.insert(0, "communityname", [f"Town{i}" for i in range(n_rows)])
    df["murders"] = rng.integers(0, 10, n_rows)
    df["LemasSwornFT"] = rng.integers(10, 100, n_rows).astype(object)
    df.loc[df.index % 3 == 0, "LemasSwornFT"] = "?"
    df["PolicPerPop"] = rng.uniform(0, 1, n_rows)
    df["constant"] = 7
    df = df.astype({"x3": object})
    df.loc[[5, 17], "x3"] = "?"
    return df


@pytest.fixture
def crime_csv(tmp_path):
    path = tmp_path / "crime.csv"
    make_crime_like_frame().to_csv(path, index=False)
    return path
