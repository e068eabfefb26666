import numpy as np
import pandas as pd
import pytest
from sklearn.base import is_regressor
from rfx.predictor import Predictor


def test_predict_is_deterministic(forest_predictor):
    X = forest_predictor.X
    first = forest_predictor.predict(X)
    # unrelated calls in between must not change the answer
    forest_predictor.predict(X.iloc[::-1])
    forest_predictor.predict(X.sample(frac=0.5, random_state=0))
    second = forest_predictor.predict(X)
    np.testing.assert_array_equal(first, second)


def test_predict_accepts_arrays(forest_predictor):
    X = forest_predictor.X
    from_frame = forest_predictor.predict(X)
    from_array = forest_predictor.predict(X.to_numpy())
    np.testing.assert_allclose(from_frame, from_array)


def test_predict_single_row_array(additive_predictor):
    row = additive_predictor.X.iloc[0].to_numpy()
    pred = additive_predictor.predict(row)
    assert pred.shape == (1,)
    assert pred[0] == pytest.approx(10 * row[0] + row[1])


def test_predict_reorders_columns(additive_predictor):
    X = additive_predictor.X
    shuffled = X[["x4", "x2", "x3", "x1"]]
    np.testing.assert_allclose(additive_predictor.predict(shuffled), additive_predictor.predict(X))


def test_predictor_is_read_only(forest_predictor):
    with pytest.raises(AttributeError):
        forest_predictor.model = None
    with pytest.raises(AttributeError):
        forest_predictor.X = forest_predictor.X.head()


def test_predictor_copies_data(regression_frame, forest_predictor):
    X = regression_frame.drop(columns=["y"])
    predictor = Predictor(forest_predictor.model, X, regression_frame["y"])
    X.loc[0, "x1"] = 1000.0
    assert predictor.X.loc[0, "x1"] != 1000.0


def test_returned_data_cannot_change_predictor(forest_predictor):
    first_row = forest_predictor.X.index[0]
    original = forest_predictor.X.loc[first_row, "x1"]
    forest_predictor.X.loc[first_row, "x1"] = 1000.0
    forest_predictor.y.loc[first_row] = -1.0
    assert forest_predictor.X.loc[first_row, "x1"] == original
    assert forest_predictor.y.loc[first_row] != -1.0


def test_predictor_is_sklearn_regressor(forest_predictor):
    assert is_regressor(forest_predictor)
    assert forest_predictor.fit() is forest_predictor


def test_feature_names(forest_predictor):
    assert forest_predictor.feature_names == ["x1", "x2", "x3", "x4"]


def test_rejects_model_without_predict(regression_frame):
    with pytest.raises(TypeError):
        Predictor(object(), regression_frame, None)


def test_rejects_length_mismatch(forest_predictor):
    with pytest.raises(ValueError):
        Predictor(forest_predictor.model, forest_predictor.X, forest_predictor.y.iloc[:-1])


def test_rejects_empty_data(forest_predictor):
    with pytest.raises(ValueError):
        Predictor(forest_predictor.model, pd.DataFrame(columns=["x1"]), None)
