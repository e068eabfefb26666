import logging
import numpy as np
import pandas as pd
import pytest
from rfx import data_processing
from rfx.errors import ConfigError, LoadError

# TESTS FOR LOAD_DATA FUNCTION
def test_basic_functionality(tmp_path):
    df = pd.DataFrame({"A": [1, 2], "B": [3, 4], "target": [0, 1]})
    path = tmp_path / "test.csv"
    df.to_csv(path, index=False)
    loaded = data_processing.load_data(str(path))
    assert list(loaded.columns) == ["A", "B", "target"]
    assert loaded["target"].tolist() == [0, 1]


def test_question_mark_is_missing(tmp_path):
    path = tmp_path / "test.csv"
    path.write_text('name,A,target\n"Town, One",?,1\nTownTwo,3,2\n')
    loaded = data_processing.load_data(str(path))
    assert np.isnan(loaded.loc[0, "A"])
    assert loaded.loc[0, "name"] == "Town, One"
    assert loaded.loc[1, "A"] == 3


def test_custom_separator_and_sentinel(tmp_path):
    path = tmp_path / "test.txt"
    path.write_text("A;B\n1;NA\n2;3\n")
    loaded = data_processing.load_data(str(path), sep=";", na_values=("NA",))
    assert loaded["B"].isnull().sum() == 1


def test_missing_file_raises_load_error(tmp_path):
    with pytest.raises(LoadError):
        data_processing.load_data(str(tmp_path / "nope.csv"))


def test_empty_file_raises_load_error(tmp_path):
    path = tmp_path / "empty.csv"
    path.write_text("")
    with pytest.raises(LoadError):
        data_processing.load_data(str(path))


def test_malformed_row_raises_load_error(tmp_path):
    path = tmp_path / "bad.csv"
    path.write_text("A,B\n1,2\n3,4,5\n")
    with pytest.raises(LoadError):
        data_processing.load_data(str(path))


def test_undecodable_bytes_raise_load_error(tmp_path):
    path = tmp_path / "latin.csv"
    path.write_bytes(b"name,A\n\xff\xfeTown,1\n")
    with pytest.raises(LoadError):
        data_processing.load_data(str(path))


def test_custom_encoding(tmp_path):
    path = tmp_path / "latin.csv"
    path.write_bytes("name,A\nMéxico,1\n".encode("latin-1"))
    loaded = data_processing.load_data(str(path), encoding="latin-1")
    assert loaded.loc[0, "name"] == "México"


def test_directory_raises_load_error(tmp_path):
    with pytest.raises(LoadError):
        data_processing.load_data(str(tmp_path))


# TESTS FOR FILTER_FEATURES FUNCTION
@pytest.fixture
def raw_frame():
    return pd.DataFrame(
        {
            "communityname": ["a", "b", "c", "d"],
            "LemasSwornFT": [np.nan, 1.0, np.nan, 2.0],
            "PolicPerPop": [0.1, 0.2, 0.3, 0.4],
            "A": [1.0, np.nan, 3.0, 4.0],
            "B": [5, 6, 7, 8],
            "C": [1, 1, 1, 1],
            "target": [0.5, 0.6, 0.7, 0.8],
        }
    )


def test_drop_specified_columns(raw_frame):
    out = data_processing.filter_features(raw_frame, "target", ("communityname",), ("Lemas", "Polic"))
    assert "communityname" not in out.columns
    assert "LemasSwornFT" not in out.columns
    assert "PolicPerPop" not in out.columns


def test_filtered_output_has_no_missing_values(raw_frame):
    out = data_processing.filter_features(raw_frame, "target", ("communityname",), ("Lemas",))
    assert not out.isnull().any().any()
    # only the row with A missing is removed
    assert len(out) == 3
    assert out.index.tolist() == [0, 1, 2]


def test_drop_constant_columns(raw_frame):
    out = data_processing.filter_features(raw_frame, "target", ("communityname",), ("Lemas",))
    assert "C" not in out.columns
    assert "target" in out.columns


def test_target_never_dropped_by_substring():
    df = pd.DataFrame({"ViolentCrimesPerPop": [1.0, 2.0], "murdPerPop": [3.0, 4.0]})
    out = data_processing.filter_features(df, "ViolentCrimesPerPop", (), ("PerPop",))
    assert list(out.columns) == ["ViolentCrimesPerPop"]


def test_unknown_drop_column_is_skipped(raw_frame, caplog):
    with caplog.at_level(logging.WARNING, logger="rfx_logger"):
        out = data_processing.filter_features(raw_frame, "target", ("not_there", "communityname"), ("Lemas",))
    assert "communityname" not in out.columns
    assert "not_there" in caplog.text


def test_target_column_missing_is_caught_by_split(raw_frame):
    out = data_processing.filter_features(raw_frame, "target", ("communityname", "target"), ("Lemas",))
    assert "target" not in out.columns
    with pytest.raises(ConfigError):
        data_processing.split_data(out, "target", 0.5, 0)


def test_empty_result_raises(raw_frame):
    # keeping the Lemas column leaves no complete row
    raw_frame.loc[[1, 3], "LemasSwornFT"] = np.nan
    with pytest.raises(ConfigError):
        data_processing.filter_features(raw_frame, "target", ("communityname",))


def test_non_numeric_column_is_kept(raw_frame):
    out = data_processing.filter_features(raw_frame, "target", (), ("Lemas",))
    assert out["communityname"].tolist() == ["a", "c", "d"]
    assert out["A"].dtype.kind == "f"


def test_no_columns_to_drop():
    df = pd.DataFrame({"A": [1, 2], "target": [0, 1]})
    out = data_processing.filter_features(df, "target", None, None)
    assert "A" in out.columns


# TESTS FOR SPLIT_DATA FUNCTION
@pytest.fixture
def numeric_frame():
    rng = np.random.default_rng(3)
    return pd.DataFrame(
        {"A": rng.normal(size=100), "B": rng.normal(size=100), "target": rng.exponential(size=100)}
    )


def test_basic_split(numeric_frame):
    X_train, X_test, y_train, y_test = data_processing.split_data(numeric_frame, "target", 0.8, 42)
    assert len(X_train) == 80
    assert len(X_test) == 20
    assert "target" not in X_train.columns
    assert X_train.index.equals(y_train.index)


def test_split_is_disjoint_and_exhaustive(numeric_frame):
    X_train, X_test, _, _ = data_processing.split_data(numeric_frame, "target", 0.8, 49043)
    train_ids, test_ids = set(X_train.index), set(X_test.index)
    assert train_ids.isdisjoint(test_ids)
    assert train_ids | test_ids == set(numeric_frame.index)


def test_stratification_covers_outcome_range(numeric_frame):
    _, _, y_train, y_test = data_processing.split_data(numeric_frame, "target", 0.8, 1, stratify_bins=5)
    bins = pd.qcut(numeric_frame["target"], 5, labels=False)
    assert set(bins[y_test.index]) == set(range(5))
    assert set(bins[y_train.index]) == set(range(5))


def test_constant_target_falls_back_to_plain_split():
    df = pd.DataFrame({"A": range(10), "target": [1.0] * 10})
    X_train, X_test, y_train, y_test = data_processing.split_data(df, "target", 0.6, 0)
    assert all(y_train == 1)
    assert len(X_train) + len(X_test) == 10


def test_small_dataset():
    df = pd.DataFrame({"A": [1, 2], "target": [0.0, 1.0]})
    X_train, X_test, y_train, y_test = data_processing.split_data(df, "target", 0.5, 0)
    assert len(X_train) + len(X_test) == 2


def test_test_set_smaller_than_bin_count_falls_back():
    # train_size * n rounds to 7 training rows, leaving 3 test rows for 4 bins
    df = pd.DataFrame({"A": range(10), "target": np.arange(10, dtype=float)})
    X_train, X_test, y_train, y_test = data_processing.split_data(df, "target", 0.7, 0, stratify_bins=4)
    assert len(X_train) == 7
    assert len(X_test) == 3


@pytest.mark.parametrize("train_size", [0, 1, 1.5, -0.2])
def test_invalid_train_size(numeric_frame, train_size):
    with pytest.raises(ConfigError):
        data_processing.split_data(numeric_frame, "target", train_size, 0)


def test_random_state_reproducibility(numeric_frame):
    split1 = data_processing.split_data(numeric_frame, "target", 0.8, 123)
    split2 = data_processing.split_data(numeric_frame, "target", 0.8, 123)
    # Check that the splits are identical
    assert split1[0].equals(split2[0])
    assert split1[1].equals(split2[1])
    assert split1[2].equals(split2[2])
    assert split1[3].equals(split2[3])


def test_different_seeds_change_membership(numeric_frame):
    split1 = data_processing.split_data(numeric_frame, "target", 0.8, 1)
    split2 = data_processing.split_data(numeric_frame, "target", 0.8, 2)
    assert set(split1[1].index) != set(split2[1].index)
