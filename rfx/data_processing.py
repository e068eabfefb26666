import pandas as pd
import numpy as np
from sklearn.model_selection import train_test_split
from typing import Iterable, Tuple
from .errors import ConfigError, LoadError
from .logger_setup import setup_logger

logger = setup_logger("rfx_log.txt", to_console=True)


def load_data(
    filepath: str,
    sep: str = ",",
    quotechar: str = '"',
    na_values: Iterable[str] = ("?",),
    encoding: str = "utf-8",
) -> pd.DataFrame:
    """
    Loads a delimited text file with a header row into a DataFrame.

    Every token listed in na_values is read as missing. Rows with the wrong number
    of fields are not skipped: they make the whole load fail.

    :param filepath: Path to the delimited text file.
    :param sep: Field delimiter (default: ",").
    :param quotechar: Quote character (default: '"').
    :param na_values: Tokens that encode a missing value (default: ("?",)).
    :param encoding: Text encoding of the file (default: "utf-8").

    :raises LoadError: If the file does not exist, cannot be read or decoded, is empty,
        or contains an unparsable row.

    :return: The raw DataFrame.
    """
    try:
        df = pd.read_csv(
            filepath,
            sep=sep,
            quotechar=quotechar,
            na_values=list(na_values),
            keep_default_na=False,
            skipinitialspace=True,
            on_bad_lines="error",
            low_memory=False,
            encoding=encoding,
        )
    except FileNotFoundError as exc:
        logger.error(f"Input file not found: {filepath}")
        raise LoadError(f"Input file not found: {filepath}") from exc
    except pd.errors.EmptyDataError as exc:
        logger.error(f"Input file is empty: {filepath}")
        raise LoadError(f"Input file is empty: {filepath}") from exc
    except pd.errors.ParserError as exc:
        logger.error(f"Could not parse {filepath}: {exc}")
        raise LoadError(f"Could not parse {filepath}: {exc}") from exc
    except UnicodeDecodeError as exc:
        logger.error(f"Could not decode {filepath} as {encoding}: {exc}")
        raise LoadError(f"Could not decode {filepath} as {encoding}: {exc}") from exc
    except OSError as exc:
        logger.error(f"Could not read {filepath}: {exc}")
        raise LoadError(f"Could not read {filepath}: {exc}") from exc

    logger.info(f"Loaded {filepath}: {df.shape[0]} rows, {df.shape[1]} columns.")
    return df


def filter_features(
    df: pd.DataFrame,
    target_column: str,
    columns_to_drop: Iterable[str] = (),
    drop_substrings: Iterable[str] = (),
) -> pd.DataFrame:
    """
    Removes unwanted columns and incomplete rows.

    Columns are dropped by exact name first, then by substring match on the name (the
    target is never dropped by substring). Rows that still contain a missing value are
    removed, then columns that became constant (except the target). Columns whose
    values all parse as numbers are converted to numeric; any other column is kept
    as it is and left for the trainer to reject.

    :param df: Raw DataFrame from load_data.
    :param target_column: Name of the outcome column.
    :param columns_to_drop: Exact column names to remove; names not in the data are skipped with a warning.
    :param drop_substrings: Any column whose name contains one of these is removed.

    :raises ConfigError: If no rows are left.

    :return: Filtered DataFrame with a fresh RangeIndex.
    """
    columns_to_drop = list(columns_to_drop or ())
    drop_substrings = [s for s in (drop_substrings or ()) if s]

    missing = [col for col in columns_to_drop if col not in df.columns]
    if missing:
        logger.warning(f"Columns to drop are not in the data, skipping: {missing}")
    df = df.drop(columns=columns_to_drop, errors="ignore")
    logger.info(f"Dropping specified columns: {[c for c in columns_to_drop if c not in missing]}")

    pattern_cols = [
        col
        for col in df.columns
        if col != target_column and any(sub in col for sub in drop_substrings)
    ]
    df = df.drop(columns=pattern_cols)
    logger.info(f"Dropping {len(pattern_cols)} columns matching {drop_substrings}")

    if target_column not in df.columns:
        logger.warning(
            f"The target column {target_column}, does not exist in the dataframe after filtering."
        )

    n_before = len(df)
    df = df.dropna(axis=0, how="any").reset_index(drop=True)
    logger.info(f"Dropped {n_before - len(df)} rows with missing values.")

    if df.empty:
        logger.error("No rows left after filtering. Please check the drop lists.")
        raise ConfigError("No rows left after filtering. Please check the drop lists.")

    # checks if any column value is constant across all the rows if so removes it
    constant_cols = [
        col
        for col in df.columns
        if df[col].nunique(dropna=False) == 1 and col != target_column
    ]
    df = df.drop(columns=constant_cols)
    if constant_cols:
        logger.info(f"Dropping constant columns: {constant_cols}")

    non_numeric = []
    for col in df.columns:
        converted = pd.to_numeric(df[col], errors="coerce")
        if converted.isnull().any():
            non_numeric.append(col)
            continue
        df[col] = converted
    if non_numeric:
        logger.warning(f"Columns left non-numeric after filtering: {non_numeric}")

    logger.info(f"Filtered data has {df.shape[0]} rows and {df.shape[1]} columns.")
    return df


def split_data(
    data: pd.DataFrame,
    target_column: str,
    train_size: float = 0.8,
    random_state: int = 49043,
    stratify_bins: int = 5,
) -> Tuple[pd.DataFrame, pd.DataFrame, pd.Series, pd.Series]:
    """
    Splits the filtered data into training and testing sets using sklearn's train_test_split.

    The numeric outcome is cut into stratify_bins quantile groups and the split is
    stratified on those groups, so both sets cover the outcome's whole distribution.
    If any group has fewer than two rows, or either side of the split would be smaller
    than the number of groups, the split falls back to plain shuffling.
    Row identity is kept in the index of every returned object.

    :param data: Filtered DataFrame including the target column.
    :param target_column: Name of the outcome column.
    :param train_size: Proportion of rows in the training set, strictly between 0 and 1.
    :param random_state: Random seed for reproducibility.
    :param stratify_bins: Number of outcome quantile groups to stratify on.

    :raises ConfigError: If train_size is out of range or the target column is missing.

    :return: Tuple (X_train, X_test, y_train, y_test) with the split data.
    """
    if not 0 < train_size < 1:
        raise ConfigError(f"train_size must be in (0, 1), got {train_size}.")
    if target_column not in data.columns:
        logger.error(f"Target column {target_column} is not in the data.")
        raise ConfigError(f"Target column {target_column} is not in the data.")

    y = data[target_column]
    X = data.drop(columns=[target_column])

    stratify_arg = None
    if stratify_bins > 1 and pd.api.types.is_numeric_dtype(y) and y.nunique() > 1:
        groups = pd.qcut(y, q=stratify_bins, labels=False, duplicates="drop")
        counts = groups.value_counts()
        # same sizes train_test_split derives from a float train_size
        n_train = int(np.floor(train_size * len(y)))
        n_test = len(y) - n_train
        # every group needs a member on both sides of the split
        if len(counts) > 1 and counts.min() >= 2 and min(n_test, n_train) >= len(counts):
            stratify_arg = groups

    X_train, X_test, y_train, y_test = train_test_split(
        X,
        y,
        train_size=train_size,
        random_state=random_state,
        shuffle=True,
        stratify=stratify_arg,
    )

    logger.info("✔ Data split into training and testing sets successfully.")
    logger.info(f"Shape of X_train: {X_train.shape}, Shape of y_train: {y_train.shape}")
    logger.info(f"Shape of X_test: {X_test.shape}, Shape of y_test: {y_test.shape}")
    logger.info(
        f"Train size: {train_size}, Stratified: {stratify_arg is not None}, Random state: {random_state}"
    )

    return X_train, X_test, y_train, y_test
