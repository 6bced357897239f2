"""DataFrame validation helpers backed by Pandera.

Used by the Parquet table store to check that a table read back from disk
still has the columns (and non-null keys) the domain models need.  Both
functions propagate `pandera.errors.SchemaError` on failure.

Usage:
    >>> import pandas as pd
    >>> from nfl_pickem.utils.assertions import assert_columns, assert_no_nulls
    >>> df = pd.DataFrame({"id": ["a1"], "team_code": ["KC"]})
    >>> assert_columns(df, ["id", "team_code"])
    >>> assert_no_nulls(df, ["id"])
"""

from __future__ import annotations

from collections.abc import Sequence

import pandas as pd  # type: ignore[import-untyped]
import pandera.pandas as pa


def assert_columns(df: pd.DataFrame, required: Sequence[str]) -> None:
    """Validate that all required columns exist in the DataFrame.

    Raises:
        pa.errors.SchemaError: If any required columns are missing.
    """
    if not required:
        return
    pa.DataFrameSchema(
        {col: pa.Column() for col in required},
        strict=False,
    ).validate(df)


def assert_no_nulls(
    df: pd.DataFrame,
    columns: Sequence[str] | None = None,
) -> None:
    """Validate no null values in specified or all columns.

    Args:
        df: DataFrame to check.
        columns: Specific columns to check.  ``None`` checks all columns.

    Raises:
        pa.errors.SchemaError: If null values are found, or a specified
            column is not present.
    """
    cols = list(df.columns) if columns is None else list(columns)
    if not cols:
        return
    pa.DataFrameSchema(
        {col: pa.Column(nullable=False) for col in cols},
        strict=False,
    ).validate(df)
