"""
Useful assertions
"""

from __future__ import annotations

from collections.abc import Collection

import pandas as pd

from casecounts.exceptions import SchemaMismatchError


def assert_has_columns(
    indf: pd.DataFrame, columns: Collection[str], table_name: str = "table"
) -> None:
    """
    Assert that a [pd.DataFrame][pandas.DataFrame] has the given columns

    Parameters
    ----------
    indf
        Data to verify

    columns
        Columns which must be present

    table_name
        Name of the table, used to make the error message clearer

    Raises
    ------
    SchemaMismatchError
        Some of `columns` are not in `indf`
    """
    missing = [c for c in columns if c not in indf.columns]
    if missing:
        raise SchemaMismatchError(
            missing=missing, available=indf.columns.tolist(), table_name=table_name
        )


def assert_index_is_multiindex(indf: pd.DataFrame | pd.Series) -> None:
    """
    Assert that the index is a [pd.MultiIndex][pandas.MultiIndex]

    Parameters
    ----------
    indf
        Data to verify

    Raises
    ------
    TypeError
        The index is not a [pd.MultiIndex][pandas.MultiIndex]
    """
    if not isinstance(indf.index, pd.MultiIndex):
        msg = f"The index is not a `pd.MultiIndex`, instead we have {type(indf.index)=}"
        raise TypeError(msg)


def assert_has_index_levels(
    indf: pd.DataFrame | pd.Series, levels: Collection[str]
) -> None:
    """
    Assert that the index has the given levels

    Parameters
    ----------
    indf
        Data to verify

    levels
        Levels which must be present in the index

    Raises
    ------
    KeyError
        Some of `levels` are not in the index
    """
    missing_levels = [lvl for lvl in levels if lvl not in indf.index.names]
    if missing_levels:
        msg = (
            f"The index is missing the following levels: {missing_levels}. "
            f"Available levels: {indf.index.names}"
        )
        raise KeyError(msg)


def assert_data_is_all_numeric(indf: pd.DataFrame, columns: Collection[str]) -> None:
    """
    Assert that the given columns are all numeric

    Parameters
    ----------
    indf
        Data to verify

    columns
        Columns to check

    Raises
    ------
    TypeError
        Some of `columns` are not numeric
    """
    non_numeric = [
        c for c in columns if not pd.api.types.is_numeric_dtype(indf[c].dtype)
    ]
    if non_numeric:
        msg = (
            "The following columns are not numeric: "
            f"{ {c: str(indf[c].dtype) for c in non_numeric} }"
        )
        raise TypeError(msg)


def assert_is_sorted_by_time(
    indf: pd.DataFrame, group_level: str, time_level: str
) -> None:
    """
    Assert that the data is sorted by time within each group

    Parameters
    ----------
    indf
        Data to verify

    group_level
        Level of the index which defines the groups (e.g. regions)

    time_level
        Level of the index which holds the time

    Raises
    ------
    AssertionError
        The data is not sorted by time within each group
    """
    times = pd.Series(
        indf.index.get_level_values(time_level),
        index=indf.index.get_level_values(group_level),
    )
    unsorted = [
        group
        for group, group_times in times.groupby(level=0, sort=False)
        if not group_times.is_monotonic_increasing
    ]
    if unsorted:
        msg = f"Data is not sorted by {time_level} for: {unsorted}"
        raise AssertionError(msg)
