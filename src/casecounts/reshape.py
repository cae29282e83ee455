"""
Reshaping and joining of tables
"""

from __future__ import annotations

from collections.abc import Collection, Sequence

import pandas as pd

from casecounts.assertions import assert_has_columns
from casecounts.exceptions import SchemaMismatchError
from casecounts.sources import JHU_DATE_FORMAT
from casecounts.typing import LongDataFrame, WideDataFrame


def wide_to_long(  # noqa: PLR0913
    table: WideDataFrame,
    id_columns: Sequence[str],
    value_name: str,
    time_name: str = "date",
    date_format: str = JHU_DATE_FORMAT,
    drop_columns: Collection[str] = (),
) -> LongDataFrame:
    """
    Reshape a table with one column per date into one row per (entity, date)

    This is a purely structural transformation.
    If `table` has `r` rows and `n` date columns,
    the output has `r * n` rows.
    Missing values are kept.

    Parameters
    ----------
    table
        Table to reshape

    id_columns
        Columns which identify each entity

    value_name
        Name of the value column in the output

    time_name
        Name of the date column in the output

    date_format
        Format of the date column names in `table`

    drop_columns
        Columns to drop before reshaping (i.e. neither ids nor dates)

    Returns
    -------
    :
        Long form of `table`, with columns `[*id_columns, time_name, value_name]`.
        Rows are ordered by entity (in the order of `table`),
        then by date ascending.

    Raises
    ------
    SchemaMismatchError
        `table` is missing some of `id_columns` or `drop_columns`,
        or some of the remaining columns are not dates in `date_format`

    Examples
    --------
    >>> wide = pd.DataFrame(
    ...     [
    ...         ["Albania", 0, 2],
    ...         ["Algeria", 1, 3],
    ...     ],
    ...     columns=["Country/Region", "1/23/20", "1/22/20"],
    ... )
    >>> wide_to_long(wide, id_columns=["Country/Region"], value_name="cases")
      Country/Region       date  cases
    0        Albania 2020-01-22      2
    1        Albania 2020-01-23      0
    2        Algeria 2020-01-22      3
    3        Algeria 2020-01-23      1
    """
    id_columns = list(id_columns)
    assert_has_columns(table, [*id_columns, *drop_columns], table_name="wide table")

    time_columns = [
        c for c in table.columns if c not in id_columns and c not in drop_columns
    ]
    times = pd.to_datetime(
        pd.Series([str(c) for c in time_columns], dtype=object),
        format=date_format,
        errors="coerce",
    )
    if times.isnull().any():
        raise SchemaMismatchError(
            missing=[],
            available=table.columns.tolist(),
            table_name="wide table",
            unexpected=[c for c, t in zip(time_columns, times) if pd.isnull(t)],
        )

    wide = table.loc[:, time_columns].copy()
    wide.index = pd.MultiIndex.from_frame(table.loc[:, id_columns])
    wide.columns = pd.DatetimeIndex(times, name=time_name)
    wide = wide.sort_index(axis="columns", kind="stable")

    res = wide.stack(future_stack=True)
    res.name = value_name

    return res.reset_index()


def outer_join(
    left: LongDataFrame, right: LongDataFrame, keys: Sequence[str]
) -> LongDataFrame:
    """
    Outer join two long tables

    No keys are dropped: if a key is only in one of the tables,
    the other table's values are missing for that key.
    Hence, the number of rows in the output
    is the number of unique keys across both tables.

    Parameters
    ----------
    left
        Left table

    right
        Right table

    keys
        Columns to join on

    Returns
    -------
    :
        Joined table, sorted by `keys`

    Raises
    ------
    SchemaMismatchError
        `left` or `right` is missing some of `keys`

    pd.errors.MergeError
        `left` or `right` has duplicate keys
    """
    keys = list(keys)
    assert_has_columns(left, keys, table_name="left table")
    assert_has_columns(right, keys, table_name="right table")

    res = pd.merge(
        left,
        right,
        on=keys,
        how="outer",
        sort=True,
        validate="one_to_one",
    )

    return res
