"""
Aggregation helpers

The COVID pipeline runs, per region and in ascending date order:

1. collapse sub-regions (e.g. provinces) into their region
1. drop leading days before the first case
1. daily differences of the cumulative series,
   plus differences over a longer lag (14 days by default)
1. sum the daily differences into calendar weeks
1. normalise by population (see [casecounts.rates][])

Negative differences (upstream corrections) are kept as they are,
we never clamp them to zero.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import pandas as pd
from pandas_indexing import assignlevel
from pandas_openscm.grouping import groupby_except

from casecounts.assertions import (
    assert_data_is_all_numeric,
    assert_has_columns,
    assert_has_index_levels,
    assert_is_sorted_by_time,
)
from casecounts.config import WEEK_START_SUNDAY
from casecounts.exceptions import MissingPopulationError
from casecounts.rates import add_per_1000_rates, get_valid_populations
from casecounts.typing import LongDataFrame, RegionPredicate, RegionTimeDataFrame

LOGGER = logging.getLogger(__name__)

CUMULATIVE_COLUMNS: tuple[str, ...] = ("cases", "deaths")
"""
Cumulative columns in the COVID observations
"""

COUNT_COLUMNS: tuple[str, ...] = (
    "new_cases",
    "new_deaths",
    "lagged_new_cases",
    "lagged_new_deaths",
)
"""
Count columns in the daily and weekly COVID tables
"""


def collapse_sub_regions(
    long: LongDataFrame,
    region_column: str = "region",
    sub_region_columns: Sequence[str] = ("sub_region",),
    time_name: str = "date",
    value_columns: Sequence[str] = CUMULATIVE_COLUMNS,
) -> RegionTimeDataFrame:
    """
    Sum values over sub-regions for each region and date

    Parameters
    ----------
    long
        Long table of observations

    region_column
        Column which holds the region

    sub_region_columns
        Columns which identify sub-regions within each region

    time_name
        Column which holds the date

    value_columns
        Columns to sum

    Returns
    -------
    :
        Sums, indexed by `(region_column, time_name)`
        and sorted by region then date.
        If all the values for a given region and date are missing,
        the sum is missing too (not zero).
    """
    sub_region_columns = list(sub_region_columns)
    assert_has_columns(
        long,
        [region_column, *sub_region_columns, time_name, *value_columns],
        table_name="long table",
    )
    assert_data_is_all_numeric(long, value_columns)

    indexed = long.set_index([region_column, *sub_region_columns, time_name])[
        list(value_columns)
    ]
    if sub_region_columns:
        res = groupby_except(indexed, sub_region_columns).sum(min_count=1)
    else:
        res = indexed.groupby(level=[region_column, time_name]).sum(min_count=1)

    res = res.reorder_levels([region_column, time_name]).sort_index()

    return res


def drop_leading_zero_cases(
    daily: RegionTimeDataFrame,
    cases_column: str = "cases",
    region_level: str = "region",
) -> RegionTimeDataFrame:
    """
    Drop the days before each region's first case

    Only leading days are dropped.
    Days with zero (or missing) cumulative cases
    after the first case are kept.

    Parameters
    ----------
    daily
        Daily data, sorted by date within each region

    cases_column
        Column which holds the cumulative cases

    region_level
        Level of the index which holds the region

    Returns
    -------
    :
        `daily`, without the leading days with no cases
    """
    started = (
        daily[cases_column]
        .fillna(0)
        .gt(0)
        .astype(int)
        .groupby(level=region_level, sort=False)
        .cummax()
        .astype(bool)
    )
    LOGGER.debug("Dropping %d leading days with no cases", int((~started).sum()))

    res: RegionTimeDataFrame = daily.loc[started]

    return res


def add_daily_differences(
    daily: RegionTimeDataFrame,
    columns: Sequence[str] = CUMULATIVE_COLUMNS,
    lag: int = 14,
    region_level: str = "region",
    time_level: str = "date",
) -> RegionTimeDataFrame:
    """
    Add the differences of cumulative columns

    For each column, `x`, two differences are added:

    - `new_x[t] = x[t] - x[t - 1]`
    - `lagged_new_x[t] = x[t] - x[t - lag]`

    Offsets are in rows within each region's series
    (not in calendar days, nor across regions).
    Where there is no prior row (i.e. the first row for `new_x`,
    the first `lag` rows for `lagged_new_x`),
    the prior value is taken to be zero.
    A prior row whose value is missing is not the same thing:
    the difference is then missing too.

    Parameters
    ----------
    daily
        Daily cumulative data, sorted by date within each region

    columns
        Cumulative columns to difference

    lag
        Offset, in rows, for the lagged difference

    region_level
        Level of the index which holds the region

    time_level
        Level of the index which holds the date

    Returns
    -------
    :
        Copy of `daily` with the difference columns added

    Raises
    ------
    AssertionError
        `daily` is not sorted by date within each region
    """
    assert_has_index_levels(daily, [region_level, time_level])
    assert_is_sorted_by_time(daily, group_level=region_level, time_level=time_level)

    res = daily.copy()
    grouped = res.groupby(level=region_level, sort=False)
    # Position within each region's series,
    # used to tell 'no prior row' apart from 'prior row is missing'
    position = grouped.cumcount()
    for column in columns:
        for prefix, offset in (("new_", 1), ("lagged_new_", lag)):
            prior = grouped[column].shift(offset)
            prior = prior.where(position >= offset, 0.0)
            res[f"{prefix}{column}"] = res[column] - prior

    return res


def bucket_dates(
    dates: pd.Index | pd.Series | Sequence[pd.Timestamp],
    freq: str = "week",
    week_start: int = WEEK_START_SUNDAY,
) -> pd.DatetimeIndex:
    """
    Bucket dates into periods

    Parameters
    ----------
    dates
        Dates to bucket

    freq
        Period to bucket into, "week" or "quarter"

    week_start
        Day on which weeks start (0 is Monday, 6 is Sunday).
        Only used if `freq` is "week".

    Returns
    -------
    :
        Start of the period which contains each date

    Examples
    --------
    >>> dates = pd.to_datetime(["2020-03-07", "2020-03-08", "2020-03-09"])
    >>> bucket_dates(dates).strftime("%Y-%m-%d").tolist()
    ['2020-03-01', '2020-03-08', '2020-03-08']
    >>> bucket_dates(dates, week_start=0).strftime("%Y-%m-%d").tolist()
    ['2020-03-02', '2020-03-02', '2020-03-09']
    >>> bucket_dates(dates, freq="quarter").strftime("%Y-%m-%d").tolist()
    ['2020-01-01', '2020-01-01', '2020-01-01']
    """
    dates = pd.DatetimeIndex(dates).normalize()

    if freq == "week":
        days_since_week_start = (dates.dayofweek - week_start) % 7
        return dates - pd.to_timedelta(days_since_week_start, unit="D")

    if freq == "quarter":
        return pd.DatetimeIndex(dates.to_period("Q").to_timestamp())

    raise NotImplementedError(freq)


def aggregate_weekly(
    daily: RegionTimeDataFrame,
    columns: Sequence[str] = COUNT_COLUMNS,
    week_start: int = WEEK_START_SUNDAY,
    region_level: str = "region",
    time_level: str = "date",
    bucket_name: str = "year_week",
) -> RegionTimeDataFrame:
    """
    Sum daily values into calendar weeks

    Parameters
    ----------
    daily
        Daily data

    columns
        Columns to sum

    week_start
        Day on which weeks start (0 is Monday, 6 is Sunday)

    region_level
        Level of the index which holds the region

    time_level
        Level of the index which holds the date

    bucket_name
        Name of the week level in the output

    Returns
    -------
    :
        Weekly sums, indexed by `(region_level, bucket_name)`.
        Weeks in which any daily value is missing have a missing sum,
        because the sum would no longer equal the change in the cumulative.
    """
    assert_has_index_levels(daily, [region_level, time_level])

    weeks = bucket_dates(
        daily.index.get_level_values(time_level), freq="week", week_start=week_start
    ).rename(bucket_name)
    regions = daily.index.get_level_values(region_level)

    res = daily[list(columns)].groupby([regions, weeks]).sum(min_count=1)
    incomplete = daily[list(columns)].isnull().groupby([regions, weeks]).any()
    if incomplete.any(axis=None):
        LOGGER.warning(
            "%d weekly sums set to missing because of missing daily values",
            incomplete.to_numpy().sum(),
        )
        res = res.mask(incomplete)

    return res


def count_by_period(
    table: pd.DataFrame,
    area_column: str,
    time_column: str,
    freq: str = "quarter",
    count_name: str = "incidents",
    bucket_name: str = "period",
    week_start: int = WEEK_START_SUNDAY,
) -> pd.DataFrame:
    """
    Count records per area and period

    Parameters
    ----------
    table
        Records to count (one row per record)

    area_column
        Column which holds the area

    time_column
        Column which holds the time of each record

    freq
        Period to count over, see [bucket_dates][(m).]

    count_name
        Name of the count column in the output

    bucket_name
        Name of the period level in the output

    week_start
        Passed to [bucket_dates][(m).]

    Returns
    -------
    :
        Counts, indexed by `(area_column, bucket_name)`.
        Periods with no records in an area are not included.
    """
    assert_has_columns(table, [area_column, time_column], table_name="records")

    periods = bucket_dates(table[time_column], freq=freq, week_start=week_start)
    res = (
        table.groupby([table[area_column], periods.rename(bucket_name)])
        .size()
        .rename(count_name)
        .to_frame()
    )

    return res


def calculate_weekly_aggregates(  # noqa: PLR0913
    long: LongDataFrame,
    populations: pd.Series,
    region_column: str = "region",
    sub_region_columns: Sequence[str] = ("sub_region",),
    time_name: str = "date",
    lag: int = 14,
    week_start: int = WEEK_START_SUNDAY,
    on_missing_population: str = "warn",
) -> RegionTimeDataFrame:
    """
    Calculate weekly aggregates and per-1000 rates from cumulative observations

    Parameters
    ----------
    long
        Long table of cumulative observations
        with columns `cases` and `deaths`

    populations
        Population of each region

    region_column
        Column which holds the region

    sub_region_columns
        Columns which identify sub-regions within each region

    time_name
        Column which holds the date

    lag
        Offset, in days, for the lagged differences

    week_start
        Day on which weeks start (0 is Monday, 6 is Sunday)

    on_missing_population
        Passed to [add_per_1000_rates][casecounts.rates.add_per_1000_rates]

    Returns
    -------
    :
        Weekly aggregates, indexed by `(region_column, "year_week")`
    """
    daily = collapse_sub_regions(
        long,
        region_column=region_column,
        sub_region_columns=sub_region_columns,
        time_name=time_name,
    )
    daily = drop_leading_zero_cases(daily, region_level=region_column)
    daily = add_daily_differences(
        daily, lag=lag, region_level=region_column, time_level=time_name
    )
    weekly = aggregate_weekly(
        daily,
        week_start=week_start,
        region_level=region_column,
        time_level=time_name,
    )

    res = add_per_1000_rates(
        weekly,
        populations,
        count_columns=COUNT_COLUMNS,
        region_level=region_column,
        on_missing_population=on_missing_population,
    )

    return res


def consolidate(  # noqa: PLR0913
    weekly: RegionTimeDataFrame,
    group_membership_predicate: RegionPredicate,
    populations: pd.Series,
    group_name: str,
    count_columns: Sequence[str] = COUNT_COLUMNS,
    region_level: str = "region",
) -> RegionTimeDataFrame:
    """
    Consolidate regions into a group

    Counts are summed over the group's members first,
    then divided once by the sum of the members' populations.
    This is not the same as averaging the members' rates
    (which would give small members the same weight as large ones).

    Members without a valid population are excluded entirely
    (both their counts and their population).

    Parameters
    ----------
    weekly
        Weekly counts, indexed by (at least) `region_level`

    group_membership_predicate
        Function which returns `True` for regions which are in the group

    populations
        Population of each region

    group_name
        Name of the group, used as the region in the output

    count_columns
        Columns to consolidate

    region_level
        Level of `weekly`'s index which holds the region

    Returns
    -------
    :
        Consolidated counts and rates,
        with the same index levels as `weekly`

    Raises
    ------
    MissingPopulationError
        None of the group's members in `weekly` has a valid population
    """
    assert_has_index_levels(weekly, [region_level])

    regions = weekly.index.get_level_values(region_level)
    members = [r for r in regions.unique() if group_membership_predicate(r)]
    valid = get_valid_populations(populations)
    members_with_population = [r for r in members if r in valid.index]

    excluded = sorted(set(members) - set(members_with_population))
    if excluded:
        LOGGER.warning(
            "Excluding members of %s without a valid population: %s",
            group_name,
            excluded,
        )

    if not members_with_population:
        raise MissingPopulationError(members if members else [group_name])

    LOGGER.info(
        "Consolidating %d regions into %s", len(members_with_population), group_name
    )
    member_counts = weekly.loc[
        regions.isin(members_with_population), list(count_columns)
    ]
    summed = groupby_except(member_counts, region_level).sum(min_count=1)
    summed = assignlevel(summed, **{region_level: group_name}).reorder_levels(
        weekly.index.names
    )

    group_population = pd.Series(
        {group_name: valid.loc[members_with_population].sum()}, name="population"
    )
    res = add_per_1000_rates(
        summed,
        group_population,
        count_columns=count_columns,
        region_level=region_level,
        on_missing_population="raise",
    )

    return res


def get_top_regions(
    table: RegionTimeDataFrame,
    n: int,
    column: str = "new_cases",
    region_level: str = "region",
) -> list[str]:
    """
    Get the regions with the largest totals

    Parameters
    ----------
    table
        Data, indexed by (at least) `region_level`

    n
        Number of regions to return

    column
        Column to total

    region_level
        Level of the index which holds the region

    Returns
    -------
    :
        Up to `n` regions, largest total first.
        Ties are broken alphabetically.
    """
    totals = table[column].groupby(level=region_level).sum(min_count=1).dropna()
    totals = totals.sort_index().sort_values(ascending=False, kind="stable")

    return totals.index[:n].tolist()
