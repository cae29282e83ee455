"""
Grouping of incident records into cohorts

Counts are kept as pandas' nullable integer dtype (`Int64`)
so that a combination which was never observed stays missing (`<NA>`)
rather than becoming zero when tables are aligned.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import pandas as pd

from casecounts.assertions import assert_has_columns

LOGGER = logging.getLogger(__name__)

NYPD_PERPETRATOR_COLUMNS: tuple[str, str] = ("PERP_RACE", "PERP_AGE_GROUP")
"""
Columns which define a perpetrator cohort in the NYPD data
"""

NYPD_VICTIM_COLUMNS: tuple[str, str] = ("VIC_RACE", "VIC_AGE_GROUP")
"""
Columns which define a victim cohort in the NYPD data
"""


def count_by_cohort(
    incidents: pd.DataFrame,
    area_column: str,
    category_a_column: str,
    category_b_column: str,
    names: Sequence[str] = ("borough", "race", "age_group"),
    count_name: str = "incidents",
) -> pd.Series:
    """
    Count incidents by area and two categories

    Missing category values are kept as their own cohort.
    Dropping them would hide how much of the data is unknown.

    Parameters
    ----------
    incidents
        Incident records (one row per record)

    area_column
        Column which holds the area

    category_a_column
        Column which holds the first category

    category_b_column
        Column which holds the second category

    names
        Names to give the index levels in the output

    count_name
        Name of the output

    Returns
    -------
    :
        Counts, indexed by `names`.
        Only observed combinations are included.
    """
    columns = [area_column, category_a_column, category_b_column]
    assert_has_columns(incidents, columns, table_name="incident table")
    if len(names) != len(columns):
        msg = f"`names` must have {len(columns)} elements, received {names=}"
        raise ValueError(msg)

    res = (
        incidents.groupby(columns, dropna=False, sort=True, observed=True)
        .size()
        .astype("Int64")
        .rename(count_name)
    )
    res.index = res.index.set_names(list(names))

    return res


def compare_cohorts(
    perpetrator_counts: pd.Series,
    victim_counts: pd.Series,
    names: tuple[str, str] = ("perpetrators", "victims"),
) -> pd.DataFrame:
    """
    Compare two sets of cohort counts side by side

    Parameters
    ----------
    perpetrator_counts
        Counts for the first set of cohorts

    victim_counts
        Counts for the second set of cohorts,
        with the same index levels as `perpetrator_counts`

    names
        Names of the columns in the output

    Returns
    -------
    :
        Comparison table, with one row per key in either input.
        If a key is only in one of the inputs,
        the other column is missing (`<NA>`), not zero.

    Raises
    ------
    ValueError
        The inputs do not have the same index levels
    """
    if list(perpetrator_counts.index.names) != list(victim_counts.index.names):
        msg = (
            "Both inputs must have the same index levels. "
            f"{perpetrator_counts.index.names=} {victim_counts.index.names=}"
        )
        raise ValueError(msg)

    res = pd.concat(
        [perpetrator_counts.rename(names[0]), victim_counts.rename(names[1])],
        axis="columns",
        join="outer",
    ).astype("Int64")
    res = res.sort_index()

    return res


def count_perpetrator_victim_cohorts(
    incidents: pd.DataFrame, area_column: str = "BORO"
) -> pd.DataFrame:
    """
    Compare perpetrator and victim cohorts in the NYPD data

    Parameters
    ----------
    incidents
        Cleaned NYPD incident records

    area_column
        Column which holds the area

    Returns
    -------
    :
        Perpetrator and victim counts by borough, race and age group
    """
    perpetrators = count_by_cohort(incidents, area_column, *NYPD_PERPETRATOR_COLUMNS)
    victims = count_by_cohort(incidents, area_column, *NYPD_VICTIM_COLUMNS)

    res = compare_cohorts(perpetrators, victims)
    LOGGER.info("Compared %d perpetrator/victim cohorts", res.shape[0])

    return res


def share_by_area(
    incidents: pd.DataFrame,
    area_column: str = "BORO",
    flag_column: str = "STATISTICAL_MURDER_FLAG",
) -> pd.DataFrame:
    """
    Calculate the share of flagged incidents in each area

    Parameters
    ----------
    incidents
        Incident records

    area_column
        Column which holds the area

    flag_column
        Column which holds the flag.
        Strings are interpreted case-insensitively ("true"/"false"),
        missing flags are excluded from the share.

    Returns
    -------
    :
        Table indexed by area with columns
        `incidents`, `flagged` and `share`
    """
    assert_has_columns(incidents, [area_column, flag_column], table_name="records")

    flags = incidents[flag_column]
    if not pd.api.types.is_bool_dtype(flags):
        flags = (
            flags.astype("string")
            .str.strip()
            .str.lower()
            .map({"true": True, "false": False, "y": True, "n": False})
            .astype("boolean")
        )

    grouped = flags.groupby(incidents[area_column], sort=True)
    res = pd.DataFrame(
        {
            "incidents": grouped.size(),
            "flagged": grouped.sum(),
            "known": grouped.count(),
        }
    )
    res["share"] = res["flagged"] / res["known"].where(res["known"] > 0)
    res = res.drop(columns="known")
    res.index.name = area_column

    return res


def count_by_hour(
    incidents: pd.DataFrame, time_column: str = "occurred_at"
) -> pd.Series:
    """
    Count incidents by hour of the day

    Parameters
    ----------
    incidents
        Incident records

    time_column
        Column which holds the time of each incident

    Returns
    -------
    :
        Counts for hours 0 to 23.
        Hours with no incidents have a count of zero
        (every hour of the day is a valid, observable cohort).
    """
    assert_has_columns(incidents, [time_column], table_name="records")

    hours = pd.DatetimeIndex(incidents[time_column]).dropna().hour
    res = (
        pd.Series(hours, name="incidents")
        .value_counts()
        .reindex(range(24), fill_value=0)
        .rename("incidents")
    )
    res.index.name = "hour"

    return res
