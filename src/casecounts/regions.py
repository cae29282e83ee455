"""
Geopolitical groupings of regions

The region names follow the JHU CSSE conventions
(e.g. "US", "Korea, South", "Czechia").
If a member is not in the data, it simply doesn't contribute
to the consolidated group.
"""

from __future__ import annotations

from collections.abc import Iterable

import pandas as pd

from casecounts.exceptions import UnrecognisedValueError
from casecounts.typing import RegionPredicate

GROUPS: dict[str, tuple[str, ...]] = {
    "G7": (
        "Canada",
        "France",
        "Germany",
        "Italy",
        "Japan",
        "United Kingdom",
        "US",
    ),
    "European Union": (
        "Austria",
        "Belgium",
        "Bulgaria",
        "Croatia",
        "Cyprus",
        "Czechia",
        "Denmark",
        "Estonia",
        "Finland",
        "France",
        "Germany",
        "Greece",
        "Hungary",
        "Ireland",
        "Italy",
        "Latvia",
        "Lithuania",
        "Luxembourg",
        "Malta",
        "Netherlands",
        "Poland",
        "Portugal",
        "Romania",
        "Slovakia",
        "Slovenia",
        "Spain",
        "Sweden",
    ),
    "Nordic countries": (
        "Denmark",
        "Finland",
        "Iceland",
        "Norway",
        "Sweden",
    ),
    "BRICS": (
        "Brazil",
        "China",
        "India",
        "Russia",
        "South Africa",
    ),
}
"""
Members of each geopolitical group we know about
"""


def get_group_members(group: str) -> tuple[str, ...]:
    """
    Get the members of a geopolitical group

    Parameters
    ----------
    group
        Name of the group

    Returns
    -------
    :
        Regions which are members of `group`

    Raises
    ------
    UnrecognisedValueError
        `group` is not a known group
    """
    try:
        return GROUPS[group]
    except KeyError as exc:
        raise UnrecognisedValueError(
            unrecognised_value=group, name="group", known_values=list(GROUPS)
        ) from exc


def is_member_of(group: str) -> RegionPredicate:
    """
    Get a predicate which checks membership of a geopolitical group

    Parameters
    ----------
    group
        Name of the group

    Returns
    -------
    :
        Function which returns `True` if a region is a member of `group`

    Examples
    --------
    >>> in_g7 = is_member_of("G7")
    >>> in_g7("Japan")
    True
    >>> in_g7("Brazil")
    False
    """
    members = frozenset(get_group_members(group))

    def predicate(region: str) -> bool:
        return region in members

    return predicate


def select_regions(
    indf: pd.DataFrame, regions: Iterable[str], region_level: str = "region"
) -> pd.DataFrame:
    """
    Select data for the given regions

    Parameters
    ----------
    indf
        Data from which to select, indexed by (at least) `region_level`

    regions
        Regions to select

    region_level
        Level of the index which holds the region

    Returns
    -------
    :
        Data for `regions` only

    Raises
    ------
    UnrecognisedValueError
        One of `regions` is not in `indf`
    """
    regions = list(regions)
    available = indf.index.get_level_values(region_level).unique()
    for region in regions:
        if region not in available:
            raise UnrecognisedValueError(
                unrecognised_value=region,
                name=region_level,
                known_values=available.tolist(),
            )

    res: pd.DataFrame = indf.loc[
        indf.index.get_level_values(region_level).isin(regions)
    ]

    return res
