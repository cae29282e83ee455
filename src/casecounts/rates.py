"""
Normalisation of counts by population
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

import pandas as pd

from casecounts.assertions import assert_has_index_levels
from casecounts.exceptions import MissingPopulationError

LOGGER = logging.getLogger(__name__)

PER = 1000
"""
Rates are expressed per this many people
"""


def rate_column_name(count_column: str) -> str:
    """
    Get the name of the rate column for a given count column

    Parameters
    ----------
    count_column
        Name of the count column

    Returns
    -------
    :
        Name of the rate column

    Examples
    --------
    >>> rate_column_name("new_cases")
    'cases_per_1000'
    >>> rate_column_name("lagged_new_deaths")
    'lagged_deaths_per_1000'
    >>> rate_column_name("incidents")
    'incidents_per_1000'
    """
    return f"{count_column.replace('new_', '')}_per_{PER}"


def get_valid_populations(populations: pd.Series) -> pd.Series:
    """
    Get the populations which can be used to calculate rates

    Parameters
    ----------
    populations
        Population of each region

    Returns
    -------
    :
        Populations which are present and strictly positive
    """
    if not populations.index.is_unique:
        duplicated = populations.index[populations.index.duplicated()].unique()
        msg = (
            "Populations must be unique per region. "
            f"Duplicates: {duplicated.tolist()}"
        )
        raise ValueError(msg)

    res: pd.Series = populations[populations.gt(0) & populations.notnull()]

    return res


def get_regions_missing_population(
    regions: Iterable[str], populations: pd.Series
) -> list[str]:
    """
    Get the regions which have no valid population

    Parameters
    ----------
    regions
        Regions to check

    populations
        Population of each region

    Returns
    -------
    :
        Regions which are either not in `populations`
        or whose population is missing or not positive
    """
    valid = get_valid_populations(populations)

    return [r for r in regions if r not in valid.index]


def add_per_1000_rates(
    table: pd.DataFrame,
    populations: pd.Series,
    count_columns: Sequence[str],
    region_level: str = "region",
    on_missing_population: str = "warn",
) -> pd.DataFrame:
    """
    Add rates per 1000 people

    For each count column, `x`, the rate is `1000 * x / population`.
    Regions without a valid population get missing rates
    (never zero, never infinity).

    Parameters
    ----------
    table
        Table of counts, with `region_level` in its index

    populations
        Population of each region

    count_columns
        Columns of `table` to normalise

    region_level
        Level of `table`'s index which holds the region

    on_missing_population
        What to do if some regions have no valid population.

        - "raise": raise a [MissingPopulationError][casecounts.exceptions.MissingPopulationError]
        - "warn": log a warning
        - "ignore": do nothing

    Returns
    -------
    :
        Copy of `table` with a `population` column
        and a rate column (see [rate_column_name][(m).]) for each count column

    Raises
    ------
    MissingPopulationError
        Some regions have no valid population and `on_missing_population` is "raise"
    """  # noqa: E501
    assert_has_index_levels(table, [region_level])

    regions = table.index.get_level_values(region_level)
    missing = get_regions_missing_population(regions.unique(), populations)
    if missing:
        if on_missing_population == "raise":
            raise MissingPopulationError(missing)

        if on_missing_population == "warn":
            LOGGER.warning(str(MissingPopulationError(missing)))

        elif on_missing_population != "ignore":
            raise NotImplementedError(on_missing_population)

    valid = get_valid_populations(populations)
    population = pd.Series(
        regions.map(valid).astype(float), index=table.index, name="population"
    )

    res = table.copy()
    res["population"] = population
    for count_column in count_columns:
        res[rate_column_name(count_column)] = (
            PER * res[count_column].astype(float) / population
        )

    return res
