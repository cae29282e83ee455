"""
Code to support our tests

This is here, rather than in our `tests` directory
because of the issues that come
when you turn your tests into a package using `__init__.py` files
(for details, see https://docs.pytest.org/en/7.1.x/explanation/goodpractices.html#choosing-an-import-mode).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, Optional

import numpy as np
import pandas as pd
from pandas_indexing.core import uniquelevel

from casecounts.cleaning import NYPD_AGE_GROUPS, NYPD_RACES, NYPD_SEXES
from casecounts.sources import (
    JHU_GLOBAL_CASES_FILENAME,
    JHU_GLOBAL_DEATHS_FILENAME,
    JHU_UID_LOOKUP_FILENAME,
    JHU_US_CASES_FILENAME,
    JHU_US_DEATHS_FILENAME,
    NYC_BOROUGH_POPULATION,
    NYPD_DATE_FORMAT,
    NYPD_SHOOTING_COLUMNS,
    NYPD_SHOOTING_FILENAME,
    NYPD_TIME_FORMAT,
)

DEFAULT_JHU_REGIONS: dict[str, tuple[Optional[str], ...]] = {
    "Albania": (None,),
    "Australia": ("New South Wales", "Victoria"),
}
"""
Default provinces of each country in JHU-like test data
"""

DEFAULT_JHU_US_COUNTIES: dict[str, tuple[str, ...]] = {
    "Alabama": ("Autauga", "Baldwin"),
    "Wyoming": ("Albany",),
}
"""
Default counties of each state in JHU-like test data
"""

DEFAULT_JHU_POPULATIONS: dict[str, Optional[float]] = {
    "Albania": 2_877_800,
    "Australia": 25_459_700,
}
"""
Default country populations in JHU-like test data
"""


def find_differences(
    res: pd.DataFrame,
    exp: pd.DataFrame,
    rtol: float = 1e-8,
    atol: float = 0.0,
) -> pd.DataFrame:
    """
    Find the values which differ between a result and its expected value

    Rows and columns are aligned first,
    so a row or column present in only one table shows up as a difference.
    Values which are missing in both tables are treated as equal.

    Parameters
    ----------
    res
        Result

    exp
        Expected value

    rtol
        Relative tolerance

    atol
        Absolute tolerance

    Returns
    -------
    :
        One row per differing value, with columns `res` and `exp`
        (empty if there are no differences)

    Examples
    --------
    >>> res = pd.DataFrame({"cases_per_1000": [1.0, 2.0]}, index=["a", "b"])
    >>> exp = pd.DataFrame({"cases_per_1000": [1.0, 2.5]}, index=["a", "b"])
    >>> find_differences(res, exp).to_dict("index")
    {('b', 'cases_per_1000'): {'res': 2.0, 'exp': 2.5}}
    """
    res_aligned, exp_aligned = res.align(exp)

    differences = []
    for column in res_aligned.columns:
        res_values = res_aligned[column].astype(float)
        exp_values = exp_aligned[column].astype(float)
        differs = ~np.isclose(
            res_values, exp_values, rtol=rtol, atol=atol, equal_nan=True
        )
        if differs.any():
            differences.append(
                pd.DataFrame(
                    {"res": res_values[differs], "exp": exp_values[differs]}
                ).set_index(pd.Index([column] * differs.sum()), append=True)
            )

    if not differences:
        return pd.DataFrame(columns=["res", "exp"], dtype=float)

    return pd.concat(differences)


def assert_frame_equal(
    res: pd.DataFrame, exp: pd.DataFrame, rtol: float = 1e-8, atol: float = 0.0
) -> None:
    """
    Assert that a table of results matches its expected value

    Index levels are compared first,
    so that a missing region or week is reported by name
    rather than as a shape mismatch.

    Parameters
    ----------
    res
        Result

    exp
        Expected value

    rtol
        Relative tolerance

    atol
        Absolute tolerance

    Raises
    ------
    AssertionError
        The tables differ
    """
    if set(res.index.names) != set(exp.index.names):
        msg = f"Index levels differ: {res.index.names=} {exp.index.names=}"
        raise AssertionError(msg)

    for level in exp.index.names:
        if level is None:
            continue

        only_res = uniquelevel(res, level).difference(uniquelevel(exp, level))
        only_exp = uniquelevel(exp, level).difference(uniquelevel(res, level))
        if not only_res.empty or not only_exp.empty:
            msg = (
                f"Values of {level!r} differ. "
                f"Only in the result: {only_res.tolist()}. "
                f"Only in the expected value: {only_exp.tolist()}."
            )
            raise AssertionError(msg)

    missing_columns = exp.columns.difference(res.columns).tolist()
    extra_columns = res.columns.difference(exp.columns).tolist()
    if missing_columns or extra_columns:
        msg = f"Columns differ: {missing_columns=} {extra_columns=}"
        raise AssertionError(msg)

    if isinstance(res.index, pd.MultiIndex):
        res = res.reorder_levels(exp.index.names)

    differences = find_differences(res, exp, rtol=rtol, atol=atol)
    if not differences.empty:
        msg = f"{differences.shape[0]} values differ:\n{differences}"
        raise AssertionError(msg)


def format_jhu_date(date: pd.Timestamp) -> str:
    """
    Format a date like the JHU time series column names

    Parameters
    ----------
    date
        Date to format

    Returns
    -------
    :
        Formatted date, e.g. "1/22/20"
    """
    return f"{date.month}/{date.day}/{date:%y}"


def get_cumulative_series(
    n_days: int, rng: np.random.Generator, max_daily: int = 50
) -> np.ndarray:
    """
    Get a random cumulative count series

    The series starts with a few days of zeros,
    like the real data before the first case.

    Parameters
    ----------
    n_days
        Number of days

    rng
        Random number generator

    max_daily
        Maximum daily increase

    Returns
    -------
    :
        Non-decreasing cumulative counts
    """
    daily = rng.integers(0, max_daily, size=n_days)
    daily[: min(3, n_days)] = 0

    return np.cumsum(daily)


def get_jhu_like_global_input(
    regions: Optional[Mapping[str, Iterable[Optional[str]]]] = None,
    n_days: int = 28,
    start: str = "2020-01-22",
    seed: int = 0,
) -> pd.DataFrame:
    """
    Get a table like the JHU global time series

    Parameters
    ----------
    regions
        Provinces of each country (`None` for a country-level row).
        If `None`, we use [DEFAULT_JHU_REGIONS][(m).].

    n_days
        Number of date columns

    start
        First date

    seed
        Seed for the random number generator

    Returns
    -------
    :
        Wide table of cumulative counts
    """
    if regions is None:
        regions = DEFAULT_JHU_REGIONS

    rng = np.random.default_rng(seed)
    dates = pd.date_range(start, periods=n_days, freq="D")
    rows = []
    for country, provinces in regions.items():
        for province in provinces:
            rows.append(
                [
                    province if province is not None else np.nan,
                    country,
                    rng.uniform(-90, 90),
                    rng.uniform(-180, 180),
                    *get_cumulative_series(n_days, rng),
                ]
            )

    res = pd.DataFrame(
        rows,
        columns=[
            "Province/State",
            "Country/Region",
            "Lat",
            "Long",
            *(format_jhu_date(d) for d in dates),
        ],
    )

    return res


def get_jhu_like_us_input(
    counties: Optional[Mapping[str, Iterable[str]]] = None,
    n_days: int = 28,
    start: str = "2020-01-22",
    seed: int = 0,
    with_population: bool = False,
    county_population: int = 50_000,
) -> pd.DataFrame:
    """
    Get a table like the JHU US time series

    Parameters
    ----------
    counties
        Counties of each state.
        If `None`, we use [DEFAULT_JHU_US_COUNTIES][(m).].

    n_days
        Number of date columns

    start
        First date

    seed
        Seed for the random number generator

    with_population
        Include a `Population` column, like the US deaths file

    county_population
        Population of each county (if `with_population`)

    Returns
    -------
    :
        Wide table of cumulative counts
    """
    if counties is None:
        counties = DEFAULT_JHU_US_COUNTIES

    rng = np.random.default_rng(seed)
    dates = pd.date_range(start, periods=n_days, freq="D")
    rows = []
    uid = 84001001
    for state, state_counties in counties.items():
        for county in state_counties:
            row = {
                "UID": uid,
                "iso2": "US",
                "iso3": "USA",
                "code3": 840,
                "FIPS": float(uid - 84000000),
                "Admin2": county,
                "Province_State": state,
                "Country_Region": "US",
                "Lat": rng.uniform(25, 50),
                "Long_": rng.uniform(-125, -65),
                "Combined_Key": f"{county}, {state}, US",
            }
            if with_population:
                row["Population"] = county_population

            row.update(
                zip(
                    (format_jhu_date(d) for d in dates),
                    get_cumulative_series(n_days, rng),
                )
            )
            rows.append(row)
            uid += 1

    return pd.DataFrame(rows)


def get_jhu_like_uid_lookup(
    populations: Optional[Mapping[str, Optional[float]]] = None,
) -> pd.DataFrame:
    """
    Get a table like the JHU UID lookup table

    Parameters
    ----------
    populations
        Population of each country (`None` if unknown).
        If `None`, we use [DEFAULT_JHU_POPULATIONS][(m).].

    Returns
    -------
    :
        Lookup table, with one country-level row per country
        and a province-level row for each country
        (which must be ignored when getting country populations)
    """
    if populations is None:
        populations = DEFAULT_JHU_POPULATIONS

    rows = []
    for i, (country, population) in enumerate(populations.items()):
        for province, scale in ((np.nan, 1.0), (f"{country} province", 0.1)):
            rows.append(
                {
                    "UID": i * 10 + (0 if scale == 1.0 else 1),
                    "iso2": country[:2].upper(),
                    "iso3": country[:3].upper(),
                    "code3": i,
                    "FIPS": np.nan,
                    "Admin2": np.nan,
                    "Province_State": province,
                    "Country_Region": country,
                    "Lat": 0.0,
                    "Long_": 0.0,
                    "Combined_Key": country
                    if scale == 1.0
                    else f"{province}, {country}",
                    "Population": (
                        np.nan if population is None else population * scale
                    ),
                }
            )

    return pd.DataFrame(rows)


def get_nypd_like_input(
    n_incidents: int = 200,
    start: str = "2020-01-01",
    end: str = "2021-12-31",
    seed: int = 0,
    extra_age_groups: Iterable[str] = ("1020", "224", "940", "UNKNOWN", "(null)"),
) -> pd.DataFrame:
    """
    Get a table like the NYPD shooting incident data

    Parameters
    ----------
    n_incidents
        Number of incidents

    start
        Earliest possible incident date

    end
        Latest possible incident date

    seed
        Seed for the random number generator

    extra_age_groups
        Raw age group tokens to include alongside the clean ones

    Returns
    -------
    :
        Incident table, with every column read as a string
        (like loading with `dtype=str`) and missing values as `NaN`
    """
    rng = np.random.default_rng(seed)

    def choice(values: Iterable[Any]) -> np.ndarray:
        return rng.choice(np.array(list(values), dtype=object), size=n_incidents)

    start_ts = pd.Timestamp(start)
    seconds = rng.integers(
        0, int((pd.Timestamp(end) - start_ts).total_seconds()), size=n_incidents
    )
    occurred_at = start_ts + pd.to_timedelta(seconds, unit="s")

    perp_age = choice([*NYPD_AGE_GROUPS, *extra_age_groups, np.nan])
    incident_keys = rng.integers(10_000_000, 300_000_000, size=n_incidents)
    res = pd.DataFrame(
        {
            "INCIDENT_KEY": [str(v) for v in incident_keys],
            "OCCUR_DATE": occurred_at.strftime(NYPD_DATE_FORMAT),
            "OCCUR_TIME": occurred_at.strftime(NYPD_TIME_FORMAT),
            "BORO": choice(NYC_BOROUGH_POPULATION),
            "PRECINCT": choice(range(1, 124)).astype(str),
            "JURISDICTION_CODE": choice(["0", "1", "2"]),
            "LOCATION_DESC": choice(["MULTI DWELL - PUBLIC HOUS", "(null)", np.nan]),
            "STATISTICAL_MURDER_FLAG": choice(["true", "false", "false", "false"]),
            "PERP_AGE_GROUP": perp_age,
            "PERP_SEX": choice([*NYPD_SEXES, "U", np.nan]),
            "PERP_RACE": choice([*NYPD_RACES, "UNKNOWN", np.nan]),
            "VIC_AGE_GROUP": choice([*NYPD_AGE_GROUPS, "UNKNOWN"]),
            "VIC_SEX": choice([*NYPD_SEXES, "U"]),
            "VIC_RACE": choice([*NYPD_RACES, "UNKNOWN"]),
            "X_COORD_CD": choice(["1006343", "1000082", "1019062"]),
            "Y_COORD_CD": choice(["234270", "186412", "251197"]),
            "Latitude": choice(["40.8", "40.6", "40.7"]),
            "Longitude": choice(["-73.9", "-74.0", "-73.8"]),
        }
    )

    return res[list(NYPD_SHOOTING_COLUMNS)]


def write_jhu_like_sources(
    source_dir: Path,
    regions: Optional[Mapping[str, Iterable[Optional[str]]]] = None,
    populations: Optional[Mapping[str, Optional[float]]] = None,
    counties: Optional[Mapping[str, Iterable[str]]] = None,
    n_days: int = 28,
) -> dict[str, pd.DataFrame]:
    """
    Write JHU-like snapshots of all the COVID report's inputs

    Parameters
    ----------
    source_dir
        Directory in which to write the files (named as upstream)

    regions
        Passed to [get_jhu_like_global_input][(m).]

    populations
        Passed to [get_jhu_like_uid_lookup][(m).]

    counties
        Passed to [get_jhu_like_us_input][(m).]

    n_days
        Number of days in each time series

    Returns
    -------
    :
        Written tables, keyed by file name
    """
    tables = {
        JHU_GLOBAL_CASES_FILENAME: get_jhu_like_global_input(
            regions, n_days=n_days, seed=0
        ),
        JHU_GLOBAL_DEATHS_FILENAME: get_jhu_like_global_input(
            regions, n_days=n_days, seed=1
        ),
        JHU_US_CASES_FILENAME: get_jhu_like_us_input(counties, n_days=n_days, seed=2),
        JHU_US_DEATHS_FILENAME: get_jhu_like_us_input(
            counties, n_days=n_days, seed=3, with_population=True
        ),
        JHU_UID_LOOKUP_FILENAME: get_jhu_like_uid_lookup(populations),
    }
    for filename, table in tables.items():
        table.to_csv(Path(source_dir) / filename, index=False)

    return tables


def write_nypd_like_source(source_dir: Path, **kwargs: Any) -> pd.DataFrame:
    """
    Write an NYPD-like snapshot of the shooting incident data

    Parameters
    ----------
    source_dir
        Directory in which to write the file (named as upstream)

    **kwargs
        Passed to [get_nypd_like_input][(m).]

    Returns
    -------
    :
        Written table
    """
    res = get_nypd_like_input(**kwargs)
    res.to_csv(Path(source_dir) / NYPD_SHOOTING_FILENAME, index=False)

    return res
