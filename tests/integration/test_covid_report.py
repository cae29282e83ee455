"""
Integration tests of `casecounts.covid`
"""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd
import pytest

from casecounts.aggregation import calculate_weekly_aggregates
from casecounts.config import WEEK_START_SUNDAY, ReportConfig
from casecounts.covid import (
    CovidInputs,
    CovidReport,
    get_country_populations,
    global_to_long,
)
from casecounts.exceptions import FetchError
from casecounts.sources import (
    JHU_GLOBAL_CASES_FILENAME,
    JHU_US_CASES_FILENAME,
    JHU_US_DEATHS_FILENAME,
)
from casecounts.testing import (
    assert_frame_equal,
    find_differences,
    write_jhu_like_sources,
)

REGIONS = {
    "France": (None, "Reunion"),
    "Germany": (None,),
    "Denmark": (None,),
    "Norway": (None,),
    "Albania": (None,),
}

POPULATIONS = {
    "France": 65_273_511,
    "Germany": 83_783_942,
    "Denmark": 5_792_202,
    "Norway": 5_421_241,
    "Albania": None,
}

COUNTIES = {
    "Alabama": ("Autauga", "Baldwin"),
    "Wyoming": ("Albany",),
}


@pytest.fixture
def sources(report_config):
    return write_jhu_like_sources(
        report_config.source_dir,
        regions=REGIONS,
        populations=POPULATIONS,
        counties=COUNTIES,
    )


@pytest.fixture
def config(report_config):
    return ReportConfig(
        output_dir=report_config.output_dir,
        source_dir=report_config.source_dir,
        n_fetch_attempts=1,
        consolidation_groups=("G7", "Nordic countries"),
    )


def test_covid_report(sources, config, caplog):
    with caplog.at_level(logging.WARNING):
        res = CovidReport(config=config, render_figures=False)()

    countries = res.countries_weekly
    assert countries.index.names == ["region", "year_week"]
    assert set(countries.index.get_level_values("region")) == set(REGIONS)
    # Weeks start on Sunday
    assert (
        countries.index.get_level_values("year_week").dayofweek == WEEK_START_SUNDAY
    ).all()

    # Weekly new cases add up to the final cumulative count
    # (including all of a country's provinces)
    global_cases = sources[JHU_GLOBAL_CASES_FILENAME]
    for country in REGIONS:
        exp = global_cases.loc[
            global_cases["Country/Region"] == country
        ].iloc[:, -1].sum()
        assert countries.loc[country, "new_cases"].sum() == exp

    # Unknown population gives missing rates (and a warning), not zeros
    assert countries.loc["Albania", "cases_per_1000"].isnull().all()
    assert countries.loc["France", "cases_per_1000"].notnull().all()
    assert "['Albania']" in caplog.text

    # Groups are summed before dividing
    consolidated = res.consolidated
    assert set(consolidated.index.get_level_values("region")) == {
        "G7",
        "Nordic countries",
    }
    g7 = consolidated.loc["G7"]
    # The members' first weeks can differ
    exp_g7_cases = countries.loc["France", "new_cases"].add(
        countries.loc["Germany", "new_cases"], fill_value=0
    )
    pd.testing.assert_series_equal(
        g7["new_cases"], exp_g7_cases, check_names=False, check_dtype=False
    )
    exp_g7_rates = pd.DataFrame(
        {
            "cases_per_1000": 1000
            * exp_g7_cases
            / (POPULATIONS["France"] + POPULATIONS["Germany"])
        }
    )
    differences = find_differences(g7[["cases_per_1000"]], exp_g7_rates)
    assert differences.empty, differences

    assert res.trends["G7"] is not None
    assert res.trends["Nordic countries"] is not None
    assert res.trends["deaths_vs_lagged_cases"] is not None

    us_states = res.us_states_weekly
    assert set(us_states.index.get_level_values("region")) == set(COUNTIES)
    np.testing.assert_allclose(
        us_states.loc["Alabama", "population"], 2 * 50_000.0
    )
    us_cases = sources[JHU_US_CASES_FILENAME]
    assert us_states.loc["Alabama", "new_cases"].sum() == (
        us_cases.loc[us_cases["Province_State"] == "Alabama"].iloc[:, -1].sum()
    )

    titles = [section.title for section in res.report.sections]
    assert titles[-1] == "Sources of bias"
    assert "Weekly cases per 1000 people, geopolitical groups" in titles
    assert all(section.figure is None for section in res.report.sections)
    assert "Insufficient data" not in res.report.to_markdown()


def test_covid_report_from_inputs(sources, config):
    inputs = CovidInputs.load(config)

    res = CovidReport(config=config, render_figures=False)(inputs)

    exp = calculate_weekly_aggregates(
        global_to_long(inputs.global_cases, inputs.global_deaths),
        get_country_populations(inputs.uid_lookup),
        lag=config.lag,
        week_start=config.week_start,
        on_missing_population="ignore",
    )
    assert_frame_equal(res.countries_weekly, exp)


def test_covid_report_group_without_members(sources, report_config, caplog):
    config = ReportConfig(
        source_dir=report_config.source_dir,
        consolidation_groups=("BRICS", "G7"),
    )

    with caplog.at_level(logging.WARNING):
        res = CovidReport(config=config, render_figures=False)()

    assert "Not consolidating BRICS" in caplog.text
    assert set(res.consolidated.index.get_level_values("region")) == {"G7"}
    assert res.trends.get("BRICS") is None
    markdown = res.report.to_markdown()
    assert "- BRICS (Brazil, China, India, Russia, South Africa): Insufficient" in (
        markdown
    )


def test_covid_report_missing_source(sources, config):
    (config.source_dir / JHU_US_DEATHS_FILENAME).unlink()

    with pytest.raises(FetchError, match=JHU_US_DEATHS_FILENAME):
        CovidReport(config=config, render_figures=False)()


def test_covid_report_with_figures(sources, config):
    pytest.importorskip("seaborn")

    res = CovidReport(config=config)()

    figures = [s.figure for s in res.report.sections if s.figure is not None]
    # Every section except the discussion has a figure
    assert len(figures) == len(res.report.sections) - 1
    assert all(f.startswith(b"\x89PNG") for f in figures)
