"""
Definition of the COVID-19 report

The report uses the Johns Hopkins University CSSE time series
of cumulative confirmed cases and deaths,
for countries (the 'global' files) and for US counties (the 'US' files).
"""

from __future__ import annotations

import logging
from typing import Optional

import pandas as pd
from attrs import define, field

from casecounts.aggregation import (
    COUNT_COLUMNS,
    calculate_weekly_aggregates,
    consolidate,
    get_top_regions,
)
from casecounts.config import ReportConfig
from casecounts.exceptions import MissingPopulationError
from casecounts.ingest import load_table
from casecounts.plotting import ChartSpec, render
from casecounts.regions import get_group_members, is_member_of
from casecounts.reporting import Report, ReportSection, describe_fit, fit_or_none
from casecounts.reshape import outer_join, wide_to_long
from casecounts.sources import (
    JHU_GLOBAL_CASES_FILENAME,
    JHU_GLOBAL_DEATHS_FILENAME,
    JHU_GLOBAL_ID_COLUMNS,
    JHU_UID_LOOKUP_COLUMNS,
    JHU_UID_LOOKUP_FILENAME,
    JHU_UID_LOOKUP_URL,
    JHU_US_CASES_FILENAME,
    JHU_US_CASES_ID_COLUMNS,
    JHU_US_DEATHS_FILENAME,
    JHU_US_DEATHS_ID_COLUMNS,
    get_jhu_time_series_url,
)
from casecounts.trend import TrendFit, fit_trend, to_ordinal

LOGGER = logging.getLogger(__name__)

LONG_KEYS: tuple[str, str, str] = ("sub_region", "region", "date")
"""
Keys of the long COVID tables
"""

BIAS_DISCUSSION = """\
Confirmed cases depend on testing.
Testing capacity and policy differed between countries and changed over time,
so cases per 1000 people are not directly comparable across countries
(or even across time within one country).
Deaths are less sensitive to testing, but attribution of deaths to COVID-19
also differed between jurisdictions.
Reporting lags and batch corrections appear as spikes and negative weekly values,
which we keep rather than smooth away.
Finally, the choice of countries shown (largest totals, selected groups)
is ours and emphasises large outbreaks over small ones."""


@define
class CovidInputs:
    """
    Raw inputs to the COVID report
    """

    global_cases: pd.DataFrame
    """
    Cumulative confirmed cases by country (and province), wide format
    """

    global_deaths: pd.DataFrame
    """
    Cumulative deaths by country (and province), wide format
    """

    us_cases: pd.DataFrame
    """
    Cumulative confirmed cases by US county, wide format
    """

    us_deaths: pd.DataFrame
    """
    Cumulative deaths by US county, wide format (including county populations)
    """

    uid_lookup: pd.DataFrame
    """
    Lookup table of locations, including their populations
    """

    @classmethod
    def load(cls, config: ReportConfig) -> CovidInputs:
        """
        Load the inputs

        Parameters
        ----------
        config
            Configuration which defines where and how to load from

        Returns
        -------
        :
            Loaded inputs
        """
        fetch_kwargs = dict(
            timeout=config.http_timeout, n_attempts=config.n_fetch_attempts
        )

        def load_time_series(
            filename: str, id_columns: tuple[str, ...]
        ) -> pd.DataFrame:
            return load_table(
                config.get_source(filename, get_jhu_time_series_url(filename)),
                expected_columns=id_columns,
                table_name=filename,
                **fetch_kwargs,
            )

        return cls(
            global_cases=load_time_series(
                JHU_GLOBAL_CASES_FILENAME, JHU_GLOBAL_ID_COLUMNS
            ),
            global_deaths=load_time_series(
                JHU_GLOBAL_DEATHS_FILENAME, JHU_GLOBAL_ID_COLUMNS
            ),
            us_cases=load_time_series(JHU_US_CASES_FILENAME, JHU_US_CASES_ID_COLUMNS),
            us_deaths=load_time_series(
                JHU_US_DEATHS_FILENAME, JHU_US_DEATHS_ID_COLUMNS
            ),
            uid_lookup=load_table(
                config.get_source(JHU_UID_LOOKUP_FILENAME, JHU_UID_LOOKUP_URL),
                expected_columns=JHU_UID_LOOKUP_COLUMNS,
                table_name=JHU_UID_LOOKUP_FILENAME,
                **fetch_kwargs,
            ),
        )


def global_to_long(
    global_cases: pd.DataFrame, global_deaths: pd.DataFrame
) -> pd.DataFrame:
    """
    Convert the global time series to a long table

    Parameters
    ----------
    global_cases
        Cumulative confirmed cases, wide format

    global_deaths
        Cumulative deaths, wide format

    Returns
    -------
    :
        Long table with columns `sub_region` (province), `region` (country),
        `date`, `cases` and `deaths`
    """
    renames = {"Province/State": "sub_region", "Country/Region": "region"}
    longs = [
        wide_to_long(
            wide,
            id_columns=list(renames),
            value_name=value_name,
            drop_columns=["Lat", "Long"],
        ).rename(columns=renames)
        for wide, value_name in ((global_cases, "cases"), (global_deaths, "deaths"))
    ]

    return outer_join(*longs, keys=LONG_KEYS)


def us_to_long(us_cases: pd.DataFrame, us_deaths: pd.DataFrame) -> pd.DataFrame:
    """
    Convert the US time series to a long table

    Parameters
    ----------
    us_cases
        Cumulative confirmed cases by county, wide format

    us_deaths
        Cumulative deaths by county, wide format

    Returns
    -------
    :
        Long table with columns `sub_region` (county's combined key),
        `region` (state), `date`, `cases` and `deaths`
    """
    renames = {"Combined_Key": "sub_region", "Province_State": "region"}
    longs = []
    for wide, id_columns, value_name in (
        (us_cases, JHU_US_CASES_ID_COLUMNS, "cases"),
        (us_deaths, JHU_US_DEATHS_ID_COLUMNS, "deaths"),
    ):
        longs.append(
            wide_to_long(
                wide,
                id_columns=list(renames),
                value_name=value_name,
                drop_columns=[c for c in id_columns if c not in renames],
            ).rename(columns=renames)
        )

    return outer_join(*longs, keys=LONG_KEYS)


def get_country_populations(uid_lookup: pd.DataFrame) -> pd.Series:
    """
    Get the population of each country

    Parameters
    ----------
    uid_lookup
        JHU's UID lookup table

    Returns
    -------
    :
        Population of each country, from the lookup table's country-level rows
        (i.e. rows without a province).
        Populations which the lookup table doesn't provide are missing.
    """
    country_level = uid_lookup.loc[uid_lookup["Province_State"].isnull()]
    duplicated = country_level["Country_Region"].duplicated()
    if duplicated.any():
        LOGGER.warning(
            "Multiple country-level rows, keeping the first for: %s",
            sorted(country_level.loc[duplicated, "Country_Region"].unique()),
        )
        country_level = country_level.loc[~duplicated]

    res = country_level.set_index("Country_Region")["Population"].astype(float)
    res.index.name = "region"
    res.name = "population"

    return res


def get_us_state_populations(us_deaths: pd.DataFrame) -> pd.Series:
    """
    Get the population of each US state

    Parameters
    ----------
    us_deaths
        JHU's US deaths time series, which includes each county's population

    Returns
    -------
    :
        Population of each state, the sum of its counties' populations
    """
    res = (
        us_deaths.groupby("Province_State")["Population"]
        .sum(min_count=1)
        .astype(float)
    )
    res.index.name = "region"
    res.name = "population"

    return res


@define
class CovidReportResult:
    """
    Result of running [CovidReport][(m).]
    """

    countries_weekly: pd.DataFrame
    """
    Weekly aggregates by country
    """

    us_states_weekly: pd.DataFrame
    """
    Weekly aggregates by US state
    """

    consolidated: pd.DataFrame
    """
    Weekly aggregates by geopolitical group
    """

    trends: dict[str, Optional[TrendFit]]
    """
    Trend fits, `None` where there was too little data to fit
    """

    report: Report
    """
    Narrative report
    """


@define
class CovidReport:
    """
    COVID-19 weekly cases and deaths per 1000 people
    """

    config: ReportConfig = field(factory=ReportConfig)
    """
    Configuration of the report
    """

    render_figures: bool = True
    """
    Should figures be rendered?

    Rendering requires the optional plotting dependencies.
    """

    def __call__(self, inputs: Optional[CovidInputs] = None) -> CovidReportResult:
        """
        Generate the report

        Parameters
        ----------
        inputs
            Inputs to use. If `None`, they are loaded using `self.config`.

        Returns
        -------
        :
            Report and the tables behind it
        """
        if inputs is None:
            inputs = CovidInputs.load(self.config)

        aggregate_kwargs = dict(
            lag=self.config.lag,
            week_start=self.config.week_start,
            on_missing_population=self.config.on_missing_population,
        )

        country_populations = get_country_populations(inputs.uid_lookup)
        countries_weekly = calculate_weekly_aggregates(
            global_to_long(inputs.global_cases, inputs.global_deaths),
            country_populations,
            **aggregate_kwargs,
        )
        us_states_weekly = calculate_weekly_aggregates(
            us_to_long(inputs.us_cases, inputs.us_deaths),
            get_us_state_populations(inputs.us_deaths),
            **aggregate_kwargs,
        )

        consolidated_l = []
        for group in self.config.consolidation_groups:
            try:
                consolidated_l.append(
                    consolidate(
                        countries_weekly,
                        group_membership_predicate=is_member_of(group),
                        populations=country_populations,
                        group_name=group,
                        count_columns=COUNT_COLUMNS,
                    )
                )
            except MissingPopulationError as exc:
                LOGGER.warning("Not consolidating %s. %s", group, exc)

        if consolidated_l:
            consolidated = pd.concat(consolidated_l)
        else:
            consolidated = countries_weekly.iloc[:0]

        trends = self._fit_trends(countries_weekly, consolidated)
        report = self._build_report(
            countries_weekly=countries_weekly,
            us_states_weekly=us_states_weekly,
            consolidated=consolidated,
            trends=trends,
        )

        return CovidReportResult(
            countries_weekly=countries_weekly,
            us_states_weekly=us_states_weekly,
            consolidated=consolidated,
            trends=trends,
            report=report,
        )

    def _fit_trends(
        self, countries_weekly: pd.DataFrame, consolidated: pd.DataFrame
    ) -> dict[str, Optional[TrendFit]]:
        trends: dict[str, Optional[TrendFit]] = {}
        for group, gdf in consolidated.groupby(level="region", sort=False):
            trends[str(group)] = fit_or_none(
                str(group),
                fit_trend,
                x=pd.Series(
                    to_ordinal(
                        gdf.index.get_level_values("year_week"), freq="week"
                    ).to_numpy(),
                    index=gdf.index,
                ),
                y=gdf["cases_per_1000"],
                x_name="week",
                y_name="cases_per_1000",
            )

        trends["deaths_vs_lagged_cases"] = fit_or_none(
            "deaths vs lagged cases",
            fit_trend,
            x=countries_weekly["lagged_cases_per_1000"],
            y=countries_weekly["deaths_per_1000"],
            x_name="lagged_cases_per_1000",
            y_name="deaths_per_1000",
        )

        return trends

    def _build_report(
        self,
        countries_weekly: pd.DataFrame,
        us_states_weekly: pd.DataFrame,
        consolidated: pd.DataFrame,
        trends: dict[str, Optional[TrendFit]],
    ) -> Report:
        top_countries = get_top_regions(countries_weekly, n=self.config.top_n_regions)
        top_states = get_top_regions(us_states_weekly, n=self.config.top_n_regions)
        lag = self.config.lag

        sections = [
            ReportSection(
                title=(
                    "Weekly cases per 1000 people, "
                    f"top {len(top_countries)} countries"
                ),
                body=(
                    "Countries with the largest total number of confirmed cases: "
                    f"{', '.join(top_countries)}. "
                    "Weekly totals are the sum of daily increases in cumulative cases. "
                    "Negative weeks are corrections by the reporting authority."
                ),
                figure=self._render(
                    countries_weekly,
                    top_countries,
                    ChartSpec(
                        kind="line",
                        x="year_week",
                        y="cases_per_1000",
                        hue="region",
                        title="Weekly cases per 1000 people",
                        xlabel="Week",
                    ),
                ),
            ),
        ]

        group_lines = []
        for group in self.config.consolidation_groups:
            members = ", ".join(get_group_members(group))
            description = describe_fit(
                trends.get(group), x_name="week", y_name="cases per 1000"
            )
            group_lines.append(f"- {group} ({members}): {description}")

        group_fits = [
            fit.predicted
            for group, fit in trends.items()
            if fit is not None and group in self.config.consolidation_groups
        ]
        consolidated_plot = consolidated
        if group_fits:
            consolidated_plot = consolidated.assign(predicted=pd.concat(group_fits))

        sections.append(
            ReportSection(
                title="Weekly cases per 1000 people, geopolitical groups",
                body=(
                    "Counts are summed over each group's members "
                    "and then divided by the group's total population, "
                    "so large members carry more weight than small ones. "
                    "Members without a known population are excluded.\n\n"
                    "Linear trends (dashed):\n\n" + "\n".join(group_lines)
                ),
                figure=self._render(
                    consolidated_plot,
                    None,
                    ChartSpec(
                        kind="line",
                        x="year_week",
                        y="cases_per_1000",
                        hue="region",
                        title="Weekly cases per 1000 people by group",
                        xlabel="Week",
                        fit_line="predicted" if group_fits else None,
                    ),
                ),
            )
        )

        sections.append(
            ReportSection(
                title=f"Weekly cases per 1000 people, top {len(top_states)} US states",
                body=(
                    "State populations are the sum of their counties' populations. "
                    "Cases which JHU could not assign to a county "
                    "are included in their state's totals."
                ),
                figure=self._render(
                    us_states_weekly,
                    top_states,
                    ChartSpec(
                        kind="line",
                        x="year_week",
                        y="cases_per_1000",
                        col="region",
                        col_wrap=5,
                        title="Weekly cases per 1000 people by US state",
                        xlabel="Week",
                    ),
                ),
            )
        )

        deaths_fit = trends["deaths_vs_lagged_cases"]
        deaths_plot = countries_weekly
        if deaths_fit is not None:
            deaths_plot = countries_weekly.assign(predicted=deaths_fit.predicted)

        sections.append(
            ReportSection(
                title=f"Deaths against cases over the previous {lag} days",
                body=(
                    f"Each point is a country-week. The x-axis is the increase in "
                    f"cumulative cases over {lag} days (summed over the week), "
                    "per 1000 people, "
                    "the y-axis is the number of deaths that week per 1000 people.\n\n"
                    f"Linear fit: "
                    + describe_fit(
                        deaths_fit,
                        x_name="lagged cases per 1000",
                        y_name="deaths per 1000",
                    )
                ),
                figure=self._render(
                    deaths_plot,
                    None,
                    ChartSpec(
                        kind="point",
                        x="lagged_cases_per_1000",
                        y="deaths_per_1000",
                        title="Weekly deaths against lagged cases",
                        xlabel=f"Cases over the previous {lag} days per 1000 people",
                        ylabel="Deaths per 1000 people",
                        fit_line="predicted" if deaths_fit is not None else None,
                    ),
                ),
            )
        )

        sections.append(ReportSection(title="Sources of bias", body=BIAS_DISCUSSION))

        return Report(title="COVID-19 cases and deaths", sections=sections)

    def _render(
        self,
        weekly: pd.DataFrame,
        regions: Optional[list[str]],
        chart_spec: ChartSpec,
    ) -> Optional[bytes]:
        if not self.render_figures:
            return None

        if regions is not None:
            weekly = weekly.loc[weekly.index.get_level_values("region").isin(regions)]

        if weekly.empty:
            LOGGER.warning("No data to plot for %r", chart_spec.title)
            return None

        return render(weekly.reset_index(), chart_spec)
