"""
Definition of the NYPD shooting incidents report

The report uses the NYPD Shooting Incident Data (Historic),
one row per shooting incident in New York City since 2006.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Optional

import pandas as pd
from attrs import define, field

from casecounts.aggregation import consolidate, count_by_period
from casecounts.assertions import assert_has_columns
from casecounts.cleaning import (
    NYPD_CLEANING_RULES,
    clean,
    find_unrecognised_values,
)
from casecounts.cohorts import (
    count_by_hour,
    count_perpetrator_victim_cohorts,
    share_by_area,
)
from casecounts.config import ReportConfig
from casecounts.ingest import load_table
from casecounts.plotting import ChartSpec, render
from casecounts.rates import add_per_1000_rates
from casecounts.reporting import Report, ReportSection, describe_fit, fit_or_none
from casecounts.sources import (
    NYC_BOROUGH_POPULATION,
    NYPD_DATE_FORMAT,
    NYPD_SHOOTING_COLUMNS,
    NYPD_SHOOTING_FILENAME,
    NYPD_SHOOTING_URL,
    NYPD_TIME_FORMAT,
)
from casecounts.trend import TrendFit, fit_interaction_trend, fit_trend, to_ordinal

LOGGER = logging.getLogger(__name__)

CITY_NAME = "NEW YORK CITY"
"""
Name given to the city-wide aggregate
"""

PERPETRATOR_COLUMNS: tuple[str, ...] = ("PERP_AGE_GROUP", "PERP_SEX", "PERP_RACE")
"""
Perpetrator columns whose share of missing values is reported
"""

MISSING_LABEL = "(missing)"
"""
Label used for missing categories in charts
"""

INSUFFICIENT_BY_BOROUGH = (
    "Insufficient data to fit a trend with a separate slope for each borough."
)
"""
Text shown in place of the per-borough trend when it cannot be fitted
"""

BIAS_DISCUSSION = """\
These are incidents recorded by the NYPD, not all shootings.
Where and how intensively an area is policed affects what gets recorded,
so differences between boroughs partly reflect policing.
Perpetrator demographics are only known when a suspect is identified,
which happens far more often in some incidents than others.
The missing perpetrator data is therefore unlikely to be missing at random,
and comparisons of perpetrator and victim cohorts should be read with this in mind.
Race and age group are recorded by officers, not self-reported.
Rates use the 2020 census population of each borough for every year,
which ignores population change over the period."""


def load_incidents(config: ReportConfig) -> pd.DataFrame:
    """
    Load the NYPD shooting incidents

    Parameters
    ----------
    config
        Configuration which defines where and how to load from

    Returns
    -------
    :
        Raw incidents. Categorical columns are read as strings
        so that numeric-looking tokens (e.g. age groups like "1020")
        are kept as they are.
    """
    string_columns = [
        "OCCUR_DATE",
        "OCCUR_TIME",
        "BORO",
        "STATISTICAL_MURDER_FLAG",
        *NYPD_CLEANING_RULES.columns,
    ]

    return load_table(
        config.get_source(NYPD_SHOOTING_FILENAME, NYPD_SHOOTING_URL),
        expected_columns=NYPD_SHOOTING_COLUMNS,
        table_name="NYPD shooting incidents",
        read_csv_kwargs=dict(dtype={c: str for c in string_columns}),
        timeout=config.http_timeout,
        n_attempts=config.n_fetch_attempts,
    )


def parse_occurrence_times(
    incidents: pd.DataFrame,
    date_column: str = "OCCUR_DATE",
    time_column: str = "OCCUR_TIME",
) -> pd.DataFrame:
    """
    Parse when each incident occurred

    Parameters
    ----------
    incidents
        Incidents

    date_column
        Column which holds the date of each incident

    time_column
        Column which holds the time of each incident

    Returns
    -------
    :
        Copy of `incidents` with the columns
        `occurred_at` (timestamp), `year` and `hour` added.
        Incidents whose date or time can't be parsed have missing values
        in all three columns.
    """
    assert_has_columns(incidents, [date_column, time_column], table_name="incidents")

    res = incidents.copy()
    res["occurred_at"] = pd.to_datetime(
        res[date_column].astype("string").str.strip()
        + " "
        + res[time_column].astype("string").str.strip(),
        format=f"{NYPD_DATE_FORMAT} {NYPD_TIME_FORMAT}",
        errors="coerce",
    )
    n_unparsed = int(res["occurred_at"].isnull().sum())
    if n_unparsed:
        LOGGER.warning("Could not parse the time of %d incidents", n_unparsed)

    res["year"] = res["occurred_at"].dt.year.astype("Int64")
    res["hour"] = res["occurred_at"].dt.hour.astype("Int64")

    return res


def count_quarterly_incidents(
    incidents: pd.DataFrame,
    populations: Optional[Mapping[str, float]] = None,
    area_column: str = "BORO",
    on_missing_population: str = "warn",
) -> pd.DataFrame:
    """
    Count incidents per borough and quarter

    Parameters
    ----------
    incidents
        Incidents, with an `occurred_at` column
        (see [parse_occurrence_times][(m).])

    populations
        Population of each borough.
        If `None`, we use [NYC_BOROUGH_POPULATION][casecounts.sources.NYC_BOROUGH_POPULATION].

    area_column
        Column which holds the borough

    on_missing_population
        Passed to [add_per_1000_rates][casecounts.rates.add_per_1000_rates]

    Returns
    -------
    :
        Table indexed by `(borough, quarter)`
        with columns `incidents`, `population` and `incidents_per_1000`
    """  # noqa: E501
    if populations is None:
        populations = NYC_BOROUGH_POPULATION

    counts = count_by_period(
        incidents.dropna(subset=["occurred_at"]),
        area_column=area_column,
        time_column="occurred_at",
        freq="quarter",
        bucket_name="quarter",
    )
    counts.index = counts.index.set_names("borough", level=area_column)

    res = add_per_1000_rates(
        counts,
        pd.Series(populations, dtype=float),
        count_columns=["incidents"],
        region_level="borough",
        on_missing_population=on_missing_population,
    )

    return res


@define
class NYPDShootingReportResult:
    """
    Result of running [NYPDShootingReport][(m).]
    """

    incidents: pd.DataFrame
    """
    Cleaned incidents, with parsed occurrence times
    """

    unrecognised_values: dict[str, list[str]]
    """
    Values which were neither known nor missing after cleaning, by column
    """

    quarterly: pd.DataFrame
    """
    Incidents per borough and quarter
    """

    citywide: pd.DataFrame
    """
    Incidents per quarter across the whole city
    """

    cohorts: pd.DataFrame
    """
    Perpetrator and victim counts by borough, race and age group
    """

    murder_share: pd.DataFrame
    """
    Share of incidents which were statistical murders, by borough
    """

    incidents_by_hour: pd.Series
    """
    Incidents by hour of the day
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
class NYPDShootingReport:
    """
    NYPD shooting incidents by borough, cohort and time
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

    populations: dict[str, float] = field(
        factory=lambda: dict(NYC_BOROUGH_POPULATION)
    )
    """
    Population of each borough
    """

    def __call__(
        self, incidents: Optional[pd.DataFrame] = None
    ) -> NYPDShootingReportResult:
        """
        Generate the report

        Parameters
        ----------
        incidents
            Raw incidents to use.
            If `None`, they are loaded using `self.config`.

        Returns
        -------
        :
            Report and the tables behind it
        """
        if incidents is None:
            incidents = load_incidents(self.config)

        assert_has_columns(
            incidents, NYPD_SHOOTING_COLUMNS, table_name="NYPD shooting incidents"
        )

        cleaned = clean(incidents, NYPD_CLEANING_RULES)
        unrecognised_values = find_unrecognised_values(cleaned, NYPD_CLEANING_RULES)
        parsed = parse_occurrence_times(cleaned)

        quarterly = count_quarterly_incidents(
            parsed,
            populations=self.populations,
            on_missing_population=self.config.on_missing_population,
        )
        citywide = consolidate(
            quarterly,
            group_membership_predicate=lambda borough: True,
            populations=pd.Series(self.populations, dtype=float),
            group_name=CITY_NAME,
            count_columns=["incidents"],
            region_level="borough",
        )

        cohorts = count_perpetrator_victim_cohorts(parsed)
        murder_share = share_by_area(parsed)
        incidents_by_hour = count_by_hour(parsed)

        trends = self._fit_trends(quarterly, citywide)

        report = self._build_report(
            incidents=parsed,
            unrecognised_values=unrecognised_values,
            quarterly=quarterly,
            citywide=citywide,
            cohorts=cohorts,
            murder_share=murder_share,
            incidents_by_hour=incidents_by_hour,
            trends=trends,
        )

        return NYPDShootingReportResult(
            incidents=parsed,
            unrecognised_values=unrecognised_values,
            quarterly=quarterly,
            citywide=citywide,
            cohorts=cohorts,
            murder_share=murder_share,
            incidents_by_hour=incidents_by_hour,
            trends=trends,
            report=report,
        )

    def _fit_trends(
        self, quarterly: pd.DataFrame, citywide: pd.DataFrame
    ) -> dict[str, Optional[TrendFit]]:
        by_borough = quarterly.reset_index()
        by_borough["quarter_ordinal"] = to_ordinal(
            by_borough["quarter"], freq="quarter"
        )

        return {
            "citywide": fit_or_none(
                "city-wide quarterly rate",
                fit_trend,
                x=pd.Series(
                    to_ordinal(
                        citywide.index.get_level_values("quarter"), freq="quarter"
                    ).to_numpy(),
                    index=citywide.index,
                ),
                y=citywide["incidents_per_1000"],
                x_name="quarter",
                y_name="incidents_per_1000",
            ),
            "by_borough": fit_or_none(
                "quarterly rate by borough",
                fit_interaction_trend,
                table=by_borough,
                y="incidents_per_1000",
                x="quarter_ordinal",
                group="borough",
            ),
        }

    def _build_report(  # noqa: PLR0913
        self,
        incidents: pd.DataFrame,
        unrecognised_values: dict[str, list[str]],
        quarterly: pd.DataFrame,
        citywide: pd.DataFrame,
        cohorts: pd.DataFrame,
        murder_share: pd.DataFrame,
        incidents_by_hour: pd.Series,
        trends: dict[str, Optional[TrendFit]],
    ) -> Report:
        citywide_fit = trends["citywide"]
        borough_fit = trends["by_borough"]

        citywide_plot = citywide.reset_index()
        if citywide_fit is not None:
            citywide_plot["predicted"] = citywide_fit.predicted.reindex(
                citywide.index
            ).to_numpy()

        borough_plot = quarterly.reset_index()
        if borough_fit is not None:
            borough_plot["predicted"] = borough_fit.predicted

        sections = [
            ReportSection(
                title="Quarterly shooting incidents per 1000 people, city-wide",
                body=(
                    f"{len(incidents)} incidents {describe_period(incidents)}.\n\n"
                    "Linear trend (dashed): "
                    + describe_fit(
                        citywide_fit,
                        x_name="quarter",
                        y_name="incidents per 1000",
                    )
                ),
                figure=self._render(
                    citywide_plot,
                    ChartSpec(
                        kind="line",
                        x="quarter",
                        y="incidents_per_1000",
                        title="Quarterly incidents per 1000 people, New York City",
                        xlabel="Quarter",
                        fit_line="predicted" if citywide_fit is not None else None,
                    ),
                ),
            ),
            ReportSection(
                title="Quarterly shooting incidents per 1000 people, by borough",
                body=(
                    "Dashed lines are a linear trend with a separate intercept "
                    "and slope for each borough "
                    f"(`{borough_fit.formula}`, R-squared {borough_fit.rsquared:.3f})."
                    if borough_fit is not None
                    else INSUFFICIENT_BY_BOROUGH
                ),
                figure=self._render(
                    borough_plot,
                    ChartSpec(
                        kind="line",
                        x="quarter",
                        y="incidents_per_1000",
                        hue="borough",
                        title="Quarterly incidents per 1000 people by borough",
                        xlabel="Quarter",
                        fit_line="predicted" if borough_fit is not None else None,
                    ),
                ),
            ),
        ]

        missing_share = incidents[list(PERPETRATOR_COLUMNS)].isna().mean()
        missing_lines = "\n".join(
            f"- {column}: {share:.0%} missing"
            for column, share in missing_share.items()
        )
        sections.append(
            ReportSection(
                title="Perpetrators and victims by race",
                body=(
                    "Counts by borough and race (summed over age groups). "
                    "Missing values are shown as their own category, "
                    "they are not dropped.\n\n"
                    "Share of incidents with missing perpetrator data:\n\n"
                    f"{missing_lines}"
                ),
                figure=self._render(
                    get_race_comparison_plot_data(cohorts),
                    ChartSpec(
                        kind="bar",
                        x="race",
                        y="incidents",
                        hue="role",
                        col="borough",
                        col_wrap=3,
                        title="Perpetrators and victims by race",
                        xlabel="Race",
                    ),
                ),
            )
        )

        sections.append(
            ReportSection(
                title="Share of incidents which were murders",
                body="\n".join(
                    f"- {borough}: {row.share:.1%} of {row.incidents} incidents"
                    for borough, row in murder_share.iterrows()
                ),
                figure=self._render(
                    murder_share.reset_index(),
                    ChartSpec(
                        kind="bar",
                        x=str(murder_share.index.name),
                        y="share",
                        title="Share of incidents which were statistical murders",
                        xlabel="Borough",
                        ylabel="Share",
                    ),
                ),
            )
        )

        peak_hour = int(incidents_by_hour.idxmax())
        sections.append(
            ReportSection(
                title="Incidents by hour of the day",
                body=(
                    f"Incidents peak at {peak_hour:02d}:00 "
                    f"({incidents_by_hour.max()} incidents)."
                ),
                figure=self._render(
                    incidents_by_hour.reset_index(),
                    ChartSpec(
                        kind="bar",
                        x="hour",
                        y="incidents",
                        title="Incidents by hour of the day",
                        xlabel="Hour",
                    ),
                ),
            )
        )

        data_quality = (
            "\n".join(
                f"- {column}: {', '.join(values)}"
                for column, values in unrecognised_values.items()
            )
            if unrecognised_values
            else "None."
        )
        sections.append(
            ReportSection(
                title="Sources of bias",
                body=(
                    f"{BIAS_DISCUSSION}\n\n"
                    "Unrecognised values, left as they are in the data:\n\n"
                    f"{data_quality}"
                ),
            )
        )

        return Report(title="NYPD shooting incidents", sections=sections)

    def _render(self, table: pd.DataFrame, chart_spec: ChartSpec) -> Optional[bytes]:
        if not self.render_figures:
            return None

        if table.empty:
            LOGGER.warning("No data to plot for %r", chart_spec.title)
            return None

        return render(table, chart_spec)


def get_race_comparison_plot_data(cohorts: pd.DataFrame) -> pd.DataFrame:
    """
    Get data for plotting perpetrator and victim counts by race

    Parameters
    ----------
    cohorts
        Output of
        [count_perpetrator_victim_cohorts][casecounts.cohorts.count_perpetrator_victim_cohorts]

    Returns
    -------
    :
        Long table with columns `borough`, `race`, `role` and `incidents`.
        Missing races are labelled, counts which are missing
        (never observed) are dropped.
    """  # noqa: E501
    by_race = cohorts.groupby(level=["borough", "race"], dropna=False).sum(
        min_count=1
    )
    res = (
        by_race.rename_axis(columns="role")
        .stack(future_stack=True)
        .rename("incidents")
        .reset_index()
        .dropna(subset=["incidents"])
    )
    res["race"] = res["race"].astype("string").fillna(MISSING_LABEL)
    res["incidents"] = res["incidents"].astype(float)

    return res


def describe_period(incidents: pd.DataFrame) -> str:
    """
    Describe the period covered by the incidents

    Parameters
    ----------
    incidents
        Incidents, with an `occurred_at` column

    Returns
    -------
    :
        Description of the period, e.g. "between 2006-01-01 and 2023-12-31"
    """
    occurred_at = incidents["occurred_at"].dropna()
    if occurred_at.empty:
        return "with no parseable occurrence time"

    return (
        f"between {occurred_at.min():%Y-%m-%d} and {occurred_at.max():%Y-%m-%d}"
    )
