"""
COVID-19 cases and deaths report
"""

from __future__ import annotations

from casecounts.covid.report import (
    CovidInputs,
    CovidReport,
    CovidReportResult,
    get_country_populations,
    get_us_state_populations,
    global_to_long,
    us_to_long,
)

__all__ = [
    "CovidInputs",
    "CovidReport",
    "CovidReportResult",
    "get_country_populations",
    "get_us_state_populations",
    "global_to_long",
    "us_to_long",
]
