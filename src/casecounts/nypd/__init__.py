"""
NYPD shooting incidents report
"""

from __future__ import annotations

from casecounts.nypd.report import (
    NYPDShootingReport,
    NYPDShootingReportResult,
    count_quarterly_incidents,
    load_incidents,
    parse_occurrence_times,
)

__all__ = [
    "NYPDShootingReport",
    "NYPDShootingReportResult",
    "count_quarterly_incidents",
    "load_incidents",
    "parse_occurrence_times",
]
