"""
Tests of `casecounts.reporting`
"""

from __future__ import annotations

import logging

import pytest

from casecounts.reporting import (
    INSUFFICIENT_DATA,
    Report,
    ReportSection,
    describe_fit,
    fit_or_none,
    write_report,
)
from casecounts.trend import fit_trend


@pytest.mark.parametrize(
    "title, exp",
    (
        ("Weekly cases per 1000 (G7)", "weekly-cases-per-1000-g7"),
        ("Sources of bias", "sources-of-bias"),
        ("  Perpetrators / victims!  ", "perpetrators-victims"),
    ),
)
def test_section_slug(title, exp):
    assert ReportSection(title).slug == exp


def test_to_markdown():
    report = Report(
        "Title",
        sections=[ReportSection("First", body="Some text"), ReportSection("Second")],
    )

    res = report.to_markdown({1: "01-second.png"})

    assert res == (
        "# Title\n\n## First\n\nSome text\n\n## Second\n\n![Second](01-second.png)\n"
    )


def test_write_report(tmp_path):
    report = Report(
        "Title",
        sections=[
            ReportSection("No figure", body="Text"),
            ReportSection("With figure", figure=b"\x89PNG fake"),
        ],
    )

    res = write_report(report, tmp_path / "out")

    assert res == tmp_path / "out" / "report.md"
    assert (tmp_path / "out" / "01-with-figure.png").read_bytes() == b"\x89PNG fake"
    assert not (tmp_path / "out" / "00-no-figure.png").exists()
    assert "![With figure](01-with-figure.png)" in res.read_text()


def test_fit_or_none(caplog):
    with caplog.at_level(logging.WARNING):
        res = fit_or_none("flat", fit_trend, x=[1, 1], y=[1.0, 2.0])

    assert res is None
    assert "Skipping fit of flat" in caplog.text
    assert describe_fit(res, "week", "cases") == INSUFFICIENT_DATA


def test_fit_or_none_other_errors_propagate():
    def fitter():
        raise ValueError("not degenerate")

    with pytest.raises(ValueError, match="not degenerate"):
        fit_or_none("broken", fitter)


def test_describe_fit():
    fit = fit_trend([0, 1, 2], [0.0, 1.0, 2.0])

    assert describe_fit(fit, "week", "cases").startswith("cases changes by 1 per")
    assert describe_fit(fit, "week", "cases").endswith(".")
