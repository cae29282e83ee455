"""
Assembly and writing of reports
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Callable, Optional

from attrs import define, field

from casecounts.exceptions import DegenerateFitError
from casecounts.trend import TrendFit

LOGGER = logging.getLogger(__name__)

INSUFFICIENT_DATA = "Insufficient data to fit a trend."
"""
Text reported in place of a trend which could not be fitted
"""


@define
class ReportSection:
    """
    Section of a report
    """

    title: str
    """
    Title of the section
    """

    body: str = ""
    """
    Body of the section, in markdown
    """

    figure: Optional[bytes] = field(default=None, repr=False)
    """
    PNG figure to show at the top of the section, if any
    """

    @property
    def slug(self) -> str:
        """
        Identifier for the section, safe for use in file names

        Examples
        --------
        >>> ReportSection("Weekly cases per 1000 (G7)").slug
        'weekly-cases-per-1000-g7'
        """
        return re.sub(r"[^a-z0-9]+", "-", self.title.lower()).strip("-")


@define
class Report:
    """
    Report, made up of a sequence of sections
    """

    title: str
    """
    Title of the report
    """

    sections: list[ReportSection] = field(factory=list)
    """
    Sections of the report, in the order they are written
    """

    def to_markdown(self, figure_names: Optional[dict[int, str]] = None) -> str:
        """
        Convert to markdown

        Parameters
        ----------
        figure_names
            File name of the figure for each section (by position).
            Sections without an entry are written without a figure.

        Returns
        -------
        :
            Markdown version of the report
        """
        if figure_names is None:
            figure_names = {}

        lines = [f"# {self.title}", ""]
        for i, section in enumerate(self.sections):
            lines.extend([f"## {section.title}", ""])
            if i in figure_names:
                lines.extend([f"![{section.title}]({figure_names[i]})", ""])

            if section.body:
                lines.extend([section.body.strip(), ""])

        return "\n".join(lines)


def write_report(report: Report, output_dir: Path) -> Path:
    """
    Write a report to disk

    Parameters
    ----------
    report
        Report to write

    output_dir
        Directory in which to write.
        It is created if it does not exist.

    Returns
    -------
    :
        Path to the written markdown file (`report.md` in `output_dir`).
        Figures are written alongside it, one PNG per section with a figure.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    figure_names = {}
    for i, section in enumerate(report.sections):
        if section.figure is None:
            continue

        figure_name = f"{i:02d}-{section.slug}.png"
        (output_dir / figure_name).write_bytes(section.figure)
        figure_names[i] = figure_name

    out_path = output_dir / "report.md"
    out_path.write_text(report.to_markdown(figure_names), encoding="utf-8")
    LOGGER.info(
        "Wrote %s with %d sections and %d figures",
        out_path,
        len(report.sections),
        len(figure_names),
    )

    return out_path


def fit_or_none(
    fit_name: str, fitter: Callable[..., TrendFit], **kwargs: Any
) -> Optional[TrendFit]:
    """
    Fit a trend, returning `None` if there is too little data

    Parameters
    ----------
    fit_name
        Name of the fit, used for logging

    fitter
        Function which does the fit, e.g. [fit_trend][casecounts.trend.fit_trend]

    **kwargs
        Passed to `fitter`

    Returns
    -------
    :
        Fitted trend, `None` if the fit was degenerate
    """
    try:
        return fitter(**kwargs)
    except DegenerateFitError as exc:
        LOGGER.warning("Skipping fit of %s. %s", fit_name, exc)
        return None


def describe_fit(fit: Optional[TrendFit], x_name: str, y_name: str) -> str:
    """
    Describe a fit in words

    Parameters
    ----------
    fit
        Fit to describe (`None` if the fit was skipped)

    x_name
        Name of the explanatory variable

    y_name
        Name of the response variable

    Returns
    -------
    :
        Description, ending with a full stop
    """
    if fit is None:
        return INSUFFICIENT_DATA

    return f"{fit.summary(x_name=x_name, y_name=y_name)}."
