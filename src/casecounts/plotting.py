"""
Rendering of charts

Requires the optional plotting dependencies (matplotlib and seaborn),
install with `pip install casecounts[plots]`.
"""

from __future__ import annotations

import io
import logging
from typing import Optional

import pandas as pd
from attrs import define, field, validators

from casecounts.assertions import assert_has_columns
from casecounts.exceptions import MissingOptionalDependencyError

LOGGER = logging.getLogger(__name__)

CHART_KINDS: tuple[str, ...] = ("line", "point", "bar")
"""
Supported kinds of chart
"""


@define
class ChartSpec:
    """
    Specification of a chart
    """

    kind: str = field(validator=validators.in_(CHART_KINDS))
    """
    Kind of chart

    One of "line", "point" or "bar".
    """

    x: str
    """
    Column to plot on the x-axis
    """

    y: str
    """
    Column to plot on the y-axis
    """

    title: str = ""
    """
    Title of the chart
    """

    hue: Optional[str] = None
    """
    Column which determines the colour of each line/point/bar
    """

    col: Optional[str] = None
    """
    Column to facet on (one panel per value)
    """

    col_wrap: Optional[int] = None
    """
    Number of panels per row when faceting
    """

    xlabel: Optional[str] = None
    """
    Label of the x-axis (defaults to `x`)
    """

    ylabel: Optional[str] = None
    """
    Label of the y-axis (defaults to `y`)
    """

    log_y: bool = False
    """
    Whether to use a log scale on the y-axis
    """

    fit_line: Optional[str] = None
    """
    Column which holds fitted values to overlay as a dashed line
    """

    @property
    def columns(self) -> list[str]:
        """
        Columns of the data which the chart uses
        """
        return [
            c
            for c in (self.x, self.y, self.hue, self.col, self.fit_line)
            if c is not None
        ]


def render(table: pd.DataFrame, chart_spec: ChartSpec, dpi: int = 100) -> bytes:
    """
    Render a chart to PNG

    Parameters
    ----------
    table
        Data to plot, in long form (one column per variable)

    chart_spec
        Specification of the chart

    dpi
        Resolution of the output

    Returns
    -------
    :
        PNG image

    Raises
    ------
    MissingOptionalDependencyError
        matplotlib or seaborn is not installed
    """
    try:
        import matplotlib.pyplot as plt
    except ImportError as exc:
        raise MissingOptionalDependencyError(
            "render", requirement="matplotlib"
        ) from exc

    try:
        import seaborn as sns
    except ImportError as exc:
        raise MissingOptionalDependencyError("render", requirement="seaborn") from exc

    assert_has_columns(table, chart_spec.columns, table_name="table to plot")

    common_kwargs = dict(
        data=table,
        x=chart_spec.x,
        y=chart_spec.y,
        hue=chart_spec.hue,
        col=chart_spec.col,
        col_wrap=chart_spec.col_wrap,
    )
    if chart_spec.kind == "bar":
        grid = sns.catplot(kind="bar", errorbar=None, **common_kwargs)
    else:
        grid = sns.relplot(
            kind="line" if chart_spec.kind == "line" else "scatter",
            **common_kwargs,
        )

    if chart_spec.fit_line is not None:
        grid.map_dataframe(
            sns.lineplot,
            x=chart_spec.x,
            y=chart_spec.fit_line,
            hue=chart_spec.hue,
            errorbar=None,
            linestyle="--",
            legend=False,
        )

    if chart_spec.log_y:
        grid.set(yscale="log")

    grid.set_axis_labels(
        chart_spec.xlabel if chart_spec.xlabel is not None else chart_spec.x,
        chart_spec.ylabel if chart_spec.ylabel is not None else chart_spec.y,
    )
    if chart_spec.title:
        grid.figure.suptitle(chart_spec.title)
        grid.figure.subplots_adjust(top=0.9)

    buffer = io.BytesIO()
    try:
        grid.figure.savefig(buffer, format="png", dpi=dpi, bbox_inches="tight")
    finally:
        plt.close(grid.figure)

    LOGGER.debug("Rendered %r (%d bytes)", chart_spec.title, buffer.tell())

    return buffer.getvalue()
