"""
Linear trend fits

These are purely descriptive:
ordinary least squares over the points supplied,
with no out-of-sample checks.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf
from attrs import define, field

from casecounts.assertions import assert_has_columns
from casecounts.exceptions import DegenerateFitError

LOGGER = logging.getLogger(__name__)

MIN_DISTINCT_X = 2
"""
Minimum number of distinct x-values for a fit
"""


@define
class TrendFit:
    """
    Result of a linear trend fit
    """

    formula: str
    """
    Formula which was fitted, in terms of the input names
    """

    params: pd.Series = field(repr=False)
    """
    Fitted parameters
    """

    rsquared: float
    """
    Coefficient of determination of the fit
    """

    n_observations: int
    """
    Number of points used in the fit
    """

    predicted: pd.Series = field(repr=False)
    """
    Predicted values

    Aligned with the input rows which were used
    (rows with missing values are not included).
    """

    @property
    def slope(self) -> float:
        """
        Slope with respect to the explanatory variable

        For interaction fits, this is the slope of the reference group.
        """
        return float(self.params["x"])

    def summary(self, x_name: str = "x", y_name: str = "y") -> str:
        """
        Summarise the fit in a sentence

        Parameters
        ----------
        x_name
            Name to use for the explanatory variable

        y_name
            Name to use for the response variable

        Returns
        -------
        :
            Summary of the fit
        """
        return (
            f"{y_name} changes by {self.slope:.4g} per unit of {x_name} "
            f"(R-squared {self.rsquared:.3f}, {self.n_observations} points)"
        )


def _check_distinct_x(data: pd.DataFrame, formula: str) -> None:
    n_distinct_x = data["x"].nunique()
    if n_distinct_x < MIN_DISTINCT_X:
        raise DegenerateFitError(n_distinct_x=n_distinct_x, formula=formula)


def _fit(data: pd.DataFrame, model_formula: str, formula: str) -> TrendFit:
    n_dropped = data.shape[0]
    data = data.dropna()
    n_dropped -= data.shape[0]
    if n_dropped:
        LOGGER.debug("Dropped %d rows with missing values before fitting", n_dropped)

    _check_distinct_x(data, formula)

    fitted = smf.ols(model_formula, data=data).fit()

    return TrendFit(
        formula=formula,
        params=fitted.params,
        rsquared=float(fitted.rsquared),
        n_observations=int(fitted.nobs),
        predicted=fitted.fittedvalues.rename("predicted"),
    )


def fit_trend(
    x: Sequence[Any] | pd.Series | np.ndarray,
    y: Sequence[Any] | pd.Series | np.ndarray,
    x_name: str = "x",
    y_name: str = "y",
) -> TrendFit:
    """
    Fit a straight line, `y ~ x`

    Parameters
    ----------
    x
        Explanatory values

    y
        Response values, the same length as `x`

    x_name
        Name of `x`, only used to write the formula

    y_name
        Name of `y`, only used to write the formula

    Returns
    -------
    :
        Fit result. If `x` is a [pd.Series][pandas.Series],
        the predictions are indexed like `x`.

    Raises
    ------
    DegenerateFitError
        Fewer than 2 distinct x-values remain after dropping missing values
    """
    if len(x) != len(y):
        msg = f"`x` and `y` must be the same length. {len(x)=} {len(y)=}"
        raise ValueError(msg)

    index = x.index if isinstance(x, pd.Series) else pd.RangeIndex(len(x))
    data = pd.DataFrame(
        {
            "x": pd.Series(x).astype(float).to_numpy(),
            "y": pd.Series(y).astype(float).to_numpy(),
        },
        index=index,
    )

    return _fit(data, model_formula="y ~ x", formula=f"{y_name} ~ {x_name}")


def fit_interaction_trend(
    table: pd.DataFrame, y: str, x: str, group: str
) -> TrendFit:
    """
    Fit a line per group, `y ~ x * C(group)`

    Parameters
    ----------
    table
        Table which holds the data

    y
        Column of `table` which holds the response

    x
        Column of `table` which holds the explanatory values

    group
        Column of `table` which holds the group

    Returns
    -------
    :
        Fit result, with predictions indexed like `table`

    Raises
    ------
    DegenerateFitError
        Fewer than 2 distinct x-values remain after dropping missing values
    """
    assert_has_columns(table, [y, x, group], table_name="table to fit")

    data = pd.DataFrame(
        {
            "x": table[x].astype(float),
            "y": table[y].astype(float),
            "group": table[group].astype(object),
        },
        index=table.index,
    )

    return _fit(
        data,
        model_formula="y ~ x * C(group)",
        formula=f"{y} ~ {x} * C({group})",
    )


def to_ordinal(
    dates: Sequence[Any] | pd.Series | pd.Index, freq: str = "week"
) -> pd.Series:
    """
    Convert dates to period numbers

    Parameters
    ----------
    dates
        Dates to convert

    freq
        Length of each period, "week" or "quarter"

    Returns
    -------
    :
        Number of periods between each date's period and the earliest one.
        Periods with no dates still count, so the numbers can have gaps.

    Raises
    ------
    NotImplementedError
        `freq` is not supported

    Examples
    --------
    >>> to_ordinal(
    ...     pd.to_datetime(["2020-10-01", "2020-01-01", "2020-04-01"]), freq="quarter"
    ... )
    0    3
    1    0
    2    1
    dtype: Int64
    >>> to_ordinal(pd.to_datetime(["2020-03-01", "2020-03-15"]))
    0    0
    1    2
    dtype: Int64
    """
    dates = pd.Series(pd.to_datetime(dates))

    if freq == "week":
        res = (dates - dates.min()).dt.days // 7
    elif freq == "quarter":
        quarters = dates.dt.year * 4 + dates.dt.quarter
        res = quarters - quarters.min()
    else:
        raise NotImplementedError(freq)

    return res.astype("Int64")
