"""
Tests of `casecounts.aggregation`
"""

from __future__ import annotations

import re

import numpy as np
import pandas as pd
import pytest

from casecounts.aggregation import (
    add_daily_differences,
    aggregate_weekly,
    bucket_dates,
    calculate_weekly_aggregates,
    collapse_sub_regions,
    count_by_period,
    drop_leading_zero_cases,
    get_top_regions,
)
from casecounts.config import WEEK_START_MONDAY, WEEK_START_SUNDAY


def get_daily(values, start="2020-03-01", region="a", deaths=None):
    dates = pd.date_range(start, periods=len(values), freq="D")
    if deaths is None:
        deaths = np.zeros(len(values))

    return pd.DataFrame(
        {"cases": np.asarray(values, dtype=float), "deaths": deaths},
        index=pd.MultiIndex.from_arrays(
            [[region] * len(values), dates], names=["region", "date"]
        ),
    )


def get_long(values, start="2020-03-01", region="a", sub_region="x"):
    dates = pd.date_range(start, periods=len(values), freq="D")

    return pd.DataFrame(
        {
            "region": region,
            "sub_region": sub_region,
            "date": dates,
            "cases": values,
            "deaths": 0,
        }
    )


def test_downward_correction_is_kept():
    # 2020-03-01 is a Sunday, so all three days are in the same week
    long = get_long([100, 150, 130])

    res = calculate_weekly_aggregates(
        long, populations=pd.Series({"a": 1000.0}), week_start=WEEK_START_SUNDAY
    )

    daily = add_daily_differences(collapse_sub_regions(long))
    np.testing.assert_equal(daily["new_cases"].to_numpy(), [100.0, 50.0, -20.0])

    assert res.shape[0] == 1
    assert res["new_cases"].iloc[0] == 130.0
    assert res["cases_per_1000"].iloc[0] == 130.0
    assert res.index.tolist() == [("a", pd.Timestamp("2020-03-01"))]


def test_negative_weeks_not_clamped():
    # Correction falls in the second week
    daily = add_daily_differences(get_daily([10, 20, 30, 40, 50, 60, 70, 60]))

    res = aggregate_weekly(daily, week_start=WEEK_START_SUNDAY)

    np.testing.assert_equal(res["new_cases"].to_numpy(), [70.0, -10.0])


@pytest.mark.parametrize(
    "week_start", (WEEK_START_SUNDAY, WEEK_START_MONDAY, 2)
)
def test_weekly_sum_matches_cumulative_difference(week_start):
    # 21 days starting on a Wednesday, so the first and last weeks are partial
    increments = np.tile([5, 0, 3, 1, 0, 7, 2], 3)
    cumulative = np.cumsum(increments)
    daily = add_daily_differences(get_daily(cumulative, start="2020-03-04"))

    res = aggregate_weekly(daily, week_start=week_start)

    dates = daily.index.get_level_values("date")
    buckets = bucket_dates(dates, week_start=week_start)
    cumulative_s = pd.Series(cumulative, index=dates)
    for bucket_start, weekly_new_cases in res["new_cases"].droplevel("region").items():
        in_bucket = cumulative_s[buckets == bucket_start]
        before_bucket = cumulative_s[dates < bucket_start]
        prior = before_bucket.iloc[-1] if not before_bucket.empty else 0

        assert weekly_new_cases == in_bucket.iloc[-1] - prior

    assert res["new_cases"].sum() == cumulative[-1]


def test_lag():
    cumulative = np.cumsum(np.arange(1, 21))
    daily = get_daily(cumulative)

    res = add_daily_differences(daily, lag=14)

    lagged = res["lagged_new_cases"].to_numpy()
    for t in range(len(cumulative)):
        if t < 14:
            assert lagged[t] == cumulative[t]
        else:
            assert lagged[t] == cumulative[t] - cumulative[t - 14]


def test_lag_is_within_region():
    daily = pd.concat(
        [
            get_daily([1, 2, 3], region="a"),
            get_daily([10, 20], region="b"),
        ]
    )

    res = add_daily_differences(daily, lag=2)

    np.testing.assert_equal(res["new_cases"].to_numpy(), [1, 1, 1, 10, 10])
    np.testing.assert_equal(res["lagged_new_cases"].to_numpy(), [1, 2, 2, 10, 20])


def test_missing_prior_value_is_not_zero():
    res = add_daily_differences(get_daily([1, np.nan, 3]), lag=14)

    # No prior row: prior is zero.
    # Prior row with a missing value: difference is missing.
    assert res["new_cases"].iloc[0] == 1
    assert res["new_cases"].iloc[1:].isnull().all()
    np.testing.assert_equal(
        res["lagged_new_cases"].to_numpy(), [1.0, np.nan, 3.0]
    )


def test_add_daily_differences_unsorted():
    daily = get_daily([1, 2, 3]).iloc[::-1]

    with pytest.raises(
        AssertionError, match=re.escape("Data is not sorted by date for: ['a']")
    ):
        add_daily_differences(daily)


def test_drop_leading_zero_cases():
    daily = pd.concat(
        [
            get_daily([0, np.nan, 5, 0, 7], region="a"),
            get_daily([3, 0], region="b"),
            get_daily([0, 0], region="c"),
        ]
    )

    res = drop_leading_zero_cases(daily)

    assert res.index.get_level_values("region").tolist() == ["a", "a", "a", "b", "b"]
    np.testing.assert_equal(res["cases"].to_numpy(), [5, 0, 7, 3, 0])


def test_collapse_sub_regions():
    long = pd.concat(
        [
            get_long([1, 2, np.nan], sub_region="x"),
            get_long([10, np.nan, np.nan], sub_region="y"),
            get_long([5, 6, 7], region="b", sub_region=np.nan),
        ]
    )

    res = collapse_sub_regions(long)

    assert res.index.names == ["region", "date"]
    np.testing.assert_equal(
        res["cases"].to_numpy(), [11.0, 2.0, np.nan, 5.0, 6.0, 7.0]
    )


@pytest.mark.parametrize(
    "dates, freq, week_start, exp",
    (
        pytest.param(
            ["2020-03-07", "2020-03-08", "2020-03-14"],
            "week",
            WEEK_START_SUNDAY,
            ["2020-03-01", "2020-03-08", "2020-03-08"],
            id="sunday",
        ),
        pytest.param(
            ["2020-03-07", "2020-03-08", "2020-03-09"],
            "week",
            WEEK_START_MONDAY,
            ["2020-03-02", "2020-03-02", "2020-03-09"],
            id="monday",
        ),
        pytest.param(
            ["2020-12-31", "2021-01-01"],
            "week",
            WEEK_START_SUNDAY,
            ["2020-12-27", "2020-12-27"],
            id="across-year-end",
        ),
        pytest.param(
            ["2020-03-31 23:59", "2020-04-01 00:00", "2020-12-31 00:00"],
            "quarter",
            WEEK_START_SUNDAY,
            ["2020-01-01", "2020-04-01", "2020-10-01"],
            id="quarter",
        ),
    ),
)
def test_bucket_dates(dates, freq, week_start, exp):
    res = bucket_dates(pd.to_datetime(dates), freq=freq, week_start=week_start)

    pd.testing.assert_index_equal(
        res, pd.DatetimeIndex(pd.to_datetime(exp)), check_names=False
    )


def test_bucket_dates_unknown_freq():
    with pytest.raises(NotImplementedError, match="month"):
        bucket_dates(pd.to_datetime(["2020-01-01"]), freq="month")


def test_aggregate_weekly_incomplete_week_is_missing():
    daily = get_daily([1, 2, 3, 4, 5, 6, 7, 8])
    daily["new_cases"] = [1, 1, 1, 1, 1, 1, 1, np.nan]
    daily["new_deaths"] = 0.0
    daily["lagged_new_cases"] = 0.0
    daily["lagged_new_deaths"] = 0.0

    res = aggregate_weekly(daily)

    assert res["new_cases"].iloc[0] == 7
    assert np.isnan(res["new_cases"].iloc[1])


def test_missing_cumulative_makes_week_missing(caplog):
    # All four days are in the week starting on Sunday 2020-03-01
    long = get_long([10, np.nan, 30, 40])

    with caplog.at_level("WARNING", logger="casecounts.aggregation"):
        res = calculate_weekly_aggregates(
            long, populations=pd.Series({"a": 1000.0}), week_start=WEEK_START_SUNDAY
        )

    assert res.shape[0] == 1
    assert np.isnan(res["new_cases"].iloc[0])
    assert np.isnan(res["cases_per_1000"].iloc[0])
    # Deaths have no gap, so their sum is still available
    assert res["new_deaths"].iloc[0] == 0
    assert "set to missing because of missing daily values" in caplog.text


def test_count_by_period():
    incidents = pd.DataFrame(
        {
            "BORO": ["BRONX", "BRONX", "QUEENS", "BRONX"],
            "occurred_at": pd.to_datetime(
                ["2020-01-05", "2020-03-31", "2020-02-01", "2020-04-01"]
            ),
        }
    )

    res = count_by_period(
        incidents, area_column="BORO", time_column="occurred_at", bucket_name="quarter"
    )

    exp = pd.DataFrame(
        {"incidents": [2, 1, 1]},
        index=pd.MultiIndex.from_tuples(
            [
                ("BRONX", pd.Timestamp("2020-01-01")),
                ("BRONX", pd.Timestamp("2020-04-01")),
                ("QUEENS", pd.Timestamp("2020-01-01")),
            ],
            names=["BORO", "quarter"],
        ),
    )
    pd.testing.assert_frame_equal(res, exp, check_dtype=False)


def test_get_top_regions():
    weekly = pd.DataFrame(
        {"new_cases": [1, 2, 10, 3, 3, np.nan]},
        index=pd.MultiIndex.from_tuples(
            [("a", 1), ("a", 2), ("b", 1), ("c", 1), ("d", 1), ("e", 1)],
            names=["region", "year_week"],
        ),
    )

    assert get_top_regions(weekly, n=3) == ["b", "a", "c"]
