"""
Tests of the comparison helpers in `casecounts.testing`
"""

from __future__ import annotations

import re

import numpy as np
import pandas as pd
import pytest

from casecounts.testing import assert_frame_equal, find_differences


def get_weekly(regions, values):
    return pd.DataFrame(
        {"cases_per_1000": values},
        index=pd.MultiIndex.from_arrays(
            [regions, pd.to_datetime(["2020-03-01"] * len(regions))],
            names=["region", "year_week"],
        ),
    )


def test_find_differences_missing_in_both_is_equal():
    res = get_weekly(["a", "b"], [1.0, np.nan])

    assert find_differences(res, res.copy()).empty


def test_find_differences_row_in_one_table_only():
    res = get_weekly(["a", "b"], [1.0, 2.0])
    exp = get_weekly(["a"], [1.0])

    differences = find_differences(res, exp)

    assert differences.shape[0] == 1
    assert differences["res"].iloc[0] == 2.0
    assert np.isnan(differences["exp"].iloc[0])


def test_assert_frame_equal_names_missing_region():
    res = get_weekly(["a"], [1.0])
    exp = get_weekly(["a", "b"], [1.0, 2.0])

    with pytest.raises(
        AssertionError,
        match=re.escape(
            "Values of 'region' differ. Only in the result: []. "
            "Only in the expected value: ['b']."
        ),
    ):
        assert_frame_equal(res, exp)


def test_assert_frame_equal_reorders_levels():
    exp = get_weekly(["a", "b"], [1.0, 2.0])
    res = exp.reorder_levels(["year_week", "region"])

    assert_frame_equal(res, exp)


def test_assert_frame_equal_within_tolerance():
    exp = get_weekly(["a"], [1.0])

    assert_frame_equal(get_weekly(["a"], [1.0 + 1e-10]), exp)
    with pytest.raises(AssertionError, match="1 values differ"):
        assert_frame_equal(get_weekly(["a"], [1.1]), exp)
