"""
Tests of `casecounts.assertions`
"""

from __future__ import annotations

import re

import pandas as pd
import pytest

from casecounts.assertions import (
    assert_data_is_all_numeric,
    assert_has_columns,
    assert_has_index_levels,
    assert_index_is_multiindex,
    assert_is_sorted_by_time,
)
from casecounts.exceptions import SchemaMismatchError


@pytest.fixture
def indf():
    return pd.DataFrame(
        {"value": [1.0, 2.0, 3.0], "label": ["a", "b", "c"]},
        index=pd.MultiIndex.from_tuples(
            [("x", 2), ("x", 1), ("y", 1)], names=["region", "day"]
        ),
    )


def test_assert_has_columns(indf):
    assert_has_columns(indf, ["value"])

    with pytest.raises(
        SchemaMismatchError,
        match=re.escape("The table is missing expected columns: ['other']"),
    ):
        assert_has_columns(indf, ["value", "other"])


def test_assert_index_is_multiindex(indf):
    assert_index_is_multiindex(indf)

    with pytest.raises(TypeError, match="The index is not a `pd.MultiIndex`"):
        assert_index_is_multiindex(indf.reset_index("day"))


def test_assert_has_index_levels(indf):
    assert_has_index_levels(indf, ["region"])

    with pytest.raises(
        KeyError, match=re.escape("The index is missing the following levels: ['date']")
    ):
        assert_has_index_levels(indf, ["region", "date"])


def test_assert_data_is_all_numeric(indf):
    assert_data_is_all_numeric(indf, ["value"])

    with pytest.raises(TypeError, match="'label'"):
        assert_data_is_all_numeric(indf, ["value", "label"])


def test_assert_is_sorted_by_time(indf):
    with pytest.raises(
        AssertionError, match=re.escape("Data is not sorted by day for: ['x']")
    ):
        assert_is_sorted_by_time(indf, group_level="region", time_level="day")

    assert_is_sorted_by_time(indf.sort_index(), group_level="region", time_level="day")
