"""
Tests of `casecounts.cohorts`
"""

from __future__ import annotations

import re

import numpy as np
import pandas as pd
import pytest

from casecounts.cohorts import (
    compare_cohorts,
    count_by_cohort,
    count_by_hour,
    count_perpetrator_victim_cohorts,
    share_by_area,
)
from casecounts.exceptions import SchemaMismatchError


@pytest.fixture
def incidents():
    return pd.DataFrame(
        {
            "BORO": ["BRONX", "BRONX", "BRONX", "QUEENS"],
            "PERP_RACE": ["BLACK", "BLACK", pd.NA, "WHITE"],
            "PERP_AGE_GROUP": ["18-24", "18-24", pd.NA, "25-44"],
            "VIC_RACE": ["BLACK", "WHITE", "WHITE", "ASIAN / PACIFIC ISLANDER"],
            "VIC_AGE_GROUP": ["18-24", "25-44", "25-44", "45-64"],
        },
        dtype="string",
    )


def test_count_by_cohort(incidents):
    res = count_by_cohort(incidents, "BORO", "PERP_RACE", "PERP_AGE_GROUP")

    assert res.name == "incidents"
    assert res.dtype == "Int64"
    assert res.index.names == ["borough", "race", "age_group"]
    assert res.loc[("BRONX", "BLACK", "18-24")] == 2
    assert res.loc[("QUEENS", "WHITE", "25-44")] == 1
    # Missing values are their own cohort
    assert res.sum() == incidents.shape[0]
    assert res.shape[0] == 3


def test_count_by_cohort_names_length(incidents):
    with pytest.raises(ValueError, match="`names` must have 3 elements"):
        count_by_cohort(
            incidents, "BORO", "PERP_RACE", "PERP_AGE_GROUP", names=("a", "b")
        )


def test_count_by_cohort_missing_column(incidents):
    with pytest.raises(SchemaMismatchError, match=re.escape("['PERP_SEX']")):
        count_by_cohort(incidents, "BORO", "PERP_RACE", "PERP_SEX")


def test_compare_cohorts_unobserved_stays_missing(incidents):
    res = count_perpetrator_victim_cohorts(incidents)

    assert res.columns.tolist() == ["perpetrators", "victims"]
    assert (res.dtypes == "Int64").all()

    # Victim-only cohort
    key = ("QUEENS", "ASIAN / PACIFIC ISLANDER", "45-64")
    assert pd.isna(res.loc[key, "perpetrators"])
    assert res.loc[key, "victims"] == 1

    # Perpetrator-only cohort
    key = ("BRONX", "BLACK", "18-24")
    assert res.loc[key, "perpetrators"] == 2
    assert res.loc[key, "victims"] == 1

    # Nothing is filled with zero
    assert not (res == 0).any().any()


def test_compare_cohorts_index_mismatch():
    a = pd.Series([1], index=pd.MultiIndex.from_tuples([("x", "y")], names=["a", "b"]))
    b = pd.Series([1], index=pd.MultiIndex.from_tuples([("x", "y")], names=["a", "c"]))

    with pytest.raises(ValueError, match="same index levels"):
        compare_cohorts(a, b)


def test_share_by_area():
    incidents = pd.DataFrame(
        {
            "BORO": ["BRONX", "BRONX", "BRONX", "QUEENS", "QUEENS"],
            "STATISTICAL_MURDER_FLAG": ["true", "FALSE", np.nan, "false", "false"],
        }
    )

    res = share_by_area(incidents)

    assert res.columns.tolist() == ["incidents", "flagged", "share"]
    assert res.index.name == "BORO"
    assert res.loc["BRONX", "incidents"] == 3
    assert res.loc["BRONX", "flagged"] == 1
    # Missing flags don't count towards the share
    assert res.loc["BRONX", "share"] == pytest.approx(0.5)
    assert res.loc["QUEENS", "share"] == 0.0


def test_share_by_area_boolean_flags():
    incidents = pd.DataFrame(
        {"BORO": ["A", "A", "B"], "STATISTICAL_MURDER_FLAG": [True, True, False]}
    )

    res = share_by_area(incidents)

    np.testing.assert_allclose(res["share"], [1.0, 0.0])


def test_count_by_hour():
    incidents = pd.DataFrame(
        {
            "occurred_at": pd.to_datetime(
                ["2020-01-01 00:10", "2020-01-02 00:59", "2020-01-01 23:00", None]
            )
        }
    )

    res = count_by_hour(incidents)

    assert res.index.tolist() == list(range(24))
    assert res.index.name == "hour"
    assert res.name == "incidents"
    assert res.loc[0] == 2
    assert res.loc[23] == 1
    assert res.loc[12] == 0
    assert res.sum() == 3
