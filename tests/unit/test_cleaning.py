"""
Tests of `casecounts.cleaning`
"""

from __future__ import annotations

import logging
import re

import numpy as np
import pandas as pd
import pytest

from casecounts.cleaning import (
    NYPD_CLEANING_RULES,
    CleaningRules,
    clean,
    find_unrecognised_values,
)
from casecounts.exceptions import SchemaMismatchError
from casecounts.testing import get_nypd_like_input


@pytest.mark.parametrize(
    "raw, exp",
    (
        pytest.param("1020", "10-20", id="1020"),
        pytest.param("224", "18-24", id="224"),
        pytest.param("25-44", "25-44", id="clean-unchanged"),
        pytest.param("940", "940", id="unmapped-passes-through"),
        pytest.param("1022", "1022", id="1022-passes-through"),
        pytest.param("UNKNOWN", pd.NA, id="unknown-token"),
        pytest.param("(null)", pd.NA, id="null-token"),
        pytest.param(np.nan, pd.NA, id="already-missing"),
    ),
)
def test_clean_age_groups(raw, exp):
    table = get_nypd_like_input(n_incidents=3)
    table["PERP_AGE_GROUP"] = raw

    res = clean(table, NYPD_CLEANING_RULES)

    assert res["PERP_AGE_GROUP"].dtype == "string"
    if exp is pd.NA:
        assert res["PERP_AGE_GROUP"].isna().all()
    else:
        assert (res["PERP_AGE_GROUP"] == exp).all()


def test_clean_doesnt_modify_input():
    table = get_nypd_like_input(n_incidents=3)
    table["PERP_AGE_GROUP"] = "1020"

    clean(table, NYPD_CLEANING_RULES)

    assert (table["PERP_AGE_GROUP"] == "1020").all()


def test_clean_sentinels_per_column():
    rules = CleaningRules(missing_tokens={"sex": ("U",)})
    table = pd.DataFrame({"sex": ["M", "U", "F"], "race": ["U", "U", "U"]})

    res = clean(table, rules)

    assert res["sex"].isna().tolist() == [False, True, False]
    # Columns without rules are left alone
    assert (res["race"] == "U").all()


def test_clean_missing_column():
    rules = CleaningRules(remap={"age": {"1020": "10-20"}})

    with pytest.raises(
        SchemaMismatchError,
        match=re.escape("The table to clean is missing expected columns: ['age']"),
    ):
        clean(pd.DataFrame({"sex": ["M"]}), rules)


def test_find_unrecognised_values(caplog):
    table = get_nypd_like_input(n_incidents=5)
    table["PERP_AGE_GROUP"] = ["940", "1020", "UNKNOWN", "1022", "18-24"]

    cleaned = clean(table, NYPD_CLEANING_RULES)
    with caplog.at_level(logging.WARNING):
        res = find_unrecognised_values(cleaned, NYPD_CLEANING_RULES)

    assert res["PERP_AGE_GROUP"] == ["1022", "940"]
    assert "Unrecognised values in PERP_AGE_GROUP" in caplog.text


def test_find_unrecognised_values_none():
    rules = CleaningRules(known_values={"sex": ("M", "F")})
    table = pd.DataFrame({"sex": pd.array(["M", pd.NA, "F"], dtype="string")})

    assert find_unrecognised_values(table, rules) == {}


def test_rules_columns():
    rules = CleaningRules(
        remap={"b": {}}, missing_tokens={"a": ()}, known_values={"b": (), "c": ()}
    )

    assert rules.columns == ["a", "b", "c"]
