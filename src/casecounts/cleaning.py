"""
Cleaning of categorical values

Cleaning is deliberately limited to explicit, fixed lookups:

- known miscoded tokens are remapped to what they were intended to be
- sentinel tokens meaning 'unknown' are converted to missing (`pd.NA`)

Anything else passes through unchanged.
We don't validate against a closed set of values
because we can't tell whether a new value is an error
or a legitimate addition upstream.
Instead, [find_unrecognised_values][(m).] flags such values
so they can be reviewed.
"""

from __future__ import annotations

import logging

import pandas as pd
from attrs import define, field

from casecounts.assertions import assert_has_columns

LOGGER = logging.getLogger(__name__)

NYPD_AGE_GROUPS: tuple[str, ...] = ("<18", "10-20", "18-24", "25-44", "45-64", "65+")
"""
Age groups in the NYPD data (after cleaning), youngest first
"""

NYPD_SEXES: tuple[str, ...] = ("M", "F")
"""
Sexes in the NYPD data (after cleaning)
"""

NYPD_RACES: tuple[str, ...] = (
    "AMERICAN INDIAN/ALASKAN NATIVE",
    "ASIAN / PACIFIC ISLANDER",
    "BLACK",
    "BLACK HISPANIC",
    "WHITE",
    "WHITE HISPANIC",
)
"""
Races in the NYPD data (after cleaning)
"""

NYPD_NULL_TOKENS: tuple[str, ...] = ("(null)", "(Null)")
"""
Tokens the NYPD export uses for values which were never recorded
"""


@define
class CleaningRules:
    """
    Rules for cleaning categorical columns
    """

    remap: dict[str, dict[str, str]] = field(factory=dict)
    """
    Miscoded tokens to remap, for each column

    Keys are column names, values map the miscoded token
    to the corrected token.
    """

    missing_tokens: dict[str, tuple[str, ...]] = field(factory=dict)
    """
    Tokens which mean 'unknown', for each column

    These are converted to `pd.NA`.
    """

    known_values: dict[str, tuple[str, ...]] = field(factory=dict)
    """
    Values we expect after cleaning, for each column

    These are only used for flagging unrecognised values,
    they are not enforced.
    """

    @property
    def columns(self) -> list[str]:
        """
        Columns which these rules touch
        """
        return sorted({*self.remap, *self.missing_tokens, *self.known_values})


def clean(table: pd.DataFrame, rules: CleaningRules) -> pd.DataFrame:
    """
    Clean categorical columns

    Parameters
    ----------
    table
        Table to clean

    rules
        Rules to apply

    Returns
    -------
    :
        Copy of `table`.
        The columns in `rules` are converted to pandas' string dtype,
        have their miscoded tokens remapped
        and have their 'unknown' tokens converted to `pd.NA`.

    Raises
    ------
    SchemaMismatchError
        A column in `rules` is not in `table`
    """
    assert_has_columns(table, rules.columns, table_name="table to clean")

    res = table.copy()
    for column in rules.columns:
        res[column] = res[column].astype("string")

    for column, mapping in rules.remap.items():
        n_remapped = int(res[column].isin(list(mapping)).sum())
        res[column] = res[column].replace(mapping)
        if n_remapped:
            LOGGER.info("Remapped %d miscoded values in %s", n_remapped, column)

    for column, tokens in rules.missing_tokens.items():
        to_missing = res[column].isin(list(tokens))
        res[column] = res[column].mask(to_missing, pd.NA)
        LOGGER.debug(
            "Converted %d 'unknown' tokens to missing in %s",
            int(to_missing.sum()),
            column,
        )

    return res


def find_unrecognised_values(
    table: pd.DataFrame, rules: CleaningRules
) -> dict[str, list[str]]:
    """
    Find values which are neither known nor missing

    Parameters
    ----------
    table
        Table to check (normally after [clean][(m).])

    rules
        Rules which define the known values

    Returns
    -------
    :
        Unrecognised values for each column.
        Columns without unrecognised values are not included.
    """
    res = {}
    for column, known in rules.known_values.items():
        observed = table[column].dropna().unique()
        unrecognised = sorted(str(v) for v in observed if v not in known)
        if unrecognised:
            LOGGER.warning(
                "Unrecognised values in %s (left unchanged): %s", column, unrecognised
            )
            res[column] = unrecognised

    return res


def _nypd_rules() -> CleaningRules:
    age_columns = ("PERP_AGE_GROUP", "VIC_AGE_GROUP")
    sex_columns = ("PERP_SEX", "VIC_SEX")
    race_columns = ("PERP_RACE", "VIC_RACE")

    remap = {c: {"1020": "10-20", "224": "18-24"} for c in age_columns}

    missing_tokens: dict[str, tuple[str, ...]] = {}
    known_values: dict[str, tuple[str, ...]] = {}
    for columns, tokens, known in (
        (age_columns, ("UNKNOWN", *NYPD_NULL_TOKENS), NYPD_AGE_GROUPS),
        (sex_columns, ("U", *NYPD_NULL_TOKENS), NYPD_SEXES),
        (race_columns, ("UNKNOWN", *NYPD_NULL_TOKENS), NYPD_RACES),
    ):
        for column in columns:
            missing_tokens[column] = tokens
            known_values[column] = known

    return CleaningRules(
        remap=remap, missing_tokens=missing_tokens, known_values=known_values
    )


NYPD_CLEANING_RULES: CleaningRules = _nypd_rules()
"""
Rules used to clean the NYPD shooting incident data
"""
