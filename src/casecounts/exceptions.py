"""
Exceptions that are used throughout
"""

from __future__ import annotations

import difflib
from collections.abc import Collection


class MissingOptionalDependencyError(ImportError):
    """
    Raised when an optional dependency is missing

    For example, plotting dependencies like matplotlib
    """

    def __init__(self, callable_name: str, requirement: str) -> None:
        """
        Initialise the error

        Parameters
        ----------
        callable_name
            The name of the callable that requires the dependency

        requirement
            The name of the requirement
        """
        error_msg = f"`{callable_name}` requires {requirement} to be installed"
        super().__init__(error_msg)


class FetchError(RuntimeError):
    """
    Raised when a remote table cannot be fetched or parsed

    This is fatal for the report being generated.
    """

    def __init__(self, source: str, reason: str) -> None:
        """
        Initialise the error

        Parameters
        ----------
        source
            Location we tried to load from

        reason
            Why loading failed
        """
        error_msg = f"Could not load a table from {source!r}. {reason}"
        super().__init__(error_msg)
        self.source = source


class SchemaMismatchError(ValueError):
    """
    Raised when expected columns are missing from a table

    Normally this means that the upstream format changed.
    """

    def __init__(
        self,
        missing: Collection[str],
        available: Collection[str],
        table_name: str = "table",
        unexpected: Collection[str] = (),
    ) -> None:
        """
        Initialise the error

        Parameters
        ----------
        missing
            Columns which were expected but are missing

        available
            Columns which are available

        table_name
            Name of the table, used to make the message clearer

        unexpected
            Columns which are present but could not be interpreted
        """
        problems = []
        if missing:
            problems.append(f"is missing expected columns: {sorted(missing)}")

        if unexpected:
            problems.append(f"has unexpected columns: {list(unexpected)}")

        error_msg = (
            f"The {table_name} {' and '.join(problems)}. "
            f"Available columns: {list(available)}"
        )
        super().__init__(error_msg)
        self.missing = tuple(missing)


class MissingPopulationError(ValueError):
    """
    Raised when regions have no (valid) population

    Reports treat this as non-fatal:
    the affected rates are missing
    and the regions are excluded from consolidated groups.
    """

    def __init__(self, regions: Collection[str]) -> None:
        """
        Initialise the error

        Parameters
        ----------
        regions
            Regions without a population, or with a population of zero
        """
        error_msg = (
            "No valid population for the following regions "
            f"(their per-1000 rates will be missing): {sorted(regions)}"
        )
        super().__init__(error_msg)
        self.regions = tuple(regions)


class DegenerateFitError(ValueError):
    """
    Raised when a trend cannot be fitted because there is too little data
    """

    def __init__(self, n_distinct_x: int, formula: str) -> None:
        """
        Initialise the error

        Parameters
        ----------
        n_distinct_x
            Number of distinct explanatory values that were available

        formula
            Formula we tried to fit
        """
        error_msg = (
            f"Cannot fit {formula!r}, at least 2 distinct x-values are required. "
            f"{n_distinct_x=}"
        )
        super().__init__(error_msg)
        self.n_distinct_x = n_distinct_x


class UnrecognisedValueError(ValueError):
    """
    Raised when a value is not recognised
    """

    def __init__(
        self, unrecognised_value: str, name: str, known_values: Collection[str]
    ) -> None:
        """
        Initialise the error

        Parameters
        ----------
        unrecognised_value
            The unrecognised value

        name
            Name of the thing which was being looked up

        known_values
            Known values for `name`
        """
        error_msg = f"{unrecognised_value!r} is not a recognised value for {name}. "

        close = difflib.get_close_matches(
            unrecognised_value, [str(v) for v in known_values]
        )
        if close:
            suggestions = " or ".join(repr(v) for v in close)
            error_msg = f"{error_msg}Did you mean {suggestions}? "

        error_msg = (
            f"{error_msg}The full list of known values is: {sorted(known_values)}"
        )

        super().__init__(error_msg)
