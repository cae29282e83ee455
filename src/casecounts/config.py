"""
Configuration of the reports
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable, Optional

import attr
from attrs import define, field, validators

from casecounts.regions import get_group_members

ON_MISSING_POPULATION_OPTIONS: tuple[str, ...] = ("raise", "warn", "ignore")
"""
Supported policies for handling regions without a population
"""

WEEK_START_MONDAY = 0
"""
Weeks start on Monday (Python's `date.weekday()` numbering)
"""

WEEK_START_SUNDAY = 6
"""
Weeks start on Sunday (Python's `date.weekday()` numbering)
"""

ENV_VAR_PREFIX = "CASECOUNTS_"
"""
Prefix of the environment variables that can override the configuration
"""


def _positive(
    instance: Any, attribute: attr.Attribute[Any], value: float | int
) -> None:
    if value <= 0:
        msg = f"`{attribute.name}` must be positive, received {value=}"
        raise ValueError(msg)


def _known_groups(
    instance: Any, attribute: attr.Attribute[Any], value: tuple[str, ...]
) -> None:
    for group in value:
        get_group_members(group)


def _optional_path(value: str | Path | None) -> Path | None:
    if value is None:
        return None

    return Path(value)


@define
class ReportConfig:
    """
    Configuration shared by the reports

    Defaults can be overridden with environment variables,
    see [from_env][(c).].
    """

    output_dir: Path = field(default=Path("report"), converter=Path)
    """
    Directory in which to write the report and its charts
    """

    source_dir: Optional[Path] = field(default=None, converter=_optional_path)
    """
    Directory with local snapshots of the input files

    If `None`, the inputs are downloaded from their upstream URLs.
    If supplied, the files must have the same names as upstream.
    """

    http_timeout: float = field(default=30.0, validator=_positive)
    """
    Timeout, in seconds, applied to each download attempt
    """

    n_fetch_attempts: int = field(default=3, validator=_positive)
    """
    Maximum number of attempts for each download

    Only transient failures (connection problems, timeouts, server errors)
    are retried.
    """

    week_start: int = field(
        default=WEEK_START_SUNDAY, validator=validators.in_(range(7))
    )
    """
    Day on which weeks start (0 is Monday, 6 is Sunday)
    """

    lag: int = field(default=14, validator=_positive)
    """
    Number of days over which the lagged differences are calculated
    """

    top_n_regions: int = field(default=10, validator=_positive)
    """
    Number of regions to show in the 'top regions' charts
    """

    consolidation_groups: tuple[str, ...] = field(
        default=("G7", "European Union", "Nordic countries"),
        converter=tuple,
        validator=_known_groups,
    )
    """
    Geopolitical groups to consolidate in the COVID report

    These must be keys of [GROUPS][casecounts.regions.GROUPS].
    """

    on_missing_population: str = field(
        default="warn", validator=validators.in_(ON_MISSING_POPULATION_OPTIONS)
    )
    """
    What to do when regions have no valid population

    One of `"raise"`, `"warn"` or `"ignore"`.
    In all cases (other than raising), the region's rates are missing.
    """

    def get_source(self, filename: str, url: str) -> str:
        """
        Get the location from which to load an input

        Parameters
        ----------
        filename
            Name of the file (used when loading from `self.source_dir`)

        url
            Upstream URL (used when `self.source_dir` is `None`)

        Returns
        -------
        :
            Location to pass to [load_table][casecounts.ingest.load_table]
        """
        if self.source_dir is None:
            return url

        return str(self.source_dir / filename)

    @classmethod
    def from_env(
        cls, environ: Optional[dict[str, str]] = None, **kwargs: Any
    ) -> ReportConfig:
        """
        Initialise from environment variables

        The supported variables are
        `CASECOUNTS_OUTPUT_DIR`, `CASECOUNTS_SOURCE_DIR`,
        `CASECOUNTS_HTTP_TIMEOUT`, `CASECOUNTS_N_FETCH_ATTEMPTS`,
        `CASECOUNTS_WEEK_START` and `CASECOUNTS_ON_MISSING_POPULATION`.

        Parameters
        ----------
        environ
            Environment to read from. If `None`, we use `os.environ`.

        **kwargs
            Explicit values, these take precedence over the environment

        Returns
        -------
        :
            Initialised configuration
        """
        if environ is None:
            environ = dict(os.environ)

        parsers: dict[str, tuple[str, Callable[[str], Any]]] = {
            "output_dir": ("OUTPUT_DIR", Path),
            "source_dir": ("SOURCE_DIR", Path),
            "http_timeout": ("HTTP_TIMEOUT", float),
            "n_fetch_attempts": ("N_FETCH_ATTEMPTS", int),
            "week_start": ("WEEK_START", int),
            "on_missing_population": ("ON_MISSING_POPULATION", str),
        }
        init_kwargs = {}
        for attribute, (suffix, parser) in parsers.items():
            env_var = f"{ENV_VAR_PREFIX}{suffix}"
            if env_var in environ:
                try:
                    init_kwargs[attribute] = parser(environ[env_var])
                except ValueError as exc:
                    msg = f"Could not parse {env_var}={environ[env_var]!r}"
                    raise ValueError(msg) from exc

        init_kwargs.update(kwargs)

        return cls(**init_kwargs)

