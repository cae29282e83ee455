"""
Loading of the input tables

Remote tables are downloaded with [requests][].
Transient failures are retried a bounded number of times
(using [tenacity][]), everything else fails straight away
with a [FetchError][casecounts.exceptions.FetchError].
"""

from __future__ import annotations

import io
import logging
from collections.abc import Collection
from pathlib import Path
from typing import Any, Optional

import pandas as pd
import requests
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from casecounts.assertions import assert_has_columns
from casecounts.exceptions import FetchError

LOGGER = logging.getLogger(__name__)

TRANSIENT_STATUS_CODES: frozenset[int] = frozenset({429, 500, 502, 503, 504})
"""
HTTP status codes which we treat as transient (and hence retry)
"""


def is_transient_error(exc: BaseException) -> bool:
    """
    Determine whether an exception raised while downloading is transient

    Parameters
    ----------
    exc
        Exception to check

    Returns
    -------
    :
        `True` if the download is worth retrying, otherwise `False`
    """
    if isinstance(exc, (requests.ConnectionError, requests.Timeout)):
        return True

    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        return exc.response.status_code in TRANSIENT_STATUS_CODES

    return False


def _get(url: str, timeout: float, session: requests.Session) -> requests.Response:
    response = session.get(url, timeout=timeout)
    response.raise_for_status()

    return response


def _read_csv_text(text: str, source: str, **read_csv_kwargs: Any) -> pd.DataFrame:
    try:
        res = pd.read_csv(io.StringIO(text), **read_csv_kwargs)
    except (
        pd.errors.ParserError,
        pd.errors.EmptyDataError,
        UnicodeDecodeError,
    ) as exc:
        raise FetchError(source, f"The content is not valid CSV: {exc}") from exc

    if res.columns.empty:
        raise FetchError(source, "The content has no columns")

    return res


def fetch_table(  # noqa: PLR0913
    url: str,
    expected_columns: Optional[Collection[str]] = None,
    timeout: float = 30.0,
    n_attempts: int = 3,
    backoff: float = 1.0,
    session: Optional[requests.Session] = None,
    table_name: str = "table",
    read_csv_kwargs: Optional[dict[str, Any]] = None,
) -> pd.DataFrame:
    """
    Download a CSV table

    Parameters
    ----------
    url
        URL from which to download

    expected_columns
        Columns which the table must have

    timeout
        Timeout, in seconds, for each attempt

    n_attempts
        Maximum number of attempts

        Only transient failures are retried (see [is_transient_error][(m).]).

    backoff
        Multiplier (in seconds) of the exponential back-off between attempts

    session
        Session to use for the requests. If `None`, a new session is created.

    table_name
        Name of the table, used to make error messages clearer

    read_csv_kwargs
        Passed to [pd.read_csv][pandas.read_csv]

    Returns
    -------
    :
        Downloaded table

    Raises
    ------
    FetchError
        The table could not be downloaded or parsed

    SchemaMismatchError
        The table is missing some of `expected_columns`
    """
    if read_csv_kwargs is None:
        read_csv_kwargs = {}

    if session is None:
        session = requests.Session()

    retrying = Retrying(
        stop=stop_after_attempt(n_attempts),
        wait=wait_exponential(multiplier=backoff, max=60),
        retry=retry_if_exception(is_transient_error),
        before_sleep=before_sleep_log(LOGGER, logging.WARNING),
        reraise=True,
    )

    LOGGER.info("Downloading %s from %s", table_name, url)
    try:
        response = retrying(_get, url, timeout=timeout, session=session)
    except requests.RequestException as exc:
        raise FetchError(url, f"{type(exc).__name__}: {exc}") from exc

    res = _read_csv_text(response.text, source=url, **read_csv_kwargs)
    LOGGER.info(
        "Downloaded %s: %d rows x %d columns", table_name, res.shape[0], res.shape[1]
    )

    if expected_columns is not None:
        assert_has_columns(res, expected_columns, table_name=table_name)

    return res


def load_table(
    source: str | Path,
    expected_columns: Optional[Collection[str]] = None,
    table_name: str = "table",
    read_csv_kwargs: Optional[dict[str, Any]] = None,
    **fetch_kwargs: Any,
) -> pd.DataFrame:
    """
    Load a CSV table from a URL or a local file

    Parameters
    ----------
    source
        Where to load from.
        Strings starting with `http://` or `https://` are downloaded
        with [fetch_table][(m).], anything else is treated as a local path.

    expected_columns
        Columns which the table must have

    table_name
        Name of the table, used to make error messages clearer

    read_csv_kwargs
        Passed to [pd.read_csv][pandas.read_csv]

    **fetch_kwargs
        Passed to [fetch_table][(m).] when downloading

    Returns
    -------
    :
        Loaded table

    Raises
    ------
    FetchError
        The table could not be loaded or parsed

    SchemaMismatchError
        The table is missing some of `expected_columns`
    """
    if read_csv_kwargs is None:
        read_csv_kwargs = {}

    source_str = str(source)
    if source_str.startswith(("http://", "https://")):
        return fetch_table(
            source_str,
            expected_columns=expected_columns,
            table_name=table_name,
            read_csv_kwargs=read_csv_kwargs,
            **fetch_kwargs,
        )

    path = Path(source)
    LOGGER.info("Reading %s from %s", table_name, path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise FetchError(source_str, f"{type(exc).__name__}: {exc}") from exc

    res = _read_csv_text(text, source=source_str, **read_csv_kwargs)
    if expected_columns is not None:
        assert_has_columns(res, expected_columns, table_name=table_name)

    return res
