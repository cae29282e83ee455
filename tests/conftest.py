"""
Re-useable fixtures etc. for tests

See https://docs.pytest.org/en/7.1.x/reference/fixtures.html#conftest-py-sharing-fixtures-across-multiple-files
"""

import pandas as pd
import pytest

from casecounts.config import ReportConfig


@pytest.fixture(scope="session", autouse=True)
def pandas_terminal_width():
    # Set pandas terminal width so that doctests don't depend on terminal width.

    # We set the display width to 120 because examples should be short,
    # anything more than this is too wide to read in the source.
    pd.set_option("display.width", 120)

    # Display as many columns as you want (i.e. let the display width do the
    # truncation)
    pd.set_option("display.max_columns", 1000)


@pytest.fixture
def report_config(tmp_path):
    # Never fetch from the network in tests
    source_dir = tmp_path / "sources"
    source_dir.mkdir()

    return ReportConfig(
        output_dir=tmp_path / "report",
        source_dir=source_dir,
        n_fetch_attempts=1,
    )
