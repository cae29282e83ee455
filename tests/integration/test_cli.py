"""
Integration tests of the command-line interface
"""

from __future__ import annotations

import pytest

from casecounts.cli import EXIT_FAILURE, create_parser, main
from casecounts.testing import write_jhu_like_sources, write_nypd_like_source


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for suffix in (
        "OUTPUT_DIR",
        "SOURCE_DIR",
        "HTTP_TIMEOUT",
        "N_FETCH_ATTEMPTS",
        "WEEK_START",
        "ON_MISSING_POPULATION",
    ):
        monkeypatch.delenv(f"CASECOUNTS_{suffix}", raising=False)

    monkeypatch.setenv("MPLBACKEND", "Agg")


def test_parser_requires_known_report():
    with pytest.raises(SystemExit):
        create_parser().parse_args(["flu"])


@pytest.mark.parametrize(
    "report, write_sources",
    (
        pytest.param("covid", write_jhu_like_sources, id="covid"),
        pytest.param("nypd", write_nypd_like_source, id="nypd"),
    ),
)
def test_main(report, write_sources, tmp_path):
    source_dir = tmp_path / "sources"
    source_dir.mkdir()
    write_sources(source_dir)
    output_dir = tmp_path / "out"

    res = main(
        [
            report,
            "--source-dir",
            str(source_dir),
            "--output-dir",
            str(output_dir),
            "--no-figures",
        ]
    )

    assert res == 0
    markdown = (output_dir / "report.md").read_text()
    assert markdown.startswith("# ")
    assert "## Sources of bias" in markdown
    assert not list(output_dir.glob("*.png"))


def test_main_missing_source(tmp_path, caplog):
    source_dir = tmp_path / "sources"
    source_dir.mkdir()

    res = main(
        [
            "nypd",
            "--source-dir",
            str(source_dir),
            "--output-dir",
            str(tmp_path / "out"),
            "--no-figures",
        ]
    )

    assert res == EXIT_FAILURE
    assert "Could not generate the nypd report" in caplog.text
    assert not (tmp_path / "out").exists()


def test_main_output_dir_from_environment(tmp_path, monkeypatch):
    source_dir = tmp_path / "sources"
    source_dir.mkdir()
    write_nypd_like_source(source_dir, n_incidents=50)
    monkeypatch.setenv("CASECOUNTS_OUTPUT_DIR", str(tmp_path / "from-env"))

    res = main(["nypd", "--source-dir", str(source_dir), "--no-figures"])

    assert res == 0
    assert (tmp_path / "from-env" / "report.md").exists()
