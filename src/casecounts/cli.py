"""
Command-line interface

Usage: `casecounts {covid,nypd} [--output-dir DIR] [--source-dir DIR]`
"""

from __future__ import annotations

import argparse
import logging
import os
from collections.abc import Sequence
from typing import Optional

from casecounts.config import ReportConfig
from casecounts.exceptions import FetchError, SchemaMismatchError
from casecounts.reporting import write_report

LOGGER = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

EXIT_FAILURE = 1


def create_parser() -> argparse.ArgumentParser:
    """
    Create the command-line argument parser

    Returns
    -------
    :
        Parser for the `casecounts` command
    """
    parser = argparse.ArgumentParser(
        prog="casecounts",
        description="Generate exploratory reports on public case count data.",
    )
    parser.add_argument(
        "report",
        choices=["covid", "nypd"],
        help="Report to generate",
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory in which to write the report "
        "(default: $CASECOUNTS_OUTPUT_DIR or ./report)",
    )
    parser.add_argument(
        "--source-dir",
        default=None,
        help="Directory with local snapshots of the input files, "
        "named as upstream. If not supplied, the inputs are downloaded.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    parser.add_argument(
        "--no-figures",
        action="store_true",
        help="Only write the text of the report (no plotting dependencies needed)",
    )

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Run the command-line interface

    Parameters
    ----------
    argv
        Arguments to parse. If `None`, we use `sys.argv`.

    Returns
    -------
    :
        Exit code
    """
    args = create_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level, format=LOG_FORMAT)
    # No display is needed to render to PNG
    os.environ.setdefault("MPLBACKEND", "Agg")

    overrides = {}
    if args.output_dir is not None:
        overrides["output_dir"] = args.output_dir

    if args.source_dir is not None:
        overrides["source_dir"] = args.source_dir

    config = ReportConfig.from_env(**overrides)
    render_figures = not args.no_figures

    try:
        if args.report == "covid":
            from casecounts.covid import CovidReport

            report = CovidReport(config=config, render_figures=render_figures)().report

        else:
            from casecounts.nypd import NYPDShootingReport

            report = NYPDShootingReport(
                config=config, render_figures=render_figures
            )().report

    except (FetchError, SchemaMismatchError):
        LOGGER.exception("Could not generate the %s report", args.report)
        return EXIT_FAILURE

    out_path = write_report(report, config.output_dir)
    LOGGER.info("Report written to %s", out_path)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
