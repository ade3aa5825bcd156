"""Command line entry point for the overlapping template checker."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .app import OverlapCheckApp
from .errors import (
    InconsistentStateError,
    InvalidConfigurationError,
    InvalidInputError,
    LifecycleError,
    MissingFileError,
    ReportWriteError,
)

EXIT_SUCCESS = 0
EXIT_MISSING_FILE = 2
EXIT_INVALID_CONFIG = 3
EXIT_TEST_FAILURE = 4
EXIT_INVALID_INPUT = 5
EXIT_UNEXPECTED_ERROR = 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="overlapcheck",
        description="Run the overlapping template of all ones test over a file of bit streams.",
    )
    parser.add_argument(
        "--input",
        "-i",
        type=Path,
        required=True,
        help="Path to the file holding the bits to analyse.",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        required=True,
        help="Path to the INI configuration file describing the run.",
    )
    parser.add_argument(
        "--output-dir",
        "-o",
        type=Path,
        help="Directory receiving the result files; overrides [output] output_dir.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Print per-partition details and enable debug logging.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    app = OverlapCheckApp()
    try:
        app.run(
            input_path=args.input,
            config_path=args.config,
            output_dir=args.output_dir,
            verbose=args.verbose,
        )
    except MissingFileError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_MISSING_FILE
    except InvalidConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_INVALID_CONFIG
    except InvalidInputError as exc:
        print(f"Input error: {exc}", file=sys.stderr)
        return EXIT_INVALID_INPUT
    except (ReportWriteError, LifecycleError, InconsistentStateError) as exc:
        print(f"Test execution failed: {exc}", file=sys.stderr)
        return EXIT_TEST_FAILURE
    except Exception as exc:  # pragma: no cover - defensive guard
        print(f"Unexpected error: {exc}", file=sys.stderr)
        return EXIT_UNEXPECTED_ERROR
    return EXIT_SUCCESS


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
