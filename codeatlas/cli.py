"""CLI entrypoints for codeatlas commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

import yaml

from .config import (
    CONFIG_FILENAME,
    CodeAtlasConfig,
    load_config,
    normalise_module,
    write_default_config,
)
from .errors import CancellationError, ConfigurationError
from .logging import configure_logging
from .pipeline import AnalysisPipeline
from .report import AnalysisReport, write_json


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the source tree root (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codeatlas",
        description="Cross-reference exports and imports across a source tree.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Build the module graph and report documentation and test gaps.",
    )
    _add_verbose_option(analyze_parser, suppress_default=True)
    _add_path_argument(analyze_parser)
    analyze_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Write the JSON report to this file instead of stdout.",
    )
    analyze_parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of extraction workers (overrides analysis.workers).",
    )
    analyze_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Cancel the run after this many seconds.",
    )
    analyze_parser.add_argument(
        "--entry-point",
        dest="entry_points",
        action="append",
        default=[],
        metavar="PATTERN",
        help="Additional entry-point pattern (`name`, `path` or `module:name`). Repeatable.",
    )
    analyze_parser.add_argument(
        "-m",
        "--module",
        default=None,
        metavar="SUBDIR",
        help="Limit gap reporting to this subdirectory; imports are still resolved across the whole tree.",
    )
    analyze_parser.add_argument(
        "--include-test-exports",
        action="store_true",
        help="Also report untested exports declared in test files.",
    )
    analyze_parser.add_argument(
        "--format",
        choices=("json", "summary"),
        default="json",
        help="Output format for stdout.",
    )
    analyze_parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write debug logs to this file.",
    )

    config_parser = subparsers.add_parser(
        "config",
        help="Print the effective configuration as YAML.",
    )
    _add_verbose_option(config_parser, suppress_default=True)
    _add_path_argument(config_parser)
    config_parser.add_argument(
        "--init",
        action="store_true",
        help=f"Write a {CONFIG_FILENAME} with the default settings into PATH.",
    )
    config_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing configuration file with --init.",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP analysis service.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def _apply_overrides(config: CodeAtlasConfig, args: argparse.Namespace) -> CodeAtlasConfig:
    if args.workers is not None:
        config.analysis.workers = args.workers
    if args.timeout is not None:
        config.analysis.timeout = args.timeout
    if args.include_test_exports:
        config.analysis.include_test_exports = True
    if args.module is not None:
        config.analysis.module = normalise_module(args.module)
    for pattern in args.entry_points:
        if pattern not in config.gaps.entry_points:
            config.gaps.entry_points.append(pattern)
    return config


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for codeatlas commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=getattr(args, "log_file", None))

    if args.command == "analyze":
        root = Path(args.path).expanduser()
        try:
            config = _apply_overrides(load_config(root), args)
            result = AnalysisPipeline(config).run(root)
        except ConfigurationError as exc:
            parser.exit(1, f"codeatlas analyze failed: {exc}\n")
        except CancellationError as exc:
            parser.exit(1, f"codeatlas analyze cancelled: {exc}\n")

        report = AnalysisReport(result)
        if args.output is not None:
            written = write_json(report, args.output)
            print(f"Report written to {_relativize(written)}")
            if args.format == "summary":
                print(report.summary())
        elif args.format == "summary":
            print(report.summary())
        else:
            print(json.dumps(report.as_dict(), indent=2))
    elif args.command == "config":
        target = Path(args.path).expanduser()
        try:
            if args.init:
                written = write_default_config(target, overwrite=args.force)
                print(f"Configuration written to {_relativize(written)}")
                return
            config = load_config(target)
        except ConfigurationError as exc:
            parser.exit(1, f"codeatlas config failed: {exc}\n")
        print(yaml.safe_dump(config.as_dict(), sort_keys=False), end="")
    elif args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _relativize(path: Path) -> str:
    try:
        return str(path.resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
