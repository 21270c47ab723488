"""CLI entrypoints for svgpack commands."""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path

from .config import BuildConfiguration, ConfigError, load_config
from .errors import CompositionError
from .logging import configure_logging
from .pipeline import Pipeline


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS if suppress_default else False,
        help="Increase log verbosity for troubleshooting.",
    )


def _add_project_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Project directory or .svgpack.yml file (defaults to current directory).",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="Treat size-ceiling overruns as errors.",
    )
    parser.add_argument(
        "--minify",
        action="store_true",
        default=None,
        help="Minify bundled JavaScript and CSS.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="svgpack",
        description="Package a web app into one self-contained SVG document.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser("build", help="Build the SVG document once.")
    _add_verbose_option(build_parser, suppress_default=True)
    _add_project_options(build_parser)
    build_parser.add_argument(
        "-o",
        "--output",
        help="Override the output path from the configuration.",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Rebuild on change and serve a live preview.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    _add_project_options(serve_parser)
    serve_parser.add_argument("--host", help="Interface to bind (default 127.0.0.1).")
    serve_parser.add_argument("--port", type=int, help="Port to bind (default 8000).")

    return parser


def _load(args: argparse.Namespace) -> BuildConfiguration:
    config = load_config(Path(args.path))
    output = getattr(args, "output", None)
    config = config.with_overrides(
        strict=args.strict,
        minify=args.minify,
        output_path=Path(output).expanduser().resolve() if output else None,
    )
    host = getattr(args, "host", None)
    port = getattr(args, "port", None)
    if host or port:
        dev = config.dev
        config = config.with_overrides(
            dev=replace(dev, host=host or dev.host, port=port or dev.port)
        )
    return config


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for svgpack commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    try:
        config = _load(args)
    except ConfigError as exc:
        parser.exit(2, f"{exc}\n")

    if args.command == "build":
        try:
            result = Pipeline(config).run()
        except (FileNotFoundError, NotADirectoryError) as exc:
            parser.exit(1, f"{exc}\n")
        except CompositionError as exc:
            parser.exit(1, f"svgpack build failed: {exc}\n")
        for issue in result.issues:
            location = f" ({issue.path})" if issue.path else ""
            print(f"{issue.severity}: [{issue.code}] {issue.message}{location}")
        if not result.success:
            parser.exit(1, "svgpack build failed. Run with --verbose for more details.\n")
        print(f"Wrote {_relativize(config.output_path)} ({result.size} bytes)")
    elif args.command == "serve":
        from .service import run_service

        run_service(config)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
