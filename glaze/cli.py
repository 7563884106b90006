"""CLI entrypoints for glaze commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .builder import Builder, write_env_file
from .config import ConfigError, GlazeConfig, ReleaseConfig, load_config
from .errors import GlazeError
from .logging import configure_logging
from .lookup import AssetResolver
from .manifest import MANIFEST_FILENAME


def _add_verbosity_options(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    default: object = argparse.SUPPRESS if suppress_default else False
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=default,
        help="Log every processed asset.",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        default=default,
        help="Only log warnings and errors.",
    )


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Project directory or .glaze.yml file (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="glaze",
        description="Bundle, hash and serve static assets for web applications.",
    )
    _add_verbosity_options(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser("build", help="Run the asset pipeline.")
    _add_verbosity_options(build_parser, suppress_default=True)
    _add_path_argument(build_parser)
    mode_group = build_parser.add_mutually_exclusive_group()
    mode_group.add_argument(
        "--release",
        dest="mode",
        action="store_const",
        const="release",
        help="Write a hashed output tree and manifest.",
    )
    mode_group.add_argument(
        "--development",
        dest="mode",
        action="store_const",
        const="development",
        help="Skip copying; serve assets from their source directories.",
    )
    build_parser.add_argument(
        "--no-hash",
        action="store_true",
        help="Publish assets under their original filenames.",
    )
    build_parser.add_argument(
        "--flatten",
        action="store_true",
        help="Publish every asset directly inside the output assets directory.",
    )
    build_parser.add_argument(
        "--jobs",
        type=int,
        default=None,
        help="Number of worker threads for non-stylesheet assets.",
    )
    build_parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Write GLAZE_* variables describing the build to this file.",
    )

    serve_parser = subparsers.add_parser(
        "serve", help="Build, then serve assets and the public directory over HTTP."
    )
    _add_verbosity_options(serve_parser, suppress_default=True)
    _add_path_argument(serve_parser)
    serve_parser.add_argument("--host", default=None, help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=None, help="Port to bind.")

    resolve_parser = subparsers.add_parser(
        "resolve", help="Print the URL path for a logical asset key."
    )
    _add_verbosity_options(resolve_parser, suppress_default=True)
    resolve_parser.add_argument("key", help="Logical asset key, e.g. css/style.css.")
    _add_path_argument(resolve_parser)
    resolve_parser.add_argument(
        "--manifest",
        type=Path,
        default=None,
        help=(
            f"Manifest file (defaults to the project's <out_dir>/{MANIFEST_FILENAME}; "
            "absent means development)."
        ),
    )

    return parser


def _apply_build_overrides(config: GlazeConfig, args: argparse.Namespace) -> None:
    if getattr(args, "mode", None):
        config.mode = args.mode
    if getattr(args, "no_hash", False) or getattr(args, "flatten", False):
        config.release = ReleaseConfig(
            hashed=config.release.hashed and not args.no_hash,
            flatten=config.release.flatten or args.flatten,
        )
    jobs = getattr(args, "jobs", None)
    if jobs is not None:
        if jobs < 1:
            raise ConfigError("--jobs must be a positive integer")
        config.jobs = jobs


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for glaze commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), quiet=bool(args.quiet))

    try:
        if args.command == "build":
            _run_build(args)
        elif args.command == "serve":
            _run_serve(args)
        elif args.command == "resolve":
            _run_resolve(args)
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(1, "Unknown command\n")
    except (ConfigError, GlazeError) as exc:
        parser.exit(1, f"glaze {args.command} failed: {exc}\nRun with --verbose for more details.\n")


def _run_build(args: argparse.Namespace) -> None:
    config = load_config(Path(args.path))
    _apply_build_overrides(config, args)
    result = Builder(config).build()
    if args.env_file is not None:
        write_env_file(result, args.env_file)
    if result.manifest_path is not None:
        print(f"Published {len(result.manifest)} asset(s); manifest at {_relativize(result.manifest_path)}")
    else:
        print(f"Development build: serving assets from {_relativize(result.assets_dir)}")


def _run_serve(args: argparse.Namespace) -> None:
    from .service import run_service

    config = load_config(Path(args.path))
    run_service(config, host=args.host, port=args.port)


def _run_resolve(args: argparse.Namespace) -> None:
    config = load_config(Path(args.path))
    manifest_path = args.manifest
    if manifest_path is None:
        manifest_path = config.out_dir / MANIFEST_FILENAME
    resolver = AssetResolver.from_manifest_file(
        manifest_path, prefix=config.serve.assets_prefix
    )
    print(f"/{resolver.resolve(args.key)}")


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
