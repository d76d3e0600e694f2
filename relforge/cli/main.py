# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
CLI entrypoint for relforge.

This is the single root command; every operation is a subcommand of
`relforge`. The global options (--config, --log-level, --dry-run) are
inherited by every subcommand through argparse's parent parser mechanism.

Usage:
    relforge package --config release.yaml
    relforge package --packages app --targets linux-all --url-base https://dl.example.com/v1
    relforge resolve --targets linux-all,unknown
    relforge materialize --output-dir dist --url-base https://dl.example.com/v1
    relforge verify --output-dir dist
    relforge info
"""

import argparse
import sys

from relforge.cli.commands import (
    handle_info,
    handle_materialize,
    handle_package,
    handle_resolve,
    handle_verify,
)
from relforge.cli.exit_codes import RUNTIME_ERROR, USER_ERROR
from relforge.runtime.environment import check_minimum_python


def _build_global_parser() -> argparse.ArgumentParser:
    """
    Build the parent parser with global options.

    add_help=False so that help text doesn't collide between the parent and
    the subcommand parsers.
    """
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to YAML configuration file.",
    )
    parent.add_argument(
        "--log-level",
        type=str,
        default=None,
        dest="log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity (default: global.log_level from config, else INFO).",
    )
    parent.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        dest="dry_run",
        help="Plan the run and print it without building or writing anything.",
    )
    return parent


def _add_output_dir(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        dest="output_dir",
        help="Release output directory (default: release.output_dir from config).",
    )


def _add_package_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--project-root", type=str, default=None, dest="project_root",
                        help="Cargo workspace root.")
    parser.add_argument("--packages", type=str, default=None,
                        help="Comma-separated packages to build, in order.")
    parser.add_argument("--targets", type=str, default=None,
                        help="Comma-separated target tags (platform, installer or aggregate).")
    parser.add_argument("--cpu-flavors", type=str, default=None, dest="cpu_flavors",
                        help="Comma-separated CPU flavors: generic, native.")
    _add_output_dir(parser)
    parser.add_argument("--url-base", type=str, default=None, dest="url_base",
                        help="Base download URL; enables manifest materialization.")
    parser.add_argument("--archive-format", type=str, default=None, dest="archive_format",
                        choices=["zip", "tar.gz"], help="Archive format.")
    parser.add_argument("--verbose", action="store_true", default=False,
                        help="Write raw compiler output to per-job logs.")
    parser.add_argument("--raw-only", action="store_true", default=False, dest="raw_only",
                        help="Copy raw binaries only, skip archives.")
    parser.add_argument("--host-alias", action="store_true", default=False, dest="host_alias",
                        help="Also write <package>-<os>-<arch> archives for the host build.")
    parser.add_argument("--deb", action="store_true", default=False,
                        help="Shorthand for adding the linux-deb target.")
    parser.add_argument("--rpm", action="store_true", default=False,
                        help="Shorthand for adding the linux-rpm target.")
    parser.add_argument("--no-provision", action="store_true", default=False,
                        dest="no_provision", help="Do not install cross toolchains.")


def _register_subcommands(
    subparsers: argparse._SubParsersAction,  # type: ignore[type-arg]
    parent: argparse.ArgumentParser,
) -> None:
    """
    Register all subcommands with their handler functions.

    Each subcommand gets the global options from the parent parser and sets
    its handler function via set_defaults(func=...).
    """
    commands = [
        ("package", "Build and package a release.", handle_package),
        ("resolve", "Show how target tags resolve.", handle_resolve),
        ("materialize", "Fill manifest placeholders in an output directory.", handle_materialize),
        ("verify", "Check an output directory against its SHA256SUMS.", handle_verify),
        ("info", "Display host and toolchain information.", handle_info),
    ]

    for name, help_text, handler in commands:
        parser = subparsers.add_parser(name, parents=[parent], help=help_text)
        parser.set_defaults(func=handler)

    _add_package_options(subparsers.choices["package"])

    resolve_parser = subparsers.choices["resolve"]
    resolve_parser.add_argument("--targets", type=str, default=None,
                                help="Comma-separated target tags.")

    materialize_parser = subparsers.choices["materialize"]
    _add_output_dir(materialize_parser)
    materialize_parser.add_argument("--url-base", type=str, default=None, dest="url_base",
                                    help="Base download URL.")

    _add_output_dir(subparsers.choices["verify"])


def build_parser() -> argparse.ArgumentParser:
    parent = _build_global_parser()
    root_parser = argparse.ArgumentParser(
        prog="relforge",
        description="relforge: release build and packaging orchestrator for Cargo workspaces.",
        parents=[parent],
    )
    subparsers = root_parser.add_subparsers(dest="command")
    _register_subcommands(subparsers, parent)
    return root_parser


def main() -> None:
    """
    Main CLI entrypoint, referenced by pyproject.toml's [project.scripts].

    If no subcommand is given, we show help and exit with USER_ERROR.
    """
    try:
        check_minimum_python()
    except RuntimeError as err:
        sys.stderr.write(f"{err}\n")
        sys.exit(RUNTIME_ERROR)

    root_parser = build_parser()
    args = root_parser.parse_args()

    if not hasattr(args, "func") or args.func is None:
        root_parser.print_help()
        sys.exit(USER_ERROR)

    exit_code = args.func(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
