# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Subcommand handlers for the relforge CLI.

Each function here corresponds to one CLI subcommand and returns an exit
code. Diagnostics go through the structured logger; the only plain text
written to stdout is command output meant for people (the release summary,
the resolved tag list).
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from relforge.cli.exit_codes import (
    BUILD_FAILED,
    CONFIG_ERROR,
    RUNTIME_ERROR,
    SUCCESS,
    USER_ERROR,
    VALIDATION_ERROR,
)
from relforge.config.exceptions import ConfigError
from relforge.config.loader import apply_release_overrides, load_config
from relforge.config.schema import RelforgeConfig
from relforge.errors import OutputDirectoryError, RelforgeError
from relforge.logging.logger import get_logger, set_log_level
from relforge.manifests.materializer import (
    discover_artifacts,
    discover_manifests,
    materialize_all,
)
from relforge.release.checksums import verify_checksums
from relforge.release.orchestrator import run_release
from relforge.release.summary import render_summary
from relforge.runtime.environment import detect_host
from relforge.targets.resolver import resolve_targets, split_tags
from relforge.utils.paths import resolve_under


def _load(
    args: argparse.Namespace,
    command_name: str,
) -> tuple[int, Optional[RelforgeConfig], logging.Logger]:
    """
    The shared setup every command needs: load config, settle logging.

    Returns (exit_code, config, logger). If exit_code is not SUCCESS the
    caller returns it immediately.
    """
    logger = get_logger(f"relforge.cli.{command_name}", log_level=args.log_level or "INFO")

    try:
        config = load_config(Path(args.config) if args.config is not None else None)
    except ConfigError as err:
        logger.error(
            "Configuration error",
            extra={"command": command_name, "error": str(err)},
        )
        return CONFIG_ERROR, None, logger

    global_config = config.global_config
    log_file = Path(global_config.log_file) if global_config.log_file else None
    set_log_level(args.log_level or global_config.log_level, log_file=log_file)

    if args.config is None:
        logger.debug("No config provided, running with defaults", extra={"command": command_name})
    return SUCCESS, config, logger


def _release_overrides(args: argparse.Namespace, config: RelforgeConfig) -> dict[str, Any]:
    """Translate `package` flags into release-section overrides. Unset flags stay None."""
    targets: Optional[list[str]] = split_tags(args.targets) if args.targets is not None else None
    extra_tags = [tag for flag, tag in ((args.deb, "linux-deb"), (args.rpm, "linux-rpm")) if flag]
    if extra_tags:
        targets = list(targets if targets is not None else config.release.targets) + extra_tags

    return {
        "project_root": args.project_root,
        "packages": split_tags(args.packages) if args.packages is not None else None,
        "targets": targets,
        "cpu_flavors": split_tags(args.cpu_flavors) if args.cpu_flavors is not None else None,
        "output_dir": args.output_dir,
        "url_base": args.url_base,
        "archive_format": args.archive_format,
        "verbose": True if args.verbose else None,
        "raw_only": True if args.raw_only else None,
        "host_alias": True if args.host_alias else None,
        "provision": False if args.no_provision else None,
    }


def handle_package(args: argparse.Namespace) -> int:
    """Resolve, provision, build, package and materialize one release."""
    exit_code, config, logger = _load(args, "package")
    if exit_code != SUCCESS or config is None:
        return exit_code

    try:
        config = apply_release_overrides(config, _release_overrides(args, config))
    except ConfigError as err:
        logger.error("Invalid command-line override", extra={"error": str(err)})
        return CONFIG_ERROR

    try:
        host = detect_host()
        logger.info("Host detected", extra={"os": host.os_tag, "arch": host.arch, "triple": host.triple})
        report = run_release(config, host, dry_run=args.dry_run)
    except OutputDirectoryError as err:
        logger.error("Unsafe output directory", extra={"error": str(err)})
        return USER_ERROR
    except RelforgeError as err:
        logger.error("Release aborted", extra={"error": str(err)})
        return USER_ERROR
    except Exception as err:
        logger.error("Runtime error", extra={"command": "package", "error": str(err)}, exc_info=True)
        return RUNTIME_ERROR

    sys.stdout.write(render_summary(report))
    sys.stdout.flush()
    return SUCCESS if report.succeeded else BUILD_FAILED


def handle_resolve(args: argparse.Namespace) -> int:
    """Print the concrete tags a tag list resolves to, one per line."""
    exit_code, config, logger = _load(args, "resolve")
    if exit_code != SUCCESS or config is None:
        return exit_code

    raw = args.targets if args.targets is not None else config.release.targets
    resolution = resolve_targets(raw)
    for tag in resolution.tags:
        sys.stdout.write(tag + "\n")
    sys.stdout.flush()
    logger.info(
        "Resolution complete",
        extra={"tags": len(resolution.tags), "warnings": len(resolution.warnings)},
    )
    return SUCCESS


def _output_dir(args: argparse.Namespace, config: RelforgeConfig) -> Path:
    if args.output_dir is not None:
        return Path(args.output_dir).resolve()
    project_root = resolve_under(Path.cwd(), config.release.project_root)
    return resolve_under(project_root, config.release.output_dir)


def handle_materialize(args: argparse.Namespace) -> int:
    """Fill manifests of an existing output directory from its artifacts."""
    exit_code, config, logger = _load(args, "materialize")
    if exit_code != SUCCESS or config is None:
        return exit_code

    if args.url_base is not None:
        try:
            config = apply_release_overrides(config, {"url_base": args.url_base})
        except ConfigError as err:
            logger.error("Invalid --url-base", extra={"error": str(err)})
            return CONFIG_ERROR

    url_base = config.release.url_base
    if not url_base:
        logger.error("A base URL is required (--url-base or RELFORGE_URL_BASE)")
        return USER_ERROR

    output_dir = _output_dir(args, config)
    if not output_dir.is_dir():
        logger.error("Output directory not found", extra={"path": str(output_dir)})
        return USER_ERROR

    manifests = discover_manifests(output_dir)
    if not manifests:
        logger.warning("No manifests found", extra={"path": str(output_dir)})
        return SUCCESS

    if args.dry_run:
        for manifest in manifests:
            sys.stdout.write(f"{manifest.path.relative_to(output_dir)}\n")
        return SUCCESS

    try:
        results, failures = materialize_all(manifests, discover_artifacts(output_dir), url_base)
    except Exception as err:
        logger.error("Materialization failed", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR

    for result in results:
        sys.stdout.write(f"{result.manifest.path.relative_to(output_dir)} <- {result.artifact.name}\n")
    sys.stdout.flush()
    return VALIDATION_ERROR if failures else SUCCESS


def handle_verify(args: argparse.Namespace) -> int:
    """Re-check every file listed in SHA256SUMS."""
    exit_code, config, logger = _load(args, "verify")
    if exit_code != SUCCESS or config is None:
        return exit_code

    output_dir = _output_dir(args, config)
    if not output_dir.is_dir():
        logger.error("Output directory not found", extra={"path": str(output_dir)})
        return USER_ERROR

    try:
        result = verify_checksums(output_dir)
    except OSError as err:
        logger.error("Verification failed", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR

    if not result.is_valid:
        logger.error(
            "Integrity check failed",
            extra={
                "mismatches": result.mismatches,
                "missing": result.missing_files,
                "errors": result.errors,
            },
        )
        return VALIDATION_ERROR

    logger.info("Integrity check passed", extra={"checked_count": result.checked_count})
    return SUCCESS


def handle_info(args: argparse.Namespace) -> int:
    """Display host, toolchain and package manager information."""
    exit_code, config, logger = _load(args, "info")
    if exit_code != SUCCESS or config is None:
        return exit_code

    from relforge import __version__
    from relforge.runtime.environment import get_system_info
    from relforge.toolchain.package_manager import detect_package_manager

    system_info = get_system_info()
    host = detect_host()
    manager = detect_package_manager()

    logger.info(
        "System information",
        extra={
            "relforge_version": __version__,
            "python_version": system_info.python_version,
            "platform": system_info.platform,
            "architecture": system_info.architecture,
            "hostname": system_info.hostname,
            "host_triple": host.triple,
            "package_manager": manager.name if manager is not None else None,
            "config": args.config,
        },
    )
    return SUCCESS
