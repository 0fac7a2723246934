# src/main.py — v1
"""CLI entry point — baseline, upgrade, cleanup commands.

Usage:
    toolchain-upgrader baseline [--check-start]
    toolchain-upgrader upgrade [--step VERSION[=DESCRIPTION] ...]
    toolchain-upgrader cleanup

Exit codes: 0 success, 1 failure, 130 interrupted.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from toolchain_upgrader.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    _setup_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    from toolchain_upgrader.config.settings import ConfigurationError

    try:
        settings = _load_settings(args)
    except (ConfigurationError, ValidationError) as exc:
        logger.error("Invalid configuration: %s", exc)
        return 1

    try:
        return args.func(args, settings)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="toolchain-upgrader",
        description=f"toolchain-upgrader v{__version__} — build-tool upgrade with rollback",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "-C", "--project-dir", type=Path, default=None,
        help="Project directory containing package.json (default: cwd)",
    )
    parser.add_argument(
        "--log-file", type=Path, default=None,
        help="Log artifact path (default: <project>/upgrade.log)",
    )
    parser.add_argument(
        "--log-format", choices=["text", "json"], default=None,
        help="Console log format (default: text)",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- baseline ---
    p_baseline = subparsers.add_parser(
        "baseline", help="Back up the manifest and verify the current build",
    )
    p_baseline.add_argument(
        "--check-start", action="store_true",
        help="Also check that the start script is declared",
    )
    p_baseline.set_defaults(func=_cmd_baseline)

    # --- upgrade ---
    p_upgrade = subparsers.add_parser(
        "upgrade", help="Run the full upgrade with automatic rollback",
    )
    p_upgrade.add_argument(
        "--step", action="append", default=None, metavar="VERSION[=DESCRIPTION]",
        help="Upgrade path entry, repeatable, tried in order (default: configured path)",
    )
    p_upgrade.set_defaults(func=_cmd_upgrade)

    # --- cleanup ---
    p_cleanup = subparsers.add_parser(
        "cleanup", help="Delete backup files left by a previous run",
    )
    p_cleanup.set_defaults(func=_cmd_cleanup)

    return parser


def _load_settings(args: argparse.Namespace):
    """Build Settings from env/.env plus CLI overrides."""
    from toolchain_upgrader.config.settings import load_settings
    from toolchain_upgrader.core.models import UpgradeStep

    overrides: dict[str, object] = {}
    if args.project_dir is not None:
        overrides["project_dir"] = args.project_dir
    if args.log_file is not None:
        overrides["log_file"] = args.log_file
    if args.log_format is not None:
        overrides["log_console_format"] = args.log_format
    if getattr(args, "step", None):
        overrides["upgrade_path"] = [UpgradeStep.parse(raw) for raw in args.step]
    return load_settings(**overrides)


def _open_run_logger(settings, title: str):
    from toolchain_upgrader.logging.logger import UpgradeLogger

    return UpgradeLogger(
        settings.log_path,
        console_format=settings.log_console_format,
        title=title,
    )


def _cmd_baseline(args: argparse.Namespace, settings) -> int:
    """Back up and run one build to establish a baseline."""
    from toolchain_upgrader.pipeline.orchestrator import UpgradeOrchestrator

    with _open_run_logger(settings, f"{settings.target_package} upgrade test") as run_log:
        orchestrator = UpgradeOrchestrator(settings, run_log)
        return 0 if orchestrator.run_baseline(check_start=args.check_start) else 1


def _cmd_upgrade(args: argparse.Namespace, settings) -> int:
    """Run the upgrade; restore the snapshot on every failure path."""
    from toolchain_upgrader.pipeline.orchestrator import UpgradeOrchestrator

    with _open_run_logger(settings, f"{settings.target_package} upgrade process") as run_log:
        orchestrator = UpgradeOrchestrator(settings, run_log)
        try:
            if orchestrator.perform_upgrade():
                run_log.success(f"{settings.target_package} upgrade completed successfully!")
                run_log.log("You can now commit the changes and deploy")
                return 0
            run_log.error("Upgrade failed - restoring backup")
            _restore_after_failure(orchestrator)
            return 1
        except KeyboardInterrupt:
            _restore_after_failure(orchestrator)
            run_log.error("Interrupted by user - backup restored")
            return 130
        except Exception as exc:
            logger.debug("Unexpected error", exc_info=True)
            # Restore first: the failure may be the log artifact itself.
            _restore_after_failure(orchestrator)
            run_log.error(f"Unexpected error: {exc}")
            return 1


def _restore_after_failure(orchestrator) -> None:
    # No snapshot was taken this run: nothing was mutated, and an older
    # backup on disk must not be copied over the live manifest.
    if not orchestrator.state.backed_up:
        orchestrator.log.log("No backup taken during this run, nothing to restore")
        return
    orchestrator.backup.restore()


def _cmd_cleanup(args: argparse.Namespace, settings) -> int:
    """Remove backup files."""
    from toolchain_upgrader.storage.backup import BackupManager

    with _open_run_logger(settings, "Backup cleanup") as run_log:
        BackupManager.from_settings(settings, run_log).cleanup()
    return 0


def _setup_logging(verbose: bool) -> None:
    """Configure diagnostics logging for CLI usage."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


if __name__ == "__main__":
    sys.exit(main())
