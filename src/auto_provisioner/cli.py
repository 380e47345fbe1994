"""Command-line interface for Auto-Provisioner."""

from __future__ import annotations

import argparse
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config import AppConfig, load_config
from .errors import ProvisioningError
from .interaction import AutoResponseHandler, CLIInteractionHandler, UserInteractionHandler
from .pipeline import PipelineRun
from .release import ReleaseManager
from .utils.logging import configure_logging
from .workflow import ProvisioningWorkflow

logger = logging.getLogger(__name__)


@dataclass
class CLIContext:
    """Context captured from CLI arguments."""

    config: AppConfig
    interaction: UserInteractionHandler


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="auto-provisioner",
        description="Provision a Linux server and deploy an application release.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a JSON config file overriding defaults.",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Enable debug logging.",
    )
    parser.add_argument(
        "--yes", "-y", action="store_true",
        help="Answer every question with its default.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    setup_parser = subparsers.add_parser(
        "setup", help="Run the full server setup workflow"
    )
    setup_parser.add_argument(
        "--allow-non-root", action="store_true",
        help="Do not require root privileges",
    )

    database_parser = subparsers.add_parser(
        "database", help="Set up MySQL and the application's .env"
    )
    database_parser.add_argument(
        "path", nargs="?", default=None,
        help="Application directory (default: current directory)",
    )

    deploy_parser = subparsers.add_parser(
        "deploy", help="Clone a repository as a new release and make it current"
    )
    deploy_parser.add_argument("--repo", required=True, help="Git repository URL")
    deploy_parser.add_argument(
        "--base-path",
        default=None,
        help="Directory holding the releases (default: provision.deploy_dir)",
    )
    deploy_parser.add_argument(
        "--key-path",
        default=None,
        help="Private key used for git over SSH",
    )

    releases_parser = subparsers.add_parser(
        "releases", help="List deployed releases"
    )
    releases_parser.add_argument(
        "path", nargs="?", default=None,
        help="Release base directory (default: provision.deploy_dir)",
    )

    logs_parser = subparsers.add_parser(
        "logs", help="View provisioning run logs"
    )
    logs_parser.add_argument(
        "--list", "-l", action="store_true", dest="list_logs",
        help="List all available logs"
    )
    logs_parser.add_argument(
        "--latest", action="store_true",
        help="Show the latest run log"
    )
    logs_parser.add_argument(
        "--file", "-f", type=str,
        help="Show a specific log file"
    )

    return parser


def _build_context(args: argparse.Namespace) -> CLIContext:
    config = load_config(args.config)
    if args.verbose:
        config.logging.verbose = True
    if args.yes or config.interaction.mode == "auto":
        interaction: UserInteractionHandler = AutoResponseHandler(
            always_confirm=True if config.interaction.auto_confirm else None
        )
    else:
        interaction = CLIInteractionHandler()
    return CLIContext(config=config, interaction=interaction)


def _is_root() -> bool:
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0


def _finish(run: PipelineRun) -> int:
    run.raise_for_status()
    return 0


def handle_logs_command(args: argparse.Namespace, log_dir: Path) -> int:
    """Handle the logs subcommand."""
    if not log_dir.exists():
        print("📁 No provisioning logs found. Run a command first.")
        return 0

    log_files = sorted(log_dir.glob("*.json"), key=lambda p: p.stat().st_mtime, reverse=True)

    if not log_files:
        print("📁 No provisioning logs found.")
        return 0

    if args.list_logs:
        print(f"📁 Provisioning logs in: {log_dir}\n")
        print(f"{'#':<4} {'Status':<12} {'Run':<16} {'Time':<20} {'File'}")
        print("-" * 90)
        for i, log_file in enumerate(log_files, 1):
            try:
                with open(log_file, "r", encoding="utf-8") as f:
                    data = json.load(f)
                status = data.get("status", "unknown")
                name = data.get("name", "?")
                start_time = (data.get("start_time") or "")[:19].replace("T", " ")
                status_emoji = {"completed": "✅", "aborted": "❌", "running": "🔄"}.get(status, "❓")
                print(f"{i:<4} {status_emoji} {status:<10} {name:<16} {start_time:<20} {log_file.name}")
            except (OSError, ValueError):
                print(f"{i:<4} ❓ {'error':<10} {'?':<16} {'?':<20} {log_file.name}")
        return 0

    if args.file:
        target_file = Path(args.file)
        if not target_file.exists():
            target_file = log_dir / args.file
        if not target_file.exists():
            print(f"❌ Log file not found: {args.file}")
            return 1
    else:
        target_file = log_files[0]

    show_log_file(target_file)
    return 0


def show_log_file(log_file: Path) -> None:
    """Display a run log file."""
    with open(log_file, "r", encoding="utf-8") as f:
        data = json.load(f)

    status = data.get("status", "unknown")
    status_emoji = {"completed": "✅", "aborted": "❌", "running": "🔄"}.get(status, "❓")
    outcome_icons = {"succeeded": "✓", "failed": "✗", "skipped": "•"}

    print(f"\n{'='*60}")
    print(f"📄 Provisioning Log: {log_file.name}")
    print(f"{'='*60}")
    print(f"🏷️  Run:        {data.get('name', 'N/A')}")
    print(f"⏰ Started:    {data.get('start_time', 'N/A')}")
    print(f"⏱️  Ended:      {data.get('end_time', 'N/A')}")
    print(f"{status_emoji} Status:     {status}")
    print(f"📊 Steps:      {len(data.get('results', []))}/{len(data.get('steps', []))}")
    print(f"{'='*60}\n")

    for i, result in enumerate(data.get("results", []), 1):
        outcome = result.get("outcome", "?")
        icon = outcome_icons.get(outcome, "?")
        optional = "" if result.get("required", True) else " (optional)"
        print(f"[{i}] {icon} {result.get('step_name', '?')}{optional}: {outcome}")
        if result.get("error"):
            print(f"    ⚠️ {result['error']}")

    print(f"\n{'='*60}")
    print(f"📄 Full log: {log_file}")
    print(f"{'='*60}\n")


def handle_releases_command(args: argparse.Namespace, context: CLIContext) -> int:
    base_path = Path(args.path or context.config.provision.deploy_dir)
    manager = ReleaseManager(link_name=context.config.provision.link_name)
    releases = manager.list_releases(base_path)
    if not releases:
        print(f"📁 No releases found in {base_path}")
        return 0

    current = manager.current_release(base_path)
    current_id = current.version_id if current else None
    print(f"📁 Releases in: {base_path}\n")
    for release in releases:
        marker = "→" if release.version_id == current_id else " "
        print(f" {marker} {release.version_id}")
    return 0


def dispatch_command(args: argparse.Namespace) -> int:
    context = _build_context(args)
    configure_logging(context.config.logging.verbose)

    if args.command == "logs":
        return handle_logs_command(args, Path(context.config.logging.log_dir))

    if args.command == "releases":
        return handle_releases_command(args, context)

    workflow = ProvisioningWorkflow(
        config=context.config,
        interaction_handler=context.interaction,
    )

    if args.command == "setup":
        if not args.allow_non_root and not _is_root():
            logger.error("Setup must be run as root (use --allow-non-root to override)")
            return 1
        return _finish(workflow.run_setup())

    if args.command == "database":
        return _finish(workflow.run_database(args.path or Path.cwd()))

    if args.command == "deploy":
        return _finish(workflow.run_deploy(args.repo, args.base_path, args.key_path))

    raise ValueError(f"Unsupported command: {args.command}")


def run_cli(argv: Optional[list] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return dispatch_command(args)
    except KeyboardInterrupt:
        print("\n⚠️ Interrupted")
        return 130
    except ProvisioningError as exc:
        logger.error(f"❌ {exc}")
        if exc.__cause__ is not None:
            logger.debug("Caused by", exc_info=exc.__cause__)
        return 1
