"""CLI entry point for Sandbox Persistence.

Usage:
    python -m sandbox_persistence status [--json]
    python -m sandbox_persistence mount
    python -m sandbox_persistence sync [--background] [--poll-interval S] [--max-polls N]
    python -m sandbox_persistence restore [--force]
    python -m sandbox_persistence schedule [--interval S] [--iterations N]

Commands:
    status    Show configuration, mount state and last backup time
    mount     Mount the backup bucket
    sync      Back up config, workspace and skills to the bucket
    restore   Restore the latest backup into the sandbox
    schedule  Run fire-and-forget backups periodically

Bucket settings come from R2_ACCESS_KEY_ID, R2_SECRET_ACCESS_KEY,
CF_ACCOUNT_ID and R2_BUCKET_NAME.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from sandbox_persistence import (
    MountCoordinator,
    RestoreManager,
    StorageConfig,
    SyncOrchestrator,
    __version__,
    get_backend,
    run_periodic,
)
from sandbox_persistence.backends import SandboxBackend
from sandbox_persistence.sync.orchestrator import DEFAULT_MAX_POLLS, DEFAULT_POLL_INTERVAL
from sandbox_persistence.sync.scheduler import DEFAULT_SCHEDULE_INTERVAL
from sandbox_persistence.utils.logging import configure_root_logger


def setup_logging(
    verbose: bool = False,
    json_output: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """Configure logging for CLI output."""
    level = logging.DEBUG if verbose else logging.INFO
    configure_root_logger(level=level, json_output=json_output, log_file=log_file)


def make_backend(args: argparse.Namespace) -> SandboxBackend:
    """Build the backend selected on the command line."""
    if args.backend == "docker":
        return get_backend("docker", container=args.container)
    return get_backend("local")


async def cmd_status(args: argparse.Namespace, sandbox: SandboxBackend, config: StorageConfig) -> int:
    """Handle the 'status' command.

    Args:
        args: Parsed CLI arguments
        sandbox: Backend to query
        config: Storage settings

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    status = {
        "configured": config.is_configured,
        "bucket": config.bucket_name,
        "mount_path": str(config.mount_path),
        "mounted": False,
        "last_sync": None,
    }
    if config.is_configured:
        coordinator = MountCoordinator(sandbox)
        status["mounted"] = await coordinator.is_mounted(config.mount_path)
        if status["mounted"]:
            orchestrator = SyncOrchestrator(sandbox, config, mount_coordinator=coordinator)
            status["last_sync"] = await orchestrator.get_last_sync()

    if args.json:
        print(json.dumps(status, indent=2))
    else:
        print(f"Configured: {status['configured']}")
        print(f"Bucket: {status['bucket']}")
        print(f"Mount path: {status['mount_path']}")
        print(f"Mounted: {status['mounted']}")
        print(f"Last sync: {status['last_sync'] or 'never'}")
    return 0


async def cmd_mount(args: argparse.Namespace, sandbox: SandboxBackend, config: StorageConfig) -> int:
    """Handle the 'mount' command."""
    if not config.is_configured:
        print("Error: R2 storage is not configured", file=sys.stderr)
        return 1
    if await MountCoordinator(sandbox).ensure_mounted(config):
        print(f"Bucket '{config.bucket_name}' mounted at: {config.mount_path}")
        return 0
    print(f"Failed to mount bucket '{config.bucket_name}'", file=sys.stderr)
    return 1


async def cmd_sync(args: argparse.Namespace, sandbox: SandboxBackend, config: StorageConfig) -> int:
    """Handle the 'sync' command - blocking unless --background."""
    orchestrator = SyncOrchestrator(
        sandbox,
        config,
        poll_interval=args.poll_interval,
        max_polls=args.max_polls,
    )

    if args.background:
        await orchestrator.fire_and_forget()
        print("Sync started in background")
        return 0

    result = await orchestrator.sync()
    if result.success:
        print(f"Sync complete: {result.last_sync}")
        return 0
    print(f"Sync failed: {result.error}", file=sys.stderr)
    if result.details:
        print(f"  {result.details}", file=sys.stderr)
    return 1


async def cmd_restore(args: argparse.Namespace, sandbox: SandboxBackend, config: StorageConfig) -> int:
    """Handle the 'restore' command."""
    result = await RestoreManager(sandbox, config).restore(force=args.force)
    if not result.success:
        print(f"Restore failed: {result.error}", file=sys.stderr)
        if result.details:
            print(f"  {result.details}", file=sys.stderr)
        return 1
    if result.restored:
        print(f"Restored backup from {result.last_sync}")
    else:
        print(f"Nothing restored: {result.details}")
    return 0


async def cmd_schedule(args: argparse.Namespace, sandbox: SandboxBackend, config: StorageConfig) -> int:
    """Handle the 'schedule' command."""
    orchestrator = SyncOrchestrator(sandbox, config)
    cycles = await run_periodic(orchestrator, interval=args.interval, iterations=args.iterations)
    print(f"Ran {cycles} backup cycle(s)")
    return 0


COMMANDS = {
    "status": cmd_status,
    "mount": cmd_mount,
    "sync": cmd_sync,
    "restore": cmd_restore,
    "schedule": cmd_schedule,
}


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="sandbox_persistence",
        description="Back up and restore sandbox state to an R2 bucket",
    )
    parser.add_argument(
        "--version", action="version",
        version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable verbose output"
    )
    parser.add_argument(
        "--json-logs", action="store_true",
        help="Emit logs as JSON lines"
    )
    parser.add_argument(
        "--log-file",
        help="Also write logs to this file"
    )
    parser.add_argument(
        "--backend", choices=["local", "docker"], default="local",
        help="Where commands run (default: local)"
    )
    parser.add_argument(
        "--container",
        help="Container name or id (required with --backend docker)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    status_parser = subparsers.add_parser("status", help="Show backup status")
    status_parser.add_argument("--json", action="store_true", help="Output as JSON")

    subparsers.add_parser("mount", help="Mount the backup bucket")

    sync_parser = subparsers.add_parser("sync", help="Back up sandbox state")
    sync_parser.add_argument(
        "--background", action="store_true",
        help="Start the backup and return without waiting"
    )
    sync_parser.add_argument(
        "--poll-interval", type=float, default=DEFAULT_POLL_INTERVAL,
        help=f"Seconds between completion checks (default: {DEFAULT_POLL_INTERVAL})"
    )
    sync_parser.add_argument(
        "--max-polls", type=int, default=DEFAULT_MAX_POLLS,
        help=f"Maximum completion checks (default: {DEFAULT_MAX_POLLS})"
    )

    restore_parser = subparsers.add_parser("restore", help="Restore the latest backup")
    restore_parser.add_argument(
        "--force", action="store_true",
        help="Restore even if local state looks current"
    )

    schedule_parser = subparsers.add_parser("schedule", help="Run periodic background backups")
    schedule_parser.add_argument(
        "--interval", type=float, default=DEFAULT_SCHEDULE_INTERVAL,
        help=f"Seconds between backups (default: {DEFAULT_SCHEDULE_INTERVAL:.0f})"
    )
    schedule_parser.add_argument(
        "--iterations", type=int,
        help="Stop after this many backups (default: run forever)"
    )

    return parser


def main(argv=None) -> int:
    """Main entry point for the CLI.

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    if args.backend == "docker" and not args.container:
        parser.error("--container is required with --backend docker")

    setup_logging(verbose=args.verbose, json_output=args.json_logs, log_file=args.log_file)

    handler = COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    sandbox = make_backend(args)
    config = StorageConfig.from_env()
    try:
        return asyncio.run(handler(args, sandbox, config))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
