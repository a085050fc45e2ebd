"""Main entry point for dropsync."""

import argparse
import socket
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from dropsync.config_loader import (
    AppEntry,
    ConfigError,
    get_sync_root,
    load_config,
    load_config_from_sync_root,
)
from dropsync.conflict import ConflictPrompt, ConflictUnresolved, InteractivePrompt
from dropsync.dry_run_formatter import DryRunFormatter
from dropsync.file_ops import FileOps, FileOpsError
from dropsync.logging_setup import get_logger, setup_logging
from dropsync.orchestrator import LaunchError, RunAndWatch
from dropsync.resolver import DirectionalVerdict, resolve
from dropsync.scanner import Scanner, Side
from dropsync.sync_logic import SyncExecutor, SyncReport, plan_jobs
from dropsync.timestamps import MTIME_TOLERANCE

logger = get_logger()


class UsageError(Exception):
    """Raised for invalid requests from the command line."""

    pass


class EntryStatus(Enum):
    """Outcome of one app entry's sync pass."""

    SYNCED = "synced"
    UNCHANGED = "unchanged"
    UNRESOLVED = "unresolved"
    FAILED = "failed"
    PREVIEWED = "previewed"


@dataclass
class EntryResult:
    """Result of processing one app entry."""

    name: str
    status: EntryStatus
    message: str = ""
    report: Optional[SyncReport] = None


class SyncRunner:
    """Runs sync passes over resolved app entries, one entry at a time."""

    def __init__(
        self,
        entries: Sequence[AppEntry],
        config_errors: Sequence[Tuple[str, ConfigError]] = (),
        prompt: Optional[ConflictPrompt] = None,
        file_ops: Optional[FileOps] = None,
        dry_run: bool = False,
        tolerance: float = MTIME_TOLERANCE,
        orchestrator_factory: Callable[[], RunAndWatch] = RunAndWatch,
        output_func: Callable[[str], None] = print,
    ):
        """Initialize sync runner.

        Args:
            entries: Resolved, enabled app entries
            config_errors: (name, error) pairs for entries that failed to resolve
            prompt: Asked when an entry's trees conflict
            file_ops: File operations layer
            dry_run: Only report what would be done
            tolerance: Timestamp tolerance in seconds
            orchestrator_factory: Builds the RunAndWatch used by play
            output_func: Where dry run previews are written
        """
        self.entries = sorted(entries, key=lambda entry: entry.name)
        self.config_errors = list(config_errors)
        self.dry_run = dry_run
        self.tolerance = tolerance
        self.orchestrator_factory = orchestrator_factory
        self.output_func = output_func
        self.executor = SyncExecutor(
            file_ops=file_ops, prompt=prompt or InteractivePrompt(), tolerance=tolerance
        )

    def sync_entry(self, entry: AppEntry) -> EntryResult:
        """Run one sync pass for an entry. Errors are contained to the entry."""
        logger.info(f"Syncing app {entry.name}")
        try:
            entry.validate()
            scanner = Scanner(include_only=entry.include_only)
            left = scanner.scan(entry.local_path, Side.LOCAL)
            right = scanner.scan(entry.mirror_path, Side.MIRROR)
            verdict = resolve(left, right, self.tolerance)
            logger.info(f"{entry.name}: {verdict.value}")

            if self.dry_run:
                jobs = []
                if verdict is not DirectionalVerdict.CONFLICT:
                    jobs = plan_jobs(verdict, left, right, self.tolerance)
                formatter = DryRunFormatter()
                self.output_func(formatter.format_dry_run_output(entry.name, verdict, jobs))
                return EntryResult(entry.name, EntryStatus.PREVIEWED, verdict.value)

            report = self.executor.apply(verdict, entry.local_path, entry.mirror_path, left, right)
        except ConflictUnresolved as e:
            logger.info(f"{entry.name} left unsynchronized: {e}")
            return EntryResult(entry.name, EntryStatus.UNRESOLVED, str(e))
        except (ConfigError, FileOpsError, OSError) as e:
            logger.error(f"Sync failed for {entry.name}: {e}")
            return EntryResult(entry.name, EntryStatus.FAILED, str(e))

        if report.changed:
            message = f"{report.applied.value}: copied {report.copied}, deleted {report.deleted}"
            return EntryResult(entry.name, EntryStatus.SYNCED, message, report)
        return EntryResult(entry.name, EntryStatus.UNCHANGED, report.applied.value, report)

    def sync_all(self) -> List[EntryResult]:
        """Sync every entry in alphabetical order.

        Entries whose configuration could not be resolved are reported as
        failed in their alphabetical position.
        """
        pending: List[Tuple[str, object]] = [(entry.name, entry) for entry in self.entries]
        pending.extend(self.config_errors)
        pending.sort(key=lambda item: item[0])

        results = []
        for name, item in pending:
            if isinstance(item, ConfigError):
                logger.error(f"Skipping {name}: {item}")
                results.append(EntryResult(name, EntryStatus.FAILED, str(item)))
            else:
                results.append(self.sync_entry(item))
        return results

    def find_entry(self, name: str) -> AppEntry:
        """Look up an enabled entry by name.

        Raises:
            UsageError: If the entry is unknown, disabled or misconfigured
        """
        for entry in self.entries:
            if entry.name == name:
                return entry
        for error_name, error in self.config_errors:
            if error_name == name:
                raise UsageError(f"App '{name}' is misconfigured: {error}")
        raise UsageError(f"Unknown or disabled app: {name}")

    def play(self, name: str) -> List[EntryResult]:
        """Sync, run the app until it has finished, then sync again.

        Raises:
            UsageError: If the entry does not exist or has no play_path
        """
        entry = self.find_entry(name)
        if entry.play_path is None:
            raise UsageError(f"App '{name}' has no play_path configured")

        results = [self.sync_entry(entry)]
        if results[0].status is EntryStatus.FAILED:
            logger.error(f"Not launching {name}: pre-play sync failed")
            return results
        if self.dry_run:
            logger.info(f"Dry run: would launch {entry.play_path}")
            return results

        orchestrator = self.orchestrator_factory()
        try:
            orchestrator.run_and_wait(entry.play_path, entry.play_root_path, entry.local_path)
        except LaunchError as e:
            logger.error(str(e))
            results.append(EntryResult(name, EntryStatus.FAILED, str(e)))
            return results

        results.append(self.sync_entry(entry))
        return results


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="dropsync",
        description="Keep application data folders in sync through a shared folder",
    )
    parser.add_argument("--config", type=str, help="Path to config file")
    parser.add_argument(
        "--sync-root",
        type=str,
        help="Shared folder base (default: $DROPSYNC_ROOT or ~/Dropbox)",
    )
    parser.add_argument("--hostname", type=str, help="Override the detected hostname")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be synchronized without changing anything",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override the configured log level",
    )

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("sync", help="Sync all enabled apps (default)")
    play_parser = subparsers.add_parser("play", help="Sync, run an app, then sync again")
    play_parser.add_argument("name", help="App name")
    subparsers.add_parser("list", help="List the apps configured for this host")
    return parser


def print_results(results: List[EntryResult]) -> None:
    """Print a one-line summary per entry."""
    for result in results:
        line = f"{result.name}: {result.status.value}"
        if result.message:
            line += f" ({result.message})"
        print(line)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 success, 1 an entry failed, 2 usage or config error, 130 interrupted)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        sync_root = get_sync_root(args.sync_root)
        config = load_config(args.config) if args.config else load_config_from_sync_root(sync_root)
    except ConfigError as e:
        logger.error(f"Config error: {e}")
        return 2

    setup_logging(
        config.log_file_path,
        args.log_level or config.log_level,
        max_bytes=config.log_max_size_mb * 1024 * 1024,
        backup_count=config.log_backup_count,
    )

    hostname = args.hostname or socket.gethostname()
    logger.info(f"Syncing apps on host {hostname}")

    if args.command == "list":
        entries, config_errors = config.app_entries(hostname, sync_root, include_disabled=True)
        for entry in entries:
            suffix = " (disabled)" if entry.disabled else ""
            print(f"{entry.name}: {entry.local_path} <-> {entry.mirror_path}{suffix}")
            if entry.include_only:
                print(f"  include_only: {entry.include_only}")
            if entry.play_path:
                print(f"  play: {entry.play_path}")
        for name, error in config_errors:
            print(f"{name}: {error}")
        return 0

    entries, config_errors = config.app_entries(hostname, sync_root)
    runner = SyncRunner(entries, config_errors, dry_run=args.dry_run)

    try:
        if args.command == "play":
            results = runner.play(args.name)
        else:
            results = runner.sync_all()
    except UsageError as e:
        logger.error(str(e))
        return 2
    except KeyboardInterrupt:
        logger.info("Sync interrupted by user")
        return 130

    print_results(results)
    failed = any(result.status is EntryStatus.FAILED for result in results)
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
