"""Dry run output formatter with visual diagrams."""

from typing import Dict, List

from dropsync.resolver import DirectionalVerdict
from dropsync.sync_logic import SyncAction, SyncJob


class DryRunFormatter:
    """Formats the jobs a sync pass would run, without running them."""

    ACTION_SYMBOLS = {
        SyncAction.COPY_LEFT_TO_RIGHT: "->",
        SyncAction.COPY_RIGHT_TO_LEFT: "<-",
        SyncAction.DELETE_LEFT: "[X]",
        SyncAction.DELETE_RIGHT: "[X]",
    }

    ACTION_DESCRIPTIONS = {
        SyncAction.COPY_LEFT_TO_RIGHT: "Copy LOCAL -> MIRROR",
        SyncAction.COPY_RIGHT_TO_LEFT: "Copy MIRROR -> LOCAL",
        SyncAction.DELETE_LEFT: "Delete from LOCAL",
        SyncAction.DELETE_RIGHT: "Delete from MIRROR",
    }

    VERDICT_DESCRIPTIONS = {
        DirectionalVerdict.LEFT_NEWER: "local copy is newer",
        DirectionalVerdict.RIGHT_NEWER: "mirror copy is newer",
        DirectionalVerdict.EQUAL: "already in sync",
        DirectionalVerdict.CONFLICT: "conflict - would ask which side to keep",
    }

    def __init__(self, left_name: str = "LOCAL", right_name: str = "MIRROR"):
        """Initialize formatter.

        Args:
            left_name: Display name for left side
            right_name: Display name for right side
        """
        self.left_name = left_name
        self.right_name = right_name

    def format_dry_run_output(
        self, app_name: str, verdict: DirectionalVerdict, jobs: List[SyncJob]
    ) -> str:
        """Format dry run output for one app entry.

        Args:
            app_name: Name of the app entry
            verdict: Resolved verdict for the entry
            jobs: Jobs that would be executed

        Returns:
            Formatted output string
        """
        output = []
        output.append("=" * 80)
        output.append(f"DRY RUN - {app_name}: {self.VERDICT_DESCRIPTIONS[verdict]}")
        output.append("=" * 80)

        if not jobs:
            if verdict is not DirectionalVerdict.CONFLICT:
                output.append("[OK] No synchronization needed")
            return "\n".join(output)

        output.append(f"The following {len(jobs)} operations would be performed:")
        output.append("")

        for action, action_jobs in self._group_jobs_by_action(jobs).items():
            output.append(f"{self.ACTION_DESCRIPTIONS[action]}: {len(action_jobs)} files")
            for job in action_jobs:
                output.append(self._format_job_diagram(job))
            output.append("")

        return "\n".join(output).rstrip()

    def _group_jobs_by_action(self, jobs: List[SyncJob]) -> Dict[SyncAction, List[SyncJob]]:
        """Group jobs by action type, keeping job order within each group."""
        grouped: Dict[SyncAction, List[SyncJob]] = {}
        for job in jobs:
            grouped.setdefault(job.action, []).append(job)
        return grouped

    def _format_job_diagram(self, job: SyncJob) -> str:
        """Format a single job as a one-line diagram."""
        symbol = self.ACTION_SYMBOLS[job.action]
        filename = job.file_path

        if job.action == SyncAction.COPY_LEFT_TO_RIGHT:
            return f"  [{self.left_name}] {filename} {symbol} [{self.right_name}]"
        elif job.action == SyncAction.COPY_RIGHT_TO_LEFT:
            return f"  [{self.left_name}] {symbol} {filename} [{self.right_name}]"
        elif job.action == SyncAction.DELETE_LEFT:
            return f"  [{self.left_name}] {filename} {symbol} (delete)"
        else:
            return f"  [{self.right_name}] {filename} {symbol} (delete)"
