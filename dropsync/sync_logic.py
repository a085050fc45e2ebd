"""Sync executor: mirrors the authoritative tree onto the other one."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from dropsync.conflict import (
    ConflictChoice,
    ConflictPrompt,
    ConflictUnresolved,
    InteractivePrompt,
    summarize,
)
from dropsync.file_ops import FileOps
from dropsync.logging_setup import get_logger
from dropsync.resolver import DirectionalVerdict, diff_trees
from dropsync.scanner import STAGING_DIRNAME, TreeSnapshot
from dropsync.timestamps import MTIME_TOLERANCE, AgeRelation, compare

logger = get_logger()


class SyncAction(Enum):
    """Sync actions to perform."""

    COPY_LEFT_TO_RIGHT = "COPY_LEFT_TO_RIGHT"
    COPY_RIGHT_TO_LEFT = "COPY_RIGHT_TO_LEFT"
    DELETE_LEFT = "DELETE_LEFT"
    DELETE_RIGHT = "DELETE_RIGHT"


COPY_ACTIONS = (SyncAction.COPY_LEFT_TO_RIGHT, SyncAction.COPY_RIGHT_TO_LEFT)


@dataclass
class SyncJob:
    """A single sync action to perform."""

    action: SyncAction
    file_path: str
    src_path: Optional[Path] = None
    dst_path: Optional[Path] = None
    details: Optional[str] = None
    # Set when dst_path is blocked by a path of the other type until deletes have run
    stage_path: Optional[Path] = None


@dataclass
class SyncReport:
    """What an apply call did."""

    verdict: DirectionalVerdict
    applied: DirectionalVerdict
    jobs: List[SyncJob] = field(default_factory=list)
    copied: int = 0
    deleted: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.copied or self.deleted)


def is_blocked(dst_root: Path, dst_path: Path) -> bool:
    """Check if a file cannot be written at dst_path because of a path of the other type.

    That is the case when dst_path is a directory, or when one of its parents
    below dst_root is a file.
    """
    if dst_path.is_dir():
        return True
    parent = dst_path.parent
    while parent != dst_root and dst_root in parent.parents:
        if parent.exists() and not parent.is_dir():
            return True
        parent = parent.parent
    return False


def plan_jobs(
    verdict: DirectionalVerdict,
    left: TreeSnapshot,
    right: TreeSnapshot,
    tolerance: float = MTIME_TOLERANCE,
) -> List[SyncJob]:
    """Generate the copy and delete jobs that make one tree mirror the other.

    Every copy job precedes every delete job in the returned list. Copies
    whose destination is blocked by a directory (or by a file where a
    directory is needed) get a ``stage_path`` under the destination's
    staging directory.

    Args:
        verdict: LEFT_NEWER, RIGHT_NEWER or EQUAL
        left: Left snapshot
        right: Right snapshot
        tolerance: Timestamp tolerance used to skip unchanged files

    Returns:
        List of SyncJob objects

    Raises:
        ValueError: If called with CONFLICT
    """
    if verdict is DirectionalVerdict.EQUAL:
        return []
    if verdict is DirectionalVerdict.CONFLICT:
        raise ValueError("Cannot plan jobs for an unresolved conflict")

    if verdict is DirectionalVerdict.LEFT_NEWER:
        source, dest = left, right
        copy_action, delete_action = SyncAction.COPY_LEFT_TO_RIGHT, SyncAction.DELETE_RIGHT
    else:
        source, dest = right, left
        copy_action, delete_action = SyncAction.COPY_RIGHT_TO_LEFT, SyncAction.DELETE_LEFT

    staging_root = dest.root / STAGING_DIRNAME
    copies = []
    for record in source:
        existing = dest.get(record.relative_path)
        if existing is not None:
            # Size is only a cheap pre-check; age decides
            unchanged = existing.size == record.size and (
                compare(record.mtime, existing.mtime, tolerance) is AgeRelation.SAME
            )
            if unchanged:
                continue
            details = "changed"
        else:
            details = "added"

        job = SyncJob(
            action=copy_action,
            file_path=record.relative_path,
            src_path=source.absolute(record.relative_path),
            dst_path=dest.absolute(record.relative_path),
            details=details,
        )
        if is_blocked(dest.root, job.dst_path):
            job.stage_path = staging_root.joinpath(*record.relative_path.split("/"))
            job.details = "replaces a path of the other type"
        copies.append(job)

    deletes = [
        SyncJob(
            action=delete_action,
            file_path=path,
            dst_path=dest.absolute(path),
            details="absent from authoritative tree",
        )
        for path in sorted(dest.paths() - source.paths())
    ]

    return copies + deletes


class SyncExecutor:
    """Applies a directional verdict to a pair of roots."""

    def __init__(
        self,
        file_ops: Optional[FileOps] = None,
        prompt: Optional[ConflictPrompt] = None,
        tolerance: float = MTIME_TOLERANCE,
    ):
        """Initialize sync executor.

        Args:
            file_ops: File operations layer
            prompt: Asked when the verdict is CONFLICT
            tolerance: Timestamp tolerance in seconds
        """
        self.file_ops = file_ops or FileOps()
        self.prompt = prompt or InteractivePrompt()
        self.tolerance = tolerance

    def decide_conflict(self, left: TreeSnapshot, right: TreeSnapshot) -> DirectionalVerdict:
        """Ask the prompt which side wins.

        Raises:
            ConflictUnresolved: If the user aborts
        """
        diff = diff_trees(left, right, self.tolerance)
        left_summary, right_summary = summarize(diff, left, right)
        choice = self.prompt.ask(left_summary, right_summary)
        logger.info(f"Conflict between {left.root} and {right.root}: user chose {choice.value}")

        if choice is ConflictChoice.KEEP_LEFT:
            return DirectionalVerdict.LEFT_NEWER
        if choice is ConflictChoice.KEEP_RIGHT:
            return DirectionalVerdict.RIGHT_NEWER
        raise ConflictUnresolved(
            f"Conflict between {left.root} and {right.root} left unresolved"
        )

    def apply(
        self,
        verdict: DirectionalVerdict,
        left_root: Path,
        right_root: Path,
        left_snapshot: TreeSnapshot,
        right_snapshot: TreeSnapshot,
    ) -> SyncReport:
        """Mirror the authoritative tree onto the other.

        All copies complete before any deletion starts, so an interrupted or
        failed pass never removes data that only existed in one place. Copies
        blocked by a path of the other type are written to the staging
        directory first and moved into place once the deletions have cleared
        the way.

        Raises:
            ConflictUnresolved: If the verdict is CONFLICT and the user aborts
            FileOpsError: If a copy, delete or move fails; remaining jobs are skipped
        """
        applied = verdict
        if verdict is DirectionalVerdict.CONFLICT:
            applied = self.decide_conflict(left_snapshot, right_snapshot)

        jobs = plan_jobs(applied, left_snapshot, right_snapshot, self.tolerance)
        report = SyncReport(verdict=verdict, applied=applied, jobs=jobs)
        if not jobs:
            logger.info(f"Nothing to do for {left_root} <-> {right_root}")
            return report

        logger.info(f"Executing {len(jobs)} sync jobs ({applied.value})")
        dst_root = Path(right_root) if applied is DirectionalVerdict.LEFT_NEWER else Path(left_root)
        staging_root = dst_root / STAGING_DIRNAME
        staged = [job for job in jobs if job.stage_path is not None]

        # Leftovers from an interrupted pass are stale copies of files still in the source
        self.file_ops.remove_tree(staging_root)

        for job in jobs:
            if job.action in COPY_ACTIONS:
                self.file_ops.copy_file(job.src_path, job.stage_path or job.dst_path)
                report.copied += 1

        for job in jobs:
            if job.action not in COPY_ACTIONS:
                self.file_ops.delete_file(job.dst_path)
                self.file_ops.prune_empty_dirs(job.dst_path.parent, dst_root)
                report.deleted += 1

        for job in staged:
            self.file_ops.move_file(job.stage_path, job.dst_path)
        if staged:
            self.file_ops.remove_tree(staging_root)

        return report
