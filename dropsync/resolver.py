"""Decides which of two trees is authoritative."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List

from dropsync.logging_setup import get_logger
from dropsync.scanner import TreeSnapshot
from dropsync.timestamps import MTIME_TOLERANCE, AgeRelation, compare

logger = get_logger()


class DirectionalVerdict(Enum):
    """Outcome of comparing two tree snapshots."""

    LEFT_NEWER = "LEFT_NEWER"
    RIGHT_NEWER = "RIGHT_NEWER"
    EQUAL = "EQUAL"
    CONFLICT = "CONFLICT"


@dataclass
class TreeDiff:
    """Per-path differences between a left and a right snapshot."""

    newer_left: List[str] = field(default_factory=list)
    newer_right: List[str] = field(default_factory=list)
    only_left: List[str] = field(default_factory=list)
    only_right: List[str] = field(default_factory=list)
    same: List[str] = field(default_factory=list)

    @property
    def is_identical(self) -> bool:
        """True when both trees hold the same paths with matching timestamps."""
        return not (self.newer_left or self.newer_right or self.only_left or self.only_right)

    def left_is_candidate(self) -> bool:
        """Left never lags and has at least one advantage over right."""
        if self.newer_right:
            return False
        return bool(self.newer_left) or (bool(self.only_left) and not self.only_right)

    def right_is_candidate(self) -> bool:
        """Right never lags and has at least one advantage over left."""
        if self.newer_left:
            return False
        return bool(self.newer_right) or (bool(self.only_right) and not self.only_left)


def diff_trees(
    left: TreeSnapshot, right: TreeSnapshot, tolerance: float = MTIME_TOLERANCE
) -> TreeDiff:
    """Classify every path of two snapshots.

    Only paths present on both sides are compared by age; paths present on
    one side only are recorded as presence differences.
    """
    diff = TreeDiff()
    left_paths = left.paths()
    right_paths = right.paths()

    for path in sorted(left_paths & right_paths):
        relation = compare(left.files[path].mtime, right.files[path].mtime, tolerance)
        if relation is AgeRelation.NEWER:
            diff.newer_left.append(path)
        elif relation is AgeRelation.OLDER:
            diff.newer_right.append(path)
        else:
            diff.same.append(path)

    diff.only_left = sorted(left_paths - right_paths)
    diff.only_right = sorted(right_paths - left_paths)
    return diff


def verdict_for(diff: TreeDiff) -> DirectionalVerdict:
    """Turn a TreeDiff into a verdict.

    A side wins only if it is never older on a shared file and is either
    strictly newer somewhere or a strict superset of the other side. When
    neither or both sides qualify the result is CONFLICT.
    """
    if diff.is_identical:
        return DirectionalVerdict.EQUAL

    left_wins = diff.left_is_candidate()
    right_wins = diff.right_is_candidate()

    if left_wins and not right_wins:
        return DirectionalVerdict.LEFT_NEWER
    if right_wins and not left_wins:
        return DirectionalVerdict.RIGHT_NEWER
    return DirectionalVerdict.CONFLICT


def resolve(
    left: TreeSnapshot, right: TreeSnapshot, tolerance: float = MTIME_TOLERANCE
) -> DirectionalVerdict:
    """Decide whether left, right, or neither tree is authoritative."""
    diff = diff_trees(left, right, tolerance)
    verdict = verdict_for(diff)
    logger.debug(
        f"Resolved {left.root} vs {right.root}: {verdict.value} "
        f"(newer_left={len(diff.newer_left)}, newer_right={len(diff.newer_right)}, "
        f"only_left={len(diff.only_left)}, only_right={len(diff.only_right)})"
    )
    return verdict
