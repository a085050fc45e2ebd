"""Human decision point for trees that cannot be resolved automatically."""

import os
import subprocess
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple

from dropsync.logging_setup import get_logger
from dropsync.resolver import TreeDiff
from dropsync.scanner import TreeSnapshot

logger = get_logger()

# Number of file names listed per category before the list is truncated
MAX_LISTED_FILES = 10


class ConflictChoice(Enum):
    """Decision returned by a conflict prompt."""

    KEEP_LEFT = "keep_left"
    KEEP_RIGHT = "keep_right"
    ABORT = "abort"


class ConflictUnresolved(Exception):
    """Raised when the user declines to pick a side."""

    pass


@dataclass
class SideSummary:
    """What one side of a conflicting pair looks like."""

    label: str
    root: Path
    file_count: int
    newer: List[str] = field(default_factory=list)
    older: List[str] = field(default_factory=list)
    extra: List[str] = field(default_factory=list)


def summarize(
    diff: TreeDiff, left: TreeSnapshot, right: TreeSnapshot
) -> Tuple[SideSummary, SideSummary]:
    """Build the left and right summaries shown to the user."""
    left_summary = SideSummary(
        label=left.side.value,
        root=left.root,
        file_count=len(left),
        newer=list(diff.newer_left),
        older=list(diff.newer_right),
        extra=list(diff.only_left),
    )
    right_summary = SideSummary(
        label=right.side.value,
        root=right.root,
        file_count=len(right),
        newer=list(diff.newer_right),
        older=list(diff.newer_left),
        extra=list(diff.only_right),
    )
    return left_summary, right_summary


def format_summary(summary: SideSummary) -> str:
    """Render one side's summary as indented text."""
    lines = [f"{summary.label.upper()}: {summary.root} ({summary.file_count} files)"]
    for title, paths in (
        ("newer here", summary.newer),
        ("older here", summary.older),
        ("only here", summary.extra),
    ):
        if not paths:
            continue
        lines.append(f"  {title}: {len(paths)}")
        for path in paths[:MAX_LISTED_FILES]:
            lines.append(f"    {path}")
        if len(paths) > MAX_LISTED_FILES:
            lines.append(f"    ... and {len(paths) - MAX_LISTED_FILES} more")
    return "\n".join(lines)


def parse_choice(reply: str) -> Optional[str]:
    """Parse a prompt reply by its first letter.

    Returns:
        One of "l", "m", "o", "a", or None if the reply is not understood
    """
    reply = reply.strip().lower()
    if reply and reply[0] in ("l", "m", "o", "a"):
        return reply[0]
    return None


def open_in_file_manager(path: Path) -> None:
    """Open a directory in the platform's file manager without waiting for it."""
    logger.info(f"Opening {path}")
    if sys.platform == "win32":
        os.startfile(str(path))  # type: ignore[attr-defined]
    elif sys.platform == "darwin":
        subprocess.Popen(["open", str(path)])
    else:
        subprocess.Popen(["xdg-open", str(path)])


class ConflictPrompt:
    """Interface the executor calls when neither tree is authoritative."""

    def ask(self, left_summary: SideSummary, right_summary: SideSummary) -> ConflictChoice:
        raise NotImplementedError


class InteractivePrompt(ConflictPrompt):
    """Asks on the terminal which side to keep."""

    def __init__(
        self,
        input_func: Callable[[str], str] = input,
        output_func: Callable[[str], None] = print,
        opener: Callable[[Path], None] = open_in_file_manager,
    ):
        self.input_func = input_func
        self.output_func = output_func
        self.opener = opener

    def ask(self, left_summary: SideSummary, right_summary: SideSummary) -> ConflictChoice:
        self.output_func("\nThe two folders have diverged and neither is clearly newer.\n")
        self.output_func(format_summary(left_summary))
        self.output_func(format_summary(right_summary))

        question = "\nKeep [l]ocal, keep [m]irror, [o]pen both folders, or [a]bort? "
        while True:
            try:
                reply = self.input_func(question)
            except EOFError:
                return ConflictChoice.ABORT

            choice = parse_choice(reply)
            if choice == "l":
                return ConflictChoice.KEEP_LEFT
            if choice == "m":
                return ConflictChoice.KEEP_RIGHT
            if choice == "a":
                return ConflictChoice.ABORT
            if choice == "o":
                for root in (left_summary.root, right_summary.root):
                    try:
                        self.opener(root)
                    except OSError as e:
                        self.output_func(f"Could not open {root}: {e}")


class ScriptedPrompt(ConflictPrompt):
    """Returns pre-recorded decisions in order."""

    def __init__(self, choices: Iterable[ConflictChoice]):
        self.choices = list(choices)
        self.asked: List[Tuple[SideSummary, SideSummary]] = []

    def ask(self, left_summary: SideSummary, right_summary: SideSummary) -> ConflictChoice:
        self.asked.append((left_summary, right_summary))
        if not self.choices:
            return ConflictChoice.ABORT
        return self.choices.pop(0)
