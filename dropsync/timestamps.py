"""Modification-time comparison with a fixed tolerance."""

from enum import Enum

# FAT and some network shares store mtimes with 2 second resolution
MTIME_TOLERANCE = 2.0


class AgeRelation(Enum):
    """Age of one file relative to another."""

    OLDER = "older"
    SAME = "same"
    NEWER = "newer"


def compare(a: float, b: float, tolerance: float = MTIME_TOLERANCE) -> AgeRelation:
    """Compare two modification timestamps.

    Args:
        a: Timestamp of the first file (seconds since epoch)
        b: Timestamp of the second file
        tolerance: Differences up to this many seconds count as the same

    Returns:
        The age of ``a`` relative to ``b``
    """
    if abs(a - b) <= tolerance:
        return AgeRelation.SAME
    return AgeRelation.NEWER if a > b else AgeRelation.OLDER

