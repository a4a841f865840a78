"""Build progress signals.

bootc-image-builder runs osbuild, whose log output names the pipeline
stage being executed. Recognized stage markers are translated into
coarse progress increments for a progress display.
"""

from __future__ import annotations

from typing import Protocol

# Checked in order; the first marker found in a chunk wins
PROGRESS_MARKERS: tuple[tuple[str, int], ...] = (
    ("org.osbuild.rpm", 8),
    ("org.osbuild.selinux", 25),
    ("org.osbuild.ostree.config", 48),
    ("org.osbuild.qemu", 59),
    ("Build complete!", 98),
)

# Fixed increments reported before log streaming starts
PULL_INCREMENT = 4
REMOVE_PRIOR_INCREMENT = 5
START_INCREMENT = 6
WAIT_INCREMENT = 7

# Negative increment telling progress displays that the task is over
COMPLETE_INCREMENT = -1


class ProgressReporter(Protocol):
    """Receives progress increments from a build."""

    def report(self, increment: float) -> None:
        """Report a progress increment."""
        ...


class NullProgress:
    """ProgressReporter that ignores all increments."""

    def report(self, increment: float) -> None:
        pass


def progress_increment(chunk: str) -> int | None:
    """Map a chunk of builder log output to a progress increment.

    Args:
        chunk: Log text as delivered by the container engine.

    Returns:
        Increment of the first marker contained in the chunk, or None.
    """
    if not chunk:
        return None
    for marker, increment in PROGRESS_MARKERS:
        if marker in chunk:
            return increment
    return None


__all__ = [
    "COMPLETE_INCREMENT",
    "PROGRESS_MARKERS",
    "PULL_INCREMENT",
    "REMOVE_PRIOR_INCREMENT",
    "START_INCREMENT",
    "WAIT_INCREMENT",
    "NullProgress",
    "ProgressReporter",
    "progress_increment",
]
