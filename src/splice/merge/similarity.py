"""Line-overlap scoring between two versions of a buffer."""

from __future__ import annotations

from collections.abc import Sequence


def split_lines(text: str) -> list[str]:
    """Split on newlines only, so ``"\\n".join(split_lines(t)) == t``."""
    return text.split("\n")


def overlap(base_lines: Sequence[str], other_lines: Sequence[str]) -> float:
    """Return the share of ``other_lines`` found among ``base_lines``.

    Lines are compared after stripping surrounding whitespace. Membership is
    tested against a set built from ``base_lines`` only and repeated lines
    in ``other_lines`` each count, while the denominator is the longer of
    the two sequences. The score is therefore not symmetric:
    ``overlap(a, b)`` and ``overlap(b, a)`` may differ.

    Two empty sequences score ``1.0``; exactly one empty sequence scores
    ``0.0``.
    """
    if not base_lines and not other_lines:
        return 1.0
    if not base_lines or not other_lines:
        return 0.0

    known = {line.strip() for line in base_lines}
    matches = sum(1 for line in other_lines if line.strip() in known)
    return matches / max(len(base_lines), len(other_lines))
