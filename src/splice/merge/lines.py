"""Positional line-by-line reconciliation, the last rung of the merge ladder."""

from __future__ import annotations

import logging

from splice.merge.similarity import overlap, split_lines

logger = logging.getLogger(__name__)

DEFAULT_OVERLAP_FLOOR = 0.3


def merge_by_lines(
    source: str,
    candidate: str,
    *,
    overlap_floor: float = DEFAULT_OVERLAP_FLOOR,
) -> str:
    """Align ``source`` and ``candidate`` by line index.

    Below ``overlap_floor`` the texts are too far apart to align and the
    candidate is returned whole. Otherwise each position keeps the source
    line if it matches the candidate line once trimmed, and takes the
    candidate line if not. Past the end of the shorter side the longer
    side's lines are copied through.

    There is no insertion or deletion detection: one extra line in the
    candidate shifts every later comparison by one.
    """
    source_lines = split_lines(source)
    candidate_lines = split_lines(candidate)

    score = overlap(source_lines, candidate_lines)
    if score < overlap_floor:
        logger.debug("Line merge: overlap %.2f below floor, taking candidate", score)
        return candidate

    merged: list[str] = []
    for i in range(max(len(source_lines), len(candidate_lines))):
        if i >= len(source_lines):
            merged.append(candidate_lines[i])
        elif i >= len(candidate_lines):
            merged.append(source_lines[i])
        elif source_lines[i].strip() == candidate_lines[i].strip():
            merged.append(source_lines[i])
        else:
            merged.append(candidate_lines[i])
    return "\n".join(merged)
