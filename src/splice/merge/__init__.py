"""Heuristic reconciliation of a candidate buffer into a source buffer."""

from splice.merge.blocks import CodeBlock, extract_blocks, merge_by_blocks
from splice.merge.lines import merge_by_lines
from splice.merge.orchestrator import (
    MergeDecision,
    Merger,
    MergeStrategy,
    MergeThresholds,
    merge,
    merge_with_decision,
)
from splice.merge.similarity import overlap, split_lines

__all__ = [
    "CodeBlock",
    "MergeDecision",
    "MergeStrategy",
    "MergeThresholds",
    "Merger",
    "extract_blocks",
    "merge",
    "merge_by_blocks",
    "merge_by_lines",
    "merge_with_decision",
    "overlap",
    "split_lines",
]
