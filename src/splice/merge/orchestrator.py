"""Strategy selection for reconciling a candidate buffer with a source buffer."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from splice.config import MergeConfig
from splice.merge.blocks import merge_by_blocks
from splice.merge.lines import merge_by_lines
from splice.merge.similarity import overlap, split_lines

logger = logging.getLogger(__name__)


class MergeStrategy(Enum):
    """Which rung of the ladder produced the merged text."""

    UNCHANGED = "unchanged"
    WHOLESALE = "wholesale"
    BLOCK = "block"
    LINE = "line"


@dataclass(frozen=True)
class MergeThresholds:
    wholesale_length_ratio: float = 0.8
    wholesale_overlap: float = 0.5
    line_overlap_floor: float = 0.3

    @classmethod
    def from_merge_config(cls, merge: MergeConfig) -> MergeThresholds:
        return cls(
            wholesale_length_ratio=merge.wholesale_length_ratio,
            wholesale_overlap=merge.wholesale_overlap,
            line_overlap_floor=merge.line_overlap_floor,
        )


@dataclass(frozen=True)
class MergeDecision:
    """The chosen strategy and the text it produced."""

    strategy: MergeStrategy
    text: str
    overlap: float = 0.0


class Merger:
    """Reconciles a candidate into a source without ever failing.

    Ladder, first hit wins:
    1. an empty side returns the other side untouched;
    2. a candidate at least ``wholesale_length_ratio`` as long as the source
       and overlapping it by more than ``wholesale_overlap`` replaces it;
    3. block replacement, when it changes anything;
    4. positional line alignment.
    """

    def __init__(self, thresholds: MergeThresholds | None = None) -> None:
        self._thresholds = thresholds or MergeThresholds()

    @property
    def thresholds(self) -> MergeThresholds:
        return self._thresholds

    def decide(self, source: str, candidate: str) -> MergeDecision:
        if not candidate:
            return MergeDecision(MergeStrategy.UNCHANGED, source)
        if not source:
            return MergeDecision(MergeStrategy.UNCHANGED, candidate)

        th = self._thresholds
        source_lines = split_lines(source)
        candidate_lines = split_lines(candidate)
        score = overlap(source_lines, candidate_lines)

        if (
            len(candidate_lines) >= th.wholesale_length_ratio * len(source_lines)
            and score > th.wholesale_overlap
        ):
            decision = MergeDecision(MergeStrategy.WHOLESALE, candidate, score)
        else:
            by_blocks = merge_by_blocks(source, candidate)
            if by_blocks != source:
                decision = MergeDecision(MergeStrategy.BLOCK, by_blocks, score)
            else:
                decision = MergeDecision(
                    MergeStrategy.LINE,
                    merge_by_lines(
                        source, candidate, overlap_floor=th.line_overlap_floor,
                    ),
                    score,
                )

        logger.debug(
            "Merge decision: %s (overlap=%.2f, source=%d lines, candidate=%d lines)",
            decision.strategy.value, score, len(source_lines), len(candidate_lines),
        )
        return decision

    def merge(self, source: str, candidate: str) -> str:
        return self.decide(source, candidate).text


_default_merger = Merger()


def merge(source: str, candidate: str) -> str:
    """Merge with the default thresholds."""
    return _default_merger.merge(source, candidate)


def merge_with_decision(source: str, candidate: str) -> MergeDecision:
    return _default_merger.decide(source, candidate)
