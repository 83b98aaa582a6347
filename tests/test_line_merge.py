"""Tests for positional line merging."""

from __future__ import annotations

from splice.merge.lines import merge_by_lines


class TestMergeByLines:
    def test_differing_line_replaced_identical_lines_kept(self):
        assert merge_by_lines("a\nb\nc", "a\nx\nc") == "a\nx\nc"

    def test_low_overlap_returns_candidate_wholesale(self):
        candidate = "1\n2\n3\n4\n5"
        assert merge_by_lines("p\nq\nr", candidate) == candidate

    def test_source_formatting_kept_when_trimmed_lines_match(self):
        assert merge_by_lines("  a\nb", "a\nc") == "  a\nc"

    def test_longer_candidate_tail_is_copied(self):
        assert merge_by_lines("a\nb", "a\nb\nc") == "a\nb\nc"

    def test_longer_source_tail_is_kept(self):
        assert merge_by_lines("a\nb\nc", "a\nb") == "a\nb\nc"

    def test_inserted_line_desynchronizes_the_rest(self):
        source = "a\n  b\n  c"
        candidate = "a\nNEW\nb\nc"
        # After the insertion no position lines up, so the source's
        # indentation of b and c is lost.
        assert merge_by_lines(source, candidate) == "a\nNEW\nb\nc"

    def test_overlap_exactly_at_floor_aligns(self):
        source = "  a\nb\nc\nd"
        candidate = "a\nx\ny\nz"
        # one match in four lines scores 0.25
        assert merge_by_lines(source, candidate, overlap_floor=0.25) == "  a\nx\ny\nz"

    def test_overlap_just_below_floor_takes_candidate(self):
        source = "  a\nb\nc\nd"
        candidate = "a\nx\ny\nz"
        assert merge_by_lines(source, candidate, overlap_floor=0.26) == candidate

    def test_default_floor_boundary(self):
        source = "  a\nb\nc\nd\ne\nf\ng\nh\ni\nj"
        candidate = "a\nb\nc\n4\n5\n6\n7\n8\n9\n10"
        # three of ten lines match: exactly the default floor
        assert merge_by_lines(source, candidate) == "  a\nb\nc\n4\n5\n6\n7\n8\n9\n10"
        below = candidate.replace("c", "3")
        assert merge_by_lines(source, below) == below
