"""
Tests for the gap classifier.

Covers the set-level properties (disjoint, identical, idempotent), the
delta sign convention, metric fallbacks and duplicate handling.
"""

import pytest

from gapfinder.gap import GapKind, aggregate, classify, index_keywords


def _by_keyword(result):
    return {e.keyword.lower(): e for e in result.entries}


class TestSetProperties:
    """Whole-set behavior of classify()."""

    def test_disjoint_sets_yield_only_missing(self, make_record):
        yours = [make_record(f"mine {i}", position=i + 1) for i in range(5)]
        theirs = [make_record(f"theirs {i}", position=i + 1, volume=100) for i in range(7)]

        result = classify(yours, theirs)

        assert len(result.entries) == 7
        assert all(e.kind == GapKind.MISSING for e in result.entries)
        assert result.of_kind(GapKind.OVERLAP) == []

    def test_identical_sets_yield_only_overlap_with_zero_delta(self, make_record):
        records = [make_record(f"kw {i}", position=i + 1, volume=10 * i) for i in range(6)]

        result = classify(records, list(records))

        assert len(result.entries) == 6
        assert all(e.kind == GapKind.OVERLAP for e in result.entries)
        assert all(e.delta == 0 for e in result.entries)

    def test_idempotent(self, make_record):
        yours = [make_record("a", position=3), make_record("c", position=9)]
        theirs = [make_record("a", position=1), make_record("b", position=2, volume=1000)]

        first = classify(yours, theirs)
        second = classify(yours, theirs)

        assert set(first.entries) == set(second.entries)

    def test_inputs_not_mutated(self, make_record):
        yours = [make_record("a", position=3)]
        theirs = [make_record("a", position=1), make_record("b", position=2)]
        yours_before, theirs_before = list(yours), list(theirs)

        classify(yours, theirs)

        assert yours == yours_before
        assert theirs == theirs_before

    def test_yours_only_not_materialized(self, make_record):
        yours = [make_record("only mine", position=1), make_record("shared", position=4)]
        theirs = [make_record("shared", position=2)]

        result = classify(yours, theirs)

        assert [e.keyword for e in result.entries] == ["shared"]
        assert result.your_total == 2
        assert result.their_total == 1

    def test_counts_sum_to_entries(self, make_record):
        yours = [make_record(f"k{i}", position=i + 1) for i in range(0, 20, 2)]
        theirs = [make_record(f"k{i}", position=i + 1) for i in range(0, 20, 3)]

        result = classify(yours, theirs)
        kpis = aggregate(result.entries, result.your_total, result.their_total)

        assert kpis.overlap_count + kpis.missing_count == len(result.entries)


class TestScenarios:
    """End-to-end classification scenarios."""

    def test_overlap_and_missing(self, make_record):
        yours = [make_record("a", position=3)]
        theirs = [make_record("a", position=1), make_record("b", position=2, volume=1000)]

        result = classify(yours, theirs)
        entries = _by_keyword(result)
        kpis = aggregate(result.entries, result.your_total, result.their_total)

        assert entries["a"].kind == GapKind.OVERLAP
        assert entries["a"].delta == 2
        assert entries["b"].kind == GapKind.MISSING
        assert entries["b"].their_position == 2
        assert entries["b"].your_position is None
        assert entries["b"].opportunity_score > 0
        assert kpis.overlap_count == 1
        assert kpis.missing_count == 1

    def test_nothing_of_yours(self, make_record):
        result = classify([], [make_record("x", position=5, volume=500)])
        kpis = aggregate(result.entries, result.your_total, result.their_total)

        assert len(result.entries) == 1
        assert result.entries[0].kind == GapKind.MISSING
        assert kpis.missing_count == 1
        assert kpis.overlap_count == 0

    def test_both_empty(self):
        result = classify([], [])
        kpis = aggregate(result.entries, result.your_total, result.their_total)

        assert result.entries == []
        assert result.warnings == []
        assert kpis.missing_count == 0
        assert kpis.overlap_count == 0


class TestDelta:
    """delta = your_position - their_position"""

    def test_positive_when_you_rank_worse(self, make_record):
        result = classify([make_record("kw", position=12)], [make_record("kw", position=4)])
        assert result.entries[0].delta == 8

    def test_negative_when_you_rank_better(self, make_record):
        result = classify([make_record("kw", position=2)], [make_record("kw", position=9)])
        assert result.entries[0].delta == -7

    @pytest.mark.parametrize("yours,theirs", [(None, 4), (3, None), (None, None)])
    def test_unknown_when_a_position_is_missing(self, make_record, yours, theirs):
        result = classify([make_record("kw", position=yours)], [make_record("kw", position=theirs)])
        entry = result.entries[0]
        assert entry.kind == GapKind.OVERLAP
        assert entry.delta is None


class TestMetrics:
    """Display metrics carried on entries."""

    def test_missing_uses_competitor_metrics(self, make_record):
        theirs = [make_record("kw", position=3, volume=880, difficulty=41, cpc=2.5, features={"featured_snippet"})]

        entry = classify([], theirs).entries[0]

        assert entry.search_volume == 880
        assert entry.difficulty == 41
        assert entry.cpc == 2.5
        assert entry.serp_features == frozenset({"featured_snippet"})

    def test_overlap_falls_back_to_your_metrics(self, make_record):
        yours = [make_record("kw", position=5, volume=300, difficulty=20, features={"people_also_ask"})]
        theirs = [make_record("kw", position=1, cpc=1.2, features={"images"})]

        entry = classify(yours, theirs).entries[0]

        assert entry.search_volume == 300
        assert entry.difficulty == 20
        assert entry.cpc == 1.2
        assert entry.serp_features == frozenset({"people_also_ask", "images"})
        assert entry.opportunity_score is None

    def test_keyword_matching_ignores_case_and_spacing(self, make_record):
        yours = [make_record("Running  Shoes", position=7)]
        theirs = [make_record(" running shoes ", position=2)]

        result = classify(yours, theirs)

        assert len(result.entries) == 1
        assert result.entries[0].kind == GapKind.OVERLAP
        assert result.entries[0].keyword == " running shoes "


class TestDuplicates:
    """Repeated keywords within one side."""

    def test_case_differing_duplicate_collapsed_with_warning(self, make_record):
        theirs = [make_record("Dup", position=4, volume=100), make_record("dup", position=9, volume=5)]

        result = classify([], theirs)

        assert len(result.entries) == 1
        entry = result.entries[0]
        assert entry.keyword == "Dup"
        assert entry.their_position == 4
        assert len(result.warnings) == 1
        assert "dup" in result.warnings[0]
        assert "competitor" in result.warnings[0]

    def test_duplicate_on_your_side_named(self, make_record):
        yours = [make_record("a", position=1), make_record("A", position=2), make_record("a ", position=3)]

        result = classify(yours, [make_record("a", position=5)])

        assert len(result.entries) == 1
        assert result.entries[0].your_position == 1
        assert len(result.warnings) == 1
        assert "your keyword set" in result.warnings[0]
        assert "3 records" in result.warnings[0]

    def test_blank_keywords_skipped(self, make_record):
        index, warnings = index_keywords([make_record("  "), make_record("ok")], "competitor")

        assert list(index) == ["ok"]
        assert len(warnings) == 1
        assert "empty keyword" in warnings[0]
