"""KPI aggregation over classified gap entries."""

from typing import Iterable, Optional

from .models import GapEntry, GapKind, KPISummary


def aggregate(
    entries: Iterable[GapEntry],
    your_total: int,
    their_total: int,
    your_distinct: Optional[int] = None,
) -> KPISummary:
    """
    Reduce classified entries into dashboard counts.

    Totals are the raw fetch sizes; they can't be derived from entries
    because yours-only keywords are never materialized.
    """
    overlap = 0
    missing = 0
    for entry in entries:
        if entry.kind == GapKind.OVERLAP:
            overlap += 1
        elif entry.kind == GapKind.MISSING:
            missing += 1

    return KPISummary(
        total_your_keywords=your_total,
        total_their_keywords=their_total,
        overlap_count=overlap,
        missing_count=missing,
        your_distinct=your_distinct,
    )


def summary_from_counts(
    overlap_count: int,
    missing_count: int,
    your_total: int,
    their_total: int,
    your_distinct: Optional[int] = None,
) -> KPISummary:
    """Build a summary from counts already computed by the store."""
    return KPISummary(
        total_your_keywords=your_total or 0,
        total_their_keywords=their_total or 0,
        overlap_count=overlap_count,
        missing_count=missing_count,
        your_distinct=your_distinct,
    )
