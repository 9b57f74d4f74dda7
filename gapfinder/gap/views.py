"""
Presentation view-models

Chart-ready shapes built from classified entries and KPI counts, plus the
default sort orders used in report generation:

- missing: opportunity score, highest first
- overlap: delta ascending (unknown deltas last)
"""

from typing import Any, Dict, Iterable, List, Optional

from .models import GapEntry, GapKind, KPISummary


SCATTER_LIMIT = 200


def _score_key(entry: GapEntry):
    return -(entry.opportunity_score or 0.0), entry.keyword.lower()


def _delta_key(entry: GapEntry):
    return (entry.delta is None, entry.delta if entry.delta is not None else 0, entry.keyword.lower())


def sort_entries(entries: Iterable[GapEntry], kind: Optional[GapKind] = None) -> List[GapEntry]:
    """
    Apply the default presentation order.

    With no kind, missing entries come first (by score), then overlap
    entries (by delta).
    """
    entries = list(entries)
    missing = sorted((e for e in entries if e.kind == GapKind.MISSING), key=_score_key)
    overlap = sorted((e for e in entries if e.kind == GapKind.OVERLAP), key=_delta_key)

    if kind == GapKind.MISSING:
        return missing
    if kind == GapKind.OVERLAP:
        return overlap
    return missing + overlap


def scatter_points(entries: Iterable[GapEntry], limit: int = SCATTER_LIMIT) -> List[Dict[str, Any]]:
    """Volume vs difficulty for the top missing keywords by opportunity."""
    top = sort_entries(entries, GapKind.MISSING)[:limit]
    return [
        {
            "keyword": e.keyword,
            "volume": e.search_volume or 0,
            "difficulty": e.difficulty or 0,
            "opportunityScore": e.opportunity_score or 0.0,
        }
        for e in top
    ]


def pie_slices(kpis: KPISummary) -> List[Dict[str, Any]]:
    """Three-way split of overlap / yours only / theirs only."""
    return [
        {"name": "overlap", "value": kpis.overlap_count},
        {"name": "your_only", "value": kpis.your_only_count},
        {"name": "their_only", "value": kpis.missing_count},
    ]
