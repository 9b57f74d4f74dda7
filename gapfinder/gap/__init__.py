"""
Competitor Gap Analysis

Usage:
    from gapfinder.gap import classify, aggregate, KeywordRecord

    result = classify(your_keywords, their_keywords)
    kpis = aggregate(result.entries, result.your_total, result.their_total, result.your_distinct)
"""

from .models import (
    ClassificationResult,
    Freshness,
    GapEntry,
    GapKind,
    KeywordRecord,
    KPISummary,
    ReportStatus,
    normalize_keyword,
)
from .scoring import OpportunityWeights, DEFAULT_WEIGHTS, opportunity_score
from .classifier import classify, index_keywords
from .kpi import aggregate, summary_from_counts
from .views import sort_entries, scatter_points, pie_slices

__all__ = [
    # Models
    "ClassificationResult",
    "Freshness",
    "GapEntry",
    "GapKind",
    "KeywordRecord",
    "KPISummary",
    "ReportStatus",
    "normalize_keyword",
    # Scoring
    "OpportunityWeights",
    "DEFAULT_WEIGHTS",
    "opportunity_score",
    # Classification
    "classify",
    "index_keywords",
    "aggregate",
    "summary_from_counts",
    # Views
    "sort_entries",
    "scatter_points",
    "pie_slices",
]
