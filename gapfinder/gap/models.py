"""
Gap Analysis Data Model

Plain immutable value types shared by the classifier, the KPI aggregator,
the report store and the exporters. External payloads are converted into
these at the collector boundary, so nothing below the collector handles
loosely-typed API data.
"""

import enum
import re
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional


_WHITESPACE_RE = re.compile(r"\s+")


def normalize_keyword(text: str) -> str:
    """Comparison form of a keyword: trimmed, lower-case, single-spaced."""
    return _WHITESPACE_RE.sub(" ", (text or "").strip()).lower()


class GapKind(enum.Enum):
    """Classification of one keyword within a report."""
    MISSING = "missing"    # Competitor ranks, you don't
    OVERLAP = "overlap"    # Both rank


class ReportStatus(enum.Enum):
    """Lifecycle of a gap report."""
    QUEUED = "queued"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ReportStatus.DONE, ReportStatus.FAILED)


class Freshness(enum.Enum):
    """How old cached keyword data may be for a comparison."""
    LIVE = "live"
    DAY = "24h"
    WEEK = "7d"

    @property
    def max_age_seconds(self) -> int:
        return {
            Freshness.LIVE: 0,
            Freshness.DAY: 24 * 3600,
            Freshness.WEEK: 7 * 24 * 3600,
        }[self]


@dataclass(frozen=True)
class KeywordRecord:
    """One ranked keyword for one domain at one point in time."""
    keyword: str
    position: Optional[int] = None
    search_volume: Optional[int] = None
    cpc: Optional[float] = None
    difficulty: Optional[int] = None
    serp_features: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def normalized(self) -> str:
        return normalize_keyword(self.keyword)

    def to_dict(self) -> dict:
        return {
            "keyword": self.keyword,
            "position": self.position,
            "search_volume": self.search_volume,
            "cpc": self.cpc,
            "difficulty": self.difficulty,
            "serp_features": sorted(self.serp_features),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "KeywordRecord":
        return cls(
            keyword=data["keyword"],
            position=data.get("position"),
            search_volume=data.get("search_volume"),
            cpc=data.get("cpc"),
            difficulty=data.get("difficulty"),
            serp_features=frozenset(data.get("serp_features") or ()),
        )


@dataclass(frozen=True)
class GapEntry:
    """
    Classification result for one keyword within a single report.

    delta is your_position - their_position: positive means you rank worse.
    """
    keyword: str
    kind: GapKind
    your_position: Optional[int] = None
    their_position: Optional[int] = None
    delta: Optional[int] = None
    opportunity_score: Optional[float] = None

    # Display metrics (competitor's record, falling back to yours)
    search_volume: Optional[int] = None
    difficulty: Optional[int] = None
    cpc: Optional[float] = None
    serp_features: FrozenSet[str] = field(default_factory=frozenset)

    def to_dict(self) -> dict:
        return {
            "keyword": self.keyword,
            "kind": self.kind.value,
            "your_position": self.your_position,
            "their_position": self.their_position,
            "delta": self.delta,
            "opportunity_score": self.opportunity_score,
            "search_volume": self.search_volume,
            "difficulty": self.difficulty,
            "cpc": self.cpc,
            "serp_features": sorted(self.serp_features),
        }


@dataclass(frozen=True)
class KPISummary:
    """Dashboard counts for one report."""
    total_your_keywords: int
    total_their_keywords: int
    overlap_count: int
    missing_count: int
    # Distinct normalized keywords on your side (duplicates and blanks collapsed)
    your_distinct: Optional[int] = None

    @property
    def your_only_count(self) -> int:
        # Yours-only keywords are never materialized as entries
        distinct = self.your_distinct if self.your_distinct is not None else self.total_your_keywords
        return max(0, distinct - self.overlap_count)

    def to_dict(self) -> dict:
        return {
            "totalYourKeywords": self.total_your_keywords,
            "totalTheirKeywords": self.total_their_keywords,
            "overlapCount": self.overlap_count,
            "missingCount": self.missing_count,
        }


@dataclass
class ClassificationResult:
    """Classifier output: entries plus data-quality warnings."""
    entries: List[GapEntry]
    warnings: List[str] = field(default_factory=list)
    your_total: int = 0
    their_total: int = 0
    your_distinct: Optional[int] = None

    def of_kind(self, kind: GapKind) -> List[GapEntry]:
        return [e for e in self.entries if e.kind == kind]
