"""
SQLAlchemy Models for gap reports

Two tables:
1. gap_reports  - one comparison run between two domains (owns its entries)
2. gap_keywords - one classified keyword per row, deleted with its report

KPI counts are not stored; they are recomputed from gap_keywords. Only the
raw fetch sizes (your_total / their_total) live on the report, since those
can't be derived from the entries.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import (
    Column, String, Integer, Float, DateTime, Text,
    ForeignKey, Enum, Index, UniqueConstraint, JSON, Uuid,
)
from sqlalchemy.orm import declarative_base, relationship

from gapfinder.gap.models import Freshness, GapEntry, GapKind, ReportStatus

Base = declarative_base()


class GapReport(Base):
    """One competitor gap comparison - the central entity"""
    __tablename__ = "gap_reports"

    id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(String(64), nullable=False)  # Owner (auth subject)

    # Comparison (canonical hosts)
    your_domain = Column(String(255), nullable=False)
    competitor_domain = Column(String(255), nullable=False)
    market = Column(String(10), nullable=False)
    freshness = Column(Enum(Freshness), default=Freshness.DAY, nullable=False)

    # Status tracking
    status = Column(Enum(ReportStatus), default=ReportStatus.QUEUED, nullable=False)

    # Raw fetch sizes (yours-only keywords are never stored as rows)
    your_total = Column(Integer)
    their_total = Column(Integer)
    your_distinct = Column(Integer)  # your_total minus collapsed duplicates and blanks

    # Data-quality notices shown alongside completed results
    warnings = Column(JSON, default=list)

    # Failure info
    error_kind = Column(String(20))  # transient, permanent, persistence
    error_message = Column(Text)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    started_at = Column(DateTime)
    completed_at = Column(DateTime)
    deleted_at = Column(DateTime)  # Soft delete

    # Relationships
    entries = relationship(
        "GapKeyword",
        back_populates="report",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_gap_report_user", "user_id", "created_at"),
    )

    def __repr__(self):
        return f"<GapReport {self.id} {self.your_domain} vs {self.competitor_domain} [{self.status.value}]>"


class GapKeyword(Base):
    """One classified keyword within a report"""
    __tablename__ = "gap_keywords"

    id = Column(Integer, primary_key=True, autoincrement=True)
    report_id = Column(Uuid, ForeignKey("gap_reports.id", ondelete="CASCADE"), nullable=False)

    # The keyword
    keyword = Column(String(500), nullable=False)
    keyword_normalized = Column(String(500), nullable=False)
    kind = Column(Enum(GapKind), nullable=False)

    # Positions
    your_position = Column(Integer)
    their_position = Column(Integer)
    delta = Column(Integer)  # your_position - their_position (overlap only)

    # Scoring (missing only)
    opportunity_score = Column(Float)

    # Metrics
    search_volume = Column(Integer)
    difficulty = Column(Integer)
    cpc = Column(Float)
    serp_features = Column(JSON, default=list)

    report = relationship("GapReport", back_populates="entries")

    __table_args__ = (
        UniqueConstraint("report_id", "keyword_normalized", name="uq_report_keyword"),
        Index("idx_gap_keyword_score", "report_id", "kind", "opportunity_score"),
        Index("idx_gap_keyword_delta", "report_id", "kind", "delta"),
    )

    def to_entry(self) -> GapEntry:
        return GapEntry(
            keyword=self.keyword,
            kind=self.kind,
            your_position=self.your_position,
            their_position=self.their_position,
            delta=self.delta,
            opportunity_score=self.opportunity_score,
            search_volume=self.search_volume,
            difficulty=self.difficulty,
            cpc=self.cpc,
            serp_features=frozenset(self.serp_features or ()),
        )
