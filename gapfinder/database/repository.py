"""
Repository Layer - Report Store

Persists gap reports and their classified keywords, enforces the report
lifecycle and serves paginated keyword pages.

Lifecycle:
    queued -> running -> done
       \\         \\
        +---------+--> failed

done and failed are terminal; only soft deletion touches them afterwards.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session, sessionmaker

from gapfinder.gap.models import (
    ClassificationResult, Freshness, GapEntry, GapKind, KPISummary, ReportStatus,
    normalize_keyword,
)
from gapfinder.gap.kpi import summary_from_counts
from .models import GapKeyword, GapReport
from .session import get_db_context, get_session_factory

logger = logging.getLogger(__name__)


INSERT_CHUNK_SIZE = 200

ALLOWED_TRANSITIONS = {
    ReportStatus.QUEUED: {ReportStatus.RUNNING, ReportStatus.FAILED},
    ReportStatus.RUNNING: {ReportStatus.DONE, ReportStatus.FAILED},
    ReportStatus.DONE: set(),
    ReportStatus.FAILED: set(),
}

SORT_SCORE = "opportunity_score"
SORT_DELTA = "delta"
SORT_FIELDS = (SORT_SCORE, SORT_DELTA)


class ReportNotFoundError(Exception):
    """Report does not exist, is deleted, or belongs to someone else."""
    def __init__(self, report_id):
        super().__init__(f"Report not found: {report_id}")
        self.report_id = report_id


class InvalidTransitionError(Exception):
    """Illegal report status change."""
    def __init__(self, report_id, current: ReportStatus, target: ReportStatus):
        super().__init__(
            f"Report {report_id} cannot move from {current.value} to {target.value}"
        )
        self.current = current
        self.target = target


@dataclass
class EntryPage:
    """One page of gap entries plus the unpaged total."""
    entries: List[GapEntry]
    total_count: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return (self.total_count + self.page_size - 1) // self.page_size


def default_sort_for(kind: Optional[GapKind]) -> str:
    """Missing -> score, overlap -> delta, mixed -> score."""
    return SORT_DELTA if kind == GapKind.OVERLAP else SORT_SCORE


class ReportStore:
    """
    Report persistence.

    Each public method runs in its own transaction. Returned GapReport
    objects are detached (safe to read, not lazy-load relationships).
    """

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory

    def _session(self):
        return get_db_context(self._session_factory or get_session_factory())

    # =========================================================================
    # REPORTS
    # =========================================================================

    def create_report(
        self,
        user_id: str,
        your_domain: str,
        competitor_domain: str,
        market: str,
        freshness: Freshness = Freshness.DAY,
    ) -> GapReport:
        """Create a new report in the queued state."""
        with self._session() as db:
            report = GapReport(
                user_id=user_id,
                your_domain=your_domain,
                competitor_domain=competitor_domain,
                market=market,
                freshness=freshness,
                status=ReportStatus.QUEUED,
                warnings=[],
            )
            db.add(report)
            db.flush()

            logger.info(f"Created gap report {report.id}: {your_domain} vs {competitor_domain} ({market})")
            return report

    def get_report(
        self,
        report_id: UUID,
        user_id: Optional[str] = None,
        include_deleted: bool = False,
    ) -> GapReport:
        """
        Load a report.

        Raises:
            ReportNotFoundError: missing, soft-deleted, or not owned by user_id
        """
        with self._session() as db:
            return self._load(db, report_id, user_id, include_deleted)

    def list_reports(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[GapReport], int]:
        """List a user's reports, newest first."""
        with self._session() as db:
            query = db.query(GapReport).filter(
                GapReport.user_id == user_id,
                GapReport.deleted_at.is_(None),
            )
            total = query.count()
            reports = (
                query.order_by(GapReport.created_at.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
            return reports, total

    def soft_delete(self, report_id: UUID, user_id: Optional[str] = None) -> GapReport:
        """Hide a report from listings and reads."""
        with self._session() as db:
            report = self._load(db, report_id, user_id, include_deleted=False)
            report.deleted_at = datetime.utcnow()
            logger.info(f"Soft-deleted gap report {report_id}")
            return report

    def purge_report(self, report_id: UUID) -> None:
        """Hard delete a report and (by cascade) all its entries."""
        with self._session() as db:
            report = self._load(db, report_id, None, include_deleted=True)
            db.delete(report)
            logger.info(f"Purged gap report {report_id}")

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def mark_running(self, report_id: UUID) -> GapReport:
        """queued -> running"""
        with self._session() as db:
            report = self._load(db, report_id, None, include_deleted=True)
            self._transition(report, ReportStatus.RUNNING)
            report.started_at = datetime.utcnow()
            return report

    def complete_report(
        self,
        report_id: UUID,
        result: ClassificationResult,
        chunk_size: int = INSERT_CHUNK_SIZE,
    ) -> GapReport:
        """
        running -> done, persisting all entries atomically.

        Entries are inserted in chunks; any failure rolls back the whole
        transaction, so a report never ends up with a partial entry set.
        """
        with self._session() as db:
            report = self._load(db, report_id, None, include_deleted=True)
            self._transition(report, ReportStatus.DONE)

            rows = [
                _entry_to_row(report.id, entry)
                for entry in result.entries
            ]
            for i in range(0, len(rows), chunk_size):
                db.add_all(rows[i:i + chunk_size])
                db.flush()
                logger.debug(
                    f"Inserted chunk {i // chunk_size + 1} of "
                    f"{(len(rows) + chunk_size - 1) // chunk_size} for {report_id}"
                )

            report.your_total = result.your_total
            report.their_total = result.their_total
            report.your_distinct = result.your_distinct
            report.warnings = list(result.warnings)
            report.completed_at = datetime.utcnow()

            logger.info(f"Completed gap report {report_id}: {len(rows)} entries, {len(result.warnings)} warnings")
            return report

    def fail_report(
        self,
        report_id: UUID,
        error_kind: str,
        error_message: str,
    ) -> GapReport:
        """queued/running -> failed"""
        with self._session() as db:
            report = self._load(db, report_id, None, include_deleted=True)
            self._transition(report, ReportStatus.FAILED)
            report.error_kind = error_kind
            report.error_message = error_message
            report.completed_at = datetime.utcnow()

            logger.error(f"Failed gap report {report_id} ({error_kind}): {error_message}")
            return report

    # =========================================================================
    # ENTRIES
    # =========================================================================

    def count_by_kind(self, report_id: UUID) -> Dict[GapKind, int]:
        with self._session() as db:
            rows = (
                db.query(GapKeyword.kind, func.count(GapKeyword.id))
                .filter(GapKeyword.report_id == report_id)
                .group_by(GapKeyword.kind)
                .all()
            )
            counts = {kind: 0 for kind in GapKind}
            counts.update({kind: count for kind, count in rows})
            return counts

    def get_kpis(self, report: GapReport) -> KPISummary:
        """Recompute KPI counts from stored entries."""
        counts = self.count_by_kind(report.id)
        return summary_from_counts(
            overlap_count=counts[GapKind.OVERLAP],
            missing_count=counts[GapKind.MISSING],
            your_total=report.your_total,
            their_total=report.their_total,
            your_distinct=report.your_distinct,
        )

    def get_entries(self, report_id: UUID, kind: Optional[GapKind] = None) -> List[GapEntry]:
        """All entries of a report (unordered)."""
        with self._session() as db:
            query = db.query(GapKeyword).filter(GapKeyword.report_id == report_id)
            if kind is not None:
                query = query.filter(GapKeyword.kind == kind)
            return [row.to_entry() for row in query.all()]

    def get_entries_page(
        self,
        report_id: UUID,
        kind: Optional[GapKind] = None,
        sort: Optional[str] = None,
        page: int = 0,
        page_size: int = 50,
    ) -> EntryPage:
        """
        One page of entries.

        Args:
            kind: Filter by classification (None = all)
            sort: "opportunity_score" (highest first) or "delta" (lowest
                  first); defaults per kind
            page: 0-based page index
            page_size: Entries per page
        """
        if page < 0 or page_size <= 0:
            raise ValueError("page must be >= 0 and page_size > 0")

        sort = sort or default_sort_for(kind)
        if sort not in SORT_FIELDS:
            raise ValueError(f"Unsupported sort '{sort}'. Use one of: {', '.join(SORT_FIELDS)}")

        with self._session() as db:
            query = db.query(GapKeyword).filter(GapKeyword.report_id == report_id)
            if kind is not None:
                query = query.filter(GapKeyword.kind == kind)

            total = query.count()

            if sort == SORT_SCORE:
                order = [GapKeyword.opportunity_score.desc().nullslast()]
            else:
                order = [GapKeyword.delta.asc().nullslast()]
            order.append(GapKeyword.keyword_normalized.asc())

            rows = (
                query.order_by(*order)
                .offset(page * page_size)
                .limit(page_size)
                .all()
            )

            return EntryPage(
                entries=[row.to_entry() for row in rows],
                total_count=total,
                page=page,
                page_size=page_size,
            )

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _load(
        db: Session,
        report_id: UUID,
        user_id: Optional[str],
        include_deleted: bool,
    ) -> GapReport:
        report = db.get(GapReport, report_id)
        if report is None:
            raise ReportNotFoundError(report_id)
        if not include_deleted and report.deleted_at is not None:
            raise ReportNotFoundError(report_id)
        if user_id is not None and report.user_id != user_id:
            raise ReportNotFoundError(report_id)
        return report

    @staticmethod
    def _transition(report: GapReport, target: ReportStatus) -> None:
        if target not in ALLOWED_TRANSITIONS[report.status]:
            raise InvalidTransitionError(report.id, report.status, target)
        logger.info(f"Gap report {report.id}: {report.status.value} -> {target.value}")
        report.status = target
        report.updated_at = datetime.utcnow()


def _entry_to_row(report_id: UUID, entry: GapEntry) -> GapKeyword:
    return GapKeyword(
        report_id=report_id,
        keyword=entry.keyword,
        keyword_normalized=normalize_keyword(entry.keyword),
        kind=entry.kind,
        your_position=entry.your_position,
        their_position=entry.their_position,
        delta=entry.delta,
        opportunity_score=entry.opportunity_score,
        search_volume=entry.search_volume,
        difficulty=entry.difficulty,
        cpc=entry.cpc,
        serp_features=sorted(entry.serp_features),
    )
