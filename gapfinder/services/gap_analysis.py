"""
Gap Analysis Service

Orchestrates one competitor comparison:
1. Validate and canonicalize the request, create a queued report
2. Fetch both keyword sets concurrently
3. Classify competitor keywords into missing / overlap
4. Persist entries and finish the report (done or failed)

Requests are validated synchronously; `run` is meant to be scheduled as a
background task right after `submit` returns.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from gapfinder.collector.client import FetchError
from gapfinder.collector.keywords import KeywordFetcher
from gapfinder.database.models import GapReport
from gapfinder.database.repository import (
    InvalidTransitionError, ReportNotFoundError, ReportStore,
)
from gapfinder.gap import (
    DEFAULT_WEIGHTS, Freshness, GapKind, KPISummary, OpportunityWeights,
    ReportStatus, classify, pie_slices, scatter_points,
)
from gapfinder.utils.domain import validate_comparison

logger = logging.getLogger(__name__)


# User-visible failure messages
TRANSIENT_FAILURE_MESSAGE = "Keyword data is temporarily unavailable, try again later."
PERMANENT_FAILURE_MESSAGE = (
    "Keyword data could not be retrieved for this comparison. "
    "Check both domains and try again."
)
PERSISTENCE_FAILURE_MESSAGE = "The report could not be saved. Please try again."

ERROR_KIND_TRANSIENT = "transient"
ERROR_KIND_PERMANENT = "permanent"
ERROR_KIND_PERSISTENCE = "persistence"


@dataclass
class GapSummary:
    """Dashboard payload for a completed report."""
    kpis: KPISummary
    scatter: List[Dict[str, Any]] = field(default_factory=list)
    pie: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kpis": self.kpis.to_dict(),
            "scatter": self.scatter,
            "pie": self.pie,
        }


class GapAnalysisService:
    """Runs competitor gap comparisons against a report store."""

    def __init__(
        self,
        store: ReportStore,
        fetcher: KeywordFetcher,
        weights: OpportunityWeights = DEFAULT_WEIGHTS,
        allowed_markets: Optional[Iterable[str]] = None,
    ):
        self.store = store
        self.fetcher = fetcher
        self.weights = weights
        if allowed_markets is None:
            allowed_markets = fetcher.market_locations.keys()
        self.allowed_markets = [m.lower() for m in allowed_markets]

    # =========================================================================
    # SUBMISSION
    # =========================================================================

    def submit(
        self,
        user_id: str,
        your_domain: str,
        competitor_domain: str,
        market: str,
        freshness: Freshness = Freshness.DAY,
    ) -> GapReport:
        """
        Validate a comparison and create its queued report.

        Raises:
            InputError: invalid domains or market (nothing is created)
        """
        your_host, their_host, market_code = validate_comparison(
            your_domain, competitor_domain, market, self.allowed_markets,
        )
        return self.store.create_report(
            user_id=user_id,
            your_domain=your_host,
            competitor_domain=their_host,
            market=market_code,
            freshness=freshness,
        )

    # =========================================================================
    # PROCESSING
    # =========================================================================

    async def run(self, report_id: UUID) -> Optional[GapReport]:
        """
        Process a queued report to completion.

        Never raises for fetch or persistence failures; those end the report
        in the failed state with a user-facing message.
        """
        try:
            report = self.store.mark_running(report_id)
        except (ReportNotFoundError, InvalidTransitionError) as e:
            logger.warning(f"Skipping gap report {report_id}: {e}")
            return None

        fetches = [
            asyncio.ensure_future(self.fetcher.fetch(domain, report.market, report.freshness))
            for domain in (report.your_domain, report.competitor_domain)
        ]
        try:
            yours, theirs = await asyncio.gather(*fetches)
        except FetchError as e:
            await self._cancel_pending(fetches)
            logger.error(f"Keyword fetch failed for report {report_id} (transient={e.transient}): {e}")
            if e.transient:
                return self._fail(report_id, ERROR_KIND_TRANSIENT, TRANSIENT_FAILURE_MESSAGE)
            return self._fail(report_id, ERROR_KIND_PERMANENT, PERMANENT_FAILURE_MESSAGE)
        except Exception as e:
            await self._cancel_pending(fetches)
            logger.exception(f"Unexpected error fetching keywords for report {report_id}: {e}")
            return self._fail(report_id, ERROR_KIND_PERMANENT, PERMANENT_FAILURE_MESSAGE)

        result = classify(yours, theirs, self.weights)

        empty_warnings = []
        if not yours:
            empty_warnings.append(f"No ranking keywords found for {report.your_domain}")
        if not theirs:
            empty_warnings.append(f"No ranking keywords found for {report.competitor_domain}")
        result.warnings = empty_warnings + result.warnings

        for warning in result.warnings:
            logger.warning(f"Report {report_id}: {warning}")

        try:
            return self.store.complete_report(report_id, result)
        except SQLAlchemyError as e:
            logger.error(f"Could not persist entries for report {report_id}: {e}")
            return self._fail(report_id, ERROR_KIND_PERSISTENCE, PERSISTENCE_FAILURE_MESSAGE)

    @staticmethod
    async def _cancel_pending(tasks: List[asyncio.Future]) -> None:
        """Stop the other side's fetch once one side has failed."""
        pending = [t for t in tasks if not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.info(f"Cancelled {len(pending)} outstanding keyword fetch(es)")

    def _fail(self, report_id: UUID, error_kind: str, message: str) -> Optional[GapReport]:
        try:
            return self.store.fail_report(report_id, error_kind, message)
        except SQLAlchemyError as e:
            # Report stays "running"; nothing more can be recorded
            logger.error(f"Could not mark report {report_id} as failed: {e}")
            return None

    # =========================================================================
    # PRESENTATION
    # =========================================================================

    def get_summary(self, report: GapReport) -> Optional[GapSummary]:
        return build_summary(self.store, report)


def build_summary(store: ReportStore, report: GapReport) -> Optional[GapSummary]:
    """KPIs and chart view-models, available once a report is done."""
    if report.status != ReportStatus.DONE:
        return None

    kpis = store.get_kpis(report)
    missing = store.get_entries(report.id, GapKind.MISSING)
    return GapSummary(
        kpis=kpis,
        scatter=scatter_points(missing),
        pie=pie_slices(kpis),
    )
