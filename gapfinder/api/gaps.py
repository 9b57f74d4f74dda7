"""
API Endpoints for Competitor Gap Reports

Handles:
1. Submit a comparison (processed in the background)
2. List the caller's reports
3. Report status, KPIs and charts
4. Paginated keyword entries
5. CSV / JSON / HTML export
6. Delete (soft) a report

Reports are visible only to their owner; anyone else gets a 404.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, Response, status
from pydantic import BaseModel, Field

from gapfinder.auth import CurrentUser, get_current_user
from gapfinder.database.models import GapReport
from gapfinder.database.repository import SORT_FIELDS, ReportNotFoundError, ReportStore
from gapfinder.gap import Freshness, GapEntry, GapKind, ReportStatus
from gapfinder.reporter import MEDIA_TYPES, export_filename, to_csv, to_html, to_json
from gapfinder.services import GapAnalysisService, build_summary
from gapfinder.utils.config import Settings
from gapfinder.utils.domain import InputError

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/gaps",
    tags=["Competitor Gap"],
    dependencies=[Depends(get_current_user)],
)


# =============================================================================
# REQUEST / RESPONSE MODELS
# =============================================================================

class CreateGapRequest(BaseModel):
    """Request to compare your domain against a competitor."""
    your_domain: str = Field(..., min_length=1, max_length=2048)
    competitor_domain: str = Field(..., min_length=1, max_length=2048)
    market: str = Field(..., description="Market code (e.g. 'us', 'uk', 'ca', 'au')")
    freshness: Freshness = Field(
        default=Freshness.DAY,
        description="Max age of cached keyword data: live, 24h or 7d",
    )


class GapReportResponse(BaseModel):
    """Report status and metadata."""
    id: str
    your_domain: str
    competitor_domain: str
    market: str
    freshness: str
    status: str
    warnings: List[str] = []
    error_kind: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class GapReportDetailResponse(GapReportResponse):
    """Report plus dashboard data (present once the report is done)."""
    kpis: Optional[Dict[str, int]] = None
    scatter: Optional[List[Dict[str, Any]]] = None
    pie: Optional[List[Dict[str, Any]]] = None


class GapReportListResponse(BaseModel):
    reports: List[GapReportResponse]
    total: int


class GapEntryResponse(BaseModel):
    keyword: str
    kind: str
    your_position: Optional[int] = None
    their_position: Optional[int] = None
    delta: Optional[int] = None
    opportunity_score: Optional[float] = None
    search_volume: Optional[int] = None
    difficulty: Optional[int] = None
    cpc: Optional[float] = None
    serp_features: List[str] = []


class KeywordPageResponse(BaseModel):
    entries: List[GapEntryResponse]
    total_count: int
    page: int
    page_size: int
    total_pages: int


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> ReportStore:
    return request.app.state.store


def get_service(request: Request) -> GapAnalysisService:
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Keyword data provider is not configured",
        )
    return service


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def report_to_response(report: GapReport) -> GapReportResponse:
    return GapReportResponse(
        id=str(report.id),
        your_domain=report.your_domain,
        competitor_domain=report.competitor_domain,
        market=report.market,
        freshness=report.freshness.value,
        status=report.status.value,
        warnings=list(report.warnings or []),
        error_kind=report.error_kind,
        error_message=report.error_message,
        created_at=report.created_at,
        updated_at=report.updated_at,
        started_at=report.started_at,
        completed_at=report.completed_at,
    )


def entry_to_response(entry: GapEntry) -> GapEntryResponse:
    return GapEntryResponse(**entry.to_dict())


def load_owned_report(store: ReportStore, report_id: UUID, user: CurrentUser) -> GapReport:
    """Fetch a report the caller owns, or 404."""
    try:
        return store.get_report(report_id, user_id=user.id)
    except ReportNotFoundError:
        raise HTTPException(status_code=404, detail="Report not found")


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("", response_model=GapReportResponse, status_code=status.HTTP_202_ACCEPTED)
async def create_gap_report(
    request: CreateGapRequest,
    background_tasks: BackgroundTasks,
    current_user: CurrentUser = Depends(get_current_user),
    service: GapAnalysisService = Depends(get_service),
):
    """
    Submit a competitor gap comparison.

    Returns immediately with the queued report; poll GET /api/gaps/{id}
    until the status is done or failed.
    """
    try:
        report = service.submit(
            user_id=current_user.id,
            your_domain=request.your_domain,
            competitor_domain=request.competitor_domain,
            market=request.market,
            freshness=request.freshness,
        )
    except InputError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": str(e), "field": e.field},
        )

    background_tasks.add_task(service.run, report.id)

    logger.info(f"Gap report {report.id} queued for user {current_user.id}")
    return report_to_response(report)


@router.get("", response_model=GapReportListResponse)
async def list_gap_reports(
    current_user: CurrentUser = Depends(get_current_user),
    store: ReportStore = Depends(get_store),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    """List the caller's reports, newest first."""
    reports, total = store.list_reports(current_user.id, limit=limit, offset=offset)
    return GapReportListResponse(
        reports=[report_to_response(r) for r in reports],
        total=total,
    )


@router.get("/{report_id}", response_model=GapReportDetailResponse)
async def get_gap_report(
    report_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    store: ReportStore = Depends(get_store),
):
    """Report status, warnings and (when done) KPIs and chart data."""
    report = load_owned_report(store, report_id, current_user)
    response = GapReportDetailResponse(**report_to_response(report).model_dump())

    summary = build_summary(store, report)
    if summary is not None:
        data = summary.to_dict()
        response.kpis = data["kpis"]
        response.scatter = data["scatter"]
        response.pie = data["pie"]

    return response


@router.get("/{report_id}/keywords", response_model=KeywordPageResponse)
async def get_gap_keywords(
    report_id: UUID,
    kind: Optional[GapKind] = Query(None, description="missing or overlap (default: both)"),
    sort: Optional[str] = Query(None, description=f"One of: {', '.join(SORT_FIELDS)}"),
    page: int = Query(0, ge=0, description="0-based page index"),
    page_size: Optional[int] = Query(None, ge=1),
    current_user: CurrentUser = Depends(get_current_user),
    store: ReportStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
):
    """One page of classified keywords plus the unpaged total."""
    report = load_owned_report(store, report_id, current_user)

    page_size = page_size or settings.DEFAULT_PAGE_SIZE
    if page_size > settings.MAX_PAGE_SIZE:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"page_size must be <= {settings.MAX_PAGE_SIZE}",
        )
    if sort is not None and sort not in SORT_FIELDS:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unsupported sort '{sort}'. Use one of: {', '.join(SORT_FIELDS)}",
        )

    result = store.get_entries_page(report.id, kind=kind, sort=sort, page=page, page_size=page_size)
    return KeywordPageResponse(
        entries=[entry_to_response(e) for e in result.entries],
        total_count=result.total_count,
        page=result.page,
        page_size=result.page_size,
        total_pages=result.total_pages,
    )


@router.get("/{report_id}/export")
async def export_gap_report(
    report_id: UUID,
    format: str = Query("csv", pattern="^(csv|json|html)$"),
    current_user: CurrentUser = Depends(get_current_user),
    store: ReportStore = Depends(get_store),
):
    """Download a completed report as CSV, JSON or HTML."""
    report = load_owned_report(store, report_id, current_user)
    if report.status != ReportStatus.DONE:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Report is {report.status.value}; only completed reports can be exported",
        )

    entries = store.get_entries(report.id)
    if format == "csv":
        content = to_csv(entries)
    else:
        kpis = store.get_kpis(report)
        content = to_json(report, kpis, entries) if format == "json" else to_html(report, kpis, entries)

    return Response(
        content=content,
        media_type=MEDIA_TYPES[format],
        headers={"Content-Disposition": f'attachment; filename="{export_filename(report, format)}"'},
    )


@router.delete("/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_gap_report(
    report_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    store: ReportStore = Depends(get_store),
):
    """Soft-delete a report. It disappears from listings and reads."""
    try:
        store.soft_delete(report_id, user_id=current_user.id)
    except ReportNotFoundError:
        raise HTTPException(status_code=404, detail="Report not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
