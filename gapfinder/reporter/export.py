"""
Report Exports - CSV and JSON

Flat downloads of a completed gap report. Entries are written in the
default presentation order (missing by opportunity, then overlap by delta).
"""

import csv
import io
import json
import logging
from typing import Any, Dict, Iterable, List

from gapfinder.database.models import GapReport
from gapfinder.gap import GapEntry, KPISummary, sort_entries

logger = logging.getLogger(__name__)


CSV_COLUMNS = [
    "keyword",
    "kind",
    "your_position",
    "their_position",
    "delta",
    "opportunity_score",
    "search_volume",
    "difficulty",
    "cpc",
    "serp_features",
]


def export_filename(report: GapReport, extension: str) -> str:
    return f"competitor-gap-report-{report.id}.{extension}"


def report_metadata(report: GapReport) -> Dict[str, Any]:
    """Report header fields shared by all export formats."""
    return {
        "id": str(report.id),
        "your_domain": report.your_domain,
        "competitor_domain": report.competitor_domain,
        "market": report.market,
        "freshness": report.freshness.value,
        "status": report.status.value,
        "warnings": list(report.warnings or []),
        "created_at": report.created_at.isoformat() if report.created_at else None,
        "completed_at": report.completed_at.isoformat() if report.completed_at else None,
    }


def _csv_row(entry: GapEntry) -> List[Any]:
    row = entry.to_dict()
    row["serp_features"] = ";".join(row["serp_features"])
    return ["" if row[col] is None else row[col] for col in CSV_COLUMNS]


def to_csv(entries: Iterable[GapEntry]) -> str:
    """One row per entry with a fixed header; blank cells for unknown values."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)

    count = 0
    for entry in sort_entries(entries):
        writer.writerow(_csv_row(entry))
        count += 1

    logger.debug(f"Exported {count} entries to CSV")
    return buffer.getvalue()


def to_json(report: GapReport, kpis: KPISummary, entries: Iterable[GapEntry]) -> str:
    payload = {
        "report": report_metadata(report),
        "kpis": kpis.to_dict(),
        "entries": [e.to_dict() for e in sort_entries(entries)],
    }
    return json.dumps(payload, indent=2)
