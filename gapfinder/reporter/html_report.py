"""
HTML Gap Report

Standalone, printable HTML document for one completed report:
- Analysis parameters
- KPI cards
- Keyword split pie chart (inline SVG)
- Top 20 missing keywords by opportunity
- Top 20 overlap keywords, worst delta first

Every user or provider supplied value is HTML-escaped.
"""

import html
import logging
import math
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from gapfinder.database.models import GapReport
from gapfinder.gap import GapEntry, GapKind, KPISummary, pie_slices, sort_entries

logger = logging.getLogger(__name__)


TOP_KEYWORDS = 20

PIE_COLORS = {
    "overlap": "#3b82f6",
    "your_only": "#16a34a",
    "their_only": "#dc2626",
}

PIE_LABELS = {
    "overlap": "Overlap",
    "your_only": "Only you",
    "their_only": "Only competitor",
}


def _fmt_int(value: Optional[int]) -> str:
    return f"{value:,}" if value is not None else "-"


def _fmt_float(value: Optional[float], digits: int = 2) -> str:
    return f"{value:,.{digits}f}" if value is not None else "-"


def _fmt_delta(delta: Optional[int]) -> str:
    # Positive delta: you rank below the competitor
    if delta is None:
        return '<span class="metric">-</span>'
    css = "negative" if delta > 0 else "positive" if delta < 0 else "metric"
    return f'<span class="{css}">{delta:+d}</span>'


class GapReportBuilder:
    """Builds the HTML gap report."""

    def __init__(self, top_n: int = TOP_KEYWORDS):
        self.top_n = top_n

    def build(
        self,
        report: GapReport,
        kpis: KPISummary,
        entries: Iterable[GapEntry],
        generated_at: Optional[datetime] = None,
    ) -> str:
        entries = list(entries)
        generated_at = generated_at or datetime.utcnow()

        missing = sort_entries(entries, GapKind.MISSING)[:self.top_n]
        overlap = [
            e for e in sort_entries(entries, GapKind.OVERLAP) if e.delta is not None
        ][:self.top_n]

        sections = [
            self._build_header(generated_at),
            self._build_parameters(report),
            self._build_warnings(report.warnings or []),
            self._build_kpis(kpis),
            self._build_missing_table(missing),
            self._build_overlap_table(overlap),
        ]

        logger.info(f"Built HTML report for {report.id}: {len(missing)} missing, {len(overlap)} overlap rows")
        return self._wrap_html(sections, report)

    def _wrap_html(self, sections: List[str], report: GapReport) -> str:
        content = "\n".join(s for s in sections if s)
        title = f"{report.your_domain} vs {report.competitor_domain}"

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{html.escape(title)} - Competitor Gap Analysis</title>
    <style>
        {self._get_styles()}
    </style>
</head>
<body>
    {content}
</body>
</html>"""

    def _get_styles(self) -> str:
        return """
        * { box-sizing: border-box; margin: 0; padding: 0; }
        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif;
            line-height: 1.6;
            color: #1e293b;
            padding: 40px;
            max-width: 1200px;
            margin: 0 auto;
        }
        .header { border-bottom: 3px solid #3b82f6; padding-bottom: 20px; margin-bottom: 40px; }
        h1 { font-size: 32px; margin-bottom: 10px; }
        h2 { font-size: 24px; margin-bottom: 20px; padding-bottom: 10px; border-bottom: 2px solid #e2e8f0; }
        .meta, .metric { color: #64748b; }
        .section { margin-bottom: 40px; page-break-inside: avoid; }
        .grid { display: grid; grid-template-columns: repeat(4, 1fr); gap: 16px; }
        .card { background: #f8fafc; border-radius: 8px; padding: 20px; }
        .card.highlight { background: #eff6ff; border: 2px solid #3b82f6; }
        .label { font-size: 13px; color: #64748b; text-transform: uppercase; }
        .value { font-size: 28px; font-weight: 700; }
        .warnings li { color: #b45309; margin-left: 20px; }
        table { width: 100%; border-collapse: collapse; font-size: 14px; }
        th { background: #f1f5f9; padding: 12px; text-align: left; border-bottom: 2px solid #cbd5e1; }
        td { padding: 12px; border-bottom: 1px solid #e2e8f0; }
        .keyword { font-weight: 600; }
        .positive { color: #16a34a; font-weight: 600; }
        .negative { color: #dc2626; font-weight: 600; }
        .legend span { margin-right: 16px; }
        @media print {
            body { padding: 20px; }
            tr { page-break-inside: avoid; }
        }
        """

    def _build_header(self, generated_at: datetime) -> str:
        return f"""
    <div class="header">
        <h1>Competitor Gap Analysis Report</h1>
        <div class="meta">Generated on {generated_at.strftime("%B %d, %Y %H:%M")} UTC</div>
    </div>"""

    def _build_parameters(self, report: GapReport) -> str:
        items = [
            ("Your Domain", report.your_domain),
            ("Competitor Domain", report.competitor_domain),
            ("Market", report.market.upper()),
            ("Freshness", report.freshness.value),
        ]
        cards = "".join(
            f'<div class="card"><div class="label">{label}</div>'
            f'<div class="keyword">{html.escape(str(value))}</div></div>'
            for label, value in items
        )
        return f"""
    <div class="section">
        <h2>Analysis Parameters</h2>
        <div class="grid">{cards}</div>
    </div>"""

    def _build_warnings(self, warnings: List[str]) -> str:
        if not warnings:
            return ""
        items = "".join(f"<li>{html.escape(w)}</li>" for w in warnings)
        return f"""
    <div class="section">
        <h2>Data Notes</h2>
        <ul class="warnings">{items}</ul>
    </div>"""

    def _build_kpis(self, kpis: KPISummary) -> str:
        cards = [
            ("Your Keywords", kpis.total_your_keywords, ""),
            ("Their Keywords", kpis.total_their_keywords, ""),
            ("Overlap", kpis.overlap_count, ""),
            ("Missing Keywords", kpis.missing_count, " highlight"),
        ]
        cards_html = "".join(
            f'<div class="card{css}"><div class="label">{label}</div>'
            f'<div class="value">{_fmt_int(value)}</div></div>'
            for label, value, css in cards
        )
        return f"""
    <div class="section">
        <h2>Key Performance Indicators</h2>
        <div class="grid">{cards_html}</div>
        {self._build_pie(pie_slices(kpis))}
    </div>"""

    def _build_pie(self, slices: List[Dict[str, Any]], size: int = 240) -> str:
        """Keyword split as an inline SVG pie."""
        total = sum(s["value"] for s in slices)
        if total <= 0:
            return '<p class="metric">No keyword data available for chart.</p>'

        cx = cy = size / 2
        r = size / 2 - 10
        paths = ""
        start_angle = 0.0

        for s in slices:
            if s["value"] <= 0:
                continue
            color = PIE_COLORS.get(s["name"], "#94a3b8")
            angle = s["value"] / total * 360

            if angle >= 360:
                paths += f'<circle cx="{cx}" cy="{cy}" r="{r}" fill="{color}"/>'
                break

            end_angle = start_angle + angle
            large_arc = 1 if angle > 180 else 0
            x1 = cx + r * math.cos(math.radians(start_angle - 90))
            y1 = cy + r * math.sin(math.radians(start_angle - 90))
            x2 = cx + r * math.cos(math.radians(end_angle - 90))
            y2 = cy + r * math.sin(math.radians(end_angle - 90))
            paths += (
                f'<path d="M {cx} {cy} L {x1:.2f} {y1:.2f} '
                f'A {r} {r} 0 {large_arc} 1 {x2:.2f} {y2:.2f} Z" fill="{color}"/>'
            )
            start_angle = end_angle

        legend = "".join(
            f'<span style="color: {PIE_COLORS.get(s["name"], "#94a3b8")}">'
            f'{PIE_LABELS.get(s["name"], s["name"])}: {_fmt_int(s["value"])}</span>'
            for s in slices
        )
        return f"""
        <div class="section">
            <svg width="{size}" height="{size}" xmlns="http://www.w3.org/2000/svg">{paths}</svg>
            <div class="legend">{legend}</div>
        </div>"""

    def _build_missing_table(self, entries: List[GapEntry]) -> str:
        if not entries:
            body = '<tr><td colspan="6" class="metric">No missing keywords.</td></tr>'
        else:
            body = "".join(
                f"<tr>"
                f'<td class="keyword">{html.escape(e.keyword)}</td>'
                f'<td class="metric">{_fmt_int(e.search_volume)}</td>'
                f'<td class="metric">{_fmt_int(e.difficulty)}</td>'
                f'<td class="metric">{_fmt_float(e.cpc)}</td>'
                f'<td class="metric">{_fmt_int(e.their_position)}</td>'
                f"<td>{_fmt_float(e.opportunity_score)}</td>"
                f"</tr>"
                for e in entries
            )
        return f"""
    <div class="section">
        <h2>Top {self.top_n} Missing Keywords (Opportunities)</h2>
        <table>
            <thead><tr>
                <th>Keyword</th><th>Volume</th><th>Difficulty</th><th>CPC</th>
                <th>Their Position</th><th>Opportunity</th>
            </tr></thead>
            <tbody>{body}</tbody>
        </table>
    </div>"""

    def _build_overlap_table(self, entries: List[GapEntry]) -> str:
        if not entries:
            body = '<tr><td colspan="5" class="metric">No shared keywords with known positions.</td></tr>'
        else:
            body = "".join(
                f"<tr>"
                f'<td class="keyword">{html.escape(e.keyword)}</td>'
                f'<td class="metric">{_fmt_int(e.your_position)}</td>'
                f'<td class="metric">{_fmt_int(e.their_position)}</td>'
                f"<td>{_fmt_delta(e.delta)}</td>"
                f'<td class="metric">{_fmt_int(e.search_volume)}</td>'
                f"</tr>"
                for e in entries
            )
        return f"""
    <div class="section">
        <h2>Top {self.top_n} Shared Keywords</h2>
        <table>
            <thead><tr>
                <th>Keyword</th><th>Your Position</th><th>Their Position</th>
                <th>Delta</th><th>Volume</th>
            </tr></thead>
            <tbody>{body}</tbody>
        </table>
    </div>"""


def to_html(
    report: GapReport,
    kpis: KPISummary,
    entries: Iterable[GapEntry],
    generated_at: Optional[datetime] = None,
) -> str:
    return GapReportBuilder().build(report, kpis, entries, generated_at)
