"""
Report Exports

Downloadable renditions of a completed gap report: CSV, JSON and a
printable HTML document.
"""

from .export import CSV_COLUMNS, export_filename, report_metadata, to_csv, to_json
from .html_report import GapReportBuilder, to_html

EXPORT_FORMATS = ("csv", "json", "html")

MEDIA_TYPES = {
    "csv": "text/csv",
    "json": "application/json",
    "html": "text/html",
}

__all__ = [
    "CSV_COLUMNS",
    "EXPORT_FORMATS",
    "MEDIA_TYPES",
    "export_filename",
    "report_metadata",
    "to_csv",
    "to_json",
    "GapReportBuilder",
    "to_html",
]
