"""
Services Layer

Business logic that ties the collector, the classifier and the report store
together.
"""

from .gap_analysis import GapAnalysisService, GapSummary, build_summary

__all__ = ["GapAnalysisService", "GapSummary", "build_summary"]
