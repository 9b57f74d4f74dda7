"""
Data Collection Module

DataForSEO client, retry policy and the ranked-keyword fetcher.
"""

from .retry import RetryPolicy, RETRYABLE_STATUS_CODES, default_retryable
from .client import DataForSEOClient, FetchError, is_transient_status
from .schemas import parse_ranked_keywords
from .keywords import KeywordFetcher, RANKED_KEYWORDS_ENDPOINT

__all__ = [
    "RetryPolicy",
    "RETRYABLE_STATUS_CODES",
    "default_retryable",
    "DataForSEOClient",
    "FetchError",
    "is_transient_status",
    "parse_ranked_keywords",
    "KeywordFetcher",
    "RANKED_KEYWORDS_ENDPOINT",
]
