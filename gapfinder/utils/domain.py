"""
Domain Normalization

Reduces user-supplied domains and URLs to a bare canonical host. The
canonical host is used as the cache key for keyword fetches and as the
equality test when rejecting self-comparisons, so every spelling of the
same host must collapse to the same string.
"""

import re
import logging
from typing import Iterable, Optional

logger = logging.getLogger(__name__)


# Leading scheme ("https://", "HTTP://", "ftp://") or protocol-relative "//"
_SCHEME_RE = re.compile(r"^(?:[a-z][a-z0-9+.\-]*:)?//", re.IGNORECASE)

# Anything after the host: path, query, fragment
_HOST_END_RE = re.compile(r"[/?#\\]")

# Labels of a plausible host (letters, digits, hyphens; IDN punycode included)
_VALID_HOST_RE = re.compile(
    r"^(?=.{1,253}$)(?:[a-z0-9](?:[a-z0-9\-]{0,61}[a-z0-9])?\.)+[a-z0-9\-]{2,63}$"
)


class InputError(Exception):
    """Invalid comparison request (rejected before any fetch)."""
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


def normalize_domain(value: str) -> str:
    """
    Canonicalize a domain or URL to its bare host.

    Total function: never raises, returns "" for input with no host.

        >>> normalize_domain("https://Example.com/foo?x=1")
        'example.com'
        >>> normalize_domain("  www.example.com  ")
        'example.com'
    """
    host = value or ""

    # Passes after the first only remove characters, so this terminates
    while True:
        stripped = _strip_once(host)
        if stripped == host:
            return host
        host = stripped


def _strip_once(host: str) -> str:
    host = host.strip().lower()

    host = _SCHEME_RE.sub("", host)
    host = _HOST_END_RE.split(host, maxsplit=1)[0]

    # user:pass@host
    if "@" in host:
        host = host.rsplit("@", 1)[1]

    # host:port
    host = host.split(":", 1)[0]

    host = host.strip().rstrip(".")

    if host.startswith("www."):
        host = host[4:]

    return host


def is_valid_host(host: str) -> bool:
    """Check that a normalized host looks like a registrable domain."""
    return bool(host) and bool(_VALID_HOST_RE.match(host))


def validate_comparison(
    your_domain: str,
    competitor_domain: str,
    market: Optional[str],
    allowed_markets: Iterable[str],
) -> tuple:
    """
    Validate a comparison request.

    Returns:
        (your_host, competitor_host, market) all canonicalized

    Raises:
        InputError: bad domain, same domain on both sides, missing/unknown market
    """
    your_host = normalize_domain(your_domain)
    their_host = normalize_domain(competitor_domain)

    if not is_valid_host(your_host):
        raise InputError(f"Invalid domain: '{your_domain}'", field="your_domain")
    if not is_valid_host(their_host):
        raise InputError(f"Invalid domain: '{competitor_domain}'", field="competitor_domain")

    if your_host == their_host:
        raise InputError(
            "Your domain and the competitor domain must be different",
            field="competitor_domain",
        )

    market_code = (market or "").strip().lower()
    if not market_code:
        raise InputError("Market is required", field="market")

    allowed = {m.lower() for m in allowed_markets}
    if market_code not in allowed:
        raise InputError(
            f"Unsupported market '{market}'. Supported: {', '.join(sorted(allowed))}",
            field="market",
        )

    return your_host, their_host, market_code
