"""
DataForSEO API Client

Async HTTP client with:
- Connection pooling
- Retries through the shared RetryPolicy
- Envelope and task-level error checking
- Request/response logging
"""

import base64
import logging
from typing import Any, Dict, List, Optional

import httpx

from .retry import RETRYABLE_STATUS_CODES, RetryPolicy
from .schemas import NO_DATA_STATUS_CODES, RATE_LIMIT_STATUS_CODES, STATUS_OK, STATUS_TASK_CREATED

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """
    Keyword data could not be fetched.

    transient=True means "try again later" (rate limits, provider outages,
    network trouble); False means the request itself was rejected.
    """
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Optional[dict] = None,
        transient: Optional[bool] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response = response
        if transient is None:
            transient = is_transient_status(status_code)
        self.transient = transient


def is_transient_status(status_code: Optional[int]) -> bool:
    """HTTP 429/5xx, DataForSEO rate limits and 5xxxx codes are worth retrying."""
    if status_code is None:
        return False
    if status_code in RETRYABLE_STATUS_CODES or status_code in RATE_LIMIT_STATUS_CODES:
        return True
    # DataForSEO internal codes: 50000-50999 are server-side errors
    return 50000 <= status_code < 60000


class DataForSEOClient:
    """
    Async client for DataForSEO API.

    Usage:
        async with DataForSEOClient(login="...", password="...") as client:
            result = await client.post("dataforseo_labs/google/ranked_keywords/live", [{
                "target": "example.com",
                "location_code": 2840,
                "language_name": "English",
            }])
    """

    BASE_URL = "https://api.dataforseo.com/v3"

    def __init__(
        self,
        login: str,
        password: str,
        retry_policy: Optional[RetryPolicy] = None,
        max_connections: int = 20,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize DataForSEO client.

        Args:
            login: DataForSEO login email
            password: DataForSEO API password
            retry_policy: Retry behavior (optional)
            max_connections: Maximum concurrent connections
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        if not login or not password:
            raise ValueError("DataForSEO login and password are required")

        self.retry_policy = retry_policy or RetryPolicy()

        credentials = f"{login}:{password}"
        auth_token = base64.b64encode(credentials.encode()).decode()

        self._client = httpx.AsyncClient(
            base_url=self.BASE_URL,
            headers={
                "Authorization": f"Basic {auth_token}",
                "Content-Type": "application/json",
            },
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max(1, max_connections // 2),
            ),
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

        self._closed = False

    async def post(
        self,
        endpoint: str,
        data: List[Dict[str, Any]],
        retry: bool = True,
    ) -> Dict[str, Any]:
        """
        Make POST request to DataForSEO API.

        Args:
            endpoint: API endpoint path (e.g., "dataforseo_labs/google/ranked_keywords/live")
            data: Request payload (list of task objects)
            retry: Whether to apply the retry policy

        Returns:
            API response as dictionary

        Raises:
            FetchError: On API error or once retries are exhausted
        """
        if self._closed:
            raise FetchError("Client is closed", transient=False)

        url = f"/{endpoint}"

        try:
            if retry:
                return await self.retry_policy.call(
                    lambda: self._make_request(url, data),
                    description=f"POST {url}",
                )
            return await self._make_request(url, data)

        except httpx.TimeoutException as e:
            raise FetchError(f"Request timed out: {e}", transient=True) from e
        except httpx.HTTPError as e:
            raise FetchError(f"HTTP error: {e}", transient=True) from e

    async def _make_request(self, url: str, data: List[Dict]) -> Dict[str, Any]:
        """Make a single HTTP request and check envelope + task status."""
        logger.debug(f"POST {url}")

        response = await self._client.post(url, json=data)

        if response.status_code != 200:
            raise FetchError(
                f"API request failed: {response.status_code}",
                status_code=response.status_code,
                response=_safe_json(response),
            )

        result = _safe_json(response)
        if result is None:
            raise FetchError("API returned a non-JSON body", status_code=response.status_code, transient=True)

        # API-level errors
        if result.get("status_code") != STATUS_OK:
            error_msg = result.get("status_message", "Unknown error")
            raise FetchError(
                f"API error: {error_msg}",
                status_code=result.get("status_code"),
                response=result,
            )

        # Task-level errors ("no data" is a valid empty answer)
        for task in result.get("tasks") or []:
            task_status = task.get("status_code")
            if task_status in (STATUS_OK, STATUS_TASK_CREATED) or task_status in NO_DATA_STATUS_CODES:
                continue
            error_msg = task.get("status_message", "Task error")
            logger.error(f"DataForSEO task error in {url}: {error_msg} (status: {task_status})")
            raise FetchError(
                f"Task error: {error_msg}",
                status_code=task_status,
                response=result,
            )

        return result

    async def close(self):
        """Close the HTTP client."""
        if not self._closed:
            await self._client.aclose()
            self._closed = True

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


def _safe_json(response: httpx.Response) -> Optional[Dict[str, Any]]:
    if not response.content:
        return None
    try:
        body = response.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None
