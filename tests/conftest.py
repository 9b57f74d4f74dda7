"""
Pytest Configuration and Shared Fixtures

Provides keyword builders, a fake DataForSEO transport and an in-memory
database for all test modules.
"""

import json
from typing import Any, Callable, Dict, Iterable, List, Optional

import httpx
import pytest
from sqlalchemy.pool import StaticPool

from gapfinder.collector import DataForSEOClient, RetryPolicy
from gapfinder.database import ReportStore, create_db_engine, init_db, make_session_factory
from gapfinder.gap import KeywordRecord


# ============================================================================
# Keyword Fixtures
# ============================================================================

def _record(
    keyword: str,
    position: Optional[int] = None,
    volume: Optional[int] = None,
    difficulty: Optional[int] = None,
    cpc: Optional[float] = None,
    features: Iterable[str] = (),
) -> KeywordRecord:
    return KeywordRecord(
        keyword=keyword,
        position=position,
        search_volume=volume,
        difficulty=difficulty,
        cpc=cpc,
        serp_features=frozenset(features),
    )


@pytest.fixture
def make_record() -> Callable[..., KeywordRecord]:
    """Factory: make_record("kw", position=3, volume=100)"""
    return _record


# ============================================================================
# DataForSEO Fixtures
# ============================================================================

def _ranked_item(
    keyword: str,
    position: Optional[int] = None,
    volume: Optional[int] = None,
    difficulty: Optional[int] = None,
    cpc: Optional[float] = None,
    features: Iterable[str] = (),
) -> Dict[str, Any]:
    return {
        "se_type": "google",
        "keyword_data": {
            "keyword": keyword,
            "location_code": 2840,
            "language_code": "en",
            "keyword_info": {"search_volume": volume, "cpc": cpc, "competition": 0.3},
            "keyword_properties": {"keyword_difficulty": difficulty},
            "serp_info": {"serp_item_types": list(features)},
        },
        "ranked_serp_element": {
            "serp_item": {
                "type": "organic",
                "rank_group": position,
                "rank_absolute": position,
                "url": f"https://example.com/{keyword.replace(' ', '-')}",
            },
        },
    }


def _ranked_response(
    items: List[Dict[str, Any]],
    target: str = "example.com",
    task_status: int = 20000,
    task_message: str = "Ok.",
) -> Dict[str, Any]:
    result = None
    if task_status == 20000:
        result = [{
            "target": target,
            "total_count": len(items),
            "items_count": len(items),
            "items": items,
        }]
    return {
        "version": "0.1.20240101",
        "status_code": 20000,
        "status_message": "Ok.",
        "cost": 0.0101,
        "tasks_count": 1,
        "tasks_error": 0 if task_status == 20000 else 1,
        "tasks": [{
            "id": "01011234-0000-0000-0000-000000000000",
            "status_code": task_status,
            "status_message": task_message,
            "cost": 0.0101,
            "result": result,
        }],
    }


@pytest.fixture
def ranked_item() -> Callable[..., Dict[str, Any]]:
    """Factory for one ranked_keywords item."""
    return _ranked_item


@pytest.fixture
def ranked_response() -> Callable[..., Dict[str, Any]]:
    """Factory for a full ranked_keywords response envelope."""
    return _ranked_response


class FakeDataForSEO:
    """
    Callable httpx.MockTransport handler serving ranked keywords per target.

    Unknown targets get an empty result. Every request body is recorded.
    """

    def __init__(self, keywords_by_target: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.keywords_by_target = keywords_by_target or {}
        self.requests: List[Dict[str, Any]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        task = body[0]
        self.requests.append(task)
        items = self.keywords_by_target.get(task["target"], [])
        return httpx.Response(200, json=_ranked_response(items, target=task["target"]))

    @property
    def targets(self) -> List[str]:
        return [r["target"] for r in self.requests]


@pytest.fixture
def fake_dataforseo() -> Callable[..., FakeDataForSEO]:
    return FakeDataForSEO


class RecordingSleep:
    """Drop-in for asyncio.sleep that records delays instead of waiting."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_client(recording_sleep) -> Callable[..., DataForSEOClient]:
    """Factory: DataForSEOClient backed by an httpx.MockTransport handler."""
    def factory(handler: Callable[[httpx.Request], httpx.Response], max_attempts: int = 3) -> DataForSEOClient:
        return DataForSEOClient(
            login="test@example.com",
            password="secret",
            retry_policy=RetryPolicy(
                max_attempts=max_attempts,
                initial_delay=1.0,
                jitter=0,
                sleep=recording_sleep,
            ),
            transport=httpx.MockTransport(handler),
        )
    return factory


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def engine():
    """In-memory SQLite shared across sessions of one test."""
    engine = create_db_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def store(session_factory) -> ReportStore:
    return ReportStore(session_factory)
