"""
API tests for the gap report endpoints.

The app runs against in-memory SQLite and a mocked DataForSEO transport;
authentication is replaced with a switchable test user.
"""

import csv
import io
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from gapfinder.api import create_app
from gapfinder.auth import CurrentUser, get_current_user
from gapfinder.collector import KeywordFetcher
from gapfinder.utils.config import Settings


class SwitchableUser:
    """Dependency override whose identity can change mid-test."""

    def __init__(self, user_id: str = "user-1"):
        self.user_id = user_id

    def __call__(self) -> CurrentUser:
        return CurrentUser(id=self.user_id)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        DATAFORSEO_LOGIN="login",
        DATAFORSEO_PASSWORD="password",
        CACHE_ENABLED=False,
        MAX_PAGE_SIZE=100,
    )


@pytest.fixture
def provider(fake_dataforseo, ranked_item):
    return fake_dataforseo({
        "mysite.com": [ranked_item("shared", position=8, volume=500)],
        "rival.com": [
            ranked_item("shared", position=2, volume=500),
            ranked_item("alpha", position=1, volume=5000, difficulty=20),
            ranked_item("beta", position=4, volume=900, difficulty=60),
            ranked_item("gamma", position=9, volume=100),
            ranked_item("delta", position=15, volume=40),
        ],
    })


@pytest.fixture
def current_user():
    return SwitchableUser()


@pytest.fixture
def app(settings, session_factory, provider, make_client, current_user):
    fetcher = KeywordFetcher(make_client(provider), settings.MARKET_LOCATIONS)
    app = create_app(settings=settings, session_factory=session_factory, fetcher=fetcher)
    app.dependency_overrides[get_current_user] = current_user
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def done_report_id(client):
    response = client.post("/api/gaps", json={
        "your_domain": "https://www.mysite.com/",
        "competitor_domain": "rival.com",
        "market": "us",
    })
    assert response.status_code == 202
    return response.json()["id"]


class TestCreateReport:
    """Test report submission."""

    def test_submit_runs_to_completion(self, client, provider):
        response = client.post("/api/gaps", json={
            "your_domain": "mysite.com",
            "competitor_domain": "rival.com",
            "market": "us",
            "freshness": "live",
        })

        assert response.status_code == 202
        body = response.json()
        assert body["status"] == "queued"
        assert body["your_domain"] == "mysite.com"
        assert body["freshness"] == "live"

        detail = client.get(f"/api/gaps/{body['id']}").json()
        assert detail["status"] == "done"
        assert detail["kpis"] == {
            "totalYourKeywords": 1,
            "totalTheirKeywords": 5,
            "overlapCount": 1,
            "missingCount": 4,
        }
        assert len(detail["scatter"]) == 4
        assert [s["name"] for s in detail["pie"]] == ["overlap", "your_only", "their_only"]
        assert sorted(provider.targets) == ["mysite.com", "rival.com"]

    def test_same_domain_rejected(self, client, provider):
        response = client.post("/api/gaps", json={
            "your_domain": "mysite.com",
            "competitor_domain": "https://www.mysite.com/pricing",
            "market": "us",
        })

        assert response.status_code == 422
        assert "message" in response.json()["detail"]
        assert provider.requests == []

    def test_unknown_market_rejected(self, client):
        response = client.post("/api/gaps", json={
            "your_domain": "mysite.com",
            "competitor_domain": "rival.com",
            "market": "mars",
        })
        assert response.status_code == 422

    def test_invalid_freshness_rejected(self, client):
        response = client.post("/api/gaps", json={
            "your_domain": "mysite.com",
            "competitor_domain": "rival.com",
            "market": "us",
            "freshness": "30d",
        })
        assert response.status_code == 422

    def test_provider_not_configured(self, session_factory):
        app = create_app(
            settings=Settings(_env_file=None, DATAFORSEO_LOGIN="", DATAFORSEO_PASSWORD="", CACHE_ENABLED=False),
            session_factory=session_factory,
        )
        app.dependency_overrides[get_current_user] = SwitchableUser()

        with TestClient(app) as client:
            response = client.post("/api/gaps", json={
                "your_domain": "mysite.com",
                "competitor_domain": "rival.com",
                "market": "us",
            })
            assert response.status_code == 503
            assert client.get("/api/gaps").status_code == 200
            assert client.get("/health").json()["provider_configured"] is False


class TestReadReports:
    """Test listing, detail and ownership."""

    def test_list_reports(self, client, done_report_id):
        body = client.get("/api/gaps").json()
        assert body["total"] == 1
        assert body["reports"][0]["id"] == done_report_id

    def test_other_user_gets_404(self, client, current_user, done_report_id):
        current_user.user_id = "user-2"

        assert client.get(f"/api/gaps/{done_report_id}").status_code == 404
        assert client.get(f"/api/gaps/{done_report_id}/keywords").status_code == 404
        assert client.get(f"/api/gaps/{done_report_id}/export").status_code == 404
        assert client.delete(f"/api/gaps/{done_report_id}").status_code == 404
        assert client.get("/api/gaps").json()["total"] == 0

    def test_unknown_report(self, client):
        assert client.get(f"/api/gaps/{uuid4()}").status_code == 404

    def test_queued_report_has_no_kpis(self, app, client):
        report = app.state.store.create_report("user-1", "mysite.com", "rival.com", "us")

        body = client.get(f"/api/gaps/{report.id}").json()

        assert body["status"] == "queued"
        assert body["kpis"] is None


class TestKeywords:
    """Test paginated keyword entries."""

    def test_missing_page(self, client, done_report_id):
        body = client.get(
            f"/api/gaps/{done_report_id}/keywords",
            params={"kind": "missing", "page": 0, "page_size": 3},
        ).json()

        assert body["total_count"] == 4
        assert body["total_pages"] == 2
        assert len(body["entries"]) == 3
        assert body["entries"][0]["keyword"] == "alpha"
        scores = [e["opportunity_score"] for e in body["entries"]]
        assert scores == sorted(scores, reverse=True)

    def test_last_page(self, client, done_report_id):
        body = client.get(
            f"/api/gaps/{done_report_id}/keywords",
            params={"kind": "missing", "page": 1, "page_size": 3},
        ).json()
        assert body["total_count"] == 4
        assert len(body["entries"]) == 1

    def test_overlap_entry(self, client, done_report_id):
        body = client.get(f"/api/gaps/{done_report_id}/keywords", params={"kind": "overlap"}).json()

        assert body["total_count"] == 1
        entry = body["entries"][0]
        assert (entry["your_position"], entry["their_position"], entry["delta"]) == (8, 2, 6)

    def test_page_size_over_limit(self, client, done_report_id):
        response = client.get(f"/api/gaps/{done_report_id}/keywords", params={"page_size": 101})
        assert response.status_code == 422

    def test_unknown_sort(self, client, done_report_id):
        response = client.get(f"/api/gaps/{done_report_id}/keywords", params={"sort": "volume"})
        assert response.status_code == 422


class TestExport:
    """Test report downloads."""

    def test_csv(self, client, done_report_id):
        response = client.get(f"/api/gaps/{done_report_id}/export", params={"format": "csv"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert f"competitor-gap-report-{done_report_id}.csv" in response.headers["content-disposition"]
        rows = list(csv.DictReader(io.StringIO(response.text)))
        assert len(rows) == 5
        assert rows[0]["keyword"] == "alpha"

    def test_json(self, client, done_report_id):
        body = client.get(f"/api/gaps/{done_report_id}/export", params={"format": "json"}).json()
        assert body["report"]["id"] == done_report_id
        assert body["kpis"]["missingCount"] == 4
        assert len(body["entries"]) == 5

    def test_html(self, client, done_report_id):
        response = client.get(f"/api/gaps/{done_report_id}/export", params={"format": "html"})
        assert response.headers["content-type"].startswith("text/html")
        assert "Competitor Gap Analysis Report" in response.text

    def test_unknown_format(self, client, done_report_id):
        response = client.get(f"/api/gaps/{done_report_id}/export", params={"format": "pdf"})
        assert response.status_code == 422

    def test_unfinished_report_conflict(self, app, client):
        report = app.state.store.create_report("user-1", "mysite.com", "rival.com", "us")
        response = client.get(f"/api/gaps/{report.id}/export")
        assert response.status_code == 409


class TestDelete:
    """Test soft deletion."""

    def test_delete_then_gone(self, client, done_report_id):
        assert client.delete(f"/api/gaps/{done_report_id}").status_code == 204
        assert client.get(f"/api/gaps/{done_report_id}").status_code == 404
        assert client.delete(f"/api/gaps/{done_report_id}").status_code == 404
        assert client.get("/api/gaps").json()["total"] == 0


class TestHealth:
    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["provider_configured"] is True
