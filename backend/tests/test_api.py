"""Tests for the HTTP API (public rankings and admin routes)."""

import pytest
from fastapi.testclient import TestClient

from aoc_ranking.services.catalog_service import CatalogService, get_catalog_service
from main import app

from conftest import NOW, FakeFeed, make_wine

ADMIN = ("admin", "s3cret")


@pytest.fixture
def service(store, clock):
    service = CatalogService(store, feed=FakeFeed([make_wine("feed-1", "Château Feed", "Graves")]),
                             threshold_days=75, clock=clock)
    service.ingest([
        make_wine("x1", "Château X", "Pauillac", base_score=4.4, review_count=500),
        make_wine("x2", "Château Y", "Pauillac", base_score=4.5, review_count=300),
        make_wine("x3", "Château Z", "Margaux", base_score=4.1),
    ], authorized=True)
    return service


@pytest.fixture
def client(service, monkeypatch):
    monkeypatch.setenv("ADMIN_USER", ADMIN[0])
    monkeypatch.setenv("ADMIN_PASSWORD", ADMIN[1])
    app.dependency_overrides[get_catalog_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def _wine_id(service, external_id):
    return service.store.get_wine_by_external_id(external_id).id


class TestPublicRoutes:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_appellations(self, client):
        response = client.get("/api/appellations")
        assert response.status_code == 200
        assert response.json() == [
            {"appellation": "Margaux", "count": 1},
            {"appellation": "Pauillac", "count": 2},
        ]

    def test_ranked_by_appellation(self, client):
        data = client.get("/api/wines", params={"appellation": "Pauillac"}).json()
        assert [w["external_id"] for w in data] == ["x2", "x1"]
        assert [w["rank"] for w in data] == [1, 2]

    def test_filters_and_window(self, client):
        data = client.get("/api/wines", params={"q": "château", "limit": 1, "offset": 1}).json()
        assert len(data) == 1
        assert data[0]["external_id"] == "x1"
        assert data[0]["rank"] == 2

    def test_score_bounds(self, client):
        data = client.get("/api/wines", params={"min_score": 4.2, "max_score": 4.45}).json()
        assert [w["external_id"] for w in data] == ["x1"]

    def test_get_wine(self, client, service):
        wine_id = _wine_id(service, "x3")
        data = client.get(f"/api/wines/{wine_id}").json()
        assert data["name"] == "Château Z"
        assert data["adjustment_percent"] == 0.0
        assert data["effective_score"] == 4.1

    def test_get_unknown_wine(self, client):
        assert client.get("/api/wines/9999").status_code == 404

    def test_meta(self, client):
        data = client.get("/api/meta").json()
        assert data["days_since_refresh"] == 0
        assert data["threshold_days"] == 75
        assert data["is_due"] is False
        assert data["last_refresh"].startswith("2025-03-01T12:00:00")
        assert data["next_refresh_due"].startswith("2025-05-15T12:00:00")


class TestAdminAuth:
    def test_missing_credentials_is_401(self, client, service):
        response = client.post("/api/admin/override",
                               json={"wine_id": _wine_id(service, "x1"), "adjustment_percent": 5})
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == 'Basic realm="Admin Area"'

    def test_wrong_credentials_is_403(self, client, service):
        wine_id = _wine_id(service, "x1")
        response = client.post("/api/admin/override", auth=("admin", "nope"),
                               json={"wine_id": wine_id, "adjustment_percent": 5})
        assert response.status_code == 403
        assert service.store.get_override(wine_id) is None

    def test_wrong_credentials_on_import_is_403(self, client):
        response = client.post("/api/admin/import", auth=("admin", "nope"),
                               files={"file": ("w.csv", b"name,aoc,rating\nA,Graves,4\n", "text/csv")})
        assert response.status_code == 403


class TestOverrideRoute:
    def test_override_reranks(self, client, service):
        wine_id = _wine_id(service, "x1")

        response = client.post("/api/admin/override", auth=ADMIN,
                               json={"wine_id": wine_id, "adjustment_percent": 5})

        assert response.status_code == 200
        assert response.json()["wine"]["effective_score"] == pytest.approx(4.62)
        data = client.get("/api/wines", params={"appellation": "Pauillac"}).json()
        assert [w["external_id"] for w in data] == ["x1", "x2"]

    def test_out_of_range_is_400(self, client, service):
        response = client.post("/api/admin/override", auth=ADMIN,
                               json={"wine_id": _wine_id(service, "x1"), "adjustment_percent": 26})
        assert response.status_code == 400
        assert "between" in response.json()["error"]

    def test_non_numeric_is_400(self, client, service):
        response = client.post("/api/admin/override", auth=ADMIN,
                               json={"wine_id": _wine_id(service, "x1"), "adjustment_percent": "lots"})
        assert response.status_code == 400

    def test_unknown_wine_is_404(self, client):
        response = client.post("/api/admin/override", auth=ADMIN,
                               json={"wine_id": 9999, "adjustment_percent": 5})
        assert response.status_code == 404


class TestImportRoute:
    def test_csv_import(self, client, service):
        content = "id,wine,aoc,vivino_rating,rating_count\nx3,Château Z,Margaux,4.3,50\nn1,Château New,Graves,3.9,12\n"

        response = client.post("/api/admin/import", auth=ADMIN,
                               files={"file": ("export.csv", content.encode("utf-8"), "text/csv")})

        assert response.status_code == 200
        assert response.json() == {"ok": True, "upserted": 2, "inserted": 1, "updated": 1, "coerced": 0}
        assert service.store.get_wine_by_external_id("x3").base_score == 4.3

    def test_grouped_numbers_and_huge_counts(self, client, service):
        content = (
            "id,wine,aoc,rating,reviews,price\n"
            "g1,Château G,Graves,4.0,\"1,234\",\"1,250.00\"\n"
            "g2,Château H,Graves,4.1,1e30,30\n"
        )

        response = client.post("/api/admin/import", auth=ADMIN,
                               files={"file": ("export.csv", content.encode("utf-8"), "text/csv")})

        assert response.status_code == 200
        assert response.json()["inserted"] == 2
        assert response.json()["coerced"] == 1
        g1 = service.store.get_wine_by_external_id("g1")
        assert (g1.review_count, g1.price) == (1234, 1250.0)
        assert service.store.get_wine_by_external_id("g2").review_count == 0

    def test_import_keeps_overrides(self, client, service):
        wine_id = _wine_id(service, "x3")
        service.set_override(wine_id, -10, authorized=True)

        client.post("/api/admin/import", auth=ADMIN, data={"format": "json"},
                    files={"file": ("export", b'[{"id": "x3", "name": "Z", "aoc": "Margaux", "rating": 4.0}]')})

        assert service.store.get_override(wine_id).adjustment_percent == -10

    def test_missing_required_field_is_400(self, client, service):
        content = b'[{"name": "No AOC", "rating": 4.0}]'
        response = client.post("/api/admin/import", auth=ADMIN,
                               files={"file": ("export.json", content, "application/json")})
        assert response.status_code == 400
        assert response.json()["detail"] == [{"row": 1, "missing": ["appellation"]}]
        assert service.store.count() == 3

    def test_malformed_json_is_400(self, client):
        response = client.post("/api/admin/import", auth=ADMIN,
                               files={"file": ("export.json", b"{oops", "application/json")})
        assert response.status_code == 400


class TestRefreshRoute:
    def test_manual_refresh(self, client, service, clock):
        clock.advance(days=1)

        response = client.post("/api/admin/refresh", auth=ADMIN)

        assert response.json() == {"ok": True, "refreshed": True, "reason": "refreshed", "upserted": 1}
        assert service.store.get_wine_by_external_id("feed-1") is not None
        assert client.get("/api/meta").json()["days_since_refresh"] == 0
