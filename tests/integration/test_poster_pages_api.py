"""
Integration tests for the public listing, exported pages, search-index files and health
"""

import json

import pytest

from src.function_blueprints import http_poster_pages as pages_api
from src.shared.index_maintenance import rebuild_indices
from src.shared.services import get_services
from tests.helpers import handler, http_request, make_poster


def _call(function_builder, route, **kwargs):
    resp = handler(function_builder)(http_request("GET", route, **kwargs))
    return resp, json.loads(resp.get_body())


@pytest.fixture
def seeded(monkeypatch):
    monkeypatch.setenv("POSTERS_PER_PAGE", "2")
    services = get_services()
    for n in range(3):
        services.repository.save(make_poster(f"g{n}", category="工科", updated_at=100 - n))
    services.repository.save(make_poster("w0", category="文科", updated_at=50))
    rebuild_indices(services, "test")
    return services


class TestListCategoryPage:
    """Test cases for GET /api/posters"""

    def test_first_page(self, seeded):
        resp, body = _call(pages_api.list_category_page, "posters", params={"category": "工科"})
        assert resp.status_code == 200
        assert resp.headers["Cache-Control"] == "public, max-age=60"
        assert body["categoryKey"] == "gongke"
        assert body["totalPosters"] == 3
        assert body["totalPages"] == 2
        assert body["hasMore"] is True
        assert [p["id"] for p in body["posters"]] == ["g0", "g1"]

    def test_last_page_by_key(self, seeded):
        _, body = _call(pages_api.list_category_page, "posters", params={"category": "gongke", "page": "2"})
        assert body["hasMore"] is False
        assert [p["id"] for p in body["posters"]] == ["g2"]

    def test_all_categories(self, seeded):
        _, body = _call(pages_api.list_category_page, "posters")
        assert body["category"] is None
        assert body["totalPosters"] == 4

    def test_invalid_page(self, seeded):
        resp, body = _call(pages_api.list_category_page, "posters", params={"page": "0"})
        assert resp.status_code == 400
        assert body["code"] == "VALIDATION_ERROR"


class TestExportedData:
    """Test cases for GET /api/exported-data/..."""

    def test_metadata_missing_before_export(self):
        resp, _ = _call(pages_api.get_exported_metadata, "exported-data/metadata")
        assert resp.status_code == 404

    def test_metadata(self, seeded):
        _, body = _call(pages_api.get_exported_metadata, "exported-data/metadata")
        assert body["totalPosters"] == 4
        assert body["postersPerPage"] == 2
        assert body["categories"]["wenke"] == {"count": 1, "pages": 1}

    def test_page(self, seeded):
        _, body = _call(pages_api.get_exported_page, "exported-data/gongke/2", route_params={"category": "gongke", "page": "2"})
        assert body["category"] == "工科"
        assert [p["id"] for p in body["posters"]] == ["g2"]

    def test_page_out_of_range(self, seeded):
        resp, _ = _call(pages_api.get_exported_page, "exported-data/wenke/5", route_params={"category": "wenke", "page": "5"})
        assert resp.status_code == 404


class TestSearchIndexAndHealth:
    """Test cases for GET /api/search-index/{*name} and /api/health"""

    def test_search_index_file(self, seeded):
        resp, body = _call(pages_api.get_search_index_file, "search-index/index.json", route_params={"name": "index.json"})
        assert resp.status_code == 200
        assert body["total"] == 4

    def test_search_index_category_file(self, seeded):
        resp, body = _call(
            pages_api.get_search_index_file, "search-index/categories/gongke.json",
            route_params={"name": "categories/gongke.json"},
        )
        assert resp.status_code == 200
        assert body["categoryKey"] == "gongke"
        assert body["total"] == 3

    def test_search_index_missing(self, seeded):
        resp, _ = _call(pages_api.get_search_index_file, "search-index/like", route_params={"name": "like"})
        assert resp.status_code == 404

    def test_health(self):
        _, body = _call(pages_api.health, "health")
        assert body["status"] == "ok"
        assert body["kvBackend"] == "memory"
        assert body["blobBackend"] == "local"
        assert body["cache"]["ttlSeconds"] == 60

    def test_health_reports_configuration_errors(self, monkeypatch):
        monkeypatch.setenv("KV_BACKEND", "cosmos")
        monkeypatch.delenv("COSMOS_DB_CONNECTION_STRING", raising=False)
        monkeypatch.delenv("COSMOS_DB_NAME", raising=False)
        resp, body = _call(pages_api.health, "health")
        assert resp.status_code == 500
        assert body["code"] == "CONFIGURATION_ERROR"
