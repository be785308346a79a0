"""
Unit tests for categories, ids, settings and errors
"""

import re
from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from src.shared.settings import Settings, get_settings
from src.specs.common.enums import (
    CATEGORY_MAPPING,
    catalog_names,
    category_from_key,
    category_key,
    normalize_category,
)
from src.specs.common.errors import ResourceNotFoundError, UploadError, ValidationError
from src.specs.common.ids import new_poster_id


class TestCategories:
    """Test cases for category name/key mapping"""

    def test_mapping(self):
        assert CATEGORY_MAPPING == {"工科": "gongke", "文科": "wenke", "商科": "shangke", "理科": "like"}
        assert catalog_names() == ["工科", "文科", "商科", "理科"]

    @pytest.mark.parametrize("name, key", [
        ("工科", "gongke"),
        (" 理科 ", "like"),
        ("Design", "design"),
        ("", ""),
        ("   ", ""),
        (None, ""),
    ])
    def test_category_key(self, name, key):
        assert category_key(name) == key

    def test_category_from_key(self):
        assert category_from_key("shangke") == "商科"
        assert category_from_key("design") == "design"

    def test_normalize_category(self):
        assert normalize_category("文科") == "文科"
        assert normalize_category("WENKE") == "文科"
        assert normalize_category("艺术") is None


class TestIds:
    """Test cases for poster ids"""

    def test_format(self):
        assert re.fullmatch(r"poster_1700000000000_[0-9a-z]{7}", new_poster_id(1_700_000_000_000))

    def test_unique(self):
        assert len({new_poster_id(1) for _ in range(200)}) == 200


class TestSettings:
    """Test cases for Settings"""

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("PUBLIC_API_BASE_URL", "https://api.example.org/")
        monkeypatch.setenv("LEGACY_API_BASE_URLS", "https://a.example.net/, ,https://b.example.net")
        monkeypatch.setenv("POSTERS_PER_PAGE", "10")
        monkeypatch.setenv("MAX_UPLOAD_BYTES", "2048")
        monkeypatch.setenv("POSTER_CACHE_TTL_SECONDS", "0")
        settings = Settings.from_env()
        assert settings.public_api_base_url == "https://api.example.org"
        assert settings.legacy_api_base_urls == ["https://a.example.net", "https://b.example.net"]
        assert settings.posters_per_page == 10
        assert settings.max_upload_bytes == 2048
        assert settings.cache_ttl_seconds == 0

    def test_auto_backends(self, tmp_path):
        settings = Settings(runtime_state_dir=Path(tmp_path))
        assert settings.resolved_kv_backend == "file"
        assert settings.resolved_blob_backend == "local"

        configured = Settings(
            cosmos_connection_string="AccountEndpoint=https://x/;AccountKey=a2V5;",
            cosmos_db_name="posterhub",
            blob_connection_string="UseDevelopmentStorage=true",
        )
        assert configured.resolved_kv_backend == "cosmos"
        assert configured.resolved_blob_backend == "azure"

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_rejects_zero_page_size(self):
        with pytest.raises(PydanticValidationError):
            Settings(posters_per_page=0)


class TestErrors:
    """Test cases for the error hierarchy"""

    def test_status_codes(self):
        assert ValidationError("bad").status_code == 400
        assert UploadError("bad").status_code == 400
        assert ResourceNotFoundError("Poster", "p1").status_code == 404

    def test_to_dict(self):
        err = ResourceNotFoundError("Poster", "p1", details={"id": "p1"})
        assert err.to_dict() == {
            "error": "Poster with id 'p1' not found",
            "code": "RESOURCE_NOT_FOUND",
            "details": {"id": "p1"},
        }
