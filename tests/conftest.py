import pytest

from src.shared.kv_store import MemoryKeyValueStore
from src.shared.poster_repository import PosterRepository
from src.shared.services import get_services
from src.shared.settings import Settings, get_settings
from tests.helpers import API_BASE


@pytest.fixture(autouse=True)
def app_env(monkeypatch, tmp_path):
    """Point the app singletons at memory/local backends under tmp_path."""
    monkeypatch.setenv("KV_BACKEND", "memory")
    monkeypatch.setenv("BLOB_BACKEND", "local")
    monkeypatch.setenv("RUNTIME_STATE_DIR", str(tmp_path / "state"))
    monkeypatch.setenv("LOCAL_BLOB_DIR", str(tmp_path / "blobs"))
    monkeypatch.setenv("PUBLIC_API_BASE_URL", API_BASE)
    for name in ("LEGACY_API_BASE_URLS", "POSTERS_PER_PAGE", "MAX_UPLOAD_BYTES", "POSTER_CACHE_TTL_SECONDS"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    get_services.cache_clear()
    yield
    get_settings.cache_clear()
    get_services.cache_clear()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        kv_backend="memory",
        blob_backend="local",
        runtime_state_dir=tmp_path / "state",
        public_api_base_url=API_BASE,
        posters_per_page=2,
    )


@pytest.fixture
def repository(settings):
    return PosterRepository(MemoryKeyValueStore("posters"), settings)
