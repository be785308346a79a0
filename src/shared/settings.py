import os
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

# Temp-based default keeps the Functions file watcher from restarting the host
# when the local backends write.
_DEFAULT_STATE_BASE = Path(tempfile.gettempdir()) / "posterhub-runtime"


def _split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip().rstrip("/") for item in value.split(",") if item.strip()]


class Settings(BaseModel):
    kv_backend: str = "auto"
    blob_backend: str = "auto"

    cosmos_connection_string: Optional[str] = None
    cosmos_db_name: Optional[str] = None

    blob_connection_string: Optional[str] = None
    blob_container: str = "poster-assets"

    runtime_state_dir: Path = _DEFAULT_STATE_BASE

    public_api_base_url: str = "http://localhost:7071"
    legacy_api_base_urls: List[str] = Field(default_factory=list)

    image_prefix: str = "posters/"
    search_index_prefix: str = "search-index/"

    posters_per_page: int = Field(5, ge=1)
    max_upload_bytes: int = Field(5 * 1024 * 1024, ge=1)
    cache_ttl_seconds: float = Field(60.0, ge=0)

    @property
    def cosmos_configured(self) -> bool:
        return bool(self.cosmos_connection_string and self.cosmos_db_name)

    @property
    def resolved_kv_backend(self) -> str:
        backend = self.kv_backend.lower()
        if backend != "auto":
            return backend
        return "cosmos" if self.cosmos_configured else "file"

    @property
    def resolved_blob_backend(self) -> str:
        backend = self.blob_backend.lower()
        if backend != "auto":
            return backend
        return "azure" if self.blob_connection_string else "local"

    @classmethod
    def from_env(cls) -> "Settings":
        env = os.environ
        values = {
            "kv_backend": env.get("KV_BACKEND", "auto"),
            "blob_backend": env.get("BLOB_BACKEND", "auto"),
            "cosmos_connection_string": env.get("COSMOS_DB_CONNECTION_STRING"),
            "cosmos_db_name": env.get("COSMOS_DB_NAME"),
            "blob_connection_string": env.get("PUBLIC_BLOB_CONNECTION_STRING"),
            "blob_container": env.get("POSTER_BLOB_CONTAINER", "poster-assets"),
            "runtime_state_dir": Path(env.get("RUNTIME_STATE_DIR", str(_DEFAULT_STATE_BASE))),
            "public_api_base_url": env.get("PUBLIC_API_BASE_URL", "http://localhost:7071").rstrip("/"),
            "legacy_api_base_urls": _split_csv(env.get("LEGACY_API_BASE_URLS")),
        }
        if env.get("POSTERS_PER_PAGE"):
            values["posters_per_page"] = int(env["POSTERS_PER_PAGE"])
        if env.get("MAX_UPLOAD_BYTES"):
            values["max_upload_bytes"] = int(env["MAX_UPLOAD_BYTES"])
        if env.get("POSTER_CACHE_TTL_SECONDS"):
            values["cache_ttl_seconds"] = float(env["POSTER_CACHE_TTL_SECONDS"])
        return cls(**values)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings, read from the environment once"""
    return Settings.from_env()
