import json
import mimetypes
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional, Protocol

import backoff
from azure.core.exceptions import (
    HttpResponseError,
    ResourceExistsError,
    ResourceNotFoundError,
    ServiceRequestError,
    ServiceResponseError,
)
from azure.storage.blob import BlobServiceClient, ContainerClient, ContentSettings

from src.shared.logging_utils import info as log_info
from src.shared.settings import Settings
from src.specs.common.errors import ConfigurationError, StorageError, ValidationError

DEFAULT_CONTENT_TYPE = "application/octet-stream"
_TRANSIENT = (ServiceRequestError, ServiceResponseError)


@dataclass(frozen=True)
class BlobInfo:
    key: str
    size: int
    content_type: str
    last_modified: Optional[datetime] = None


@dataclass(frozen=True)
class BlobObject:
    info: BlobInfo
    data: bytes


class ObjectStore(Protocol):
    backend: str

    def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> BlobInfo:
        ...

    def get(self, key: str) -> Optional[BlobObject]:
        ...

    def head(self, key: str) -> Optional[BlobInfo]:
        ...

    def delete(self, key: str) -> bool:
        ...

    def list(self, prefix: str = "") -> List[BlobInfo]:
        ...


def put_json(store: ObjectStore, key: str, payload: Any) -> BlobInfo:
    data = json.dumps(payload, ensure_ascii=False).encode("utf-8")
    return store.put(key, data, content_type="application/json; charset=utf-8")


def get_json(store: ObjectStore, key: str) -> Optional[Any]:
    obj = store.get(key)
    if obj is None:
        return None
    return json.loads(obj.data.decode("utf-8"))


class LocalObjectStore:
    """Directory-backed store for local development and tests."""

    backend = "local"

    def __init__(self, root: Path):
        self.root = Path(root).resolve()

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if path == self.root or self.root not in path.parents:
            raise ValidationError(f"Invalid object key '{key}'")
        return path

    def _info(self, key: str, path: Path) -> BlobInfo:
        stat = path.stat()
        return BlobInfo(
            key=key,
            size=stat.st_size,
            content_type=mimetypes.guess_type(key)[0] or DEFAULT_CONTENT_TYPE,
            last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        )

    def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> BlobInfo:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        info = self._info(key, path)
        if content_type:
            info = BlobInfo(key=key, size=info.size, content_type=content_type, last_modified=info.last_modified)
        return info

    def get(self, key: str) -> Optional[BlobObject]:
        path = self._path(key)
        if not path.is_file():
            return None
        return BlobObject(info=self._info(key, path), data=path.read_bytes())

    def head(self, key: str) -> Optional[BlobInfo]:
        path = self._path(key)
        if not path.is_file():
            return None
        return self._info(key, path)

    def delete(self, key: str) -> bool:
        path = self._path(key)
        if not path.is_file():
            return False
        path.unlink()
        return True

    def list(self, prefix: str = "") -> List[BlobInfo]:
        if not self.root.exists():
            return []
        items = []
        for path in self.root.rglob("*"):
            if not path.is_file():
                continue
            key = path.relative_to(self.root).as_posix()
            if key.startswith(prefix):
                items.append(self._info(key, path))
        return sorted(items, key=lambda i: i.key)


class AzureBlobObjectStore:
    """Azure Blob Storage container holding poster images and search-index files."""

    backend = "azure"

    def __init__(self, connection_string: str, container: str):
        if not connection_string:
            raise ConfigurationError("PUBLIC_BLOB_CONNECTION_STRING is required for blob storage")
        self.container = container
        self._service = BlobServiceClient.from_connection_string(connection_string)
        self._container_client: Optional[ContainerClient] = None

    def _client(self) -> ContainerClient:
        if self._container_client is None:
            client = self._service.get_container_client(self.container)
            try:
                client.create_container()
                log_info(None, "blob:container_created", container=self.container)
            except ResourceExistsError:
                pass
            self._container_client = client
        return self._container_client

    @staticmethod
    def _to_info(key: str, props: Any) -> BlobInfo:
        settings = getattr(props, "content_settings", None)
        return BlobInfo(
            key=key,
            size=int(getattr(props, "size", 0) or 0),
            content_type=(settings.content_type if settings and settings.content_type else DEFAULT_CONTENT_TYPE),
            last_modified=getattr(props, "last_modified", None),
        )

    @backoff.on_exception(backoff.expo, _TRANSIENT, max_tries=3)
    def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> BlobInfo:
        blob = self._client().get_blob_client(key)
        kwargs = {}
        if content_type:
            kwargs["content_settings"] = ContentSettings(content_type=content_type)
        try:
            blob.upload_blob(data, overwrite=True, **kwargs)
        except HttpResponseError as e:
            raise StorageError(f"Failed to store object '{key}'", details={"status": e.status_code}) from e
        return BlobInfo(
            key=key,
            size=len(data),
            content_type=content_type or DEFAULT_CONTENT_TYPE,
            last_modified=datetime.now(timezone.utc),
        )

    @backoff.on_exception(backoff.expo, _TRANSIENT, max_tries=3)
    def get(self, key: str) -> Optional[BlobObject]:
        blob = self._client().get_blob_client(key)
        try:
            downloader = blob.download_blob()
        except ResourceNotFoundError:
            return None
        data = downloader.readall()
        return BlobObject(info=self._to_info(key, downloader.properties), data=data)

    @backoff.on_exception(backoff.expo, _TRANSIENT, max_tries=3)
    def head(self, key: str) -> Optional[BlobInfo]:
        blob = self._client().get_blob_client(key)
        try:
            return self._to_info(key, blob.get_blob_properties())
        except ResourceNotFoundError:
            return None

    @backoff.on_exception(backoff.expo, _TRANSIENT, max_tries=3)
    def delete(self, key: str) -> bool:
        try:
            self._client().delete_blob(key)
            return True
        except ResourceNotFoundError:
            return False

    @backoff.on_exception(backoff.expo, _TRANSIENT, max_tries=3)
    def list(self, prefix: str = "") -> List[BlobInfo]:
        blobs = self._client().list_blobs(name_starts_with=prefix or None)
        return [self._to_info(b.name, b) for b in blobs]


def create_object_store(settings: Settings) -> ObjectStore:
    backend = settings.resolved_blob_backend
    if backend == "azure":
        return AzureBlobObjectStore(settings.blob_connection_string or "", settings.blob_container)
    if backend == "local":
        root = Path(os.getenv("LOCAL_BLOB_DIR", str(settings.runtime_state_dir / "blobs")))
        return LocalObjectStore(root)
    raise ConfigurationError(f"Unknown BLOB_BACKEND '{settings.blob_backend}'", details={"supported": ["auto", "azure", "local"]})
