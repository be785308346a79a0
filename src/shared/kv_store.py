"""
Key-value stores holding poster records and the derived page index.

Every namespace maps to one store. Values are JSON-serializable objects.
"""
import copy
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from azure.cosmos import exceptions as cosmos_exceptions

from src.shared.cosmos_client import CosmosDBClient, RetryableCosmosError
from src.shared.settings import Settings
from src.specs.common.datetime_utils import utc_now
from src.specs.common.errors import ConfigurationError, StorageError

POSTERS_NAMESPACE = "posters"
PAGES_NAMESPACE = "poster_pages"


class KeyValueStore(Protocol):
    namespace: str

    def get(self, key: str) -> Optional[Any]:
        ...

    def put(self, key: str, value: Any) -> None:
        ...

    def delete(self, key: str) -> bool:
        ...

    def list_keys(self, prefix: str = "") -> List[str]:
        ...


class MemoryKeyValueStore:
    def __init__(self, namespace: str):
        self.namespace = namespace
        self._data: Dict[str, Any] = {}

    def get(self, key: str) -> Optional[Any]:
        value = self._data.get(key)
        return copy.deepcopy(value) if value is not None else None

    def put(self, key: str, value: Any) -> None:
        # Round-trip through JSON so callers see the same types every backend returns.
        self._data[key] = json.loads(json.dumps(value))

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def list_keys(self, prefix: str = "") -> List[str]:
        return sorted(k for k in self._data if k.startswith(prefix))


class FileKeyValueStore:
    """One JSON file per namespace under the runtime state directory."""

    def __init__(self, namespace: str, state_dir: Path):
        self.namespace = namespace
        self._dir = Path(state_dir)
        self._file = self._dir / f"{namespace}.json"

    def _read_all(self) -> Dict[str, Any]:
        if not self._file.exists():
            return {}
        return json.loads(self._file.read_text(encoding="utf-8"))

    def _write_all(self, data: Dict[str, Any]) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        tmp = self._file.with_suffix(".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
        tmp.replace(self._file)

    def get(self, key: str) -> Optional[Any]:
        return self._read_all().get(key)

    def put(self, key: str, value: Any) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def delete(self, key: str) -> bool:
        data = self._read_all()
        if key not in data:
            return False
        del data[key]
        self._write_all(data)
        return True

    def list_keys(self, prefix: str = "") -> List[str]:
        return sorted(k for k in self._read_all() if k.startswith(prefix))


class CosmosKeyValueStore:
    """Stores each key as {id, partitionKey, value} in the namespace's container."""

    def __init__(self, namespace: str, client: CosmosDBClient):
        self.namespace = namespace
        self._client = client

    def _storage_error(self, action: str, key: str, e: Exception) -> StorageError:
        return StorageError(
            f"Failed to {action} '{key}' in {self.namespace}",
            details={"status": getattr(e, "status_code", None)},
        )

    def get(self, key: str) -> Optional[Any]:
        try:
            item = self._client.get_item(self.namespace, key)
        except (RetryableCosmosError, cosmos_exceptions.CosmosHttpResponseError) as e:
            raise self._storage_error("read", key, e) from e
        if item is None:
            return None
        return item.get("value")

    def put(self, key: str, value: Any) -> None:
        doc = {
            "id": key,
            "partitionKey": key,
            "value": value,
            "lastUpdateUtc": utc_now(),
        }
        try:
            self._client.upsert_item(self.namespace, doc)
        except (RetryableCosmosError, cosmos_exceptions.CosmosHttpResponseError) as e:
            raise self._storage_error("write", key, e) from e

    def delete(self, key: str) -> bool:
        try:
            return self._client.delete_item(self.namespace, key)
        except (RetryableCosmosError, cosmos_exceptions.CosmosHttpResponseError) as e:
            raise self._storage_error("delete", key, e) from e

    def list_keys(self, prefix: str = "") -> List[str]:
        try:
            return sorted(self._client.list_ids(self.namespace, prefix))
        except (RetryableCosmosError, cosmos_exceptions.CosmosHttpResponseError) as e:
            raise self._storage_error("list", prefix, e) from e


def create_kv_store(namespace: str, settings: Settings, cosmos: Optional[CosmosDBClient] = None) -> KeyValueStore:
    backend = settings.resolved_kv_backend
    if backend == "memory":
        return MemoryKeyValueStore(namespace)
    if backend == "file":
        return FileKeyValueStore(namespace, settings.runtime_state_dir / "kv")
    if backend == "cosmos":
        client = cosmos or CosmosDBClient(settings.cosmos_connection_string, settings.cosmos_db_name)
        return CosmosKeyValueStore(namespace, client)
    raise ConfigurationError(f"Unknown KV_BACKEND '{settings.kv_backend}'", details={"supported": ["auto", "cosmos", "file", "memory"]})
