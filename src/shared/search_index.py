from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from src.shared.blob_store import ObjectStore, get_json, put_json
from src.shared.logging_utils import info as log_info
from src.shared.poster_repository import PosterRepository
from src.shared.settings import Settings
from src.shared.url_migration import fix_poster_url
from src.specs.common.enums import category_key
from src.specs.common.errors import ValidationError
from src.specs.documents.poster_document_spec import PosterDocument
from src.specs.http.exported_data import SearchIndexManifest

INDEX_FILE = "index.json"
MANIFEST_FILE = "manifest.json"
CATEGORY_DIR = "categories/"


def search_entry(poster: PosterDocument) -> Dict[str, Any]:
    text = " ".join([poster.title, poster.description, *poster.targetAudience]).lower()
    return {
        "id": poster.id,
        "title": poster.title,
        "description": poster.description,
        "category": poster.category,
        "categoryKey": category_key(poster.category),
        "targetAudience": poster.targetAudience,
        "imageUrl": poster.imageUrl,
        "updatedAt": poster.updatedAt,
        "text": text,
    }


class SearchIndexBuilder:
    """Static JSON search-index files in the object store, fetched directly by browsers."""

    def __init__(self, repository: PosterRepository, store: ObjectStore, settings: Settings):
        self.repository = repository
        self.store = store
        self.settings = settings

    @property
    def prefix(self) -> str:
        return self.settings.search_index_prefix

    def category_file(self, cat_key: str) -> str:
        return f"{self.prefix}{CATEGORY_DIR}{cat_key}.json"

    def build(self, trace_id: Optional[str] = None) -> SearchIndexManifest:
        posters = [
            fix_poster_url(p, self.settings.public_api_base_url, self.settings.legacy_api_base_urls)
            for p in self.repository.list_all()
        ]
        generated_at = datetime.now(timezone.utc).isoformat()

        by_category: Dict[str, List[Dict[str, Any]]] = {}
        entries = []
        for poster in posters:
            entry = search_entry(poster)
            entries.append(entry)
            if entry["categoryKey"]:
                by_category.setdefault(entry["categoryKey"], []).append(entry)

        files: Dict[str, int] = {}
        index_key = self.prefix + INDEX_FILE
        put_json(self.store, index_key, {"generatedAt": generated_at, "total": len(entries), "entries": entries})
        files[index_key] = len(entries)

        for cat_key, cat_entries in by_category.items():
            key = self.category_file(cat_key)
            put_json(self.store, key, {
                "generatedAt": generated_at,
                "categoryKey": cat_key,
                "total": len(cat_entries),
                "entries": cat_entries,
            })
            files[key] = len(cat_entries)

        manifest_key = self.prefix + MANIFEST_FILE
        for info in self.store.list(self.prefix):
            if info.key not in files and info.key != manifest_key:
                self.store.delete(info.key)

        manifest = SearchIndexManifest(generatedAt=generated_at, total=len(entries), files=files)
        put_json(self.store, manifest_key, manifest.model_dump())
        log_info(trace_id, "search_index:built", total=len(entries), files=len(files))
        return manifest

    def load(self, name: str) -> Optional[Dict[str, Any]]:
        """Read a generated file by name: 'index.json', 'manifest.json', a category key such as 'gongke', or 'categories/{key}.json'."""
        in_categories = name.startswith(CATEGORY_DIR)
        if in_categories:
            name = name[len(CATEGORY_DIR):]
        if not name or "/" in name or "\\" in name or name.startswith("."):
            raise ValidationError(f"Invalid search index file name '{name}'")
        if not name.endswith(".json"):
            name = f"{name}.json"
        if not in_categories and name in (INDEX_FILE, MANIFEST_FILE):
            return get_json(self.store, self.prefix + name)
        return get_json(self.store, f"{self.prefix}{CATEGORY_DIR}{name}")
