from __future__ import annotations

import json
import logging
from typing import Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from src.shared.kv_store import KeyValueStore
from src.shared.poster_cache import PosterCache
from src.shared.settings import Settings
from src.shared.url_migration import build_image_url
from src.specs.common.datetime_utils import now_ms
from src.specs.common.enums import category_key, normalize_category
from src.specs.common.ids import new_poster_id
from src.specs.documents.poster_document_spec import PosterDocument, PosterInput, PosterPatch


class PosterRepository:
    """Poster metadata records kept in the ``posters`` key-value namespace."""

    def __init__(
        self,
        store: KeyValueStore,
        settings: Settings,
        cache: Optional[PosterCache] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ):
        self.store = store
        self.settings = settings
        self.cache = cache or PosterCache(settings.cache_ttl_seconds)
        self._log = logger or logging.getLogger("posterhub")

    # -------- reads --------

    def list_all(self, *, use_cache: bool = True) -> List[PosterDocument]:
        """All posters, most recently updated first."""
        if use_cache:
            cached = self.cache.get()
            if cached is not None:
                return cached

        posters: List[PosterDocument] = []
        for key in self.store.list_keys():
            poster = self._load(key)
            if poster is not None:
                posters.append(poster)
        posters.sort(key=lambda p: p.updatedAt, reverse=True)
        self.cache.set(posters)
        return list(posters)

    def get(self, poster_id: str) -> Optional[PosterDocument]:
        return self._load(poster_id)

    def categories(self) -> List[str]:
        seen: Dict[str, None] = {}
        for poster in self.list_all():
            if poster.category:
                seen.setdefault(poster.category, None)
        return list(seen)

    def search(self, query: str = "", category: Optional[str] = None) -> List[PosterDocument]:
        """Case-insensitive match on title, description and target audience within a category."""
        posters = self.list_all()
        if category:
            wanted = (normalize_category(category) or category).lower()
            posters = [
                p for p in posters
                if p.category.lower() == wanted or category_key(p.category) == category.strip().lower()
            ]

        query = (query or "").strip().lower()
        if not query:
            return posters

        return [
            p for p in posters
            if query in p.title.lower()
            or query in p.description.lower()
            or any(query in audience.lower() for audience in p.targetAudience)
        ]

    # -------- writes --------

    def create(self, data: PosterInput) -> PosterDocument:
        now = now_ms()
        poster = PosterDocument(
            id=new_poster_id(now),
            title=data.title,
            description=data.description or "",
            category=data.category,
            targetAudience=list(data.targetAudience or []),
            imageKey=data.imageKey,
            imageUrl=data.imageUrl or build_image_url(self.settings.public_api_base_url, data.imageKey),
            createdAt=now,
            updatedAt=now,
        )
        self.save(poster)
        self._log.info("Created poster %s", poster.id)
        return poster

    def update(self, poster_id: str, patch: PosterPatch) -> Optional[PosterDocument]:
        existing = self.get(poster_id)
        if existing is None:
            return None

        changes = {k: v for k, v in patch.model_dump(exclude_unset=True).items() if v is not None}
        if "imageKey" in changes and "imageUrl" not in changes:
            changes["imageUrl"] = build_image_url(self.settings.public_api_base_url, changes["imageKey"])
        # Keep updatedAt strictly increasing so ordering reflects the edit.
        changes["updatedAt"] = max(now_ms(), existing.updatedAt + 1)

        updated = existing.model_copy(update=changes)
        self.save(updated)
        self._log.info("Updated poster %s (%s)", poster_id, ", ".join(sorted(changes)))
        return updated

    def delete(self, poster_id: str) -> bool:
        if self.get(poster_id) is None:
            return False
        self.store.delete(poster_id)
        self.cache.invalidate()
        self._log.info("Deleted poster %s", poster_id)
        return True

    def save(self, poster: PosterDocument) -> None:
        """Store the record as given; used by create/update and URL migration."""
        self.store.put(poster.id, poster.model_dump())
        self.cache.invalidate()

    # -------- internals --------

    def _load(self, key: str) -> Optional[PosterDocument]:
        raw = self.store.get(key)
        if raw is None:
            return None
        try:
            if isinstance(raw, str):
                raw = json.loads(raw)
            return PosterDocument.model_validate(raw)
        except (ValueError, PydanticValidationError) as e:
            self._log.error("Unable to parse poster record %s: %s", key, e)
            return None
