"""
Per-category page index kept in the ``poster_pages`` key-value namespace.

Layout::

    EXPORT_{categoryKey}_{page}   list of PosterDocument dicts, newest first
    EXPORT_METADATA               ExportMetadata

Pages are denormalized copies of the poster records. They are rebuilt in
full after every metadata write; readers fall back to filtering the
repository whenever a page record is missing or unreadable, or the index
was paginated with a different POSTERS_PER_PAGE.
"""
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from src.shared.kv_store import KeyValueStore
from src.shared.logging_utils import error as log_error, info as log_info, warning as log_warning
from src.shared.poster_repository import PosterRepository
from src.shared.settings import Settings
from src.shared.url_migration import fix_poster_url
from src.specs.common.enums import CATEGORY_MAPPING, category_from_key, category_key
from src.specs.documents.poster_document_spec import PosterDocument
from src.specs.http.exported_data import (
    CategoryListingResponse,
    CategoryPageStats,
    ExportMetadata,
    ExportSummary,
)

EXPORT_PREFIX = "EXPORT_"
METADATA_KEY = "EXPORT_METADATA"


def page_key(cat_key: str, page: int) -> str:
    return f"{EXPORT_PREFIX}{cat_key}_{page}"


class PageIndexer:
    def __init__(self, repository: PosterRepository, store: KeyValueStore, settings: Settings):
        self.repository = repository
        self.store = store
        self.settings = settings

    @property
    def page_size(self) -> int:
        return self.settings.posters_per_page

    def _fixed(self, poster: PosterDocument) -> PosterDocument:
        return fix_poster_url(poster, self.settings.public_api_base_url, self.settings.legacy_api_base_urls)

    def group_by_category(self, trace_id: Optional[str] = None) -> Dict[str, List[PosterDocument]]:
        grouped: Dict[str, List[PosterDocument]] = {}
        for poster in self.repository.list_all():
            key = category_key(poster.category)
            if not key:
                log_warning(trace_id, "export:skip_uncategorized", posterId=poster.id, title=poster.title)
                continue
            grouped.setdefault(key, []).append(self._fixed(poster))
        return grouped

    def _paginate(self, posters: List[PosterDocument]) -> List[List[PosterDocument]]:
        size = self.page_size
        return [posters[i:i + size] for i in range(0, len(posters), size)]

    # -------- rebuild --------

    def export_categorized_data(self, trace_id: Optional[str] = None) -> ExportSummary:
        total = len(self.repository.list_all())
        grouped = self.group_by_category(trace_id)
        log_info(trace_id, "export:start", totalPosters=total, categories=len(grouped))

        written = set()
        categories: Dict[str, CategoryPageStats] = {}
        for cat_key, posters in grouped.items():
            pages = self._paginate(posters)
            categories[cat_key] = CategoryPageStats(count=len(posters), pages=len(pages))
            for number, page_posters in enumerate(pages, start=1):
                key = page_key(cat_key, number)
                self.store.put(key, [p.model_dump() for p in page_posters])
                written.add(key)
            log_info(trace_id, "export:category", category=cat_key, count=len(posters), pages=len(pages))

        stale = [k for k in self.store.list_keys(EXPORT_PREFIX) if k != METADATA_KEY and k not in written]
        for key in stale:
            self.store.delete(key)

        metadata = ExportMetadata(
            exportTime=datetime.now(timezone.utc).isoformat(),
            totalPosters=total,
            categories=categories,
            postersPerPage=self.page_size,
            categoryMapping=dict(CATEGORY_MAPPING),
        )
        self.store.put(METADATA_KEY, metadata.model_dump())
        log_info(trace_id, "export:completed", totalPosters=total, pagesWritten=len(written), staleRemoved=len(stale))
        return ExportSummary(totalPosters=total, categories=categories)

    def clear_exported_data(self, trace_id: Optional[str] = None) -> int:
        keys = self.store.list_keys(EXPORT_PREFIX)
        for key in keys:
            self.store.delete(key)
        log_info(trace_id, "export:cleared", count=len(keys))
        return len(keys)

    # -------- reads --------

    def get_export_metadata(self, trace_id: Optional[str] = None) -> Optional[ExportMetadata]:
        raw = self.store.get(METADATA_KEY)
        if raw is None:
            return None
        try:
            return ExportMetadata.model_validate(raw)
        except PydanticValidationError as e:
            log_error(trace_id, "export:metadata_unreadable", error=str(e))
            return None

    def _usable_metadata(self, trace_id: Optional[str] = None) -> Optional[ExportMetadata]:
        """Export metadata, or None when the index is missing or was paginated with another page size."""
        metadata = self.get_export_metadata(trace_id)
        if metadata is not None and metadata.postersPerPage != self.page_size:
            log_warning(
                trace_id, "export:page_size_mismatch",
                indexedPageSize=metadata.postersPerPage, pageSize=self.page_size,
            )
            return None
        return metadata

    def _category_posters(self, cat_key: str) -> List[PosterDocument]:
        return [
            self._fixed(p) for p in self.repository.list_all()
            if category_key(p.category) == cat_key
        ]

    def _read_page(self, cat_key: str, page: int, metadata: Optional[ExportMetadata], trace_id: Optional[str]) -> Optional[List[PosterDocument]]:
        key = page_key(cat_key, page)
        if metadata is not None:
            raw = self.store.get(key)
            if raw is not None:
                try:
                    return [PosterDocument.model_validate(item) for item in raw]
                except (TypeError, PydanticValidationError) as e:
                    log_error(trace_id, "export:page_unreadable", key=key, error=str(e))

        log_info(trace_id, "export:page_fallback", key=key, category=category_from_key(cat_key))
        posters = self._category_posters(cat_key)
        start = (page - 1) * self.page_size
        page_posters = posters[start:start + self.page_size]
        return page_posters or None

    def get_category_page(self, category: str, page: int, trace_id: Optional[str] = None) -> Optional[List[PosterDocument]]:
        """Page from the index, or computed from the repository when the index has no usable record."""
        return self._read_page(category_key(category), page, self._usable_metadata(trace_id), trace_id)

    def get_category_listing(self, category: Optional[str], page: int, trace_id: Optional[str] = None) -> CategoryListingResponse:
        """One page of the public listing with the totals an infinite-scroll client needs."""
        if not category:
            posters = [self._fixed(p) for p in self.repository.list_all()]
            total = len(posters)
            start = (page - 1) * self.page_size
            page_posters = posters[start:start + self.page_size]
            cat_key = None
        else:
            cat_key = category_key(category)
            metadata = self._usable_metadata(trace_id)
            stats = metadata.categories.get(cat_key) if metadata is not None else None
            if stats is not None:
                total = stats.count
            else:
                total = len(self._category_posters(cat_key))
            page_posters = self._read_page(cat_key, page, metadata, trace_id) or []

        total_pages = math.ceil(total / self.page_size) if total else 0
        return CategoryListingResponse(
            category=category_from_key(cat_key) if cat_key else None,
            categoryKey=cat_key,
            page=page,
            pageSize=self.page_size,
            totalPages=total_pages,
            totalPosters=total,
            hasMore=page < total_pages,
            posters=page_posters,
        )

    def generate_static_json_data(self, trace_id: Optional[str] = None) -> Dict[str, Dict[int, List[PosterDocument]]]:
        result: Dict[str, Dict[int, List[PosterDocument]]] = {}
        for cat_key, posters in self.group_by_category(trace_id).items():
            result[cat_key] = {n: page for n, page in enumerate(self._paginate(posters), start=1)}
        log_info(trace_id, "export:static_json", categories=len(result))
        return result
