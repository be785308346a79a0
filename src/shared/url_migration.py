"""
Canonical image URLs and their migration when the public API domain changes.

Posters reference their image through ``{base}/api/get-poster-url/{imageKey}``.
Records written while the API lived on another host keep the old base; this
module rewrites those to the configured base and recovers missing image keys
from the URL path.
"""
from typing import Iterable, List, Optional
from urllib.parse import quote, unquote, urlsplit

from src.shared.logging_utils import info as log_info
from src.specs.documents.poster_document_spec import PosterDocument
from src.specs.http.exported_data import MigrationReport

IMAGE_ROUTE = "/api/get-poster-url/"


def build_image_url(base_url: str, image_key: str) -> str:
    return f"{base_url.rstrip('/')}{IMAGE_ROUTE}{quote(image_key, safe='/')}"


def image_key_from_url(url: str) -> Optional[str]:
    path = urlsplit(url).path
    if IMAGE_ROUTE not in path:
        return None
    key = unquote(path.split(IMAGE_ROUTE, 1)[1])
    return key or None


def _is_rewritable(url: str, legacy_bases: Iterable[str]) -> bool:
    if not url:
        return True
    if any(base and url.startswith(base.rstrip("/") + "/") for base in legacy_bases):
        return True
    return IMAGE_ROUTE in urlsplit(url).path


def fix_poster_url(poster: PosterDocument, base_url: str, legacy_bases: Iterable[str] = ()) -> PosterDocument:
    """Return the poster with a canonical imageUrl, or the poster itself when nothing changes."""
    legacy_bases = list(legacy_bases)
    key = poster.imageKey or (image_key_from_url(poster.imageUrl) if poster.imageUrl else None)
    if not key or not _is_rewritable(poster.imageUrl, legacy_bases):
        return poster
    canonical = build_image_url(base_url, key)
    if canonical == poster.imageUrl and key == poster.imageKey:
        return poster
    return poster.model_copy(update={"imageKey": key, "imageUrl": canonical})


def migrate_poster_urls(
    repository,
    to_base_url: str,
    from_base_urls: Optional[List[str]] = None,
    *,
    dry_run: bool = False,
    trace_id: Optional[str] = None,
) -> MigrationReport:
    """Rewrite stored image URLs to ``to_base_url``; updatedAt is left unchanged."""
    posters = repository.list_all(use_cache=False)
    changed: List[str] = []
    for poster in posters:
        fixed = fix_poster_url(poster, to_base_url, from_base_urls or [])
        if fixed is poster:
            continue
        changed.append(poster.id)
        if not dry_run:
            repository.save(fixed)
    log_info(
        trace_id,
        "migration:image_urls",
        scanned=len(posters),
        updated=len(changed),
        toBaseUrl=to_base_url,
        dryRun=dry_run,
    )
    return MigrationReport(
        scanned=len(posters),
        updated=len(changed),
        ids=changed,
        toBaseUrl=to_base_url,
        dryRun=dry_run,
    )
