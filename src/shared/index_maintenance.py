from time import perf_counter
from typing import Optional

from src.shared.logging_utils import error as log_error, info as log_info
from src.shared.services import Services
from src.specs.http.exported_data import RebuildReport


def rebuild_indices(services: Services, reason: str, trace_id: Optional[str] = None) -> RebuildReport:
    """Drop the cached poster list, then rebuild the page index and the search-index files."""
    start = perf_counter()
    services.repository.cache.invalidate()
    export = services.page_indexer.export_categorized_data(trace_id)
    manifest = services.search_index.build(trace_id)
    duration_ms = int((perf_counter() - start) * 1000)
    log_info(trace_id, "indices:rebuilt", reason=reason, totalPosters=export.totalPosters, durationMs=duration_ms)
    return RebuildReport(reason=reason, export=export, searchIndex=manifest)


def refresh_after_write(services: Services, reason: str, trace_id: Optional[str] = None) -> Optional[RebuildReport]:
    """Best-effort rebuild after a metadata write; the write itself has already succeeded."""
    try:
        return rebuild_indices(services, reason, trace_id)
    except Exception as exc:
        log_error(trace_id, "indices:rebuild_failed", reason=reason, error=str(exc))
        return None


def auto_refactor_database(services: Services, trace_id: Optional[str] = None) -> RebuildReport:
    log_info(trace_id, "indices:initialize")
    try:
        report = rebuild_indices(services, "initialize", trace_id)
    except Exception as exc:
        log_error(trace_id, "indices:initialize_failed", error=str(exc))
        raise
    log_info(trace_id, "indices:initialized", totalPosters=report.export.totalPosters)
    return report
