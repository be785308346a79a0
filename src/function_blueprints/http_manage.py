"""
Maintenance endpoints for the page index, search index and stored image URLs.

The Functions host reserves the ``admin`` route prefix, so these live under
``/api/manage``. All of them require a function key.
"""
import azure.functions as func

from src.shared.http_utils import json_response, parse_model, response_for_exception, trace_id_for
from src.shared.index_maintenance import auto_refactor_database, rebuild_indices
from src.shared.logging_utils import info as log_info
from src.shared.services import get_services
from src.shared.url_migration import migrate_poster_urls
from src.specs.http.exported_data import ClearExportResponse, MigrateUrlsRequest


bp = func.Blueprint()


@bp.function_name(name="export_categorized_data")
@bp.route(route="manage/export-categorized-data", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def export_categorized_data(req: func.HttpRequest) -> func.HttpResponse:
    trace_id = trace_id_for(req)
    try:
        summary = get_services().page_indexer.export_categorized_data(trace_id)
        return json_response({"success": True, **summary.model_dump()})
    except Exception as exc:
        return response_for_exception(exc, trace_id, "manage:export_error", "Exporting categorized data")


@bp.function_name(name="static_json_data")
@bp.route(route="manage/static-json-data", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
def static_json_data(req: func.HttpRequest) -> func.HttpResponse:
    trace_id = trace_id_for(req)
    try:
        data = get_services().page_indexer.generate_static_json_data(trace_id)
        body = {
            cat_key: {str(page): [p.model_dump() for p in posters] for page, posters in pages.items()}
            for cat_key, pages in data.items()
        }
        return json_response(body)
    except Exception as exc:
        return response_for_exception(exc, trace_id, "manage:static_json_error", "Generating static JSON data")


@bp.function_name(name="clear_exported_data")
@bp.route(route="manage/exported-data", methods=["DELETE"], auth_level=func.AuthLevel.FUNCTION)
def clear_exported_data(req: func.HttpRequest) -> func.HttpResponse:
    trace_id = trace_id_for(req)
    try:
        cleared = get_services().page_indexer.clear_exported_data(trace_id)
        return json_response(ClearExportResponse(cleared=cleared))
    except Exception as exc:
        return response_for_exception(exc, trace_id, "manage:clear_error", "Clearing exported data")


@bp.function_name(name="rebuild_search_index")
@bp.route(route="manage/rebuild-search-index", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def rebuild_search_index(req: func.HttpRequest) -> func.HttpResponse:
    trace_id = trace_id_for(req)
    try:
        manifest = get_services().search_index.build(trace_id)
        return json_response(manifest)
    except Exception as exc:
        return response_for_exception(exc, trace_id, "manage:search_index_error", "Rebuilding search index")


@bp.function_name(name="migrate_urls")
@bp.route(route="manage/migrate-urls", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def migrate_urls(req: func.HttpRequest) -> func.HttpResponse:
    trace_id = trace_id_for(req)
    try:
        try:
            data = req.get_json()
        except ValueError:
            data = {}
        params = parse_model(MigrateUrlsRequest, data if isinstance(data, dict) else {})
        services = get_services()
        settings = services.settings

        report = migrate_poster_urls(
            services.repository,
            (params.toBaseUrl or settings.public_api_base_url).rstrip("/"),
            params.fromBaseUrls if params.fromBaseUrls is not None else settings.legacy_api_base_urls,
            dry_run=params.dryRun,
            trace_id=trace_id,
        )
        if report.updated and not report.dryRun:
            rebuild_indices(services, "migrate-urls", trace_id)
        log_info(trace_id, "manage:migrated_urls", updated=report.updated, dryRun=report.dryRun)
        return json_response(report)
    except Exception as exc:
        return response_for_exception(exc, trace_id, "manage:migrate_error", "Migrating poster URLs")


@bp.function_name(name="refactor_database")
@bp.route(route="manage/refactor-database", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def refactor_database(req: func.HttpRequest) -> func.HttpResponse:
    trace_id = trace_id_for(req)
    try:
        report = auto_refactor_database(get_services(), trace_id)
        return json_response(report)
    except Exception as exc:
        return response_for_exception(exc, trace_id, "manage:refactor_error", "Initializing category data")
