import azure.functions as func

from src.shared.http_utils import error_response, json_response, positive_int, response_for_exception, trace_id_for
from src.shared.logging_utils import info as log_info
from src.shared.services import get_services
from src.specs.common.enums import category_from_key, category_key
from src.specs.http.exported_data import ExportedPageResponse, HealthResponse


bp = func.Blueprint()


@bp.function_name(name="list_category_page")
@bp.route(route="posters", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def list_category_page(req: func.HttpRequest) -> func.HttpResponse:
    """Public paginated listing; without a category every poster is paginated newest first."""
    trace_id = trace_id_for(req)
    try:
        page = positive_int(req.params.get("page"), "page")
        category = (req.params.get("category") or "").strip() or None
        listing = get_services().page_indexer.get_category_listing(category, page, trace_id)
        log_info(trace_id, "pages:listing", category=listing.categoryKey, page=page, count=len(listing.posters))
        return json_response(listing, headers={"Cache-Control": "public, max-age=60"})
    except Exception as exc:
        return response_for_exception(exc, trace_id, "pages:listing_error", "Getting posters")


@bp.function_name(name="get_exported_metadata")
@bp.route(route="exported-data/metadata", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def get_exported_metadata(req: func.HttpRequest) -> func.HttpResponse:
    trace_id = trace_id_for(req)
    try:
        metadata = get_services().page_indexer.get_export_metadata(trace_id)
        if metadata is None:
            return error_response("No exported data found", 404, "RESOURCE_NOT_FOUND")
        return json_response(metadata)
    except Exception as exc:
        return response_for_exception(exc, trace_id, "pages:metadata_error", "Getting export metadata")


@bp.function_name(name="get_exported_page")
@bp.route(route="exported-data/{category}/{page}", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def get_exported_page(req: func.HttpRequest) -> func.HttpResponse:
    trace_id = trace_id_for(req)
    category = req.route_params.get("category", "")
    try:
        page = positive_int(req.route_params.get("page"), "page")
        posters = get_services().page_indexer.get_category_page(category, page, trace_id)
        if posters is None:
            return error_response(
                "No posters on this page",
                404,
                "RESOURCE_NOT_FOUND",
                {"category": category, "page": page},
            )
        resp = ExportedPageResponse(category=category_from_key(category_key(category)), page=page, posters=posters)
        return json_response(resp)
    except Exception as exc:
        return response_for_exception(exc, trace_id, "pages:page_error", "Getting exported data")


@bp.function_name(name="get_search_index_file")
@bp.route(route="search-index/{*name}", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def get_search_index_file(req: func.HttpRequest) -> func.HttpResponse:
    trace_id = trace_id_for(req)
    name = req.route_params.get("name", "")
    try:
        doc = get_services().search_index.load(name)
        if doc is None:
            return error_response("Search index file not found", 404, "RESOURCE_NOT_FOUND", {"name": name})
        return json_response(doc, headers={"Cache-Control": "public, max-age=60"})
    except Exception as exc:
        return response_for_exception(exc, trace_id, "search_index:read_error", "Getting search index")


@bp.function_name(name="health")
@bp.route(route="health", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def health(req: func.HttpRequest) -> func.HttpResponse:
    trace_id = trace_id_for(req)
    try:
        services = get_services()
        return json_response(HealthResponse(
            kvBackend=services.settings.resolved_kv_backend,
            blobBackend=services.object_store.backend,
            cache=services.repository.cache.stats(),
        ))
    except Exception as exc:
        return response_for_exception(exc, trace_id, "health:error", "Health check")
