import azure.functions as func

from src.shared.http_utils import (
    flag,
    json_response,
    parse_model,
    read_json_body,
    response_for_exception,
    trace_id_for,
)
from src.shared.index_maintenance import refresh_after_write
from src.shared.logging_utils import info as log_info, warning as log_warning
from src.shared.services import get_services
from src.specs.common.enums import CATEGORY_ENGLISH_NAMES, CATEGORY_MAPPING
from src.specs.common.errors import ResourceNotFoundError
from src.specs.documents.poster_document_spec import PosterInput, PosterPatch
from src.specs.http.poster_metadata import (
    CategoriesResponse,
    CategoryCatalogEntry,
    CategoryCatalogResponse,
    DeletePosterMetadataResponse,
    PosterListResponse,
    PosterResponse,
    PosterSearchResponse,
)


bp = func.Blueprint()


def _not_found(poster_id: str) -> ResourceNotFoundError:
    return ResourceNotFoundError("Poster metadata", poster_id, details={"id": poster_id})


@bp.function_name(name="list_poster_metadata")
@bp.route(route="poster-metadata", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def list_poster_metadata(req: func.HttpRequest) -> func.HttpResponse:
    trace_id = trace_id_for(req)
    try:
        posters = get_services().repository.list_all()
        log_info(trace_id, "metadata:list", count=len(posters))
        return json_response(PosterListResponse(posters=posters))
    except Exception as exc:
        return response_for_exception(exc, trace_id, "metadata:list_error", "Getting poster metadata")


@bp.function_name(name="create_poster_metadata")
@bp.route(route="poster-metadata", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def create_poster_metadata(req: func.HttpRequest) -> func.HttpResponse:
    trace_id = trace_id_for(req)
    try:
        data = parse_model(PosterInput, read_json_body(req))
        services = get_services()
        poster = services.repository.create(data)
        log_info(trace_id, "metadata:created", posterId=poster.id, category=poster.category)
        refresh_after_write(services, "create", trace_id)
        return json_response(PosterResponse(poster=poster), status_code=201)
    except Exception as exc:
        return response_for_exception(exc, trace_id, "metadata:create_error", "Creating poster metadata")


@bp.function_name(name="get_poster_metadata")
@bp.route(route="poster-metadata/{id}", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def get_poster_metadata(req: func.HttpRequest) -> func.HttpResponse:
    trace_id = trace_id_for(req)
    poster_id = req.route_params.get("id", "")
    try:
        poster = get_services().repository.get(poster_id)
        if poster is None:
            log_info(trace_id, "metadata:not_found", posterId=poster_id)
            raise _not_found(poster_id)
        return json_response(PosterResponse(poster=poster))
    except Exception as exc:
        return response_for_exception(exc, trace_id, "metadata:get_error", "Getting poster metadata")


@bp.function_name(name="update_poster_metadata")
@bp.route(route="poster-metadata/{id}", methods=["PUT"], auth_level=func.AuthLevel.FUNCTION)
def update_poster_metadata(req: func.HttpRequest) -> func.HttpResponse:
    trace_id = trace_id_for(req)
    poster_id = req.route_params.get("id", "")
    try:
        patch = parse_model(PosterPatch, read_json_body(req))
        services = get_services()
        poster = services.repository.update(poster_id, patch)
        if poster is None:
            raise _not_found(poster_id)
        log_info(trace_id, "metadata:updated", posterId=poster_id)
        refresh_after_write(services, "update", trace_id)
        return json_response(PosterResponse(poster=poster))
    except Exception as exc:
        return response_for_exception(exc, trace_id, "metadata:update_error", "Updating poster metadata")


@bp.function_name(name="delete_poster_metadata")
@bp.route(route="poster-metadata/{id}", methods=["DELETE"], auth_level=func.AuthLevel.FUNCTION)
def delete_poster_metadata(req: func.HttpRequest) -> func.HttpResponse:
    trace_id = trace_id_for(req)
    poster_id = req.route_params.get("id", "")
    try:
        services = get_services()
        poster = services.repository.get(poster_id)
        if poster is None or not services.repository.delete(poster_id):
            raise _not_found(poster_id)

        image_deleted = False
        if flag(req.params.get("deleteImage")) and poster.imageKey:
            try:
                image_deleted = services.object_store.delete(poster.imageKey)
            except Exception as exc:
                log_warning(trace_id, "metadata:image_delete_failed", posterId=poster_id, key=poster.imageKey, error=str(exc))

        log_info(trace_id, "metadata:deleted", posterId=poster_id, imageDeleted=image_deleted)
        refresh_after_write(services, "delete", trace_id)
        return json_response(DeletePosterMetadataResponse(id=poster_id, imageDeleted=image_deleted))
    except Exception as exc:
        return response_for_exception(exc, trace_id, "metadata:delete_error", "Deleting poster metadata")


@bp.function_name(name="list_categories")
@bp.route(route="categories", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def list_categories(req: func.HttpRequest) -> func.HttpResponse:
    trace_id = trace_id_for(req)
    try:
        return json_response(CategoriesResponse(categories=get_services().repository.categories()))
    except Exception as exc:
        return response_for_exception(exc, trace_id, "metadata:categories_error", "Getting categories")


@bp.function_name(name="category_catalog")
@bp.route(route="category-catalog", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def category_catalog(req: func.HttpRequest) -> func.HttpResponse:
    entries = [
        CategoryCatalogEntry(id=name, name=name, key=key, englishName=CATEGORY_ENGLISH_NAMES[name])
        for name, key in CATEGORY_MAPPING.items()
    ]
    return json_response(CategoryCatalogResponse(categories=entries))


@bp.function_name(name="search_posters")
@bp.route(route="search-posters", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def search_posters(req: func.HttpRequest) -> func.HttpResponse:
    trace_id = trace_id_for(req)
    query = (req.params.get("q") or "").strip()
    category = (req.params.get("category") or "").strip() or None
    try:
        posters = get_services().repository.search(query, category)
        log_info(trace_id, "metadata:search", query=query, category=category, count=len(posters))
        return json_response(PosterSearchResponse(posters=posters, total=len(posters), query=query, category=category))
    except Exception as exc:
        return response_for_exception(exc, trace_id, "metadata:search_error", "Searching posters")
