from time import perf_counter
import azure.functions as func

from src.shared.http_utils import error_response, json_response, response_for_exception, trace_id_for
from src.shared.logging_utils import info as log_info
from src.shared.services import get_services
from src.shared.uploads import extract_file_from_request, generate_unique_file_name, get_object_url, inspect_image
from src.specs.common.datetime_utils import to_iso
from src.specs.common.errors import ValidationError
from src.specs.http.poster_files import (
    DeletePosterObjectResponse,
    PosterObjectItem,
    PosterObjectListResponse,
    PosterUrlResponse,
    UploadPosterResponse,
)


bp = func.Blueprint()


@bp.function_name(name="upload_poster")
@bp.route(route="upload-poster", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def upload_poster(req: func.HttpRequest) -> func.HttpResponse:
    trace_id = trace_id_for(req)
    start = perf_counter()
    try:
        services = get_services()
        settings = services.settings
        upload = extract_file_from_request(req, settings.max_upload_bytes)
        image = inspect_image(upload.data)

        key = generate_unique_file_name(upload.filename, prefix=settings.image_prefix)
        services.object_store.put(key, upload.data, content_type=image.content_type)

        duration_ms = int((perf_counter() - start) * 1000)
        log_info(trace_id, "upload:stored", key=key, size=upload.size, format=image.format, durationMs=duration_ms)
        resp = UploadPosterResponse(
            url=get_object_url(settings, key),
            key=key,
            contentType=image.content_type,
            size=upload.size,
            width=image.width,
            height=image.height,
        )
        return json_response(resp)
    except Exception as exc:
        return response_for_exception(exc, trace_id, "upload:error", "File upload")


@bp.function_name(name="get_poster_url")
@bp.route(route="get-poster-url/{*key}", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def get_poster_url(req: func.HttpRequest) -> func.HttpResponse:
    """Serve the image bytes; ?format=json returns its public URL after an existence check."""
    trace_id = trace_id_for(req)
    key = req.route_params.get("key") or ""
    try:
        if not key:
            raise ValidationError("Missing poster key")
        services = get_services()

        if req.params.get("format") == "json":
            if services.object_store.head(key) is None:
                return error_response("Poster not found", 404, "RESOURCE_NOT_FOUND", {"key": key})
            return json_response(PosterUrlResponse(url=get_object_url(services.settings, key)))

        obj = services.object_store.get(key)
        if obj is None:
            log_info(trace_id, "image:not_found", key=key)
            return error_response("Poster not found", 404, "RESOURCE_NOT_FOUND", {"key": key})
        return func.HttpResponse(
            body=obj.data,
            mimetype=obj.info.content_type,
            status_code=200,
            headers={"Cache-Control": "public, max-age=31536000, immutable"},
        )
    except Exception as exc:
        return response_for_exception(exc, trace_id, "image:error", "Getting poster URL")


@bp.function_name(name="list_posters")
@bp.route(route="list-posters", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def list_posters(req: func.HttpRequest) -> func.HttpResponse:
    trace_id = trace_id_for(req)
    try:
        services = get_services()
        items = [
            PosterObjectItem(
                key=info.key,
                lastModified=to_iso(info.last_modified),
                size=info.size,
                url=get_object_url(services.settings, info.key),
            )
            for info in services.object_store.list(services.settings.image_prefix)
        ]
        log_info(trace_id, "image:list", count=len(items))
        return json_response(PosterObjectListResponse(posters=items))
    except Exception as exc:
        return response_for_exception(exc, trace_id, "image:list_error", "Listing posters")


@bp.function_name(name="delete_poster")
@bp.route(route="delete-poster/{*key}", methods=["DELETE"], auth_level=func.AuthLevel.FUNCTION)
def delete_poster(req: func.HttpRequest) -> func.HttpResponse:
    trace_id = trace_id_for(req)
    key = req.route_params.get("key") or ""
    try:
        services = get_services()
        prefix = services.settings.image_prefix
        if not key.startswith(prefix) or key == prefix:
            raise ValidationError(f"Only keys under '{prefix}' can be deleted", details={"key": key})

        existed = services.object_store.delete(key)
        log_info(trace_id, "image:deleted", key=key, existed=existed)
        return json_response(DeletePosterObjectResponse(message="Poster deleted"))
    except Exception as exc:
        return response_for_exception(exc, trace_id, "image:delete_error", "Deleting poster")
