import json
import uuid
from typing import Any, Dict, Optional, Type, TypeVar

import azure.functions as func
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from src.shared.logging_utils import error as log_error
from src.specs.common.error_response_spec import ErrorResponse
from src.specs.common.errors import PosterHubError, ValidationError

JSON_MIMETYPE = "application/json"

M = TypeVar("M", bound=BaseModel)


def trace_id_for(req: func.HttpRequest) -> str:
    return req.headers.get("x-request-id") or uuid.uuid4().hex


def json_response(payload: Any, status_code: int = 200, headers: Optional[Dict[str, str]] = None) -> func.HttpResponse:
    if isinstance(payload, BaseModel):
        body = payload.model_dump_json()
    else:
        body = json.dumps(payload, ensure_ascii=False, default=_json_default)
    return func.HttpResponse(
        body=body,
        mimetype=JSON_MIMETYPE,
        status_code=status_code,
        headers=headers,
    )


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def error_response(message: str, status_code: int, code: Optional[str] = None, details: Any = None) -> func.HttpResponse:
    err = ErrorResponse(error=message, code=code, details=details)
    return json_response(err, status_code=status_code)


def response_for_exception(exc: Exception, trace_id: Optional[str], event: str, action: str) -> func.HttpResponse:
    """Translate an exception raised by a handler into the API error body."""
    if isinstance(exc, PosterHubError):
        log_error(trace_id, event, code=exc.code, error=str(exc))
        return json_response(ErrorResponse.model_validate(exc.to_dict()), status_code=exc.status_code)
    log_error(trace_id, event, error=str(exc), errorType=type(exc).__name__)
    return error_response(f"{action} failed", 500, "INTERNAL_ERROR", str(exc))


def read_json_body(req: func.HttpRequest) -> Dict[str, Any]:
    try:
        data = req.get_json()
    except ValueError as e:
        raise ValidationError("Invalid JSON body") from e
    if not isinstance(data, dict):
        raise ValidationError("JSON body must be an object")
    return data


def positive_int(value: Optional[str], name: str, default: int = 1) -> int:
    if value is None or value == "":
        return default
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{name} must be a positive integer", details={name: value}) from e
    if number < 1:
        raise ValidationError(f"{name} must be a positive integer", details={name: value})
    return number


def flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def parse_model(model: Type[M], data: Dict[str, Any]) -> M:
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(
            f"Invalid request: {e.error_count()} validation error(s)",
            details={"errors": e.errors(include_url=False, include_context=False)},
        ) from e
