"""
Builders for posters, images and Functions HTTP requests used across the tests.
"""

import io
import json

import azure.functions as func
import requests
from PIL import Image

from src.specs.documents.poster_document_spec import PosterDocument

API_BASE = "https://api.example.com"

_HANDLERS = {}


def make_png(width=8, height=6, color=(200, 30, 30)):
    """Encode a small solid-color PNG."""
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


def make_poster(poster_id, category="工科", updated_at=1_700_000_000_000, **fields):
    image_key = fields.pop("imageKey", f"posters/{updated_at}-{poster_id}.png")
    values = {
        "id": poster_id,
        "title": f"Poster {poster_id}",
        "description": "",
        "category": category,
        "targetAudience": [],
        "imageKey": image_key,
        "imageUrl": f"{API_BASE}/api/get-poster-url/{image_key}",
        "createdAt": updated_at,
        "updatedAt": updated_at,
    }
    values.update(fields)
    return PosterDocument(**values)


def handler(function_builder):
    """Unwrap a blueprint-decorated function into the plain callable."""
    key = id(function_builder)
    if key not in _HANDLERS:
        _HANDLERS[key] = function_builder.build().get_user_function()
    return _HANDLERS[key]


def http_request(method, route, *, params=None, route_params=None, json_body=None, body=b"", headers=None):
    if json_body is not None:
        body = json.dumps(json_body).encode("utf-8")
        headers = {"Content-Type": "application/json", **(headers or {})}
    return func.HttpRequest(
        method=method,
        url=f"http://localhost:7071/api/{route}",
        headers=headers or {},
        params=params or {},
        route_params=route_params or {},
        body=body,
    )


def multipart_request(route, filename, data, content_type="image/png", field="poster"):
    prepared = requests.Request(
        "POST",
        f"http://localhost:7071/api/{route}",
        files={field: (filename, data, content_type)},
    ).prepare()
    return func.HttpRequest(
        method="POST",
        url=prepared.url,
        headers={"Content-Type": prepared.headers["Content-Type"]},
        params={},
        route_params={},
        body=prepared.body,
    )
