#!/usr/bin/env python3
"""
Generate JSON Schemas, YAML variants, and OpenAPI from Pydantic models.

Outputs under src/specs/:
 - schemas/*.json (and *.yaml)
 - openapi.yaml and openapi.json
"""
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import List, Optional, Tuple, Type

try:
    import yaml  # type: ignore
except Exception as exc:  # pragma: no cover
    print("PyYAML is required: pip install pyyaml", file=sys.stderr)
    raise


ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
SPECS = SRC / "specs"
SCHEMAS_DIR = SPECS / "schemas"

sys.path.insert(0, str(ROOT))

from pydantic import BaseModel  # noqa: E402

from src.specs.models import SCHEMA_MODELS  # noqa: E402

# (method, path, summary, request schema file, response schema file, success status)
Route = Tuple[str, str, str, Optional[str], Optional[str], str]

ROUTES: List[Route] = [
    ("post", "/upload-poster", "Upload a poster image (multipart field 'poster')", None, "upload.response.schema.json", "200"),
    ("get", "/get-poster-url/{key}", "Serve a poster image", None, None, "200"),
    ("get", "/list-posters", "List stored poster images", None, "poster.objects.response.schema.json", "200"),
    ("delete", "/delete-poster/{key}", "Delete a poster image under posters/", None, "poster.object.delete.response.schema.json", "200"),
    ("get", "/poster-metadata", "List poster metadata", None, "poster.list.response.schema.json", "200"),
    ("post", "/poster-metadata", "Create poster metadata", "poster.input.schema.json", "poster.response.schema.json", "201"),
    ("get", "/poster-metadata/{id}", "Get poster metadata", None, "poster.response.schema.json", "200"),
    ("put", "/poster-metadata/{id}", "Update poster metadata", "poster.patch.schema.json", "poster.response.schema.json", "200"),
    ("delete", "/poster-metadata/{id}", "Delete poster metadata (?deleteImage=true also removes the image)", None, "poster.delete.response.schema.json", "200"),
    ("get", "/categories", "Categories in use", None, "categories.response.schema.json", "200"),
    ("get", "/category-catalog", "Fixed category catalog", None, "category.catalog.response.schema.json", "200"),
    ("get", "/search-posters", "Search posters", None, "poster.search.response.schema.json", "200"),
    ("get", "/posters", "Paginated public listing", None, "category.listing.response.schema.json", "200"),
    ("get", "/exported-data/metadata", "Page index metadata", None, "export.metadata.schema.json", "200"),
    ("get", "/exported-data/{category}/{page}", "One page of the page index", None, "exported.page.response.schema.json", "200"),
    ("get", "/search-index/{name}", "Generated search-index file", None, None, "200"),
    ("get", "/health", "Backend and cache status", None, "health.response.schema.json", "200"),
    ("post", "/manage/export-categorized-data", "Rebuild the page index", None, "export.summary.schema.json", "200"),
    ("get", "/manage/static-json-data", "Pages for every category as one document", None, None, "200"),
    ("delete", "/manage/exported-data", "Remove the page index", None, "export.clear.response.schema.json", "200"),
    ("post", "/manage/rebuild-search-index", "Rebuild search-index files", None, "search.index.manifest.schema.json", "200"),
    ("post", "/manage/migrate-urls", "Rewrite stored image URLs", "migrate.urls.request.schema.json", "migration.report.schema.json", "200"),
    ("post", "/manage/refactor-database", "Rebuild every derived index", None, "rebuild.report.schema.json", "200"),
]


def write_json_yaml(obj: dict, json_path: Path) -> None:
    json_path.parent.mkdir(parents=True, exist_ok=True)
    with json_path.open("w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, ensure_ascii=False)
    yaml_path = json_path.with_suffix(".yaml")
    with yaml_path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(obj, f, sort_keys=False, allow_unicode=True)


def generate_model_schemas() -> None:
    for filename, model in SCHEMA_MODELS.items():
        schema = model.model_json_schema()
        write_json_yaml(schema, SCHEMAS_DIR / filename)


def _component_name(model: Type[BaseModel]) -> str:
    return model.__name__


def _ref(filename: Optional[str]) -> Optional[dict]:
    if not filename:
        return None
    return {"$ref": f"#/components/schemas/{_component_name(SCHEMA_MODELS[filename])}"}


def build_openapi() -> dict:
    components = {
        "schemas": {_component_name(m): m.model_json_schema() for m in SCHEMA_MODELS.values()}
    }
    error_ref = _ref("error.response.schema.json")

    paths: dict = {}
    for method, path, summary, req_file, resp_file, status in ROUTES:
        op: dict = {"summary": summary, "responses": {}}
        params = [
            {"in": "path", "name": part[1:-1], "required": True, "schema": {"type": "string"}}
            for part in path.split("/") if part.startswith("{")
        ]
        if params:
            op["parameters"] = params
        if req_file:
            op["requestBody"] = {
                "required": True,
                "content": {"application/json": {"schema": _ref(req_file)}},
            }
        ok: dict = {"description": "Success"}
        if resp_file:
            ok["content"] = {"application/json": {"schema": _ref(resp_file)}}
        op["responses"][status] = ok
        op["responses"]["default"] = {
            "description": "Error",
            "content": {"application/json": {"schema": error_ref}},
        }
        paths.setdefault(path, {})[method] = op

    return {
        "openapi": "3.0.3",
        "info": {
            "title": "PosterHub Functions API",
            "version": "0.1.0",
            "description": "HTTP endpoints exposed by the PosterHub Azure Functions app.",
        },
        "servers": [
            {"url": "http://localhost:7071/api", "description": "Local Functions host"}
        ],
        "paths": paths,
        "components": components,
    }


def generate_openapi() -> None:
    spec = build_openapi()
    write_json_yaml(spec, SPECS / "openapi.json")


def main() -> None:
    generate_model_schemas()
    generate_openapi()
    print("Specs generated under src/specs/")


if __name__ == "__main__":
    main()
