from __future__ import annotations

from typing import Dict, Type

from pydantic import BaseModel

from src.specs.common.error_response_spec import ErrorResponse
from src.specs.documents.poster_document_spec import PosterDocument, PosterInput, PosterPatch
from src.specs.http.exported_data import (
    CategoryListingResponse,
    ClearExportResponse,
    ExportMetadata,
    ExportSummary,
    ExportedPageResponse,
    HealthResponse,
    MigrateUrlsRequest,
    MigrationReport,
    RebuildReport,
    SearchIndexManifest,
)
from src.specs.http.poster_files import (
    DeletePosterObjectResponse,
    PosterObjectListResponse,
    UploadPosterResponse,
)
from src.specs.http.poster_metadata import (
    CategoriesResponse,
    CategoryCatalogResponse,
    DeletePosterMetadataResponse,
    PosterListResponse,
    PosterResponse,
    PosterSearchResponse,
)


# Registry mapping output schema filenames to models for generation
SCHEMA_MODELS: Dict[str, Type[BaseModel]] = {
    "poster.document.schema.json": PosterDocument,
    "poster.input.schema.json": PosterInput,
    "poster.patch.schema.json": PosterPatch,
    "poster.response.schema.json": PosterResponse,
    "poster.list.response.schema.json": PosterListResponse,
    "poster.search.response.schema.json": PosterSearchResponse,
    "poster.delete.response.schema.json": DeletePosterMetadataResponse,
    "categories.response.schema.json": CategoriesResponse,
    "category.catalog.response.schema.json": CategoryCatalogResponse,
    "upload.response.schema.json": UploadPosterResponse,
    "poster.objects.response.schema.json": PosterObjectListResponse,
    "poster.object.delete.response.schema.json": DeletePosterObjectResponse,
    "category.listing.response.schema.json": CategoryListingResponse,
    "exported.page.response.schema.json": ExportedPageResponse,
    "export.summary.schema.json": ExportSummary,
    "export.metadata.schema.json": ExportMetadata,
    "search.index.manifest.schema.json": SearchIndexManifest,
    "rebuild.report.schema.json": RebuildReport,
    "migrate.urls.request.schema.json": MigrateUrlsRequest,
    "migration.report.schema.json": MigrationReport,
    "export.clear.response.schema.json": ClearExportResponse,
    "health.response.schema.json": HealthResponse,
    "error.response.schema.json": ErrorResponse,
}

__all__ = [
    "PosterDocument",
    "PosterInput",
    "PosterPatch",
    "PosterResponse",
    "PosterListResponse",
    "PosterSearchResponse",
    "CategoryListingResponse",
    "UploadPosterResponse",
    "ErrorResponse",
    "SCHEMA_MODELS",
]
