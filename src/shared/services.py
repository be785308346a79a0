from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from src.shared.blob_store import ObjectStore, create_object_store
from src.shared.cosmos_client import CosmosDBClient
from src.shared.kv_store import PAGES_NAMESPACE, POSTERS_NAMESPACE, create_kv_store
from src.shared.logging_utils import info as log_info
from src.shared.page_index import PageIndexer
from src.shared.poster_repository import PosterRepository
from src.shared.search_index import SearchIndexBuilder
from src.shared.settings import Settings, get_settings


@dataclass
class Services:
    settings: Settings
    repository: PosterRepository
    page_indexer: PageIndexer
    search_index: SearchIndexBuilder
    object_store: ObjectStore


def build_services(settings: Settings) -> Services:
    cosmos: Optional[CosmosDBClient] = None
    if settings.resolved_kv_backend == "cosmos":
        cosmos = CosmosDBClient(settings.cosmos_connection_string, settings.cosmos_db_name)

    object_store = create_object_store(settings)
    repository = PosterRepository(create_kv_store(POSTERS_NAMESPACE, settings, cosmos), settings)
    page_indexer = PageIndexer(repository, create_kv_store(PAGES_NAMESPACE, settings, cosmos), settings)
    search_index = SearchIndexBuilder(repository, object_store, settings)
    log_info(
        None,
        "services:init",
        kvBackend=settings.resolved_kv_backend,
        blobBackend=settings.resolved_blob_backend,
    )
    return Services(
        settings=settings,
        repository=repository,
        page_indexer=page_indexer,
        search_index=search_index,
        object_store=object_store,
    )


@lru_cache(maxsize=1)
def get_services() -> Services:
    """Singleton wiring shared by every function invocation in this worker process"""
    return build_services(get_settings())
