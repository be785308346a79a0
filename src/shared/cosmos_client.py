# Cosmos DB client used by the key-value store backend

import os
import time
import logging
import backoff
from typing import Optional, List, Dict, Any
from azure.cosmos import CosmosClient, exceptions
from azure.cosmos.container import ContainerProxy
from src.specs.common.errors import ConfigurationError

logger = logging.getLogger("posterhub")

# Namespace -> default container name; override with COSMOS_DB_CONTAINER_<NAMESPACE>
DEFAULT_CONTAINERS = {
    "posters": "posterMetadata",
    "poster_pages": "posterMetadataPages",
}

class RetryableCosmosError(Exception):
    """Indicates a Cosmos DB operation that should be retried"""
    pass

def _raise_retryable(e: exceptions.CosmosHttpResponseError, action: str) -> None:
    if e.status_code in (429, 503):  # Too Many Requests or Service Unavailable
        logger.warning(f"Retryable Cosmos error during {action}: {e}")
        raise RetryableCosmosError(f"Retryable error during {action}: {e}") from e

class CosmosDBClient:
    MAX_RETRIES = 3
    OPERATION_TIMEOUT = 10.0    # 10s

    def __init__(self, connection_string: Optional[str] = None, database_name: Optional[str] = None):
        """Initialize the Cosmos DB client with connection settings and retry policy"""
        self.connection_string = connection_string or os.environ.get("COSMOS_DB_CONNECTION_STRING")
        self.database_name = database_name or os.environ.get("COSMOS_DB_NAME")

        if not self.connection_string or not self.database_name:
            raise ConfigurationError("Missing Cosmos DB connection string or database name")

        self.client = CosmosClient.from_connection_string(
            self.connection_string,
            retry_total=self.MAX_RETRIES
        )
        self.database = self.client.get_database_client(self.database_name)
        self._containers: Dict[str, ContainerProxy] = {}

    def container_name(self, namespace: str) -> str:
        override = os.environ.get(f"COSMOS_DB_CONTAINER_{namespace.upper()}")
        return override or DEFAULT_CONTAINERS.get(namespace, namespace)

    def get_container(self, namespace: str) -> ContainerProxy:
        """
        Get the container backing a namespace, resolving environment overrides

        Args:
            namespace: Logical store name, e.g. 'posters'

        Returns:
            ContainerProxy for the container
        """
        if namespace not in self._containers:
            self._containers[namespace] = self.database.get_container_client(self.container_name(namespace))
        return self._containers[namespace]

    @backoff.on_exception(
        backoff.expo,
        RetryableCosmosError,
        max_tries=MAX_RETRIES,
        max_time=OPERATION_TIMEOUT
    )
    def get_item(self, namespace: str, item_id: str) -> Optional[Dict[str, Any]]:
        """
        Read an item by id; the partition key is the id itself

        Returns:
            The item if found, None if not found
        """
        container = self.get_container(namespace)
        try:
            return container.read_item(item=item_id, partition_key=item_id)
        except exceptions.CosmosResourceNotFoundError:
            logger.debug(f"Item not found: {item_id}")
            return None
        except exceptions.CosmosHttpResponseError as e:
            _raise_retryable(e, f"read of '{item_id}'")
            raise

    @backoff.on_exception(
        backoff.expo,
        RetryableCosmosError,
        max_tries=MAX_RETRIES,
        max_time=OPERATION_TIMEOUT
    )
    def upsert_item(self, namespace: str, item: Dict[str, Any]) -> Dict[str, Any]:
        """Create or update an item"""
        container = self.get_container(namespace)
        try:
            return container.upsert_item(body=item)
        except exceptions.CosmosHttpResponseError as e:
            _raise_retryable(e, f"upsert of '{item.get('id')}'")
            raise

    @backoff.on_exception(
        backoff.expo,
        RetryableCosmosError,
        max_tries=MAX_RETRIES,
        max_time=OPERATION_TIMEOUT
    )
    def delete_item(self, namespace: str, item_id: str) -> bool:
        """
        Delete an item by id with retries

        Returns:
            True if an item was deleted, False if it did not exist
        """
        start_time = time.time()
        container = self.get_container(namespace)
        try:
            container.delete_item(item=item_id, partition_key=item_id)
            logger.debug(f"Deleted item '{item_id}' in {time.time() - start_time:.2f}s")
            return True
        except exceptions.CosmosResourceNotFoundError:
            logger.info(f"Item '{item_id}' not found during delete - already deleted")
            return False
        except exceptions.CosmosHttpResponseError as e:
            _raise_retryable(e, f"delete of '{item_id}'")
            logger.error(f"Error deleting item '{item_id}': {e}")
            raise

    @backoff.on_exception(
        backoff.expo,
        RetryableCosmosError,
        max_tries=MAX_RETRIES,
        max_time=OPERATION_TIMEOUT
    )
    def query_items(
        self,
        namespace: str,
        query: str,
        parameters: Optional[List[Dict[str, Any]]] = None
    ) -> List[Dict[str, Any]]:
        """
        Query items with parameterized queries for safety

        Args:
            namespace: Logical store name
            query: The query to execute (use @param syntax for parameters)
            parameters: List of parameter dictionaries with 'name' and 'value'
        """
        container = self.get_container(namespace)
        try:
            return list(container.query_items(
                query=query,
                parameters=parameters or [],
                enable_cross_partition_query=True
            ))
        except exceptions.CosmosHttpResponseError as e:
            _raise_retryable(e, "query")
            raise

    def list_ids(self, namespace: str, prefix: str = "") -> List[str]:
        if prefix:
            rows = self.query_items(
                namespace,
                "SELECT c.id FROM c WHERE STARTSWITH(c.id, @prefix)",
                [{"name": "@prefix", "value": prefix}],
            )
        else:
            rows = self.query_items(namespace, "SELECT c.id FROM c")
        return [row["id"] for row in rows]
