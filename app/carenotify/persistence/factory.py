"""Durable store factory."""

from typing import TYPE_CHECKING

from carenotify.logging import get_module_logger
from carenotify.persistence.store import DurableStore, InMemoryDurableStore

if TYPE_CHECKING:
    from carenotify.configuration import StorageSettings

logger = get_module_logger()


def create_durable_store(settings: "StorageSettings") -> DurableStore:
    """Create the durable store selected by ``STORE_BACKEND``.

    Args:
        settings: StorageSettings with backend and DynamoDB configuration

    Returns:
        InMemoryDurableStore for ``memory``, DynamoDBDurableStore for ``dynamodb``

    Raises:
        ValueError: If the backend is unknown
    """
    backend = settings.backend.lower()

    if backend == "memory":
        logger.info("durable_store_created", backend="memory")
        return InMemoryDurableStore()

    if backend == "dynamodb":
        from carenotify.persistence.dynamodb import DynamoDBDurableStore

        return DynamoDBDurableStore(
            table_name=settings.dynamodb_table_name,
            region=settings.aws_region,
            endpoint_url=settings.endpoint_url,
        )

    raise ValueError(f"Unknown store backend: {settings.backend}")
