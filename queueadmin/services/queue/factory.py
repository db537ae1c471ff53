"""
Queue Service Factory

Creates the queue service selected by configuration.

Author: QueueAdmin Contributors
Date: 2026-10-19
"""

from .exceptions import ServiceUnavailableError
from .interface import QueueService, ServiceConfig, StoreType
from .memory import InMemoryQueueService
from .sqlite import SQLiteQueueService


def create_queue_service(config: ServiceConfig) -> QueueService:
    """
    Factory function to create a queue service based on configuration.

    Args:
        config: Service configuration

    Returns:
        Ready-to-use queue service

    Raises:
        ServiceUnavailableError: If the store type is unknown or cannot be opened

    Example:
        ```python
        config = ServiceConfig(
            store_type=StoreType.SQLITE,
            sqlite_path="./data/queues.db"
        )
        with create_queue_service(config) as service:
            service.exists("orders")
        ```
    """
    if config.store_type == StoreType.MEMORY:
        return InMemoryQueueService(config)

    elif config.store_type == StoreType.SQLITE:
        return SQLiteQueueService(config)

    else:
        raise ServiceUnavailableError(
            f"unknown store type {config.store_type}; "
            f"supported types: {[t.value for t in StoreType]}"
        )
