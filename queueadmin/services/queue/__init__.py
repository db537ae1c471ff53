"""
Queue Service Package

Transactional queue service interface, models and stores.

Author: QueueAdmin Contributors
Date: 2026-10-19
"""

from .exceptions import (
    QueueServiceError,
    QueueError,
    QueueNotFoundError,
    QueueAlreadyExistsError,
    InvalidQueueNameError,
    AccessDeniedError,
    TransactionUsageError,
    ServiceUnavailableError,
)
from .models import (
    EMPTY,
    AccessControlEntryType,
    AccessRights,
    Empty,
    Message,
    PermissionEntry,
    QueueAccessMode,
    QueueInfo,
    QueueNameValidator,
    Received,
    ReceiveResult,
    TransactionType,
)
from .interface import QueueHandle, QueueService, ServiceConfig, StoreType
from .memory import InMemoryQueueService
from .sqlite import SQLiteQueueService
from .factory import create_queue_service

__all__ = [
    "QueueServiceError",
    "QueueError",
    "QueueNotFoundError",
    "QueueAlreadyExistsError",
    "InvalidQueueNameError",
    "AccessDeniedError",
    "TransactionUsageError",
    "ServiceUnavailableError",
    "EMPTY",
    "AccessControlEntryType",
    "AccessRights",
    "Empty",
    "Message",
    "PermissionEntry",
    "QueueAccessMode",
    "QueueInfo",
    "QueueNameValidator",
    "Received",
    "ReceiveResult",
    "TransactionType",
    "QueueHandle",
    "QueueService",
    "ServiceConfig",
    "StoreType",
    "InMemoryQueueService",
    "SQLiteQueueService",
    "create_queue_service",
]
