"""
Queue Service Interface

Defines the abstract interface all queue services implement, and the handle
type returned when a queue is created or opened.

Author: QueueAdmin Contributors
Date: 2026-10-19
"""

import getpass
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import List

from .exceptions import AccessDeniedError, InvalidQueueNameError, TransactionUsageError
from .models import (
    AccessControlEntryType,
    AccessRights,
    Message,
    PermissionEntry,
    QueueAccessMode,
    QueueInfo,
    QueueNameValidator,
    ReceiveResult,
    TransactionType,
    is_denied,
)


class StoreType(str, Enum):
    """Supported queue service stores."""

    MEMORY = "memory"
    SQLITE = "sqlite"


def _default_principal() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "anonymous"


@dataclass
class ServiceConfig:
    """
    Configuration for queue services.

    Attributes:
        store_type: Which queue service implementation to use
        sqlite_path: Path to the SQLite database file
        busy_timeout_ms: How long SQLite waits on a locked database
        wal_enabled: Enable SQLite write-ahead logging
        poll_interval_seconds: Sleep between polls while a receive waits
        principal: Identity that operations are checked against
    """

    store_type: StoreType = StoreType.SQLITE
    sqlite_path: str = "~/.queueadmin/queues.db"
    busy_timeout_ms: int = 5000
    wal_enabled: bool = True
    poll_interval_seconds: float = 0.05
    principal: str = field(default_factory=_default_principal)


class QueueHandle:
    """
    An open queue.

    Handles are obtained from ``QueueService.create`` or ``QueueService.open``
    and delegate every operation back to the service that produced them.
    """

    def __init__(self, service: "QueueService", name: str, access_mode: QueueAccessMode):
        self.service = service
        self.name = name
        self.access_mode = access_mode

    def purge(self) -> None:
        self.service.purge(self)

    def receive(
        self,
        timeout: float,
        transaction: TransactionType = TransactionType.AUTOMATIC,
    ) -> ReceiveResult:
        return self.service.receive(self, timeout, transaction)

    def send(
        self,
        message: Message,
        transaction: TransactionType = TransactionType.SINGLE,
    ) -> Message:
        return self.service.send(self, message, transaction)

    def set_permissions(
        self,
        principal: str,
        rights: AccessRights,
        entry_type: AccessControlEntryType = AccessControlEntryType.ALLOW,
    ) -> None:
        self.service.set_permissions(self, principal, rights, entry_type)

    def __repr__(self) -> str:
        return f"QueueHandle(name={self.name!r}, access_mode={self.access_mode.value})"


class QueueService(ABC):
    """
    Abstract base class for queue services.

    **Lifecycle**:
    1. __init__(config) - Bind to a store
    2. [exists, create, delete, open, and handle operations]
    3. close() - Release the store

    **Transactions**:
    Every receive and every send is atomic on its own. There is no
    transaction spanning a receive from one queue and a send to another.

    **Error Handling**:
    - QueueNotFoundError for operations on a missing queue
    - QueueAlreadyExistsError when creating an existing queue
    - AccessDeniedError when the acting principal is denied a right, or a
      handle was opened without the needed access mode
    - ServiceUnavailableError when the store itself fails
    """

    def __init__(self, config: ServiceConfig):
        self.config = config
        self.principal = config.principal

    @abstractmethod
    def exists(self, name: str) -> bool:
        """Check whether a queue exists."""

    @abstractmethod
    def create(self, name: str, transactional: bool = True) -> QueueHandle:
        """
        Create a queue.

        Raises:
            InvalidQueueNameError: If the name is malformed
            QueueAlreadyExistsError: If the queue already exists
        """

    @abstractmethod
    def delete(self, name: str) -> None:
        """
        Delete a queue and all its messages.

        Raises:
            QueueNotFoundError: If the queue does not exist
        """

    @abstractmethod
    def open(
        self,
        name: str,
        access_mode: QueueAccessMode = QueueAccessMode.SEND_AND_RECEIVE,
    ) -> QueueHandle:
        """
        Open an existing queue.

        Raises:
            QueueNotFoundError: If the queue does not exist
        """

    @abstractmethod
    def purge(self, handle: QueueHandle) -> None:
        """Remove every message from a queue, keeping the queue."""

    @abstractmethod
    def receive(
        self,
        handle: QueueHandle,
        timeout: float,
        transaction: TransactionType,
    ) -> ReceiveResult:
        """
        Remove and return the oldest message, waiting up to ``timeout`` seconds.

        Returns:
            Received(message), or EMPTY when nothing arrived in time
        """

    @abstractmethod
    def send(
        self,
        handle: QueueHandle,
        message: Message,
        transaction: TransactionType,
    ) -> Message:
        """
        Append a message to a queue.

        Returns:
            The delivered message, carrying its new identifier
        """

    @abstractmethod
    def set_permissions(
        self,
        handle: QueueHandle,
        principal: str,
        rights: AccessRights,
        entry_type: AccessControlEntryType,
    ) -> None:
        """Add an access control entry to a queue."""

    @abstractmethod
    def get_queue(self, name: str) -> QueueInfo:
        """
        Get a queue definition including its permissions.

        Raises:
            QueueNotFoundError: If the queue does not exist
        """

    @abstractmethod
    def message_count(self, name: str) -> int:
        """Number of messages currently in a queue."""

    def close(self) -> None:
        """Release resources held by the service."""

    def __enter__(self) -> "QueueService":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    # Shared checks

    def _validate_name(self, name: str) -> None:
        is_valid, error = QueueNameValidator.validate(name)
        if not is_valid:
            raise InvalidQueueNameError(name, error)

    def _check_access(
        self,
        name: str,
        permissions: List[PermissionEntry],
        right: AccessRights,
    ) -> None:
        if is_denied(permissions, self.principal, right):
            raise AccessDeniedError(name, self.principal, right.value)

    def _check_mode(self, handle: QueueHandle, right: AccessRights) -> None:
        if right is AccessRights.WRITE_MESSAGE:
            allowed = handle.access_mode.can_send
        else:
            allowed = handle.access_mode.can_receive
        if not allowed:
            raise AccessDeniedError(
                handle.name,
                self.principal,
                right.value,
                message=(
                    f"Handle for queue '{handle.name}' was opened with "
                    f"{handle.access_mode.value} access"
                ),
            )

    def _check_transaction(self, info: QueueInfo, transaction: TransactionType) -> None:
        if info.transactional and transaction == TransactionType.NONE:
            raise TransactionUsageError(info.name, transaction.value)
        if not info.transactional and transaction == TransactionType.SINGLE:
            raise TransactionUsageError(info.name, transaction.value)

