"""
In-Memory Queue Service

Process-local queue service. State lives only as long as the service object.

Author: QueueAdmin Contributors
Date: 2026-10-19
"""

import itertools
import threading
import time
import uuid
from collections import deque
from typing import Deque, Dict, Optional

from .exceptions import QueueAlreadyExistsError, QueueNotFoundError
from .interface import QueueHandle, QueueService, ServiceConfig, StoreType
from .models import (
    EMPTY,
    AccessControlEntryType,
    AccessRights,
    Message,
    PermissionEntry,
    QueueAccessMode,
    QueueInfo,
    ReceiveResult,
    Received,
    TransactionType,
)


class InMemoryQueueService(QueueService):
    """
    In-memory queue service.

    A waiting receive blocks on a condition variable, so a send from another
    thread wakes it before the timeout expires.
    """

    def __init__(self, config: Optional[ServiceConfig] = None):
        super().__init__(config or ServiceConfig(store_type=StoreType.MEMORY))
        self._queues: Dict[str, QueueInfo] = {}
        self._messages: Dict[str, Deque[Message]] = {}
        self._source_id = str(uuid.uuid4())
        self._sequence = itertools.count(1)
        self._condition = threading.Condition()

    def exists(self, name: str) -> bool:
        with self._condition:
            return name in self._queues

    def create(self, name: str, transactional: bool = True) -> QueueHandle:
        self._validate_name(name)
        with self._condition:
            if name in self._queues:
                raise QueueAlreadyExistsError(name)
            self._queues[name] = QueueInfo(name=name, transactional=transactional)
            self._messages[name] = deque()
        return QueueHandle(self, name, QueueAccessMode.SEND_AND_RECEIVE)

    def delete(self, name: str) -> None:
        with self._condition:
            info = self._get(name)
            self._check_access(name, info.permissions, AccessRights.DELETE_QUEUE)
            del self._queues[name]
            del self._messages[name]
            self._condition.notify_all()

    def open(
        self,
        name: str,
        access_mode: QueueAccessMode = QueueAccessMode.SEND_AND_RECEIVE,
    ) -> QueueHandle:
        with self._condition:
            self._get(name)
        return QueueHandle(self, name, access_mode)

    def purge(self, handle: QueueHandle) -> None:
        self._check_mode(handle, AccessRights.RECEIVE_MESSAGE)
        with self._condition:
            info = self._get(handle.name)
            self._check_access(handle.name, info.permissions, AccessRights.RECEIVE_MESSAGE)
            self._messages[handle.name].clear()

    def receive(
        self,
        handle: QueueHandle,
        timeout: float,
        transaction: TransactionType = TransactionType.AUTOMATIC,
    ) -> ReceiveResult:
        self._check_mode(handle, AccessRights.RECEIVE_MESSAGE)
        deadline = time.monotonic() + max(timeout, 0.0)
        with self._condition:
            while True:
                info = self._get(handle.name)
                self._check_access(handle.name, info.permissions, AccessRights.RECEIVE_MESSAGE)
                self._check_transaction(info, transaction)

                messages = self._messages[handle.name]
                if messages:
                    return Received(messages.popleft())

                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return EMPTY
                self._condition.wait(remaining)

    def send(
        self,
        handle: QueueHandle,
        message: Message,
        transaction: TransactionType = TransactionType.SINGLE,
    ) -> Message:
        self._check_mode(handle, AccessRights.WRITE_MESSAGE)
        with self._condition:
            info = self._get(handle.name)
            self._check_access(handle.name, info.permissions, AccessRights.WRITE_MESSAGE)
            self._check_transaction(info, transaction)

            delivered = message.delivered(f"{self._source_id}\\{next(self._sequence)}")
            self._messages[handle.name].append(delivered)
            self._condition.notify_all()
            return delivered

    def set_permissions(
        self,
        handle: QueueHandle,
        principal: str,
        rights: AccessRights,
        entry_type: AccessControlEntryType = AccessControlEntryType.ALLOW,
    ) -> None:
        with self._condition:
            info = self._get(handle.name)
            self._check_access(handle.name, info.permissions, AccessRights.CHANGE_PERMISSIONS)
            info.permissions.append(
                PermissionEntry(principal=principal, rights=rights, entry_type=entry_type)
            )

    def get_queue(self, name: str) -> QueueInfo:
        with self._condition:
            return self._get(name).model_copy(deep=True)

    def message_count(self, name: str) -> int:
        with self._condition:
            self._get(name)
            return len(self._messages[name])

    def _get(self, name: str) -> QueueInfo:
        if name not in self._queues:
            raise QueueNotFoundError(name)
        return self._queues[name]
