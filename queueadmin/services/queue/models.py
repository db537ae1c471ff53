"""
Queue Service Models

Pydantic models and enums for queues, messages, access control and receive
results.

Author: QueueAdmin Contributors
Date: 2026-10-19
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class QueueNameValidator:
    """
    Validates queue path names.

    Rules:
    - Not empty or whitespace-only
    - No leading or trailing whitespace
    - No control characters
    - Local part (after the last path separator) 1-124 characters
    """

    PATTERN = re.compile(r'^[^\x00-\x1f\x7f]+$')
    SEPARATOR = "\\"
    MAX_LOCAL_LENGTH = 124

    @classmethod
    def validate(cls, name: str) -> tuple[bool, Optional[str]]:
        """
        Validate a queue path name.

        Args:
            name: Queue name to validate

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not name or not name.strip():
            return False, "Queue name cannot be empty"
        if name != name.strip():
            return False, "Queue name cannot have leading or trailing whitespace"
        if not cls.PATTERN.match(name):
            return False, "Queue name cannot contain control characters"

        local_name = name.rsplit(cls.SEPARATOR, 1)[-1]
        if not local_name:
            return False, "Queue name cannot end with a path separator"
        if len(local_name) > cls.MAX_LOCAL_LENGTH:
            return False, f"Queue name must be at most {cls.MAX_LOCAL_LENGTH} characters"

        return True, None


class QueueAccessMode(str, Enum):
    """Access requested when opening a queue handle."""
    RECEIVE = "Receive"
    SEND = "Send"
    SEND_AND_RECEIVE = "SendAndReceive"

    @property
    def can_send(self) -> bool:
        return self in (QueueAccessMode.SEND, QueueAccessMode.SEND_AND_RECEIVE)

    @property
    def can_receive(self) -> bool:
        return self in (QueueAccessMode.RECEIVE, QueueAccessMode.SEND_AND_RECEIVE)


class TransactionType(str, Enum):
    """
    Transaction under which a receive or send runs.

    NONE is only valid for non-transactional queues. AUTOMATIC joins an
    ambient transaction when one exists and otherwise behaves like SINGLE;
    this service never has an ambient transaction.
    """
    NONE = "None"
    AUTOMATIC = "Automatic"
    SINGLE = "Single"


class AccessRights(str, Enum):
    """Rights that can be granted or denied on a queue."""
    RECEIVE_MESSAGE = "ReceiveMessage"
    WRITE_MESSAGE = "WriteMessage"
    DELETE_QUEUE = "DeleteQueue"
    CHANGE_PERMISSIONS = "ChangeQueuePermissions"
    FULL_CONTROL = "FullControl"

    def covers(self, right: "AccessRights") -> bool:
        """Check whether holding this right implies ``right``."""
        return self is AccessRights.FULL_CONTROL or self is right


class AccessControlEntryType(str, Enum):
    """Whether an access control entry allows or denies its rights."""
    ALLOW = "Allow"
    DENY = "Deny"


class PermissionEntry(BaseModel):
    """One access control entry on a queue."""
    model_config = ConfigDict(extra='forbid', frozen=True)

    principal: str = Field(..., min_length=1)
    rights: AccessRights
    entry_type: AccessControlEntryType = AccessControlEntryType.ALLOW


def is_denied(
    entries: List[PermissionEntry],
    principal: str,
    right: AccessRights,
) -> bool:
    """Return True when a Deny entry for ``principal`` covers ``right``."""
    return any(
        entry.entry_type == AccessControlEntryType.DENY
        and entry.principal == principal
        and entry.rights.covers(right)
        for entry in entries
    )


class QueueInfo(BaseModel):
    """Queue definition as stored by a queue service."""
    model_config = ConfigDict(extra='forbid')

    name: str
    transactional: bool = True
    created_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    permissions: List[PermissionEntry] = Field(default_factory=list)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate queue name."""
        is_valid, error = QueueNameValidator.validate(v)
        if not is_valid:
            raise ValueError(error)
        return v


class Message(BaseModel):
    """
    Queue message.

    Attributes:
        message_id: Identifier assigned by the service on delivery,
            ``<source-id>\\<sequence>``; None for a message not yet sent
        body: Message content
        label: Optional short description
        enqueued_time: Time the message was accepted by its current queue
    """
    model_config = ConfigDict(extra='forbid')

    message_id: Optional[str] = None
    body: str
    label: str = ""
    enqueued_time: Optional[datetime] = None

    def delivered(self, message_id: str) -> "Message":
        """Return a copy of this message carrying a new delivery identity."""
        return self.model_copy(update={
            "message_id": message_id,
            "enqueued_time": datetime.now(timezone.utc),
        })


@dataclass(frozen=True)
class Received:
    """A receive call returned a message."""
    message: Message


@dataclass(frozen=True)
class Empty:
    """A receive call timed out with no message available."""


EMPTY = Empty()

ReceiveResult = Union[Received, Empty]
