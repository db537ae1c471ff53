"""
Queue Service Exception Hierarchy

Exception types for queue service operations with error codes and context.

Author: QueueAdmin Contributors
Date: 2026-10-19
"""

from typing import Optional, Dict, Any


class QueueServiceError(Exception):
    """
    Base exception for all queue service errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code (e.g., 'QueueNotFound')
        details: Additional context (queue_name, principal, etc.)
    """

    error_code: str = "QueueServiceError"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.error_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format for structured logs."""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details
            }
        }


# ========== Queue Errors ==========

class QueueError(QueueServiceError):
    """Base class for queue-related errors."""
    error_code = "QueueError"


class QueueNotFoundError(QueueError):
    """Raised when a queue does not exist."""
    error_code = "QueueNotFound"

    def __init__(self, queue_name: str, message: Optional[str] = None):
        message = message or f"Queue '{queue_name}' not found"
        super().__init__(message, details={"queue_name": queue_name})


class QueueAlreadyExistsError(QueueError):
    """Raised when attempting to create a queue that already exists."""
    error_code = "QueueAlreadyExists"

    def __init__(self, queue_name: str, message: Optional[str] = None):
        message = message or f"Queue '{queue_name}' already exists"
        super().__init__(message, details={"queue_name": queue_name})


class InvalidQueueNameError(QueueError):
    """Raised when a queue name is malformed."""
    error_code = "InvalidQueueName"

    def __init__(self, queue_name: str, reason: str, message: Optional[str] = None):
        message = message or f"Invalid queue name '{queue_name}': {reason}"
        super().__init__(
            message,
            details={"queue_name": queue_name, "reason": reason}
        )


# ========== Access Errors ==========

class AccessDeniedError(QueueServiceError):
    """Raised when the acting principal lacks a right on a queue or handle."""
    error_code = "AccessDenied"

    def __init__(
        self,
        queue_name: str,
        principal: str,
        right: str,
        message: Optional[str] = None
    ):
        message = message or (
            f"Access to queue '{queue_name}' denied: "
            f"'{principal}' does not hold {right}"
        )
        super().__init__(
            message,
            details={"queue_name": queue_name, "principal": principal, "right": right}
        )


class TransactionUsageError(QueueServiceError):
    """Raised when a transaction type does not match the queue's transactional mode."""
    error_code = "TransactionUsage"

    def __init__(self, queue_name: str, transaction: str, message: Optional[str] = None):
        message = message or (
            f"Transaction type '{transaction}' cannot be used with queue '{queue_name}'"
        )
        super().__init__(
            message,
            details={"queue_name": queue_name, "transaction": transaction}
        )


# ========== Service Errors ==========

class ServiceUnavailableError(QueueServiceError):
    """Raised when the underlying store cannot be reached or is closed."""
    error_code = "ServiceUnavailable"

    def __init__(self, reason: str, message: Optional[str] = None):
        message = message or f"Queue service unavailable: {reason}"
        super().__init__(message, details={"reason": reason})
