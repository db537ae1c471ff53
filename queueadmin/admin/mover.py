"""
Bounded message move between two queues.

Author: QueueAdmin Contributors
Date: 2026-10-19
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable

import click

from queueadmin.core.config_manager import RECEIVE_TIMEOUT_SECONDS
from queueadmin.services.queue import (
    Empty,
    QueueAccessMode,
    QueueService,
    TransactionType,
)

from .tokens import Flag, Token, first_number_or, non_numeric, to_queue_name, token_text

logger = logging.getLogger(__name__)

MOVE_FLAG = "--move"
DEFAULT_MAX_MESSAGES = 1


class MoveRequestError(ValueError):
    """Raised when move arguments do not name a usable source and destination."""


@dataclass(frozen=True)
class MoveRequest:
    source: str
    destination: str
    max_messages: int = DEFAULT_MAX_MESSAGES


def parse_move_request(tokens: Iterable[Token], prefix: str) -> MoveRequest:
    """
    Build a MoveRequest from move-mode tokens.

    The first number is the message count (default 1). With every flag
    discarded, the move flag included, the first remaining non-numeric token
    is the source and the last is the destination.

    Raises:
        MoveRequestError: If fewer than two queue names remain, or source and
            destination are the same queue
    """
    tokens = [token for token in tokens if not isinstance(token, Flag)]
    max_messages = first_number_or(tokens, DEFAULT_MAX_MESSAGES)
    names = non_numeric(tokens)
    if len(names) < 2:
        raise MoveRequestError("--move needs a source and a destination queue")

    source = to_queue_name(token_text(names[0]), prefix)
    destination = to_queue_name(token_text(names[-1]), prefix)
    if source == destination:
        raise MoveRequestError(f"source and destination are the same queue: {source}")

    return MoveRequest(source=source, destination=destination, max_messages=max_messages)


class QueueMover:
    """
    Moves up to N messages from one queue to another.

    Each message is received under an automatic transaction and sent under a
    single-operation transaction. The two halves are separate transactions:
    a crash between them loses the message.

    Args:
        service: Queue service both queues live in
        receive_timeout: Seconds to wait for a message before treating the
            source as drained
        echo: Where progress lines are written
    """

    def __init__(
        self,
        service: QueueService,
        receive_timeout: float = RECEIVE_TIMEOUT_SECONDS,
        echo: Callable[[str], None] = click.echo,
    ):
        self.service = service
        self.receive_timeout = receive_timeout
        self.echo = echo

    def move(self, request: MoveRequest) -> int:
        """
        Run the move.

        Returns:
            Number of messages moved

        Raises:
            QueueServiceError: Any service failure ends the move
        """
        self.echo(
            f"Moving {request.max_messages} messages from "
            f"{request.source} to {request.destination}"
        )
        source = self.service.open(request.source, QueueAccessMode.SEND_AND_RECEIVE)
        destination = self.service.open(request.destination, QueueAccessMode.SEND_AND_RECEIVE)

        moved = 0
        remaining = request.max_messages
        while remaining > 0:
            result = source.receive(self.receive_timeout, TransactionType.AUTOMATIC)
            if isinstance(result, Empty):
                self.echo("No more messages")
                break

            message = result.message
            self.echo(f"Moving {message.message_id} {request.source} to {request.destination}")
            destination.send(message, TransactionType.SINGLE)
            moved += 1
            remaining -= 1

        logger.info(f"Moved {moved} message(s) from {request.source} to {request.destination}")
        return moved
