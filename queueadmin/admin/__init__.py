"""Batch queue administration and message moves."""

from .tokens import File, Flag, Name, Number, Token, classify_tokens, to_queue_name
from .names import resolve_queue_names
from .actions import Action, BatchReport, QueueAdministrator, select_action
from .mover import MoveRequest, MoveRequestError, QueueMover, parse_move_request

__all__ = [
    "File",
    "Flag",
    "Name",
    "Number",
    "Token",
    "classify_tokens",
    "to_queue_name",
    "resolve_queue_names",
    "Action",
    "BatchReport",
    "QueueAdministrator",
    "select_action",
    "MoveRequest",
    "MoveRequestError",
    "QueueMover",
    "parse_move_request",
]
