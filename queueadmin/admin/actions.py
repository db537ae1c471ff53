"""
Batch administrative actions.

Selects one action from the command-line flags and applies it to every
resolved queue name, isolating failures per name.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List, Tuple

import click

from queueadmin.core.logging_config import log_with_context
from queueadmin.services.queue import (
    AccessControlEntryType,
    AccessRights,
    QueueService,
    QueueServiceError,
)

from .tokens import Token, has_flag

logger = logging.getLogger(__name__)

Echo = Callable[[str], None]


class Action(str, Enum):
    """Administrative action applied to each queue in batch mode."""
    ENSURE_EXISTS = "ensure-exists"
    DELETE = "delete"
    DELETE_AND_RECREATE = "delete-and-recreate"
    PURGE = "purge"


# Evaluated top to bottom, first match wins. "--delete" beats "--recreate",
# which beats "--purge".
ACTION_FLAGS: List[Tuple[str, Action]] = [
    ("--delete", Action.DELETE),
    ("--recreate", Action.DELETE_AND_RECREATE),
    ("--purge", Action.PURGE),
]
DEFAULT_ACTION = Action.ENSURE_EXISTS


def select_action(tokens: Iterable[Token]) -> Action:
    tokens = list(tokens)
    for flag, action in ACTION_FLAGS:
        if has_flag(tokens, flag):
            return action
    return DEFAULT_ACTION


@dataclass
class BatchReport:
    """Outcome of one batch run."""
    action: Action
    succeeded: List[str] = field(default_factory=list)
    failed: List[Tuple[str, Exception]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed)


class QueueAdministrator:
    """
    Runs administrative actions against a queue service.

    Args:
        service: Queue service to act on
        service_principal: Principal granted access on every queue created
        service_rights: Rights granted to ``service_principal``
        transactional: Whether new queues are transactional
        echo: Where progress lines are written
    """

    def __init__(
        self,
        service: QueueService,
        service_principal: str,
        service_rights: AccessRights = AccessRights.FULL_CONTROL,
        transactional: bool = True,
        echo: Echo = click.echo,
    ):
        self.service = service
        self.service_principal = service_principal
        self.service_rights = service_rights
        self.transactional = transactional
        self.echo = echo
        self._handlers: Dict[Action, Callable[[str], None]] = {
            Action.ENSURE_EXISTS: self.ensure_exists,
            Action.DELETE: self.delete,
            Action.DELETE_AND_RECREATE: self.delete_and_recreate,
            Action.PURGE: self.purge,
        }

    def ensure_exists(self, name: str) -> None:
        if self.service.exists(name):
            self.echo(f"Exists {name}")
            return
        self._create(name)

    def delete(self, name: str) -> None:
        if self.service.exists(name):
            self.echo(f"Deleting {name}")
            self.service.delete(name)

    def delete_and_recreate(self, name: str) -> None:
        self.delete(name)
        self._create(name)

    def purge(self, name: str) -> None:
        if not self.service.exists(name):
            return
        self.echo(f"Purging {name}")
        self.service.open(name).purge()

    def _create(self, name: str) -> None:
        self.echo(f"Creating {name}")
        queue = self.service.create(name, transactional=self.transactional)
        queue.set_permissions(
            self.service_principal,
            self.service_rights,
            AccessControlEntryType.ALLOW,
        )

    def dispatch(self, action: Action, names: Iterable[str]) -> BatchReport:
        """
        Apply ``action`` to every name.

        A failure on one name is reported and logged, and the batch moves on
        to the next name. Nothing already done is rolled back.
        """
        handler = self._handlers[action]
        report = BatchReport(action=action)

        for name in names:
            try:
                handler(name)
            except Exception as e:
                self.echo(f"Error: {name}: {e}")
                context = e.to_dict() if isinstance(e, QueueServiceError) else {"error": str(e)}
                log_with_context(
                    logger, logging.WARNING,
                    f"{action.value} failed for {name}",
                    queue_name=name, **context
                )
                report.failed.append((name, e))
            else:
                report.succeeded.append(name)

        logger.info(
            f"{action.value}: {len(report.succeeded)} succeeded, "
            f"{len(report.failed)} failed"
        )
        return report
