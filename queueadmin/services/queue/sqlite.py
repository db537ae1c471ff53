"""
SQLite Queue Service

Durable local queue service stored in a single SQLite database with WAL mode.
Each receive and each send runs in its own ``BEGIN IMMEDIATE`` transaction.

Author: QueueAdmin Contributors
Date: 2026-10-19
"""

import logging
import os
import sqlite3
import time
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional

from .exceptions import (
    QueueAlreadyExistsError,
    QueueNotFoundError,
    ServiceUnavailableError,
)
from .interface import QueueHandle, QueueService, ServiceConfig
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

logger = logging.getLogger(__name__)

# Schema version for migrations
SCHEMA_VERSION = 1


class SQLiteQueueService(QueueService):
    """
    SQLite-backed queue service.

    **Schema**:
    - `queues` table: queue definitions
    - `permissions` table: ordered access control entries per queue
    - `messages` table: message bodies in arrival order
    - `state` table: service identity used to build message identifiers
    - `schema_version` table: tracks schema version for migrations

    A receive that finds the queue empty releases the database and polls
    again every ``poll_interval_seconds`` until its timeout expires, so other
    processes can keep writing while it waits.
    """

    def __init__(self, config: ServiceConfig):
        super().__init__(config)
        self.db_path = Path(config.sqlite_path).expanduser()
        self._db: Optional[sqlite3.Connection] = None
        self._source_id = ""
        self._open()

    def _open(self) -> None:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            existing_db = self.db_path.exists()

            # Autocommit mode; transactions are opened explicitly
            self._db = sqlite3.connect(
                str(self.db_path),
                timeout=self.config.busy_timeout_ms / 1000.0,
                isolation_level=None,
            )
            if self.config.wal_enabled:
                self._db.execute("PRAGMA journal_mode=WAL")
            self._db.execute(f"PRAGMA busy_timeout={int(self.config.busy_timeout_ms)}")
            self._db.execute("PRAGMA synchronous=NORMAL")

            self._create_schema()
            self._check_schema_version()
            self._source_id = self._load_source_id()

            if not existing_db:
                os.chmod(self.db_path, 0o600)
        except (sqlite3.Error, OSError) as e:
            raise ServiceUnavailableError(
                f"cannot open queue store {self.db_path}: {e}"
            ) from e

        logger.debug(f"Opened queue store {self.db_path}")

    def _create_schema(self) -> None:
        """Create database schema if it doesn't exist."""
        self._db.executescript("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );

            CREATE TABLE IF NOT EXISTS queues (
                name TEXT PRIMARY KEY,
                transactional INTEGER NOT NULL,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS permissions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                queue_name TEXT NOT NULL,
                principal TEXT NOT NULL,
                rights TEXT NOT NULL,
                entry_type TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS messages (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                queue_name TEXT NOT NULL,
                label TEXT NOT NULL,
                body TEXT NOT NULL,
                enqueued_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_messages_queue
            ON messages(queue_name, id);

            CREATE INDEX IF NOT EXISTS idx_permissions_queue
            ON permissions(queue_name, id);

            CREATE TABLE IF NOT EXISTS state (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );
        """)

    def _check_schema_version(self) -> None:
        """Check schema version and record it for a fresh database."""
        row = self._db.execute(
            "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
        ).fetchone()
        current_version = row[0] if row else 0

        if current_version == 0:
            self._db.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,)
            )
        elif current_version > SCHEMA_VERSION:
            raise sqlite3.DatabaseError(
                f"queue store schema version {current_version} is newer than "
                f"supported version {SCHEMA_VERSION}"
            )

    def _load_source_id(self) -> str:
        self._db.execute(
            "INSERT OR IGNORE INTO state (key, value) VALUES ('source_id', ?)",
            (str(uuid.uuid4()),)
        )
        return self._db.execute(
            "SELECT value FROM state WHERE key = 'source_id'"
        ).fetchone()[0]

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block as one immediate transaction, mapping store failures."""
        if self._db is None:
            raise ServiceUnavailableError("queue store is closed")

        db = self._db
        try:
            db.execute("BEGIN IMMEDIATE")
            yield db
            db.execute("COMMIT")
        except sqlite3.Error as e:
            self._rollback(db)
            raise ServiceUnavailableError(str(e)) from e
        except BaseException:
            self._rollback(db)
            raise

    @staticmethod
    def _rollback(db: sqlite3.Connection) -> None:
        if db.in_transaction:
            db.execute("ROLLBACK")

    # Queue operations

    def exists(self, name: str) -> bool:
        with self._transaction() as db:
            return self._find(db, name) is not None

    def create(self, name: str, transactional: bool = True) -> QueueHandle:
        self._validate_name(name)
        with self._transaction() as db:
            if self._find(db, name) is not None:
                raise QueueAlreadyExistsError(name)
            db.execute(
                "INSERT INTO queues (name, transactional, created_at) VALUES (?, ?, ?)",
                (name, int(transactional), datetime.now(timezone.utc).isoformat())
            )
        logger.debug(f"Created queue {name} (transactional={transactional})")
        return QueueHandle(self, name, QueueAccessMode.SEND_AND_RECEIVE)

    def delete(self, name: str) -> None:
        with self._transaction() as db:
            info = self._get(db, name)
            self._check_access(name, info.permissions, AccessRights.DELETE_QUEUE)
            db.execute("DELETE FROM messages WHERE queue_name = ?", (name,))
            db.execute("DELETE FROM permissions WHERE queue_name = ?", (name,))
            db.execute("DELETE FROM queues WHERE name = ?", (name,))
        logger.debug(f"Deleted queue {name}")

    def open(
        self,
        name: str,
        access_mode: QueueAccessMode = QueueAccessMode.SEND_AND_RECEIVE,
    ) -> QueueHandle:
        with self._transaction() as db:
            self._get(db, name)
        return QueueHandle(self, name, access_mode)

    def purge(self, handle: QueueHandle) -> None:
        self._check_mode(handle, AccessRights.RECEIVE_MESSAGE)
        with self._transaction() as db:
            info = self._get(db, handle.name)
            self._check_access(handle.name, info.permissions, AccessRights.RECEIVE_MESSAGE)
            cursor = db.execute("DELETE FROM messages WHERE queue_name = ?", (handle.name,))
        logger.debug(f"Purged {cursor.rowcount} message(s) from {handle.name}")

    def receive(
        self,
        handle: QueueHandle,
        timeout: float,
        transaction: TransactionType = TransactionType.AUTOMATIC,
    ) -> ReceiveResult:
        self._check_mode(handle, AccessRights.RECEIVE_MESSAGE)
        deadline = time.monotonic() + max(timeout, 0.0)

        while True:
            with self._transaction() as db:
                info = self._get(db, handle.name)
                self._check_access(handle.name, info.permissions, AccessRights.RECEIVE_MESSAGE)
                self._check_transaction(info, transaction)

                row = db.execute(
                    "SELECT id, label, body, enqueued_at FROM messages "
                    "WHERE queue_name = ? ORDER BY id LIMIT 1",
                    (handle.name,)
                ).fetchone()
                if row is not None:
                    db.execute("DELETE FROM messages WHERE id = ?", (row[0],))
                    return Received(self._to_message(row))

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return EMPTY
            time.sleep(min(self.config.poll_interval_seconds, remaining))

    def send(
        self,
        handle: QueueHandle,
        message: Message,
        transaction: TransactionType = TransactionType.SINGLE,
    ) -> Message:
        self._check_mode(handle, AccessRights.WRITE_MESSAGE)
        with self._transaction() as db:
            info = self._get(db, handle.name)
            self._check_access(handle.name, info.permissions, AccessRights.WRITE_MESSAGE)
            self._check_transaction(info, transaction)

            enqueued_at = datetime.now(timezone.utc)
            cursor = db.execute(
                "INSERT INTO messages (queue_name, label, body, enqueued_at) "
                "VALUES (?, ?, ?, ?)",
                (handle.name, message.label, message.body, enqueued_at.isoformat())
            )
            delivered = message.model_copy(update={
                "message_id": self._message_id(cursor.lastrowid),
                "enqueued_time": enqueued_at,
            })
        return delivered

    def set_permissions(
        self,
        handle: QueueHandle,
        principal: str,
        rights: AccessRights,
        entry_type: AccessControlEntryType = AccessControlEntryType.ALLOW,
    ) -> None:
        entry = PermissionEntry(principal=principal, rights=rights, entry_type=entry_type)
        with self._transaction() as db:
            info = self._get(db, handle.name)
            self._check_access(handle.name, info.permissions, AccessRights.CHANGE_PERMISSIONS)
            db.execute(
                "INSERT INTO permissions (queue_name, principal, rights, entry_type) "
                "VALUES (?, ?, ?, ?)",
                (handle.name, entry.principal, entry.rights.value, entry.entry_type.value)
            )

    def get_queue(self, name: str) -> QueueInfo:
        with self._transaction() as db:
            return self._get(db, name)

    def message_count(self, name: str) -> int:
        with self._transaction() as db:
            self._get(db, name)
            return db.execute(
                "SELECT COUNT(*) FROM messages WHERE queue_name = ?", (name,)
            ).fetchone()[0]

    def close(self) -> None:
        """Close the database connection."""
        if self._db is not None:
            self._db.close()
            self._db = None

    # Row helpers

    def _find(self, db: sqlite3.Connection, name: str) -> Optional[QueueInfo]:
        row = db.execute(
            "SELECT name, transactional, created_at FROM queues WHERE name = ?",
            (name,)
        ).fetchone()
        if row is None:
            return None
        return QueueInfo(
            name=row[0],
            transactional=bool(row[1]),
            created_time=datetime.fromisoformat(row[2]),
            permissions=self._permissions(db, name),
        )

    def _get(self, db: sqlite3.Connection, name: str) -> QueueInfo:
        info = self._find(db, name)
        if info is None:
            raise QueueNotFoundError(name)
        return info

    @staticmethod
    def _permissions(db: sqlite3.Connection, name: str) -> List[PermissionEntry]:
        rows = db.execute(
            "SELECT principal, rights, entry_type FROM permissions "
            "WHERE queue_name = ? ORDER BY id",
            (name,)
        ).fetchall()
        return [
            PermissionEntry(
                principal=principal,
                rights=AccessRights(rights),
                entry_type=AccessControlEntryType(entry_type),
            )
            for principal, rights, entry_type in rows
        ]

    def _message_id(self, row_id: int) -> str:
        return f"{self._source_id}\\{row_id}"

    def _to_message(self, row: tuple) -> Message:
        row_id, label, body, enqueued_at = row
        return Message(
            message_id=self._message_id(row_id),
            body=body,
            label=label,
            enqueued_time=datetime.fromisoformat(enqueued_at),
        )
