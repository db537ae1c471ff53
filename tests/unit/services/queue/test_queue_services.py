"""
Unit tests for queue services.

Every test runs against both the in-memory and the SQLite service.
"""

import threading
import time

import pytest

from queueadmin.services.queue import (
    EMPTY,
    AccessControlEntryType,
    AccessDeniedError,
    AccessRights,
    InMemoryQueueService,
    InvalidQueueNameError,
    Message,
    QueueAccessMode,
    QueueAlreadyExistsError,
    QueueNotFoundError,
    Received,
    ServiceConfig,
    ServiceUnavailableError,
    SQLiteQueueService,
    StoreType,
    TransactionType,
    TransactionUsageError,
    create_queue_service,
)

ORDERS = ".\\private$\\orders"
ERRORS = ".\\private$\\errors"


@pytest.fixture(params=["memory", "sqlite"])
def service(request, tmp_path):
    """Create a fresh queue service acting as 'operator'."""
    if request.param == "memory":
        svc = InMemoryQueueService(
            ServiceConfig(store_type=StoreType.MEMORY, principal="operator")
        )
    else:
        svc = SQLiteQueueService(
            ServiceConfig(
                store_type=StoreType.SQLITE,
                sqlite_path=str(tmp_path / "queues.db"),
                poll_interval_seconds=0.01,
                principal="operator",
            )
        )
    yield svc
    svc.close()


@pytest.fixture
def orders(service):
    """Create the orders queue and return its handle."""
    return service.create(ORDERS)


class TestQueueLifecycle:
    """Test create, exists, open and delete."""

    def test_create_and_exists(self, service):
        """Test a created queue exists."""
        assert service.exists(ORDERS) is False
        handle = service.create(ORDERS)

        assert handle.name == ORDERS
        assert handle.access_mode == QueueAccessMode.SEND_AND_RECEIVE
        assert service.exists(ORDERS) is True

    def test_create_duplicate(self, service, orders):
        """Test creating an existing queue fails."""
        with pytest.raises(QueueAlreadyExistsError) as exc_info:
            service.create(ORDERS)
        assert exc_info.value.error_code == "QueueAlreadyExists"

    def test_create_invalid_name(self, service):
        """Test creating a queue with a malformed name fails."""
        with pytest.raises(InvalidQueueNameError):
            service.create(".\\private$\\")

    def test_create_records_transactional_flag(self, service):
        """Test the transactional flag is stored."""
        service.create(ORDERS, transactional=False)
        assert service.get_queue(ORDERS).transactional is False

    def test_delete(self, service, orders):
        """Test deleting a queue removes it."""
        service.delete(ORDERS)
        assert service.exists(ORDERS) is False

    def test_delete_missing(self, service):
        """Test deleting a missing queue fails."""
        with pytest.raises(QueueNotFoundError) as exc_info:
            service.delete(ORDERS)
        assert exc_info.value.details["queue_name"] == ORDERS

    def test_open_missing(self, service):
        """Test opening a missing queue fails."""
        with pytest.raises(QueueNotFoundError):
            service.open(ORDERS)

    def test_recreate_starts_empty(self, service, orders):
        """Test a recreated queue has no old messages."""
        orders.send(Message(body="old"))
        service.delete(ORDERS)
        service.create(ORDERS)
        assert service.message_count(ORDERS) == 0


class TestMessages:
    """Test send, receive and purge."""

    def test_send_assigns_identity(self, service, orders):
        """Test send returns the delivered message with an id."""
        delivered = orders.send(Message(body="hello", label="greeting"))

        assert delivered.message_id is not None
        assert "\\" in delivered.message_id
        assert delivered.body == "hello"
        assert delivered.label == "greeting"
        assert service.message_count(ORDERS) == 1

    def test_receive_in_order(self, service, orders):
        """Test messages come out in the order they were sent."""
        for body in ["one", "two", "three"]:
            orders.send(Message(body=body))

        bodies = []
        for _ in range(3):
            result = orders.receive(0.1)
            assert isinstance(result, Received)
            bodies.append(result.message.body)

        assert bodies == ["one", "two", "three"]
        assert service.message_count(ORDERS) == 0

    def test_receive_empty_times_out(self, service, orders):
        """Test an empty queue yields EMPTY after the timeout."""
        started = time.monotonic()
        result = orders.receive(0.1)
        elapsed = time.monotonic() - started

        assert result == EMPTY
        assert elapsed >= 0.09

    def test_receive_zero_timeout(self, service, orders):
        """Test a zero timeout returns immediately."""
        assert orders.receive(0) == EMPTY

    def test_send_to_other_queue_gets_new_id(self, service, orders):
        """Test a received message sent elsewhere gets a new identity."""
        errors = service.create(ERRORS)
        sent = orders.send(Message(body="payload"))

        received = orders.receive(0.1).message
        assert received.message_id == sent.message_id

        resent = errors.send(received)
        assert resent.message_id != sent.message_id
        assert resent.body == "payload"

    def test_purge(self, service, orders):
        """Test purge empties the queue but keeps it."""
        orders.send(Message(body="a"))
        orders.send(Message(body="b"))

        orders.purge()

        assert service.exists(ORDERS) is True
        assert service.message_count(ORDERS) == 0

    def test_receive_from_deleted_queue(self, service, orders):
        """Test receiving on a handle whose queue was deleted fails."""
        service.delete(ORDERS)
        with pytest.raises(QueueNotFoundError):
            orders.receive(0)


class TestTransactions:
    """Test transaction type checks."""

    def test_none_on_transactional_queue(self, service, orders):
        """Test a non-transactional send to a transactional queue is refused."""
        with pytest.raises(TransactionUsageError):
            orders.send(Message(body="x"), TransactionType.NONE)

    def test_single_on_plain_queue(self, service):
        """Test a single transaction on a non-transactional queue is refused."""
        plain = service.create(ORDERS, transactional=False)
        with pytest.raises(TransactionUsageError):
            plain.send(Message(body="x"), TransactionType.SINGLE)

    def test_automatic_on_plain_queue(self, service):
        """Test automatic transactions work on non-transactional queues."""
        plain = service.create(ORDERS, transactional=False)
        plain.send(Message(body="x"), TransactionType.AUTOMATIC)
        assert isinstance(plain.receive(0, TransactionType.AUTOMATIC), Received)


class TestPermissions:
    """Test access control entries and handle access modes."""

    def test_set_permissions_recorded(self, service, orders):
        """Test entries are stored in order."""
        orders.set_permissions("Network Service", AccessRights.FULL_CONTROL)
        orders.set_permissions(
            "guest", AccessRights.WRITE_MESSAGE, AccessControlEntryType.DENY
        )

        entries = service.get_queue(ORDERS).permissions
        assert [(e.principal, e.rights, e.entry_type) for e in entries] == [
            ("Network Service", AccessRights.FULL_CONTROL, AccessControlEntryType.ALLOW),
            ("guest", AccessRights.WRITE_MESSAGE, AccessControlEntryType.DENY),
        ]

    def test_deny_delete(self, service, orders):
        """Test a deny entry for the acting principal blocks delete."""
        orders.set_permissions(
            "operator", AccessRights.DELETE_QUEUE, AccessControlEntryType.DENY
        )
        with pytest.raises(AccessDeniedError) as exc_info:
            service.delete(ORDERS)

        assert exc_info.value.details["principal"] == "operator"
        assert service.exists(ORDERS) is True

    def test_deny_full_control_blocks_receive(self, service, orders):
        """Test denying FullControl blocks every operation."""
        orders.set_permissions(
            "operator", AccessRights.FULL_CONTROL, AccessControlEntryType.DENY
        )
        with pytest.raises(AccessDeniedError):
            orders.receive(0)
        with pytest.raises(AccessDeniedError):
            orders.purge()

    def test_deny_for_other_principal_ignored(self, service, orders):
        """Test deny entries for someone else have no effect."""
        orders.set_permissions(
            "guest", AccessRights.FULL_CONTROL, AccessControlEntryType.DENY
        )
        service.delete(ORDERS)
        assert service.exists(ORDERS) is False

    def test_send_only_handle_cannot_receive(self, service, orders):
        """Test a send-only handle refuses receive."""
        handle = service.open(ORDERS, QueueAccessMode.SEND)
        handle.send(Message(body="x"))
        with pytest.raises(AccessDeniedError):
            handle.receive(0)

    def test_receive_only_handle_cannot_send(self, service, orders):
        """Test a receive-only handle refuses send."""
        handle = service.open(ORDERS, QueueAccessMode.RECEIVE)
        with pytest.raises(AccessDeniedError):
            handle.send(Message(body="x"))


class TestInMemoryService:
    """Behavior specific to the in-memory service."""

    def test_send_wakes_waiting_receive(self):
        """Test a send from another thread ends a waiting receive early."""
        service = InMemoryQueueService()
        queue = service.create(ORDERS)

        timer = threading.Timer(0.05, lambda: queue.send(Message(body="late")))
        timer.start()
        try:
            result = queue.receive(5.0)
        finally:
            timer.cancel()

        assert isinstance(result, Received)
        assert result.message.body == "late"


class TestSQLiteService:
    """Behavior specific to the SQLite service."""

    def test_state_survives_reopen(self, tmp_path):
        """Test queues and messages persist across service instances."""
        config = ServiceConfig(
            store_type=StoreType.SQLITE,
            sqlite_path=str(tmp_path / "queues.db"),
        )
        with SQLiteQueueService(config) as first:
            queue = first.create(ORDERS)
            queue.set_permissions("Network Service", AccessRights.FULL_CONTROL)
            sent = queue.send(Message(body="durable"))

        with SQLiteQueueService(config) as second:
            assert second.exists(ORDERS) is True
            assert len(second.get_queue(ORDERS).permissions) == 1
            result = second.open(ORDERS).receive(0)
            assert result.message.body == "durable"
            assert result.message.message_id == sent.message_id

    def test_closed_service_unavailable(self, tmp_path):
        """Test operations after close raise ServiceUnavailableError."""
        service = SQLiteQueueService(
            ServiceConfig(store_type=StoreType.SQLITE, sqlite_path=str(tmp_path / "q.db"))
        )
        service.close()
        with pytest.raises(ServiceUnavailableError):
            service.exists(ORDERS)

    def test_database_file_created(self, tmp_path):
        """Test the database file and parent directories are created."""
        db_path = tmp_path / "nested" / "queues.db"
        with SQLiteQueueService(
            ServiceConfig(store_type=StoreType.SQLITE, sqlite_path=str(db_path))
        ):
            pass
        assert db_path.exists()


class TestFactory:
    """Test service factory."""

    def test_create_memory(self):
        """Test memory store type."""
        service = create_queue_service(ServiceConfig(store_type=StoreType.MEMORY))
        assert isinstance(service, InMemoryQueueService)

    def test_create_sqlite(self, tmp_path):
        """Test sqlite store type."""
        service = create_queue_service(
            ServiceConfig(store_type=StoreType.SQLITE, sqlite_path=str(tmp_path / "q.db"))
        )
        try:
            assert isinstance(service, SQLiteQueueService)
        finally:
            service.close()
