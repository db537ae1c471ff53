"""
Unit tests for move requests and the bounded queue mover.
"""

import pytest

from queueadmin.admin.mover import (
    DEFAULT_MAX_MESSAGES,
    MoveRequest,
    MoveRequestError,
    QueueMover,
    parse_move_request,
)
from queueadmin.admin.tokens import classify_tokens
from queueadmin.services.queue import (
    AccessControlEntryType,
    AccessDeniedError,
    AccessRights,
    InMemoryQueueService,
    Message,
    QueueNotFoundError,
    ServiceConfig,
    StoreType,
)

PREFIX = ".\\private$\\"
SOURCE = PREFIX + "source"
DESTINATION = PREFIX + "destination"


def parse(*args):
    return parse_move_request(classify_tokens(args, is_file=None), PREFIX)


class CountingService(InMemoryQueueService):
    """In-memory service that counts receive and send calls."""

    def __init__(self):
        super().__init__(ServiceConfig(store_type=StoreType.MEMORY, principal="operator"))
        self.receives = 0
        self.sends = 0

    def receive(self, handle, timeout, transaction):
        self.receives += 1
        return super().receive(handle, timeout, transaction)

    def send(self, handle, message, transaction):
        self.sends += 1
        return super().send(handle, message, transaction)


@pytest.fixture
def service():
    """Service with an empty source and destination queue."""
    svc = CountingService()
    svc.create(SOURCE)
    svc.create(DESTINATION)
    svc.sends = 0
    return svc


@pytest.fixture
def output():
    return []


@pytest.fixture
def mover(service, output):
    """Mover with a short receive timeout."""
    return QueueMover(service, receive_timeout=0.05, echo=output.append)


def fill(service, count):
    queue = service.open(SOURCE)
    for i in range(count):
        queue.send(Message(body=f"message-{i}"))
    service.sends = 0


def drain(service, name):
    queue = service.open(name)
    bodies = []
    while True:
        result = queue.receive(0)
        if not hasattr(result, "message"):
            return bodies
        bodies.append(result.message.body)


class TestParseMoveRequest:
    """Test building a MoveRequest from arguments."""

    def test_count_source_destination(self):
        """Test the documented argument order."""
        request = parse("--move", "5", "source", "destination")
        assert request == MoveRequest(SOURCE, DESTINATION, 5)

    def test_count_last(self):
        """Test the count may come after the queue names."""
        request = parse("--move", "source", "destination", "7")
        assert request == MoveRequest(SOURCE, DESTINATION, 7)

    def test_default_count(self):
        """Test the count defaults to one."""
        request = parse("--move", "source", "destination")
        assert request.max_messages == DEFAULT_MAX_MESSAGES == 1

    def test_first_number_wins(self):
        """Test only the first numeric token is the count."""
        assert parse("--move", "3", "source", "9", "destination").max_messages == 3

    def test_first_and_last_names(self):
        """Test extra names between source and destination are ignored."""
        request = parse("--move", "source", "middle", "destination")
        assert request.source == SOURCE
        assert request.destination == DESTINATION

    def test_move_flag_position_irrelevant(self):
        """Test the move flag is discarded wherever it appears."""
        request = parse("source", "--move", "destination")
        assert request == MoveRequest(SOURCE, DESTINATION, 1)

    def test_other_flags_discarded(self):
        """Test stray flags are never taken as the source or destination."""
        request = parse("--move", "--purge", "source", "destination", "--delete")
        assert request == MoveRequest(SOURCE, DESTINATION, 1)

    def test_flags_do_not_count_as_names(self):
        """Test a flag cannot stand in for a missing queue name."""
        with pytest.raises(MoveRequestError):
            parse("--move", "--purge", "source")

    def test_prefixed_names_kept(self):
        """Test already-prefixed names are not prefixed again."""
        request = parse("--move", SOURCE, DESTINATION)
        assert request.source == SOURCE

    def test_missing_destination(self):
        """Test a single queue name is a usage error."""
        with pytest.raises(MoveRequestError):
            parse("--move", "5", "source")

    def test_no_names(self):
        """Test a bare move flag is a usage error."""
        with pytest.raises(MoveRequestError):
            parse("--move")

    def test_same_queue(self):
        """Test moving a queue onto itself is refused."""
        with pytest.raises(MoveRequestError):
            parse("--move", "source", SOURCE)


class TestQueueMover:
    """Test the move loop."""

    def test_moves_available_messages_when_fewer_than_max(self, mover, service, output):
        """Test max 5 against 3 messages moves 3 and stops on empty."""
        fill(service, 3)

        moved = mover.move(MoveRequest(SOURCE, DESTINATION, 5))

        assert moved == 3
        assert service.receives == 4
        assert service.sends == 3
        assert service.message_count(SOURCE) == 0
        assert drain(service, DESTINATION) == ["message-0", "message-1", "message-2"]
        assert output[0] == f"Moving 5 messages from {SOURCE} to {DESTINATION}"
        assert output[-1] == "No more messages"

    def test_stops_at_max(self, mover, service, output):
        """Test no more than max messages are moved."""
        fill(service, 5)

        moved = mover.move(MoveRequest(SOURCE, DESTINATION, 2))

        assert moved == 2
        assert service.receives == 2
        assert service.message_count(SOURCE) == 3
        assert drain(service, DESTINATION) == ["message-0", "message-1"]
        assert "No more messages" not in output

    def test_zero_max_does_nothing(self, mover, service):
        """Test max 0 never receives or sends."""
        fill(service, 2)

        assert mover.move(MoveRequest(SOURCE, DESTINATION, 0)) == 0
        assert service.receives == 0
        assert service.sends == 0
        assert service.message_count(SOURCE) == 2

    def test_negative_max_does_nothing(self, mover, service):
        """Test a negative max behaves like zero."""
        fill(service, 1)
        assert mover.move(MoveRequest(SOURCE, DESTINATION, -4)) == 0
        assert service.receives == 0

    def test_reports_each_message(self, mover, service, output):
        """Test every move is reported with its message id."""
        fill(service, 2)
        ids = [m.message_id for m in service._messages[SOURCE]]

        mover.move(MoveRequest(SOURCE, DESTINATION, 2))

        assert output[1:] == [
            f"Moving {ids[0]} {SOURCE} to {DESTINATION}",
            f"Moving {ids[1]} {SOURCE} to {DESTINATION}",
        ]

    def test_empty_source(self, mover, service, output):
        """Test an empty source ends the move immediately."""
        assert mover.move(MoveRequest(SOURCE, DESTINATION, 3)) == 0
        assert service.receives == 1
        assert output[-1] == "No more messages"

    def test_missing_source_is_fatal(self, mover, service):
        """Test a missing source queue ends the move with an error."""
        with pytest.raises(QueueNotFoundError):
            mover.move(MoveRequest(PREFIX + "missing", DESTINATION, 1))
        assert service.receives == 0

    def test_send_failure_is_fatal(self, mover, service):
        """Test a denied send stops the move and loses the received message."""
        fill(service, 2)
        service.open(DESTINATION).set_permissions(
            "operator", AccessRights.WRITE_MESSAGE, AccessControlEntryType.DENY
        )

        with pytest.raises(AccessDeniedError):
            mover.move(MoveRequest(SOURCE, DESTINATION, 2))

        assert service.receives == 1
        assert service.message_count(SOURCE) == 1
        assert service.message_count(DESTINATION) == 0
