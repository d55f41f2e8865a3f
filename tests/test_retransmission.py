import pytest

from tinytcp.packet import Flag, TCPHeader
from tinytcp.retransmission import RetransmissionQueue


class FakeClock:
    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def queue(clock):
    return RetransmissionQueue(clock=clock)


def _header(seq: int, flags: int = 0) -> TCPHeader:
    header = TCPHeader(8080, 9090)
    header.sequence_number = seq
    if flags:
        header.set_flag(flags)
    return header


def test_queue_lifecycle(queue, clock):
    assert len(queue) == 0

    queue.add(_header(1000), b"test data")
    assert len(queue) == 1

    assert queue.get_timeout_entries(1.0, 3) == []

    clock.advance(0.010)
    entries = queue.get_timeout_entries(0.005, 3)
    assert len(entries) == 1

    queue.remove(1009)
    assert len(queue) == 0


def test_queue_with_real_clock():
    queue = RetransmissionQueue()
    queue.add(_header(1000), b"abc")
    assert queue.get_timeout_entries(60.0, 3) == []
    assert len(queue) == 1


def test_remove_keeps_partially_acknowledged(queue):
    queue.add(_header(1000), b"test data")
    queue.remove(1008)
    assert len(queue) == 1
    queue.remove(1009)
    assert len(queue) == 0


@pytest.mark.parametrize("flag", [Flag.SYN, Flag.FIN])
def test_syn_and_fin_consume_a_sequence_number(queue, flag):
    queue.add(_header(1000, flag))
    queue.remove(1000)
    assert len(queue) == 1
    queue.remove(1001)
    assert len(queue) == 0


def test_remove_only_acknowledged_entries(queue):
    queue.add(_header(1000), b"12345")
    queue.add(_header(1005), b"67890")
    queue.remove(1005)
    assert len(queue) == 1
    queue.remove(1010)
    assert len(queue) == 0


def test_sequence_end_wraps(queue):
    queue.add(_header(0xFFFFFFFF, Flag.SYN))
    queue.remove(0)
    assert len(queue) == 0


def test_timeout_entry_attempts_and_limit(queue, clock):
    queue.add(_header(1000), b"data")

    clock.advance(2.0)
    first = queue.get_timeout_entries(1.0, 3)
    assert [e.attempts for e in first] == [2]
    assert first[0].data == b"data"
    assert first[0].header.sequence_number == 1000

    # Just resent: not due again until the timeout passes once more.
    assert queue.get_timeout_entries(1.0, 3) == []

    clock.advance(2.0)
    second = queue.get_timeout_entries(1.0, 3)
    assert [e.attempts for e in second] == [3]

    clock.advance(2.0)
    assert queue.get_timeout_entries(1.0, 3) == []
    assert len(queue) == 1


def test_timeout_must_be_strictly_exceeded(queue, clock):
    queue.add(_header(1000), b"x")
    clock.advance(1.0)
    assert queue.get_timeout_entries(1.0, 3) == []
    clock.advance(0.001)
    assert len(queue.get_timeout_entries(1.0, 3)) == 1


def test_returned_entries_are_copies(queue, clock):
    queue.add(_header(1000), b"x")
    clock.advance(2.0)
    entry = queue.get_timeout_entries(1.0, 5)[0]
    entry.attempts = 99
    clock.advance(2.0)
    again = queue.get_timeout_entries(1.0, 5)
    assert again[0].attempts == 3


def test_add_without_data(queue):
    queue.add(_header(5, Flag.SYN), None)
    queue.remove(5)
    assert len(queue) == 1
    queue.remove(6)
    assert len(queue) == 0