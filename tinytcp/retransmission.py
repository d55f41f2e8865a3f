"""Tracking of sent segments that still await acknowledgment."""

from __future__ import annotations

import dataclasses
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from tinytcp.packet import Flag, TCPHeader

__all__ = ["RetransmissionEntry", "RetransmissionQueue"]

_SEQ_MASK = 0xFFFFFFFF


@dataclass
class RetransmissionEntry:
    """A sent segment waiting for acknowledgment."""

    header: TCPHeader
    data: bytes
    sent_time: float
    attempts: int = 1

    @property
    def sequence_end(self) -> int:
        """The first sequence number after this segment."""
        end = self.header.sequence_number + len(self.data)
        if self.header.has_flag(Flag.SYN) or self.header.has_flag(Flag.FIN):
            end += 1  # SYN and FIN each consume one sequence number
        return end & _SEQ_MASK


class RetransmissionQueue:
    """A thread-safe queue of segments that may need retransmission.

    Times are measured in seconds by ``clock``, which defaults to
    :func:`time.monotonic`.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: list[RetransmissionEntry] = []
        self._lock = threading.Lock()

    def add(self, header: TCPHeader, data: bytes | None = None) -> None:
        """Record a segment as sent now, on its first attempt."""
        entry = RetransmissionEntry(
            header=header,
            data=bytes(data or b""),
            sent_time=self._clock(),
            attempts=1,
        )
        with self._lock:
            self._entries.append(entry)

    def remove(self, ack_number: int) -> None:
        """Drop every segment fully covered by the given acknowledgment number."""
        with self._lock:
            self._entries = [e for e in self._entries if ack_number < e.sequence_end]

    def get_timeout_entries(self, timeout: float, max_attempts: int) -> list[RetransmissionEntry]:
        """Return copies of segments due for retransmission.

        A segment is due when more than ``timeout`` seconds have passed since
        it was last sent and it has been sent fewer than ``max_attempts``
        times. Each due segment is marked as sent again now.
        """
        now = self._clock()
        due: list[RetransmissionEntry] = []
        with self._lock:
            for entry in self._entries:
                if now - entry.sent_time > timeout and entry.attempts < max_attempts:
                    entry.sent_time = now
                    entry.attempts += 1
                    due.append(dataclasses.replace(entry))
        return due

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)