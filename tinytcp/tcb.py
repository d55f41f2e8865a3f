"""The transmission control block holding a connection's state."""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field

from tinytcp.retransmission import RetransmissionQueue
from tinytcp.sockets import SocketState, TCPAddress

__all__ = ["TCPError", "TCB"]


class TCPError(Exception):
    """A segment or operation that the connection's state does not allow."""


@dataclass
class TCB:
    """State of one TCP connection: addresses, sequence numbers, buffers."""

    local_addr: TCPAddress | None
    remote_addr: TCPAddress | None
    send_next: int = 0
    send_unack: int = 0
    recv_next: int = 0
    recv_window: int = 65535
    state: SocketState = SocketState.CLOSED
    send_buffer: bytearray = field(default_factory=bytearray)
    recv_buffer: bytearray = field(default_factory=bytearray)
    retransmission_queue: RetransmissionQueue = field(default_factory=RetransmissionQueue)
    retransmission_timeout: float = 1.0  # seconds
    max_retransmission_attempts: int = 3

    def generate_isn(self) -> int:
        """Return a random 32-bit initial sequence number."""
        return secrets.randbits(32)

    def __str__(self) -> str:
        local = self.local_addr if self.local_addr is not None else "<nil>"
        remote = self.remote_addr if self.remote_addr is not None else "<nil>"
        return (
            f"TCB[{local} -> {remote}, State: {self.state}, "
            f"SendNext: {self.send_next}, RecvNext: {self.recv_next}]"
        )