"""Sending and receiving data over an established connection."""

from __future__ import annotations

from tinytcp.packet import Flag, TCPHeader
from tinytcp.retransmission import RetransmissionEntry
from tinytcp.sockets import SocketState
from tinytcp.tcb import TCB, TCPError

__all__ = ["DataTransfer"]

_SEQ_MASK = 0xFFFFFFFF


def _outgoing_header(tcb: TCB, seq: int, ack: int, flags: int) -> TCPHeader:
    header = TCPHeader(tcb.local_addr.port & 0xFFFF, tcb.remote_addr.port & 0xFFFF)
    header.sequence_number = seq
    header.ack_number = ack
    header.set_flag(flags)
    header.window_size = tcb.recv_window
    return header


class DataTransfer:
    """Moves data through a TCB in the ESTABLISHED state."""

    def __init__(self, tcb: TCB) -> None:
        self.tcb = tcb

    def _require_established(self, action: str) -> None:
        if self.tcb.state != SocketState.ESTABLISHED:
            raise TCPError(f"connection must be in ESTABLISHED state to {action}")

    def send(self, data: bytes) -> TCPHeader:
        """Buffer data for sending and return the segment that carries it."""
        self._require_established("send data")
        if not data:
            raise TCPError("cannot send empty data")

        tcb = self.tcb
        payload = bytes(data)
        header = _outgoing_header(tcb, tcb.send_next, tcb.recv_next, Flag.ACK | Flag.PSH)
        tcb.send_buffer.extend(payload)
        tcb.retransmission_queue.add(header, payload)
        tcb.send_next = (tcb.send_next + len(payload)) & _SEQ_MASK
        return header

    def receive(self, header: TCPHeader, data: bytes) -> tuple[bytes, TCPHeader]:
        """Accept an in-order segment; return its data and the ACK to send."""
        self._require_established("receive data")

        tcb = self.tcb
        if header.sequence_number != tcb.recv_next:
            raise TCPError(
                f"out-of-order packet: expected seq {tcb.recv_next}, "
                f"got {header.sequence_number}"
            )

        payload = bytes(data)
        tcb.recv_buffer.extend(payload)
        tcb.recv_next = (tcb.recv_next + len(payload)) & _SEQ_MASK

        ack = _outgoing_header(tcb, tcb.send_next, tcb.recv_next, Flag.ACK)
        return payload, ack

    def receive_ack(self, header: TCPHeader) -> None:
        """Record an acknowledgment for data already sent."""
        self._require_established("process ACK")

        tcb = self.tcb
        if header.ack_number < tcb.send_unack or header.ack_number > tcb.send_next:
            raise TCPError(
                f"invalid ACK number: {header.ack_number} "
                f"(expected between {tcb.send_unack} and {tcb.send_next})"
            )

        tcb.send_unack = header.ack_number
        tcb.retransmission_queue.remove(header.ack_number)

    @property
    def send_buffer(self) -> bytes:
        """A copy of everything sent so far."""
        return bytes(self.tcb.send_buffer)

    @property
    def receive_buffer(self) -> bytes:
        """A copy of everything received and not yet cleared."""
        return bytes(self.tcb.recv_buffer)

    def clear_receive_buffer(self) -> None:
        """Discard received data once the application has read it."""
        self.tcb.recv_buffer.clear()

    def check_retransmissions(self) -> list[RetransmissionEntry]:
        """Return the segments whose retransmission timer has expired."""
        return self.tcb.retransmission_queue.get_timeout_entries(
            self.tcb.retransmission_timeout,
            self.tcb.max_retransmission_attempts,
        )

    @property
    def retransmission_queue_size(self) -> int:
        """Number of segments still awaiting acknowledgment."""
        return len(self.tcb.retransmission_queue)

    @property
    def retransmission_timeout(self) -> float:
        """Seconds to wait before a segment is retransmitted."""
        return self.tcb.retransmission_timeout

    @retransmission_timeout.setter
    def retransmission_timeout(self, timeout: float) -> None:
        self.tcb.retransmission_timeout = timeout

    @property
    def max_retransmission_attempts(self) -> int:
        """Maximum number of times a segment is sent."""
        return self.tcb.max_retransmission_attempts

    @max_retransmission_attempts.setter
    def max_retransmission_attempts(self, max_attempts: int) -> None:
        self.tcb.max_retransmission_attempts = max_attempts