"""The four-way handshake that closes a connection."""

from __future__ import annotations

from tinytcp.packet import Flag, TCPHeader
from tinytcp.sockets import SocketState
from tinytcp.tcb import TCB, TCPError

__all__ = ["FourWayHandshake"]

_SEQ_MASK = 0xFFFFFFFF

_AFTER_FIN = {
    SocketState.ESTABLISHED: SocketState.CLOSE_WAIT,  # passive close
    SocketState.FIN_WAIT_1: SocketState.CLOSING,  # simultaneous close
    SocketState.FIN_WAIT_2: SocketState.TIME_WAIT,  # active close completes
}

_AFTER_FIN_ACK = {
    SocketState.FIN_WAIT_1: SocketState.FIN_WAIT_2,
    SocketState.CLOSING: SocketState.TIME_WAIT,
    SocketState.LAST_ACK: SocketState.CLOSED,
}


def _outgoing_header(tcb: TCB, seq: int, ack: int, flags: int) -> TCPHeader:
    header = TCPHeader(tcb.local_addr.port & 0xFFFF, tcb.remote_addr.port & 0xFFFF)
    header.sequence_number = seq
    header.ack_number = ack
    header.set_flag(flags)
    header.window_size = tcb.recv_window
    return header


class FourWayHandshake:
    """Drives a TCB through connection termination."""

    def __init__(self, tcb: TCB) -> None:
        self.tcb = tcb

    def close(self) -> TCPHeader:
        """Begin an active close: return a FIN and enter FIN_WAIT_1."""
        tcb = self.tcb
        if tcb.state != SocketState.ESTABLISHED:
            raise TCPError("connection must be in ESTABLISHED state to close")

        fin = _outgoing_header(tcb, tcb.send_next, tcb.recv_next, Flag.FIN | Flag.ACK)
        tcb.retransmission_queue.add(fin, b"")
        tcb.send_next = (tcb.send_next + 1) & _SEQ_MASK  # FIN takes one sequence number
        tcb.state = SocketState.FIN_WAIT_1
        return fin

    def handle_fin(self, fin_header: TCPHeader) -> TCPHeader:
        """Acknowledge the peer's FIN and move to the next closing state."""
        tcb = self.tcb
        next_state = _AFTER_FIN.get(tcb.state)
        if next_state is None:
            raise TCPError(f"unexpected FIN in state {tcb.state}")
        if fin_header.sequence_number != tcb.recv_next:
            raise TCPError(
                f"unexpected sequence number in FIN: expected {tcb.recv_next}, "
                f"got {fin_header.sequence_number}"
            )

        tcb.recv_next = (tcb.recv_next + 1) & _SEQ_MASK
        ack = _outgoing_header(tcb, tcb.send_next, tcb.recv_next, Flag.ACK)
        tcb.state = next_state
        return ack

    def handle_fin_ack(self, ack_header: TCPHeader) -> None:
        """Accept the acknowledgment of our FIN and move to the next state."""
        tcb = self.tcb
        next_state = _AFTER_FIN_ACK.get(tcb.state)
        if next_state is None:
            raise TCPError(f"unexpected FIN ACK in state {tcb.state}")
        if ack_header.ack_number != tcb.send_next:
            raise TCPError(
                f"invalid ACK number for FIN: expected {tcb.send_next}, "
                f"got {ack_header.ack_number}"
            )

        tcb.send_unack = ack_header.ack_number
        tcb.state = next_state

    def close_from_close_wait(self) -> TCPHeader:
        """Finish a passive close: return our FIN and enter LAST_ACK."""
        tcb = self.tcb
        if tcb.state != SocketState.CLOSE_WAIT:
            raise TCPError("connection must be in CLOSE_WAIT state")

        fin = _outgoing_header(tcb, tcb.send_next, tcb.recv_next, Flag.FIN | Flag.ACK)
        tcb.send_next = (tcb.send_next + 1) & _SEQ_MASK
        tcb.state = SocketState.LAST_ACK
        return fin

    def is_connection_closed(self) -> bool:
        """True once the connection is fully closed."""
        return self.tcb.state == SocketState.CLOSED

    def can_send_data(self) -> bool:
        """True while data may still be sent."""
        return self.tcb.state == SocketState.ESTABLISHED

    def can_receive_data(self) -> bool:
        """True while data may still arrive."""
        return self.tcb.state in (SocketState.ESTABLISHED, SocketState.CLOSE_WAIT)