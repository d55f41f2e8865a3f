"""The three-way handshake that opens a connection."""

from __future__ import annotations

from tinytcp.packet import Flag, TCPHeader
from tinytcp.sockets import SocketState
from tinytcp.tcb import TCB, TCPError

__all__ = ["ThreeWayHandshake"]

_SEQ_MASK = 0xFFFFFFFF


def _outgoing_header(tcb: TCB, seq: int, ack: int, flags: int) -> TCPHeader:
    header = TCPHeader(tcb.local_addr.port & 0xFFFF, tcb.remote_addr.port & 0xFFFF)
    header.sequence_number = seq
    header.ack_number = ack
    header.set_flag(flags)
    header.window_size = tcb.recv_window
    return header


class ThreeWayHandshake:
    """Drives a TCB through connection establishment."""

    def __init__(self, tcb: TCB) -> None:
        self.tcb = tcb

    def start_client(self) -> TCPHeader:
        """Begin an active open: return a SYN and enter SYN_SENT."""
        tcb = self.tcb
        if tcb.state != SocketState.CLOSED:
            raise TCPError("connection must be in CLOSED state to start handshake")

        isn = tcb.generate_isn()
        tcb.send_next = (isn + 1) & _SEQ_MASK
        tcb.send_unack = isn

        syn = _outgoing_header(tcb, isn, 0, Flag.SYN)
        tcb.retransmission_queue.add(syn, b"")
        tcb.state = SocketState.SYN_SENT
        return syn

    def handle_syn(self, syn_header: TCPHeader) -> TCPHeader:
        """Answer a SYN on a listening TCB with a SYN-ACK; enter SYN_RECEIVED."""
        tcb = self.tcb
        if tcb.state != SocketState.LISTEN:
            raise TCPError("connection must be in LISTEN state to handle SYN")

        tcb.recv_next = (syn_header.sequence_number + 1) & _SEQ_MASK

        isn = tcb.generate_isn()
        tcb.send_next = (isn + 1) & _SEQ_MASK
        tcb.send_unack = isn

        syn_ack = _outgoing_header(tcb, isn, tcb.recv_next, Flag.SYN | Flag.ACK)
        tcb.state = SocketState.SYN_RECEIVED
        return syn_ack

    def handle_syn_ack(self, syn_ack_header: TCPHeader) -> TCPHeader:
        """Accept the server's SYN-ACK, return the final ACK; enter ESTABLISHED."""
        tcb = self.tcb
        if tcb.state != SocketState.SYN_SENT:
            raise TCPError("connection must be in SYN_SENT state to handle SYN-ACK")
        if syn_ack_header.ack_number != tcb.send_next:
            raise TCPError("invalid ACK number in SYN-ACK")

        tcb.recv_next = (syn_ack_header.sequence_number + 1) & _SEQ_MASK

        ack = _outgoing_header(tcb, tcb.send_next, tcb.recv_next, Flag.ACK)
        tcb.retransmission_queue.remove(syn_ack_header.ack_number)
        tcb.state = SocketState.ESTABLISHED
        return ack

    def handle_ack(self, ack_header: TCPHeader) -> None:
        """Accept the client's final ACK; enter ESTABLISHED."""
        tcb = self.tcb
        if tcb.state != SocketState.SYN_RECEIVED:
            raise TCPError("connection must be in SYN_RECEIVED state to handle final ACK")
        if ack_header.ack_number != tcb.send_next:
            raise TCPError("invalid ACK number in final ACK")
        if ack_header.sequence_number != tcb.recv_next:
            raise TCPError("invalid sequence number in final ACK")

        tcb.retransmission_queue.remove(ack_header.ack_number)
        tcb.state = SocketState.ESTABLISHED