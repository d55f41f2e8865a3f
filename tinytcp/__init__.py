"""A small model of the TCP state machine: headers, sockets, handshakes, data transfer, retransmission and close."""

__version__ = "0.1.0"