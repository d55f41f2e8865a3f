"""A minimal socket API that tracks TCP connection state."""

from __future__ import annotations

import enum
import ipaddress
import socket
import threading
from collections import deque
from dataclasses import dataclass

__all__ = [
    "SocketState",
    "SocketError",
    "TCPAddress",
    "TinySocket",
    "resolve_tcp_address",
]

_ACCEPT_BACKLOG = 10


class SocketState(enum.IntEnum):
    """States of a TCP connection."""

    CLOSED = 0
    LISTEN = 1
    SYN_SENT = 2
    SYN_RECEIVED = 3
    ESTABLISHED = 4
    FIN_WAIT_1 = 5
    FIN_WAIT_2 = 6
    CLOSE_WAIT = 7
    CLOSING = 8
    LAST_ACK = 9
    TIME_WAIT = 10

    def __str__(self) -> str:
        return self.name


class SocketError(OSError):
    """A failed socket operation."""

    def __init__(self, op: str, reason: str) -> None:
        super().__init__(f"{op}: {reason}")
        self.op = op
        self.reason = reason


@dataclass(frozen=True)
class TCPAddress:
    """A TCP endpoint; an empty host means any address."""

    host: str
    port: int

    def __str__(self) -> str:
        if not self.host:
            return f":{self.port}"
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


def _split_host_port(addr: str) -> tuple[str, str]:
    if addr.startswith("["):
        end = addr.find("]")
        if end < 0:
            raise SocketError("resolve", f"missing ']' in address {addr!r}")
        rest = addr[end + 1 :]
        if not rest.startswith(":"):
            raise SocketError("resolve", f"missing port in address {addr!r}")
        return addr[1:end], rest[1:]
    if ":" not in addr:
        raise SocketError("resolve", f"missing port in address {addr!r}")
    host, _, port = addr.rpartition(":")
    if ":" in host:
        raise SocketError("resolve", f"too many colons in address {addr!r}")
    return host, port


def _parse_port(text: str) -> int:
    if not text:
        return 0
    if text.isdigit():
        port = int(text)
        if port > 65535:
            raise SocketError("resolve", f"invalid port {text!r}")
        return port
    try:
        return socket.getservbyname(text, "tcp")
    except OSError:
        raise SocketError("resolve", f"unknown port {text!r}") from None


def _resolve_host(host: str) -> str:
    try:
        return str(ipaddress.ip_address(host))
    except ValueError:
        pass
    try:
        infos = socket.getaddrinfo(host, None, socket.AF_UNSPEC, socket.SOCK_STREAM)
    except socket.gaierror as exc:
        raise SocketError("resolve", f"lookup {host}: {exc}") from None
    addresses = [info[4][0] for info in infos]
    ipv4 = [a for a in addresses if ":" not in a]
    return (ipv4 or addresses)[0]


def resolve_tcp_address(addr: str) -> TCPAddress:
    """Parse 'host:port' into a TCPAddress, resolving host names."""
    host, port_text = _split_host_port(addr)
    port = _parse_port(port_text)
    if not host:
        return TCPAddress("", port)
    return TCPAddress(_resolve_host(host), port)


class TinySocket:
    """A thread-safe socket object tracking connection state and buffers."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._cond = threading.Condition(self._lock)
        self._state = SocketState.CLOSED
        self._local_addr: TCPAddress | None = None
        self._remote_addr: TCPAddress | None = None
        self._is_listening = False
        self._connections: dict[str, TinySocket] = {}
        self._send_seq = 0
        self._recv_seq = 0
        self._send_ack = 0
        self._recv_ack = 0
        self._send_buffer = bytearray()
        self._recv_buffer = bytearray()
        self._pending: deque[TinySocket] = deque()
        self._closed = False
        self._parent: TinySocket | None = None

    def __enter__(self) -> TinySocket:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def state(self) -> SocketState:
        """The current connection state."""
        with self._lock:
            return self._state

    @property
    def local_addr(self) -> TCPAddress | None:
        """The address the socket listens on, if any."""
        with self._lock:
            return self._local_addr

    @property
    def remote_addr(self) -> TCPAddress | None:
        """The address the socket is connected to, if any."""
        with self._lock:
            return self._remote_addr

    def listen(self, addr: str) -> None:
        """Start listening on the given address."""
        tcp_addr = resolve_tcp_address(addr)
        with self._lock:
            self._local_addr = tcp_addr
            self._state = SocketState.LISTEN
            self._is_listening = True

    def accept(self) -> TinySocket:
        """Block until a connection arrives; fail if the socket is closed."""
        if self.state is not SocketState.LISTEN:
            raise SocketError("accept", "socket not listening")
        with self._cond:
            self._cond.wait_for(lambda: self._pending or self._closed)
            if self._pending:
                return self._pending.popleft()
            raise SocketError("accept", "socket closed")

    def connect(self, addr: str) -> None:
        """Connect to the given address."""
        tcp_addr = resolve_tcp_address(addr)
        with self._lock:
            self._remote_addr = tcp_addr
            self._state = SocketState.SYN_SENT
            # No segments are exchanged at this layer; the connection is
            # considered established immediately.
            self._state = SocketState.ESTABLISHED

    def send(self, data: bytes) -> int:
        """Queue data for sending and return the number of bytes accepted."""
        with self._lock:
            if self._state is not SocketState.ESTABLISHED:
                raise SocketError("send", "socket not connected")
            self._send_buffer.extend(data)
            return len(data)

    def receive(self) -> bytes:
        """Return and clear all buffered received data."""
        with self._lock:
            if self._state is not SocketState.ESTABLISHED:
                raise SocketError("receive", "socket not connected")
            if not self._recv_buffer:
                raise SocketError("receive", "no data available")
            data = bytes(self._recv_buffer)
            self._recv_buffer.clear()
            return data

    def close(self) -> None:
        """Close the socket; closing twice is harmless."""
        with self._cond:
            if self._state is SocketState.CLOSED:
                return
            self._state = SocketState.CLOSED
            self._closed = True
            self._cond.notify_all()

    def _deliver(self, data: bytes) -> None:
        with self._lock:
            self._recv_buffer.extend(data)

    def _enqueue_connection(self, conn: TinySocket) -> bool:
        with self._cond:
            if len(self._pending) >= _ACCEPT_BACKLOG:
                return False
            conn._parent = self
            self._pending.append(conn)
            self._cond.notify_all()
            return True