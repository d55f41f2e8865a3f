# tinytcp

A small, readable model of TCP connection handling. It builds TCP headers and
walks a Transmission Control Block (TCB) through the states of a connection,
so every sequence number, flag and state change can be followed step by step.
Nothing is sent over a network.

## Modules

- `tinytcp.packet`: `TCPHeader` (ports, sequence and acknowledgement numbers,
  data offset, flags, window size, checksum, urgent pointer) and the `Flag`
  control bits FIN, SYN, RST, PSH, ACK and URG. `set_flag`, `has_flag` (true
  if any of the given flags is set), `header_length` (data offset times four)
  and `str()` of a header such as `TCP[8080->80 seq=12345 ack=0 flags=SYN win=65535]`.
  `describe_flags(header)` gives a summary such as `SYN|ACK`, or `NONE`.
- `tinytcp.sockets`: `SocketState` (CLOSED, LISTEN, SYN_SENT, SYN_RECEIVED,
  ESTABLISHED, FIN_WAIT_1, FIN_WAIT_2, CLOSE_WAIT, CLOSING, LAST_ACK,
  TIME_WAIT), `TCPAddress`, `resolve_tcp_address("host:port")`, and
  `TinySocket` with `listen`, `accept`, `connect`, `send`, `receive`, `close`
  and the `state`, `local_addr` and `remote_addr` properties. `TinySocket` is
  also a context manager that closes on exit. Failures raise `SocketError`.
- `tinytcp.tcb`: `TCB`, holding addresses, `send_next`, `send_unack`,
  `recv_next`, `recv_window`, `state`, send and receive buffers, and the
  retransmission queue, timeout (seconds, default 1.0) and attempt limit
  (default 3). `generate_isn()` returns a random 32-bit number. Protocol
  violations raise `TCPError`.
- `tinytcp.handshake`: `ThreeWayHandshake` with `start_client`, `handle_syn`,
  `handle_syn_ack` and `handle_ack`.
- `tinytcp.transfer`: `DataTransfer` with `send`, `receive`, `receive_ack`,
  `check_retransmissions`, `clear_receive_buffer`, and the properties
  `send_buffer`, `receive_buffer`, `retransmission_queue_size`,
  `retransmission_timeout` and `max_retransmission_attempts` (the last two
  can be assigned).
- `tinytcp.closing`: `FourWayHandshake` with `close`, `handle_fin`,
  `handle_fin_ack`, `close_from_close_wait`, `is_connection_closed`,
  `can_send_data` and `can_receive_data`.
- `tinytcp.retransmission`: `RetransmissionQueue` of `RetransmissionEntry`
  items, with `add`, `remove`, `get_timeout_entries` and `len()`.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Commands

```
tinytcp-server [ADDRESS]        # listen on ADDRESS (default :8080), show the state, close
tinytcp-client [ADDRESS]        # connect to ADDRESS (default 127.0.0.1:8080), send a greeting, close
tinytcp-demo-open [DEMO]        # DEMO: handshake, transfer or all (default)
tinytcp-demo-close [DEMO] [--timeout SECONDS] [--pause SECONDS]
                                # DEMO: active, simultaneous, close, retransmission or all (default)
```

`--timeout` (default 0.5) is the retransmission timeout used by the
retransmission demo and `--pause` (default 0.6) the time it waits before each
check. Each command returns exit status 0 on success and 1 on failure.

## A short walk-through

Opening a connection between two TCBs:

```python
from tinytcp.handshake import ThreeWayHandshake
from tinytcp.sockets import SocketState, resolve_tcp_address
from tinytcp.tcb import TCB

client_addr = resolve_tcp_address("127.0.0.1:8080")
server_addr = resolve_tcp_address("127.0.0.1:9090")

client = TCB(client_addr, server_addr)
server = TCB(server_addr, client_addr)
server.state = SocketState.LISTEN

client_hs = ThreeWayHandshake(client)
server_hs = ThreeWayHandshake(server)

syn = client_hs.start_client()
syn_ack = server_hs.handle_syn(syn)
ack = client_hs.handle_syn_ack(syn_ack)
server_hs.handle_ack(ack)

print(client)   # ... State: ESTABLISHED ...
print(server)   # ... State: ESTABLISHED ...
```

Sending data and acknowledging it:

```python
from tinytcp.transfer import DataTransfer

sender = DataTransfer(client)
receiver = DataTransfer(server)

segment = sender.send(b"Hello, Server!")
data, ack = receiver.receive(segment, b"Hello, Server!")
sender.receive_ack(ack)
```

Closing it again:

```python
from tinytcp.closing import FourWayHandshake

active = FourWayHandshake(client)
passive = FourWayHandshake(server)

fin = active.close()                                 # client: FIN_WAIT_1
active.handle_fin_ack(passive.handle_fin(fin))       # server: CLOSE_WAIT, client: FIN_WAIT_2
last_fin = passive.close_from_close_wait()           # server: LAST_ACK
passive.handle_fin_ack(active.handle_fin(last_fin))  # client: TIME_WAIT, server: CLOSED

print(passive.is_connection_closed())  # True
```

A handshake, transfer or close call made in the wrong state, or with an
unexpected sequence or acknowledgement number, raises `TCPError` before the
TCB is changed. Sending empty data also raises `TCPError`.

## Retransmission

`start_client` puts its SYN, `DataTransfer.send` its data segment and
`FourWayHandshake.close` its FIN into the TCB's retransmission queue.
`handle_syn_ack`, `handle_ack` and `receive_ack` remove every entry whose
data (plus one for SYN or FIN) is covered by the acknowledgement number.
`DataTransfer.check_retransmissions()` returns copies of the entries whose
timeout has passed and that have been sent fewer times than the attempt
limit, and marks each of them as sent again with one more attempt.

## What it does not do

- `TinySocket` does not open real network connections. `connect` resolves the
  address and moves straight to ESTABLISHED; `send` only appends to an
  internal buffer; `receive` raises `SocketError` when nothing has been
  buffered, and nothing in the package delivers data to it from outside.
- `accept` on a listening socket waits for a queued connection, but nothing in
  the package queues one; it returns only by raising `SocketError` once the
  socket is closed from another thread.
- Headers are objects only: there is no encoding to or decoding from bytes and
  no checksum calculation.
- There are no timers of its own: retransmission happens only when
  `check_retransmissions()` is called, and TIME_WAIT is never left.