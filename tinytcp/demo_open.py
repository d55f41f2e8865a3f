"""Walk-throughs of opening a connection and exchanging data over it."""

from __future__ import annotations

import argparse
import json
import sys

from tinytcp.handshake import ThreeWayHandshake
from tinytcp.packet import TCPHeader, describe_flags
from tinytcp.sockets import SocketState, resolve_tcp_address
from tinytcp.tcb import TCB, TCPError
from tinytcp.transfer import DataTransfer

__all__ = ["run_handshake_demo", "run_data_transfer_demo", "main"]

_CLIENT_ADDRESS = "127.0.0.1:8080"
_SERVER_ADDRESS = "127.0.0.1:9090"

_CLIENT_DATA = b"Hello, Server! This is a message from client."
_SERVER_DATA = b"Hello, Client! Server received your message."


def _quote(data: bytes) -> str:
    return json.dumps(data.decode("utf-8", errors="replace"), ensure_ascii=False)


def _new_pair() -> tuple[TCB, TCB]:
    client_addr = resolve_tcp_address(_CLIENT_ADDRESS)
    server_addr = resolve_tcp_address(_SERVER_ADDRESS)
    return TCB(client_addr, server_addr), TCB(server_addr, client_addr)


def _describe(label: str, header: TCPHeader) -> str:
    return (
        f"  {label}: Seq={header.sequence_number}, Ack={header.ack_number}, "
        f"Flags={describe_flags(header)}"
    )


def run_handshake_demo() -> tuple[TCB, TCB]:
    """Open a connection step by step; return the client and server TCBs."""
    print("=== TinyTCP 3-Way Handshake Demo ===")

    client_tcb, server_tcb = _new_pair()
    client_tcb.state = SocketState.CLOSED
    server_tcb.state = SocketState.LISTEN

    client = ThreeWayHandshake(client_tcb)
    server = ThreeWayHandshake(server_tcb)

    print("Initial states:")
    print(f"  Client: {client_tcb}")
    print(f"  Server: {server_tcb}")
    print()

    print("Step 1: Client sends SYN")
    syn = client.start_client()
    print(_describe("SYN packet", syn))
    print(f"  Client state: {client_tcb.state}")
    print()

    print("Step 2: Server handles SYN and sends SYN-ACK")
    syn_ack = server.handle_syn(syn)
    print(_describe("SYN-ACK packet", syn_ack))
    print(f"  Server state: {server_tcb.state}")
    print()

    print("Step 3: Client handles SYN-ACK and sends ACK")
    ack = client.handle_syn_ack(syn_ack)
    print(_describe("ACK packet", ack))
    print(f"  Client state: {client_tcb.state}")
    print()

    print("Step 4: Server handles final ACK")
    server.handle_ack(ack)
    print(f"  Server state: {server_tcb.state}")
    print()

    print("=== Handshake Complete! ===")
    print("Final states:")
    print(f"  Client: {client_tcb}")
    print(f"  Server: {server_tcb}")
    return client_tcb, server_tcb


def run_data_transfer_demo() -> tuple[DataTransfer, DataTransfer]:
    """Open a connection and exchange one message each way.

    Returns the client's and the server's data-transfer handlers.
    """
    print("=== TCP Data Transfer Demo ===")

    client_tcb, server_tcb = _new_pair()

    print("\n--- 3-way handshake ---")
    client_hs = ThreeWayHandshake(client_tcb)
    server_hs = ThreeWayHandshake(server_tcb)
    server_tcb.state = SocketState.LISTEN

    syn = client_hs.start_client()
    print(f"Client -> Server: {syn}")
    syn_ack = server_hs.handle_syn(syn)
    print(f"Server -> Client: {syn_ack}")
    ack = client_hs.handle_syn_ack(syn_ack)
    print(f"Client -> Server: {ack}")
    server_hs.handle_ack(ack)

    print("Connection established!")
    print(f"Client TCB: {client_tcb}")
    print(f"Server TCB: {server_tcb}")

    print("\n--- Data transfer ---")
    client_dt = DataTransfer(client_tcb)
    server_dt = DataTransfer(server_tcb)

    print(f"Sending: {_quote(_CLIENT_DATA)}")
    request = client_dt.send(_CLIENT_DATA)
    print(f"Client -> Server: {request} (data length: {len(_CLIENT_DATA)})")

    received, request_ack = server_dt.receive(request, _CLIENT_DATA)
    print(f"Server received: {_quote(received)}")
    print(f"Server -> Client: {request_ack}")

    client_dt.receive_ack(request_ack)
    print("Client: ACK confirmed")

    print(f"\nReply: {_quote(_SERVER_DATA)}")
    reply = server_dt.send(_SERVER_DATA)
    print(f"Server -> Client: {reply} (data length: {len(_SERVER_DATA)})")

    received, reply_ack = client_dt.receive(reply, _SERVER_DATA)
    print(f"Client received: {_quote(received)}")
    print(f"Client -> Server: {reply_ack}")

    server_dt.receive_ack(reply_ack)
    print("Server: ACK confirmed")

    print("\n--- Final state ---")
    print(f"Client TCB: {client_tcb}")
    print(f"Server TCB: {server_tcb}")

    print("\n--- Buffers ---")
    print(f"Client send buffer: {_quote(client_dt.send_buffer)}")
    print(f"Client receive buffer: {_quote(client_dt.receive_buffer)}")
    print(f"Server send buffer: {_quote(server_dt.send_buffer)}")
    print(f"Server receive buffer: {_quote(server_dt.receive_buffer)}")

    print("\n=== Data transfer demo complete ===")
    return client_dt, server_dt


_DEMOS = {
    "handshake": (run_handshake_demo,),
    "transfer": (run_data_transfer_demo,),
    "all": (run_handshake_demo, run_data_transfer_demo),
}


def main(argv: list[str] | None = None) -> int:
    """Run the chosen demo (or all of them); return the exit status."""
    parser = argparse.ArgumentParser(prog="tinytcp-demo-open")
    parser.add_argument("demo", nargs="?", default="all", choices=sorted(_DEMOS))
    args = parser.parse_args(argv)

    for index, demo in enumerate(_DEMOS[args.demo]):
        if index:
            print()
        try:
            demo()
        except TCPError as exc:
            print(f"Demo failed: {exc}", file=sys.stderr)
            return 1
    return 0