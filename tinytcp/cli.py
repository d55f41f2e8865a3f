"""Command-line entry points for the client and server prototypes."""

from __future__ import annotations

import argparse
import sys

from tinytcp.sockets import SocketError, TinySocket

__all__ = ["client_main", "server_main"]

_CLIENT_MESSAGE = b"Hello from TinyTCP client!"


def client_main(argv: list[str] | None = None) -> int:
    """Connect to a server, send a greeting and close."""
    parser = argparse.ArgumentParser(prog="tinytcp-client")
    parser.add_argument("address", nargs="?", default="127.0.0.1:8080")
    args = parser.parse_args(argv)

    print("TinyTCP Client - TCP/IP Stack Implementation")
    print("Starting client...")

    sock = TinySocket()
    try:
        sock.connect(args.address)
    except SocketError as exc:
        print(f"Failed to connect to {args.address}: {exc}", file=sys.stderr)
        return 1

    print(f"Connected to {args.address}")
    print(f"Client state: {sock.state}")
    print(f"Remote address: {sock.remote_addr}")

    try:
        sent = sock.send(_CLIENT_MESSAGE)
    except SocketError as exc:
        print(f"Failed to send data: {exc}", file=sys.stderr)
        return 1
    print(f"Sent {sent} bytes: {_CLIENT_MESSAGE.decode()}")
    print("Client prototype working successfully!")

    try:
        sock.close()
    except SocketError as exc:
        print(f"Error closing socket: {exc}", file=sys.stderr)
    print("Client stopped.")
    return 0


def server_main(argv: list[str] | None = None) -> int:
    """Start listening on an address and close again."""
    parser = argparse.ArgumentParser(prog="tinytcp-server")
    parser.add_argument("address", nargs="?", default=":8080")
    args = parser.parse_args(argv)

    print("TinyTCP Server - TCP/IP Stack Implementation")
    print("Starting server...")

    sock = TinySocket()
    try:
        sock.listen(args.address)
    except SocketError as exc:
        print(f"Failed to listen on {args.address}: {exc}", file=sys.stderr)
        return 1

    print(f"Server listening on {args.address}")
    print(f"Server state: {sock.state}")
    print(f"Local address: {sock.local_addr}")
    print("Socket created and listening successfully!")
    print("Server prototype ready.")

    try:
        sock.close()
    except SocketError as exc:
        print(f"Error closing socket: {exc}", file=sys.stderr)
    print("Server stopped.")
    return 0