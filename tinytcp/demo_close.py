"""Walk-throughs of closing a connection and of segment retransmission."""

from __future__ import annotations

import argparse
import sys
import time

from tinytcp.closing import FourWayHandshake
from tinytcp.handshake import ThreeWayHandshake
from tinytcp.packet import Flag, TCPHeader
from tinytcp.retransmission import RetransmissionEntry
from tinytcp.sockets import SocketState, TCPAddress, resolve_tcp_address
from tinytcp.tcb import TCB, TCPError
from tinytcp.transfer import DataTransfer

__all__ = [
    "run_active_close_demo",
    "run_simultaneous_close_demo",
    "run_retransmission_demo",
    "main",
]

_CLIENT_ADDRESS = "127.0.0.1:8080"
_SERVER_ADDRESS = "127.0.0.1:9090"

_CLIENT_ISN = 1000
_SERVER_ISN = 2000

_RETRANSMISSION_DATA = b"Hello, TCP Retransmission!"
_DEMO_MAX_ATTEMPTS = 2
_SEQ_MASK = 0xFFFFFFFF


def _established_pair() -> tuple[TCB, TCB]:
    client_addr = resolve_tcp_address(_CLIENT_ADDRESS)
    server_addr = resolve_tcp_address(_SERVER_ADDRESS)
    client_tcb = TCB(client_addr, server_addr)
    server_tcb = TCB(server_addr, client_addr)

    client_tcb.state = SocketState.ESTABLISHED
    server_tcb.state = SocketState.ESTABLISHED
    client_tcb.send_next = _CLIENT_ISN
    client_tcb.recv_next = _SERVER_ISN
    server_tcb.send_next = _SERVER_ISN
    server_tcb.recv_next = _CLIENT_ISN
    return client_tcb, server_tcb


def _print_tcbs(heading: str, client_tcb: TCB, server_tcb: TCB) -> None:
    print(heading)
    print(f"  Client: {client_tcb}")
    print(f"  Server: {server_tcb}")


def run_active_close_demo() -> tuple[FourWayHandshake, FourWayHandshake]:
    """Close a connection from the client side in four steps.

    Returns the client's and the server's close handlers.
    """
    print("--- Active close (4-way handshake) demo ---")

    client_tcb, server_tcb = _established_pair()
    _print_tcbs("Initial states:", client_tcb, server_tcb)
    print()

    client = FourWayHandshake(client_tcb)
    server = FourWayHandshake(server_tcb)

    print("Step 1: Client starts the close")
    client_fin = client.close()
    print(f"  Client -> Server: {client_fin}")
    print(f"  Client state: {client_tcb.state}")
    print()

    print("Step 2: Server receives the FIN and sends an ACK")
    server_ack = server.handle_fin(client_fin)
    print(f"  Server -> Client: {server_ack}")
    print(f"  Server state: {server_tcb.state}")
    print()

    print("Step 3: Client receives the ACK of its FIN")
    client.handle_fin_ack(server_ack)
    print(f"  Client state: {client_tcb.state}")
    print()

    print("Step 4: Server closes from CLOSE_WAIT")
    server_fin = server.close_from_close_wait()
    print(f"  Server -> Client: {server_fin}")
    print(f"  Server state: {server_tcb.state}")
    print()

    print("Step 5: Client receives the server's FIN and sends the final ACK")
    client_ack = client.handle_fin(server_fin)
    print(f"  Client -> Server: {client_ack}")
    print(f"  Client state: {client_tcb.state}")
    print()

    print("Step 6: Server receives the final ACK")
    server.handle_fin_ack(client_ack)
    print(f"  Server state: {server_tcb.state}")
    print()

    print("=== Active close complete! ===")
    _print_tcbs("Final states:", client_tcb, server_tcb)
    print(
        f"  Closed: client={client.is_connection_closed()}, "
        f"server={server.is_connection_closed()}"
    )
    return client, server


def run_simultaneous_close_demo() -> tuple[FourWayHandshake, FourWayHandshake]:
    """Close a connection from both sides at once.

    Returns the client's and the server's close handlers.
    """
    print("--- Simultaneous close demo ---")

    client_tcb, server_tcb = _established_pair()
    _print_tcbs("Initial states:", client_tcb, server_tcb)
    print()

    client = FourWayHandshake(client_tcb)
    server = FourWayHandshake(server_tcb)

    print("Step 1: Both sides start the close at once")
    client_fin = client.close()
    server_fin = server.close()
    print(f"  Client -> Server: {client_fin}")
    print(f"  Server -> Client: {server_fin}")
    print(f"  Client state: {client_tcb.state}")
    print(f"  Server state: {server_tcb.state}")
    print()

    print("Step 2: Each side handles the other's FIN")
    client_ack = client.handle_fin(server_fin)
    server_ack = server.handle_fin(client_fin)
    print(f"  Client -> Server: {client_ack}")
    print(f"  Server -> Client: {server_ack}")
    print(f"  Client state: {client_tcb.state}")
    print(f"  Server state: {server_tcb.state}")
    print()

    print("Step 3: Each side handles the ACK of its FIN")
    client.handle_fin_ack(server_ack)
    server.handle_fin_ack(client_ack)
    print(f"  Client state: {client_tcb.state}")
    print(f"  Server state: {server_tcb.state}")
    print()

    print("=== Simultaneous close complete! ===")
    _print_tcbs("Final states:", client_tcb, server_tcb)
    print(
        f"  Closed: client={client.is_connection_closed()}, "
        f"server={server.is_connection_closed()}"
    )
    return client, server


def _report(label: str, entries: list[RetransmissionEntry], with_length: bool = False) -> None:
    for number, entry in enumerate(entries, start=1):
        length = f", len={len(entry.data)}" if with_length else ""
        print(
            f"  {label} {number}: seq={entry.header.sequence_number}"
            f"{length}, attempts={entry.attempts}"
        )


def _handshake_retransmission(tcb: TCB, pause: float) -> None:
    handshake = ThreeWayHandshake(tcb)
    syn = handshake.start_client()
    print(f"SYN sent: seq={syn.sequence_number}")
    print(f"Retransmission queue size: {len(tcb.retransmission_queue)}")

    time.sleep(pause)

    due = DataTransfer(tcb).check_retransmissions()
    if due:
        print(f"Timeout detected: {len(due)} packet(s) to retransmit")
        _report("Retransmitted packet", due)
    else:
        print("No timeout")

    remote_port = tcb.remote_addr.port if tcb.remote_addr else 0
    local_port = tcb.local_addr.port if tcb.local_addr else 0
    syn_ack = TCPHeader(remote_port, local_port)
    syn_ack.sequence_number = _SERVER_ISN
    syn_ack.ack_number = (syn.sequence_number + 1) & _SEQ_MASK
    syn_ack.set_flag(Flag.SYN | Flag.ACK)

    try:
        ack = handshake.handle_syn_ack(syn_ack)
    except TCPError as exc:
        print(f"SYN-ACK handling error: {exc}", file=sys.stderr)
        return
    print(f"SYN-ACK received, ACK sent: seq={ack.sequence_number}, ack={ack.ack_number}")
    print(f"Retransmission queue size: {len(tcb.retransmission_queue)}")


def _data_retransmission(tcb: TCB, pause: float) -> None:
    tcb.state = SocketState.ESTABLISHED
    transfer = DataTransfer(tcb)

    segment = transfer.send(_RETRANSMISSION_DATA)
    print(f"Data sent: seq={segment.sequence_number}, len={len(_RETRANSMISSION_DATA)}")
    print(f"Retransmission queue size: {transfer.retransmission_queue_size}")

    time.sleep(pause)

    due = transfer.check_retransmissions()
    if due:
        print(f"Data retransmission detected: {len(due)} packet(s)")
        _report("Retransmitted data", due, with_length=True)

    remote_port = tcb.remote_addr.port if tcb.remote_addr else 0
    local_port = tcb.local_addr.port if tcb.local_addr else 0
    ack = TCPHeader(remote_port, local_port)
    ack.sequence_number = tcb.recv_next
    ack.ack_number = (segment.sequence_number + len(_RETRANSMISSION_DATA)) & _SEQ_MASK
    ack.set_flag(Flag.ACK)

    try:
        transfer.receive_ack(ack)
    except TCPError as exc:
        print(f"ACK handling error: {exc}", file=sys.stderr)
        return
    print(f"ACK received: ack={ack.ack_number}")
    print(f"Retransmission queue size: {transfer.retransmission_queue_size}")


def _close_retransmission(tcb: TCB, pause: float) -> None:
    tcb.state = SocketState.ESTABLISHED
    handshake = FourWayHandshake(tcb)

    fin = handshake.close()
    print(f"FIN sent: seq={fin.sequence_number}")
    print(f"Retransmission queue size: {len(tcb.retransmission_queue)}")

    time.sleep(pause)

    due = DataTransfer(tcb).check_retransmissions()
    if due:
        print(f"FIN retransmission detected: {len(due)} packet(s)")
        _report("Retransmitted FIN", due)

    print(f"Final state: {tcb.state}")


def run_retransmission_demo(timeout: float = 0.5, pause: float = 0.6) -> TCB:
    """Show retransmission timers during open, data transfer and close.

    ``timeout`` is the retransmission timeout in seconds and ``pause`` the
    time waited before each check. Returns the TCB used throughout.
    """
    print("=== TCP Retransmission Demo ===")

    local_addr = TCPAddress("127.0.0.1", 8080)
    remote_addr = TCPAddress("127.0.0.1", 9090)
    tcb = TCB(local_addr, remote_addr)
    tcb.retransmission_timeout = timeout
    tcb.max_retransmission_attempts = _DEMO_MAX_ATTEMPTS

    print(
        f"Settings: timeout={tcb.retransmission_timeout}s, "
        f"max attempts={tcb.max_retransmission_attempts}"
    )

    print("\n--- Test 1: retransmission during the 3-way handshake ---")
    _handshake_retransmission(tcb, pause)

    print("\n--- Test 2: retransmission during data transfer ---")
    _data_retransmission(tcb, pause)

    print("\n--- Test 3: retransmission during close ---")
    _close_retransmission(tcb, pause)

    print("\n=== Demo complete ===")
    return tcb


def _run_close_demos() -> None:
    run_active_close_demo()
    print("\n" + "=" * 50 + "\n")
    run_simultaneous_close_demo()


def main(argv: list[str] | None = None) -> int:
    """Run the chosen demo (or all of them); return the exit status."""
    parser = argparse.ArgumentParser(prog="tinytcp-demo-close")
    parser.add_argument(
        "demo",
        nargs="?",
        default="all",
        choices=["active", "simultaneous", "close", "retransmission", "all"],
    )
    parser.add_argument("--timeout", type=float, default=0.5, help="seconds")
    parser.add_argument("--pause", type=float, default=0.6, help="seconds")
    args = parser.parse_args(argv)

    def retransmission() -> None:
        run_retransmission_demo(args.timeout, args.pause)

    demos = {
        "active": [run_active_close_demo],
        "simultaneous": [run_simultaneous_close_demo],
        "close": [_run_close_demos],
        "retransmission": [retransmission],
        "all": [_run_close_demos, retransmission],
    }[args.demo]

    for index, demo in enumerate(demos):
        if index:
            print()
        try:
            demo()
        except TCPError as exc:
            print(f"Demo failed: {exc}", file=sys.stderr)
            return 1
    return 0