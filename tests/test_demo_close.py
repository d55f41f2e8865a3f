import time

import pytest

from tinytcp.demo_close import (
    main,
    run_active_close_demo,
    run_retransmission_demo,
    run_simultaneous_close_demo,
)
from tinytcp.sockets import SocketState


def test_active_close_ends_in_time_wait_and_closed():
    client, server = run_active_close_demo()
    assert client.tcb.state == SocketState.TIME_WAIT
    assert server.tcb.state == SocketState.CLOSED
    assert server.is_connection_closed()
    assert not client.is_connection_closed()


def test_active_close_sequence_numbers_consistent():
    client, server = run_active_close_demo()
    # Each side's FIN consumed one sequence number, seen by both ends.
    assert client.tcb.send_next == server.tcb.recv_next
    assert server.tcb.send_next == client.tcb.recv_next
    assert client.tcb.send_next == 1000 + 1
    assert server.tcb.send_next == 2000 + 1
    assert client.tcb.send_unack == client.tcb.send_next
    assert server.tcb.send_unack == server.tcb.send_next


def test_simultaneous_close_both_time_wait():
    client, server = run_simultaneous_close_demo()
    assert client.tcb.state == SocketState.TIME_WAIT
    assert server.tcb.state == SocketState.TIME_WAIT
    assert not client.can_send_data()
    assert not server.can_receive_data()


def test_simultaneous_close_sequence_numbers_consistent():
    client, server = run_simultaneous_close_demo()
    assert client.tcb.send_next == server.tcb.recv_next
    assert server.tcb.send_next == client.tcb.recv_next
    assert client.tcb.send_unack == client.tcb.send_next


def test_active_close_prints_final_states(capsys):
    client, server = run_active_close_demo()
    out = capsys.readouterr().out
    assert str(client.tcb) in out
    assert str(server.tcb) in out


def test_retransmission_demo_with_timeouts():
    tcb = run_retransmission_demo(timeout=0.01, pause=0.05)
    assert tcb.retransmission_timeout == 0.01
    assert tcb.max_retransmission_attempts == 2
    assert tcb.state == SocketState.FIN_WAIT_1
    assert tcb.recv_next == 2000 + 1
    # Only the unacknowledged FIN remains queued.
    assert len(tcb.retransmission_queue) == 1
    time.sleep(0.02)
    # The FIN was already retransmitted, reaching the attempt limit.
    assert tcb.retransmission_queue.get_timeout_entries(0, tcb.max_retransmission_attempts) == []


def test_retransmission_demo_without_timeouts():
    tcb = run_retransmission_demo(timeout=10.0, pause=0.0)
    assert tcb.state == SocketState.FIN_WAIT_1
    assert len(tcb.retransmission_queue) == 1
    time.sleep(0.02)
    due = tcb.retransmission_queue.get_timeout_entries(0, tcb.max_retransmission_attempts)
    assert len(due) == 1
    assert due[0].attempts == tcb.max_retransmission_attempts


def test_retransmission_demo_reports_final_state(capsys):
    tcb = run_retransmission_demo(timeout=0.01, pause=0.03)
    out = capsys.readouterr().out
    assert str(tcb.state) in out
    assert str(SocketState.FIN_WAIT_1) in out


@pytest.mark.parametrize("demo", ["active", "simultaneous", "close"])
def test_main_close_demos_succeed(demo, capsys):
    assert main([demo]) == 0
    assert str(SocketState.TIME_WAIT) in capsys.readouterr().out


def test_main_all_succeeds(capsys):
    assert main(["all", "--timeout", "0.01", "--pause", "0.03"]) == 0
    out = capsys.readouterr().out
    assert str(SocketState.CLOSED) in out
    assert str(SocketState.FIN_WAIT_1) in out


def test_main_rejects_unknown_demo():
    with pytest.raises(SystemExit):
        main(["bogus"])