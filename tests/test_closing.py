import pytest

from tinytcp.closing import FourWayHandshake
from tinytcp.packet import Flag, TCPHeader
from tinytcp.retransmission import RetransmissionQueue
from tinytcp.sockets import SocketState, TCPAddress
from tinytcp.tcb import TCB, TCPError
from tinytcp.transfer import DataTransfer

CLIENT = TCPAddress("127.0.0.1", 8080)
SERVER = TCPAddress("127.0.0.1", 9090)


class FakeClock:
    def __init__(self) -> None:
        self.now = 50.0

    def __call__(self) -> float:
        return self.now


def established_pair():
    client = TCB(CLIENT, SERVER, state=SocketState.ESTABLISHED, send_next=1000, recv_next=2000)
    server = TCB(SERVER, CLIENT, state=SocketState.ESTABLISHED, send_next=2000, recv_next=1000)
    return client, server


def test_active_close():
    client, server = established_pair()
    client_hs = FourWayHandshake(client)
    server_hs = FourWayHandshake(server)

    fin1 = client_hs.close()
    assert client.state == SocketState.FIN_WAIT_1
    assert fin1.has_flag(Flag.FIN)
    assert fin1.has_flag(Flag.ACK)
    assert fin1.sequence_number == 1000
    assert fin1.ack_number == 2000

    ack1 = server_hs.handle_fin(fin1)
    assert server.state == SocketState.CLOSE_WAIT
    assert ack1.has_flag(Flag.ACK)
    assert ack1.ack_number == fin1.sequence_number + 1

    client_hs.handle_fin_ack(ack1)
    assert client.state == SocketState.FIN_WAIT_2
    assert client.send_unack == 1001

    fin2 = server_hs.close_from_close_wait()
    assert server.state == SocketState.LAST_ACK
    assert fin2.has_flag(Flag.FIN)
    assert fin2.sequence_number == 2000
    assert len(server.retransmission_queue) == 0

    ack2 = client_hs.handle_fin(fin2)
    assert client.state == SocketState.TIME_WAIT
    assert ack2.has_flag(Flag.ACK)
    assert ack2.ack_number == 2001

    server_hs.handle_fin_ack(ack2)
    assert server.state == SocketState.CLOSED
    assert server_hs.is_connection_closed() is True
    assert client_hs.is_connection_closed() is False


def test_simultaneous_close():
    client, server = established_pair()
    client_hs = FourWayHandshake(client)
    server_hs = FourWayHandshake(server)

    client_fin = client_hs.close()
    server_fin = server_hs.close()
    assert client.state == SocketState.FIN_WAIT_1
    assert server.state == SocketState.FIN_WAIT_1

    client_ack = client_hs.handle_fin(server_fin)
    server_ack = server_hs.handle_fin(client_fin)
    assert client.state == SocketState.CLOSING
    assert server.state == SocketState.CLOSING

    client_hs.handle_fin_ack(server_ack)
    server_hs.handle_fin_ack(client_ack)
    assert client.state == SocketState.TIME_WAIT
    assert server.state == SocketState.TIME_WAIT


def test_invalid_states():
    tcb = TCB(CLIENT, SERVER)
    handshake = FourWayHandshake(tcb)

    tcb.state = SocketState.CLOSED
    with pytest.raises(TCPError):
        handshake.close()

    fin = TCPHeader(9090, 8080)
    fin.set_flag(Flag.FIN)
    with pytest.raises(TCPError, match="unexpected FIN in state CLOSED"):
        handshake.handle_fin(fin)

    tcb.state = SocketState.ESTABLISHED
    with pytest.raises(TCPError, match="CLOSE_WAIT"):
        handshake.close_from_close_wait()


def test_handle_fin_ack_in_wrong_state_raises():
    tcb = TCB(CLIENT, SERVER, state=SocketState.ESTABLISHED)
    with pytest.raises(TCPError, match="unexpected FIN ACK in state ESTABLISHED"):
        FourWayHandshake(tcb).handle_fin_ack(TCPHeader(9090, 8080))


def test_handle_fin_with_wrong_sequence_raises():
    tcb = TCB(CLIENT, SERVER, state=SocketState.ESTABLISHED, recv_next=2000)
    fin = TCPHeader(9090, 8080)
    fin.sequence_number = 2005
    fin.set_flag(Flag.FIN)
    with pytest.raises(TCPError, match="expected 2000, got 2005"):
        FourWayHandshake(tcb).handle_fin(fin)
    assert tcb.state == SocketState.ESTABLISHED
    assert tcb.recv_next == 2000


def test_handle_fin_ack_with_wrong_ack_raises():
    tcb = TCB(CLIENT, SERVER, state=SocketState.ESTABLISHED, send_next=1000)
    handshake = FourWayHandshake(tcb)
    handshake.close()
    ack = TCPHeader(9090, 8080)
    ack.ack_number = 1000
    with pytest.raises(TCPError, match="expected 1001, got 1000"):
        handshake.handle_fin_ack(ack)
    assert tcb.state == SocketState.FIN_WAIT_1


@pytest.mark.parametrize(
    "state, can_send, can_receive, is_closed",
    [
        (SocketState.ESTABLISHED, True, True, False),
        (SocketState.FIN_WAIT_1, False, False, False),
        (SocketState.FIN_WAIT_2, False, False, False),
        (SocketState.CLOSE_WAIT, False, True, False),
        (SocketState.CLOSING, False, False, False),
        (SocketState.LAST_ACK, False, False, False),
        (SocketState.TIME_WAIT, False, False, False),
        (SocketState.CLOSED, False, False, True),
    ],
)
def test_connection_state(state, can_send, can_receive, is_closed):
    tcb = TCB(CLIENT, SERVER, state=state)
    handshake = FourWayHandshake(tcb)
    assert handshake.can_send_data() is can_send
    assert handshake.can_receive_data() is can_receive
    assert handshake.is_connection_closed() is is_closed


def test_close_with_retransmission():
    clock = FakeClock()
    tcb = TCB(
        CLIENT,
        SERVER,
        state=SocketState.ESTABLISHED,
        send_next=1000,
        recv_next=2000,
        retransmission_queue=RetransmissionQueue(clock),
        retransmission_timeout=0.010,
    )
    fin = FourWayHandshake(tcb).close()

    assert len(tcb.retransmission_queue) == 1
    assert tcb.state == SocketState.FIN_WAIT_1

    clock.now += 0.015
    entries = DataTransfer(tcb).check_retransmissions()

    assert len(entries) == 1
    assert fin.sequence_number == 1000
    assert fin.has_flag(Flag.FIN)


def test_fin_ack_clears_retransmission_queue_entry_on_remove():
    tcb = TCB(CLIENT, SERVER, state=SocketState.ESTABLISHED, send_next=1000)
    FourWayHandshake(tcb).close()
    tcb.retransmission_queue.remove(1000)
    assert len(tcb.retransmission_queue) == 1
    tcb.retransmission_queue.remove(1001)
    assert len(tcb.retransmission_queue) == 0