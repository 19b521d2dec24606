import socket
import threading
import time

import pytest

from netsdrclient import (
    ConnectionState,
    ControlItemCode,
    MessageType,
    NetSdrClient,
    NetSdrTCPClient,
    NetSdrUDPReceiver,
    NotConnectedError,
    SampleQueueSink,
    StreamingState,
    control_item_message,
    data_item_message,
    decode_message,
)
from netsdrclient.tcp_client import split_frames


def wait_for(predicate, timeout=2.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class EchoReceiver:
    """Loopback TCP server echoing every received chunk, like a receiver acknowledging commands."""

    def __init__(self):
        self.listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.listener.bind(("127.0.0.1", 0))
        self.listener.listen(1)
        self.port = self.listener.getsockname()[1]
        self.received = b""
        self.conn = None
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self):
        try:
            conn, _ = self.listener.accept()
        except OSError:
            return
        self.conn = conn
        with conn:
            while True:
                try:
                    chunk = conn.recv(4096)
                except OSError:
                    return
                if not chunk:
                    return
                self.received += chunk
                conn.sendall(chunk)

    def drop(self):
        self.conn.shutdown(socket.SHUT_RDWR)

    def close(self):
        self.listener.close()
        self._thread.join(timeout=1.0)


@pytest.fixture
def echo_receiver():
    server = EchoReceiver()
    yield server
    server.close()


def free_udp_port():
    probe = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        probe.bind(("127.0.0.1", 0))
        return probe.getsockname()[1]
    finally:
        probe.close()


def test_split_frames_on_message_boundaries():
    a = control_item_message(MessageType.SET_CONTROL_ITEM, ControlItemCode.RF_FILTER, b"\x00\x00")
    b = control_item_message(MessageType.SET_CONTROL_ITEM, ControlItemCode.AD_MODES, b"\x00\x03")

    frames, rest = split_frames(a + b + b[:3])

    assert frames == [a, b]
    assert rest == b[:3]


def test_split_frames_waits_for_full_header():
    frames, rest = split_frames(b"\x08")
    assert frames == []
    assert rest == b"\x08"


def test_split_frames_hands_out_unframeable_data():
    frames, rest = split_frames(b"\x01\x00\xaa\xbb")
    assert frames == [b"\x01\x00\xaa\xbb"]
    assert rest == b""


def test_tcp_round_trip(echo_receiver):
    tcp = NetSdrTCPClient("127.0.0.1", echo_receiver.port)
    frames = []
    tcp.set_message_callback(frames.append)
    tcp.connect()
    try:
        msg = control_item_message(MessageType.SET_CONTROL_ITEM,
                                   ControlItemCode.RF_FILTER, b"\x00\x00")
        tcp.send(msg + msg)
        assert wait_for(lambda: len(frames) == 2)
        assert frames == [msg, msg]
    finally:
        tcp.disconnect()
    assert not tcp.connected


def test_tcp_send_without_connection_raises():
    tcp = NetSdrTCPClient("127.0.0.1", 1)
    with pytest.raises(NotConnectedError):
        tcp.send(b"\x00\x00")


def test_tcp_disconnect_is_idempotent():
    tcp = NetSdrTCPClient("127.0.0.1", 1)
    tcp.disconnect()
    tcp.disconnect()
    assert not tcp.connected


def test_tcp_connect_refused_raises():
    port = free_udp_port()
    tcp = NetSdrTCPClient("127.0.0.1", port, connect_timeout=1.0)
    with pytest.raises(OSError):
        tcp.connect()
    assert not tcp.connected


def test_udp_receiver_delivers_datagrams():
    port = free_udp_port()
    receiver = NetSdrUDPReceiver(listen_port=port, host="127.0.0.1", poll_interval=0.05)
    received = []
    receiver.set_datagram_callback(received.append)
    receiver.start_receiving()
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sender:
            for i in range(1, 4):
                sender.sendto(bytes([i]), ("127.0.0.1", port))
        assert wait_for(lambda: len(received) == 3)
        assert sorted(received) == [b"\x01", b"\x02", b"\x03"]
        assert receiver.packet_count == 3
    finally:
        receiver.stop_receiving()
    assert not receiver.receiving
    assert receiver.bound_port is None


def test_udp_receiver_survives_handler_errors():
    port = free_udp_port()
    receiver = NetSdrUDPReceiver(listen_port=port, host="127.0.0.1", poll_interval=0.05)
    seen = []

    def handler(data):
        seen.append(data)
        if data == b"bad":
            raise ValueError("boom")

    receiver.set_datagram_callback(handler)
    receiver.start_receiving()
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sender:
            sender.sendto(b"bad", ("127.0.0.1", port))
            assert wait_for(lambda: len(seen) == 1)
            sender.sendto(b"good", ("127.0.0.1", port))
        assert wait_for(lambda: len(seen) == 2)
    finally:
        receiver.stop_receiving()


def test_udp_stop_is_idempotent_and_restartable():
    port = free_udp_port()
    receiver = NetSdrUDPReceiver(listen_port=port, host="127.0.0.1", poll_interval=0.05)
    receiver.stop_receiving()
    receiver.start_receiving()
    receiver.stop_receiving()
    receiver.stop_receiving()
    receiver.start_receiving()
    assert receiver.receiving
    receiver.stop_receiving()
    assert not receiver.receiving


def test_client_over_loopback_sockets(echo_receiver):
    udp_port = free_udp_port()
    sink = SampleQueueSink()
    client = NetSdrClient(
        tcp=NetSdrTCPClient("127.0.0.1", echo_receiver.port),
        udp=NetSdrUDPReceiver(listen_port=udp_port, host="127.0.0.1", poll_interval=0.05),
        sample_sink=sink,
        response_timeout=2.0,
    )
    with client:
        assert client.connected
        client.change_frequency(14250000, 1)
        client.start_streaming()
        assert client.streaming_state is StreamingState.STARTED

        packet = data_item_message(MessageType.DATA_ITEM_0, b"\x05\x00\x06\x00", sequence_number=1)
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sender:
            sender.sendto(packet, ("127.0.0.1", udp_port))
        block = sink.get(timeout=2.0)
        assert block is not None
        assert block.tolist() == [5, 6]

        client.stop_streaming()

    assert not client.connected
    frames, _ = split_frames(echo_receiver.received)
    assert [decode_message(f).item_code for f in frames] == [
        ControlItemCode.IQ_OUTPUT_DATA_SAMPLE_RATE,
        ControlItemCode.RF_FILTER,
        ControlItemCode.AD_MODES,
        ControlItemCode.RECEIVER_FREQUENCY,
        ControlItemCode.RECEIVER_STATE,
        ControlItemCode.RECEIVER_STATE,
    ]


def test_tcp_reports_receiver_close(echo_receiver):
    tcp = NetSdrTCPClient("127.0.0.1", echo_receiver.port)
    closed = threading.Event()
    tcp.set_closed_callback(closed.set)
    tcp.connect()
    tcp.send(b"\x02\x00")
    assert wait_for(lambda: echo_receiver.conn is not None and echo_receiver.received)

    echo_receiver.drop()

    assert closed.wait(timeout=2.0)
    assert not tcp.connected


def test_tcp_own_disconnect_is_not_reported(echo_receiver):
    tcp = NetSdrTCPClient("127.0.0.1", echo_receiver.port)
    closed = threading.Event()
    tcp.set_closed_callback(closed.set)
    tcp.connect()
    tcp.disconnect()
    assert not closed.wait(timeout=0.3)


def test_client_stops_stream_when_receiver_drops(echo_receiver):
    udp = NetSdrUDPReceiver(listen_port=free_udp_port(), host="127.0.0.1", poll_interval=0.05)
    client = NetSdrClient(
        tcp=NetSdrTCPClient("127.0.0.1", echo_receiver.port),
        udp=udp,
        sample_sink=SampleQueueSink(),
        response_timeout=2.0,
    )
    client.connect()
    client.start_streaming()
    assert udp.receiving

    echo_receiver.drop()

    assert wait_for(lambda: client.streaming_state is StreamingState.STOPPED)
    assert client.connection_state is ConnectionState.DISCONNECTED
    assert not udp.receiving
    client.disconnect()
