"""High-level NetSDR client orchestration."""

import threading
from typing import Optional

from .common import DEFAULT_RESPONSE_TIMEOUT, NETSDR_TCP_PORT, NETSDR_UDP_PORT, _hex, log
from .errors import ControlRequestPending, ControlRequestTimeout
from .messages import decode_message, encode_message, extract_samples
from .models import ConnectionState, ControlItemCode, MessageType, StreamingState
from .setup import ReceiverSetup, frequency_command
from .sink import SampleQueueSink
from .tcp_client import NetSdrTCPClient
from .udp_client import NetSdrUDPReceiver


class _PendingResponse:
    def __init__(self):
        self.event    = threading.Event()
        self.response: Optional[bytes] = None


class NetSdrClient:
    """
    High-level interface: connect to the receiver, configure it, start and
    stop the IQ stream and deliver decoded samples to a sink.

    Only one control request may await its reply at a time.
    """

    def __init__(self, tcp=None, udp=None, setup: Optional[ReceiverSetup] = None,
                 sample_sink=None, response_timeout: float = DEFAULT_RESPONSE_TIMEOUT):
        self._tcp  = tcp if tcp is not None else NetSdrTCPClient(port=NETSDR_TCP_PORT)
        self._udp  = udp if udp is not None else NetSdrUDPReceiver(listen_port=NETSDR_UDP_PORT)
        self.setup = setup or ReceiverSetup()
        self.sample_sink      = sample_sink if sample_sink is not None else SampleQueueSink()
        self.response_timeout = response_timeout

        self.connection_state = ConnectionState.DISCONNECTED
        self.streaming_state  = StreamingState.STOPPED

        self._lock    = threading.Lock()
        self._pending: Optional[_PendingResponse] = None

        self.malformed_count = 0
        self.missed_count    = 0
        self._last_seq: Optional[int] = None

        self._tcp.set_message_callback(self._on_control_message)
        self._tcp.set_closed_callback(self._on_control_closed)
        self._udp.set_datagram_callback(self._on_datagram)

    @property
    def connected(self) -> bool:
        return self.connection_state is ConnectionState.CONNECTED and self._tcp.connected

    @property
    def streaming(self) -> bool:
        return self.streaming_state is StreamingState.STARTED

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.disconnect()

    def connect(self):
        if self.connected:
            return

        try:
            self._tcp.connect()
        except OSError as e:
            log.error(f"Connection failed: {e}")
            self.connection_state = ConnectionState.DISCONNECTED
            return
        if not self._tcp.connected:
            log.error("Connection failed: transport reports no connection")
            self.connection_state = ConnectionState.DISCONNECTED
            return

        self.connection_state = ConnectionState.CONNECTED
        log.info("Connected, sending receiver setup")

        for msg in self.setup.connect_commands():
            self.send_raw_request(msg)

    def disconnect(self):
        self._tcp.disconnect()
        self._connection_lost()

    def _connection_lost(self):
        self.connection_state = ConnectionState.DISCONNECTED
        self.streaming_state  = StreamingState.STOPPED
        self._udp.stop_receiving()
        with self._lock:
            pending, self._pending = self._pending, None
        if pending is not None:
            # Waiter returns None, same as a request made while disconnected.
            pending.event.set()

    def send_control_request(self, kind: MessageType, item_code: ControlItemCode,
                             body: bytes, timeout: Optional[float] = None) -> Optional[bytes]:
        """
        Send a control message and wait for its reply.
        Returns the raw reply bytes, or None when there is no connection.
        Raises ControlRequestTimeout if no reply arrives within ``timeout``.
        """
        return self.send_raw_request(encode_message(kind, item_code, body), timeout)

    def send_raw_request(self, msg: bytes, timeout: Optional[float] = None) -> Optional[bytes]:
        if not self.connected:
            log.info("No active connection.")
            return None

        with self._lock:
            if self._pending is not None:
                raise ControlRequestPending("Another control request is awaiting its reply")
            pending = _PendingResponse()
            self._pending = pending

        try:
            try:
                self._tcp.send(msg)
            except OSError as e:
                log.error(f"Control send failed: {e}")
                self._connection_lost()
                return None

            wait_for = self.response_timeout if timeout is None else timeout
            if not pending.event.wait(timeout=wait_for):
                raise ControlRequestTimeout(f"No reply within {wait_for:.1f}s to: {_hex(msg)}")
            return pending.response
        finally:
            with self._lock:
                if self._pending is pending:
                    self._pending = None

    def start_streaming(self):
        if not self.connected:
            log.info("No active connection.")
            return

        self.send_raw_request(self.setup.start_command())
        if not self.connected:
            return

        self._last_seq = None
        self.streaming_state = StreamingState.STARTED
        self._udp.start_receiving()
        log.info("IQ stream started")

    def stop_streaming(self):
        if not self.connected:
            log.info("No active connection.")
            return

        self.send_raw_request(self.setup.stop_command())
        self.streaming_state = StreamingState.STOPPED
        self._udp.stop_receiving()
        log.info("IQ stream stopped")

    def change_frequency(self, frequency_hz: int, channel: int):
        if not self.connected:
            log.info("No active connection.")
            return

        resp = self.send_raw_request(frequency_command(frequency_hz, channel))
        if resp is not None:
            self._log_response("Frequency change", resp)

    def _log_response(self, what: str, resp: bytes):
        reply = decode_message(resp)
        if reply.ok:
            log.debug(f"{what} reply: {reply.kind.name} {reply.item_code.name} {_hex(reply.body)}")
        else:
            log.warning(f"{what} reply not understood: {_hex(resp)}")

    def _on_control_message(self, data: bytes):
        with self._lock:
            pending, self._pending = self._pending, None
        if pending is None:
            log.info(f"Unsolicited control message: {_hex(data)}")
            return
        log.debug(f"Response received: {_hex(data)}")
        pending.response = data
        pending.event.set()

    def _on_control_closed(self):
        log.warning("Receiver closed the control connection")
        self._connection_lost()

    def _on_datagram(self, data: bytes):
        msg = decode_message(data)
        if not msg.ok:
            self.malformed_count += 1
            log.warning(f"Dropping malformed data packet ({len(data)} bytes, "
                        f"total dropped: {self.malformed_count})")
            return

        if self._last_seq is not None:
            expected = (self._last_seq + 1) & 0xFFFF
            if msg.sequence_number != expected:
                missed = (msg.sequence_number - expected) & 0xFFFF
                self.missed_count += missed
                log.warning(f"Sequence gap: expected {expected}, got {msg.sequence_number} "
                            f"({missed} packets missed)")
        self._last_seq = msg.sequence_number

        samples = extract_samples(self.setup.sample_size_bits, msg.body)
        self.sample_sink.write(samples)
