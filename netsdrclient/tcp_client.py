"""NetSDR TCP control channel."""

import socket
import threading
from typing import Callable, Optional

from .common import MSG_HEADER_LENGTH, NETSDR_TCP_PORT, TCP_RECV_SIZE, _hex, log
from .errors import NotConnectedError
from .messages import message_length


class NetSdrTCPClient:
    """
    Manages the NetSDR TCP command/control connection.
    Writes encoded messages and delivers each received message frame
    to the registered callback from a background listener thread.
    """

    def __init__(self, host: str = "127.0.0.1", port: int = NETSDR_TCP_PORT,
                 connect_timeout: float = 5.0, recv_timeout: float = 0.5):
        self.host            = host
        self.port            = int(port)
        self.connect_timeout = float(connect_timeout)
        self.recv_timeout    = float(recv_timeout)
        self._sock: Optional[socket.socket] = None
        self._sock_lock   = threading.Lock()
        self._stop_evt    = threading.Event()
        self._listener: Optional[threading.Thread] = None
        self._message_cb: Optional[Callable[[bytes], None]] = None
        self._closed_cb: Optional[Callable[[], None]] = None

    @property
    def connected(self) -> bool:
        return self._sock is not None and not self._stop_evt.is_set()

    def set_message_callback(self, cb: Callable[[bytes], None]):
        """Register callback receiving one protocol message per call."""
        self._message_cb = cb

    def set_closed_callback(self, cb: Callable[[], None]):
        """Register callback run when the receiver drops the connection."""
        self._closed_cb = cb

    def connect(self):
        """Open the socket and start the listener thread. Raises OSError on failure."""
        if self.connected:
            log.info(f"Already connected to {self.host}:{self.port}")
            return

        log.info(f"Connecting to {self.host}:{self.port}")
        s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        s.settimeout(self.connect_timeout)
        try:
            s.connect((self.host, self.port))
        except OSError as e:
            s.close()
            log.error(f"Connect error to {self.host}:{self.port}: {e}")
            raise
        s.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        s.settimeout(self.recv_timeout)

        with self._sock_lock:
            self._sock = s
        self._stop_evt.clear()
        self._listener = threading.Thread(target=self._recv_loop, args=(s,),
                                          name="netsdr-tcp", daemon=True)
        self._listener.start()
        log.info("TCP connected")

    def disconnect(self):
        """Stop the listener and close the socket."""
        self._stop_evt.set()
        with self._sock_lock:
            sock, self._sock = self._sock, None
        if sock is None:
            log.debug("No active connection to disconnect")
            return

        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        sock.close()

        if (self._listener and self._listener.is_alive()
                and self._listener is not threading.current_thread()):
            self._listener.join(timeout=1.0)
        log.info("Disconnected")

    def send(self, data: bytes):
        with self._sock_lock:
            sock = self._sock
        if sock is None or self._stop_evt.is_set():
            raise NotConnectedError(f"Not connected to {self.host}:{self.port}")
        log.debug(f"TX: {_hex(data)}")
        sock.sendall(data)

    def _recv_loop(self, sock: socket.socket):
        buf = b""
        try:
            while not self._stop_evt.is_set():
                try:
                    chunk = sock.recv(TCP_RECV_SIZE)
                except socket.timeout:
                    continue
                if not chunk:
                    if not self._stop_evt.is_set():
                        log.warning("TCP connection closed by receiver")
                    break
                buf += chunk
                frames, buf = split_frames(buf)
                for frame in frames:
                    self._deliver(frame)
        except OSError as e:
            if not self._stop_evt.is_set():
                log.error(f"TCP recv error: {e}")
        finally:
            if buf and not self._stop_evt.is_set():
                log.debug(f"Discarding {len(buf)} bytes of partial message")
            if self._mark_closed(sock) and not self._stop_evt.is_set():
                self._notify_closed()

    def _mark_closed(self, sock: socket.socket) -> bool:
        with self._sock_lock:
            if self._sock is not sock:
                return False
            self._sock = None
        sock.close()
        return True

    def _notify_closed(self):
        if self._closed_cb is None:
            return
        try:
            self._closed_cb()
        except Exception as e:
            log.error(f"TCP closed handler error: {e}")

    def _deliver(self, frame: bytes):
        log.debug(f"RX: {_hex(frame)}")
        if self._message_cb is None:
            return
        try:
            self._message_cb(frame)
        except Exception as e:
            log.error(f"TCP message handler error: {e}")


def split_frames(buf: bytes) -> tuple[list[bytes], bytes]:
    """Split a byte stream into complete protocol messages.

    Returns the complete frames and the unconsumed remainder. A header that
    declares less than its own size cannot be framed, so everything buffered
    is handed out as one frame and left to the decoder to reject.
    """
    frames = []
    while len(buf) >= MSG_HEADER_LENGTH:
        length = message_length(buf[:MSG_HEADER_LENGTH])
        if length < MSG_HEADER_LENGTH:
            frames.append(buf)
            return frames, b""
        if len(buf) < length:
            break
        frames.append(buf[:length])
        buf = buf[length:]
    return frames, buf
