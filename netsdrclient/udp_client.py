"""NetSDR UDP data channel receiver."""

import socket
import threading
from typing import Callable, Optional

from .common import NETSDR_UDP_PORT, UDP_RECV_SIZE, log


class NetSdrUDPReceiver:
    """
    Receives UDP datagrams from the receiver and hands each raw datagram to
    the registered callback. Decoding happens in the callback's owner.
    """

    def __init__(self, listen_port: int = NETSDR_UDP_PORT, host: str = "",
                 poll_interval: float = 0.25):
        self.listen_port   = listen_port
        self.host          = host
        self.poll_interval = poll_interval
        self.packet_count  = 0
        self._sock: Optional[socket.socket] = None
        self._stop_evt     = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._datagram_cb: Optional[Callable[[bytes], None]] = None

    @property
    def receiving(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_evt.is_set()

    @property
    def bound_port(self) -> Optional[int]:
        sock = self._sock
        if sock is None:
            return None
        try:
            return int(sock.getsockname()[1])
        except OSError:
            return None

    def set_datagram_callback(self, cb: Callable[[bytes], None]):
        self._datagram_cb = cb

    def start_receiving(self):
        """Bind the socket and start the receive thread. Returns immediately."""
        if self.receiving:
            log.debug("UDP receiver already running")
            return

        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, 4 * 1024 * 1024)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self.listen_port))
            sock.settimeout(self.poll_interval)
        except OSError:
            sock.close()
            raise

        self._sock = sock
        self._stop_evt.clear()
        self._thread = threading.Thread(target=self._recv_loop, args=(sock,),
                                        name="netsdr-udp", daemon=True)
        self._thread.start()
        log.info(f"UDP receiver listening on UDP:{self.bound_port}")

    def stop_receiving(self):
        """Stop the receive thread and release the socket. Safe to call repeatedly."""
        self._stop_evt.set()
        sock, self._sock = self._sock, None
        if sock is not None:
            sock.close()

        thread, self._thread = self._thread, None
        if thread is not None and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=1.0)
        if sock is not None:
            log.info("UDP receiver stopped")

    def _recv_loop(self, sock: socket.socket):
        try:
            while not self._stop_evt.is_set():
                try:
                    data, _addr = sock.recvfrom(UDP_RECV_SIZE)
                except socket.timeout:
                    continue
                except OSError as e:
                    if not self._stop_evt.is_set():
                        log.error(f"UDP recv error: {e}")
                    break

                self.packet_count += 1
                if self._datagram_cb is None:
                    continue
                try:
                    self._datagram_cb(data)
                except Exception as e:
                    log.error(f"UDP datagram handler error: {e}")
        finally:
            sock.close()
