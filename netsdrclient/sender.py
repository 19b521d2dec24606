"""Timed UDP sender producing synthetic NetSDR data packets."""

import socket
import threading
from typing import Optional

import numpy as np

from .common import NETSDR_UDP_PORT, log
from .errors import SenderAlreadyRunning
from .messages import data_item_message
from .models import MessageType

SAMPLE_BLOCK_SIZE = 1024


class UDPTimedSender:
    """
    Sends a DATA_ITEM_0 packet of random sample bytes to ``(host, port)``
    every interval. Each packet carries the next 16-bit sequence number.
    """

    def __init__(self, host: str = "127.0.0.1", port: int = NETSDR_UDP_PORT,
                 udp_socket: Optional[socket.socket] = None,
                 block_size: int = SAMPLE_BLOCK_SIZE, seed: Optional[int] = None):
        self.host       = host
        self.port       = port
        self.block_size = block_size
        self.sample_sequence_counter = 0
        self.sent_count = 0
        self._sock      = udp_socket or socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self._rng       = np.random.default_rng(seed)
        self._stop_evt  = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def build_message(self) -> bytes:
        self.sample_sequence_counter = (self.sample_sequence_counter + 1) & 0xFFFF
        samples = self._rng.integers(0, 256, size=self.block_size, dtype=np.uint8).tobytes()
        return data_item_message(MessageType.DATA_ITEM_0, samples,
                                 sequence_number=self.sample_sequence_counter)

    def send_once(self):
        try:
            msg = self.build_message()
            self._sock.sendto(msg, (self.host, self.port))
            self.sent_count += 1
            log.debug(f"Message sent to {self.host}:{self.port}")
        except OSError as e:
            log.error(f"Error sending message: {e}")

    def start_sending(self, interval_ms: int):
        if self._thread is not None:
            raise SenderAlreadyRunning("Sender is already running.")

        self._stop_evt.clear()
        self._thread = threading.Thread(target=self._send_loop, args=(interval_ms / 1000.0,),
                                        name="netsdr-sender", daemon=True)
        self._thread.start()
        log.info(f"Sending to {self.host}:{self.port} every {interval_ms} ms")

    def stop_sending(self):
        self._stop_evt.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1.0)

    def close(self):
        self.stop_sending()
        self._sock.close()

    def _send_loop(self, interval: float):
        # First packet goes out immediately, then one per interval.
        while not self._stop_evt.is_set():
            self.send_once()
            self._stop_evt.wait(interval)
