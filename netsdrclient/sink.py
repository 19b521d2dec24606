"""Destinations for decoded IQ samples."""

import queue
import threading
from pathlib import Path
from typing import Iterable, Optional

import numpy as np

from .common import log


class SampleFileSink:
    """Append samples to a raw binary file as little-endian int16."""

    def __init__(self, path="samples.bin"):
        self.path = Path(path)
        self._lock = threading.Lock()
        self.sample_count = 0

    def write(self, samples: Iterable[int]):
        block = np.fromiter(samples, dtype=np.int32).astype("<i2")
        if block.size == 0:
            return
        with self._lock:
            with open(self.path, "ab") as fh:
                fh.write(block.tobytes())
            self.sample_count += int(block.size)


class SampleQueueSink:
    """
    Deliver sample blocks to a bounded queue for downstream processing.
    Blocks are dropped (and counted) when the consumer falls behind.
    """

    def __init__(self, maxsize: int = 500):
        self.out_q = queue.Queue(maxsize=maxsize)
        self.drop_count = 0

    def write(self, samples: Iterable[int]):
        block = np.fromiter(samples, dtype=np.int32)
        try:
            self.out_q.put_nowait(block)
        except queue.Full:
            self.drop_count += 1
            log.warning(f"Sample queue full, dropping block "
                        f"(total drops: {self.drop_count})")

    def get(self, timeout: float = 1.0) -> Optional[np.ndarray]:
        """Block until a sample block arrives or timeout. Returns None on timeout."""
        try:
            return self.out_q.get(timeout=timeout)
        except queue.Empty:
            return None
