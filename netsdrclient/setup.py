"""Receiver configuration commands sent on connect and on stream start/stop."""

import struct
from dataclasses import dataclass

from .messages import control_item_message
from .models import ControlItemCode, MessageType

RECEIVER_STATE_IDLE = 0x01
RECEIVER_STATE_RUN  = 0x02

IQ_DATA_MODE_COMPLEX       = 0x80
CAPTURE_MODE_16BIT_FIFO    = 0x01
CAPTURE_MODE_24BIT_CONTIG  = 0x80


@dataclass
class ReceiverSetup:
    """
    Device parameters for a NetSDR session.
    Sequence on connect: IQ output sample rate -> RF filter -> A/D modes.
    """
    sample_rate:   int   = 100000
    rf_filter:     int   = 0                          # 0 = automatic
    ad_modes:      bytes = bytes([0x00, 0x03])        # dither on, A/D gain 1.5
    iq_data_mode:  int   = IQ_DATA_MODE_COMPLEX
    capture_mode:  int   = CAPTURE_MODE_16BIT_FIFO
    fifo_samples:  int   = 1

    @property
    def sample_size_bits(self) -> int:
        return 24 if self.capture_mode & 0x80 else 16

    def connect_commands(self) -> list[bytes]:
        sample_rate = struct.pack("<Q", self.sample_rate)[:5]
        rf_filter = struct.pack("<H", self.rf_filter)
        return [
            control_item_message(MessageType.SET_CONTROL_ITEM,
                                 ControlItemCode.IQ_OUTPUT_DATA_SAMPLE_RATE, sample_rate),
            control_item_message(MessageType.SET_CONTROL_ITEM,
                                 ControlItemCode.RF_FILTER, rf_filter),
            control_item_message(MessageType.SET_CONTROL_ITEM,
                                 ControlItemCode.AD_MODES, bytes(self.ad_modes)),
        ]

    def start_command(self) -> bytes:
        args = bytes([self.iq_data_mode, RECEIVER_STATE_RUN,
                      self.capture_mode, self.fifo_samples])
        return control_item_message(MessageType.SET_CONTROL_ITEM,
                                    ControlItemCode.RECEIVER_STATE, args)

    def stop_command(self) -> bytes:
        args = bytes([0x00, RECEIVER_STATE_IDLE, 0x00, 0x00])
        return control_item_message(MessageType.SET_CONTROL_ITEM,
                                    ControlItemCode.RECEIVER_STATE, args)


def frequency_command(frequency_hz: int, channel: int) -> bytes:
    """Build a RECEIVER_FREQUENCY set command: channel byte + 40-bit LE frequency."""
    args = bytes([channel & 0xFF]) + struct.pack("<Q", frequency_hz & 0xFFFFFFFFFFFFFFFF)[:5]
    return control_item_message(MessageType.SET_CONTROL_ITEM,
                                ControlItemCode.RECEIVER_FREQUENCY, args)
