"""Data structures for NetSDR protocol messages and session state."""

from dataclasses import dataclass
from enum import Enum, IntEnum


class MessageType(IntEnum):
    SET_CONTROL_ITEM     = 0
    CURRENT_CONTROL_ITEM = 1
    CONTROL_ITEM_RANGE   = 2
    ACK                  = 3
    DATA_ITEM_0          = 4
    DATA_ITEM_1          = 5
    DATA_ITEM_2          = 6
    DATA_ITEM_3          = 7

    @property
    def is_data(self) -> bool:
        return self >= MessageType.DATA_ITEM_0


class ControlItemCode(IntEnum):
    NONE                       = 0
    IQ_OUTPUT_DATA_SAMPLE_RATE = 0x00B8
    RF_FILTER                  = 0x0044
    AD_MODES                   = 0x008A
    RECEIVER_STATE             = 0x0018
    RECEIVER_FREQUENCY         = 0x0020


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTED    = "connected"


class StreamingState(Enum):
    STOPPED = "stopped"
    STARTED = "started"


@dataclass
class DecodedMessage:
    """Best-effort parse of a NetSDR message.

    ``ok`` is False when the item code is unknown or the body length does not
    match the header; the other fields still hold whatever could be parsed.
    """
    kind:            MessageType
    item_code:       ControlItemCode   # NONE for data messages
    sequence_number: int               # 0 for control messages
    body:            bytes
    ok:              bool = True
