"""NetSDR receiver client package."""

from .common import (
    NETSDR_TCP_PORT,
    NETSDR_UDP_PORT,
    MAX_MESSAGE_LENGTH,
    MAX_DATA_ITEM_MESSAGE_LENGTH,
)
from .errors import (
    NetSdrError,
    MessageTooLarge,
    InvalidSampleSize,
    ControlRequestTimeout,
    ControlRequestPending,
    SenderAlreadyRunning,
    NotConnectedError,
)
from .models import (
    MessageType,
    ControlItemCode,
    ConnectionState,
    StreamingState,
    DecodedMessage,
)
from .messages import (
    encode_message,
    control_item_message,
    data_item_message,
    decode_message,
    message_length,
    extract_samples,
)
from .setup import ReceiverSetup, frequency_command
from .sink import SampleFileSink, SampleQueueSink
from .tcp_client import NetSdrTCPClient
from .udp_client import NetSdrUDPReceiver
from .sender import UDPTimedSender
from .client import NetSdrClient

__all__ = [
    "NETSDR_TCP_PORT",
    "NETSDR_UDP_PORT",
    "MAX_MESSAGE_LENGTH",
    "MAX_DATA_ITEM_MESSAGE_LENGTH",
    "NetSdrError",
    "MessageTooLarge",
    "InvalidSampleSize",
    "ControlRequestTimeout",
    "ControlRequestPending",
    "SenderAlreadyRunning",
    "NotConnectedError",
    "MessageType",
    "ControlItemCode",
    "ConnectionState",
    "StreamingState",
    "DecodedMessage",
    "encode_message",
    "control_item_message",
    "data_item_message",
    "decode_message",
    "message_length",
    "extract_samples",
    "ReceiverSetup",
    "frequency_command",
    "SampleFileSink",
    "SampleQueueSink",
    "NetSdrTCPClient",
    "NetSdrUDPReceiver",
    "UDPTimedSender",
    "NetSdrClient",
]
