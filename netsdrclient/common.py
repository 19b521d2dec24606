"""Shared constants and logging for the NetSDR client."""

import logging

logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(message)s')
log = logging.getLogger(__name__)

NETSDR_TCP_PORT = 50000         # TCP command/control port

NETSDR_UDP_PORT = 60000         # UDP port the receiver streams IQ packets to

MSG_HEADER_LENGTH       = 2
MSG_CONTROL_ITEM_LENGTH = 2
MSG_SEQUENCE_LENGTH     = 2

MAX_MESSAGE_LENGTH           = 8191   # 13-bit length field
MAX_DATA_ITEM_MESSAGE_LENGTH = 8194   # encoded with a length field of 0

TCP_RECV_SIZE = 8194
UDP_RECV_SIZE = 65536

DEFAULT_RESPONSE_TIMEOUT = 5.0


def _hex(data: bytes) -> str:
    return " ".join(f"{b:02x}" for b in data)
