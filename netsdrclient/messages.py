"""NetSDR message framing and sample unpacking.

Every message starts with a 16-bit little-endian header: the low 13 bits hold
the total message length (header included) and the top 3 bits the message
type. Control messages follow the header with a 16-bit control item code,
data messages with a 16-bit sequence number.

A data item message of exactly 8194 bytes cannot be described by 13 bits, so
it is sent with a length field of 0.
"""

import struct
from typing import Iterator, Optional

import numpy as np

from .common import (
    MAX_DATA_ITEM_MESSAGE_LENGTH,
    MAX_MESSAGE_LENGTH,
    MSG_CONTROL_ITEM_LENGTH,
    MSG_HEADER_LENGTH,
    MSG_SEQUENCE_LENGTH,
)
from .errors import InvalidSampleSize, MessageTooLarge
from .models import ControlItemCode, DecodedMessage, MessageType

_TYPE_SHIFT  = 13
_LENGTH_MASK = (1 << _TYPE_SHIFT) - 1


def encode_message(kind: MessageType,
                   item_code: ControlItemCode = ControlItemCode.NONE,
                   body: bytes = b"") -> bytes:
    """Frame ``body`` as a NetSDR message of type ``kind``.

    Raises MessageTooLarge when the result would not fit the length field.
    """
    kind = MessageType(kind)
    prefix = b""
    if item_code != ControlItemCode.NONE:
        prefix = struct.pack("<H", int(item_code))

    body = bytes(body)
    payload_length = len(prefix) + len(body)
    return _header(kind, payload_length) + prefix + body


def control_item_message(kind: MessageType, item_code: ControlItemCode,
                         parameters: bytes) -> bytes:
    return encode_message(kind, item_code, parameters)


def data_item_message(kind: MessageType, body: bytes,
                      sequence_number: Optional[int] = None) -> bytes:
    """Frame a data item message, optionally prefixing a 16-bit sequence number."""
    if sequence_number is not None:
        body = struct.pack("<H", sequence_number & 0xFFFF) + bytes(body)
    return encode_message(kind, ControlItemCode.NONE, body)


def _header(kind: MessageType, payload_length: int) -> bytes:
    length_with_header = payload_length + MSG_HEADER_LENGTH

    if kind.is_data and length_with_header == MAX_DATA_ITEM_MESSAGE_LENGTH:
        length_with_header = 0

    if payload_length < 0 or length_with_header > MAX_MESSAGE_LENGTH:
        raise MessageTooLarge(
            f"{kind.name} message of {payload_length + MSG_HEADER_LENGTH} bytes "
            f"exceeds the {MAX_MESSAGE_LENGTH}-byte limit"
        )

    return struct.pack("<H", length_with_header | (int(kind) << _TYPE_SHIFT))


def _split_header(header: int) -> tuple[MessageType, int]:
    kind = MessageType(header >> _TYPE_SHIFT)
    length = header & _LENGTH_MASK
    if kind.is_data and length == 0:
        length = MAX_DATA_ITEM_MESSAGE_LENGTH
    return kind, length


def message_length(header: bytes) -> int:
    """Total frame length (header included) declared by a 2-byte header."""
    _, length = _split_header(struct.unpack_from("<H", header, 0)[0])
    return length


def _read_u16(data: bytes, offset: int) -> tuple[int, bool]:
    # Short input reads the missing bytes as zero.
    chunk = data[offset:offset + 2]
    return int.from_bytes(chunk, "little"), len(chunk) == 2


def decode_message(data: bytes) -> DecodedMessage:
    """Parse a NetSDR message without raising.

    The result always carries a best-effort parse. ``ok`` is cleared when the
    control item code is unknown, the input is truncated, or the body length
    does not match the header.
    """
    data = bytes(data)
    header, ok = _read_u16(data, 0)
    kind, length = _split_header(header)
    offset = MSG_HEADER_LENGTH
    remaining = length - MSG_HEADER_LENGTH

    item_code = ControlItemCode.NONE
    sequence_number = 0

    if not kind.is_data:
        value, complete = _read_u16(data, offset)
        offset += MSG_CONTROL_ITEM_LENGTH
        remaining -= MSG_CONTROL_ITEM_LENGTH
        ok = ok and complete
        try:
            item_code = ControlItemCode(value)
        except ValueError:
            ok = False
    else:
        sequence_number, complete = _read_u16(data, offset)
        offset += MSG_SEQUENCE_LENGTH
        remaining -= MSG_SEQUENCE_LENGTH
        ok = ok and complete

    body = data[offset:]
    ok = ok and len(body) == remaining

    return DecodedMessage(
        kind=kind,
        item_code=item_code,
        sequence_number=sequence_number,
        body=body,
        ok=ok,
    )


def extract_samples(sample_size_bits: int, body: bytes) -> Iterator[int]:
    """Return an iterator over the packed little-endian samples in ``body``.

    Each sample occupies ``sample_size_bits // 8`` bytes and is zero-extended
    to a signed 32-bit value. A trailing partial sample is ignored.
    """
    width = sample_size_bits // 8
    if width > 4:
        raise InvalidSampleSize("Sample size must be 32 bits or less")
    if width < 1:
        raise InvalidSampleSize("Sample size must be at least 8 bits")
    return _iter_samples(width, memoryview(body).toreadonly())


def _iter_samples(width: int, view: memoryview) -> Iterator[int]:
    count = len(view) // width
    if count == 0:
        return

    raw = np.frombuffer(view, dtype=np.uint8, count=count * width).reshape(count, width)
    padded = np.zeros((count, 4), dtype=np.uint8)
    padded[:, :width] = raw
    for value in padded.view("<i4").ravel():
        yield int(value)
