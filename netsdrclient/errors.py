"""Exceptions raised by the NetSDR client."""


class NetSdrError(Exception):
    """Base class for NetSDR client errors."""


class MessageTooLarge(NetSdrError, ValueError):
    """Encoded message would not fit the 13-bit length field."""


class InvalidSampleSize(NetSdrError, ValueError):
    """Requested sample width is outside 8..32 bits."""


class ControlRequestTimeout(NetSdrError, TimeoutError):
    """No reply arrived for a control request in time."""


class ControlRequestPending(NetSdrError, RuntimeError):
    """A control request was issued while another one awaits its reply."""


class SenderAlreadyRunning(NetSdrError, RuntimeError):
    """Periodic sending was started while already running."""


class NotConnectedError(NetSdrError, OSError):
    """Control transport has no open connection."""
