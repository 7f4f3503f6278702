"""
Exceptions raised by the SSDP discovery engine.
"""


class SSDPError(Exception):
    """Base class for all SSDP listener errors."""
    pass

class InvalidArgumentError(SSDPError, ValueError):
    """Raised synchronously when a listen request is malformed (e.g. empty service type)."""
    pass

class EncodingError(SSDPError):
    """Raised when a received datagram is not valid UTF-8 text."""
    pass

class SSDPNetworkError(SSDPError):
    """Base class for recoverable network failures.

    These are reported to the subscriber's error sink; the discovery loop
    backs off and keeps running.
    """
    pass

class SocketCreationError(SSDPNetworkError):
    """Raised when the UDP endpoint cannot be created or configured."""
    pass

class BindError(SSDPNetworkError):
    """Raised when the UDP endpoint cannot be bound to the SSDP port."""
    pass

class JoinGroupError(SSDPNetworkError):
    """Raised when joining the SSDP multicast group fails."""
    def __init__(self, message: str, group: str | None = None):
        super().__init__(message)
        self.group = group

class SendError(SSDPNetworkError):
    """Raised when an M-SEARCH request cannot be transmitted."""
    pass

class ReceiveError(SSDPNetworkError):
    """Raised when reading from the UDP endpoint fails for a reason other than a timeout."""
    pass
