"""Error types raised by the nREPL client.

Socket-level failures (``ConnectionRefusedError`` and other ``OSError``
subclasses) are not wrapped; they propagate unchanged from the transport.
"""

from __future__ import annotations


class NreplError(Exception):
    """Base class for nREPL client errors."""

    pass


class NoConnectionError(NreplError):
    """No connection descriptor was supplied and none is current."""

    pass


class NoSessionError(NreplError):
    """A clone response did not carry a new-session id."""

    pass


class NoSessionsError(NreplError):
    """An ls-sessions response was missing or malformed."""

    pass


class EncodeError(NreplError, TypeError):
    """A request contained a value bencode cannot represent."""

    pass


class DecodeError(NreplError, ValueError):
    """The remote sent bytes that are not valid bencode."""

    def __init__(self, message: str, offset: int | None = None) -> None:
        super().__init__(message)
        self.offset = offset


class RequestTimeoutError(NreplError, TimeoutError):
    """A request did not complete within the configured timeout."""

    def __init__(self, op: str, timeout: float) -> None:
        super().__init__(f"nREPL op '{op}' did not complete within {timeout}s")
        self.op = op
        self.timeout = timeout
