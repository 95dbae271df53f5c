"""Connection descriptors and the current-connection resolver.

The transport never reads global state. It asks an injected
``ConnectionResolver`` for the current endpoint and tells it to
disconnect when the endpoint refuses connections. ``ConnectionState`` is
the default in-memory implementation; hosts with their own notion of the
active REPL provide their own resolver.
"""

from __future__ import annotations

import logging
import os
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"

# Environment variables read by ConnectionState.from_env()
HOST_ENV = "NREPL_HOST"
PORT_ENV = "NREPL_PORT"


class ConnectionInfo(BaseModel):
    """Host and port of an nREPL endpoint."""

    host: str = DEFAULT_HOST
    port: int = Field(ge=1, le=65535)

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@runtime_checkable
class ConnectionResolver(Protocol):
    """Supplies the current endpoint for requests without an explicit one."""

    def current(self) -> ConnectionInfo | None:
        """Return the current endpoint, or None if disconnected."""
        ...

    def disconnect(self) -> None:
        """Forget the current endpoint."""
        ...


@runtime_checkable
class HostNotifier(Protocol):
    """Receives user-facing reports of unrecoverable connection errors."""

    def notify_error(self, message: str) -> None: ...


class LoggingNotifier:
    """Notifier that reports through the module logger."""

    def notify_error(self, message: str) -> None:
        logger.error(message)


class ConnectionState:
    """In-memory current connection shared by every request of a client."""

    def __init__(self, connection: ConnectionInfo | None = None) -> None:
        self._connection = connection

    @classmethod
    def from_env(cls) -> ConnectionState:
        """Build state from NREPL_HOST / NREPL_PORT.

        An unset or empty NREPL_PORT gives a disconnected state.

        Raises:
            ValueError: If NREPL_PORT is not a valid port number
        """
        port = os.getenv(PORT_ENV)
        if not port:
            return cls()
        host = os.getenv(HOST_ENV) or DEFAULT_HOST
        return cls(ConnectionInfo(host=host, port=int(port)))

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    def current(self) -> ConnectionInfo | None:
        return self._connection

    def connect(self, connection: ConnectionInfo) -> None:
        """Make ``connection`` the current endpoint."""
        self._connection = connection
        logger.info(f"nREPL connection set to {connection}")

    def disconnect(self) -> None:
        if self._connection is not None:
            logger.info(f"nREPL connection {self._connection} cleared")
        self._connection = None
