"""Request/response correlation over nREPL sockets.

Every request gets its own TCP connection. The encoded request is written
once, then incoming bytes are fed to a ResponseCollector until a response
carrying ``status: ["done"]`` arrives, at which point the socket is closed
and the collected responses are returned in arrival order.

Architecture:
- Transport is the PROTOCOL every transport implements (``send``)
- SocketTransport talks to a real remote over asyncio streams
- MockTransport answers from canned responses, for tests and embedding
- ResponseCollector is the per-request decode state shared by both
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from .connection import ConnectionInfo, ConnectionResolver, HostNotifier, LoggingNotifier
from .errors import DecodeError, NoConnectionError, RequestTimeoutError
from .protocol.bencode import decode_first, encode
from .protocol.messages import Request
from .protocol.responses import DONE, Response

logger = logging.getLogger(__name__)

REFUSED_MESSAGE = "Connection refused."


@dataclass
class TransportConfig:
    """Configuration for socket transports."""

    # Seconds to wait for the completion marker; None waits indefinitely
    timeout: float | None = None

    # Max bytes per socket read
    read_size: int = 65536


@runtime_checkable
class Transport(Protocol):
    """Protocol for nREPL transports.

    The transport handles:
    - Resolving the endpoint (explicit argument, else the current connection)
    - Dropping absent (None) request keys and encoding the request
    - Decoding the response stream and detecting completion
    """

    async def send(
        self, request: Request, connection: ConnectionInfo | None = None
    ) -> list[Response]:
        """Send a request and return its responses up to and including "done".

        Raises:
            NoConnectionError: If no endpoint is available
            EncodeError: If the request holds an unencodable value
            OSError: On socket failure
        """
        ...


class ResponseCollector:
    """Decode state for one in-flight request.

    Holds the undecoded remainder and the responses seen so far. Values
    are decoded one at a time; once a response with the completion marker
    is collected the collector is done, and whatever follows it is
    dropped without being validated.
    """

    def __init__(self) -> None:
        self._buffer = b""
        self._responses: list[Response] = []
        self._done = False
        self.dropped = 0

    @property
    def done(self) -> bool:
        return self._done

    @property
    def responses(self) -> list[Response]:
        return list(self._responses)

    @property
    def pending_bytes(self) -> int:
        """Size of the undecoded remainder."""
        return len(self._buffer)

    def feed(self, data: bytes) -> bool:
        """Add received bytes and collect any complete responses.

        Returns:
            True once the completion marker has been collected

        Raises:
            DecodeError: If the stream is not valid bencode or holds a
                non-mapping top-level value before completion
        """
        if self._done:
            return True

        self._buffer += data
        while not self._done:
            decoded = decode_first(self._buffer)
            if decoded is None:
                break
            obj, self._buffer = decoded
            if not isinstance(obj, Mapping):
                raise DecodeError(f"Expected a response mapping, got {type(obj).__name__}")
            response = Response.from_wire(obj)
            self._responses.append(response)
            self._done = response.is_done

        if self._done and self._buffer:
            self._discard_trailing()
        return self._done

    def _discard_trailing(self) -> None:
        # Count whole values after completion for the log; stop at junk
        while self._buffer:
            try:
                decoded = decode_first(self._buffer)
            except DecodeError:
                break
            if decoded is None:
                break
            self.dropped += 1
            self._buffer = decoded[1]
        logger.debug(
            f"Dropped {self.dropped} response(s) and {len(self._buffer)} byte(s) "
            "received after completion"
        )
        self._buffer = b""


class SocketTransport:
    """Transport over one asyncio TCP connection per request."""

    def __init__(
        self,
        resolver: ConnectionResolver,
        notifier: HostNotifier | None = None,
        config: TransportConfig | None = None,
    ):
        self.config = config or TransportConfig()
        self._resolver = resolver
        self._notifier = notifier or LoggingNotifier()

    @property
    def resolver(self) -> ConnectionResolver:
        return self._resolver

    async def send(
        self, request: Request, connection: ConnectionInfo | None = None
    ) -> list[Response]:
        """Send a request on a fresh socket and collect its responses."""
        target = connection or self._resolver.current()
        if target is None:
            raise NoConnectionError("No connection found.")

        payload = encode(request.to_wire())
        logger.debug(f"nREPL: sending op {request.op} to {target}")

        exchange = self._exchange(request, target, payload)
        if self.config.timeout is None:
            return await exchange
        try:
            return await asyncio.wait_for(exchange, timeout=self.config.timeout)
        except TimeoutError:
            logger.warning(f"nREPL op {request.op} to {target} timed out")
            raise RequestTimeoutError(request.op, self.config.timeout) from None

    async def _exchange(
        self, request: Request, target: ConnectionInfo, payload: bytes
    ) -> list[Response]:
        try:
            reader, writer = await asyncio.open_connection(target.host, target.port)
        except ConnectionRefusedError:
            self._on_refused(target)
            raise
        except OSError as e:
            logger.warning(f"nREPL connection to {target} failed: {e}")
            raise

        collector = ResponseCollector()
        try:
            writer.write(payload)
            await writer.drain()

            while not collector.done:
                data = await reader.read(self.config.read_size)
                if not data:
                    raise ConnectionError(
                        f"Connection to {target} closed before op {request.op} completed"
                    )
                collector.feed(data)
        except OSError as e:
            logger.warning(f"nREPL op {request.op} to {target} failed: {e}")
            raise
        finally:
            writer.close()
            with contextlib.suppress(OSError):
                await writer.wait_closed()

        responses = collector.responses
        logger.debug(f"nREPL: op {request.op} completed with {len(responses)} response(s)")
        return responses

    def _on_refused(self, target: ConnectionInfo) -> None:
        logger.warning(f"nREPL connection to {target} refused")
        self._notifier.notify_error(REFUSED_MESSAGE)
        self._resolver.disconnect()


# Handler computing canned responses from the request
ResponseHandler = Callable[[Request], Sequence[Mapping[str, Any]]]


class MockTransport:
    """Mock transport for testing.

    Records requests (with absent keys already dropped) and answers from
    canned responses. Responses go through the real codec and collector,
    so completion filtering behaves as it does on a socket.

    Usage:
        transport = MockTransport()
        transport.set_response("clone", [{"new-session": "s1", "status": ["done"]}])

        client = NreplClient(transport)
        session = await client.clone()

        assert transport.recorded_requests[0].op == "clone"
    """

    def __init__(self) -> None:
        self._responses: dict[str, ResponseHandler] = {}
        self._errors: dict[str, Exception] = {}
        self._recorded_requests: list[Request] = []
        self._recorded_connections: list[ConnectionInfo | None] = []

    @property
    def recorded_requests(self) -> list[Request]:
        """Get all requests sent through this transport."""
        return self._recorded_requests.copy()

    @property
    def recorded_connections(self) -> list[ConnectionInfo | None]:
        """Explicit connection passed with each recorded request."""
        return self._recorded_connections.copy()

    def set_response(self, op: str, responses: Sequence[Mapping[str, Any]]) -> None:
        """Set canned responses for an op.

        Args:
            op: The op name (e.g., "clone")
            responses: Response mappings to return (one should carry "done")
        """
        canned = [dict(r) for r in responses]
        self._responses[op] = lambda request: canned

    def set_handler(self, op: str, handler: ResponseHandler) -> None:
        """Compute responses for an op from each request."""
        self._responses[op] = handler

    def set_error(self, op: str, error: Exception) -> None:
        """Make every request for an op raise ``error``."""
        self._errors[op] = error

    def clear(self) -> None:
        """Clear recorded requests, responses and errors."""
        self._recorded_requests.clear()
        self._recorded_connections.clear()
        self._responses.clear()
        self._errors.clear()

    async def send(
        self, request: Request, connection: ConnectionInfo | None = None
    ) -> list[Response]:
        wire = request.to_wire()
        encode(wire)
        recorded = Request.create(wire.pop("op"), wire)
        self._recorded_requests.append(recorded)
        self._recorded_connections.append(connection)

        if request.op in self._errors:
            raise self._errors[request.op]

        handler = self._responses.get(request.op)
        canned = handler(recorded) if handler else [{"status": [DONE]}]

        collector = ResponseCollector()
        collector.feed(b"".join(encode(dict(r)) for r in canned))
        if not collector.done:
            raise ConnectionError(f"Mock response for op {request.op} never completed")
        return collector.responses


# Factory functions


def create_socket_transport(
    resolver: ConnectionResolver,
    notifier: HostNotifier | None = None,
    timeout: float | None = None,
) -> SocketTransport:
    """Create a socket transport.

    Args:
        resolver: Source of the current connection
        notifier: Receives connection-refused reports (default: log them)
        timeout: Seconds to wait for each request to complete (default: no limit)

    Returns:
        SocketTransport opening one connection per request
    """
    return SocketTransport(resolver, notifier, TransportConfig(timeout=timeout))


def create_mock_transport() -> MockTransport:
    """Create a mock transport for testing.

    Returns:
        MockTransport for testing
    """
    return MockTransport()
