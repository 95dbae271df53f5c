"""nREPL client operations.

Composes the session manager and a transport into the operations an
editor needs: evaluate code, load files, complete and look up symbols,
fetch stacktraces and run tests.

Usage:
    client = create_client("127.0.0.1", 7888)
    responses = await client.evaluate("(+ 1 2)")
    print(EvalSummary.from_responses(responses).values)   # ["3"]

    # Testing
    transport = create_mock_transport()
    transport.set_response("complete", [...])
    client = NreplClient(transport)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .connection import ConnectionInfo, ConnectionState, HostNotifier
from .protocol.messages import Request
from .protocol.responses import Response
from .sessions import SessionManager
from .transport import MockTransport, Transport, create_mock_transport, create_socket_transport

logger = logging.getLogger(__name__)


@dataclass
class NreplClient:
    """Operation façade over an nREPL transport.

    Evaluation always runs in a freshly cloned child of the given session
    (or of a new root session), never in the given session itself.
    """

    _transport: Transport

    @property
    def transport(self) -> Transport:
        """Access the underlying transport."""
        return self._transport

    @property
    def sessions(self) -> SessionManager:
        """Session lifecycle operations."""
        return SessionManager(_transport=self._transport)

    async def evaluate(self, code: str, session: str | None = None) -> list[Response]:
        """Evaluate code in a new child session.

        Args:
            code: Source to evaluate
            session: Parent session to clone from

        Returns:
            Every response of the eval, ending with the "done" response
        """
        eval_session = await self.sessions.clone(session)
        logger.debug(f"Evaluating in cloned session {eval_session}")
        return await self._transport.send(Request.eval(code, eval_session))

    async def evaluate_file(
        self, contents: str, file_path: str | None = None, session: str | None = None
    ) -> list[Response]:
        """Load a whole file's contents in a new child session.

        Args:
            contents: Source text of the file
            file_path: Path reported to the remote for error locations
            session: Parent session to clone from
        """
        eval_session = await self.sessions.clone(session)
        return await self._transport.send(Request.load_file(contents, eval_session, file_path))

    async def complete(self, symbol: str, ns: str | None = None) -> Response:
        """Complete a symbol prefix. The ``completions`` field holds candidates."""
        responses = await self._transport.send(Request.complete(symbol, ns))
        return responses[0]

    async def info(
        self, symbol: str, ns: str | None = None, session: str | None = None
    ) -> Response:
        """Look up documentation and location of a symbol."""
        responses = await self._transport.send(Request.info(symbol, ns, session))
        return responses[0]

    async def stacktrace(self, session: str) -> list[Response]:
        """Fetch the stacktrace of the last error in a session."""
        return await self._transport.send(Request.stacktrace(session))

    async def run_tests(self, namespace: str | None = None) -> list[Response]:
        """Run the tests of one namespace, or of all loaded namespaces."""
        return await self._transport.send(Request.run_tests(namespace))

    async def clone(self, session: str | None = None) -> str:
        return await self.sessions.clone(session)

    async def close(self, session: str | None = None) -> list[Response]:
        return await self.sessions.close(session)

    async def list_sessions(self) -> list[str]:
        return await self.sessions.list_sessions()

    async def check_connection(self, connection: ConnectionInfo) -> None:
        """Verify that ``connection`` answers as an nREPL server."""
        await self.sessions.check_connection(connection)


# Factory functions


def create_client(
    host: str | None = None,
    port: int | None = None,
    notifier: HostNotifier | None = None,
    timeout: float | None = None,
) -> NreplClient:
    """Create a client that opens a socket per request.

    With a port, that endpoint becomes the current connection. Without
    one, the current connection comes from NREPL_HOST / NREPL_PORT.

    Args:
        host: Server host (default: 127.0.0.1)
        port: Server port
        notifier: Receives connection-refused reports
        timeout: Seconds to wait for each request (default: no limit)

    Returns:
        NreplClient with SocketTransport
    """
    if port is not None:
        state = ConnectionState(ConnectionInfo(host=host or "127.0.0.1", port=port))
    else:
        state = ConnectionState.from_env()
    transport = create_socket_transport(state, notifier=notifier, timeout=timeout)
    return NreplClient(_transport=transport)


def create_test_client(transport: MockTransport | None = None) -> NreplClient:
    """Create a client for testing.

    Args:
        transport: Pre-configured mock transport (creates new if None)

    Returns:
        NreplClient with MockTransport
    """
    return NreplClient(_transport=transport or create_mock_transport())
