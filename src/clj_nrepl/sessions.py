"""Session lifecycle: clone, close, list.

Sessions are opaque string tokens issued by the remote. The client never
owns session state; it only passes tokens back on later requests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .connection import ConnectionInfo
from .errors import NoSessionError, NoSessionsError
from .protocol.messages import Request
from .protocol.responses import Response
from .transport import Transport

logger = logging.getLogger(__name__)


@dataclass
class SessionManager:
    """Session operations via transport."""

    _transport: Transport

    async def clone(self, session: str | None = None) -> str:
        """Clone a session and return the new session id.

        Args:
            session: Parent session; a fresh root session is created if omitted

        Raises:
            NoSessionError: If no response carries a new-session id
        """
        responses = await self._transport.send(Request.clone(session))
        for response in responses:
            if response.new_session:
                logger.debug(f"Cloned session {response.new_session} from {session or 'root'}")
                return response.new_session
        raise NoSessionError("No session found")

    async def close(self, session: str | None = None) -> list[Response]:
        """Close a session. Best effort; the responses are not validated."""
        return await self._transport.send(Request.close(session))

    async def list_sessions(self) -> list[str]:
        """List the ids of all sessions open on the remote.

        Raises:
            NoSessionsError: If the first response is not done or has no sessions
        """
        responses = await self._transport.send(Request.ls_sessions())
        first = responses[0] if responses else None
        if first is not None and first.is_done and first.sessions is not None:
            return first.sessions
        raise NoSessionsError("No sessions found")

    async def check_connection(self, connection: ConnectionInfo) -> None:
        """Verify that an endpoint speaks nREPL by cloning a probe session.

        The probe session is closed afterwards; failure to close is logged
        and ignored.

        Raises:
            NoSessionError: If the first clone response has no new-session id
        """
        responses = await self._transport.send(Request.clone(), connection)
        probe = responses[0].new_session if responses else None
        if not probe:
            raise NoSessionError(f"{connection} did not answer clone with a session")

        try:
            await self._transport.send(Request.close(probe), connection)
        except Exception as e:
            logger.warning(f"Failed to close probe session {probe}: {e}")
