"""clj-nrepl - asyncio client for nREPL servers.

Sends bencoded requests over TCP, one connection per request, and
collects the response stream until the server reports "done".

- NreplClient: evaluate, load files, complete, info, stacktraces, tests
- SessionManager: clone, close and list sessions
- SocketTransport / MockTransport: the request/response correlator
"""

from .client import NreplClient, create_client, create_test_client
from .connection import (
    ConnectionInfo,
    ConnectionResolver,
    ConnectionState,
    HostNotifier,
    LoggingNotifier,
)
from .errors import (
    DecodeError,
    EncodeError,
    NoConnectionError,
    NoSessionError,
    NoSessionsError,
    NreplError,
    RequestTimeoutError,
)
from .protocol import (
    DONE,
    EvalSummary,
    Op,
    Request,
    Response,
    StackFrame,
    decode,
    decode_first,
    decode_objects,
    encode,
)
from .sessions import SessionManager
from .transport import (
    MockTransport,
    ResponseCollector,
    SocketTransport,
    Transport,
    TransportConfig,
    create_mock_transport,
    create_socket_transport,
)

__all__ = [
    # Client
    "NreplClient",
    "SessionManager",
    "create_client",
    "create_test_client",
    # Connection
    "ConnectionInfo",
    "ConnectionResolver",
    "ConnectionState",
    "HostNotifier",
    "LoggingNotifier",
    # Transport
    "Transport",
    "TransportConfig",
    "SocketTransport",
    "MockTransport",
    "ResponseCollector",
    "create_socket_transport",
    "create_mock_transport",
    # Protocol
    "Op",
    "Request",
    "Response",
    "StackFrame",
    "EvalSummary",
    "DONE",
    "encode",
    "decode",
    "decode_first",
    "decode_objects",
    # Errors
    "NreplError",
    "NoConnectionError",
    "NoSessionError",
    "NoSessionsError",
    "EncodeError",
    "DecodeError",
    "RequestTimeoutError",
]
