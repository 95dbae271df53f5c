"""Request definitions for the nREPL protocol.

A request is a bencoded mapping with an ``op`` key naming the operation
and op-specific keys alongside it. The remote answers with one or more
response mappings; the last one carries ``status: ["done"]``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Op(str, Enum):
    """Operations sent by this client."""

    # Sessions
    CLONE = "clone"
    CLOSE = "close"
    LS_SESSIONS = "ls-sessions"

    # Evaluation
    EVAL = "eval"
    LOAD_FILE = "load-file"

    # Lookup
    COMPLETE = "complete"
    INFO = "info"
    STACKTRACE = "stacktrace"

    # Testing
    TEST = "test"
    TEST_ALL = "test-all"


class Request(BaseModel):
    """A request from client to remote.

    ``params`` may hold None values; those keys are absent on the wire.

    Example:
        Request.eval("(+ 1 2)", session="a1b2").to_wire()
        == {"op": "eval", "code": "(+ 1 2)", "session": "a1b2"}
    """

    op: str
    params: dict[str, Any] = Field(default_factory=dict)

    def get_param(self, key: str, default: Any = None) -> Any:
        """Get a parameter with optional default."""
        value = self.params.get(key)
        return default if value is None else value

    def to_wire(self) -> dict[str, Any]:
        """Build the mapping to encode, dropping keys whose value is None."""
        wire: dict[str, Any] = {"op": self.op}
        for key, value in self.params.items():
            if value is not None:
                wire[key] = value
        return wire

    @classmethod
    def create(cls, op: str | Op, params: dict[str, Any] | None = None) -> Request:
        """Factory method for creating requests."""
        return cls(op=op.value if isinstance(op, Op) else op, params=params or {})

    # Convenience factories for each op
    @classmethod
    def clone(cls, session: str | None = None) -> Request:
        """Create a clone request; with a session the clone is its child."""
        return cls.create(Op.CLONE, {"session": session})

    @classmethod
    def close(cls, session: str | None = None) -> Request:
        return cls.create(Op.CLOSE, {"session": session})

    @classmethod
    def ls_sessions(cls) -> Request:
        return cls.create(Op.LS_SESSIONS)

    @classmethod
    def eval(cls, code: str, session: str) -> Request:
        """Create an eval request for code in a session."""
        return cls.create(Op.EVAL, {"code": code, "session": session})

    @classmethod
    def load_file(cls, contents: str, session: str, file_path: str | None = None) -> Request:
        """Create a load-file request.

        Args:
            contents: Full source text of the file
            session: Session to load into
            file_path: Path reported to the remote for error locations
        """
        return cls.create(
            Op.LOAD_FILE,
            {"file": contents, "file-path": file_path, "session": session},
        )

    @classmethod
    def complete(cls, symbol: str, ns: str | None = None) -> Request:
        return cls.create(Op.COMPLETE, {"symbol": symbol, "ns": ns})

    @classmethod
    def info(cls, symbol: str, ns: str | None = None, session: str | None = None) -> Request:
        return cls.create(Op.INFO, {"symbol": symbol, "ns": ns, "session": session})

    @classmethod
    def stacktrace(cls, session: str) -> Request:
        return cls.create(Op.STACKTRACE, {"session": session})

    @classmethod
    def run_tests(cls, namespace: str | None = None) -> Request:
        """Create a test request.

        Runs one namespace with ``test`` when given, everything with
        ``test-all`` otherwise. Namespaces are always (re)loaded first.
        """
        op = Op.TEST if namespace else Op.TEST_ALL
        return cls.create(op, {"ns": namespace or None, "load?": 1})
