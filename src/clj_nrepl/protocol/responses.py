"""Response types for the nREPL protocol.

Responses are decoded bencode mappings whose keys depend on the op. The
wrapper freezes the raw mapping (nested mappings become read-only
proxies, lists become tuples) and exposes typed accessors that
check each field's shape, so a missing or unexpected value reads as None
rather than failing the whole response stream.
"""

from __future__ import annotations

from collections.abc import Iterable, KeysView, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, Field

# Status value marking the last response for a request
DONE = "done"


def _str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    return value if isinstance(value, int) else None


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [item for item in value if isinstance(item, str)]


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _thaw(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_thaw(item) for item in value]
    return value


class StackFrame(BaseModel):
    """One frame of a ``stacktrace`` response."""

    flags: list[str] = Field(default_factory=list)
    class_name: str | None = None
    method: str | None = None
    file: str | None = None
    line: int | None = None

    @classmethod
    def from_wire(cls, frame: Mapping[str, Any]) -> StackFrame:
        return cls(
            flags=_str_list(frame.get("flags")),
            class_name=_str(frame.get("class")),
            method=_str(frame.get("method")),
            file=_str(frame.get("file")),
            line=_int(frame.get("line")),
        )


@dataclass(frozen=True)
class Response:
    """A single decoded response mapping.

    Supports ``response["key"]``, ``"key" in response`` and ``get()`` for
    fields without a typed accessor.
    """

    data: Mapping[str, Any]

    @classmethod
    def from_wire(cls, obj: Mapping[str, Any]) -> Response:
        """Wrap a decoded mapping, freezing it and every nested value."""
        return cls(_freeze(obj))

    def to_dict(self) -> dict[str, Any]:
        """Mutable deep copy of the response, with lists for sequences."""
        return _thaw(self.data)

    def __getitem__(self, key: str) -> Any:
        return self.data[key]

    def __contains__(self, key: object) -> bool:
        return key in self.data

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def keys(self) -> KeysView[str]:
        return self.data.keys()

    # Common fields

    @property
    def id(self) -> str | None:
        return _str(self.data.get("id"))

    @property
    def session(self) -> str | None:
        return _str(self.data.get("session"))

    @property
    def status(self) -> list[str]:
        return _str_list(self.data.get("status"))

    @property
    def is_done(self) -> bool:
        """True if this response carries the completion marker."""
        return DONE in self.status

    # Session ops

    @property
    def new_session(self) -> str | None:
        return _str(self.data.get("new-session"))

    @property
    def sessions(self) -> list[str] | None:
        value = self.data.get("sessions")
        return _str_list(value) if isinstance(value, (list, tuple)) else None

    # Evaluation

    @property
    def value(self) -> str | None:
        return _str(self.data.get("value"))

    @property
    def out(self) -> str | None:
        return _str(self.data.get("out"))

    @property
    def err(self) -> str | None:
        return _str(self.data.get("err"))

    @property
    def ns(self) -> str | None:
        return _str(self.data.get("ns"))

    @property
    def ex(self) -> str | None:
        return _str(self.data.get("ex"))

    @property
    def root_ex(self) -> str | None:
        return _str(self.data.get("root-ex"))

    # Lookup ops (info, complete)

    @property
    def name(self) -> str | None:
        return _str(self.data.get("name"))

    @property
    def doc(self) -> str | None:
        return _str(self.data.get("doc"))

    @property
    def file(self) -> str | None:
        return _str(self.data.get("file"))

    @property
    def line(self) -> int | None:
        return _int(self.data.get("line"))

    @property
    def column(self) -> int | None:
        return _int(self.data.get("column"))

    @property
    def class_name(self) -> str | None:
        return _str(self.data.get("class"))

    @property
    def special_form(self) -> Any:
        return self.data.get("special-form")

    @property
    def message(self) -> str | None:
        return _str(self.data.get("message"))

    @property
    def completions(self) -> list[Any]:
        value = self.data.get("completions")
        return list(value) if isinstance(value, (list, tuple)) else []

    @property
    def stacktrace(self) -> list[StackFrame]:
        frames = self.data.get("stacktrace")
        if not isinstance(frames, (list, tuple)):
            return []
        return [StackFrame.from_wire(f) for f in frames if isinstance(f, Mapping)]


def is_complete(responses: Sequence[Response]) -> bool:
    """True if the last response in the stream carries the completion marker."""
    return bool(responses) and responses[-1].is_done


class EvalSummary(BaseModel):
    """Collected output of an eval or load-file response stream."""

    values: list[str] = Field(default_factory=list)
    out: str = ""
    err: str = ""
    ns: str | None = None
    ex: str | None = None
    root_ex: str | None = None
    status: list[str] = Field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.ex is not None or "eval-error" in self.status

    @classmethod
    def from_responses(cls, responses: Iterable[Response]) -> EvalSummary:
        """Join output streams and collect values in arrival order."""
        summary = cls()
        out_parts: list[str] = []
        err_parts: list[str] = []
        for response in responses:
            if response.value is not None:
                summary.values.append(response.value)
            if response.out is not None:
                out_parts.append(response.out)
            if response.err is not None:
                err_parts.append(response.err)
            if response.ns is not None:
                summary.ns = response.ns
            if response.ex is not None:
                summary.ex = response.ex
            if response.root_ex is not None:
                summary.root_ex = response.root_ex
            for status in response.status:
                if status not in summary.status:
                    summary.status.append(status)
        summary.out = "".join(out_parts)
        summary.err = "".join(err_parts)
        return summary
