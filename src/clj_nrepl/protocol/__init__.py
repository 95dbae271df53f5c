"""Protocol layer: bencode codec, requests and responses."""

from .bencode import decode, decode_first, decode_objects, encode
from .messages import Op, Request
from .responses import DONE, EvalSummary, Response, StackFrame, is_complete

__all__ = [
    # Codec
    "encode",
    "decode",
    "decode_first",
    "decode_objects",
    # Requests
    "Op",
    "Request",
    # Responses
    "DONE",
    "Response",
    "StackFrame",
    "EvalSummary",
    "is_complete",
]
