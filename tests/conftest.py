"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
import socket
from collections.abc import AsyncIterator, Callable
from typing import Any

import pytest
import pytest_asyncio

from clj_nrepl.connection import ConnectionInfo
from clj_nrepl.protocol.bencode import decode_objects, encode

# Computes the byte chunks written back for one decoded request
ReplyHandler = Callable[[dict[str, Any]], list[bytes]]


def reply(*objects: dict[str, Any]) -> list[bytes]:
    """Encode response mappings as one chunk each."""
    return [encode(obj) for obj in objects]


def done_reply(request: dict[str, Any]) -> list[bytes]:
    return reply({"status": ["done"]})


class FakeNreplServer:
    """In-process TCP server that plays the nREPL remote.

    Decodes requests with the real codec, records them, and writes back
    whatever chunks the handler returns, one write per chunk.
    """

    def __init__(self) -> None:
        self.requests: list[dict[str, Any]] = []
        self.connections = 0
        self.handler: ReplyHandler = done_reply
        self.close_after_reply = False
        self.port = 0
        self._server: asyncio.Server | None = None

    @property
    def connection(self) -> ConnectionInfo:
        return ConnectionInfo(host="127.0.0.1", port=self.port)

    async def start(self) -> None:
        self._server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        self.port = self._server.sockets[0].getsockname()[1]

    async def stop(self) -> None:
        if self._server:
            self._server.close()
            await self._server.wait_closed()

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.connections += 1
        buffer = b""
        try:
            while True:
                data = await reader.read(4096)
                if not data:
                    break
                objects, buffer = decode_objects(buffer + data)
                for request in objects:
                    self.requests.append(request)
                    for chunk in self.handler(request):
                        writer.write(chunk)
                        await writer.drain()
                        await asyncio.sleep(0.001)
                    if self.close_after_reply:
                        return
        except ConnectionError:
            pass
        finally:
            writer.close()


@pytest_asyncio.fixture
async def nrepl_server() -> AsyncIterator[FakeNreplServer]:
    server = FakeNreplServer()
    await server.start()
    try:
        yield server
    finally:
        await server.stop()


@pytest.fixture
def refused_connection() -> ConnectionInfo:
    """An endpoint on a port nothing listens on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    return ConnectionInfo(host="127.0.0.1", port=port)
