"""Shared fixtures and fakes for the reporter tests."""

import asyncio
import socket
from typing import List, Optional

import pytest
import pytest_asyncio

from shared.models import ConnectionSnapshot, MonitorConfig


class FakeStatsServer:
    """Loopback stats endpoint.

    Records each query command. With response=None it accepts the
    connection and never answers; with hold_open it answers but keeps
    the connection open until the client closes it.
    """

    def __init__(self, response: Optional[bytes] = None, hold_open: bool = False):
        self.response = response
        self.hold_open = hold_open
        self.commands: List[bytes] = []
        self.client_closed = asyncio.Event()
        self._server: Optional[asyncio.Server] = None

    @property
    def port(self) -> int:
        return self._server.sockets[0].getsockname()[1]

    async def start(self):
        self._server = await asyncio.start_server(self._handle_client, "127.0.0.1", 0)

    async def stop(self):
        if self._server:
            self._server.close()
            await self._server.wait_closed()

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        try:
            service = await reader.readline()
            method = await reader.readline()
            self.commands.append(service + method)

            if self.response is not None:
                writer.write(self.response)
                await writer.drain()
                if self.hold_open:
                    await reader.read()
            else:
                # Hold the connection open until the client gives up
                await reader.read()
        except (ConnectionResetError, BrokenPipeError):
            pass
        finally:
            self.client_closed.set()
            writer.close()


@pytest_asyncio.fixture
async def stats_server_factory():
    servers: List[FakeStatsServer] = []

    async def factory(response: Optional[bytes] = None, hold_open: bool = False) -> FakeStatsServer:
        server = FakeStatsServer(response, hold_open)
        await server.start()
        servers.append(server)
        return server

    yield factory

    for server in servers:
        await server.stop()


@pytest.fixture
def unused_port() -> int:
    """A loopback port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def monitor_config() -> MonitorConfig:
    return MonitorConfig(
        bot_token="123456:TEST-TOKEN",
        chat_id="-1001234",
        interval=0.05,
        api_endpoint="127.0.0.1:10085",
    )


@pytest.fixture
def snapshot() -> ConnectionSnapshot:
    return ConnectionSnapshot(
        active_connections=12,
        upload_bytes=1536,
        download_bytes=3 * 1024 * 1024,
        total_bytes=1536 + 3 * 1024 * 1024,
    )
