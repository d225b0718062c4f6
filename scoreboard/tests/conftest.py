"""Shared fixtures: in-memory WebSocket doubles and wired-up services."""

import asyncio
import json
from types import SimpleNamespace

import pytest
from starlette.websockets import WebSocketState

from scoreboard.core.audit import AuditTrail
from scoreboard.core.broadcaster import Broadcaster
from scoreboard.core.protocol import ProtocolHandler
from scoreboard.core.registry import ConnectionRegistry
from scoreboard.core.state_store import StateStore
from scoreboard.models.client import ConnectionRecord


class FakeWebSocket:
    """Records frames sent by the server; can be told to fail or stall sends."""

    def __init__(self, fail_sends=False, send_delay=0):
        self.fail_sends = fail_sends
        self.send_delay = send_delay
        self.incoming = asyncio.Queue()
        self.client = SimpleNamespace(host="10.0.0.99", port=50000)
        self.sent = []
        self.close_code = None
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED

    async def accept(self):
        pass

    async def receive(self):
        return await self.incoming.get()

    def push_text(self, text):
        self.incoming.put_nowait({"type": "websocket.receive", "text": text})

    async def send_text(self, text):
        if self.send_delay:
            await asyncio.sleep(self.send_delay)
        if self.fail_sends:
            raise ConnectionResetError("peer went away")
        self.sent.append(json.loads(text))

    async def close(self, code=1000, reason=""):
        self.close_code = code
        self.application_state = WebSocketState.DISCONNECTED

    def types(self):
        return [message["type"] for message in self.sent]

    def of_type(self, event_type):
        return [message for message in self.sent if message["type"] == event_type]


class SilentConnection(ConnectionRecord):
    """A peer that never answers liveness probes."""

    async def probe(self):
        pass


@pytest.fixture
def store():
    return StateStore()


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def broadcaster(registry):
    return Broadcaster(registry)


@pytest.fixture
def audit_entries():
    return []


@pytest.fixture
def protocol(store, broadcaster, audit_entries):
    return ProtocolHandler(store, broadcaster, AuditTrail([audit_entries.append]))


@pytest.fixture
def make_connection(registry):
    """Factory creating a registered connection backed by a FakeWebSocket."""
    counter = iter(range(1, 1000))

    def _make(fail_sends=False, silent=False, register=True, send_delay=0, send_timeout=None):
        cls = SilentConnection if silent else ConnectionRecord
        connection = cls(FakeWebSocket(fail_sends=fail_sends, send_delay=send_delay),
                         origin=f"10.0.0.{next(counter)}", send_timeout=send_timeout)
        if register:
            registry.add(connection)
        return connection

    return _make


@pytest.fixture
def fake_socket():
    """Factory for unregistered FakeWebSocket instances."""
    return FakeWebSocket
