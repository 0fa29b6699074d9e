import asyncio
import base64
import json

import pytest

from scratchlink_peripheral.config import SessionConfig
from scratchlink_peripheral.jsonrpc import JsonRpcChannel
from scratchlink_peripheral.microbit import create_microbit
from scratchlink_peripheral.peripheral import Connection


def b64_to_bytes(s: str) -> bytes:
    return base64.b64decode(s) if s else b""


def last_json(sent):
    assert sent, "No messages were sent"
    return json.loads(sent[-1])


def all_json(sent):
    return [json.loads(m) for m in sent]


class FakeWebSocket:
    # Minimal test double for a websockets connection.
    # - Accepts a list of incoming JSON-serializable messages (dicts) or raw strings.
    # - Captures all outgoing messages via `send`.
    # - Supports `async for` iteration and exposes `close_code`.
    def __init__(self, incoming=None, close_code=1005):
        self._incoming = list(incoming or [])
        for i, m in enumerate(self._incoming):
            if isinstance(m, dict):
                self._incoming[i] = json.dumps(m)
        self.sent = []
        self.close_code = close_code
        self._idx = 0

    async def send(self, payload: str):
        assert isinstance(payload, str), "send() must be called with a JSON string"
        self.sent.append(payload)

    def __aiter__(self):
        self._idx = 0
        return self

    async def __anext__(self):
        if self._idx >= len(self._incoming):
            raise StopAsyncIteration
        item = self._incoming[self._idx]
        self._idx += 1
        await asyncio.sleep(0)
        return item


@pytest.fixture
def config():
    return SessionConfig(send_interval=0.01)


@pytest.fixture
def microbit(config):
    return create_microbit(config)


@pytest.fixture
def ws():
    return FakeWebSocket()


@pytest.fixture
def connection(ws):
    return Connection(JsonRpcChannel(ws))
