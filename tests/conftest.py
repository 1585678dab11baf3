from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest
from websockets.exceptions import ConnectionClosedOK
from websockets.frames import Close

from node import ws_client
from node.auth import issue_token

SECRET_HEX = "00112233445566778899aabbccddeeff00112233445566778899aabbccddeeff"

# Sentinel for a recv() that never completes
HANG = object()


def notification(result: Any, subscription: str = "0xsub") -> str:
    return json.dumps({
        "jsonrpc": "2.0",
        "method": "eth_subscription",
        "params": {"subscription": subscription, "result": result},
    })


def reply(result: Any, req_id: int = 1) -> str:
    return json.dumps({"jsonrpc": "2.0", "id": req_id, "result": result})


class FakeWebSocket:
    """Scripted connection: recv() pops from `incoming`, then closes cleanly."""

    def __init__(self, incoming, subprotocol: str | None = "jsonrpc"):
        self.incoming = list(incoming)
        self.sent: list[str] = []
        self.subprotocol = subprotocol
        self.closed = False

    async def send(self, message: str):
        self.sent.append(message)

    async def recv(self):
        if self.closed or not self.incoming:
            raise ConnectionClosedOK(Close(1000, "bye"), Close(1000, "bye"), rcvd_then_sent=True)
        item = self.incoming.pop(0)
        if item is HANG:
            await asyncio.Event().wait()
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self):
        self.closed = True


@pytest.fixture
def credential():
    return issue_token(SECRET_HEX)


@pytest.fixture
def fake_ws(monkeypatch):
    """Install a FakeWebSocket as the result of websockets.connect."""
    def install(incoming, subprotocol: str | None = "jsonrpc") -> FakeWebSocket:
        fake = FakeWebSocket(incoming, subprotocol)
        fake.connect_calls = []

        async def fake_connect(url, **kwargs):
            fake.connect_calls.append((url, kwargs))
            return fake

        monkeypatch.setattr(ws_client.websockets, "connect", fake_connect)
        return fake

    return install
