from __future__ import annotations

import json
from http import HTTPStatus

import pytest
import websockets

from node.errors import ConnectError
from node.models import ConnectionState
from node.ws_client import NodeWSClient


def _port(server) -> int:
    return server.sockets[0].getsockname()[1]


@pytest.mark.asyncio
async def test_full_session_against_local_node(credential):
    seen = {}

    async def handler(ws):
        seen["auth"] = ws.request.headers.get("Authorization")
        seen["subprotocol"] = ws.subprotocol
        seen["request"] = json.loads(await ws.recv())
        await ws.send(json.dumps({"jsonrpc": "2.0", "id": 1, "result": "0xabc"}))
        for tx_hash in ("0x01", "0x02", "0x03"):
            await ws.send(json.dumps({
                "jsonrpc": "2.0",
                "method": "eth_subscription",
                "params": {"subscription": "0xabc", "result": tx_hash},
            }))

    async with websockets.serve(handler, "127.0.0.1", 0, subprotocols=["jsonrpc"]) as server:
        client = NodeWSClient(f"ws://127.0.0.1:{_port(server)}/", credential)
        await client.connect()
        sub_id = await client.subscribe("newPendingTransactions")
        payloads = [p.value async for p in client.notifications()]

    assert seen["auth"] == f"Bearer {credential.token}"
    assert seen["subprotocol"] == "jsonrpc"
    assert seen["request"] == {
        "jsonrpc": "2.0",
        "id": 1,
        "method": "eth_subscribe",
        "params": ["newPendingTransactions"],
    }
    assert sub_id == "0xabc"
    assert payloads == ["0x01", "0x02", "0x03"]
    assert client.state is ConnectionState.CLOSED


@pytest.mark.asyncio
async def test_rejected_token_raises_connect_error(credential):
    def process_request(connection, request):
        if request.headers.get("Authorization") != "Bearer expected":
            return connection.respond(HTTPStatus.UNAUTHORIZED, "invalid token\n")
        return None

    async def handler(ws):
        await ws.close()

    async with websockets.serve(handler, "127.0.0.1", 0, process_request=process_request) as server:
        client = NodeWSClient(f"ws://127.0.0.1:{_port(server)}/", credential)
        with pytest.raises(ConnectError):
            await client.connect()


@pytest.mark.asyncio
async def test_unreachable_node_raises_connect_error(credential):
    async with websockets.serve(lambda ws: ws.close(), "127.0.0.1", 0) as server:
        port = _port(server)

    client = NodeWSClient(f"ws://127.0.0.1:{port}/", credential, connect_timeout=2)
    with pytest.raises(ConnectError):
        await client.connect()
