"""
Node WebSocket Client.
Opens one authenticated JSON-RPC connection, performs the eth_subscribe
handshake and then streams notification payloads until the connection ends.
No auto-reconnect: a closed connection ends the client's lifecycle.
"""

from __future__ import annotations
import asyncio
from typing import TYPE_CHECKING, AsyncIterator, Optional
import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK, WebSocketException
import logging

from node.auth import Credential
from node.errors import ConnectError, DecodeError, RpcError, StreamError
from node.models import ConnectionState, Payload, RawMessage, RpcRequest, RpcResponse

if TYPE_CHECKING:
    from config import SubscriberConfig

logger = logging.getLogger(__name__)

PENDING_TX_STREAM = "newPendingTransactions"


class NodeWSClient:
    """
    Single-connection JSON-RPC client.
    The connection is owned by call() during the handshake and by
    notifications() afterwards, never both at once.
    """

    def __init__(
        self,
        url: str,
        credential: Credential,
        subprotocol: str = "jsonrpc",
        connect_timeout: float = 10.0,
        handshake_timeout: float = 15.0,
        message_timeout: float = 0.0,
    ):
        self.url = url
        self.credential = credential
        self.subprotocol = subprotocol
        self.connect_timeout = connect_timeout
        self.handshake_timeout = handshake_timeout
        self.message_timeout = message_timeout

        self._ws = None
        self._in_flight = False
        self.state = ConnectionState.DISCONNECTED
        self.subscription_id: Optional[str] = None
        self.received = 0
        self._ping_interval = 20  # seconds

    @classmethod
    def from_config(cls, config: "SubscriberConfig", credential: Credential) -> "NodeWSClient":
        return cls(
            url=config.node.ws_url,
            credential=credential,
            subprotocol=config.stream.subprotocol,
            connect_timeout=config.stream.connect_timeout,
            handshake_timeout=config.stream.handshake_timeout,
            message_timeout=config.stream.message_timeout,
        )

    # ==================== Connection ====================

    async def connect(self):
        """Open the connection, presenting the bearer token."""
        if self.state is not ConnectionState.DISCONNECTED:
            raise StreamError(f"Cannot connect from state {self.state.value}")

        logger.info(f"[WS] 🔌 Connecting to WebSocket URL: {self.url}")
        try:
            self._ws = await websockets.connect(
                self.url,
                additional_headers={"Authorization": self.credential.bearer},
                subprotocols=[self.subprotocol],
                open_timeout=self.connect_timeout or None,
                ping_interval=self._ping_interval,
                ping_timeout=10,
                close_timeout=5,
            )
        except (WebSocketException, OSError, asyncio.TimeoutError) as e:
            self.state = ConnectionState.CLOSED
            raise ConnectError(f"Failed to connect to {self.url}: {e}") from e

        self.state = ConnectionState.CONNECTED
        negotiated = getattr(self._ws, "subprotocol", None)
        if negotiated != self.subprotocol:
            logger.warning(
                f"[WS] Server did not select sub-protocol '{self.subprotocol}' "
                f"(got {negotiated!r}). Continuing."
            )
        logger.info("[WS] ✅ Connected to node WebSocket.")

    async def close(self):
        if self._ws is not None and self.state is not ConnectionState.CLOSED:
            await self._ws.close()
        self.state = ConnectionState.CLOSED

    # ==================== Request / Response ====================

    async def call(self, request: RpcRequest) -> RpcResponse:
        """Send one request and read exactly one reply."""
        if self.state not in (ConnectionState.CONNECTED, ConnectionState.SUBSCRIBED):
            raise StreamError(f"Cannot send {request.method} in state {self.state.value}")
        if self._in_flight:
            raise StreamError(f"Request already in flight; refusing {request.method}")

        self._in_flight = True
        try:
            body = request.to_json()
            logger.info(f"[WS] 👉 Sending {request.method}: {body}")
            try:
                await self._ws.send(body)
                raw = await self._recv(self.handshake_timeout)
            except (ConnectionClosed, OSError, asyncio.TimeoutError) as e:
                raise StreamError(f"No reply to {request.method}: {e!r}") from e
        finally:
            self._in_flight = False

        logger.info(f"[WS] 👈 Received {request.method} reply: {_preview(raw)}")
        return RpcResponse.from_json(raw)

    async def get_sync_status(self) -> RpcResponse:
        """One-shot eth_syncing diagnostic over the WebSocket."""
        response = await self.call(RpcRequest(method="eth_syncing", params=[]))
        _raise_for_error(response)
        return response

    async def subscribe(self, stream: str = PENDING_TX_STREAM) -> Optional[str]:
        """
        Issue eth_subscribe and read the ack.
        An error reply is fatal; a missing subscription id is only logged.
        """
        response = await self.call(RpcRequest(method="eth_subscribe", params=[stream]))
        _raise_for_error(response)

        self.subscription_id = response.subscription_id or None
        if self.subscription_id is None:
            logger.warning(f"[WS] Subscribe ack for '{stream}' carried no subscription id")
        else:
            logger.info(f"[WS] Subscribed to '{stream}'. Subscription ID: {self.subscription_id}")
        self.state = ConnectionState.SUBSCRIBED
        return self.subscription_id

    # ==================== Notification Stream ====================

    def notifications(self) -> AsyncIterator[Payload]:
        """
        Lazy, non-restartable sequence of notification payloads.
        Ends on a clean close; raises StreamError on any other read failure.
        """
        if self.state not in (ConnectionState.CONNECTED, ConnectionState.SUBSCRIBED):
            raise StreamError(f"Notification stream unavailable in state {self.state.value}")
        self.state = ConnectionState.STREAMING
        return self._listen()

    async def _listen(self) -> AsyncIterator[Payload]:
        logger.info("[WS] 🔔 Listening to websocket...")
        try:
            while True:
                try:
                    raw = await self._recv(self.message_timeout)
                except ConnectionClosedOK as e:
                    logger.info(f"[WS] Connection closed: {e}")
                    return
                except (ConnectionClosed, OSError, asyncio.TimeoutError) as e:
                    logger.error(f"[WS] Error reading message: {e!r}")
                    raise StreamError(f"Notification stream failed: {e!r}") from e

                logger.debug(f"[WS] Raw message received: {_preview(raw)}")
                try:
                    response = RpcResponse.from_json(raw)
                    payload = response.notification_payload()
                except DecodeError as e:
                    logger.warning(f"[WS] Error decoding message: {e}")
                    continue

                sub = response.params.subscription
                if self.subscription_id and sub and sub != self.subscription_id:
                    logger.warning(
                        f"[WS] Notification for unexpected subscription {sub} "
                        f"(expected {self.subscription_id})"
                    )

                self.received += 1
                yield payload
        finally:
            logger.info(f"[WS] Stream ended after {self.received} notifications")
            await self.close()

    async def _recv(self, timeout: float) -> RawMessage:
        if timeout:
            return await asyncio.wait_for(self._ws.recv(), timeout=timeout)
        return await self._ws.recv()


def _raise_for_error(response: RpcResponse):
    if response.error is not None:
        err = response.error
        logger.error(f"[WS] Node returned error: code={err.code}, msg={err.message}")
        raise RpcError(err.code, err.message, err.data)


def _preview(raw: RawMessage, limit: int = 500) -> str:
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    return text if len(text) <= limit else f"{text[:limit]}..."
