"""
Node HTTP JSON-RPC Client.
Used for the one-shot eth_syncing diagnostic when an RPC port is configured.
"""

from __future__ import annotations
import asyncio
from typing import Optional
import aiohttp
import logging

from node.auth import Credential
from node.errors import ConnectError, RpcError
from node.models import RpcRequest, RpcResponse

logger = logging.getLogger(__name__)


class NodeRpcClient:
    """Async JSON-RPC over HTTP POST, authenticated with the bearer token."""

    def __init__(self, rpc_url: str, credential: Credential, timeout: float = 15.0):
        self.rpc_url = rpc_url
        self.credential = credential
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout or None),
            )
        return self._session

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()

    def _headers(self):
        return {
            "Content-Type": "application/json",
            "Authorization": self.credential.bearer,
        }

    async def call(self, request: RpcRequest) -> RpcResponse:
        """POST one request and decode the reply."""
        session = await self._get_session()
        logger.info(f"[RPC] 🚀 {request.method} -> {self.rpc_url}")

        try:
            async with session.post(
                self.rpc_url, data=request.to_json(), headers=self._headers()
            ) as resp:
                body = await resp.read()
                if resp.status != 200:
                    raise ConnectError(
                        f"{request.method} failed with HTTP {resp.status}: "
                        f"{body[:200].decode('utf-8', errors='replace')}"
                    )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"[RPC] {request.method} Exception: {e!r}")
            raise ConnectError(f"{request.method} request to {self.rpc_url} failed: {e!r}") from e

        return RpcResponse.from_json(body)

    async def get_sync_status(self) -> RpcResponse:
        """eth_syncing with empty params."""
        response = await self.call(RpcRequest(method="eth_syncing", params=[]))
        if response.error is not None:
            err = response.error
            logger.error(f"[RPC] eth_syncing Error: code={err.code}, msg={err.message}")
            raise RpcError(err.code, err.message, err.data)
        return response
