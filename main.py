"""
Pending Transaction Subscriber — Main Orchestrator.
Ties all components together: token, connection, sync check, subscription, shutdown.
"""

from __future__ import annotations
import asyncio
import os
import sys
import signal
from typing import Optional
import logging

from dotenv import load_dotenv

from config import SubscriberConfig
from node.auth import Credential, issue_token
from node.errors import ConfigError, SubscriberError
from node.rpc_http import NodeRpcClient
from node.ws_client import NodeWSClient

logger = logging.getLogger(__name__)


def setup_logging(config: SubscriberConfig):
    """Configure root logging: stdout plus an optional log file."""
    handlers = [logging.StreamHandler(sys.stdout)]
    if config.log_file:
        os.makedirs(os.path.dirname(config.log_file) or ".", exist_ok=True)
        handlers.append(logging.FileHandler(config.log_file))

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
        force=True,
    )


class Subscriber:
    """Main subscriber orchestrator."""

    def __init__(self, config: SubscriberConfig):
        self.config = config
        self.credential: Optional[Credential] = None
        self.ws: Optional[NodeWSClient] = None
        self.rpc: Optional[NodeRpcClient] = None
        self.delivered = 0
        self.stop_task: Optional[asyncio.Task] = None

    async def start(self):
        """Full startup sequence, then consume notifications until the stream ends."""
        logger.info("=" * 60)
        logger.info("   PENDING TRANSACTIONS SUBSCRIBER — STARTING")
        logger.info("=" * 60)

        # 1. Issue token
        self.credential = issue_token(
            self.config.auth.secret_key, ttl=self.config.auth.token_ttl
        )

        # 2. Connect
        self.ws = NodeWSClient.from_config(self.config, self.credential)
        await self.ws.connect()

        # 3. Optional sync status check
        if self.config.stream.sync_check:
            await self.check_sync_status()

        # 4. Subscribe
        await self.ws.subscribe(self.config.stream.event_stream)

        # 5. Consume notifications
        async for payload in self.ws.notifications():
            self.delivered += 1
            logger.info(f"[SUB] ℹ️ New Pending Transaction: {payload}")

        logger.info(f"[SUB] Stream closed after {self.delivered} notifications.")

    async def check_sync_status(self):
        """eth_syncing over HTTP when an RPC port is set, otherwise over the WebSocket."""
        rpc_url = self.config.node.rpc_url
        if rpc_url:
            self.rpc = NodeRpcClient(
                rpc_url, self.credential, timeout=self.config.stream.handshake_timeout
            )
            response = await self.rpc.get_sync_status()
        else:
            response = await self.ws.get_sync_status()
        logger.info(f"[BOOT] 👈 Received sync status: {response.result}")
        return response

    async def stop(self):
        """Graceful shutdown."""
        logger.info("[SHUTDOWN] Stopping subscriber...")
        if self.ws:
            await self.ws.close()
        if self.rpc:
            await self.rpc.close()
        logger.info("[SHUTDOWN] Complete.")

    def request_stop(self) -> asyncio.Task:
        """Schedule stop() from a signal handler, keeping a reference to the task."""
        if self.stop_task is None:
            self.stop_task = asyncio.create_task(self.stop())
        return self.stop_task


async def main() -> int:
    """Entry point. Returns the process exit code."""
    load_dotenv()
    config = SubscriberConfig.from_env()
    setup_logging(config)

    # Validate critical config
    try:
        config.validate()
    except ConfigError as e:
        logger.critical(str(e))
        return 1

    subscriber = Subscriber(config)

    # Graceful shutdown handler
    if sys.platform != "win32":
        loop = asyncio.get_running_loop()

        def handle_signal(sig):
            logger.info(f"Received signal {sig.name}. Initiating shutdown...")
            subscriber.request_stop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: handle_signal(s))

    try:
        await subscriber.start()
    except SubscriberError as e:
        logger.critical(f"Fatal error: {type(e).__name__}: {e}")
        await subscriber.stop()
        return 1
    except Exception as e:
        logger.critical(f"Fatal error: {e}", exc_info=True)
        await subscriber.stop()
        return 1

    await subscriber.stop()
    return 0


def run():
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
