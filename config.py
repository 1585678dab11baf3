"""
Pending Transaction Subscriber — Configuration
Built once at startup and passed into each component.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from node.errors import ConfigError


@dataclass
class AuthConfig:
    secret_key: str = ""                # Hex-encoded shared secret
    token_ttl: int = 600                # Seconds (10 minutes)


@dataclass
class NodeConfig:
    host: str = ""
    ws_port: str = ""
    rpc_port: str = ""                  # Empty = sync check runs over WS

    @property
    def ws_url(self) -> str:
        netloc = f"{self.host}:{self.ws_port}" if self.ws_port else self.host
        return f"ws://{netloc}/"

    @property
    def rpc_url(self) -> Optional[str]:
        if not self.rpc_port:
            return None
        return f"http://{self.host}:{self.rpc_port}/"


@dataclass
class StreamConfig:
    event_stream: str = "newPendingTransactions"
    subprotocol: str = "jsonrpc"
    connect_timeout: float = 10.0       # Seconds, 0 = wait forever
    handshake_timeout: float = 15.0     # Seconds for a call reply, 0 = wait forever
    message_timeout: float = 0.0        # Seconds between notifications, 0 = wait forever
    sync_check: bool = True             # Run eth_syncing before subscribing


@dataclass
class SubscriberConfig:
    auth: AuthConfig = field(default_factory=AuthConfig)
    node: NodeConfig = field(default_factory=NodeConfig)
    stream: StreamConfig = field(default_factory=StreamConfig)
    log_level: str = "INFO"
    log_file: str = ""                  # Empty = stdout only

    @classmethod
    def from_env(cls) -> "SubscriberConfig":
        """Load config with environment variable overrides."""
        config = cls()
        config.auth.secret_key = os.getenv("SECRET_KEY", "").strip()
        config.node.host = os.getenv("ETH_HOST", "").strip()
        config.node.ws_port = os.getenv("WS_PORT", "").strip()
        config.node.rpc_port = os.getenv("RPC_PORT", "").strip()
        config.stream.event_stream = os.getenv("SUBSCRIBE_STREAM", "newPendingTransactions")
        config.stream.connect_timeout = _env_float("CONNECT_TIMEOUT", 10.0)
        config.stream.handshake_timeout = _env_float("HANDSHAKE_TIMEOUT", 15.0)
        config.stream.message_timeout = _env_float("MESSAGE_TIMEOUT", 0.0)
        config.stream.sync_check = os.getenv("SYNC_CHECK", "true").lower() == "true"
        config.log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        config.log_file = os.getenv("LOG_FILE", "")
        return config

    def validate(self):
        """Raise ConfigError if a required value is missing."""
        if not self.auth.secret_key or not self.node.host:
            raise ConfigError("SECRET_KEY or ETH_HOST not set in environment.")
        for name in ("ws_port", "rpc_port"):
            port = getattr(self.node, name)
            if port and not port.isdigit():
                raise ConfigError(f"{name.upper()} must be numeric, got {port!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")
    if value < 0:
        raise ConfigError(f"{name} must not be negative, got {raw!r}")
    return value
