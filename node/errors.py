"""
Error taxonomy for the subscriber.
Library exceptions are wrapped into these at the module boundary.
"""

from __future__ import annotations
from typing import Any, Optional


class SubscriberError(Exception):
    """Base class for all subscriber failures."""


class ConfigError(SubscriberError):
    """Required configuration missing or malformed."""


class DecodeError(SubscriberError):
    """Malformed hex secret or malformed JSON-RPC message."""


class SigningError(SubscriberError):
    """Credential could not be signed."""


class ConnectError(SubscriberError):
    """Connection to the node could not be established."""


class StreamError(SubscriberError):
    """Read/write failure on an established connection."""


class RpcError(SubscriberError):
    """The node answered with a JSON-RPC error object."""

    def __init__(self, code: Optional[int], message: str, data: Any = None):
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.message = message
        self.data = data
