"""
JSON-RPC envelope models for the node connection.
The same response shape carries both synchronous replies and push notifications.
"""

from __future__ import annotations
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from node.errors import DecodeError

JSONRPC_VERSION = "2.0"

RawMessage = Union[str, bytes]


class PayloadKind(Enum):
    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


class ConnectionState(Enum):
    DISCONNECTED = "DISCONNECTED"
    CONNECTED = "CONNECTED"
    SUBSCRIBED = "SUBSCRIBED"
    STREAMING = "STREAMING"
    CLOSED = "CLOSED"


@dataclass(frozen=True)
class Payload:
    """Opaque handle over an arbitrary parsed JSON value."""
    value: Any = None

    @property
    def kind(self) -> PayloadKind:
        v = self.value
        if v is None:
            return PayloadKind.NULL
        if isinstance(v, bool):
            return PayloadKind.BOOL
        if isinstance(v, (int, float)):
            return PayloadKind.NUMBER
        if isinstance(v, str):
            return PayloadKind.STRING
        if isinstance(v, list):
            return PayloadKind.ARRAY
        return PayloadKind.OBJECT

    def as_str(self) -> Optional[str]:
        return self.value if self.kind is PayloadKind.STRING else None

    def __str__(self) -> str:
        if self.kind is PayloadKind.STRING:
            return self.value
        return json.dumps(self.value, separators=(",", ":"))


@dataclass
class RpcRequest:
    """Outbound JSON-RPC call. At most one is in flight per connection."""
    method: str
    params: List[Any] = field(default_factory=list)
    id: int = 1
    jsonrpc: str = JSONRPC_VERSION

    def to_dict(self) -> Dict[str, Any]:
        # Key order matches the node's canonical request layout
        return {
            "jsonrpc": self.jsonrpc,
            "id": self.id,
            "method": self.method,
            "params": list(self.params),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_json(cls, raw: RawMessage) -> "RpcRequest":
        data = _load_object(raw)
        params = data.get("params", [])
        if not isinstance(params, list):
            raise DecodeError(f"Request params must be a list, got {type(params).__name__}")
        method = data.get("method")
        if not isinstance(method, str):
            raise DecodeError("Request is missing a method name")
        req_id = data.get("id", 1)
        if isinstance(req_id, bool) or not isinstance(req_id, int):
            raise DecodeError(f"Request id must be an integer, got {req_id!r}")
        return cls(
            method=method,
            params=params,
            id=req_id,
            jsonrpc=str(data.get("jsonrpc", JSONRPC_VERSION)),
        )


@dataclass(frozen=True)
class NotificationParams:
    """Nested params of a subscription notification."""
    subscription: Optional[str]
    result: Payload


@dataclass(frozen=True)
class RpcErrorInfo:
    code: Optional[int]
    message: str
    data: Any = None


@dataclass(frozen=True)
class RpcResponse:
    """
    Inbound JSON-RPC message: either a reply to a call or a push notification.
    Replies carry a top-level result (or error), notifications carry params.
    """
    jsonrpc: str = JSONRPC_VERSION
    id: Optional[int] = None
    method: Optional[str] = None
    params: Optional[NotificationParams] = None
    result: Optional[Payload] = None
    error: Optional[RpcErrorInfo] = None

    @classmethod
    def from_json(cls, raw: RawMessage) -> "RpcResponse":
        data = _load_object(raw)

        jsonrpc = data.get("jsonrpc", JSONRPC_VERSION)
        if not isinstance(jsonrpc, str):
            raise DecodeError(f"jsonrpc tag must be a string, got {jsonrpc!r}")

        method = data.get("method")
        if method is not None and not isinstance(method, str):
            raise DecodeError(f"method must be a string, got {method!r}")

        params = None
        raw_params = data.get("params")
        if raw_params is not None:
            if not isinstance(raw_params, dict):
                raise DecodeError(
                    f"params must be an object, got {type(raw_params).__name__}"
                )
            sub = raw_params.get("subscription")
            if sub is not None and not isinstance(sub, str):
                raise DecodeError(f"params.subscription must be a string, got {sub!r}")
            params = NotificationParams(
                subscription=sub,
                result=Payload(raw_params.get("result")),
            )

        error = None
        raw_error = data.get("error")
        if raw_error is not None:
            if isinstance(raw_error, dict):
                error = RpcErrorInfo(
                    code=raw_error.get("code"),
                    message=str(raw_error.get("message", "")),
                    data=raw_error.get("data"),
                )
            else:
                error = RpcErrorInfo(code=None, message=str(raw_error))

        return cls(
            jsonrpc=jsonrpc,
            id=data.get("id"),
            method=method,
            params=params,
            result=Payload(data["result"]) if "result" in data else None,
            error=error,
        )

    @property
    def subscription_id(self) -> Optional[str]:
        """Subscription id from a subscribe ack, or from notification params."""
        if self.result is not None and self.result.kind is PayloadKind.STRING:
            return self.result.value
        if self.params is not None:
            return self.params.subscription
        return None

    def notification_payload(self) -> Payload:
        """Extract params.result; raise DecodeError if this is not a notification."""
        if self.params is None:
            raise DecodeError("Message has no params object; not a notification")
        return self.params.result


def _load_object(raw: RawMessage) -> Dict[str, Any]:
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError, RecursionError) as e:
        raise DecodeError(f"Invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise DecodeError(f"Expected a JSON object, got {type(data).__name__}")
    return data
