"""
Token issuer — HS256 JWT derived from the hex-encoded shared secret.
Issued once per run; the process is restarted externally before expiry.
"""

from __future__ import annotations
import binascii
import time
from dataclasses import dataclass
from typing import Optional
import jwt
import logging

from node.errors import DecodeError, SigningError

logger = logging.getLogger(__name__)

TOKEN_TTL_SEC = 600  # 10 minutes
SIGNING_ALGORITHM = "HS256"


@dataclass(frozen=True)
class Credential:
    """Signed, time-bounded bearer token."""
    token: str
    issued_at: int          # Unix seconds
    expires_at: int         # Unix seconds

    @property
    def expired(self) -> bool:
        return time.time() >= self.expires_at

    @property
    def bearer(self) -> str:
        return f"Bearer {self.token}"


def decode_secret(secret_hex: str) -> bytes:
    """Decode the hex shared secret into raw key bytes."""
    try:
        return binascii.unhexlify(secret_hex)
    except (binascii.Error, ValueError, TypeError) as e:
        raise DecodeError(f"Secret key is not valid hex: {e}") from e


def issue_token(
    secret_hex: str,
    ttl: int = TOKEN_TTL_SEC,
    now: Optional[int] = None,
) -> Credential:
    """
    Build the {iat, exp} claim set and sign it with the raw secret.
    Fails with DecodeError on a non-hex secret and SigningError on a bad key.
    """
    key = decode_secret(secret_hex)
    if not key:
        raise SigningError("Secret key is empty")

    issued_at = int(time.time()) if now is None else int(now)
    claims = {"iat": issued_at, "exp": issued_at + ttl}

    try:
        token = jwt.encode(claims, key, algorithm=SIGNING_ALGORITHM)
    except (jwt.PyJWTError, TypeError, ValueError) as e:
        raise SigningError(f"Failed to sign token: {e}") from e

    logger.info(f"[AUTH] Issued {SIGNING_ALGORITHM} token, expires in {ttl}s")
    return Credential(token=token, issued_at=issued_at, expires_at=issued_at + ttl)
