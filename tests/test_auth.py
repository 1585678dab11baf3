from __future__ import annotations

import time

import jwt
import pytest

from conftest import SECRET_HEX
from node.auth import TOKEN_TTL_SEC, decode_secret, issue_token
from node.errors import DecodeError, SigningError


@pytest.mark.parametrize("secret", ["deadbeef", "00", SECRET_HEX, SECRET_HEX.upper()])
def test_token_lifetime_is_ten_minutes(secret):
    credential = issue_token(secret)
    claims = jwt.decode(credential.token, options={"verify_signature": False})

    assert claims["exp"] - claims["iat"] == 600
    assert credential.expires_at - credential.issued_at == TOKEN_TTL_SEC
    assert claims["iat"] == credential.issued_at


def test_token_is_hs256_signed_with_raw_secret_bytes():
    credential = issue_token(SECRET_HEX)

    assert jwt.get_unverified_header(credential.token)["alg"] == "HS256"
    claims = jwt.decode(credential.token, bytes.fromhex(SECRET_HEX), algorithms=["HS256"])
    assert set(claims) == {"iat", "exp"}


def test_token_uses_supplied_clock():
    credential = issue_token(SECRET_HEX, now=1_700_000_000)

    assert credential.issued_at == 1_700_000_000
    assert credential.expires_at == 1_700_000_600
    assert credential.expired
    assert credential.bearer == f"Bearer {credential.token}"


def test_fresh_token_is_not_expired():
    credential = issue_token(SECRET_HEX)
    assert not credential.expired
    assert credential.issued_at <= int(time.time())


@pytest.mark.parametrize("secret", ["xyz", "abc", "de ad", "0x1234", "ü0"])
def test_invalid_hex_secret_raises_decode_error(secret):
    with pytest.raises(DecodeError):
        issue_token(secret)


def test_empty_secret_raises_signing_error():
    assert decode_secret("") == b""
    with pytest.raises(SigningError):
        issue_token("")
