"""Shared test helpers for Villabook tests.

Regular functions (not fixtures), importable from any test module.
"""

from __future__ import annotations

import base64
import time
from contextlib import contextmanager
from unittest.mock import MagicMock

import jwt
from cryptography.hazmat.primitives.asymmetric import rsa

TEST_ISSUER = "https://auth.example.com"
TEST_AUDIENCE = "villabook-api"


def make_property(**overrides) -> dict:
    """Property row as returned by properties_repository."""
    prop = {
        "id": "villa-1",
        "name": "Villa Test",
        "currency": "ILS",
        "weekday_price_night": 500,
        "weekend_price_night": 600,
        "cleaning_fee": 100,
        "vat_percent": 17,
        "min_nights": 1,
        "max_nights": 30,
        "max_adults": 6,
        "max_children": 4,
    }
    prop.update(overrides)
    return prop


def make_coupon(**overrides) -> dict:
    """Coupon row as returned by coupons_repository."""
    coupon = {
        "id": "c-1",
        "code": "SUMMER10",
        "percent_off": 10,
        "amount_off": None,
        "valid_from": None,
        "valid_to": None,
        "min_nights": None,
        "is_active": True,
        "is_public": True,
    }
    coupon.update(overrides)
    return coupon


@contextmanager
def _yield(value):
    yield value


def mock_txn(cursor: MagicMock | None = None):
    """Return a stand-in for db.txn whose context manager yields *cursor*."""
    cursor = cursor or MagicMock()
    txn = MagicMock(side_effect=lambda *a, **kw: _yield(cursor))
    txn.cursor = cursor
    return txn


def _generate_rsa_keypair():
    """Generate RSA key pair for test JWT signing."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return private_key, private_key.public_key()


def _create_jwks(public_key, kid: str = "test-key-1") -> dict:
    """Create JWKS from public key."""
    numbers = public_key.public_numbers()

    def b64(n: int) -> str:
        raw = n.to_bytes((n.bit_length() + 7) // 8, "big")
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()

    return {
        "keys": [
            {
                "kty": "RSA",
                "use": "sig",
                "alg": "RS256",
                "kid": kid,
                "n": b64(numbers.n),
                "e": b64(numbers.e),
            }
        ]
    }


def _create_token(
    private_key,
    kid: str = "test-key-1",
    sub: str = "user-123",
    iss: str = TEST_ISSUER,
    aud: str = TEST_AUDIENCE,
    exp: int | None = None,
    email: str | None = None,
) -> str:
    """Create signed JWT for testing."""
    now = int(time.time())
    payload = {
        "sub": sub,
        "iss": iss,
        "aud": aud,
        "exp": exp if exp is not None else now + 3600,
        "iat": now,
    }
    if email is not None:
        payload["email"] = email
    return jwt.encode(payload, private_key, algorithm="RS256", headers={"kid": kid})
