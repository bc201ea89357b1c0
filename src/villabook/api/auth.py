"""Bearer-token authentication against an OIDC provider.

Guests may book anonymously; admin endpoints need a verified token whose
subject maps to a users row with role ADMIN.
"""

from __future__ import annotations

import os
import threading
import time
from dataclasses import dataclass
from typing import Any

import jwt
import requests
from fastapi import Depends, HTTPException, Request

from villabook.infra.db import txn
from villabook.infra.repositories.users_repository import find_user_by_subject

ADMIN_ROLE = "ADMIN"
REQUIRED_CLAIMS = ["exp", "iss", "aud", "sub"]


@dataclass
class CurrentUser:
    """Authenticated user context."""

    id: str
    external_subject: str
    email: str | None
    role: str | None

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


@dataclass(frozen=True)
class OidcSettings:
    issuer: str | None
    audience: str | None
    jwks_url: str | None

    @classmethod
    def from_env(cls) -> OidcSettings:
        return cls(
            issuer=os.environ.get("OIDC_ISSUER"),
            audience=os.environ.get("OIDC_AUDIENCE"),
            jwks_url=os.environ.get("OIDC_JWKS_URL"),
        )

    @property
    def configured(self) -> bool:
        return bool(self.issuer and self.audience and self.jwks_url)


def _fetch_jwks(jwks_url: str) -> dict[str, Any]:
    resp = requests.get(jwks_url, timeout=10)
    resp.raise_for_status()
    return resp.json()


class JwksCache:
    """Process-wide JWKS document, refetched after `ttl` seconds."""

    def __init__(self, ttl: float = 600) -> None:
        self.ttl = ttl
        self._lock = threading.Lock()
        self._document: dict[str, Any] | None = None
        self._fetched_at = 0.0

    def clear(self) -> None:
        with self._lock:
            self._document = None
            self._fetched_at = 0.0

    def document(self, jwks_url: str, *, refresh: bool = False) -> dict[str, Any]:
        with self._lock:
            now = time.time()
            fresh = self._document is not None and now - self._fetched_at < self.ttl
            if fresh and not refresh:
                return self._document
            try:
                self._document = _fetch_jwks(jwks_url)
            except requests.RequestException:
                raise HTTPException(status_code=503, detail="Auth temporarily unavailable")
            self._fetched_at = now
            return self._document

    def signing_key(self, jwks_url: str, kid: str) -> dict[str, Any] | None:
        """JWK for `kid`; an unknown kid triggers one refetch (key rotation)."""
        for refresh in (False, True):
            for key in self.document(jwks_url, refresh=refresh).get("keys", []):
                if key.get("kid") == kid:
                    return key
        return None


_jwks = JwksCache()


def _unauthorized(detail: str = "Invalid token") -> HTTPException:
    return HTTPException(status_code=401, detail=detail)


def _key_id(token: str) -> str:
    try:
        header = jwt.get_unverified_header(token)
    except jwt.exceptions.DecodeError:
        raise _unauthorized()
    kid = header.get("kid")
    if not kid:
        raise _unauthorized()
    return kid


def _decode(token: str, jwk: dict[str, Any], settings: OidcSettings) -> dict[str, Any]:
    try:
        public_key = jwt.algorithms.RSAAlgorithm.from_jwk(jwk)
    except (jwt.exceptions.InvalidKeyError, ValueError):
        raise _unauthorized()

    try:
        return jwt.decode(
            token,
            public_key,
            algorithms=["RS256"],
            issuer=settings.issuer,
            audience=settings.audience,
            options={"require": REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token expired")
    except jwt.InvalidTokenError:
        raise _unauthorized()


def verified_claims(token: str, settings: OidcSettings, jwks: JwksCache) -> dict[str, Any]:
    """Claims of an RS256 JWT signed by a key from `settings.jwks_url`.

    Raises:
        HTTPException: 401 for any invalid token or missing settings,
            503 when the JWKS endpoint is unreachable.
    """
    if not settings.configured:
        raise _unauthorized("OIDC not configured")

    jwk = jwks.signing_key(settings.jwks_url, _key_id(token))
    if jwk is None:
        raise _unauthorized()
    return _decode(token, jwk, settings)


def verify_token(token: str) -> str:
    """Verify a user bearer token and return its subject."""
    sub = verified_claims(token, OidcSettings.from_env(), _jwks).get("sub")
    if not sub:
        raise _unauthorized()
    return sub


def _bearer_token(request: Request) -> str:
    header = request.headers.get("Authorization")
    if not header:
        raise _unauthorized("Missing authorization header")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token or " " in token.strip():
        raise _unauthorized("Invalid authorization header")
    return token.strip()


def _get_user_from_db(external_subject: str) -> CurrentUser | None:
    with txn() as cur:
        row = find_user_by_subject(cur, external_subject)
    return CurrentUser(**row) if row else None


def get_current_user(request: Request) -> CurrentUser:
    """FastAPI dependency: 401 on a bad token, 403 when no users row matches."""
    user = _get_user_from_db(verify_token(_bearer_token(request)))
    if user is None:
        raise HTTPException(status_code=403, detail="User not found")
    return user


def get_optional_user(request: Request) -> CurrentUser | None:
    """Anonymous when no Authorization header; a header that is sent must verify."""
    if not request.headers.get("Authorization"):
        return None
    return get_current_user(request)


def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
