"""Authentication for internal task endpoints.

Schedulers call /tasks/* with an OIDC ID token (Cloud Scheduler signs these
with Google's keys by default). The token is verified with the same PyJWT +
JWKS machinery as user tokens, against TASKS_OIDC_AUDIENCE.

In local dev (TASKS_OIDC_AUDIENCE == "villabook-tasks-local") the
X-Internal-Task-Secret header is accepted instead.
"""

from __future__ import annotations

import hmac
import os

from fastapi import HTTPException, Request

from villabook.api.auth import JwksCache, OidcSettings, verified_claims
from villabook.observability.logging import get_logger
from villabook.observability.redaction import safe_log_context

logger = get_logger(__name__)

TASK_SECRET_HEADER = "X-Internal-Task-Secret"
LOCAL_DEV_AUDIENCE = "villabook-tasks-local"
DEFAULT_TASKS_ISSUER = "https://accounts.google.com"
DEFAULT_TASKS_JWKS_URL = "https://www.googleapis.com/oauth2/v3/certs"

_task_jwks = JwksCache()


def task_oidc_settings() -> OidcSettings:
    return OidcSettings(
        issuer=os.environ.get("TASKS_OIDC_ISSUER", DEFAULT_TASKS_ISSUER),
        audience=os.environ.get("TASKS_OIDC_AUDIENCE"),
        jwks_url=os.environ.get("TASKS_OIDC_JWKS_URL", DEFAULT_TASKS_JWKS_URL),
    )


def extract_bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    return auth_header[7:]


def verify_task_oidc(token: str) -> bool:
    """Verify a scheduler ID token.

    Fails closed when TASKS_OIDC_AUDIENCE is unset. When
    TASKS_OIDC_SERVICE_ACCOUNT is set, the token's email claim must match it.
    """
    settings = task_oidc_settings()
    if not settings.audience:
        logger.error(
            "TASKS_OIDC_AUDIENCE not configured - fail closed",
            extra={"extra_fields": safe_log_context(reason="missing_audience_env")},
        )
        return False

    try:
        claims = verified_claims(token, settings, _task_jwks)
    except HTTPException as e:
        if e.status_code != 401:
            raise
        logger.warning(
            "task OIDC token verification failed",
            extra={
                "extra_fields": safe_log_context(
                    error=e.detail,
                    expected_audience=settings.audience,
                )
            },
        )
        return False

    expected_email = os.environ.get("TASKS_OIDC_SERVICE_ACCOUNT")
    if expected_email and claims.get("email") != expected_email:
        logger.warning(
            "task OIDC service account mismatch",
            extra={"extra_fields": safe_log_context(reason="service_account_mismatch")},
        )
        return False
    return True


def _local_secret_matches(request: Request) -> bool:
    expected = os.environ.get("INTERNAL_TASK_SECRET", "")
    provided = request.headers.get(TASK_SECRET_HEADER, "")
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided.encode(), expected.encode())


def verify_task_auth(request: Request) -> bool:
    """True if the request carries a valid scheduler token.

    The shared-secret header is honoured only in local dev mode.
    """
    if os.environ.get("TASKS_OIDC_AUDIENCE", "") == LOCAL_DEV_AUDIENCE:
        if _local_secret_matches(request):
            logger.info(
                "task auth via internal secret (local dev)",
                extra={"extra_fields": safe_log_context(auth_method="internal_secret")},
            )
            return True

    token = extract_bearer_token(request)
    if not token:
        logger.warning(
            "task auth failed: missing Bearer token",
            extra={"extra_fields": safe_log_context(reason="missing_bearer_token")},
        )
        return False
    return verify_task_oidc(token)
