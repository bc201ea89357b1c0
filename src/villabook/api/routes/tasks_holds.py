"""Worker routes for hold maintenance."""

from typing import Any

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from villabook.api.task_auth import verify_task_auth
from villabook.domain.expire_holds import purge_expired_holds
from villabook.observability.correlation import get_correlation_id
from villabook.observability.logging import get_logger
from villabook.observability.redaction import safe_log_context

router = APIRouter(prefix="/tasks/holds", tags=["tasks"])

logger = get_logger(__name__)


@router.post("/purge-expired")
async def handle_purge_expired(request: Request) -> JSONResponse:
    """Delete lapsed PENDING holds.

    Optional JSON payload:
    - property_id: restrict the purge to one property

    An empty body purges every property.
    """
    correlation_id = get_correlation_id()

    if not verify_task_auth(request):
        logger.warning(
            "task auth failed",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
        )
        raise HTTPException(status_code=401, detail="Unauthorized")

    payload: dict[str, Any] = {}
    body = await request.body()
    if body:
        try:
            payload = await request.json()
        except ValueError:
            return JSONResponse(status_code=400, content={"ok": False, "error": "invalid json"})
        if not isinstance(payload, dict):
            return JSONResponse(status_code=400, content={"ok": False, "error": "invalid json"})

    result = purge_expired_holds(payload.get("property_id") or None)
    return JSONResponse(status_code=200, content={"ok": True, **result})
