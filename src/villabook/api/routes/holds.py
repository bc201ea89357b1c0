"""Hold endpoint: turns an accepted quote into a 30-minute PENDING reservation."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from villabook.api.auth import CurrentUser, get_optional_user
from villabook.domain.holds import create_hold

router = APIRouter(prefix="/holds", tags=["booking"])


class CreateHoldRequest(BaseModel):
    property_id: str | None = None
    check_in: date
    check_out: date
    total: int = Field(ge=0)
    hold_token: str = Field(min_length=1, max_length=128)


@router.post("")
def post_hold(
    req: CreateHoldRequest,
    user: CurrentUser | None = Depends(get_optional_user),
) -> JSONResponse:
    """Place a hold; 201 when created, 200 on token replay, 409 when refused."""
    result = create_hold(
        req.property_id,
        req.check_in,
        req.check_out,
        req.total,
        req.hold_token,
        user_id=user.id if user else None,
    )
    if not result["success"]:
        return JSONResponse(status_code=409, content=result)
    return JSONResponse(status_code=201 if result["created"] else 200, content=result)
