"""Quote endpoint for the booking form."""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel, Field

from villabook.domain.quote import quote as compute_quote

router = APIRouter(tags=["booking"])

ISO_DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class QuoteRequest(BaseModel):
    check_in: str = Field(pattern=ISO_DATE_PATTERN)
    check_out: str = Field(pattern=ISO_DATE_PATTERN)
    coupon: str | None = Field(default=None, max_length=64)
    property_id: str | None = None


@router.post("/quote")
def post_quote(req: QuoteRequest) -> dict:
    """Price a stay.

    Always 200: rejections (past dates, min nights, unavailable dates, bad
    coupon) come back as {"success": false, "error": ..., "details"?: ...}.
    """
    return compute_quote(
        req.check_in,
        req.check_out,
        property_id=req.property_id,
        coupon=req.coupon,
    )
