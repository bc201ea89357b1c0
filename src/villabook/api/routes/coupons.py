"""Coupon lookups for the booking form."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter
from pydantic import BaseModel, Field

from villabook.domain.coupons import list_public_coupons, validate_coupon

router = APIRouter(prefix="/coupons", tags=["booking"])


class ValidateCouponRequest(BaseModel):
    code: str = Field(max_length=64)
    nights: int | None = Field(default=None, ge=1)


@router.post("/validate")
def post_validate(req: ValidateCouponRequest) -> dict:
    return validate_coupon(req.code, req.nights)


@router.get("/public")
def get_public(check_in: date | None = None, check_out: date | None = None) -> dict:
    """Coupons advertised on the booking page."""
    return {"coupons": list_public_coupons(check_in, check_out)}
