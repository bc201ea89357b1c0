"""Admin custom pricing endpoints.

GET: overrides for a date range
PUT: bulk upsert one nightly price for a list of dates
DELETE: remove overrides for a list of dates
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator

from villabook.api.auth import CurrentUser, require_admin
from villabook.domain import custom_pricing
from villabook.domain.custom_pricing import MAX_DATES

router = APIRouter(prefix="/admin/custom-pricing", tags=["admin"])


def _limit_dates(v: list[date]) -> list[date]:
    if len(v) == 0:
        raise ValueError("dates list cannot be empty")
    if len(v) > MAX_DATES:
        raise ValueError(f"batch size limit: {MAX_DATES} dates per request")
    return v


class PutCustomPricingRequest(BaseModel):
    property_id: str | None = None
    dates: list[date]
    price_per_night: int = Field(gt=0)
    price_per_adult: int | None = Field(default=None, ge=0)
    price_per_child: int | None = Field(default=None, ge=0)
    notes: str | None = Field(default=None, max_length=500)

    @field_validator("dates")
    @classmethod
    def limit_batch_size(cls, v: list[date]) -> list[date]:
        return _limit_dates(v)


class DeleteCustomPricingRequest(BaseModel):
    property_id: str | None = None
    dates: list[date]

    @field_validator("dates")
    @classmethod
    def limit_batch_size(cls, v: list[date]) -> list[date]:
        return _limit_dates(v)


def _or_400(result: dict) -> dict:
    if not result["success"]:
        raise HTTPException(status_code=400, detail=result)
    return result


@router.get("")
def get_custom_pricing(
    start_date: date,
    end_date: date,
    property_id: str | None = None,
    user: CurrentUser = Depends(require_admin),
) -> dict:
    return _or_400(custom_pricing.get_custom_pricing(property_id, start_date, end_date))


@router.put("")
def put_custom_pricing(
    req: PutCustomPricingRequest,
    user: CurrentUser = Depends(require_admin),
) -> dict:
    return _or_400(
        custom_pricing.set_custom_pricing(
            req.property_id,
            req.dates,
            req.price_per_night,
            price_per_adult=req.price_per_adult,
            price_per_child=req.price_per_child,
            notes=req.notes,
            actor_user_id=user.id,
        )
    )


@router.delete("")
def delete_custom_pricing(
    req: DeleteCustomPricingRequest,
    user: CurrentUser = Depends(require_admin),
) -> dict:
    """Remove overrides; those nights fall back to weekday/weekend pricing."""
    return _or_400(
        custom_pricing.delete_custom_pricing(
            req.property_id,
            req.dates,
            actor_user_id=user.id,
        )
    )
