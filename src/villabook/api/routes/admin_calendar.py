"""Admin calendar endpoints: blocked periods, reservations and availability.

All endpoints require role ADMIN. Business rejections (overlapping
reservation, unknown id, bad status) are 400 with the tagged result as detail.
"""

from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, model_validator

from villabook.api.auth import CurrentUser, require_admin
from villabook.domain import calendar_views

router = APIRouter(prefix="/admin", tags=["admin"])


# ── Schemas ───────────────────────────────────────────────


class BlockDatesRequest(BaseModel):
    property_id: str | None = None
    start_date: date
    end_date: date
    reason: str | None = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def _check_range(self) -> BlockDatesRequest:
        if self.end_date < self.start_date:
            raise ValueError("end_date must be >= start_date")
        return self


class AdminAvailabilityRequest(BaseModel):
    property_id: str | None = None
    check_in: date
    check_out: date
    exclude_reservation_id: uuid.UUID | None = None


class QuickReserveRequest(BaseModel):
    property_id: str | None = None
    user_id: uuid.UUID
    check_in: date
    check_out: date
    adults: int = Field(default=1, ge=1)
    children: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)
    status: str = "AWAITING_APPROVAL"
    notes: str | None = Field(default=None, max_length=2000)


def _or_400(result: dict) -> dict:
    if not result["success"]:
        raise HTTPException(status_code=400, detail=result)
    return result


# ── Blocked periods ───────────────────────────────────────


@router.get("/blocked-periods")
def get_blocked_periods(
    property_id: str | None = None,
    start: date | None = None,
    end: date | None = None,
    user: CurrentUser = Depends(require_admin),
) -> dict:
    return _or_400(calendar_views.list_blocked_periods(property_id, start, end))


@router.post("/blocked-periods", status_code=status.HTTP_201_CREATED)
def post_blocked_period(
    req: BlockDatesRequest,
    user: CurrentUser = Depends(require_admin),
) -> dict:
    """Block a date range unless a reservation already occupies it."""
    return _or_400(
        calendar_views.block_dates(
            req.property_id,
            req.start_date,
            req.end_date,
            req.reason,
            actor_user_id=user.id,
        )
    )


@router.delete("/blocked-periods")
def delete_blocked_period(
    id: str = Query(min_length=1),
    user: CurrentUser = Depends(require_admin),
) -> dict:
    return _or_400(calendar_views.unblock(id, actor_user_id=user.id))


# ── Quick reserve ─────────────────────────────────────────


@router.post("/reservations", status_code=status.HTTP_201_CREATED)
def post_reservation(
    req: QuickReserveRequest,
    user: CurrentUser = Depends(require_admin),
) -> dict:
    """Create a reservation from the admin calendar, bypassing the hold step."""
    return _or_400(
        calendar_views.quick_reserve(
            req.property_id,
            str(req.user_id),
            req.check_in,
            req.check_out,
            req.adults,
            req.children,
            total=req.total,
            status=req.status,
            notes=req.notes,
            actor_user_id=user.id,
        )
    )


@router.get("/reservations")
def get_reservations(
    property_id: str | None = None,
    start: date | None = None,
    end: date | None = None,
    user: CurrentUser = Depends(require_admin),
) -> dict:
    """Reservations currently holding dates (lapsed holds and cancellations excluded)."""
    return _or_400(calendar_views.list_reservations(property_id, start, end))


@router.post("/check-availability")
def post_check_availability(
    req: AdminAvailabilityRequest,
    user: CurrentUser = Depends(require_admin),
) -> dict:
    exclude = str(req.exclude_reservation_id) if req.exclude_reservation_id else None
    return _or_400(
        calendar_views.admin_check_availability(
            req.property_id,
            req.check_in,
            req.check_out,
            exclude_reservation_id=exclude,
        )
    )
