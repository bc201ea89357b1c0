"""Month availability calendar for the booking widget."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query

from villabook.domain.calendar_views import month_availability

router = APIRouter(tags=["booking"])


@router.get("/availability")
def get_availability(
    year: int = Query(ge=2024, le=2030),
    month: int = Query(ge=1, le=12),
    property_id: str | None = None,
) -> dict:
    """Per-day availability and price for one month."""
    result = month_availability(property_id, year, month)
    if not result["success"]:
        raise HTTPException(status_code=404, detail=result["error"])
    return result
