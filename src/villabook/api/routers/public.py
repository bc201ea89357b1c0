"""Public-facing routes (APP_ROLE=public)."""

from fastapi import APIRouter

from villabook.api.routes import (
    admin_calendar,
    admin_pricing,
    availability,
    coupons,
    holds,
    quote,
)

router = APIRouter()


@router.get("/health")
def health() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


router.include_router(quote.router)
router.include_router(holds.router)
router.include_router(availability.router)
router.include_router(coupons.router)
router.include_router(admin_calendar.router)
router.include_router(admin_pricing.router)
