"""Custom pricing overlay - admin read/write of per-date price overrides.

The quote engine reads the overlay directly through the repository; this
module carries the admin operations (validation + audit).
"""

from datetime import date

from villabook.domain.properties import resolve_property
from villabook.infra.db import txn
from villabook.infra.repositories.audit_repository import insert_audit_log
from villabook.infra.repositories.custom_pricing_repository import (
    delete_custom_pricing as delete_overrides,
    list_custom_pricing,
    upsert_custom_pricing,
)
from villabook.observability.logging import get_logger

logger = get_logger(__name__)

MAX_DATES = 366


def _serialize(override: dict) -> dict:
    return {**override, "date": override["date"].isoformat()}


def get_custom_pricing(property_id: str | None, start: date, end: date) -> dict:
    """Overrides for [start, end] inclusive, ordered by date."""
    if end < start:
        return {"success": False, "error": "End date must be on or after start date"}
    if (end - start).days > MAX_DATES:
        return {"success": False, "error": f"Date range cannot exceed {MAX_DATES} days"}

    with txn() as cur:
        prop = resolve_property(cur, property_id)
        if prop is None:
            return {"success": False, "error": "No property found"}
        overrides = list_custom_pricing(cur, property_id=prop["id"], start=start, end=end)

    return {"success": True, "custom_pricing": [_serialize(o) for o in overrides]}


def set_custom_pricing(
    property_id: str | None,
    dates: list[date],
    price_per_night: int,
    *,
    price_per_adult: int | None = None,
    price_per_child: int | None = None,
    notes: str | None = None,
    actor_user_id: str | None = None,
) -> dict:
    """Bulk upsert one price for every date in *dates*.

    price_per_adult/price_per_child are stored for reference; the quote
    engine prices per night only.
    """
    if not dates:
        return {"success": False, "error": "Dates array is required"}
    if len(dates) > MAX_DATES:
        return {"success": False, "error": f"At most {MAX_DATES} dates per request"}
    if price_per_night is None or price_per_night <= 0:
        return {"success": False, "error": "Valid price per night is required"}

    unique_dates = sorted(set(dates))
    with txn() as cur:
        prop = resolve_property(cur, property_id)
        if prop is None:
            return {"success": False, "error": "No property found"}
        upsert_custom_pricing(
            cur,
            property_id=prop["id"],
            dates=unique_dates,
            price_per_night=price_per_night,
            price_per_adult=price_per_adult,
            price_per_child=price_per_child,
            notes=notes,
        )
        insert_audit_log(
            cur,
            action="CUSTOM_PRICING_UPDATED",
            target_type="custom_pricing",
            target_id=prop["id"],
            payload={
                "dates": [d.isoformat() for d in unique_dates],
                "price_per_night": price_per_night,
                "price_per_adult": price_per_adult,
                "price_per_child": price_per_child,
                "notes": notes,
            },
            actor_user_id=actor_user_id,
        )

    logger.info(
        "custom pricing updated",
        extra={"extra_fields": {"property_id": prop["id"], "dates": len(unique_dates)}},
    )
    return {
        "success": True,
        "message": f"Custom pricing set for {len(unique_dates)} date(s)",
        "count": len(unique_dates),
    }


def delete_custom_pricing(
    property_id: str | None,
    dates: list[date],
    *,
    actor_user_id: str | None = None,
) -> dict:
    """Remove overrides for *dates*; nights fall back to default pricing."""
    if not dates:
        return {"success": False, "error": "Dates are required"}

    with txn() as cur:
        prop = resolve_property(cur, property_id)
        if prop is None:
            return {"success": False, "error": "No property found"}
        deleted = delete_overrides(cur, property_id=prop["id"], dates=list(dates))
        insert_audit_log(
            cur,
            action="CUSTOM_PRICING_DELETED",
            target_type="custom_pricing",
            target_id=prop["id"],
            payload={"dates": [d.isoformat() for d in dates], "deleted": deleted},
            actor_user_id=actor_user_id,
        )

    logger.info(
        "custom pricing deleted",
        extra={"extra_fields": {"property_id": prop["id"], "deleted": deleted}},
    )
    return {"success": True, "deleted": deleted}
