"""Calendar operations: month availability map and admin ledger edits.

Admin edits (block, unblock, quick-reserve) are single-row writes guarded by
an overlap query run in the same transaction, under the same per-property
advisory lock that hold creation takes.
"""

import uuid
from datetime import date, datetime, timedelta

from villabook.domain.availability import (
    ACTIVE_STATUSES,
    active_reservations,
    check_availability,
)
from villabook.domain.holds import reservation_lock_key
from villabook.domain.pricing import iter_nights, nightly_rate
from villabook.domain.properties import resolve_property
from villabook.infra.db import advisory_xact_lock, txn
from villabook.infra.repositories.audit_repository import insert_audit_log
from villabook.infra.repositories.blocked_periods_repository import (
    delete_blocked_period,
    insert_blocked_period,
    list_blocked_periods as list_blocks,
)
from villabook.infra.repositories.custom_pricing_repository import (
    fetch_custom_pricing_by_date,
)
from villabook.infra.repositories.reservations_repository import (
    find_conflicting_reservations,
    insert_reservation,
    list_reservations as list_reservation_rows,
)
from villabook.infra.repositories.users_repository import user_exists
from villabook.infra.time import property_today
from villabook.observability.logging import get_logger

logger = get_logger(__name__)

ADMIN_RESERVATION_STATUSES = ("AWAITING_APPROVAL", "APPROVED", "PAID")


def _month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of the month."""
    first = date(year, month, 1)
    next_month = (first + timedelta(days=32)).replace(day=1)
    return first, next_month - timedelta(days=1)


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


def _serialize_reservation(reservation: dict) -> dict:
    return {
        key: value.isoformat() if isinstance(value, (date, datetime)) else value
        for key, value in reservation.items()
    }


def _serialize_block(block: dict) -> dict:
    return {
        **block,
        "start_date": block["start_date"].isoformat(),
        "end_date": block["end_date"].isoformat(),
    }


def month_availability(property_id: str | None, year: int, month: int) -> dict:
    """Per-day availability for a calendar month.

    Each ISO date maps to {"available": bool, "reason"?, "price"?,
    "min_stay"?}. Past days and booked/blocked days are unavailable;
    available days carry that night's price.
    """
    first, last = _month_bounds(year, month)

    with txn() as cur:
        prop = resolve_property(cur, property_id)
        if prop is None:
            return {"success": False, "error": "Property not found"}
        blocks = list_blocks(cur, property_id=prop["id"], start=first, end=last)
        reservations = active_reservations(
            find_conflicting_reservations(
                cur,
                property_id=prop["id"],
                check_in=first,
                check_out=last + timedelta(days=1),
                statuses=ACTIVE_STATUSES,
            )
        )
        overrides = fetch_custom_pricing_by_date(
            cur, property_id=prop["id"], start=first, end=last
        )

    today = property_today()
    days: dict[str, dict] = {}
    for day in iter_nights(first, last + timedelta(days=1)):
        key = day.isoformat()
        if day < today:
            days[key] = {"available": False, "reason": "Past date"}
        elif any(b["start_date"] <= day <= b["end_date"] for b in blocks):
            days[key] = {"available": False, "reason": "Already booked"}
        elif any(r["check_in"] <= day < r["check_out"] for r in reservations):
            days[key] = {"available": False, "reason": "Already booked"}
        else:
            days[key] = {
                "available": True,
                "price": nightly_rate(day, prop, overrides.get(key)),
                "min_stay": prop.get("min_nights"),
            }

    return {
        "success": True,
        "property_id": prop["id"],
        "year": year,
        "month": month,
        "currency": prop.get("currency"),
        "days": days,
    }


def list_blocked_periods(
    property_id: str | None,
    start: date | None = None,
    end: date | None = None,
) -> dict:
    """Blocked periods for the property, optionally touching [start, end]."""
    with txn() as cur:
        prop = resolve_property(cur, property_id)
        if prop is None:
            return {"success": False, "error": "No property found"}
        blocks = list_blocks(cur, property_id=prop["id"], start=start, end=end)
    return {"success": True, "blocked_periods": [_serialize_block(b) for b in blocks]}


def block_dates(
    property_id: str | None,
    start_date: date,
    end_date: date,
    reason: str | None = None,
    *,
    actor_user_id: str | None = None,
) -> dict:
    """Block the closed range [start_date, end_date].

    Refused while an active reservation occupies any of those nights.
    """
    if start_date > end_date:
        return {"success": False, "error": "End date must be after or equal to start date"}

    with txn() as cur:
        prop = resolve_property(cur, property_id)
        if prop is None:
            return {"success": False, "error": "No property found"}

        advisory_xact_lock(cur, reservation_lock_key(prop["id"]))
        conflicts = active_reservations(
            find_conflicting_reservations(
                cur,
                property_id=prop["id"],
                check_in=start_date,
                check_out=end_date + timedelta(days=1),
                statuses=ACTIVE_STATUSES,
            )
        )
        if conflicts:
            return {
                "success": False,
                "error": (
                    "Cannot block these dates - there is an existing reservation. "
                    "Choose different dates or cancel the reservation first."
                ),
                "conflicts": [c["id"] for c in conflicts],
            }

        block_id = insert_blocked_period(
            cur,
            property_id=prop["id"],
            start_date=start_date,
            end_date=end_date,
            reason=reason,
        )
        insert_audit_log(
            cur,
            action="DATES_BLOCKED",
            target_type="blocked_period",
            target_id=block_id,
            payload={
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
                "reason": reason,
            },
            actor_user_id=actor_user_id,
        )

    logger.info(
        "dates blocked",
        extra={
            "extra_fields": {
                "property_id": prop["id"],
                "blocked_period_id": block_id,
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
            },
        },
    )
    return {
        "success": True,
        "blocked_period": {
            "id": block_id,
            "property_id": prop["id"],
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
            "reason": reason,
        },
    }


def unblock(blocked_period_id: str, *, actor_user_id: str | None = None) -> dict:
    """Delete a blocked period."""
    with txn() as cur:
        deleted = delete_blocked_period(cur, blocked_period_id)
        if deleted is None:
            return {"success": False, "error": "Blocked period not found"}
        insert_audit_log(
            cur,
            action="DATES_UNBLOCKED",
            target_type="blocked_period",
            target_id=blocked_period_id,
            payload={
                "start_date": deleted["start_date"].isoformat(),
                "end_date": deleted["end_date"].isoformat(),
            },
            actor_user_id=actor_user_id,
        )

    logger.info(
        "dates unblocked",
        extra={"extra_fields": {"blocked_period_id": blocked_period_id}},
    )
    return {"success": True}


def quick_reserve(
    property_id: str | None,
    user_id: str,
    check_in: date,
    check_out: date,
    adults: int,
    children: int = 0,
    *,
    total: int = 0,
    status: str = "AWAITING_APPROVAL",
    notes: str | None = None,
    actor_user_id: str | None = None,
) -> dict:
    """Create a reservation directly from the admin calendar (no hold)."""
    if check_in >= check_out:
        return {"success": False, "error": "Check-out date must be after check-in date"}
    if status not in ADMIN_RESERVATION_STATUSES:
        return {"success": False, "error": f"Invalid status: {status}"}
    if adults < 1 or children < 0 or total < 0:
        return {"success": False, "error": "Invalid guest count or total"}

    if not _is_uuid(user_id):
        return {"success": False, "error": "User not found"}

    with txn() as cur:
        if not user_exists(cur, str(user_id)):
            return {"success": False, "error": "User not found"}
        prop = resolve_property(cur, property_id)
        if prop is None:
            return {"success": False, "error": "No property found"}
        if prop.get("max_adults") is not None and adults > prop["max_adults"]:
            return {"success": False, "error": f"Maximum {prop['max_adults']} adults allowed"}
        if prop.get("max_children") is not None and children > prop["max_children"]:
            return {
                "success": False,
                "error": f"Maximum {prop['max_children']} children allowed",
            }

        advisory_xact_lock(cur, reservation_lock_key(prop["id"]))
        availability = check_availability(prop["id"], check_in, check_out, cur=cur)
        if not availability["available"]:
            return {
                "success": False,
                "error": "Selected dates are not available",
                "details": availability.get("reason"),
            }

        reservation_id = insert_reservation(
            cur,
            property_id=prop["id"],
            user_id=str(user_id),
            check_in=check_in,
            check_out=check_out,
            adults=adults,
            children=children,
            total=total,
            status=status,
            notes=notes,
        )
        insert_audit_log(
            cur,
            action="RESERVATION_CREATED",
            target_type="reservation",
            target_id=reservation_id,
            payload={
                "check_in": check_in.isoformat(),
                "check_out": check_out.isoformat(),
                "status": status,
                "total": total,
            },
            actor_user_id=actor_user_id,
        )

    logger.info(
        "reservation created by admin",
        extra={
            "extra_fields": {
                "property_id": prop["id"],
                "reservation_id": reservation_id,
                "status": status,
            },
        },
    )
    return {
        "success": True,
        "reservation": {
            "id": reservation_id,
            "property_id": prop["id"],
            "check_in": check_in.isoformat(),
            "check_out": check_out.isoformat(),
            "nights": (check_out - check_in).days,
            "adults": adults,
            "children": children,
            "total": total,
            "status": status,
        },
    }


def list_reservations(
    property_id: str | None,
    start: date | None = None,
    end: date | None = None,
) -> dict:
    """Reservations holding dates, for the admin calendar.

    Cancelled, refunded and declined stays are left out, as are lapsed holds.
    """
    with txn() as cur:
        prop = resolve_property(cur, property_id)
        if prop is None:
            return {"success": False, "error": "No property found"}
        rows = list_reservation_rows(
            cur,
            property_id=prop["id"],
            statuses=ACTIVE_STATUSES,
            start=start,
            end=end,
        )
    return {
        "success": True,
        "reservations": [_serialize_reservation(r) for r in active_reservations(rows)],
    }


def admin_check_availability(
    property_id: str | None,
    check_in: date,
    check_out: date,
    exclude_reservation_id: str | None = None,
) -> dict:
    """Availability for an admin edit; the reservation being edited is ignored."""
    if check_in >= check_out:
        return {
            "success": False,
            "available": False,
            "error": "Check-out date must be after check-in date",
        }
    if check_in < property_today():
        return {
            "success": False,
            "available": False,
            "error": "Check-in date cannot be in the past",
        }

    with txn() as cur:
        prop = resolve_property(cur, property_id)
        if prop is None:
            return {"success": False, "available": False, "error": "No property found"}
        result = check_availability(
            prop["id"],
            check_in,
            check_out,
            cur=cur,
            exclude_reservation_id=exclude_reservation_id,
        )

    if result["available"]:
        return {"success": True, "available": True, "message": "Dates are available"}
    return {
        "success": True,
        "available": False,
        "message": "Selected dates are not available",
        "reason": result.get("reason"),
    }
