"""Availability check for a candidate stay.

Two independent sources must both be clear:

- Blocked periods: closed intervals [start_date, end_date]; a block ending
  on the arrival day conflicts.
- Reservations: half-open intervals [check_in, check_out); a reservation
  departing on the arrival day does NOT conflict (same-day turnover).

PENDING reservations are holds. A hold only blocks dates while its
hold_expires_at is in the future; lapsed holds are ignored at read time and
never deleted here.
"""

from __future__ import annotations

from datetime import date, datetime

from psycopg2.extensions import cursor as PgCursor

from villabook.infra.db import txn
from villabook.infra.repositories.blocked_periods_repository import (
    find_overlapping_blocked_periods,
)
from villabook.infra.repositories.reservations_repository import (
    find_conflicting_reservations,
)
from villabook.infra.time import utc_now
from villabook.observability.logging import get_logger

logger = get_logger(__name__)

PENDING = "PENDING"
ACTIVE_STATUSES = (PENDING, "AWAITING_APPROVAL", "APPROVED", "PAID")

BOOKED_REASON = "Selected dates are already booked"
DEFAULT_BLOCK_REASON = "Administrative block"


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def is_active_reservation(reservation: dict, now: datetime) -> bool:
    """True if the reservation currently occupies its dates."""
    if reservation["status"] == PENDING:
        expires_at = reservation.get("hold_expires_at")
        return expires_at is not None and expires_at > now
    return True


def active_reservations(reservations: list[dict], now: datetime | None = None) -> list[dict]:
    """Drop PENDING rows whose hold has lapsed."""
    now = now or utc_now()
    return [r for r in reservations if is_active_reservation(r, now)]


def _check(
    cur: PgCursor,
    property_id: str,
    check_in: date,
    check_out: date,
    exclude_reservation_id: str | None,
) -> dict:
    blocks = find_overlapping_blocked_periods(
        cur,
        property_id=property_id,
        check_in=check_in,
        check_out=check_out,
    )
    if blocks:
        block = blocks[0]
        logger.info(
            "availability conflict",
            extra={
                "extra_fields": {
                    "kind": "blocked_period",
                    "property_id": property_id,
                    "requested_check_in": check_in.isoformat(),
                    "requested_check_out": check_out.isoformat(),
                    "blocked_period_id": block["id"],
                },
            },
        )
        return {
            "available": False,
            "reason": f"Property is blocked: {block.get('reason') or DEFAULT_BLOCK_REASON}",
        }

    candidates = find_conflicting_reservations(
        cur,
        property_id=property_id,
        check_in=check_in,
        check_out=check_out,
        statuses=ACTIVE_STATUSES,
        exclude_reservation_id=exclude_reservation_id,
    )
    conflicts = active_reservations(candidates)
    if conflicts:
        logger.info(
            "availability conflict",
            extra={
                "extra_fields": {
                    "kind": "reservation",
                    "property_id": property_id,
                    "requested_check_in": check_in.isoformat(),
                    "requested_check_out": check_out.isoformat(),
                    "conflicting_reservation_id": conflicts[0]["id"],
                    "ignored_expired_holds": len(candidates) - len(conflicts),
                },
            },
        )
        return {"available": False, "reason": BOOKED_REASON}

    return {"available": True}


def check_availability(
    property_id: str,
    check_in: date | datetime,
    check_out: date | datetime,
    *,
    cur: PgCursor | None = None,
    exclude_reservation_id: str | None = None,
) -> dict:
    """Check whether [check_in, check_out) is free for the property.

    Args:
        property_id: Resolved property id (not the sentinel).
        check_in: Arrival date (first occupied night).
        check_out: Departure date (not occupied).
        cur: Optional cursor; when given, the check runs in the caller's
            transaction (used by hold creation to re-check before insert).
        exclude_reservation_id: Reservation to ignore (date edits).

    Returns:
        {"available": True} or {"available": False, "reason": str}.
        Storage failures are logged and reported as unavailable.
    """
    check_in = _as_date(check_in)
    check_out = _as_date(check_out)

    try:
        if cur is not None:
            return _check(cur, property_id, check_in, check_out, exclude_reservation_id)
        with txn() as c:
            return _check(c, property_id, check_in, check_out, exclude_reservation_id)
    except Exception:
        logger.exception(
            "availability check failed",
            extra={"extra_fields": {"property_id": property_id}},
        )
        return {"available": False, "reason": "Unable to check availability"}
