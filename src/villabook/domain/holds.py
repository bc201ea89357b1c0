"""Hold domain logic - PENDING reservation as a soft lock during checkout.

A hold is a reservation row with status PENDING and hold_expires_at set
HOLD_MINUTES in the future. It blocks its dates until it expires; expiry is
evaluated lazily by the availability check (see domain.availability).

The availability re-check and the insert run in one transaction holding a
per-property advisory lock, so two concurrent holds for overlapping dates
cannot both be inserted.
"""

import os
from datetime import date, datetime, timedelta

from psycopg2.extensions import cursor as PgCursor

from villabook.domain.availability import (
    PENDING,
    check_availability,
    is_active_reservation,
)
from villabook.domain.properties import resolve_property
from villabook.infra.db import advisory_xact_lock, txn
from villabook.infra.repositories.reservations_repository import (
    get_reservation_by_hold_token,
    insert_reservation,
    renew_hold,
)
from villabook.infra.repositories.users_repository import find_user_id_by_email
from villabook.infra.time import utc_now
from villabook.observability.logging import get_logger

logger = get_logger(__name__)

HOLD_MINUTES = 30
DEFAULT_ANONYMOUS_USER_EMAIL = "anonymous@villabook.internal"
GENERIC_ERROR = "Unable to create reservation hold"


class HoldRejected(Exception):
    """Raised when a hold cannot be placed (reason is user-facing)."""

    def __init__(self, error: str):
        self.error = error
        super().__init__(error)


def anonymous_user_email() -> str:
    return os.environ.get("ANONYMOUS_USER_EMAIL", DEFAULT_ANONYMOUS_USER_EMAIL)


def reservation_lock_key(property_id: str) -> str:
    """Advisory lock key shared by every writer of a property's calendar."""
    return f"reservations:{property_id}"


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def _same_stay(reservation: dict, property_id: str, check_in: date, check_out: date) -> bool:
    return (
        reservation["property_id"] == property_id
        and reservation["check_in"] == check_in
        and reservation["check_out"] == check_out
    )


def _create_hold(
    cur: PgCursor,
    *,
    property_id: str | None,
    check_in: date,
    check_out: date,
    total: int,
    hold_token: str | None,
    user_id: str | None,
) -> dict:
    if check_in >= check_out:
        raise HoldRejected("Check-out date must be after check-in date")

    prop = resolve_property(cur, property_id)
    if prop is None:
        raise HoldRejected("Property not found")
    actual_property_id = prop["id"]

    actual_user_id = user_id
    if not actual_user_id:
        actual_user_id = find_user_id_by_email(cur, anonymous_user_email())
        if actual_user_id is None:
            raise HoldRejected("Anonymous user not found. Please contact support.")

    # Serialises replays of one token as well as overlapping new holds
    advisory_xact_lock(cur, reservation_lock_key(actual_property_id))
    now = utc_now()

    existing = get_reservation_by_hold_token(cur, hold_token) if hold_token else None
    if existing is not None:
        if not _same_stay(existing, actual_property_id, check_in, check_out):
            raise HoldRejected("This quote was already used for different dates. Please request a new quote.")
        if is_active_reservation(existing, now):
            logger.info(
                "hold replayed",
                extra={
                    "extra_fields": {
                        "property_id": actual_property_id,
                        "reservation_id": existing["id"],
                    },
                },
            )
            return {
                "success": True,
                "reservation_id": existing["id"],
                "created": False,
                "hold_expires_at": (
                    existing["hold_expires_at"].isoformat()
                    if existing.get("hold_expires_at")
                    else None
                ),
            }
        if existing["status"] != PENDING:
            raise HoldRejected("This quote can no longer be used. Please request a new quote.")

    availability = check_availability(actual_property_id, check_in, check_out, cur=cur)
    if not availability["available"]:
        raise HoldRejected(availability.get("reason") or "Selected dates are not available")

    expires_at = now + timedelta(minutes=HOLD_MINUTES)
    if existing is not None:
        # Lapsed hold for the same stay: the dates are free again, so revive it
        reservation_id = existing["id"]
        renew_hold(cur, reservation_id=reservation_id, total=total, hold_expires_at=expires_at)
    else:
        reservation_id = insert_reservation(
            cur,
            property_id=actual_property_id,
            user_id=actual_user_id,
            check_in=check_in,
            check_out=check_out,
            total=total,
            status=PENDING,
            hold_expires_at=expires_at,
            hold_token=hold_token or None,
        )

    logger.info(
        "hold created",
        extra={
            "extra_fields": {
                "property_id": actual_property_id,
                "reservation_id": reservation_id,
                "check_in": check_in.isoformat(),
                "check_out": check_out.isoformat(),
                "nights": (check_out - check_in).days,
                "total": total,
                "hold_expires_at": expires_at.isoformat(),
            },
        },
    )
    return {
        "success": True,
        "reservation_id": reservation_id,
        "created": True,
        "hold_expires_at": expires_at.isoformat(),
    }


def create_hold(
    property_id: str | None,
    check_in: date | datetime,
    check_out: date | datetime,
    total: int,
    hold_token: str | None,
    user_id: str | None = None,
    *,
    cur: PgCursor | None = None,
) -> dict:
    """Place a 30-minute hold on [check_in, check_out).

    Steps:
    1. Resolve the property (sentinel/unknown id -> first property).
    2. Resolve the user (anonymous guest user when none is given).
    3. Lock the property's calendar.
    4. Replay: a live reservation carrying hold_token for the same stay is
       returned as is. The same token for other dates is refused; a lapsed
       hold for the same stay is renewed if its dates are still free.
    5. Re-check availability and insert the PENDING reservation with a
       fresh expiry.

    Args:
        property_id: Property id or the sentinel.
        check_in: Arrival date.
        check_out: Departure date (exclusive).
        total: Quoted total in minor units.
        hold_token: Token from the quote; used as the idempotency key.
        user_id: Acting user id, if authenticated.
        cur: Optional cursor to run inside the caller's transaction.

    Returns:
        {"success": True, "reservation_id": str, "created": bool,
         "hold_expires_at": str} or {"success": False, "error": str}.
    """
    check_in = _as_date(check_in)
    check_out = _as_date(check_out)
    kwargs = dict(
        property_id=property_id,
        check_in=check_in,
        check_out=check_out,
        total=total,
        hold_token=hold_token,
        user_id=user_id,
    )

    try:
        if cur is not None:
            return _create_hold(cur, **kwargs)
        with txn() as c:
            return _create_hold(c, **kwargs)
    except HoldRejected as e:
        logger.info(
            "hold rejected",
            extra={
                "extra_fields": {
                    "check_in": check_in.isoformat(),
                    "check_out": check_out.isoformat(),
                    "error": e.error,
                },
            },
        )
        return {"success": False, "error": e.error}
    except Exception:
        logger.exception(
            "hold creation failed",
            extra={
                "extra_fields": {
                    "check_in": check_in.isoformat(),
                    "check_out": check_out.isoformat(),
                },
            },
        )
        return {"success": False, "error": GENERIC_ERROR}
