"""Expired hold reaper.

Availability never depends on this: lapsed holds are already ignored at read
time. Purging only keeps the reservations table free of stale PENDING rows.
"""

from datetime import datetime

from villabook.infra.db import txn
from villabook.infra.repositories.reservations_repository import delete_expired_holds
from villabook.infra.time import utc_now
from villabook.observability.logging import get_logger

logger = get_logger(__name__)


def purge_expired_holds(
    property_id: str | None = None,
    *,
    now: datetime | None = None,
) -> dict:
    """Delete PENDING reservations whose hold has lapsed.

    Args:
        property_id: Restrict to one property (default: all).
        now: Reference time (default: current UTC time).

    Returns:
        {"status": "purged", "count": int}
    """
    now = now or utc_now()
    with txn() as cur:
        count = delete_expired_holds(cur, now=now, property_id=property_id)

    logger.info(
        "expired holds purged",
        extra={
            "extra_fields": {
                "property_id": property_id,
                "count": count,
                "cutoff": now.isoformat(),
            },
        },
    )
    return {"status": "purged", "count": count}
