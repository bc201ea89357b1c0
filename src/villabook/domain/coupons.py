"""Coupon rules: validity predicate, discount computation and lookups."""

from datetime import date, datetime

from psycopg2.extensions import cursor as PgCursor

from villabook.domain.pricing import format_percent, percent_of
from villabook.infra.db import txn
from villabook.infra.repositories.coupons_repository import (
    find_coupon_by_code,
    list_active_public_coupons,
)
from villabook.infra.time import utc_now
from villabook.observability.logging import get_logger
from villabook.observability.redaction import mask_code

logger = get_logger(__name__)

CURRENCY_SYMBOLS = {"ILS": "₪", "USD": "$", "EUR": "€", "GBP": "£"}


def normalize_code(code: str | None) -> str:
    """Coupon codes are case-insensitive and stored uppercased."""
    return (code or "").strip().upper()


def coupon_applies(coupon: dict, *, now: datetime, nights: int) -> bool:
    """True if an active coupon is inside its window and meets min_nights."""
    if not coupon.get("is_active"):
        return False
    valid_from = coupon.get("valid_from")
    if valid_from is not None and valid_from > now:
        return False
    valid_to = coupon.get("valid_to")
    if valid_to is not None and valid_to < now:
        return False
    min_nights = coupon.get("min_nights")
    if min_nights is not None and min_nights > nights:
        return False
    return True


def compute_discount(coupon: dict, nightly_total: int) -> int:
    """Discount on the nightly subtotal; never exceeds it."""
    if coupon.get("percent_off"):
        discount = percent_of(nightly_total, coupon["percent_off"])
    elif coupon.get("amount_off"):
        discount = coupon["amount_off"]
    else:
        return 0
    return max(0, min(discount, nightly_total))


def describe_discount(coupon: dict, currency: str = "ILS") -> str:
    """Human-readable discount ("10% discount", "₪50 discount")."""
    if coupon.get("percent_off"):
        return f"{format_percent(coupon['percent_off'])}% discount"
    if coupon.get("amount_off"):
        symbol = CURRENCY_SYMBOLS.get(currency, f"{currency} ")
        return f"{symbol}{coupon['amount_off']} discount"
    return ""


def _public_view(coupon: dict) -> dict:
    return {
        "code": coupon["code"],
        "percent_off": coupon.get("percent_off"),
        "amount_off": coupon.get("amount_off"),
        "min_nights": coupon.get("min_nights"),
        "valid_from": coupon["valid_from"].isoformat() if coupon.get("valid_from") else None,
        "valid_to": coupon["valid_to"].isoformat() if coupon.get("valid_to") else None,
    }


def validate_coupon(
    code: str,
    nights: int | None = None,
    *,
    currency: str = "ILS",
    cur: PgCursor | None = None,
) -> dict:
    """Check a code before quoting (booking form feedback).

    Only existence, the active flag and min_nights are checked here; the
    validity window is enforced when the quote is computed.
    """
    normalized = normalize_code(code)
    if not normalized:
        return {"success": False, "error": "Coupon code is required"}

    if cur is not None:
        coupon = find_coupon_by_code(cur, normalized)
    else:
        with txn() as c:
            coupon = find_coupon_by_code(c, normalized)

    if coupon is None:
        logger.info(
            "coupon rejected",
            extra={"extra_fields": {"coupon": mask_code(normalized), "reason": "unknown"}},
        )
        return {"success": False, "error": "Invalid coupon code"}

    min_nights = coupon.get("min_nights")
    if min_nights and nights and nights < min_nights:
        return {
            "success": False,
            "error": f"This coupon requires a minimum of {min_nights} nights",
        }

    return {
        "success": True,
        "discount": describe_discount(coupon, currency),
        "coupon": _public_view(coupon),
    }


def list_public_coupons(
    check_in: date | None = None,
    check_out: date | None = None,
    *,
    cur: PgCursor | None = None,
) -> list[dict]:
    """Active, public coupons; with booking dates, only those whose window covers the stay."""
    if cur is not None:
        coupons = list_active_public_coupons(cur)
    else:
        with txn() as c:
            coupons = list_active_public_coupons(c)

    result = []
    for coupon in coupons:
        valid_from, valid_to = coupon.get("valid_from"), coupon.get("valid_to")
        if check_in and check_out and valid_from and valid_to:
            if not (valid_from.date() <= check_in and check_out <= valid_to.date()):
                continue
        result.append(_public_view(coupon))
    return result
