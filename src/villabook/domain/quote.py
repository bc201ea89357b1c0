"""Quote domain logic - priced breakdown for a candidate stay.

A quote is never persisted. It is computed from the property's base rates,
the custom pricing overlay and an optional coupon, after the stay has
passed validation and the availability check.

Failures are returned as tagged results ({"success": False, "error": ...})
rather than raised; see quote().
"""

import secrets
from datetime import date, datetime, timedelta

from psycopg2.extensions import cursor as PgCursor

from villabook.domain.availability import check_availability
from villabook.domain.coupons import coupon_applies, compute_discount, normalize_code
from villabook.domain.holds import HOLD_MINUTES
from villabook.domain.pricing import (
    format_percent,
    is_weekend_night,
    iter_nights,
    nightly_rate,
    percent_of,
    weekday_price,
    weekend_price,
)
from villabook.domain.properties import resolve_property
from villabook.infra.db import txn
from villabook.infra.repositories.coupons_repository import find_coupon_by_code
from villabook.infra.repositories.custom_pricing_repository import (
    fetch_custom_pricing_by_date,
)
from villabook.infra.time import property_today, utc_now
from villabook.observability.logging import get_logger
from villabook.observability.redaction import mask_code

logger = get_logger(__name__)

GENERIC_ERROR = "Unable to calculate quote"
GENERIC_DETAILS = "Please try again or contact support"


class QuoteRejected(Exception):
    """Raised inside the engine when a stay cannot be quoted."""

    def __init__(self, error: str, details: str | None = None):
        self.error = error
        self.details = details
        super().__init__(error)

    def as_result(self) -> dict:
        result = {"success": False, "error": self.error}
        if self.details:
            result["details"] = self.details
        return result


def _parse_date(value: date | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise QuoteRejected("Invalid date format", "Dates must use the YYYY-MM-DD format")


def _price_nights(
    prop: dict,
    check_in: date,
    check_out: date,
    overrides: dict[str, dict],
) -> tuple[list[dict], list[dict]]:
    """Return (daily_rates, custom_price_adjustments) for every night."""
    daily_rates = []
    adjustments = []
    for night in iter_nights(check_in, check_out):
        key = night.isoformat()
        override = overrides.get(key)
        rate = nightly_rate(night, prop, override)
        if override is not None:
            adjustments.append(
                {
                    "date": key,
                    "custom_price_per_night": rate,
                    "original_weekday_price": weekday_price(prop),
                    "original_weekend_price": weekend_price(prop),
                }
            )
        daily_rates.append(
            {
                "date": key,
                "rate": rate,
                "is_weekend": is_weekend_night(night),
                "is_custom": override is not None,
            }
        )
    return daily_rates, adjustments


def _line_items(
    daily_rates: list[dict],
    *,
    discount: int,
    coupon_code: str | None,
    fees: int,
    taxes: int,
    vat_percent,
) -> list[dict]:
    """Fixed order: weekday, weekend, coupon, cleaning fee, VAT."""
    items = []
    for is_weekend, label in ((False, "Weekday rate"), (True, "Weekend rate")):
        nights = [d for d in daily_rates if d["is_weekend"] is is_weekend]
        if nights:
            items.append(
                {
                    "label": f"{label} ({len(nights)} nights)",
                    "amount": sum(d["rate"] for d in nights),
                    "quantity": len(nights),
                }
            )
    if discount > 0:
        items.append({"label": f"Coupon discount ({coupon_code})", "amount": -discount})
    if fees > 0:
        items.append({"label": "Cleaning fee", "amount": fees})
    if taxes > 0:
        items.append({"label": f"VAT ({format_percent(vat_percent)}%)", "amount": taxes})
    return items


def _quote(
    cur: PgCursor,
    check_in: date | str | None,
    check_out: date | str | None,
    property_id: str | None,
    coupon: str | None,
) -> dict:
    if not check_in or not check_out:
        raise QuoteRejected("Check-in and check-out dates are required")
    checkin = _parse_date(check_in)
    checkout = _parse_date(check_out)

    if checkin < property_today():
        raise QuoteRejected("Check-in date cannot be in the past")
    if checkin >= checkout:
        raise QuoteRejected("Check-out date must be after check-in date")

    prop = resolve_property(cur, property_id)
    if prop is None:
        raise QuoteRejected("Property not found")

    nights = (checkout - checkin).days
    min_nights, max_nights = prop.get("min_nights"), prop.get("max_nights")
    if min_nights is not None and nights < min_nights:
        raise QuoteRejected(
            f"Minimum {min_nights} nights required", f"You selected {nights} nights"
        )
    if max_nights is not None and nights > max_nights:
        raise QuoteRejected(
            f"Maximum {max_nights} nights allowed", f"You selected {nights} nights"
        )

    availability = check_availability(prop["id"], checkin, checkout, cur=cur)
    if not availability["available"]:
        raise QuoteRejected("Selected dates are not available", availability.get("reason"))

    overrides = fetch_custom_pricing_by_date(
        cur,
        property_id=prop["id"],
        start=checkin,
        end=checkout - timedelta(days=1),
    )
    daily_rates, adjustments = _price_nights(prop, checkin, checkout, overrides)
    nightly_total = sum(d["rate"] for d in daily_rates)

    discount = 0
    coupon_code = normalize_code(coupon)
    if coupon_code:
        found = find_coupon_by_code(cur, coupon_code)
        if found is None or not coupon_applies(found, now=utc_now(), nights=nights):
            raise QuoteRejected(
                "Invalid or expired coupon code",
                f'Coupon "{coupon}" is not valid for these dates',
            )
        discount = compute_discount(found, nightly_total)
        coupon_code = found["code"]

    subtotal_before_fees = nightly_total - discount
    fees = prop.get("cleaning_fee") or 0
    subtotal = subtotal_before_fees + fees
    vat_percent = prop.get("vat_percent") or 0
    taxes = percent_of(subtotal, vat_percent)
    total = subtotal + taxes

    weekend_nights = sum(1 for d in daily_rates if d["is_weekend"])

    return {
        "success": True,
        "property_id": prop["id"],
        "check_in": checkin.isoformat(),
        "check_out": checkout.isoformat(),
        "nights": nights,
        "line_items": _line_items(
            daily_rates,
            discount=discount,
            coupon_code=coupon_code,
            fees=fees,
            taxes=taxes,
            vat_percent=vat_percent,
        ),
        "subtotal": subtotal,
        "fees": fees,
        "taxes": taxes,
        "total": total,
        "currency": prop.get("currency"),
        "hold_token": secrets.token_hex(32),
        "hold_expires_at": (utc_now() + timedelta(minutes=HOLD_MINUTES)).isoformat(),
        "breakdown": {
            "base_price": nightly_total,
            "weekday_nights": nights - weekend_nights,
            "weekend_nights": weekend_nights,
            "discount": discount,
            "subtotal_before_fees": subtotal_before_fees,
            "custom_price_adjustments": adjustments,
            "daily_rates": daily_rates,
        },
    }


def quote(
    check_in: date | str | None,
    check_out: date | str | None,
    property_id: str | None = None,
    coupon: str | None = None,
    *,
    cur: PgCursor | None = None,
) -> dict:
    """Compute a priced quote for the stay [check_in, check_out).

    Validation runs in a fixed order (dates, property, min/max nights,
    availability, coupon) and stops at the first failure.

    Args:
        check_in: Arrival date, date or "YYYY-MM-DD".
        check_out: Departure date, date or "YYYY-MM-DD".
        property_id: Property id; None or the sentinel selects the default.
        coupon: Optional coupon code (case-insensitive).
        cur: Optional cursor to run inside the caller's transaction.

    Returns:
        Success dict (success=True, nights, line_items, subtotal, fees,
        taxes, total, currency, hold_token, hold_expires_at, breakdown) or
        {"success": False, "error": str, "details"?: str}. Never raises for
        invalid input or storage errors.
    """
    try:
        if cur is not None:
            result = _quote(cur, check_in, check_out, property_id, coupon)
        else:
            with txn() as c:
                result = _quote(c, check_in, check_out, property_id, coupon)
    except QuoteRejected as e:
        logger.info(
            "quote rejected",
            extra={
                "extra_fields": {
                    "check_in": str(check_in),
                    "check_out": str(check_out),
                    "coupon": mask_code(coupon),
                    "error": e.error,
                },
            },
        )
        return e.as_result()
    except Exception:
        logger.exception(
            "quote failed",
            extra={"extra_fields": {"check_in": str(check_in), "check_out": str(check_out)}},
        )
        return {"success": False, "error": GENERIC_ERROR, "details": GENERIC_DETAILS}

    logger.info(
        "quote computed",
        extra={
            "extra_fields": {
                "property_id": result["property_id"],
                "check_in": result["check_in"],
                "check_out": result["check_out"],
                "nights": result["nights"],
                "total": result["total"],
                "currency": result["currency"],
            },
        },
    )
    return result
