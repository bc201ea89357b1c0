"""Nightly pricing rules.

All amounts are integers in minor currency units. Percentages are applied
with half-up rounding, once per derived amount.
"""

from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterator

# date.weekday(): Monday=0 .. Sunday=6. Local weekend is Thu, Fri, Sat.
WEEKEND_DAYS = frozenset({3, 4, 5})

DEFAULT_WEEKDAY_PRICE = 500
WEEKEND_MARKUP_PERCENT = 120


def percent_of(amount: int, percent) -> int:
    """Return amount * percent / 100 rounded half-up to an integer."""
    value = Decimal(amount) * Decimal(str(percent)) / 100
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def format_percent(percent) -> str:
    """Render a percentage without trailing zeros (17.00 -> "17")."""
    return f"{Decimal(str(percent)).normalize():f}"


def iter_nights(check_in: date, check_out: date) -> Iterator[date]:
    """Yield every night of the stay [check_in, check_out)."""
    night = check_in
    while night < check_out:
        yield night
        night += timedelta(days=1)


def is_weekend_night(night: date) -> bool:
    return night.weekday() in WEEKEND_DAYS


def weekday_price(prop: dict) -> int:
    price = prop.get("weekday_price_night")
    return DEFAULT_WEEKDAY_PRICE if price is None else price


def weekend_price(prop: dict) -> int:
    """Weekend rate, derived from the weekday rate (+20%) when unset."""
    price = prop.get("weekend_price_night")
    if price is None:
        return percent_of(weekday_price(prop), WEEKEND_MARKUP_PERCENT)
    return price


def nightly_rate(night: date, prop: dict, override: dict | None = None) -> int:
    """Price of one night: custom override first, then weekend/weekday default."""
    if override is not None:
        return override["price_per_night"]
    return weekend_price(prop) if is_weekend_night(night) else weekday_price(prop)
