"""Properties repository - read access to property configuration.

Uses raw SQL with psycopg2 (no ORM).
"""

from psycopg2.extensions import cursor as PgCursor

_PROPERTY_COLUMNS = (
    "id",
    "name",
    "currency",
    "weekday_price_night",
    "weekend_price_night",
    "cleaning_fee",
    "vat_percent",
    "min_nights",
    "max_nights",
    "max_adults",
    "max_children",
)

_SELECT_PROPERTY = f"SELECT {', '.join(_PROPERTY_COLUMNS)} FROM properties"


def _row_to_property(row: tuple) -> dict:
    return dict(zip(_PROPERTY_COLUMNS, row))


def get_property(cur: PgCursor, property_id: str) -> dict | None:
    """Fetch a property by id, or None."""
    cur.execute(f"{_SELECT_PROPERTY} WHERE id = %s", (property_id,))
    row = cur.fetchone()
    return _row_to_property(row) if row else None


def get_first_property(cur: PgCursor) -> dict | None:
    """Fetch the first property in the store (single-property deployments)."""
    cur.execute(f"{_SELECT_PROPERTY} ORDER BY created_at, id LIMIT 1")
    row = cur.fetchone()
    return _row_to_property(row) if row else None
