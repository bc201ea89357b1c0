"""Custom pricing repository - per-date price overrides.

One row per (property_id, date). Uses raw SQL with psycopg2 (no ORM).
"""

from datetime import date

from psycopg2.extensions import cursor as PgCursor

_COLUMNS = (
    "id",
    "property_id",
    "date",
    "price_per_night",
    "price_per_adult",
    "price_per_child",
    "notes",
)


def _row_to_override(row: tuple) -> dict:
    override = dict(zip(_COLUMNS, row))
    override["id"] = str(override["id"])
    return override


def list_custom_pricing(
    cur: PgCursor,
    *,
    property_id: str,
    start: date,
    end: date,
) -> list[dict]:
    """List overrides with start <= date <= end, ordered by date."""
    cur.execute(
        f"""
        SELECT {', '.join(_COLUMNS)}
        FROM custom_pricing
        WHERE property_id = %s
          AND date >= %s
          AND date <= %s
        ORDER BY date
        """,
        (property_id, start, end),
    )
    return [_row_to_override(r) for r in cur.fetchall()]


def fetch_custom_pricing_by_date(
    cur: PgCursor,
    *,
    property_id: str,
    start: date,
    end: date,
) -> dict[str, dict]:
    """Overrides in [start, end] (inclusive) keyed by ISO date string."""
    return {
        o["date"].isoformat(): o
        for o in list_custom_pricing(cur, property_id=property_id, start=start, end=end)
    }


def upsert_custom_pricing(
    cur: PgCursor,
    *,
    property_id: str,
    dates: list[date],
    price_per_night: int,
    price_per_adult: int | None = None,
    price_per_child: int | None = None,
    notes: str | None = None,
) -> int:
    """Insert or overwrite the override for every date. Returns rows written."""
    written = 0
    for night in dates:
        cur.execute(
            """
            INSERT INTO custom_pricing (
                property_id, date, price_per_night,
                price_per_adult, price_per_child, notes, updated_at
            )
            VALUES (%s, %s, %s, %s, %s, %s, now())
            ON CONFLICT (property_id, date) DO UPDATE
            SET price_per_night = EXCLUDED.price_per_night,
                price_per_adult = EXCLUDED.price_per_adult,
                price_per_child = EXCLUDED.price_per_child,
                notes = EXCLUDED.notes,
                updated_at = now()
            """,
            (property_id, night, price_per_night, price_per_adult, price_per_child, notes),
        )
        written += cur.rowcount
    return written


def delete_custom_pricing(
    cur: PgCursor,
    *,
    property_id: str,
    dates: list[date],
) -> int:
    """Delete overrides for the given dates. Returns rows deleted."""
    cur.execute(
        "DELETE FROM custom_pricing WHERE property_id = %s AND date = ANY(%s)",
        (property_id, list(dates)),
    )
    return cur.rowcount
