"""Blocked periods repository - administrative unavailability windows.

A blocked period is a closed interval: both start_date and end_date are
unavailable nights.
"""

from datetime import date

from psycopg2.extensions import cursor as PgCursor

_COLUMNS = ("id", "property_id", "start_date", "end_date", "reason")


def _row_to_block(row: tuple) -> dict:
    block = dict(zip(_COLUMNS, row))
    block["id"] = str(block["id"])
    return block


def find_overlapping_blocked_periods(
    cur: PgCursor,
    *,
    property_id: str,
    check_in: date,
    check_out: date,
) -> list[dict]:
    """Blocks that cover at least one night of the stay [check_in, check_out).

    A block starting on the departure day does not overlap; a block ending
    on the arrival day does.
    """
    cur.execute(
        f"""
        SELECT {', '.join(_COLUMNS)}
        FROM blocked_periods
        WHERE property_id = %s
          AND start_date < %s
          AND end_date >= %s
        ORDER BY start_date
        """,
        (property_id, check_out, check_in),
    )
    return [_row_to_block(r) for r in cur.fetchall()]


def list_blocked_periods(
    cur: PgCursor,
    *,
    property_id: str,
    start: date | None = None,
    end: date | None = None,
) -> list[dict]:
    """List blocks, optionally only those touching the closed range [start, end]."""
    conditions = ["property_id = %s"]
    params: list = [property_id]
    if end is not None:
        conditions.append("start_date <= %s")
        params.append(end)
    if start is not None:
        conditions.append("end_date >= %s")
        params.append(start)

    cur.execute(
        f"""
        SELECT {', '.join(_COLUMNS)}
        FROM blocked_periods
        WHERE {' AND '.join(conditions)}
        ORDER BY start_date
        """,
        params,
    )
    return [_row_to_block(r) for r in cur.fetchall()]


def insert_blocked_period(
    cur: PgCursor,
    *,
    property_id: str,
    start_date: date,
    end_date: date,
    reason: str | None = None,
) -> str:
    """Insert a blocked period and return its id."""
    cur.execute(
        """
        INSERT INTO blocked_periods (property_id, start_date, end_date, reason)
        VALUES (%s, %s, %s, %s)
        RETURNING id
        """,
        (property_id, start_date, end_date, reason),
    )
    return str(cur.fetchone()[0])


def delete_blocked_period(cur: PgCursor, blocked_period_id: str) -> dict | None:
    """Delete a blocked period, returning the deleted row or None."""
    cur.execute(
        f"""
        DELETE FROM blocked_periods
        WHERE id::text = %s
        RETURNING {', '.join(_COLUMNS)}
        """,
        (blocked_period_id,),
    )
    row = cur.fetchone()
    return _row_to_block(row) if row else None
