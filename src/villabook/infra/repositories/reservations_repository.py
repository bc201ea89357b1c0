"""Reservations repository - guest bookings and PENDING holds.

A reservation occupies the half-open interval [check_in, check_out): the
departure day is free for the next arrival. Dates are compared as SQL
``date`` values, never as timestamps.
"""

from datetime import date, datetime

from psycopg2.extensions import cursor as PgCursor

_COLUMNS = (
    "id",
    "property_id",
    "user_id",
    "check_in",
    "check_out",
    "nights",
    "status",
    "hold_expires_at",
)


def _row_to_reservation(row: tuple) -> dict:
    reservation = dict(zip(_COLUMNS, row))
    reservation["id"] = str(reservation["id"])
    if reservation["user_id"] is not None:
        reservation["user_id"] = str(reservation["user_id"])
    return reservation


def find_conflicting_reservations(
    cur: PgCursor,
    *,
    property_id: str,
    check_in: date,
    check_out: date,
    statuses: tuple[str, ...],
    exclude_reservation_id: str | None = None,
) -> list[dict]:
    """Reservations in *statuses* overlapping [check_in, check_out).

    Overlap formula: existing.check_in < new.check_out AND
    existing.check_out > new.check_in. Hold expiry is NOT applied here.
    """
    conditions = [
        "property_id = %s",
        "status = ANY(%s)",
        "check_in < %s",
        "check_out > %s",
    ]
    params: list = [property_id, list(statuses), check_out, check_in]

    if exclude_reservation_id is not None:
        conditions.append("id != %s")
        params.append(exclude_reservation_id)

    cur.execute(
        f"""
        SELECT {', '.join(_COLUMNS)}
        FROM reservations
        WHERE {' AND '.join(conditions)}
        ORDER BY check_in
        """,
        params,
    )
    return [_row_to_reservation(r) for r in cur.fetchall()]


def get_reservation_by_hold_token(cur: PgCursor, hold_token: str) -> dict | None:
    """Fetch the reservation created for a hold token, if any."""
    cur.execute(
        f"SELECT {', '.join(_COLUMNS)} FROM reservations WHERE hold_token = %s",
        (hold_token,),
    )
    row = cur.fetchone()
    return _row_to_reservation(row) if row else None


_LISTED_COLUMNS = _COLUMNS + ("adults", "children", "total", "notes", "created_at")


def list_reservations(
    cur: PgCursor,
    *,
    property_id: str,
    statuses: tuple[str, ...],
    start: date | None = None,
    end: date | None = None,
    limit: int = 100,
) -> list[dict]:
    """Reservations in *statuses* with the guest's email and name.

    With a range, only stays occupying a night in [start, end] are returned.
    """
    conditions = ["r.property_id = %s", "r.status = ANY(%s)"]
    params: list = [property_id, list(statuses)]
    if end is not None:
        conditions.append("r.check_in <= %s")
        params.append(end)
    if start is not None:
        conditions.append("r.check_out > %s")
        params.append(start)
    params.append(limit)

    select = ", ".join(f"r.{c}" for c in _LISTED_COLUMNS)
    cur.execute(
        f"""
        SELECT {select}, u.email, u.name
        FROM reservations r
        LEFT JOIN users u ON u.id = r.user_id
        WHERE {' AND '.join(conditions)}
        ORDER BY r.check_in
        LIMIT %s
        """,
        params,
    )
    rows = []
    for row in cur.fetchall():
        reservation = _row_to_reservation(row[: len(_COLUMNS)])
        reservation.update(zip(_LISTED_COLUMNS[len(_COLUMNS):], row[len(_COLUMNS):-2]))
        reservation["guest_email"], reservation["guest_name"] = row[-2:]
        rows.append(reservation)
    return rows


def insert_reservation(
    cur: PgCursor,
    *,
    property_id: str,
    user_id: str,
    check_in: date,
    check_out: date,
    total: int,
    status: str,
    adults: int = 1,
    children: int = 0,
    hold_expires_at: datetime | None = None,
    hold_token: str | None = None,
    notes: str | None = None,
) -> str:
    """Insert a reservation row and return its id."""
    cur.execute(
        """
        INSERT INTO reservations (
            property_id, user_id, check_in, check_out, nights,
            adults, children, total, status,
            hold_expires_at, hold_token, notes
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        RETURNING id
        """,
        (
            property_id,
            user_id,
            check_in,
            check_out,
            (check_out - check_in).days,
            adults,
            children,
            total,
            status,
            hold_expires_at,
            hold_token,
            notes,
        ),
    )
    return str(cur.fetchone()[0])


def delete_expired_holds(
    cur: PgCursor,
    *,
    now: datetime,
    property_id: str | None = None,
) -> int:
    """Delete PENDING rows whose hold has lapsed. Returns rows deleted."""
    conditions = [
        "status = 'PENDING'",
        "(hold_expires_at IS NULL OR hold_expires_at <= %s)",
    ]
    params: list = [now]
    if property_id is not None:
        conditions.append("property_id = %s")
        params.append(property_id)

    cur.execute(
        f"DELETE FROM reservations WHERE {' AND '.join(conditions)}",
        params,
    )
    return cur.rowcount


def renew_hold(
    cur: PgCursor,
    *,
    reservation_id: str,
    total: int,
    hold_expires_at: datetime,
) -> None:
    """Give a lapsed PENDING hold a fresh expiry."""
    cur.execute(
        """
        UPDATE reservations
        SET hold_expires_at = %s, total = %s, updated_at = now()
        WHERE id = %s AND status = 'PENDING'
        """,
        (hold_expires_at, total, reservation_id),
    )
