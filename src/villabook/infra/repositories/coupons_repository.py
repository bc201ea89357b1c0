"""Coupons repository.

Codes are stored uppercased; callers normalise before lookup and apply the
validity window themselves.
"""

from psycopg2.extensions import cursor as PgCursor

_COLUMNS = (
    "id",
    "code",
    "percent_off",
    "amount_off",
    "valid_from",
    "valid_to",
    "min_nights",
    "is_active",
    "is_public",
)


def _row_to_coupon(row: tuple) -> dict:
    coupon = dict(zip(_COLUMNS, row))
    coupon["id"] = str(coupon["id"])
    return coupon


def find_coupon_by_code(cur: PgCursor, code: str) -> dict | None:
    """Fetch an active coupon by its (already uppercased) code."""
    cur.execute(
        f"""
        SELECT {', '.join(_COLUMNS)}
        FROM coupons
        WHERE code = %s AND is_active = true
        """,
        (code,),
    )
    row = cur.fetchone()
    return _row_to_coupon(row) if row else None


def list_active_public_coupons(cur: PgCursor) -> list[dict]:
    """List coupons that are both active and advertised to guests."""
    cur.execute(
        f"""
        SELECT {', '.join(_COLUMNS)}
        FROM coupons
        WHERE is_active = true AND is_public = true
        ORDER BY code
        """
    )
    return [_row_to_coupon(r) for r in cur.fetchall()]
