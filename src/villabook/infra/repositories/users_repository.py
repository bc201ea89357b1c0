"""Users repository - lookups needed by booking flows and auth."""

from psycopg2.extensions import cursor as PgCursor

from villabook.infra.db import fetchone


def find_user_id_by_email(cur: PgCursor, email: str) -> str | None:
    """Return the id of the user with *email* (case-insensitive), or None."""
    row = fetchone(cur, "SELECT id FROM users WHERE lower(email) = lower(%s)", (email,))
    return str(row[0]) if row else None


def find_user_by_subject(cur: PgCursor, external_subject: str) -> dict | None:
    """Return {id, external_subject, email, role} for an OIDC subject, or None."""
    row = fetchone(
        cur,
        "SELECT id, external_subject, email, role FROM users WHERE external_subject = %s",
        (external_subject,),
    )
    if row is None:
        return None
    return {
        "id": str(row[0]),
        "external_subject": row[1],
        "email": row[2],
        "role": row[3],
    }


def user_exists(cur: PgCursor, user_id: str) -> bool:
    return fetchone(cur, "SELECT 1 FROM users WHERE id = %s", (user_id,)) is not None
