"""Audit log repository - append-only record of admin actions."""

import json

from psycopg2.extensions import cursor as PgCursor


def insert_audit_log(
    cur: PgCursor,
    *,
    action: str,
    target_type: str,
    target_id: str,
    payload: dict | None = None,
    actor_user_id: str | None = None,
) -> None:
    """Append an audit record in the caller's transaction."""
    cur.execute(
        """
        INSERT INTO audit_logs (actor_user_id, action, target_type, target_id, payload)
        VALUES (%s, %s, %s, %s, %s)
        """,
        (
            actor_user_id,
            action,
            target_type,
            target_id,
            json.dumps(payload or {}, default=str),
        ),
    )
