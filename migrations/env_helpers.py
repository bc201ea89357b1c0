"""Database URL helpers for Alembic migrations.

Kept apart from env.py so they can be tested without triggering
alembic.context at import time.
"""

from __future__ import annotations

import os

from psycopg2.extensions import parse_dsn
from sqlalchemy.engine import URL, make_url

DRIVER = "postgresql+psycopg2"


def libpq_dsn_to_url(dsn: str) -> str:
    """Convert a libpq key=value DSN to a SQLAlchemy URL.

    Unix-socket hosts (leading "/") are passed through the query string.
    """
    tokens = parse_dsn(dsn)
    password = tokens.get("password") or os.environ.get("DB_PASSWORD") or None
    host = tokens.get("host", "localhost")

    if host.startswith("/"):
        url = URL.create(
            DRIVER,
            username=tokens.get("user"),
            password=password,
            database=tokens.get("dbname"),
            query={"host": host},
        )
    else:
        url = URL.create(
            DRIVER,
            username=tokens.get("user"),
            password=password,
            host=host,
            port=int(tokens.get("port", 5432)),
            database=tokens.get("dbname"),
        )
    return url.render_as_string(hide_password=False)


def get_database_url() -> str:
    """DATABASE_URL as a psycopg2 SQLAlchemy URL, with DB_PASSWORD injected if missing."""
    raw = os.environ.get("DATABASE_URL")
    if not raw:
        raise RuntimeError("DATABASE_URL is required to run migrations")
    if "://" not in raw:
        return libpq_dsn_to_url(raw)

    if raw.startswith("postgres://"):
        raw = "postgresql://" + raw[len("postgres://"):]
    url = make_url(raw).set(drivername=DRIVER)

    db_password = os.environ.get("DB_PASSWORD", "")
    if db_password and not url.password:
        url = url.set(password=db_password)
    return url.render_as_string(hide_password=False)
