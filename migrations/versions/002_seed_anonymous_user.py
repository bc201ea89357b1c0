"""Seed the anonymous guest user.

Revision ID: 002_seed_anonymous_user
Revises: 001_initial_schema
Create Date: 2026-10-01
"""

from __future__ import annotations

from pathlib import Path

from alembic import op


revision = "002_seed_anonymous_user"
down_revision = "001_initial_schema"
branch_labels = None
depends_on = None


def upgrade() -> None:
    sql_path = Path(__file__).resolve().parents[1] / "sql" / "002_seed_anonymous_user.sql"
    op.get_bind().exec_driver_sql(sql_path.read_text(encoding="utf-8"))


def downgrade() -> None:
    op.execute("DELETE FROM users WHERE email = 'anonymous@villabook.internal'")
