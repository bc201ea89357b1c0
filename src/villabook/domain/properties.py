"""Property resolution.

Single-property deployments address the property through a sentinel id;
any unknown id also falls back to the first property in the store.
"""

from psycopg2.extensions import cursor as PgCursor

from villabook.infra.repositories.properties_repository import (
    get_first_property,
    get_property,
)

DEFAULT_PROPERTY_ID = "default"


def resolve_property(cur: PgCursor, property_id: str | None = None) -> dict | None:
    """Return the property for *property_id*, falling back to the first one."""
    prop = None
    if property_id and property_id != DEFAULT_PROPERTY_ID:
        prop = get_property(cur, property_id)
    if prop is None:
        prop = get_first_property(cur)
    return prop
