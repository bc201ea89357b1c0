"""Shared pytest fixtures for Villabook tests."""
import sys
sys.dont_write_bytecode = True

from unittest.mock import MagicMock  # noqa: E402

import pytest  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_oidc_jwks_cache():
    """Keys fetched by one test must not leak into the next."""
    from villabook.api.auth import _jwks
    from villabook.api.task_auth import _task_jwks

    _jwks.clear()
    _task_jwks.clear()
    yield
    _jwks.clear()
    _task_jwks.clear()


@pytest.fixture
def mock_cursor():
    """MagicMock standing in for a psycopg2 cursor."""
    return MagicMock()
