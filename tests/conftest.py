"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Panel publishing reads PANEL_LOGO_URL and settings read
# MONITORED_CHANNEL_IDS; keep test runs independent of the developer's shell.
# ---------------------------------------------------------------------------
os.environ.pop("PANEL_LOGO_URL", None)
os.environ.pop("MONITORED_CHANNEL_IDS", None)

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from rollcall.config import RollcallConfig  # noqa: E402
from rollcall.database.models import Base  # noqa: E402

_bigint_sqlite_registered = False


def _register_bigint_sqlite_compat():
    """Map BigInteger → INTEGER on SQLite (idempotent).

    SQLite only treats ``INTEGER PRIMARY KEY`` as a rowid alias, so this
    keeps the schema close to what PostgreSQL sees.
    """
    global _bigint_sqlite_registered
    if _bigint_sqlite_registered:
        return
    from sqlalchemy import BigInteger
    from sqlalchemy.ext.compiler import compiles

    @compiles(BigInteger, "sqlite")
    def _compile_bigint_as_integer(type_, compiler, **kw):
        return "INTEGER"

    _bigint_sqlite_registered = True


_register_bigint_sqlite_compat()


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Rollcall tables.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` used in :func:`run_db`).
    """
    from sqlalchemy.pool import StaticPool

    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


@pytest.fixture
def cfg() -> RollcallConfig:
    """Config with no debounce so refresh tests don't sleep."""
    return RollcallConfig(
        community_name="Test Community",
        bot_prefix="!",
        refresh_interval_seconds=30,
        refresh_debounce_seconds=0,
        leaderboard_size=12,
    )
