"""
rollcall.database.engine — Engine factory, sessions, and the thread bridge
===========================================================================

The bot lives on the ``asyncio`` loop; the ledger is plain synchronous
SQLAlchemy.  Cogs never touch a session directly.  They hand a service
function to :func:`run_db`, which runs it on a worker thread and awaits the
result::

    minutes = await run_db(end_stage_session, self.bot.engine, member.id)

Services open their own short transaction with :func:`get_session`, so one
gateway event is one (or a few) commits and nothing is held across awaits.

``DATABASE_URL`` normally points at PostgreSQL.  A ``sqlite:///`` URL is
accepted for local runs without a database server.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import ParamSpec, TypeVar

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session

from rollcall.database.models import Base

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

# One guild, four listeners: a handful of connections covers message bursts.
_POOL_OPTIONS = {
    "pool_size": 5,
    "max_overflow": 5,
    "pool_pre_ping": True,
    "pool_timeout": 10,
    "pool_recycle": 1800,   # hosted Postgres drops idle connections
}


def create_db_engine(url: str | None = None) -> Engine:
    """Build the :class:`Engine` for *url*, defaulting to ``DATABASE_URL``.

    Raises
    ------
    RuntimeError
        If no URL is given and ``DATABASE_URL`` is not set.
    """
    url = url or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "DATABASE_URL is not set.  "
            "Copy .env.example → .env and point it at your PostgreSQL database."
        )

    if url.startswith("sqlite"):
        # Worker threads from run_db share the connection.
        engine = create_engine(url, connect_args={"check_same_thread": False})
    else:
        engine = create_engine(url, **_POOL_OPTIONS)

    logger.info("Database engine ready (%s)", engine.url.get_backend_name())
    return engine


def init_db(engine: Engine) -> None:
    """Create any missing attendance tables.

    Alembic owns the production schema; this keeps a fresh dev database
    usable without running migrations first.
    """
    Base.metadata.create_all(engine)
    logger.info("Attendance tables present.")


@contextmanager
def get_session(engine: Engine) -> Iterator[Session]:
    """One transaction: commit when the block exits, roll back if it raises."""
    session = Session(engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


async def run_db(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Await a synchronous service call without blocking the event loop."""
    return await asyncio.to_thread(func, *args, **kwargs)
