"""Database engine construction for the relational backend"""

import os
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool


def create_db_engine(database_url: Optional[str]) -> Engine:
    """Create an engine for DATABASE_URL.

    In-memory SQLite URLs share one connection so every session sees the
    same database.
    """
    if not database_url:
        raise ValueError(
            "DATABASE_URL environment variable is not set. "
            "Set DATABASE_URL in your environment or local .env file "
            "when STORAGE_BACKEND=sql."
        )

    echo = os.getenv("DEBUG", "false").lower() == "true"

    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, echo=echo, **kwargs)

    return create_engine(database_url, echo=echo, pool_pre_ping=True)
