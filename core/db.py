"""
core/db.py -- Relational schema and engine lifecycle.

Uses SQLAlchemy Core (not ORM) so the domain dataclasses in auth/models.py
and posts/models.py remain the authoritative domain representation. Swapping
PostgreSQL for SQLite (tests, local development) is a connection string
change, not a rewrite.

Both tables live on one MetaData because posts.user_id references users.id
and the post listing joins the two. The repositories (auth/store.py,
posts/store.py) import the Table objects from here; route code never touches
SQL directly.

Usage:
    db = Database("postgresql+psycopg2://user:pw@host/db", timeout=3.0)
    db.create_all()
    db.ping()      # True / False, never raises
    db.close()
"""

from __future__ import annotations

import logging
import math

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger("postboard.db")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

posts = Table(
    "posts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("content", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

Index("idx_posts_user_id", posts.c.user_id)
Index("idx_posts_created_at", posts.c.created_at.desc())


# ---------------------------------------------------------------------------
# Engine wrapper
# ---------------------------------------------------------------------------


def _connect_args(db_url: str, timeout: float) -> dict:
    """Driver-specific arguments that bound how long a connect may block."""
    if db_url.startswith("sqlite"):
        # check_same_thread: FastAPI runs sync handlers in a thread pool.
        return {"check_same_thread": False, "timeout": timeout}
    if db_url.startswith("postgresql"):
        return {"connect_timeout": max(1, math.ceil(timeout))}
    return {}


class Database:
    """Owns the SQLAlchemy engine shared by UserStore and PostStore."""

    def __init__(self, db_url: str, timeout: float = 3.0) -> None:
        self.url = db_url
        self.engine: Engine = create_engine(
            db_url,
            connect_args=_connect_args(db_url, timeout),
            pool_pre_ping=True,
        )

    def create_all(self) -> None:
        """Create tables and indexes if they do not exist. Idempotent."""
        metadata.create_all(self.engine)
        logger.info("Schema ready (%s)", self.engine.url.render_as_string(hide_password=True))

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.warning("Database ping failed", exc_info=True)
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()
