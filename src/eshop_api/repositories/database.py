"""Relational database access.

Domain services talk to the shop schema through raw SQL, so this module
stays thin: a pooled SQLAlchemy engine, scoped connection helpers, and a
few functions that turn result rows into plain dicts.
"""

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, CursorResult, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql.elements import TextClause

from eshop_api.config import settings

logger = logging.getLogger(__name__)

Row = dict[str, Any]
Statement = str | TextClause


class Database:
    """Pooled database gateway.

    Every unit of work runs inside ``connection()`` or ``transaction()``,
    both of which return the connection to the pool on every exit path.

    Example:
        ```python
        db = Database.create()
        with db.connection() as conn:
            user = fetch_one(conn, "SELECT * FROM users WHERE id = :id", {"id": 1})
        ```
    """

    def __init__(self, engine: Engine) -> None:
        """Initialize the gateway.

        Args:
            engine: A configured SQLAlchemy engine.
        """
        self._engine = engine

    @classmethod
    def create(cls, url: str | None = None) -> "Database":
        """Factory method to create a Database with a pooled engine.

        Args:
            url: SQLAlchemy database URL. If None, uses settings.

        Returns:
            Configured Database
        """
        url = url or settings.database_url
        if url.startswith("sqlite"):
            engine = create_engine(
                url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
                echo=settings.db_echo,
            )
        else:
            engine = create_engine(
                url,
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_pre_ping=True,
                pool_recycle=3600,
                echo=settings.db_echo,
            )
        return cls(engine)

    @contextmanager
    def connection(self) -> Iterator[Connection]:
        """Borrow a connection for read-only work."""
        with self._engine.connect() as conn:
            yield conn

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Borrow a connection inside a transaction.

        Commits when the block exits normally, rolls back if it raises.
        """
        with self._engine.begin() as conn:
            yield conn

    def health_check(self) -> bool:
        """Check if the database is reachable.

        Returns:
            True if healthy, False otherwise
        """
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning("Database health check failed: %s", e)
            return False

    def dispose(self) -> None:
        """Close all pooled connections."""
        self._engine.dispose()

    @property
    def engine(self) -> Engine:
        """Get the SQLAlchemy engine."""
        return self._engine


def _statement(sql: Statement) -> TextClause:
    return text(sql) if isinstance(sql, str) else sql


def fetch_all(conn: Connection, sql: Statement, params: Mapping[str, Any] | None = None) -> list[Row]:
    result = conn.execute(_statement(sql), dict(params or {}))
    return [dict(row) for row in result.mappings()]


def fetch_one(conn: Connection, sql: Statement, params: Mapping[str, Any] | None = None) -> Row | None:
    result = conn.execute(_statement(sql), dict(params or {}))
    row = result.mappings().first()
    return dict(row) if row is not None else None


def fetch_value(
    conn: Connection, sql: Statement, params: Mapping[str, Any] | None = None, default: Any = None
) -> Any:
    value = conn.execute(_statement(sql), dict(params or {})).scalar()
    return default if value is None else value


def execute(conn: Connection, sql: Statement, params: Mapping[str, Any] | None = None) -> CursorResult:
    return conn.execute(_statement(sql), dict(params or {}))
