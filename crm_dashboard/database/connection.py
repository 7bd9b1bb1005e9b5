"""
Warehouse connection management.
"""

from typing import Any, Generator, Mapping, Optional, Union
from contextlib import contextmanager
from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.sql import Executable
import logging

from .models import Base
from ..config.schema import WarehouseConfig

logger = logging.getLogger(__name__)


class WarehouseQueryError(RuntimeError):
    """A query against the warehouse failed."""


class WarehouseConnection:
    """
    Manage connections to the analytics warehouse.

    Supports BigQuery (production, via the sqlalchemy-bigquery dialect),
    PostgreSQL, and SQLite (development/testing).
    """

    def __init__(
        self,
        database_url: str = "sqlite:///./crm_dashboard.db",
        echo: bool = False,
    ):
        """
        Initialize warehouse connection.

        Parameters
        ----------
        database_url : str
            SQLAlchemy database URL, e.g. ``bigquery://project/dataset``.
        echo : bool
            Whether to echo SQL statements.
        """
        self.database_url = database_url
        self.is_sqlite = database_url.startswith("sqlite")

        engine_kwargs: dict[str, Any] = {"echo": echo}

        if self.is_sqlite:
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                # Share the single in-memory database across threads
                engine_kwargs["poolclass"] = StaticPool
        elif database_url.startswith("postgresql"):
            engine_kwargs.update({
                "poolclass": QueuePool,
                "pool_size": 5,
                "max_overflow": 10,
                "pool_pre_ping": True,
            })

        self.engine = create_engine(database_url, **engine_kwargs)
        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self.engine,
        )

        logger.info(f"Warehouse connection initialized: {self._safe_url()}")

    def _safe_url(self) -> str:
        """Get URL with password masked."""
        if "@" in self.database_url:
            parts = self.database_url.split("@")
            prefix = parts[0].rsplit(":", 1)[0]
            return f"{prefix}:****@{parts[1]}"
        return self.database_url

    def execute(
        self,
        query: Union[str, Executable],
        params: Optional[Mapping[str, Any]] = None,
    ) -> list[dict[str, Any]]:
        """
        Run a read-only query and return its rows.

        Parameters
        ----------
        query : str or Executable
            SQL text with ``:named`` parameters, or a SQLAlchemy Core
            statement.
        params : mapping, optional
            Values for the named parameters.

        Returns
        -------
        list[dict]
            One dict per row, keyed by column label.

        Raises
        ------
        WarehouseQueryError
            If the engine fails to run the query.
        """
        statement = text(query) if isinstance(query, str) else query
        try:
            with self.engine.connect() as conn:
                result = conn.execute(statement, dict(params or {}))
                rows = [dict(row) for row in result.mappings()]
        except SQLAlchemyError as e:
            logger.error(f"Warehouse query failed: {type(e).__name__}: {e}")
            raise WarehouseQueryError(str(e)) from e

        logger.debug(f"Query returned {len(rows)} rows")
        return rows

    def create_tables(self) -> None:
        """Create all tables in the database."""
        Base.metadata.create_all(bind=self.engine)
        logger.info("Warehouse tables created")

    def drop_tables(self) -> None:
        """Drop all tables (use with caution!)."""
        Base.metadata.drop_all(bind=self.engine)
        logger.warning("Warehouse tables dropped")

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        Get a database session as a context manager.

        Yields
        ------
        Session
            SQLAlchemy session.
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        """Release pooled connections."""
        self.engine.dispose()


# Global warehouse instance
_warehouse: Optional[WarehouseConnection] = None


def init_warehouse(config: Optional[WarehouseConfig] = None) -> WarehouseConnection:
    """
    Initialize the global warehouse connection and create any missing tables.

    Parameters
    ----------
    config : WarehouseConfig, optional
        Connection settings; defaults are resolved from the environment.

    Returns
    -------
    WarehouseConnection
        Warehouse connection instance.
    """
    global _warehouse
    config = config or WarehouseConfig()
    _warehouse = WarehouseConnection(config.resolved_url(), echo=config.echo)
    _warehouse.create_tables()
    return _warehouse


def get_warehouse() -> WarehouseConnection:
    """
    Get the global warehouse connection.

    Returns
    -------
    WarehouseConnection
        Warehouse connection instance.

    Raises
    ------
    RuntimeError
        If the warehouse is not initialized.
    """
    if _warehouse is None:
        raise RuntimeError("Warehouse not initialized. Call init_warehouse() first.")
    return _warehouse
