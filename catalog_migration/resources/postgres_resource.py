# =============================================================================
# PostgreSQL Resource - Target Table Upserts
# =============================================================================
# Owns the SQLAlchemy engine for the target store, the target table
# definition and the insert-or-update statement keyed by record id.
# =============================================================================

import logging
from contextlib import contextmanager
from typing import Any, Generator, Optional

from sqlalchemy import JSON, Boolean, Column, MetaData, Table, Text, create_engine, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from catalog_migration.errors import ConfigurationError, TargetConnectionError
from catalog_migration.models import PostgresSettings

__all__ = ["PostgresTargetResource", "build_records_table", "UPSERT_COLUMNS"]

logger = logging.getLogger(__name__)

# Columns overwritten on conflict (last-write-wins, no merge).
UPSERT_COLUMNS = ("category_id", "is_active", "record_type", "data")

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def build_records_table(name: str, metadata: Optional[MetaData] = None) -> Table:
    """
    Define the target table.

    ``data`` is JSONB on PostgreSQL and plain JSON elsewhere.

    Args:
        name: Table name
        metadata: MetaData to attach the table to (a fresh one by default)

    Returns:
        SQLAlchemy Table
    """
    return Table(
        name,
        metadata if metadata is not None else MetaData(),
        Column("id", Text, primary_key=True),
        Column("category_id", Text, nullable=True),
        Column("is_active", Boolean, nullable=True),
        Column("record_type", Text, nullable=False),
        Column("data", JSON().with_variant(JSONB(), "postgresql"), nullable=False),
    )


class PostgresTargetResource:
    """
    PostgreSQL access for the load stage.

    Attributes:
        settings: Connection settings
        table: Target table definition

    Example:
        >>> target = PostgresTargetResource(settings, "catalog_records")
        >>> with target.transaction() as conn:
        ...     target.ensure_table(conn)
        ...     target.upsert(conn, record.to_row())
        >>> target.dispose()
    """

    def __init__(self, settings: PostgresSettings, table_name: str):
        if not settings.database:
            raise ConfigurationError("PostgreSQL database name is not configured")
        self.settings = settings
        self.table = build_records_table(table_name)
        self._engine: Optional[Engine] = None

    def get_engine(self) -> Engine:
        """
        Get or create the SQLAlchemy engine.

        Returns:
            Configured SQLAlchemy Engine instance
        """
        if self._engine is None:
            self._engine = create_engine(
                self.settings.connection_string,
                pool_pre_ping=True,  # Validate connection health before use
                echo=False,  # Set to True for SQL debugging
            )
        return self._engine

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            logger.debug("Disposed PostgreSQL engine")

    def check_connection(self) -> None:
        """
        Open a connection and run a trivial query.

        Raises:
            TargetConnectionError: If the server is unreachable or rejects the login
        """
        try:
            with self.get_engine().connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise TargetConnectionError(
                f"Cannot connect to PostgreSQL at {self.settings.host}:{self.settings.port}: {e}"
            ) from e
        logger.info(
            f"Connected to PostgreSQL {self.settings.host}:{self.settings.port}/{self.settings.database}"
        )

    @contextmanager
    def transaction(self) -> Generator[Connection, None, None]:
        """
        Connection inside a single transaction.

        Commits when the block exits normally, rolls back on exception.
        """
        with self.get_engine().begin() as conn:
            yield conn

    def ensure_table(self, conn: Connection) -> None:
        """Create the target table if it does not exist."""
        self.table.create(conn, checkfirst=True)

    def _insert(self, conn: Connection):
        dialect = conn.dialect.name
        try:
            return _INSERT_BY_DIALECT[dialect]
        except KeyError:
            raise ConfigurationError(f"Upsert is not supported on {dialect!r}") from None

    def upsert(self, conn: Connection, row: dict[str, Any]) -> int:
        """
        Insert a row, or overwrite the existing row with the same id.

        Args:
            conn: Connection inside the load transaction
            row: Column -> value mapping

        Returns:
            Rows affected as reported by the driver
        """
        insert_stmt = self._insert(conn)(self.table).values(**row)
        upsert_stmt = insert_stmt.on_conflict_do_update(
            index_elements=[self.table.c.id],
            set_={column: insert_stmt.excluded[column] for column in UPSERT_COLUMNS},
        )
        result = conn.execute(upsert_stmt)
        return int(result.rowcount or 0)
