"""PostgreSQL content store with pgvector embeddings.

Rows are written with ``INSERT ... ON CONFLICT (id) DO UPDATE`` so a repeated
sync overwrites instead of duplicating. ``RETURNING (xmax = 0)`` tells inserted
rows apart from updated ones: a freshly inserted tuple has no deleting
transaction recorded.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pgvector.sqlalchemy import Vector
from sqlalchemy import (
    ARRAY,
    Column,
    DateTime,
    MetaData,
    String,
    Table,
    Text,
    delete,
    func,
    literal_column,
    select,
)
from sqlalchemy.dialects.postgresql import JSONB, insert
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from contentsync.core.config import settings
from contentsync.core.datetime_utils import utc_now
from contentsync.core.logging import ContextualLogger
from contentsync.platform.destinations._base import BaseContentStore, WriteResult
from contentsync.platform.entities.content import EmbeddedRecord


def build_content_table(name: str, dimensions: int, metadata: Optional[MetaData] = None) -> Table:
    """Table definition for embedded records."""
    return Table(
        name,
        metadata or MetaData(),
        Column("id", String, primary_key=True),
        Column("source_id", String, nullable=False),
        Column("title", Text, nullable=False),
        Column("snippet", Text),
        Column("url", Text),
        Column("content_type", String, nullable=False, index=True),
        Column("locale", String, nullable=False, index=True),
        Column("updated_at", DateTime(timezone=True), nullable=False),
        Column("tags", ARRAY(String)),
        Column("category", String),
        Column("raw_data", JSONB),
        Column("embedding", Vector(dimensions)),
        Column("synced_at", DateTime(timezone=True), nullable=False),
    )


def record_to_row(record: EmbeddedRecord) -> Dict[str, Any]:
    """Store row for an embedded record."""
    return {
        "id": record.id,
        "source_id": record.source_id,
        "title": record.title,
        "snippet": record.snippet,
        "url": record.url,
        "content_type": record.category,
        "locale": record.locale,
        "updated_at": record.updated_at,
        "tags": record.tags,
        "category": record.category_label,
        "raw_data": record.raw_data,
        "embedding": record.embedding,
        "synced_at": utc_now(),
    }


def build_upsert_statement(table: Table, rows: List[EmbeddedRecord], conflict_key: str = "id"):
    """``INSERT ... ON CONFLICT DO UPDATE`` overwriting every column but the key.

    Returns each row's key and whether it was freshly inserted.
    """
    stmt = insert(table).values([record_to_row(row) for row in rows])
    return stmt.on_conflict_do_update(
        index_elements=[conflict_key],
        set_={
            column.name: stmt.excluded[column.name]
            for column in table.columns
            if column.name != conflict_key
        },
    ).returning(
        table.c[conflict_key],
        literal_column("(xmax = 0)").label("inserted"),
    )


class PostgresContentStore(BaseContentStore):
    """Content store backed by a PostgreSQL table with a pgvector column."""

    def __init__(self, engine: AsyncEngine, table: Table):
        """Initialize the store.

        Args:
            engine: Async SQLAlchemy engine
            table: Content table definition
        """
        super().__init__()
        self._engine = engine
        self.table = table

    @classmethod
    async def create(
        cls,
        database_uri: Optional[str] = None,
        table_name: Optional[str] = None,
        dimensions: Optional[int] = None,
        logger: Optional[ContextualLogger] = None,
    ) -> "PostgresContentStore":
        """Create a store from settings, with optional overrides."""
        engine = create_async_engine(
            database_uri or settings.SQLALCHEMY_ASYNC_DATABASE_URI,
            pool_pre_ping=True,
        )
        table = build_content_table(
            table_name or settings.CONTENT_TABLE,
            dimensions or settings.EMBEDDING_DIMENSIONS,
        )
        instance = cls(engine, table)
        if logger:
            instance.set_logger(logger)
        return instance

    async def setup_table(self) -> None:
        """Create the vector extension and the content table if missing."""
        async with self._engine.begin() as conn:
            await conn.exec_driver_sql("CREATE EXTENSION IF NOT EXISTS vector")
            await conn.run_sync(self.table.metadata.create_all)
        self.logger.info(f"Ensured content table {self.table.name}")

    async def upsert(self, rows: List[EmbeddedRecord], conflict_key: str = "id") -> WriteResult:
        """Upsert rows in one statement, overwriting every column but the key."""
        if not rows:
            return WriteResult()

        stmt = build_upsert_statement(self.table, rows, conflict_key)
        async with self._engine.begin() as conn:
            result = await conn.execute(stmt)
            returned = result.all()

        inserted = sum(1 for row in returned if row.inserted)
        return WriteResult(inserted=inserted, updated=len(returned) - inserted)

    async def delete_stale(self, before: datetime) -> int:
        """Delete rows not updated since ``before``."""
        stmt = (
            delete(self.table)
            .where(self.table.c.updated_at < before)
            .returning(self.table.c.id)
        )
        async with self._engine.begin() as conn:
            result = await conn.execute(stmt)
            deleted = len(result.all())
        self.logger.info(f"Deleted {deleted} entries updated before {before.isoformat()}")
        return deleted

    async def count_missing_embeddings(self) -> int:
        """Count rows whose embedding column is NULL."""
        stmt = (
            select(func.count())
            .select_from(self.table)
            .where(self.table.c.embedding.is_(None))
        )
        async with self._engine.connect() as conn:
            result = await conn.execute(stmt)
            return int(result.scalar_one())

    async def close(self) -> None:
        """Dispose of the engine's connection pool."""
        await self._engine.dispose()
