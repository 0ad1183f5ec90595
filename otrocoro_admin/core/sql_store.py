"""
SQLAlchemy-backed document store.

Stores every collection in the `documents` table (models/document.py).
Equality and membership filters on top-level string/boolean fields are pushed
down to SQL through JSON extraction; every other filter, the sort key and the
limit are evaluated in memory on the fetched rows. That is adequate for the
catalog sizes of a store back-office.

SQLAlchemy errors are logged with the operation context and re-raised as
DocumentStoreError.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from sqlalchemy import select, delete as sql_delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from otrocoro_admin.core.document_store import Document, DocumentStore, FieldFilter, Query
from otrocoro_admin.core.exceptions import DocumentNotFoundError, DocumentStoreError
from otrocoro_admin.models.document import StoredDocument

logger = logging.getLogger(__name__)


def _sql_clause(field_filter: FieldFilter):
    """Translate a filter to a SQL clause, or None when it must run in memory."""
    if "." in field_filter.field:
        return None

    column = StoredDocument.data[field_filter.field]
    value = field_filter.value

    if field_filter.op == "==":
        if isinstance(value, bool):
            return column.as_boolean() == value
        if isinstance(value, str):
            return column.as_string() == value
        return None

    if field_filter.op == "in":
        values = list(value)
        if values and all(isinstance(v, str) for v in values):
            return column.as_string().in_(values)
        return None

    return None


class SqlDocumentStore(DocumentStore):
    """Document store over an async SQLAlchemy session factory."""

    def __init__(self, session_factory: async_sessionmaker):
        super().__init__()
        self._session_factory = session_factory

    async def _load_row(self, session: AsyncSession, collection: str, document_id: str) -> Optional[StoredDocument]:
        result = await session.execute(
            select(StoredDocument).where(
                StoredDocument.collection == collection,
                StoredDocument.id == document_id,
            )
        )
        return result.scalar_one_or_none()

    async def get(self, collection: str, document_id: str) -> Optional[Document]:
        try:
            async with self._session_factory() as session:
                row = await self._load_row(session, collection, document_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to read {collection}/{document_id}: {e}")
            raise DocumentStoreError(
                f"Failed to read {collection}/{document_id}",
                collection=collection,
                document_id=document_id,
            ) from e

        if row is None:
            return None
        return Document(id=row.id, data=dict(row.data or {}))

    async def add(self, collection: str, data: Dict[str, Any]) -> str:
        document_id = uuid4().hex
        await self.set(collection, document_id, data)
        return document_id

    async def set(self, collection: str, document_id: str, data: Dict[str, Any]) -> None:
        try:
            async with self._session_factory() as session:
                row = await self._load_row(session, collection, document_id)
                if row is None:
                    session.add(StoredDocument(collection=collection, id=document_id, data=dict(data)))
                else:
                    row.data = dict(data)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to write {collection}/{document_id}: {e}")
            raise DocumentStoreError(
                f"Failed to write {collection}/{document_id}",
                collection=collection,
                document_id=document_id,
            ) from e

        await self._notify(collection)

    async def update(self, collection: str, document_id: str, changes: Dict[str, Any]) -> None:
        try:
            async with self._session_factory() as session:
                row = await self._load_row(session, collection, document_id)
                if row is None:
                    raise DocumentNotFoundError(
                        f"No document {collection}/{document_id} to update",
                        collection=collection,
                        document_id=document_id,
                    )
                # Reassign so the JSON column is flagged dirty
                row.data = {**(row.data or {}), **changes}
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to update {collection}/{document_id}: {e}")
            raise DocumentStoreError(
                f"Failed to update {collection}/{document_id}",
                collection=collection,
                document_id=document_id,
            ) from e

        await self._notify(collection)

    async def delete(self, collection: str, document_id: str) -> bool:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    sql_delete(StoredDocument).where(
                        StoredDocument.collection == collection,
                        StoredDocument.id == document_id,
                    )
                )
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to delete {collection}/{document_id}: {e}")
            raise DocumentStoreError(
                f"Failed to delete {collection}/{document_id}",
                collection=collection,
                document_id=document_id,
            ) from e

        deleted = (result.rowcount or 0) > 0
        if deleted:
            await self._notify(collection)
        return deleted

    def _split_filters(self, query: Query) -> Tuple[List[Any], List[FieldFilter]]:
        clauses = []
        remaining = []
        for field_filter in query.filters:
            clause = _sql_clause(field_filter)
            if clause is None:
                remaining.append(field_filter)
            else:
                clauses.append(clause)
        return clauses, remaining

    async def query(self, collection: str, query: Optional[Query] = None) -> List[Document]:
        query = query or Query()
        clauses, remaining = self._split_filters(query)

        statement = (
            select(StoredDocument)
            .where(StoredDocument.collection == collection, *clauses)
            .order_by(StoredDocument.created_at, StoredDocument.id)
        )
        in_memory = bool(remaining) or query.order_by is not None
        if query.limit is not None and not in_memory:
            statement = statement.limit(query.limit)

        try:
            async with self._session_factory() as session:
                result = await session.execute(statement)
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to query {collection}: {e}")
            raise DocumentStoreError(f"Failed to query {collection}", collection=collection) from e

        documents = [Document(id=row.id, data=dict(row.data or {})) for row in rows]
        return query.apply(documents, filters=remaining)
