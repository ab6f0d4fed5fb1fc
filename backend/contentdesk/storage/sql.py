"""Relational backend: documents map one-to-one onto SQLAlchemy ORM rows."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Mapping, Optional
from uuid import UUID

from sqlalchemy import desc, func, inspect as sa_inspect, select, update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from contentdesk.database import Database
from contentdesk.errors import DuplicateKeyError, StorageUnavailable
from contentdesk.models import ContactSubmission, NewsletterSubscriber, NewsletterUpload, Post, Testimonial
from contentdesk.storage.base import Collection, Document, DocumentStore, Where, is_multi

logger = logging.getLogger(__name__)

DEFAULT_MODELS = {
    Post.__tablename__: Post,
    ContactSubmission.__tablename__: ContactSubmission,
    Testimonial.__tablename__: Testimonial,
    NewsletterSubscriber.__tablename__: NewsletterSubscriber,
    NewsletterUpload.__tablename__: NewsletterUpload,
}


def _to_document(row) -> Document:
    document = {attr.key: getattr(row, attr.key) for attr in sa_inspect(row).mapper.column_attrs}
    for key, value in document.items():
        # SQLite hands back naive datetimes; every stored timestamp is UTC
        if isinstance(value, datetime) and value.tzinfo is None:
            document[key] = value.replace(tzinfo=timezone.utc)
    return document


class SqlDocumentStore(DocumentStore):
    def __init__(self, database: Database, models: Optional[Mapping[str, type]] = None):
        self.database = database
        self.models = dict(models or DEFAULT_MODELS)

    def _model(self, collection: Collection):
        try:
            return self.models[collection.name]
        except KeyError:
            raise LookupError(f"No table mapped for collection {collection.name!r}")

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self.database.session() as session:
                yield session
        except PoolTimeoutError as e:
            logger.warning(f"Connection pool exhausted: {e}")
            raise StorageUnavailable("Timed out waiting for a database connection") from e
        except (OperationalError, InterfaceError, ConnectionError, OSError) as e:
            logger.error(f"Database unavailable: {type(e).__name__}: {e}")
            raise StorageUnavailable("Database connection failed") from e

    async def _commit(self, session: AsyncSession, collection: Collection, document: Document) -> None:
        try:
            await session.commit()
        except IntegrityError as e:
            await session.rollback()
            for field in collection.unique:
                if field in document:
                    raise DuplicateKeyError(field, str(document[field])) from e
            raise

    def _conditions(self, model, where: Optional[Where]) -> list:
        conditions = []
        for key, value in (where or {}).items():
            column = getattr(model, key)
            if is_multi(value):
                conditions.append(column.in_(list(value)))
            else:
                conditions.append(column == value)
        return conditions

    async def insert(self, collection: Collection, document: Document) -> Document:
        model = self._model(collection)
        async with self._session() as session:
            row = model(**document)
            session.add(row)
            await self._commit(session, collection, document)
            return _to_document(row)

    async def get(self, collection: Collection, doc_id: UUID) -> Optional[Document]:
        model = self._model(collection)
        async with self._session() as session:
            row = await session.get(model, doc_id)
            return _to_document(row) if row is not None else None

    async def find(self, collection: Collection, where: Optional[Where] = None) -> list[Document]:
        model = self._model(collection)
        order_column = getattr(model, collection.order_by)
        query = (
            select(model)
            .where(*self._conditions(model, where))
            .order_by(desc(order_column), desc(model.id))
        )
        async with self._session() as session:
            result = await session.execute(query)
            return [_to_document(row) for row in result.scalars().all()]

    async def find_one(self, collection: Collection, where: Where) -> Optional[Document]:
        model = self._model(collection)
        query = select(model).where(*self._conditions(model, where)).limit(1)
        async with self._session() as session:
            result = await session.execute(query)
            row = result.scalars().first()
            return _to_document(row) if row is not None else None

    async def update(self, collection: Collection, doc_id: UUID, changes: Document) -> Optional[Document]:
        model = self._model(collection)
        async with self._session() as session:
            row = await session.get(model, doc_id)
            if row is None:
                return None
            for key, value in changes.items():
                setattr(row, key, value)
            await self._commit(session, collection, changes)
            return _to_document(row)

    async def increment(self, collection: Collection, doc_id: UUID, field: str, amount: int = 1) -> Optional[Document]:
        model = self._model(collection)
        column = getattr(model, field)
        async with self._session() as session:
            result = await session.execute(
                update(model).where(model.id == doc_id).values({field: column + amount})
            )
            if result.rowcount == 0:
                await session.rollback()
                return None
            await session.commit()
            row = await session.get(model, doc_id, populate_existing=True)
            return _to_document(row) if row is not None else None

    async def delete(self, collection: Collection, doc_id: UUID) -> Optional[Document]:
        model = self._model(collection)
        async with self._session() as session:
            row = await session.get(model, doc_id)
            if row is None:
                return None
            document = _to_document(row)
            await session.delete(row)
            await session.commit()
            return document

    async def count(self, collection: Collection) -> int:
        model = self._model(collection)
        async with self._session() as session:
            result = await session.execute(select(func.count()).select_from(model))
            return int(result.scalar_one())

    async def sum(self, collection: Collection, field: str) -> int:
        model = self._model(collection)
        async with self._session() as session:
            result = await session.execute(select(func.coalesce(func.sum(getattr(model, field)), 0)))
            return int(result.scalar_one())

    async def initialize(self) -> None:
        await self.database.init_schema()

    async def ping(self) -> None:
        try:
            await self.database.ping()
        except PoolTimeoutError as e:
            raise StorageUnavailable("Timed out waiting for a database connection") from e
        except (OperationalError, InterfaceError, ConnectionError, OSError) as e:
            raise StorageUnavailable("Database connection failed") from e

    async def close(self) -> None:
        await self.database.dispose()
