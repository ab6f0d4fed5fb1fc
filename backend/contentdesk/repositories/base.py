import logging
from typing import Any, Generic, Mapping, Optional, TypeVar, Union
from uuid import UUID, uuid4

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from contentdesk.errors import DuplicateKeyError, NotFound, ValidationError, from_pydantic
from contentdesk.storage.base import Collection, Document, DocumentStore, Where
from contentdesk.utils.clock import utcnow

logger = logging.getLogger(__name__)

W = TypeVar("W", bound=BaseModel)
R = TypeVar("R", bound=BaseModel)


class EntityRepository(Generic[W, R]):
    """Validation and persistence for one entity type, independent of the backend.

    ``fields`` arguments accept either a write-schema instance or a plain
    mapping; both go through the write schema, so constraints hold no matter
    which caller reaches the repository. ``system_fields`` carries values the
    client never supplies directly (attachment paths, stored filenames).
    """

    collection: Collection
    write_schema: type[W]
    read_schema: type[R]
    entity_name: str = "Record"

    def __init__(self, store: DocumentStore):
        self.store = store

    def validate(self, fields: Union[W, Mapping[str, Any]]) -> W:
        if isinstance(fields, BaseModel):
            fields = fields.model_dump()
        try:
            return self.write_schema.model_validate(fields)
        except PydanticValidationError as e:
            raise from_pydantic(e) from e

    def coerce_id(self, doc_id: Union[UUID, str]) -> UUID:
        if isinstance(doc_id, UUID):
            return doc_id
        try:
            return UUID(str(doc_id))
        except ValueError:
            raise self.not_found(doc_id)

    def not_found(self, doc_id: Any) -> NotFound:
        return NotFound(
            f"No {self.entity_name.lower()} with id {doc_id}",
            error=f"{self.entity_name} not found",
        )

    def on_duplicate(self, exc: DuplicateKeyError) -> ValidationError:
        return ValidationError(f"{exc.field} '{exc.value}' is already in use", error=f"{exc.field} already exists")

    def to_read(self, document: Document) -> R:
        return self.read_schema.model_validate(document)

    def defaults(self) -> Document:
        """Server-managed fields every new record starts with."""
        return {}

    async def create(
        self,
        fields: Union[W, Mapping[str, Any]],
        system_fields: Optional[Mapping[str, Any]] = None,
    ) -> R:
        data = self.validate(fields)
        document = {
            "id": uuid4(),
            **self.defaults(),
            **data.model_dump(),
            **(system_fields or {}),
            self.collection.order_by: utcnow(),
        }
        try:
            stored = await self.store.insert(self.collection, document)
        except DuplicateKeyError as e:
            raise self.on_duplicate(e) from e
        logger.info(f"{self.entity_name} created: {document['id']}")
        return self.to_read(stored)

    async def get(self, doc_id: Union[UUID, str]) -> R:
        key = self.coerce_id(doc_id)
        document = await self.store.get(self.collection, key)
        if document is None:
            raise self.not_found(doc_id)
        return self.to_read(document)

    async def list(self, where: Optional[Where] = None) -> list[R]:
        documents = await self.store.find(self.collection, where)
        return [self.to_read(document) for document in documents]

    async def update(
        self,
        doc_id: Union[UUID, str],
        fields: Union[W, Mapping[str, Any]],
        system_fields: Optional[Mapping[str, Any]] = None,
    ) -> R:
        key = self.coerce_id(doc_id)
        data = self.validate(fields)
        changes = {**data.model_dump(), **(system_fields or {})}
        return await self._apply(key, changes)

    async def delete(self, doc_id: Union[UUID, str]) -> R:
        key = self.coerce_id(doc_id)
        document = await self.store.delete(self.collection, key)
        if document is None:
            raise self.not_found(doc_id)
        logger.info(f"{self.entity_name} deleted: {key}")
        return self.to_read(document)

    async def _apply(self, key: UUID, changes: Document) -> R:
        try:
            document = await self.store.update(self.collection, key, changes)
        except DuplicateKeyError as e:
            raise self.on_duplicate(e) from e
        if document is None:
            raise self.not_found(key)
        return self.to_read(document)

    async def set_fields(self, doc_id: Union[UUID, str], changes: Document) -> R:
        """Single-purpose transition on server-managed fields (no schema pass)."""
        return await self._apply(self.coerce_id(doc_id), changes)
