"""Storage capability shared by every entity repository.

Repositories speak in plain documents (dicts of Python values) addressed by
collection name; a backend decides how those documents are laid out.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional
from uuid import UUID


@dataclass(frozen=True)
class Collection:
    name: str
    order_by: str = "created_at"
    unique: tuple[str, ...] = field(default_factory=tuple)


POSTS = Collection("blogs")
CONTACT_SUBMISSIONS = Collection("contact_submissions")
TESTIMONIALS = Collection("testimonials")
SUBSCRIBERS = Collection("newsletter_subscribers", order_by="subscribed_at", unique=("email",))
NEWSLETTER_UPLOADS = Collection("newsletter_uploads", order_by="uploaded_at")

COLLECTIONS: dict[str, Collection] = {
    c.name: c for c in (POSTS, CONTACT_SUBMISSIONS, TESTIMONIALS, SUBSCRIBERS, NEWSLETTER_UPLOADS)
}

Document = dict[str, Any]
Where = Mapping[str, Any]


def is_multi(value: Any) -> bool:
    """A ``where`` value given as a list/tuple/set matches any of its members."""
    return isinstance(value, (list, tuple, set, frozenset))


class DocumentStore(ABC):
    """Abstract persistence capability.

    Every method that addresses a single record returns ``None`` when the id
    is unknown. Unique-field violations raise ``DuplicateKeyError``; an
    unreachable backend raises ``StorageUnavailable``.
    """

    @abstractmethod
    async def insert(self, collection: Collection, document: Document) -> Document:
        """Persist a new document. ``document`` already carries its id."""

    @abstractmethod
    async def get(self, collection: Collection, doc_id: UUID) -> Optional[Document]:
        pass

    @abstractmethod
    async def find(self, collection: Collection, where: Optional[Where] = None) -> list[Document]:
        """Matching documents, newest first by ``collection.order_by``."""

    async def find_one(self, collection: Collection, where: Where) -> Optional[Document]:
        documents = await self.find(collection, where)
        return documents[0] if documents else None

    @abstractmethod
    async def update(self, collection: Collection, doc_id: UUID, changes: Document) -> Optional[Document]:
        """Overwrite the given fields; returns the stored document afterwards."""

    @abstractmethod
    async def increment(self, collection: Collection, doc_id: UUID, field: str, amount: int = 1) -> Optional[Document]:
        """Atomically add ``amount`` to an integer field."""

    @abstractmethod
    async def delete(self, collection: Collection, doc_id: UUID) -> Optional[Document]:
        """Remove a document, returning its last stored state."""

    @abstractmethod
    async def count(self, collection: Collection) -> int:
        pass

    @abstractmethod
    async def sum(self, collection: Collection, field: str) -> int:
        pass

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the backend (tables, connectivity) at startup."""

    @abstractmethod
    async def ping(self) -> None:
        pass

    @abstractmethod
    async def close(self) -> None:
        pass
