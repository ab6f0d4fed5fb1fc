"""Per-entity repositories: collection wiring, defaults and narrow transitions."""

import logging
from typing import Any, Mapping, Optional, Sequence, Union
from uuid import UUID

from contentdesk.errors import AlreadySubscribed, DuplicateKeyError, NotFound, ValidationError
from contentdesk.repositories.base import EntityRepository
from contentdesk.schemas.common import normalize_email
from contentdesk.schemas.contact_submission import ContactSubmissionRead, ContactSubmissionWrite
from contentdesk.schemas.newsletter import (
    NewsletterSubscribeRequest,
    NewsletterSubscriberRead,
    NewsletterUploadRead,
    NewsletterUploadWrite,
)
from contentdesk.schemas.post import BlogAnalytics, PostRead, PostWrite
from contentdesk.schemas.testimonial import TestimonialRead, TestimonialWrite
from contentdesk.services.notifications import _redact_email
from contentdesk.storage.base import (
    CONTACT_SUBMISSIONS,
    NEWSLETTER_UPLOADS,
    POSTS,
    SUBSCRIBERS,
    TESTIMONIALS,
)
from contentdesk.utils.clock import utcnow

logger = logging.getLogger(__name__)


class PostRepository(EntityRepository[PostWrite, PostRead]):
    collection = POSTS
    write_schema = PostWrite
    read_schema = PostRead
    entity_name = "Blog"

    def defaults(self):
        return {"views": 0, "image": "", "thumbnail": ""}

    async def increment_views(self, doc_id: Union[UUID, str]) -> PostRead:
        """Count one view; returns the post as stored after the increment."""
        document = await self.store.increment(self.collection, self.coerce_id(doc_id), "views")
        if document is None:
            raise self.not_found(doc_id)
        return self.to_read(document)

    async def list_featured(self) -> list[PostRead]:
        return await self.list({"featured": True})

    async def analytics(self) -> BlogAnalytics:
        return BlogAnalytics(
            total_posts=await self.store.count(self.collection),
            total_views=await self.store.sum(self.collection, "views"),
        )


class ContactSubmissionRepository(EntityRepository[ContactSubmissionWrite, ContactSubmissionRead]):
    collection = CONTACT_SUBMISSIONS
    write_schema = ContactSubmissionWrite
    read_schema = ContactSubmissionRead
    entity_name = "Contact submission"

    def defaults(self):
        return {"read": False}

    async def set_read(self, doc_id: Union[UUID, str], read: bool) -> ContactSubmissionRead:
        return await self.set_fields(doc_id, {"read": read})


class TestimonialRepository(EntityRepository[TestimonialWrite, TestimonialRead]):
    collection = TESTIMONIALS
    write_schema = TestimonialWrite
    read_schema = TestimonialRead
    entity_name = "Testimonial"

    async def set_active(self, doc_id: Union[UUID, str], active: bool) -> TestimonialRead:
        return await self.set_fields(doc_id, {"active": active})

    async def list_active(self) -> list[TestimonialRead]:
        return await self.list({"active": True})


class SubscriberRepository(EntityRepository[NewsletterSubscribeRequest, NewsletterSubscriberRead]):
    collection = SUBSCRIBERS
    write_schema = NewsletterSubscribeRequest
    read_schema = NewsletterSubscriberRead
    entity_name = "Subscriber"

    def defaults(self):
        return {"unsubscribed": False, "unsubscribed_at": None}

    def on_duplicate(self, exc: DuplicateKeyError) -> ValidationError:
        return AlreadySubscribed(f"{exc.value} is already on the subscriber list")

    async def find_by_email(self, email: str) -> NewsletterSubscriberRead | None:
        document = await self.store.find_one(self.collection, {"email": email})
        return self.to_read(document) if document is not None else None

    async def create(self, fields, system_fields=None) -> NewsletterSubscriberRead:
        data = self.validate(fields)
        if await self.find_by_email(data.email) is not None:
            raise AlreadySubscribed(f"{data.email} is already on the subscriber list")
        return await super().create(data, system_fields)

    async def update(self, doc_id, fields, system_fields=None) -> NewsletterSubscriberRead:
        key = self.coerce_id(doc_id)
        data = self.validate(fields)
        existing = await self.find_by_email(data.email)
        if existing is not None and existing.id != key:
            raise AlreadySubscribed(f"{data.email} is already on the subscriber list")
        return await super().update(key, data, system_fields)

    async def subscribe(
        self, fields: Union[NewsletterSubscribeRequest, Mapping[str, Any]]
    ) -> tuple[NewsletterSubscriberRead, bool]:
        """Add an address, or reactivate it if it unsubscribed earlier.

        Returns the subscriber and whether a new row was created. An address
        that is already active is rejected.
        """
        data = self.validate(fields)
        existing = await self.find_by_email(data.email)
        if existing is not None:
            if not existing.unsubscribed:
                raise AlreadySubscribed(f"{data.email} is already on the subscriber list")
            subscriber = await self.set_subscribed(existing.id, True)
            logger.info(f"Subscription reactivated for {_redact_email(data.email)}")
            return subscriber, False
        subscriber = await super().create(data)
        logger.info(f"Newsletter subscription added for {_redact_email(data.email)}")
        return subscriber, True

    async def set_subscribed(self, doc_id: Union[UUID, str], subscribed: bool) -> NewsletterSubscriberRead:
        return await self.set_fields(
            doc_id,
            {
                "unsubscribed": not subscribed,
                "unsubscribed_at": None if subscribed else utcnow(),
            },
        )

    async def unsubscribe_email(self, email: str) -> NewsletterSubscriberRead:
        try:
            normalized = normalize_email(email)
        except ValueError:
            raise ValidationError("Please provide a valid email address", error="Invalid email format")
        existing = await self.find_by_email(normalized)
        if existing is None:
            raise NotFound(f"No subscriber with email {normalized}", error="Subscriber not found")
        if existing.unsubscribed:
            return existing
        return await self.set_subscribed(existing.id, False)

    async def recipients(
        self, send_to: Optional[str], subscriber_ids: Sequence[UUID] = ()
    ) -> list[NewsletterSubscriberRead]:
        if send_to == "all":
            return await self.list({"unsubscribed": False})
        if send_to == "selected":
            if not subscriber_ids:
                return []
            return await self.list({"id": list(subscriber_ids), "unsubscribed": False})
        if send_to == "unsubscribed":
            return await self.list({"unsubscribed": True})
        return []


class NewsletterDocumentRepository(EntityRepository[NewsletterUploadWrite, NewsletterUploadRead]):
    collection = NEWSLETTER_UPLOADS
    write_schema = NewsletterUploadWrite
    read_schema = NewsletterUploadRead
    entity_name = "Newsletter"
