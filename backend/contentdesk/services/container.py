"""Application-scoped collaborators, built once and handed to request handlers."""

import logging
from dataclasses import dataclass
from typing import Optional

from contentdesk.config import Settings
from contentdesk.repositories.entities import (
    ContactSubmissionRepository,
    NewsletterDocumentRepository,
    PostRepository,
    SubscriberRepository,
    TestimonialRepository,
)
from contentdesk.services.attachments import AttachmentStore, image_kind, pdf_kind
from contentdesk.services.notifications import LoggingNotificationSink, NotificationSink
from contentdesk.storage import DocumentStore, create_store

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    store: DocumentStore
    images: AttachmentStore
    pdfs: AttachmentStore
    notifications: NotificationSink
    posts: PostRepository
    contact_submissions: ContactSubmissionRepository
    testimonials: TestimonialRepository
    subscribers: SubscriberRepository
    newsletter_documents: NewsletterDocumentRepository

    async def close(self) -> None:
        await self.store.close()


def build_services(
    settings: Settings,
    store: Optional[DocumentStore] = None,
    notifications: Optional[NotificationSink] = None,
) -> Services:
    store = store or create_store(settings)
    return Services(
        settings=settings,
        store=store,
        images=AttachmentStore(image_kind(settings)),
        pdfs=AttachmentStore(pdf_kind(settings)),
        notifications=notifications or LoggingNotificationSink(settings.newsletter_send_delay_seconds),
        posts=PostRepository(store),
        contact_submissions=ContactSubmissionRepository(store),
        testimonials=TestimonialRepository(store),
        subscribers=SubscriberRepository(store),
        newsletter_documents=NewsletterDocumentRepository(store),
    )
