"""Pluggable persistence for entity repositories."""

import logging

from contentdesk.config import Settings
from contentdesk.storage.base import (
    COLLECTIONS,
    CONTACT_SUBMISSIONS,
    NEWSLETTER_UPLOADS,
    POSTS,
    SUBSCRIBERS,
    TESTIMONIALS,
    Collection,
    Document,
    DocumentStore,
)

logger = logging.getLogger(__name__)


def create_store(settings: Settings) -> DocumentStore:
    """Build the backend selected by ``STORAGE_BACKEND``."""
    if settings.storage_backend == "redis":
        from contentdesk.storage.redis_store import RedisDocumentStore, create_redis_client

        logger.info("Using Redis document store")
        return RedisDocumentStore(create_redis_client(settings), prefix=settings.redis_key_prefix)

    from contentdesk.database import Database
    from contentdesk.storage.sql import SqlDocumentStore

    return SqlDocumentStore(Database(settings))


__all__ = [
    "COLLECTIONS",
    "CONTACT_SUBMISSIONS",
    "NEWSLETTER_UPLOADS",
    "POSTS",
    "SUBSCRIBERS",
    "TESTIMONIALS",
    "Collection",
    "Document",
    "DocumentStore",
    "create_store",
]
