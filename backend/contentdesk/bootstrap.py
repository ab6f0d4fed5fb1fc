"""Startup preparation: attachment directories and backend schema."""

import logging

from contentdesk.services.container import Services

logger = logging.getLogger(__name__)


async def bootstrap(services: Services) -> None:
    """Create the upload directories, then tables (SQL) or check reachability (Redis).

    Safe to run on every start; nothing existing is modified.
    """
    for attachments in (services.images, services.pdfs):
        attachments.ensure_directory()
    logger.info(f"Upload directories ready under {services.settings.uploads_dir}")

    await services.store.initialize()
    logger.info(f"Storage backend '{services.settings.storage_backend}' initialized")
