"""Attachment store: uploaded files on local disk, referenced from records by path.

Writes are strict (media type and size are checked before anything touches the
disk); removals are lenient (a file that is already gone, or that cannot be
removed, never fails the operation that asked for the cleanup). There is no
transactional coupling with the database row that references a file.
"""

import asyncio
import logging
import os
import random
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from contentdesk.config import Settings
from contentdesk.errors import InvalidMediaType, PayloadTooLarge

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


@dataclass(frozen=True)
class AttachmentKind:
    name: str
    directory: Path
    url_prefix: str
    max_bytes: int
    accepts: Callable[[str], bool]
    rejection: str


@dataclass(frozen=True)
class StoredRef:
    stored_name: str
    original_name: str
    public_path: str


def image_kind(settings: Settings) -> AttachmentKind:
    return AttachmentKind(
        name="image",
        directory=settings.uploads_dir,
        url_prefix="/uploads",
        max_bytes=settings.image_max_bytes,
        accepts=lambda media_type: media_type.startswith("image/"),
        rejection="Only image files are allowed",
    )


def pdf_kind(settings: Settings) -> AttachmentKind:
    return AttachmentKind(
        name="pdf",
        directory=settings.newsletters_dir,
        url_prefix=f"/uploads/{settings.newsletters_subdir}",
        max_bytes=settings.pdf_max_bytes,
        accepts=lambda media_type: media_type == "application/pdf",
        rejection="Only PDF files are allowed",
    )


def sanitize_filename(original_name: str) -> str:
    """Keep a readable suffix from a client-supplied name without path parts."""
    base = os.path.basename((original_name or "").replace("\\", "/"))
    cleaned = _UNSAFE_CHARS.sub("_", base).lstrip(".")
    return cleaned or "upload"


def generate_storage_name(original_name: str) -> str:
    return f"{time.time_ns()}-{random.randint(0, 10**9)}-{sanitize_filename(original_name)}"


def _write_new_file(path: Path, payload: bytes) -> None:
    # "xb" refuses to overwrite, so a name collision surfaces as FileExistsError
    with open(path, "xb") as fh:
        fh.write(payload)


class AttachmentStore:
    """Files of one kind (post images or newsletter PDFs) in one directory."""

    def __init__(self, kind: AttachmentKind):
        self.kind = kind

    @property
    def directory(self) -> Path:
        return self.kind.directory

    def ensure_directory(self) -> None:
        if not self.directory.exists():
            logger.info(f"Creating {self.kind.name} upload directory at {self.directory}")
        self.directory.mkdir(parents=True, exist_ok=True)

    def public_path(self, stored_name: str) -> str:
        return f"{self.kind.url_prefix}/{stored_name}"

    def resolve(self, ref: Optional[str]) -> Optional[Path]:
        """Map a stored name or public path onto a file in this store's directory.

        Returns None for empty references and for anything outside the managed
        directory (foreign prefixes, nested paths, ``..``).
        """
        if not ref:
            return None
        name = ref
        prefix = self.kind.url_prefix + "/"
        if name.startswith(prefix):
            name = name[len(prefix):]
        elif name.startswith("/"):
            return None
        if not name or "/" in name or "\\" in name or name in (".", ".."):
            return None
        path = self.directory / name
        if path.resolve().parent != self.directory.resolve():
            return None
        return path

    def exists(self, ref: Optional[str]) -> bool:
        path = self.resolve(ref)
        return path is not None and path.is_file()

    def validate(self, payload: bytes, media_type: Optional[str]) -> None:
        if not media_type or not self.kind.accepts(media_type.lower()):
            raise InvalidMediaType(self.kind.rejection)
        if len(payload) > self.kind.max_bytes:
            limit_mb = self.kind.max_bytes // (1024 * 1024)
            raise PayloadTooLarge(f"{self.kind.name.upper()} files must be {limit_mb}MB or smaller")

    async def store(self, payload: bytes, original_name: str, media_type: Optional[str]) -> StoredRef:
        self.validate(payload, media_type)
        self.ensure_directory()
        while True:
            stored_name = generate_storage_name(original_name)
            try:
                await asyncio.to_thread(_write_new_file, self.directory / stored_name, payload)
                break
            except FileExistsError:
                logger.warning(f"Generated {self.kind.name} name collided, regenerating: {stored_name}")
        logger.info(f"Stored {self.kind.name} {stored_name} ({len(payload)} bytes)")
        return StoredRef(
            stored_name=stored_name,
            original_name=original_name,
            public_path=self.public_path(stored_name),
        )

    async def replace(
        self,
        old_ref: Optional[str],
        payload: bytes,
        original_name: str,
        media_type: Optional[str],
    ) -> StoredRef:
        """Store the new payload, then drop the file ``old_ref`` points at."""
        stored = await self.store(payload, original_name, media_type)
        if old_ref and old_ref != stored.public_path:
            await self.delete(old_ref)
        return stored

    async def delete(self, ref: Optional[str]) -> bool:
        """Remove the referenced file. Returns True only if a file was removed."""
        path = self.resolve(ref)
        if path is None:
            if ref:
                logger.debug(f"Ignoring {self.kind.name} reference outside the upload directory: {ref}")
            return False
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"Failed to remove {self.kind.name} file {path.name}: {type(e).__name__}: {e}")
            return False
        logger.info(f"Removed {self.kind.name} file {path.name}")
        return True
