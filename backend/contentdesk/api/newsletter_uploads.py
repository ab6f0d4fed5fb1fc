import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from contentdesk.api.deps import get_services, parse_form_json, read_upload, validate_fields
from contentdesk.errors import ValidationError
from contentdesk.schemas.common import MessageResponse
from contentdesk.schemas.newsletter import (
    NewsletterUploadEnvelope,
    NewsletterUploadRead,
    NewsletterUploadWrite,
)
from contentdesk.services.container import Services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/newsletter", tags=["newsletter-uploads"])


def _metadata(
    data: Optional[str],
    name: Optional[str],
    category: Optional[str],
    date: Optional[str],
) -> NewsletterUploadWrite:
    """Metadata comes either as a JSON ``data`` field or as plain form fields."""
    if data:
        return parse_form_json(data, NewsletterUploadWrite)
    fields = {"name": name, "category": category, "date": date}
    return validate_fields({k: v for k, v in fields.items() if v is not None}, NewsletterUploadWrite)


@router.post("/upload", response_model=NewsletterUploadEnvelope, status_code=status.HTTP_201_CREATED)
async def upload_newsletter(
    pdf: Optional[UploadFile] = File(None),
    data: Optional[str] = Form(None),
    name: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    date: Optional[str] = Form(None),
    services: Services = Depends(get_services),
):
    """Upload a newsletter PDF with its display metadata.

    Metadata is checked first, then the file; nothing is written unless both
    pass. A failure to save the row after the PDF was written leaves the PDF
    orphaned on disk.
    """
    fields = _metadata(data, name, category, date)

    upload = await read_upload(pdf, services.pdfs)
    if upload is None:
        limit_mb = services.pdfs.kind.max_bytes // (1024 * 1024)
        raise ValidationError(
            f"Please select a PDF file to upload. Make sure the file is a valid PDF and under {limit_mb}MB.",
            error="No file uploaded",
        )

    stored = await services.pdfs.store(upload.payload, upload.filename, upload.media_type)
    newsletter = await services.newsletter_documents.create(
        fields,
        {"filename": stored.stored_name, "original_name": stored.original_name},
    )
    logger.info(f"Newsletter uploaded: {newsletter.id} ({stored.stored_name})")
    return NewsletterUploadEnvelope(
        message="Newsletter uploaded successfully",
        newsletter=newsletter,
        url=stored.public_path,
    )


@router.get("/uploads", response_model=List[NewsletterUploadRead])
async def list_uploads(services: Services = Depends(get_services)):
    return await services.newsletter_documents.list()


@router.get("/uploads/{upload_id}", response_model=NewsletterUploadRead)
async def get_upload(upload_id: str, services: Services = Depends(get_services)):
    return await services.newsletter_documents.get(upload_id)


@router.put("/uploads/{upload_id}", response_model=NewsletterUploadEnvelope)
async def update_upload(
    upload_id: str,
    pdf: Optional[UploadFile] = File(None),
    data: Optional[str] = Form(None),
    name: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    date: Optional[str] = Form(None),
    services: Services = Depends(get_services),
):
    """Replace the metadata; a new PDF replaces (and removes) the old file."""
    fields = _metadata(data, name, category, date)
    existing = await services.newsletter_documents.get(upload_id)

    system_fields = {}
    upload = await read_upload(pdf, services.pdfs)
    if upload is not None:
        stored = await services.pdfs.replace(existing.filename, upload.payload, upload.filename, upload.media_type)
        system_fields = {"filename": stored.stored_name, "original_name": stored.original_name}

    newsletter = await services.newsletter_documents.update(existing.id, fields, system_fields)
    return NewsletterUploadEnvelope(
        message="Newsletter updated successfully",
        newsletter=newsletter,
        url=services.pdfs.public_path(newsletter.filename),
    )


@router.delete("/uploads/{upload_id}", response_model=MessageResponse)
async def delete_upload(upload_id: str, services: Services = Depends(get_services)):
    newsletter = await services.newsletter_documents.delete(upload_id)
    await services.pdfs.delete(newsletter.filename)
    return MessageResponse(message="Newsletter deleted successfully")
