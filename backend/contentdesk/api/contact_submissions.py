from typing import List

from fastapi import APIRouter, Depends, status

from contentdesk.api.deps import get_services
from contentdesk.schemas.common import MessageResponse
from contentdesk.schemas.contact_submission import (
    ContactSubmissionRead,
    ContactSubmissionWrite,
    ReadFlagUpdate,
)
from contentdesk.services.container import Services

router = APIRouter(prefix="/contact-submissions", tags=["contact-submissions"])


@router.post("", response_model=ContactSubmissionRead, status_code=status.HTTP_201_CREATED)
async def create_contact_submission(data: ContactSubmissionWrite, services: Services = Depends(get_services)):
    """Submit the contact form. No authentication required."""
    return await services.contact_submissions.create(data)


@router.get("", response_model=List[ContactSubmissionRead])
async def list_contact_submissions(services: Services = Depends(get_services)):
    return await services.contact_submissions.list()


@router.get("/{submission_id}", response_model=ContactSubmissionRead)
async def get_contact_submission(submission_id: str, services: Services = Depends(get_services)):
    return await services.contact_submissions.get(submission_id)


@router.put("/{submission_id}", response_model=ContactSubmissionRead)
async def update_contact_submission(
    submission_id: str,
    data: ContactSubmissionWrite,
    services: Services = Depends(get_services),
):
    return await services.contact_submissions.update(submission_id, data)


@router.put("/{submission_id}/read", response_model=ContactSubmissionRead)
async def mark_contact_submission_read(
    submission_id: str,
    data: ReadFlagUpdate,
    services: Services = Depends(get_services),
):
    return await services.contact_submissions.set_read(submission_id, data.read)


@router.delete("/{submission_id}", response_model=MessageResponse)
async def delete_contact_submission(submission_id: str, services: Services = Depends(get_services)):
    await services.contact_submissions.delete(submission_id)
    return MessageResponse(message="Contact submission deleted")
