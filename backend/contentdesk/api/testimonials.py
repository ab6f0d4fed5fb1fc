from typing import List

from fastapi import APIRouter, Depends, status

from contentdesk.api.deps import get_services
from contentdesk.schemas.common import MessageResponse
from contentdesk.schemas.testimonial import (
    ActiveFlagUpdate,
    TestimonialEnvelope,
    TestimonialRead,
    TestimonialWrite,
)
from contentdesk.services.container import Services

router = APIRouter(prefix="/testimonials", tags=["testimonials"])


@router.get("", response_model=List[TestimonialRead])
async def list_active_testimonials(services: Services = Depends(get_services)):
    """Testimonials currently shown on the site."""
    return await services.testimonials.list_active()


@router.get("/all", response_model=List[TestimonialRead])
async def list_all_testimonials(services: Services = Depends(get_services)):
    return await services.testimonials.list()


@router.get("/{testimonial_id}", response_model=TestimonialRead)
async def get_testimonial(testimonial_id: str, services: Services = Depends(get_services)):
    return await services.testimonials.get(testimonial_id)


@router.post("", response_model=TestimonialEnvelope, status_code=status.HTTP_201_CREATED)
async def create_testimonial(data: TestimonialWrite, services: Services = Depends(get_services)):
    testimonial = await services.testimonials.create(data)
    return TestimonialEnvelope(message="Testimonial created successfully", testimonial=testimonial)


@router.put("/{testimonial_id}", response_model=TestimonialEnvelope)
async def update_testimonial(
    testimonial_id: str,
    data: TestimonialWrite,
    services: Services = Depends(get_services),
):
    testimonial = await services.testimonials.update(testimonial_id, data)
    return TestimonialEnvelope(message="Testimonial updated successfully", testimonial=testimonial)


@router.put("/{testimonial_id}/active", response_model=TestimonialEnvelope)
async def set_testimonial_active(
    testimonial_id: str,
    data: ActiveFlagUpdate,
    services: Services = Depends(get_services),
):
    testimonial = await services.testimonials.set_active(testimonial_id, data.active)
    state = "activated" if testimonial.active else "deactivated"
    return TestimonialEnvelope(message=f"Testimonial {state}", testimonial=testimonial)


@router.delete("/{testimonial_id}", response_model=MessageResponse)
async def delete_testimonial(testimonial_id: str, services: Services = Depends(get_services)):
    await services.testimonials.delete(testimonial_id)
    return MessageResponse(message="Testimonial deleted successfully")
