from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from contentdesk.schemas.common import WriteModel, require_text

RATING_MIN = 1
RATING_MAX = 5


class TestimonialWrite(WriteModel):
    name: str = Field(..., max_length=100)
    company: str = Field(..., max_length=255)
    rating: int
    testimonial: str = ""
    active: bool = True

    @field_validator("name", "company")
    @classmethod
    def required(cls, v: str, info) -> str:
        return require_text(v, info.field_name)

    @field_validator("rating")
    @classmethod
    def rating_in_range(cls, v: int) -> int:
        if not RATING_MIN <= v <= RATING_MAX:
            raise ValueError(f"Rating must be between {RATING_MIN} and {RATING_MAX}")
        return v

    @field_validator("testimonial", mode="before")
    @classmethod
    def default_text(cls, v):
        return "" if v is None else v

    @field_validator("active", mode="before")
    @classmethod
    def default_active(cls, v):
        return True if v is None else v


class ActiveFlagUpdate(WriteModel):
    active: bool


class TestimonialRead(BaseModel):
    id: UUID
    name: str
    company: str
    rating: int
    testimonial: str
    active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class TestimonialEnvelope(BaseModel):
    message: str
    testimonial: TestimonialRead
