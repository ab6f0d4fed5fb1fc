from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from contentdesk.schemas.common import WriteModel, normalize_email, require_text


class ContactSubmissionWrite(WriteModel):
    name: str = Field(..., max_length=100)
    email: str = Field(..., max_length=255)
    phone: str = Field("", max_length=50)
    subject: str = Field(..., max_length=255)
    message: str

    @field_validator("name", "subject", "message")
    @classmethod
    def required(cls, v: str, info) -> str:
        return require_text(v, info.field_name)

    @field_validator("email")
    @classmethod
    def valid_email(cls, v: str) -> str:
        require_text(v, "email")
        return normalize_email(v)

    @field_validator("phone", mode="before")
    @classmethod
    def default_phone(cls, v):
        return "" if v is None else v


class ReadFlagUpdate(WriteModel):
    read: bool


class ContactSubmissionRead(BaseModel):
    id: UUID
    name: str
    email: str
    phone: str
    subject: str
    message: str
    read: bool
    created_at: datetime

    model_config = {"from_attributes": True}
