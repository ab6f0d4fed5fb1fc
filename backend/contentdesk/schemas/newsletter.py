from datetime import date, datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from contentdesk.schemas.common import WriteModel, normalize_email, require_text


class NewsletterSubscribeRequest(WriteModel):
    email: str = Field(..., max_length=255)
    name: str = Field("", max_length=100)

    @field_validator("email")
    @classmethod
    def valid_email(cls, v: str) -> str:
        require_text(v, "email")
        return normalize_email(v)

    @field_validator("name", mode="before")
    @classmethod
    def default_name(cls, v):
        return "" if v is None else v


class NewsletterUnsubscribeRequest(WriteModel):
    email: str

    @field_validator("email")
    @classmethod
    def valid_email(cls, v: str) -> str:
        require_text(v, "email")
        return normalize_email(v)


class NewsletterSubscriberRead(BaseModel):
    id: UUID
    email: str
    name: str
    subscribed_at: datetime
    unsubscribed: bool
    unsubscribed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SubscriberEnvelope(BaseModel):
    message: str
    subscriber: NewsletterSubscriberRead


class NewsletterSendRequest(WriteModel):
    subject: str
    content: str
    # No audience means no recipients
    send_to: Optional[Literal["all", "selected", "unsubscribed"]] = Field(None, alias="sendTo")
    subscriber_ids: List[UUID] = Field(default_factory=list, alias="subscriberIds")

    @field_validator("subject", "content")
    @classmethod
    def required(cls, v: str, info) -> str:
        return require_text(v, info.field_name)


class NewsletterSendResponse(BaseModel):
    message: str
    sent_to: int = Field(alias="sentTo")

    model_config = {"populate_by_name": True}


class NewsletterUploadWrite(WriteModel):
    name: str = Field(..., max_length=255)
    category: str = Field(..., max_length=100)
    date: date

    @field_validator("name", "category")
    @classmethod
    def required(cls, v: str, info) -> str:
        return require_text(v, info.field_name)


class NewsletterUploadRead(BaseModel):
    id: UUID
    name: str
    category: str
    date: date
    filename: str
    original_name: str
    uploaded_at: datetime

    model_config = {"from_attributes": True}


class NewsletterUploadEnvelope(BaseModel):
    message: str
    newsletter: NewsletterUploadRead
    url: str
