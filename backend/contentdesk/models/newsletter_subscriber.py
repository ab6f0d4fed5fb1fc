import uuid

from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.dialects.postgresql import UUID

from contentdesk.database import Base
from contentdesk.utils.clock import utcnow


class NewsletterSubscriber(Base):
    __tablename__ = "newsletter_subscribers"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # Stored lowercased; unique across active and unsubscribed rows
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(100), default="", nullable=False)
    subscribed_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    unsubscribed = Column(Boolean, default=False, nullable=False)
    unsubscribed_at = Column(DateTime(timezone=True), nullable=True)
