import uuid

from sqlalchemy import Column, Date, DateTime, String
from sqlalchemy.dialects.postgresql import UUID

from contentdesk.database import Base
from contentdesk.utils.clock import utcnow


class NewsletterUpload(Base):
    __tablename__ = "newsletter_uploads"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=False)
    date = Column(Date, nullable=False)
    # Generated storage name inside the newsletters directory
    filename = Column(String(255), nullable=False)
    original_name = Column(String(255), nullable=False)
    uploaded_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
