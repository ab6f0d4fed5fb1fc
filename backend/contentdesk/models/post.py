import uuid

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID

from contentdesk.database import Base
from contentdesk.utils.clock import utcnow


class Post(Base):
    __tablename__ = "blogs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    excerpt = Column(Text, nullable=True)
    content = Column(Text, nullable=False)
    author = Column(String(100), nullable=True)
    category = Column(String(100), nullable=True)
    # Free-form label such as "March 2024"; never parsed
    date = Column(String(100), nullable=True)
    tags = Column(JSON, default=list, nullable=False)
    featured = Column(Boolean, default=False, nullable=False, index=True)
    views = Column(Integer, default=0, nullable=False)
    # Public attachment paths ("/uploads/<name>") or empty
    image = Column(String(500), default="", nullable=False)
    thumbnail = Column(String(500), default="", nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
