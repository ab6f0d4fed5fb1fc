import re

from pydantic import BaseModel, ConfigDict

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(value: str) -> str:
    """Trim and lowercase an address, then check its basic shape."""
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Please provide a valid email address")
    return value


def require_text(value: str, field_name: str) -> str:
    if not value:
        raise ValueError(f"{field_name.replace('_', ' ').capitalize()} is required")
    return value


class WriteModel(BaseModel):
    """Base for request bodies: trims strings and rejects unknown fields."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, populate_by_name=True)


class MessageResponse(BaseModel):
    message: str
