import json
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from fastapi import Request, UploadFile
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from contentdesk.errors import ValidationError, from_pydantic
from contentdesk.services.attachments import AttachmentStore
from contentdesk.services.container import Services

def get_services(request: Request) -> Services:
    """Dependency returning the application's service container."""
    return request.app.state.services


@dataclass(frozen=True)
class Upload:
    payload: bytes
    filename: str
    media_type: Optional[str]


def validate_fields(fields: Mapping[str, Any], schema: type[BaseModel]) -> BaseModel:
    try:
        return schema.model_validate(fields)
    except PydanticValidationError as e:
        raise from_pydantic(e) from e


def parse_form_json(raw: Optional[str], schema: type[BaseModel]) -> BaseModel:
    """Validate the JSON-encoded ``data`` form field of a multipart request."""
    try:
        fields = json.loads(raw) if raw else {}
    except json.JSONDecodeError as e:
        raise ValidationError(f"The data field is not valid JSON: {e.msg}", error="Invalid data field")
    if not isinstance(fields, dict):
        raise ValidationError("The data field must be a JSON object", error="Invalid data field")
    return validate_fields(fields, schema)


async def read_upload(file: Optional[UploadFile], attachments: AttachmentStore) -> Optional[Upload]:
    """Read an uploaded file, at most one byte past the kind's size ceiling."""
    if file is None or not file.filename:
        return None
    try:
        payload = await file.read(attachments.kind.max_bytes + 1)
    finally:
        await file.close()
    return Upload(payload=payload, filename=file.filename, media_type=file.content_type)
