"""Error taxonomy shared by the storage, repository and HTTP layers.

Every error carries a short ``error`` label and a human-readable ``details``
string; the HTTP layer renders both verbatim as ``{"error": ..., "details": ...}``.
"""

from pydantic import ValidationError as PydanticValidationError


class ContentDeskError(Exception):
    status_code: int = 500
    error: str = "Internal server error"

    def __init__(self, details: str = "", *, error: str | None = None):
        if error is not None:
            self.error = error
        self.details = details or self.error
        super().__init__(f"{self.error}: {self.details}")


class ValidationError(ContentDeskError):
    status_code = 400
    error = "Validation failed"


class AlreadySubscribed(ValidationError):
    error = "Email already subscribed"


class NotFound(ContentDeskError):
    status_code = 404
    error = "Not found"


class InvalidMediaType(ContentDeskError):
    status_code = 400
    error = "Invalid file type"


class PayloadTooLarge(ContentDeskError):
    status_code = 400
    error = "File too large"


class StorageUnavailable(ContentDeskError):
    status_code = 503
    error = "Storage unavailable"


class DuplicateKeyError(ContentDeskError):
    """Raised by a store when a unique field value is already claimed."""

    status_code = 400
    error = "Duplicate value"

    def __init__(self, field: str, value: str):
        self.field = field
        self.value = value
        super().__init__(f"{field} already exists")


def _format_loc(loc: tuple) -> str:
    return ".".join(str(part) for part in loc if part not in ("body",)) or "body"


def _format_msg(msg: str) -> str:
    # pydantic prefixes messages raised from validators
    return msg.removeprefix("Value error, ")


def describe_validation_errors(errors: list[dict]) -> tuple[str, str]:
    """Turn pydantic error dicts into an ``(error, details)`` pair.

    The label is the first problem found; details lists all of them.
    """
    if not errors:
        return ValidationError.error, ValidationError.error
    first = errors[0]
    label = f"{_format_loc(tuple(first.get('loc', ())))}: {_format_msg(first.get('msg', ''))}"
    details = "; ".join(
        f"{_format_loc(tuple(err.get('loc', ())))}: {_format_msg(err.get('msg', ''))}" for err in errors
    )
    return label, details


def from_pydantic(exc: PydanticValidationError) -> ValidationError:
    label, details = describe_validation_errors(exc.errors())
    return ValidationError(details, error=label)
