"""Helpers for turning submitted form data into validated schema objects."""

from typing import Mapping, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError

from jobportal.services.errors import ValidationError

M = TypeVar("M", bound=BaseModel)


def blank_to_none(value):
    """Treat empty form fields as missing."""
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def check_length(value: str | None, limit: int, label: str) -> str | None:
    """Reject text longer than the column that stores it."""
    if isinstance(value, str) and len(value) > limit:
        raise ValueError(f"{label} must be at most {limit} characters.")
    return value


def parse_form(schema: type[M], data: Mapping) -> M:
    """Validate form data against ``schema`` or raise a domain ValidationError."""
    try:
        return schema.model_validate(dict(data))
    except PydanticValidationError as exc:
        messages = []
        for err in exc.errors():
            message = _error_message(schema, err)
            if message not in messages:
                messages.append(message)
        raise ValidationError(messages) from exc


def _error_message(schema: type[BaseModel], err: dict) -> str:
    if err["type"] == "value_error" and "error" in err.get("ctx", {}):
        return str(err["ctx"]["error"])
    field = str(err["loc"][0]) if err["loc"] else ""
    field_messages = getattr(schema, "field_messages", {})
    if field in field_messages:
        return field_messages[field]
    return f"{field.replace('_', ' ').capitalize()}: {err['msg']}"
