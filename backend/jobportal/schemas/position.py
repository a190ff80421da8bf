"""Pydantic schemas for Position forms and read models."""

from datetime import datetime
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, HttpUrl, TypeAdapter, field_validator

from jobportal.schemas.forms import blank_to_none, check_length

_url_adapter = TypeAdapter(HttpUrl)

MIN_AMOUNT = 1
MAX_AMOUNT = 25
MAX_TEXT_LENGTH = 255
MAX_URL_LENGTH = 2048


class PositionForm(BaseModel):
    """Create/update input for a position."""

    field_messages: ClassVar[dict[str, str]] = {
        "title": "Position title is required.",
        "department": "Department is required.",
        "location": "Location is required.",
        "amount": f"Number of openings must be a whole number between {MIN_AMOUNT} and {MAX_AMOUNT}.",
    }

    title: str
    department: str
    location: str
    amount: int
    description: str | None = None
    resource_url: str | None = None

    @field_validator("title", "department", "location", mode="before")
    @classmethod
    def required_text(cls, value, info):
        if isinstance(value, str):
            value = value.strip()
        if not value:
            raise ValueError(cls.field_messages[info.field_name])
        return check_length(value, MAX_TEXT_LENGTH, info.field_name.capitalize())

    @field_validator("amount")
    @classmethod
    def check_amount(cls, value: int) -> int:
        if not MIN_AMOUNT <= value <= MAX_AMOUNT:
            raise ValueError(cls.field_messages["amount"])
        return value

    @field_validator("description", "resource_url", mode="before")
    @classmethod
    def optional_fields(cls, value):
        return blank_to_none(value)

    @field_validator("resource_url")
    @classmethod
    def check_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        check_length(value, MAX_URL_LENGTH, "Resource link")
        try:
            _url_adapter.validate_python(value)
        except ValueError:
            raise ValueError("Resource link must be a valid URL.") from None
        return value


class PositionRead(BaseModel):
    """Position with creator info and application count for list views."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    creator_id: int
    title: str
    department: str
    location: str
    amount: int
    description: str | None = None
    resource_url: str | None = None
    created_at: datetime
    creator_username: str | None = None
    creator_full_name: str | None = None
    application_count: int = 0
