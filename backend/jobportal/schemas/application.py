"""Pydantic schemas for Application forms."""

import re
from typing import ClassVar, Literal

from pydantic import BaseModel, field_validator

from jobportal.schemas.forms import blank_to_none

MAX_NOTES_LENGTH = 1000

_TAG_PATTERN = re.compile(r"<[^>]*>")


def sanitize_notes(notes: str | None) -> str | None:
    """Strip markup and clamp to MAX_NOTES_LENGTH characters."""
    if notes is None:
        return None
    cleaned = _TAG_PATTERN.sub("", notes).strip()
    return cleaned[:MAX_NOTES_LENGTH]


class ApplicationStatusForm(BaseModel):
    field_messages: ClassVar[dict[str, str]] = {
        "status": "Invalid status selected.",
    }

    status: Literal["pending", "reviewed", "accepted", "rejected"]
    notes: str | None = None

    @field_validator("notes", mode="before")
    @classmethod
    def clean_notes(cls, value):
        if value is None:
            return None
        return sanitize_notes(str(value))


class ApplyForm(BaseModel):
    """Existing document selections on the apply form. Missing slots are filled by uploads."""

    field_messages: ClassVar[dict[str, str]] = {
        "cv_document_id": "Invalid CV selection.",
        "cover_letter_document_id": "Invalid cover letter selection.",
    }

    cv_document_id: int | None = None
    cover_letter_document_id: int | None = None

    @field_validator("cv_document_id", "cover_letter_document_id", mode="before")
    @classmethod
    def optional_ids(cls, value):
        return blank_to_none(value)
