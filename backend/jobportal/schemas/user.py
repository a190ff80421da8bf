"""Pydantic schemas for user forms: registration, login, profile, password, role."""

import re
from typing import ClassVar, Literal

from pydantic import BaseModel, EmailStr, field_validator, model_validator

from jobportal.config import get_settings
from jobportal.schemas.forms import blank_to_none, check_length
from jobportal.services.auth_service import MAX_PASSWORD_BYTES

DIGITS = "0123456789"
PHONE_PATTERN = re.compile(r"^\d{8}$")

MAX_USERNAME_LENGTH = 50
MAX_EMAIL_LENGTH = 255
MAX_FULL_NAME_LENGTH = 100


def username_pattern() -> re.Pattern:
    extra = re.escape(get_settings().username_extra_chars)
    return re.compile(rf"^[A-Za-z0-9_\-{extra}]+$")


def password_policy_errors(password: str) -> list[str]:
    """Return every complexity rule the password breaks."""
    errors = []
    if len(password) < 8:
        errors.append("Password must be at least 8 characters.")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        errors.append(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")
    if not any(ch.isupper() for ch in password):
        errors.append("Password must contain at least one uppercase letter.")
    if not any(ch.islower() for ch in password):
        errors.append("Password must contain at least one lowercase letter.")
    if sum(1 for ch in password if ch in DIGITS) < 2:
        errors.append("Password must contain at least two digits.")
    return errors


def _check_password(password: str) -> str:
    errors = password_policy_errors(password)
    if errors:
        raise ValueError(" ".join(errors))
    return password


def _check_phone(phone: str | None) -> str | None:
    if phone is not None and not PHONE_PATTERN.match(phone):
        raise ValueError("Phone number must be exactly 8 digits.")
    return phone


class RegistrationForm(BaseModel):
    """Registration input, fully checked before any database work."""

    field_messages: ClassVar[dict[str, str]] = {
        "username": "Username is required.",
        "email": "A valid email address is required.",
        "password": "Password is required.",
    }

    username: str
    email: EmailStr
    password: str
    confirm_password: str | None = None
    full_name: str | None = None
    phone: str | None = None

    @field_validator("username", mode="before")
    @classmethod
    def normalize_username(cls, value):
        value = (value or "").strip().lower()
        if not value:
            raise ValueError("Username is required.")
        if not username_pattern().match(value):
            raise ValueError("Username may only contain letters, digits, underscores and hyphens.")
        return check_length(value, MAX_USERNAME_LENGTH, "Username")

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, value):
        return check_length((value or "").strip(), MAX_EMAIL_LENGTH, "Email address")

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        return _check_password(value)

    @field_validator("full_name", "phone", "confirm_password", mode="before")
    @classmethod
    def optional_fields(cls, value):
        return blank_to_none(value)

    @field_validator("full_name")
    @classmethod
    def check_full_name(cls, value: str | None) -> str | None:
        return check_length(value, MAX_FULL_NAME_LENGTH, "Full name")

    @field_validator("phone")
    @classmethod
    def check_phone(cls, value: str | None) -> str | None:
        return _check_phone(value)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.confirm_password is not None and self.confirm_password != self.password:
            raise ValueError("Passwords do not match.")
        return self


class LoginForm(BaseModel):
    field_messages: ClassVar[dict[str, str]] = {
        "identifier": "Username or email is required.",
        "password": "Password is required.",
    }

    identifier: str
    password: str

    @field_validator("identifier", mode="before")
    @classmethod
    def normalize_identifier(cls, value):
        value = (value or "").strip().lower()
        if not value:
            raise ValueError("Username or email is required.")
        return value

    @field_validator("password")
    @classmethod
    def require_password(cls, value: str) -> str:
        if not value:
            raise ValueError("Password is required.")
        return value


class ProfileUpdateForm(BaseModel):
    full_name: str | None = None
    phone: str | None = None

    @field_validator("full_name", "phone", mode="before")
    @classmethod
    def optional_fields(cls, value):
        return blank_to_none(value)

    @field_validator("full_name")
    @classmethod
    def check_full_name(cls, value: str | None) -> str | None:
        return check_length(value, MAX_FULL_NAME_LENGTH, "Full name")

    @field_validator("phone")
    @classmethod
    def check_phone(cls, value: str | None) -> str | None:
        return _check_phone(value)


class NewPasswordForm(BaseModel):
    """New password plus confirmation, used by reset and change-password."""

    field_messages: ClassVar[dict[str, str]] = {
        "password": "Password is required.",
        "confirm_password": "Please confirm the new password.",
    }

    password: str
    confirm_password: str

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        return _check_password(value)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.confirm_password != self.password:
            raise ValueError("Passwords do not match.")
        return self


class RoleUpdateForm(BaseModel):
    field_messages: ClassVar[dict[str, str]] = {
        "role": "Invalid role selected.",
    }

    role: Literal["student", "employee", "admin"]
