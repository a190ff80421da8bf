"""Pydantic schemas package."""

from jobportal.schemas.forms import parse_form
from jobportal.schemas.user import (
    RegistrationForm,
    LoginForm,
    ProfileUpdateForm,
    NewPasswordForm,
    RoleUpdateForm,
    password_policy_errors,
)
from jobportal.schemas.position import PositionForm, PositionRead
from jobportal.schemas.application import (
    ApplicationStatusForm,
    ApplyForm,
    sanitize_notes,
)

__all__ = [
    "parse_form",
    # User
    "RegistrationForm",
    "LoginForm",
    "ProfileUpdateForm",
    "NewPasswordForm",
    "RoleUpdateForm",
    "password_policy_errors",
    # Position
    "PositionForm",
    "PositionRead",
    # Application
    "ApplicationStatusForm",
    "ApplyForm",
    "sanitize_notes",
]
