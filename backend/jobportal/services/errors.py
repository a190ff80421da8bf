"""Domain errors raised by the service layer and translated by the routes."""

from datetime import datetime


class PortalError(Exception):
    """Base class for errors that carry a user-facing message."""

    default_message = "Something went wrong. Please try again later."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(PortalError):
    """Bad input shape. Holds every message so a form can show them all."""

    default_message = "Invalid input."

    def __init__(self, errors: list[str] | str | None = None):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors or [self.default_message])
        super().__init__(" ".join(self.errors))


class Unauthenticated(PortalError):
    default_message = "Please log in to continue."


class InvalidCredentials(PortalError):
    default_message = "Invalid username or password."


class AccountLocked(PortalError):
    default_message = "Too many failed login attempts. The account is locked for a while."

    def __init__(self, until: datetime | None = None, message: str | None = None):
        self.until = until
        super().__init__(message)


class Forbidden(PortalError):
    default_message = "You do not have access to this action."


class NotFound(PortalError):
    default_message = "The requested resource was not found."


class Conflict(PortalError):
    default_message = "The resource already exists."


class UsernameTaken(Conflict):
    default_message = "Username is already taken."


class EmailTaken(Conflict):
    default_message = "Email already registered."


class DuplicateApplication(Conflict):
    default_message = "You have already applied for this position."


class StorageFailure(PortalError):
    default_message = "Could not save your changes. Please try again later."
