"""SQLAlchemy models. Importing this package registers every table on Base.metadata."""

from jobportal.models.base import Base
from jobportal.models.user import User
from jobportal.models.position import Position
from jobportal.models.document import Document
from jobportal.models.application import Application

__all__ = ["Base", "User", "Position", "Document", "Application"]
