"""User model for authentication and roles."""

from sqlalchemy import Column, String, Boolean, DateTime, Integer, true
from sqlalchemy.orm import relationship

from jobportal.models.base import Base, TimestampMixin, IntegerIDMixin

ROLES = ("student", "employee", "admin")


class User(IntegerIDMixin, TimestampMixin, Base):
    __tablename__ = "users"

    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(100))
    phone = Column(String(8))
    role = Column(String(20), nullable=False, default="student", server_default="student")
    is_active = Column(Boolean, default=True, server_default=true(), nullable=False)

    # Lockout
    failed_attempts = Column(Integer, default=0, server_default="0", nullable=False)
    lockout_until = Column(DateTime(timezone=True))

    # Password reset
    reset_token = Column(String(64), unique=True, index=True)
    reset_token_expires_at = Column(DateTime(timezone=True))

    # Relationships
    documents = relationship("Document", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    positions = relationship("Position", back_populates="creator", cascade="all, delete-orphan", passive_deletes=True)
    applications = relationship(
        "Application",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        foreign_keys="Application.user_id",
    )
