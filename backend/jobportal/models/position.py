"""Position model — job openings published by employees and admins."""

from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey, CheckConstraint, func
from sqlalchemy.orm import relationship

from jobportal.models.base import Base, IntegerIDMixin


class Position(IntegerIDMixin, Base):
    __tablename__ = "positions"

    creator_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    department = Column(String(255), nullable=False)
    location = Column(String(255), nullable=False)
    amount = Column(Integer, nullable=False, default=1)  # openings, static capacity
    description = Column(Text)
    resource_url = Column(String(2048))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    creator = relationship("User", back_populates="positions")
    applications = relationship("Application", back_populates="position", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        CheckConstraint("amount >= 1 AND amount <= 25", name="ck_positions_amount_range"),
    )
