"""Application model — a user's submission against one position."""

from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import relationship

from jobportal.models.base import Base, IntegerIDMixin

APPLICATION_STATUSES = ("pending", "reviewed", "accepted", "rejected")


class Application(IntegerIDMixin, Base):
    __tablename__ = "applications"

    position_id = Column(Integer, ForeignKey("positions.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    cv_document_id = Column(Integer, ForeignKey("documents.id", ondelete="SET NULL"))
    cover_letter_document_id = Column(Integer, ForeignKey("documents.id", ondelete="SET NULL"))
    status = Column(String(20), nullable=False, default="pending", server_default="pending")
    notes = Column(Text)
    application_date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    position = relationship("Position", back_populates="applications")
    user = relationship("User", back_populates="applications", foreign_keys=[user_id])
    cv_document = relationship("Document", foreign_keys=[cv_document_id])
    cover_letter_document = relationship("Document", foreign_keys=[cover_letter_document_id])

    __table_args__ = (
        UniqueConstraint("position_id", "user_id", name="uq_applications_position_user"),
    )
