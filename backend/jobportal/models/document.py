"""Document model — uploaded CVs and cover letters."""

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship

from jobportal.models.base import Base, IntegerIDMixin

DOCUMENT_TYPES = ("cv", "cover_letter")


class Document(IntegerIDMixin, Base):
    __tablename__ = "documents"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(20), nullable=False)  # cv, cover_letter
    file_path = Column(String(512), nullable=False)  # relative to the uploads root
    original_name = Column(String(255), nullable=False)
    mime_type = Column(String(100), nullable=False)
    uploaded_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    user = relationship("User", back_populates="documents")
