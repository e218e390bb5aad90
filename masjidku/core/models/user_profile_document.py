import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text, text
from sqlalchemy.dialects.postgresql import UUID

from masjidku.db.session import Base
from masjidku.db.types import utcnow


class UserProfileDocument(Base):
    __tablename__ = "user_profile_documents"
    __table_args__ = (
        Index(
            "uq_user_profile_documents_user_doc_type_alive",
            "user_id",
            "doc_type",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
        Index("ix_user_profile_documents_user_uploaded", "user_id", "uploaded_at"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    doc_type = Column(String(50), nullable=False)
    file_url = Column(Text, nullable=False)
    # Previous file kept until file_delete_pending_until, then removed from storage
    file_trash_url = Column(Text, nullable=True)
    file_delete_pending_until = Column(DateTime(timezone=True), nullable=True)
    uploaded_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
