"""Class–subject mapping: which subjects are taught in which class."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from masjidku.db.session import Base
from masjidku.db.types import utcnow


class ClassSubject(Base):
    __tablename__ = "class_subjects"
    __table_args__ = (
        Index(
            "uq_class_subjects_class_subject_alive",
            "masjid_id",
            "class_id",
            "subject_id",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    masjid_id = Column(UUID(as_uuid=True), ForeignKey("masjids.id", ondelete="CASCADE"), nullable=False)
    class_id = Column(UUID(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    subject_id = Column(UUID(as_uuid=True), ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    masjid_class = relationship("MasjidClass", foreign_keys=[class_id])
    subject = relationship("Subject")
