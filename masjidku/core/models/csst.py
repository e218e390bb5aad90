"""Class-section-subject-teacher assignment (CSST).

Teacher display fields are denormalized into teacher_snapshot / teacher_name_snap
and rebuilt whenever the assignment or the referenced masjid_teachers row is written.
"""

import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from masjidku.db.session import Base
from masjidku.db.types import JSONType, utcnow


class ClassSectionSubjectTeacher(Base):
    __tablename__ = "class_section_subject_teachers"
    __table_args__ = (
        CheckConstraint("capacity IS NULL OR capacity >= 0", name="ck_csst_capacity_non_negative"),
        CheckConstraint("delivery_mode IN ('offline', 'online', 'hybrid')", name="ck_csst_delivery_mode"),
        Index(
            "uq_csst_slug_per_masjid_alive",
            "masjid_id",
            "slug",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
        Index(
            "uq_csst_section_subject_teacher_alive",
            "section_id",
            "class_subject_id",
            "teacher_id",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
        Index("ix_csst_masjid_created_at", "masjid_id", "created_at"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    masjid_id = Column(UUID(as_uuid=True), ForeignKey("masjids.id", ondelete="CASCADE"), nullable=False)
    section_id = Column(UUID(as_uuid=True), ForeignKey("class_sections.id", ondelete="CASCADE"), nullable=False)
    class_subject_id = Column(UUID(as_uuid=True), ForeignKey("class_subjects.id", ondelete="CASCADE"), nullable=False)
    teacher_id = Column(UUID(as_uuid=True), ForeignKey("masjid_teachers.id", ondelete="SET NULL"), nullable=True)
    assistant_teacher_id = Column(
        UUID(as_uuid=True), ForeignKey("masjid_teachers.id", ondelete="SET NULL"), nullable=True
    )

    slug = Column(String(160), nullable=True)
    description = Column(Text, nullable=True)
    group_url = Column(Text, nullable=True)
    capacity = Column(Integer, nullable=True)
    delivery_mode = Column(String(10), nullable=False, default="offline")
    enrolled_count = Column(Integer, nullable=False, default=0)
    total_attendance = Column(Integer, nullable=False, default=0)

    teacher_snapshot = Column(JSONType, nullable=True)
    assistant_teacher_snapshot = Column(JSONType, nullable=True)
    teacher_name_snap = Column(String(255), nullable=True)
    assistant_teacher_name_snap = Column(String(255), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    section = relationship("ClassSection")
    class_subject = relationship("ClassSubject")
    teacher = relationship("MasjidTeacher", foreign_keys=[teacher_id])
    assistant_teacher = relationship("MasjidTeacher", foreign_keys=[assistant_teacher_id])
