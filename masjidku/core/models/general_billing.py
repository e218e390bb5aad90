import uuid

from sqlalchemy import BigInteger, Boolean, CheckConstraint, Column, Date, DateTime, ForeignKey, Index, SmallInteger, String, Text
from sqlalchemy.dialects.postgresql import UUID

from masjidku.db.session import Base
from masjidku.db.types import utcnow


class GeneralBilling(Base):
    """Bill definition issued by a masjid (registration fee, monthly SPP, ...)."""

    __tablename__ = "general_billings"
    __table_args__ = (
        CheckConstraint(
            "category IN ('registration', 'spp', 'mass_student', 'donation')",
            name="ck_general_billings_category",
        ),
        CheckConstraint("month IS NULL OR (month BETWEEN 1 AND 12)", name="ck_general_billings_month"),
        CheckConstraint("year IS NULL OR (year BETWEEN 2000 AND 2100)", name="ck_general_billings_year"),
        CheckConstraint(
            "default_amount_idr IS NULL OR default_amount_idr >= 0",
            name="ck_general_billings_default_amount",
        ),
        Index("ix_general_billings_masjid_created", "masjid_id", "created_at"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    masjid_id = Column(UUID(as_uuid=True), ForeignKey("masjids.id", ondelete="CASCADE"), nullable=False)
    category = Column(String(20), nullable=False)
    bill_code = Column(String(60), nullable=False, default="SPP")
    code = Column(String(60), nullable=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    class_id = Column(UUID(as_uuid=True), ForeignKey("classes.id", ondelete="SET NULL"), nullable=True)
    section_id = Column(UUID(as_uuid=True), ForeignKey("class_sections.id", ondelete="SET NULL"), nullable=True)
    term_id = Column(UUID(as_uuid=True), nullable=True)
    month = Column(SmallInteger, nullable=True)
    year = Column(SmallInteger, nullable=True)
    due_date = Column(Date, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    default_amount_idr = Column(BigInteger, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
