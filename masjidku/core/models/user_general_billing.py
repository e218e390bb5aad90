import uuid

from sqlalchemy import BigInteger, CheckConstraint, Column, DateTime, ForeignKey, Index, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from masjidku.db.session import Base
from masjidku.db.types import JSONType, utcnow


class UserGeneralBilling(Base):
    """One payer's instance of a general billing. Title/category/bill_code are snapshots."""

    __tablename__ = "user_general_billings"
    __table_args__ = (
        CheckConstraint("amount_idr >= 0", name="ck_user_general_billings_amount"),
        CheckConstraint("status IN ('unpaid', 'paid', 'canceled')", name="ck_user_general_billings_status"),
        Index(
            "uq_user_general_billings_billing_payer_alive",
            "general_billing_id",
            "payer_user_id",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    masjid_id = Column(UUID(as_uuid=True), ForeignKey("masjids.id", ondelete="CASCADE"), nullable=False)
    general_billing_id = Column(
        UUID(as_uuid=True), ForeignKey("general_billings.id", ondelete="CASCADE"), nullable=False
    )
    payer_user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    amount_idr = Column(BigInteger, nullable=False)
    # unpaid | paid | canceled
    status = Column(String(20), nullable=False, default="unpaid")
    paid_at = Column(DateTime(timezone=True), nullable=True)
    note = Column(Text, nullable=True)
    meta = Column(JSONType, nullable=True)

    title_snapshot = Column(Text, nullable=True)
    category_snapshot = Column(String(20), nullable=True)
    bill_code_snapshot = Column(String(60), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    general_billing = relationship("GeneralBilling")
