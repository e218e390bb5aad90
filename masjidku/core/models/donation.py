import uuid

from sqlalchemy import BigInteger, CheckConstraint, Column, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from masjidku.db.session import Base
from masjidku.db.types import utcnow


class Donation(Base):
    """Donation to a masjid, paid through Midtrans Snap. Amounts are whole rupiah."""

    __tablename__ = "donations"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_donations_amount_positive"),
        CheckConstraint("status IN ('pending', 'completed', 'failed')", name="ck_donations_status"),
        Index("ix_donations_masjid_status_created", "masjid_id", "status", "created_at"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # NULL for guest donations
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    masjid_id = Column(UUID(as_uuid=True), ForeignKey("masjids.id", ondelete="CASCADE"), nullable=False)

    name = Column(String(50), nullable=False)
    email = Column(String(100), nullable=True)
    message = Column(Text, nullable=True)

    amount = Column(BigInteger, nullable=False)
    amount_masjid = Column(BigInteger, nullable=True)
    amount_masjidku = Column(BigInteger, nullable=True)
    amount_masjidku_to_masjid = Column(BigInteger, nullable=True)
    amount_masjidku_to_app = Column(BigInteger, nullable=True)

    # pending | completed | failed
    status = Column(String(20), nullable=False, default="pending")
    order_id = Column(String(100), nullable=False, unique=True)
    payment_token = Column(Text, nullable=True)
    redirect_url = Column(Text, nullable=True)
    payment_gateway = Column(String(50), nullable=False, default="midtrans")
    payment_method = Column(String(50), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    masjid = relationship("Masjid")
