import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, text
from sqlalchemy.dialects.postgresql import UUID

from masjidku.db.session import Base
from masjidku.db.types import utcnow


class MasjidClass(Base):
    """Class (e.g. "Tahsin Dasar") offered by a masjid."""

    __tablename__ = "classes"
    __table_args__ = (
        Index(
            "uq_classes_masjid_slug_alive",
            "masjid_id",
            "slug",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    masjid_id = Column(UUID(as_uuid=True), ForeignKey("masjids.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(120), nullable=False)
    slug = Column(String(160), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
