"""Masjid (tenant). Almost every other resource is scoped by masjid_id."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, Float, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID

from masjidku.db.session import Base
from masjidku.db.types import utcnow


class Masjid(Base):
    __tablename__ = "masjids"
    __table_args__ = (
        Index("ix_masjids_created_at", "created_at"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    bio_short = Column(Text, nullable=True)
    location = Column(Text, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    image_url = Column(Text, nullable=True)
    google_maps_url = Column(Text, nullable=True)
    # Stored lower-cased; empty string is stored as NULL
    domain = Column(String(50), nullable=True, unique=True)
    slug = Column(String(100), nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)

    # pending | approved | rejected
    verification_status = Column(String(20), nullable=False, default="pending")
    is_verified = Column(Boolean, nullable=False, default=False)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    verification_notes = Column(Text, nullable=True)
    is_islamic_school = Column(Boolean, nullable=False, default=False)

    instagram_url = Column(Text, nullable=True)
    whatsapp_url = Column(Text, nullable=True)
    youtube_url = Column(Text, nullable=True)
    facebook_url = Column(Text, nullable=True)
    tiktok_url = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
