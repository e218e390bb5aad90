from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from masjidku.core.enums import VerificationStatus


class MasjidCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: Optional[str] = Field(None, max_length=100, description="Generated from name when omitted")
    bio_short: Optional[str] = None
    location: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    image_url: Optional[str] = None
    google_maps_url: Optional[str] = None
    domain: Optional[str] = Field(None, max_length=50, description="Stored lower-cased; empty means none")
    is_active: bool = True
    is_islamic_school: bool = False
    instagram_url: Optional[str] = None
    whatsapp_url: Optional[str] = None
    youtube_url: Optional[str] = None
    facebook_url: Optional[str] = None
    tiktok_url: Optional[str] = None


class MasjidUpdate(BaseModel):
    """Omitted fields are unchanged. An empty string clears an optional text field."""

    name: Optional[str] = Field(None, max_length=100)
    slug: Optional[str] = Field(None, max_length=100)
    bio_short: Optional[str] = None
    location: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    image_url: Optional[str] = None
    google_maps_url: Optional[str] = None
    domain: Optional[str] = Field(None, max_length=50)
    is_active: Optional[bool] = None
    is_islamic_school: Optional[bool] = None
    instagram_url: Optional[str] = None
    whatsapp_url: Optional[str] = None
    youtube_url: Optional[str] = None
    facebook_url: Optional[str] = None
    tiktok_url: Optional[str] = None


class MasjidVerificationUpdate(BaseModel):
    verification_status: VerificationStatus
    verification_notes: Optional[str] = None

    class Config:
        use_enum_values = True


class MasjidResponse(BaseModel):
    id: UUID
    name: str
    slug: str
    bio_short: Optional[str] = None
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    image_url: Optional[str] = None
    google_maps_url: Optional[str] = None
    domain: Optional[str] = None
    is_active: bool
    verification_status: str
    is_verified: bool
    verified_at: Optional[datetime] = None
    verification_notes: Optional[str] = None
    is_islamic_school: bool
    instagram_url: Optional[str] = None
    whatsapp_url: Optional[str] = None
    youtube_url: Optional[str] = None
    facebook_url: Optional[str] = None
    tiktok_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    class Config:
        from_attributes = True
