from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from masjidku.core.enums import DeliveryMode


class CSSTCreate(BaseModel):
    section_id: UUID
    class_subject_id: UUID
    teacher_id: UUID = Field(..., description="masjid_teachers.id")
    assistant_teacher_id: Optional[UUID] = None
    slug: Optional[str] = Field(None, max_length=160, description="Generated from section and subject when omitted")
    description: Optional[str] = None
    group_url: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=0)
    delivery_mode: DeliveryMode = DeliveryMode.OFFLINE
    is_active: bool = True

    class Config:
        use_enum_values = True


class CSSTUpdate(BaseModel):
    """Omitted fields are unchanged. "" clears description/group_url; "" on slug regenerates it."""

    section_id: Optional[UUID] = None
    class_subject_id: Optional[UUID] = None
    teacher_id: Optional[UUID] = None
    assistant_teacher_id: Optional[UUID] = None
    clear_assistant_teacher: bool = False
    slug: Optional[str] = Field(None, max_length=160)
    description: Optional[str] = None
    group_url: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=0)
    delivery_mode: Optional[DeliveryMode] = None
    is_active: Optional[bool] = None

    class Config:
        use_enum_values = True


class CSSTResponse(BaseModel):
    id: UUID
    masjid_id: UUID
    section_id: UUID
    class_subject_id: UUID
    teacher_id: Optional[UUID] = None
    assistant_teacher_id: Optional[UUID] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    group_url: Optional[str] = None
    capacity: Optional[int] = None
    delivery_mode: str
    enrolled_count: int
    total_attendance: int
    teacher_snapshot: Optional[Dict[str, Any]] = None
    assistant_teacher_snapshot: Optional[Dict[str, Any]] = None
    teacher_name_snap: Optional[str] = None
    assistant_teacher_name_snap: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    class Config:
        from_attributes = True
