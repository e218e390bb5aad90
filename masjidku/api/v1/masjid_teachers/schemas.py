from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class MasjidTeacherCreate(BaseModel):
    user_id: UUID
    title: Optional[str] = Field(None, max_length=80, description="e.g. Ustadz, Ustadzah")


class MasjidTeacherUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=80, description="Empty string clears the title")
    is_active: Optional[bool] = None
    refresh_snapshot: bool = Field(False, description="Re-copy the user's current names")


class MasjidTeacherResponse(BaseModel):
    id: UUID
    masjid_id: UUID
    user_id: UUID
    user_name_snap: Optional[str] = None
    full_name_snap: Optional[str] = None
    title: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    class Config:
        from_attributes = True
