from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class MasjidAdminAssign(BaseModel):
    user_id: UUID


class MasjidAdminResponse(BaseModel):
    id: UUID
    masjid_id: UUID
    user_id: UUID
    is_active: bool
    created_at: datetime
    updated_at: datetime
    user_name: Optional[str] = None
    full_name: Optional[str] = None
    email: Optional[str] = None

    class Config:
        from_attributes = True
