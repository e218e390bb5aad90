from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class RegisterRequest(BaseModel):
    user_name: str = Field(..., min_length=3, max_length=50)
    full_name: Optional[str] = Field(None, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8)


class LoginRequest(BaseModel):
    # Email or user_name
    identifier: str = Field(..., min_length=1)
    password: str


class UserResponse(BaseModel):
    id: UUID
    user_name: str
    full_name: Optional[str] = None
    email: EmailStr
    role: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class CurrentUser(BaseModel):
    """Authenticated user resolved from the bearer token."""

    id: UUID
    user_name: str
    full_name: Optional[str] = None
    email: str
    role: str

    @property
    def is_owner(self) -> bool:
        return self.role == "owner"


class MasjidContext(BaseModel):
    """Caller's standing inside the masjid named in the request path."""

    masjid_id: UUID
    masjid_slug: str
    user: CurrentUser
    roles: List[str] = Field(default_factory=list)

    @property
    def is_dkm(self) -> bool:
        return self.user.is_owner or "dkm" in self.roles
