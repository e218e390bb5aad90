from datetime import datetime
from typing import Any, ClassVar, Dict, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel, Field

from masjidku.common.patch import PatchModel
from masjidku.core.enums import UserBillingStatus


class UserGeneralBillingCreate(BaseModel):
    payer_user_id: UUID
    amount_idr: Optional[int] = Field(None, ge=0, description="Defaults to the billing's default amount")
    note: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None


class UserGeneralBillingPatch(PatchModel):
    non_nullable_fields: ClassVar[Tuple[str, ...]] = ("amount_idr", "status")

    amount_idr: Optional[int] = Field(None, ge=0)
    status: Optional[UserBillingStatus] = None
    paid_at: Optional[datetime] = None
    note: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None


class UserGeneralBillingResponse(BaseModel):
    id: UUID
    masjid_id: UUID
    general_billing_id: UUID
    payer_user_id: Optional[UUID] = None
    amount_idr: int
    status: str
    paid_at: Optional[datetime] = None
    note: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None
    title_snapshot: Optional[str] = None
    category_snapshot: Optional[str] = None
    bill_code_snapshot: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    class Config:
        from_attributes = True
