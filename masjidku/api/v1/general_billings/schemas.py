from datetime import date, datetime
from typing import ClassVar, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel, Field

from masjidku.common.patch import PatchModel
from masjidku.core.enums import BillingCategory


class GeneralBillingCreate(BaseModel):
    category: BillingCategory
    bill_code: str = Field("SPP", min_length=1, max_length=60)
    code: Optional[str] = Field(None, max_length=60)
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    class_id: Optional[UUID] = None
    section_id: Optional[UUID] = None
    term_id: Optional[UUID] = None
    month: Optional[int] = Field(None, ge=1, le=12)
    year: Optional[int] = Field(None, ge=2000, le=2100)
    due_date: Optional[date] = Field(None, description="YYYY-MM-DD")
    is_active: bool = True
    default_amount_idr: Optional[int] = Field(None, ge=0)

    class Config:
        use_enum_values = True


class GeneralBillingPatch(PatchModel):
    """
    Tri-state patch: omit a field to keep it, send null to clear it, send a value to overwrite.
    category, bill_code, title and is_active cannot be cleared.
    """

    non_nullable_fields: ClassVar[Tuple[str, ...]] = ("category", "bill_code", "title", "is_active")

    category: Optional[BillingCategory] = None
    bill_code: Optional[str] = Field(None, min_length=1, max_length=60)
    code: Optional[str] = Field(None, max_length=60)
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    class_id: Optional[UUID] = None
    section_id: Optional[UUID] = None
    term_id: Optional[UUID] = None
    month: Optional[int] = Field(None, ge=1, le=12)
    year: Optional[int] = Field(None, ge=2000, le=2100)
    due_date: Optional[date] = None
    is_active: Optional[bool] = None
    default_amount_idr: Optional[int] = Field(None, ge=0)


class GeneralBillingResponse(BaseModel):
    id: UUID
    masjid_id: UUID
    category: str
    bill_code: str
    code: Optional[str] = None
    title: str
    description: Optional[str] = None
    class_id: Optional[UUID] = None
    section_id: Optional[UUID] = None
    term_id: Optional[UUID] = None
    month: Optional[int] = None
    year: Optional[int] = None
    due_date: Optional[date] = None
    is_active: bool
    default_amount_idr: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    class Config:
        from_attributes = True
