from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, model_validator


class DonationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    message: Optional[str] = None
    amount: int = Field(..., gt=0, description="Total in rupiah")
    # Optional breakdown; amount_masjid + amount_masjidku must equal amount when both are sent
    amount_masjid: Optional[int] = Field(None, ge=0)
    amount_masjidku: Optional[int] = Field(None, ge=0)
    amount_masjidku_to_masjid: Optional[int] = Field(None, ge=0)
    amount_masjidku_to_app: Optional[int] = Field(None, ge=0)

    @model_validator(mode="after")
    def validate_breakdown(self) -> "DonationCreate":
        if self.amount_masjid is not None and self.amount_masjidku is not None:
            if self.amount_masjid + self.amount_masjidku != self.amount:
                raise ValueError("amount_masjid + amount_masjidku must equal amount")
        for part in (self.amount_masjid, self.amount_masjidku):
            if part is not None and part > self.amount:
                raise ValueError("breakdown cannot exceed amount")
        to_masjid, to_app = self.amount_masjidku_to_masjid, self.amount_masjidku_to_app
        if (to_masjid is not None or to_app is not None) and self.amount_masjidku is None:
            raise ValueError("amount_masjidku is required when its breakdown is sent")
        if to_masjid is not None and to_app is not None and to_masjid + to_app != self.amount_masjidku:
            raise ValueError("amount_masjidku_to_masjid + amount_masjidku_to_app must equal amount_masjidku")
        for part in (to_masjid, to_app):
            if part is not None and self.amount_masjidku is not None and part > self.amount_masjidku:
                raise ValueError("amount_masjidku breakdown cannot exceed amount_masjidku")
        return self


class DonationCheckoutResponse(BaseModel):
    donation_id: UUID
    order_id: str
    snap_token: str
    redirect_url: Optional[str] = None


class DonationResponse(BaseModel):
    id: UUID
    user_id: Optional[UUID] = None
    masjid_id: UUID
    name: str
    email: Optional[str] = None
    message: Optional[str] = None
    amount: int
    amount_masjid: Optional[int] = None
    amount_masjidku: Optional[int] = None
    amount_masjidku_to_masjid: Optional[int] = None
    amount_masjidku_to_app: Optional[int] = None
    status: str
    order_id: str
    payment_gateway: str
    payment_method: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PublicDonationResponse(BaseModel):
    """Donor wall entry. Contact details are not exposed publicly."""

    id: UUID
    name: str
    message: Optional[str] = None
    amount: int
    paid_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class DonationNotification(BaseModel):
    """Midtrans HTTP notification body. Only the fields used here are declared."""

    order_id: Optional[str] = None
    transaction_status: Optional[str] = None
    payment_type: Optional[str] = None
    status_code: Optional[str] = None
    gross_amount: Optional[str] = None
    signature_key: Optional[str] = None
    fraud_status: Optional[str] = None

    class Config:
        extra = "allow"


class NotificationResult(BaseModel):
    order_id: str
    transaction_status: str
    status: str
    changed: bool
