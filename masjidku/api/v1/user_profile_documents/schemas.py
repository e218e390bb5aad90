from datetime import datetime
from typing import Literal, Optional, Union
from uuid import UUID

from pydantic import AnyHttpUrl, BaseModel, Field, TypeAdapter, ValidationError, field_validator

_http_url = TypeAdapter(AnyHttpUrl)


def _check_url(value: Optional[str]) -> Optional[str]:
    """Blank values pass through untouched; anything else must be an http(s) URL."""
    if value is None or not value.strip():
        return value
    value = value.strip()
    try:
        _http_url.validate_python(value)
    except ValidationError:
        raise ValueError("must be a valid http(s) URL") from None
    return value


class UserProfileDocumentCreate(BaseModel):
    doc_type: str = Field(..., min_length=1, max_length=50)
    file_url: str = Field(..., min_length=1)

    @field_validator("file_url")
    @classmethod
    def _valid_file_url(cls, value: str) -> str:
        return _check_url(value)


class UserProfileDocumentUpdate(BaseModel):
    """Fields left out are untouched; "" clears ``file_trash_url`` and ``file_delete_pending_until``."""

    file_url: Optional[str] = None
    file_trash_url: Optional[str] = None
    file_delete_pending_until: Optional[Union[datetime, Literal[""]]] = None

    @field_validator("file_url", "file_trash_url")
    @classmethod
    def _valid_urls(cls, value: Optional[str]) -> Optional[str]:
        return _check_url(value)


class UserProfileDocumentResponse(BaseModel):
    id: UUID
    user_id: UUID
    doc_type: str
    file_url: str
    file_trash_url: Optional[str] = None
    file_delete_pending_until: Optional[datetime] = None
    uploaded_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    class Config:
        from_attributes = True
