from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ClassCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)


class ClassResponse(BaseModel):
    id: UUID
    masjid_id: UUID
    name: str
    slug: str
    created_at: datetime

    class Config:
        from_attributes = True


class ClassSectionCreate(BaseModel):
    class_id: UUID
    name: str = Field(..., min_length=1, max_length=120)


class ClassSectionResponse(BaseModel):
    id: UUID
    masjid_id: UUID
    class_id: UUID
    name: str
    slug: str
    created_at: datetime

    class Config:
        from_attributes = True


class SubjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    code: Optional[str] = Field(None, max_length=40)


class SubjectResponse(BaseModel):
    id: UUID
    masjid_id: UUID
    name: str
    code: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ClassSubjectCreate(BaseModel):
    class_id: UUID
    subject_id: UUID


class ClassSubjectResponse(BaseModel):
    id: UUID
    masjid_id: UUID
    class_id: UUID
    subject_id: UUID
    created_at: datetime
    class_name: Optional[str] = Field(None, description="Populated in list response")
    subject_name: Optional[str] = Field(None, description="Populated in list response")

    class Config:
        from_attributes = True
