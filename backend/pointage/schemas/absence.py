import datetime as dt
from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, field_validator


class Absence(BaseModel):
    id: UUID
    matricule: str
    date: date
    reason_code: str
    source: Literal["FILE", "MANUAL"]
    note: str | None = None
    upload_id: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AbsenceCreate(BaseModel):
    matricule: str
    date: date
    reason_code: str = "ABSENT"
    note: str | None = None

    @field_validator("matricule", "reason_code")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Field must not be empty")
        return v.strip()


class AbsenceUpdate(BaseModel):
    date: dt.date | None = None
    reason_code: str | None = None
    note: str | None = None


class AbsenceVersion(BaseModel):
    version: int
    recomputed_at: datetime


class AbsenceImportResult(BaseModel):
    imported: int
    skipped_holiday: int
    skipped_invalid: int


class AbsenceTypeCreate(BaseModel):
    label: str
    description: str | None = None
    category: Literal["JUSTIFIED", "UNJUSTIFIED", "LEAVE", "OTHER"] = "OTHER"

    @field_validator("label")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Label must not be empty")
        return v.strip()


class AbsenceType(BaseModel):
    reason_code: str
    label: str
    description: str | None = None
    category: str
    is_custom: bool

    model_config = {"from_attributes": True}
