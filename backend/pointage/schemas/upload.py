from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, field_validator

from pointage.schemas.absence import AbsenceImportResult


class PunchRecord(BaseModel):
    matricule: str
    name: str = ""
    punch_time: datetime
    direction: Literal["IN", "OUT"] = "IN"
    note: str | None = None
    operation: str | None = None
    raw_hours: float | None = None
    raw_lateness: float | None = None
    raw_absence: str | None = None

    @field_validator("matricule")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Field must not be empty")
        return v.strip()


class AbsenceRecord(BaseModel):
    """An "Absence" cell from the file, imported as a FILE absence."""

    matricule: str
    date: date
    absence: str
    note: str | None = None


class ImportResultResponse(BaseModel):
    upload_id: str
    filename: str
    total: int
    inserted_count: int
    skipped: int
    unmatched_count: int
    error_count: int
    errors: list[str]
    unmatched: list[str]
    absences: AbsenceImportResult
    status: Literal["success", "partial", "failed"]


class ImportHistoryItem(BaseModel):
    id: int
    upload_id: str
    filename: str
    uploaded_at: datetime
    status: str
    logs: dict | None = None

    model_config = {"from_attributes": True}


class RosterRecord(BaseModel):
    """One employee row of a roster / payroll summary export."""

    matricule: str
    first_name: str = ""
    last_name: str = ""
    department: str = ""
    role: str = ""
    status: str = ""
    summary: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class RosterConflict(BaseModel):
    matricule: str
    existing_name: str
    incoming_name: str
    reason: str


class RosterImportResult(BaseModel):
    upload_id: str
    filename: str
    inserted: int
    updated: int
    skipped: int
    file_duplicates: int
    error_count: int
    errors: list[str]
    conflicts: list[RosterConflict]
    status: Literal["success", "partial", "failed"]
