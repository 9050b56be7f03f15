import re
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, field_validator

_ZERO_WIDTH_RE = re.compile(r"[\u200b\u200e\u200f]")


def clean_matricule(value: object) -> str:
    # zero-width marks show up in exported spreadsheets
    return _ZERO_WIDTH_RE.sub("", str(value or "")).strip()


class Punch(BaseModel):
    # Kept loosely typed: bad timestamps from source files are dropped by the
    # engine rather than rejected here.
    punch_time: datetime | str | float | None = None
    direction: Literal["IN", "OUT"] = "IN"
    note: str | None = None
    operation: str | None = None
    raw_hours: float | str | None = None
    raw_lateness: float | str | None = None
    raw_absence: str | None = None

    model_config = {"from_attributes": True}


class Employee(BaseModel):
    matricule: str
    first_name: str = ""
    last_name: str = ""
    department: str = ""
    role: str | None = None
    status: Literal["Active", "Inactive"] = "Active"
    days_worked: float = 0
    days_off: float = 0
    total_days: float = 0
    period: str | None = None
    punches: list[Punch] = []

    model_config = {"from_attributes": True}

    @field_validator("matricule")
    @classmethod
    def strip_matricule(cls, v: str) -> str:
        cleaned = clean_matricule(v)
        if not cleaned:
            raise ValueError("Matricule must not be empty")
        return cleaned

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class EmployeeUpsert(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    department: str | None = None
    role: str | None = None
    status: Literal["Active", "Inactive"] | None = None
    days_worked: float | None = None
    days_off: float | None = None
    total_days: float | None = None
    period: str | None = None
    punches: list[Punch] | None = None


class EmployeeSummary(BaseModel):
    matricule: str
    first_name: str
    last_name: str
    department: str
    role: str | None
    status: str
    punch_count: int
