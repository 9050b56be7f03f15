"""Factories shared by the test modules."""

from __future__ import annotations

import io
import uuid
from datetime import date, datetime

import openpyxl

from pointage.schemas.absence import Absence
from pointage.schemas.employee import Employee, Punch

DEFAULT_HEADERS = ["Matricule.", "Nom.", "Date", "Punch", "Hours", "Lateness", "Absence", "Note."]


def punch(value, direction: str = "IN", **raw) -> Punch:
    """Punch at a naive local datetime, an ISO string or an Excel serial."""
    return Punch(punch_time=value, direction=direction, **raw)


def day_punches(day: date, *clock: str) -> list[Punch]:
    """Punches on ``day`` at "HH:MM" wall-clock times, alternating IN/OUT."""
    result = []
    for i, hhmm in enumerate(clock):
        hours, minutes = (int(x) for x in hhmm.split(":"))
        result.append(punch(
            datetime(day.year, day.month, day.day, hours, minutes),
            "IN" if i % 2 == 0 else "OUT",
        ))
    return result


def make_employee(
    matricule: str = "E001",
    first_name: str = "Amina",
    last_name: str = "Benali",
    department: str = "Sales",
    punches: list[Punch] | None = None,
    **extra,
) -> Employee:
    return Employee(
        matricule=matricule,
        first_name=first_name,
        last_name=last_name,
        department=department,
        punches=punches or [],
        **extra,
    )


def make_absence(
    matricule: str,
    day: date,
    source: str = "MANUAL",
    reason_code: str = "ABSENT",
    note: str | None = None,
) -> Absence:
    now = datetime(2025, 1, 1, 12, 0)
    return Absence(
        id=uuid.uuid4(),
        matricule=matricule,
        date=day,
        reason_code=reason_code,
        source=source,
        note=note,
        created_at=now,
        updated_at=now,
    )


def build_workbook(
    rows: list[list],
    headers: list[str] | None = None,
    title_rows: int = 0,
) -> bytes:
    """Attendance workbook bytes; ``title_rows`` banner rows precede the header."""
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Pointage"
    for _ in range(title_rows):
        ws.append(["Rapport de pointage"])
    ws.append(headers or DEFAULT_HEADERS)
    for row in rows:
        ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
