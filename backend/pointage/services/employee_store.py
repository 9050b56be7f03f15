"""
Employee and punch persistence.

Punches are linked to employees by matricule only; rows for unknown
matricules are reported back, never attached to a guessed employee.
Roster imports create and merge employee records and their payroll
summary counters.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from pointage.core.exceptions import EmployeeNotFoundError
from pointage.db.models import Employee as EmployeeRow
from pointage.db.models import Punch as PunchRow
from pointage.schemas.employee import (
    Employee,
    EmployeeSummary,
    EmployeeUpsert,
    Punch,
    clean_matricule,
)
from pointage.schemas.upload import PunchRecord, RosterConflict, RosterRecord
from pointage.services.day_rollup import parse_punch_time
from pointage.services.name_matcher import name_similarity

logger = logging.getLogger(__name__)

_INSERT_CHUNK = 500


async def load_employees(
    db: AsyncSession,
    departments: Optional[Iterable[str]] = None,
) -> list[Employee]:
    stmt = select(EmployeeRow).options(selectinload(EmployeeRow.punches))
    if departments:
        stmt = stmt.where(EmployeeRow.department.in_(list(departments)))
    stmt = stmt.order_by(EmployeeRow.matricule)
    result = await db.execute(stmt)
    return [Employee.model_validate(row) for row in result.scalars().all()]


async def get_employee(db: AsyncSession, matricule: str) -> Employee:
    result = await db.execute(
        select(EmployeeRow)
        .options(selectinload(EmployeeRow.punches))
        .where(EmployeeRow.matricule == matricule)
    )
    row = result.scalar_one_or_none()
    if row is None:
        raise EmployeeNotFoundError(f"No employee with matricule {matricule}")
    return Employee.model_validate(row)


async def list_employee_summaries(db: AsyncSession) -> list[EmployeeSummary]:
    punch_count = (
        select(PunchRow.matricule, func.count(PunchRow.id).label("punch_count"))
        .group_by(PunchRow.matricule)
        .subquery()
    )
    result = await db.execute(
        select(EmployeeRow, func.coalesce(punch_count.c.punch_count, 0))
        .outerjoin(punch_count, punch_count.c.matricule == EmployeeRow.matricule)
        .order_by(EmployeeRow.matricule)
    )
    return [
        EmployeeSummary(
            matricule=emp.matricule,
            first_name=emp.first_name,
            last_name=emp.last_name,
            department=emp.department,
            role=emp.role,
            status=emp.status,
            punch_count=count,
        )
        for emp, count in result.all()
    ]


def _punch_row(matricule: str, punch: Punch, tz: ZoneInfo) -> Optional[PunchRow]:
    punch_time = parse_punch_time(punch.punch_time, tz)
    if punch_time is None:
        return None
    return PunchRow(
        matricule=matricule,
        punch_time=punch_time,
        direction=punch.direction,
        note=punch.note,
        operation=punch.operation,
        raw_hours=_as_float(punch.raw_hours),
        raw_lateness=_as_float(punch.raw_lateness),
        raw_absence=punch.raw_absence,
    )


def _as_float(value: object) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(str(value).replace(",", "."))
    except ValueError:
        return None


async def upsert_employee(
    db: AsyncSession,
    matricule: str,
    data: EmployeeUpsert,
    tz: ZoneInfo,
) -> Employee:
    """
    Create or update an employee. When ``data.punches`` is given it replaces
    the stored punches; unreadable timestamps are dropped.
    """
    matricule = Employee.model_validate({"matricule": matricule}).matricule
    row = await db.get(EmployeeRow, matricule)
    created = row is None
    if created:
        row = EmployeeRow(matricule=matricule)
        db.add(row)

    for field_name, value in data.model_dump(exclude={"punches"}, exclude_unset=True).items():
        if value is not None:
            setattr(row, field_name, value)

    if data.punches is not None:
        await db.flush()
        await db.execute(delete(PunchRow).where(PunchRow.matricule == matricule))
        seen: set[tuple] = set()
        dropped = 0
        for punch in data.punches:
            punch_row = _punch_row(matricule, punch, tz)
            if punch_row is None:
                dropped += 1
                continue
            key = (punch_row.punch_time, punch_row.direction)
            if key in seen:
                dropped += 1
                continue
            seen.add(key)
            db.add(punch_row)
        if dropped:
            logger.warning("Employee %s: %d unreadable or duplicate punches dropped", matricule, dropped)

    await db.commit()
    logger.info("Employee %s %s", matricule, "created" if created else "updated")
    return await get_employee(db, matricule)


def _insert_ignoring_duplicates(db: AsyncSession, rows: list[dict]):
    if db.get_bind().dialect.name == "postgresql":
        stmt = pg_insert(PunchRow).values(rows)
        return stmt.on_conflict_do_nothing(constraint="uq_punch_dedup")
    stmt = sqlite_insert(PunchRow).values(rows)
    return stmt.on_conflict_do_nothing(index_elements=["matricule", "punch_time", "direction"])


async def insert_punches(
    db: AsyncSession,
    records: list[PunchRecord],
    upload_id: str,
    tz: ZoneInfo,
) -> tuple[int, int, list[str]]:
    """
    Insert imported punches for known employees.

    Returns (inserted, duplicates, unmatched_messages). Punches already stored
    (same matricule, time and direction) count as duplicates.
    """
    matricules = {rec.matricule for rec in records}
    result = await db.execute(
        select(EmployeeRow.matricule).where(EmployeeRow.matricule.in_(matricules))
    )
    known = set(result.scalars().all())

    rows: list[dict] = []
    unmatched: list[str] = []
    for rec in records:
        if rec.matricule not in known:
            unmatched.append(
                f"{rec.matricule} ({rec.name or 'no name'}) on {rec.punch_time.date()}: "
                "no employee found with this matricule"
            )
            continue
        rows.append({
            "matricule": rec.matricule,
            "punch_time": parse_punch_time(rec.punch_time, tz),
            "direction": rec.direction,
            "note": rec.note,
            "operation": rec.operation,
            "raw_hours": rec.raw_hours,
            "raw_lateness": rec.raw_lateness,
            "raw_absence": rec.raw_absence,
            "upload_id": upload_id,
        })

    inserted = 0
    for start in range(0, len(rows), _INSERT_CHUNK):
        chunk = rows[start:start + _INSERT_CHUNK]
        result = await db.execute(_insert_ignoring_duplicates(db, chunk))
        inserted += result.rowcount

    duplicates = len(rows) - inserted
    if duplicates:
        logger.info("Upload %s: %d punches already stored, skipped", upload_id, duplicates)
    if unmatched:
        logger.warning("Upload %s: %d rows with unknown matricule", upload_id, len(unmatched))
    return inserted, duplicates, unmatched


# --- Roster / payroll summary import ---

_STATUS_ALIASES: dict[str, str] = {
    "active": "Active",
    "actif": "Active",
    "inactive": "Inactive",
    "inactif": "Inactive",
}


@dataclass
class RosterMerge:
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    file_duplicates: int = 0
    conflicts: list[RosterConflict] = field(default_factory=list)


def parse_summary(text: str) -> tuple[int, int, int]:
    """
    Payroll summary cell "worked, off, leave, total" -> (days_worked,
    days_off, total_days). Off and leave add up; a missing total is
    worked + off. A single number is the worked count.
    """
    if not text:
        return 0, 0, 0
    parts = [int(re.sub(r"\D", "", part) or 0) for part in text.split(",")]
    days_off = total = 0
    if len(parts) >= 4:
        days_worked, days_off, total = parts[0], parts[1] + parts[2], parts[3]
    else:
        days_worked = parts[0]
    return days_worked, days_off, total or days_worked + days_off


def _merge_field(existing: str, incoming: str) -> str:
    """Empty incoming values never overwrite."""
    return incoming.strip() or existing


def _merge_status(existing: str, incoming: str) -> str:
    # Active is sticky: once either side says Active the result is Active
    merged = _merge_field(existing, incoming)
    return "Active" if "Active" in (merged, existing) else merged


def _normalize_status(raw: str) -> str:
    return _STATUS_ALIASES.get(raw.strip().casefold(), "")


def _dedupe_roster(records: Iterable[RosterRecord]) -> tuple[dict[str, RosterRecord], int]:
    """Collapse rows sharing a matricule into one; returns (by_matricule, duplicates)."""
    merged: dict[str, RosterRecord] = {}
    duplicates = 0
    for rec in records:
        matricule = clean_matricule(rec.matricule)
        if not matricule:
            continue
        first = merged.get(matricule)
        if first is None:
            merged[matricule] = rec.model_copy(
                update={"matricule": matricule, "status": _normalize_status(rec.status)}
            )
            continue

        duplicates += 1
        updates = {
            "department": _merge_field(first.department, rec.department),
            "role": _merge_field(first.role, rec.role),
            "status": _merge_status(first.status, _normalize_status(rec.status)),
        }
        if len(rec.full_name) > len(first.full_name):
            updates["first_name"] = rec.first_name
            updates["last_name"] = rec.last_name
        if rec.summary:
            updates["summary"] = rec.summary
        merged[matricule] = first.model_copy(update=updates)
    return merged, duplicates


async def import_roster(
    db: AsyncSession,
    records: list[RosterRecord],
    period: Optional[str],
    threshold: float,
) -> RosterMerge:
    """
    Create or update employees from roster rows.

    Rows for an existing matricule whose name scores below ``threshold``
    against the stored name are skipped and reported as conflicts. For
    the rest: the longer full name wins, empty cells keep the stored value,
    Active status is sticky and payroll counters accumulate.
    """
    by_matricule, duplicates = _dedupe_roster(records)
    result = RosterMerge(file_duplicates=duplicates)
    if not by_matricule:
        return result

    rows = await db.execute(
        select(EmployeeRow).where(EmployeeRow.matricule.in_(list(by_matricule)))
    )
    existing = {row.matricule: row for row in rows.scalars().all()}

    for matricule, rec in by_matricule.items():
        days_worked, days_off, total_days = parse_summary(rec.summary)
        incoming_name = rec.full_name
        row = existing.get(matricule)

        if row is None:
            db.add(EmployeeRow(
                matricule=matricule,
                first_name=rec.first_name.strip(),
                last_name=rec.last_name.strip(),
                department=rec.department.strip() or "N/A",
                role=rec.role.strip() or None,
                status=rec.status or "Active",
                days_worked=days_worked,
                days_off=days_off,
                total_days=total_days,
                period=period or "N/A",
            ))
            result.inserted += 1
            continue

        current_name = f"{row.first_name} {row.last_name}".strip()
        if current_name and incoming_name:
            score = name_similarity(current_name, incoming_name)
            if score < threshold:
                logger.warning(
                    "Roster conflict %s: '%s' vs '%s' (score=%.2f), row skipped",
                    matricule, current_name, incoming_name, score,
                )
                result.conflicts.append(RosterConflict(
                    matricule=matricule,
                    existing_name=current_name,
                    incoming_name=incoming_name,
                    reason="Name similarity too low",
                ))
                result.skipped += 1
                continue

        if len(incoming_name) > len(current_name):
            row.first_name = rec.first_name.strip()
            row.last_name = rec.last_name.strip()
        row.department = _merge_field(row.department, rec.department)
        row.role = _merge_field(row.role or "", rec.role) or None
        row.status = _merge_status(row.status, rec.status)
        row.days_worked += days_worked
        row.days_off += days_off
        row.total_days += total_days
        if period:
            row.period = period
        result.updated += 1

    await db.commit()
    logger.info(
        "Roster merged: inserted=%d, updated=%d, conflicts=%d, file duplicates=%d",
        result.inserted, result.updated, result.skipped, result.file_duplicates,
    )
    return result
