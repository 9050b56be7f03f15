"""
Absence store.

Owns the two invariants the computation engine relies on:

* at most one FILE-sourced and one MANUAL-sourced absence per (matricule,
  date): writes are upserts on (matricule, date, source);
* no absence on a public holiday: such writes are rejected (manual entry)
  or skipped (file import).

Every mutation bumps the ``absences`` data version so callers can tell when
cached analytics must be recomputed.
"""

from __future__ import annotations

import logging
import re
import uuid
from calendar import monthrange
from datetime import date, datetime, timezone
from typing import Any, Iterable, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from pointage.core.exceptions import (
    AbsenceConflictError,
    AbsenceNotFoundError,
    AbsenceOnHolidayError,
    DuplicateAbsenceTypeError,
)
from pointage.db.models import Absence as AbsenceRow
from pointage.db.models import AbsenceType as AbsenceTypeRow
from pointage.db.models import DataVersion
from pointage.holidays import HolidayCalendar
from pointage.schemas.absence import (
    Absence,
    AbsenceCreate,
    AbsenceImportResult,
    AbsenceType,
    AbsenceTypeCreate,
    AbsenceUpdate,
    AbsenceVersion,
)

logger = logging.getLogger(__name__)

ABSENCE_VERSION_KEY = "absences"

# Raw markers found in the "Absence" column of attendance exports
ABSENCE_REASON_MAP: dict[str, str] = {
    "A": "ABSENT",
    "ABS": "ABSENT",
    "ABSENT": "ABSENT",
    "1": "ABSENT",
    "AN": "ABSENT",
    "SICK": "SICK",
    "LEAVE": "LEAVE",
    "UNPAID": "UNPAID",
}

BUILTIN_ABSENCE_TYPES: tuple[AbsenceType, ...] = (
    AbsenceType(reason_code="ABSENT", label="Absent", category="UNJUSTIFIED", is_custom=False),
    AbsenceType(reason_code="SICK", label="Sick leave", category="JUSTIFIED", is_custom=False),
    AbsenceType(reason_code="LEAVE", label="Leave", category="LEAVE", is_custom=False),
    AbsenceType(reason_code="UNPAID", label="Unpaid leave", category="LEAVE", is_custom=False),
)

_NON_CODE_CHARS = re.compile(r"[^A-Z0-9]")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def parse_absence_date(value: Any) -> Optional[date]:
    """Accept a ``date``/``datetime`` or a strict ``YYYY-MM-DD`` string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    if not re.fullmatch(r"\d{4}-\d{2}-\d{2}", text):
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def _month_bounds(year: int, month: int) -> tuple[date, date]:
    _, last = monthrange(year, month)
    return date(year, month, 1), date(year, month, last)


# --- Version management ---


async def get_absence_version(db: AsyncSession) -> AbsenceVersion:
    row = await db.get(DataVersion, ABSENCE_VERSION_KEY)
    if row is None:
        row = DataVersion(name=ABSENCE_VERSION_KEY, version=1, recomputed_at=_now())
        db.add(row)
        await db.commit()
    return AbsenceVersion(version=row.version, recomputed_at=row.recomputed_at)


async def _bump_version(db: AsyncSession) -> None:
    row = await db.get(DataVersion, ABSENCE_VERSION_KEY)
    if row is None:
        db.add(DataVersion(name=ABSENCE_VERSION_KEY, version=2, recomputed_at=_now()))
    else:
        row.version += 1
        row.recomputed_at = _now()


# --- Queries ---


async def list_absences(
    db: AsyncSession,
    year: int,
    month: int,
    matricule: Optional[str] = None,
) -> list[Absence]:
    first, last = _month_bounds(year, month)
    stmt = select(AbsenceRow).where(AbsenceRow.date.between(first, last))
    if matricule:
        stmt = stmt.where(AbsenceRow.matricule == matricule)
    stmt = stmt.order_by(AbsenceRow.date, AbsenceRow.matricule, AbsenceRow.source)
    result = await db.execute(stmt)
    return [Absence.model_validate(row) for row in result.scalars().all()]


async def list_absences_for_day(db: AsyncSession, day: date) -> list[Absence]:
    result = await db.execute(select(AbsenceRow).where(AbsenceRow.date == day))
    return [Absence.model_validate(row) for row in result.scalars().all()]


async def _find(db: AsyncSession, matricule: str, day: date, source: str) -> Optional[AbsenceRow]:
    result = await db.execute(
        select(AbsenceRow).where(
            AbsenceRow.matricule == matricule,
            AbsenceRow.date == day,
            AbsenceRow.source == source,
        )
    )
    return result.scalar_one_or_none()


# --- Mutations ---


async def add_absence(
    db: AsyncSession, data: AbsenceCreate, calendar: HolidayCalendar
) -> Absence:
    """Create or update the MANUAL absence for (matricule, date)."""
    if calendar.is_holiday(data.date).is_holiday:
        raise AbsenceOnHolidayError("Cannot add an absence on a public holiday.")

    now = _now()
    row = await _find(db, data.matricule, data.date, "MANUAL")
    if row is not None:
        row.reason_code = data.reason_code
        row.note = data.note
        row.updated_at = now
        logger.info("Manual absence updated: %s on %s", data.matricule, data.date)
    else:
        row = AbsenceRow(
            id=uuid.uuid4(),
            matricule=data.matricule,
            date=data.date,
            reason_code=data.reason_code,
            source="MANUAL",
            note=data.note,
            created_at=now,
            updated_at=now,
        )
        db.add(row)
        logger.info("Manual absence added: %s on %s (%s)", data.matricule, data.date, data.reason_code)

    await _bump_version(db)
    await db.commit()
    await db.refresh(row)
    return Absence.model_validate(row)


async def update_absence(
    db: AsyncSession,
    absence_id: uuid.UUID,
    changes: AbsenceUpdate,
    calendar: HolidayCalendar,
) -> Absence:
    row = await db.get(AbsenceRow, absence_id)
    if row is None:
        raise AbsenceNotFoundError("Absence not found.")

    if changes.date is not None and changes.date != row.date:
        if calendar.is_holiday(changes.date).is_holiday:
            raise AbsenceOnHolidayError("Cannot move an absence to a public holiday.")
        if await _find(db, row.matricule, changes.date, row.source) is not None:
            raise AbsenceConflictError(
                f"A {row.source} absence already exists for {row.matricule} on {changes.date}."
            )
        row.date = changes.date
    if changes.reason_code is not None:
        row.reason_code = changes.reason_code
    if changes.note is not None:
        row.note = changes.note
    row.updated_at = _now()

    await _bump_version(db)
    await db.commit()
    await db.refresh(row)
    return Absence.model_validate(row)


async def delete_absence(db: AsyncSession, absence_id: uuid.UUID) -> bool:
    result = await db.execute(delete(AbsenceRow).where(AbsenceRow.id == absence_id))
    if not result.rowcount:
        return False
    await _bump_version(db)
    await db.commit()
    logger.info("Absence deleted: id=%s", absence_id)
    return True


async def import_file_absences(
    db: AsyncSession,
    rows: Iterable[dict[str, Any]],
    upload_id: str,
    calendar: HolidayCalendar,
) -> AbsenceImportResult:
    """
    Upsert FILE absences from parsed file rows.

    Each row carries ``matricule``, ``date``, ``absence`` (raw marker) and an
    optional ``note``. Rows with an unknown marker, a bad date or no
    matricule are skipped; so are rows that fall on a holiday.
    """
    imported = skipped_holiday = skipped_invalid = 0
    now = _now()
    # (matricule, date) -> row, so duplicates inside one file upsert in memory
    pending: dict[tuple[str, date], AbsenceRow] = {}

    for raw in rows:
        reason_code = ABSENCE_REASON_MAP.get(str(raw.get("absence") or "").strip().upper())
        matricule = str(raw.get("matricule") or "").strip()
        day = parse_absence_date(raw.get("date"))
        if not reason_code or not matricule or day is None:
            skipped_invalid += 1
            continue
        if calendar.is_holiday(day).is_holiday:
            skipped_holiday += 1
            logger.debug("File absence on holiday skipped: %s on %s", matricule, day)
            continue

        key = (matricule, day)
        row = pending.get(key) or await _find(db, matricule, day, "FILE")
        if row is None:
            row = AbsenceRow(
                id=uuid.uuid4(),
                matricule=matricule,
                date=day,
                source="FILE",
                created_at=now,
            )
            db.add(row)
        row.reason_code = reason_code
        row.note = str(raw.get("note") or "") or None
        row.upload_id = upload_id
        row.updated_at = now
        pending[key] = row
        imported += 1

    if imported:
        await _bump_version(db)
    await db.commit()

    logger.info(
        "File absences imported [%s]: imported=%d, on holiday=%d, invalid=%d",
        upload_id, imported, skipped_holiday, skipped_invalid,
    )
    return AbsenceImportResult(
        imported=imported,
        skipped_holiday=skipped_holiday,
        skipped_invalid=skipped_invalid,
    )


# --- Reason vocabulary ---


async def list_absence_types(db: AsyncSession) -> list[AbsenceType]:
    result = await db.execute(select(AbsenceTypeRow).order_by(AbsenceTypeRow.label))
    custom = [
        AbsenceType(
            reason_code=row.reason_code,
            label=row.label,
            description=row.description,
            category=row.category,
            is_custom=True,
        )
        for row in result.scalars().all()
    ]
    return [*BUILTIN_ABSENCE_TYPES, *custom]


async def add_custom_absence_type(db: AsyncSession, data: AbsenceTypeCreate) -> AbsenceType:
    existing = await list_absence_types(db)
    if any(t.label.casefold() == data.label.casefold() for t in existing):
        raise DuplicateAbsenceTypeError(f"Absence type '{data.label}' already exists")

    base = _NON_CODE_CHARS.sub("_", data.label.upper())
    codes = {t.reason_code for t in existing}
    suffix = 1
    while f"CUSTOM_{base}_{suffix}" in codes:
        suffix += 1
    reason_code = f"CUSTOM_{base}_{suffix}"

    row = AbsenceTypeRow(
        reason_code=reason_code,
        label=data.label,
        description=data.description.strip() if data.description else None,
        category=data.category,
    )
    db.add(row)
    await db.commit()
    logger.info("Custom absence type created: %s (%s)", reason_code, data.label)
    return AbsenceType(
        reason_code=reason_code,
        label=data.label,
        description=row.description,
        category=data.category,
        is_custom=True,
    )
