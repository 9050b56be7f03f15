"""
Excel parser for attendance workbook uploads.

One row per punch. Expected columns (case-insensitive, trailing dot ignored,
any of the aliases):
  Matricule / mat / employee_id
  Nom / name / nom et prénom / employee
  Date / jour / day
  Punch / temps / heure / time / pointage
  Sens / direction / type / in/out           (optional)
  Hours / heures                             (optional)
  Lateness / retard / delay                  (optional)
  Absence / abs                              (optional)
  Note / remarque / comment                  (optional)
  Opération / operation / op                 (optional)

Only Matricule and Date are required. A row whose Absence cell is filled and
which carries neither a punch time nor hours is an absence marker only.

Roster files (``parse_roster``) carry one row per employee: Matricule,
Prénom, Nom, Département, Fonction, Statut and an optional payroll Summary
("worked, off, leave, total").
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, time
from typing import IO, Optional

import pandas as pd
from pydantic import ValidationError

from pointage.schemas.upload import AbsenceRecord, PunchRecord, RosterRecord

logger = logging.getLogger(__name__)

COLUMN_ALIASES: dict[str, list[str]] = {
    "matricule": ["matricule", "mat", "employee_id", "n° matricule"],
    "name": ["nom", "name", "nom et prénom", "nom complet", "employee", "employé"],
    "date": ["date", "jour", "day"],
    "punch": ["punch", "temps", "heure", "time", "pointage"],
    "direction": ["sens", "direction", "type", "in/out"],
    "hours": ["hours", "heures"],
    "lateness": ["lateness", "retard", "delay"],
    "absence": ["absence", "abs"],
    "note": ["note", "remarque", "comment", "commentaire"],
    "operation": ["opération", "operation", "op"],
}

REQUIRED_COLUMNS = ("matricule", "date")

_ALL_ALIASES: frozenset[str] = frozenset(
    alias for aliases in COLUMN_ALIASES.values() for alias in aliases
)

# Employee roster exports (one row per employee, payroll summary optional)
ROSTER_COLUMN_ALIASES: dict[str, list[str]] = {
    "matricule": COLUMN_ALIASES["matricule"],
    "first_name": ["prénom", "prenom", "first name", "firstname", "first_name"],
    "last_name": ["nom", "nom de famille", "last name", "lastname", "last_name"],
    "department": ["département", "departement", "department", "service"],
    "role": ["fonction", "poste", "role"],
    "status": ["statut", "status"],
    "summary": ["summary", "résumé", "resume", "récapitulatif"],
}

_ROSTER_ALIASES: frozenset[str] = frozenset(
    alias for aliases in ROSTER_COLUMN_ALIASES.values() for alias in aliases
)

DIRECTION_MAP: dict[str, str] = {
    "in": "IN",
    "entrée": "IN",
    "entree": "IN",
    "e": "IN",
    "out": "OUT",
    "sortie": "OUT",
    "s": "OUT",
}

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")
_TIME_RE = re.compile(r"(\d{1,2}):(\d{2})(?::(\d{2}))?")


def _header_key(value: object) -> str:
    return str(value).lower().strip().rstrip(".").strip()


def _find_header_row(file: IO[bytes], aliases: frozenset[str] = _ALL_ALIASES) -> int:
    """
    Scan the first 20 rows for the one with the most column-alias matches.
    Returns the 0-based row index to pass as ``header=`` to ``pd.read_excel``.
    """
    try:
        probe = pd.read_excel(file, engine="openpyxl", dtype=str, nrows=20, header=None)
    except Exception:
        return 0
    finally:
        file.seek(0)

    best_row, best_score = 0, 0
    for row_idx, row in probe.iterrows():
        score = sum(
            1 for cell in row
            if isinstance(cell, str) and _header_key(cell) in aliases
        )
        if score > best_score:
            best_score = score
            best_row = int(row_idx)

    return best_row if best_score >= 2 else 0


def _normalize_columns(
    df: pd.DataFrame, column_aliases: dict[str, list[str]] = COLUMN_ALIASES
) -> pd.DataFrame:
    """Rename DataFrame columns to canonical names using an alias table."""
    lower_cols = {_header_key(c): c for c in df.columns}
    rename_map: dict[str, str] = {}
    for canonical, aliases in column_aliases.items():
        for alias in aliases:
            if alias in lower_cols:
                rename_map[lower_cols[alias]] = canonical
                break
    return df.rename(columns=rename_map)


def _clean_cell(value: object) -> str:
    """Cell as stripped text; pandas NaN placeholders become empty."""
    text = str(value if value is not None else "").strip()
    return "" if text.lower() in ("nan", "none", "nat") else text


def _parse_date(text: str) -> Optional[date]:
    if not text:
        return None
    if _ISO_DATE_RE.match(text):
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            return None
    try:
        parsed = pd.to_datetime(text, dayfirst=True)
    except (ValueError, OverflowError):
        return None
    if pd.isna(parsed):
        return None
    return parsed.date()


def _parse_time(text: str) -> Optional[time]:
    match = _TIME_RE.search(text)
    if match is None:
        return None
    hours, minutes, seconds = int(match[1]), int(match[2]), int(match[3] or 0)
    if hours > 23 or minutes > 59 or seconds > 59:
        return None
    return time(hours, minutes, seconds)


def _parse_number(text: str) -> Optional[float]:
    if not text:
        return None
    try:
        return float(text.replace(",", "."))
    except ValueError:
        return None


def _parse_direction(raw_direction: str, raw_punch: str) -> str:
    mapped = DIRECTION_MAP.get(raw_direction.lower())
    if mapped:
        return mapped
    return "OUT" if "OUT" in raw_punch.upper() else "IN"


def parse_excel(
    file: IO[bytes],
    max_rows: Optional[int] = None,
) -> tuple[list[PunchRecord], list[AbsenceRecord], list[str]]:
    """
    Parse an attendance workbook and return (punches, absences, error_messages).

    Punch times are naive local wall-clock datetimes; a row with hours but
    no time is recorded at midnight of its date.
    """
    header_row = _find_header_row(file)

    try:
        df = pd.read_excel(file, engine="openpyxl", dtype=str, header=header_row)
    except Exception as exc:
        return [], [], [f"Could not open file: {exc}"]

    df = _normalize_columns(df)

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        return [], [], [f"Missing required columns: {', '.join(missing)}"]

    if max_rows is not None and len(df) > max_rows:
        return [], [], [f"File has {len(df)} rows; the limit is {max_rows}"]

    punches: list[PunchRecord] = []
    absences: list[AbsenceRecord] = []
    errors: list[str] = []

    # header_row is 0-based and the header takes one row, so data rows start
    # at header_row + 2 in spreadsheet numbering
    data_row_offset = header_row + 2
    skipped_empty = 0

    for i, row in enumerate(df.to_dict("records"), start=data_row_offset):
        cells = {key: _clean_cell(row.get(key)) for key in COLUMN_ALIASES}

        if not any(cells.values()):
            skipped_empty += 1
            continue

        # repeated header rows in multi-section exports
        if _header_key(cells["date"]) in COLUMN_ALIASES["date"]:
            logger.debug("Row %d: repeated header, skipped", i)
            continue

        if not cells["matricule"]:
            msg = f"Row {i}: missing matricule"
            logger.warning("Skipped: %s", msg)
            errors.append(msg)
            continue

        day = _parse_date(cells["date"])
        if day is None:
            msg = f"Row {i}: invalid date '{cells['date']}'"
            logger.warning("Skipped: %s (matricule='%s')", msg, cells["matricule"])
            errors.append(msg)
            continue

        if cells["absence"]:
            absences.append(AbsenceRecord(
                matricule=cells["matricule"],
                date=day,
                absence=cells["absence"],
                note=cells["note"] or None,
            ))

        punch_at = _parse_time(cells["punch"])
        hours = _parse_number(cells["hours"])
        if punch_at is None and hours is None:
            if not cells["absence"]:
                msg = f"Row {i}: no punch time or hours"
                logger.warning("Skipped: %s (matricule='%s')", msg, cells["matricule"])
                errors.append(msg)
            continue

        try:
            punches.append(PunchRecord(
                matricule=cells["matricule"],
                name=cells["name"],
                punch_time=datetime.combine(day, punch_at or time(0, 0)),
                direction=_parse_direction(cells["direction"], cells["punch"]),
                note=cells["note"] or None,
                operation=cells["operation"] or None,
                raw_hours=hours,
                raw_lateness=_parse_number(cells["lateness"]),
                raw_absence=cells["absence"] or None,
            ))
        except ValidationError as exc:
            for err in exc.errors():
                msg = f"Row {i}: {err['loc'][0]} - {err['msg']}"
                logger.warning("Skipped: %s", msg)
                errors.append(msg)

    logger.info(
        "Parsing finished: punches=%d, absences=%d, errors=%d, empty=%d",
        len(punches), len(absences), len(errors), skipped_empty,
    )
    return punches, absences, errors


def parse_roster(
    file: IO[bytes],
    max_rows: Optional[int] = None,
) -> tuple[list[RosterRecord], list[str]]:
    """Parse an employee roster workbook and return (records, error_messages)."""
    header_row = _find_header_row(file, _ROSTER_ALIASES)

    try:
        df = pd.read_excel(file, engine="openpyxl", dtype=str, header=header_row)
    except Exception as exc:
        return [], [f"Could not open file: {exc}"]

    df = _normalize_columns(df, ROSTER_COLUMN_ALIASES)
    if "matricule" not in df.columns:
        return [], ["Missing required columns: matricule"]

    if max_rows is not None and len(df) > max_rows:
        return [], [f"File has {len(df)} rows; the limit is {max_rows}"]

    records: list[RosterRecord] = []
    errors: list[str] = []

    for i, row in enumerate(df.to_dict("records"), start=header_row + 2):
        cells = {key: _clean_cell(row.get(key)) for key in ROSTER_COLUMN_ALIASES}
        if not any(cells.values()):
            continue
        if not cells["matricule"]:
            msg = f"Row {i}: missing matricule"
            logger.warning("Skipped: %s", msg)
            errors.append(msg)
            continue
        records.append(RosterRecord(**cells))

    logger.info("Roster parsed: records=%d, errors=%d", len(records), len(errors))
    return records, errors
