import io
import logging
import math
import uuid
from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pointage.api.deps import get_rules
from pointage.core.config import settings
from pointage.db.models import ImportHistory
from pointage.db.session import get_db
from pointage.schemas.upload import ImportHistoryItem, ImportResultResponse, RosterImportResult
from pointage.services.absence_manager import import_file_absences
from pointage.services.employee_store import import_roster, insert_punches
from pointage.services.excel_parser import parse_excel, parse_roster
from pointage.services.rules import AttendanceRules

logger = logging.getLogger(__name__)

router = APIRouter()

_ALLOWED_EXTENSIONS = {".xlsx", ".xls"}

# caps on messages kept in the import history row
_LOG_MESSAGE_LIMIT = 100


def _file_extension(filename: str | None) -> str:
    if not filename:
        return ""
    idx = filename.rfind(".")
    return filename[idx:].lower() if idx != -1 else ""


def _require_excel(filename: str, ext: str) -> None:
    if ext not in _ALLOWED_EXTENSIONS:
        logger.warning("Rejected file '%s': unsupported extension '%s'", filename, ext)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported file type '{ext}'. Allowed: {', '.join(sorted(_ALLOWED_EXTENSIONS))}",
        )


@router.post(
    "/upload",
    response_model=ImportResultResponse,
    summary="Upload an attendance Excel file",
)
async def upload_file(
    file: UploadFile,
    db: AsyncSession = Depends(get_db),
    rules: AttendanceRules = Depends(get_rules),
) -> ImportResultResponse:
    ext = _file_extension(file.filename)
    filename = file.filename or "unknown"
    logger.info("File upload: '%s' (extension: '%s')", filename, ext)

    _require_excel(filename, ext)

    upload_id = uuid.uuid4().hex
    content = await file.read()
    punches, absence_rows, errors = parse_excel(
        io.BytesIO(content), max_rows=settings.MAX_UPLOAD_ROWS
    )

    inserted, skipped, unmatched = await insert_punches(db, punches, upload_id, rules.tz)
    absence_result = await import_file_absences(
        db,
        [row.model_dump() for row in absence_rows],
        upload_id,
        rules.calendar,
    )

    total = len(punches) + len(errors)
    error_count = len(errors)
    if inserted == 0 and absence_result.imported == 0 and (total > 0 or absence_rows):
        import_status = "failed"
    elif error_count > 0 or skipped > 0 or unmatched:
        import_status = "partial"
    else:
        import_status = "success"

    logger.info(
        "Import finished [%s] %s: status=%s, total=%d, inserted=%d, duplicates=%d, "
        "unmatched=%d, errors=%d, absences=%d",
        upload_id, filename, import_status, total, inserted, skipped,
        len(unmatched), error_count, absence_result.imported,
    )

    db.add(ImportHistory(
        upload_id=upload_id,
        filename=filename,
        uploaded_at=datetime.now(timezone.utc),
        status=import_status,
        logs={
            "total": total,
            "inserted": inserted,
            "skipped": skipped,
            "errors": errors[:_LOG_MESSAGE_LIMIT],
            "unmatched": unmatched[:_LOG_MESSAGE_LIMIT],
            "absences": absence_result.model_dump(),
        },
    ))
    await db.commit()

    return ImportResultResponse(
        upload_id=upload_id,
        filename=filename,
        total=total,
        inserted_count=inserted,
        skipped=skipped,
        unmatched_count=len(unmatched),
        error_count=error_count,
        errors=errors,
        unmatched=unmatched,
        absences=absence_result,
        status=import_status,
    )


@router.post(
    "/roster",
    response_model=RosterImportResult,
    summary="Upload an employee roster / payroll summary Excel file",
)
async def upload_roster(
    file: UploadFile,
    period_start: date | None = Query(default=None),
    period_end: date | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
) -> RosterImportResult:
    ext = _file_extension(file.filename)
    filename = file.filename or "unknown"
    logger.info("Roster upload: '%s' (extension: '%s')", filename, ext)

    _require_excel(filename, ext)

    upload_id = uuid.uuid4().hex
    content = await file.read()
    records, errors = parse_roster(io.BytesIO(content), max_rows=settings.MAX_UPLOAD_ROWS)

    period = f"{period_start} - {period_end}" if period_start and period_end else None
    merge = await import_roster(db, records, period, settings.NAME_MATCH_THRESHOLD)

    if merge.inserted + merge.updated == 0:
        import_status = "failed"
    elif errors or merge.conflicts:
        import_status = "partial"
    else:
        import_status = "success"

    logger.info(
        "Roster import finished [%s] %s: status=%s, inserted=%d, updated=%d, "
        "conflicts=%d, file duplicates=%d, errors=%d",
        upload_id, filename, import_status, merge.inserted, merge.updated,
        merge.skipped, merge.file_duplicates, len(errors),
    )

    db.add(ImportHistory(
        upload_id=upload_id,
        filename=filename,
        uploaded_at=datetime.now(timezone.utc),
        status=import_status,
        logs={
            "kind": "roster",
            "inserted": merge.inserted,
            "updated": merge.updated,
            "skipped": merge.skipped,
            "file_duplicates": merge.file_duplicates,
            "errors": errors[:_LOG_MESSAGE_LIMIT],
            "conflicts": [c.model_dump() for c in merge.conflicts[:_LOG_MESSAGE_LIMIT]],
        },
    ))
    await db.commit()

    return RosterImportResult(
        upload_id=upload_id,
        filename=filename,
        inserted=merge.inserted,
        updated=merge.updated,
        skipped=merge.skipped,
        file_duplicates=merge.file_duplicates,
        error_count=len(errors),
        errors=errors,
        conflicts=merge.conflicts,
        status=import_status,
    )


@router.get("/history", summary="List import history (paginated)")
async def list_history(
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=settings.IMPORT_HISTORY_LIMIT, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> dict:
    total = (await db.execute(select(func.count(ImportHistory.id)))).scalar_one()
    result = await db.execute(
        select(ImportHistory)
        .order_by(ImportHistory.uploaded_at.desc(), ImportHistory.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    items = [ImportHistoryItem.model_validate(h) for h in result.scalars().all()]

    return {
        "total": total,
        "page": page,
        "per_page": per_page,
        "pages": math.ceil(total / per_page) if total > 0 else 1,
        "items": items,
    }
