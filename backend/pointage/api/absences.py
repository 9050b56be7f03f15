import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from pointage.api.deps import get_rules
from pointage.db.session import get_db
from pointage.schemas.absence import (
    Absence,
    AbsenceCreate,
    AbsenceType,
    AbsenceTypeCreate,
    AbsenceUpdate,
    AbsenceVersion,
)
from pointage.services import absence_manager
from pointage.services.rules import AttendanceRules

router = APIRouter()


@router.get("/", response_model=list[Absence], summary="Absences of one month")
async def list_absences(
    year: int = Query(..., ge=1970, le=2100),
    month: int = Query(..., ge=1, le=12),
    matricule: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
) -> list[Absence]:
    return await absence_manager.list_absences(db, year, month, matricule)


@router.post(
    "/",
    response_model=Absence,
    status_code=status.HTTP_201_CREATED,
    summary="Add (or replace) a manual absence",
)
async def create_absence(
    body: AbsenceCreate,
    db: AsyncSession = Depends(get_db),
    rules: AttendanceRules = Depends(get_rules),
) -> Absence:
    return await absence_manager.add_absence(db, body, rules.calendar)


@router.get("/version", response_model=AbsenceVersion, summary="Absence data version")
async def get_version(db: AsyncSession = Depends(get_db)) -> AbsenceVersion:
    return await absence_manager.get_absence_version(db)


@router.get("/types", response_model=list[AbsenceType], summary="Absence reason codes")
async def list_types(db: AsyncSession = Depends(get_db)) -> list[AbsenceType]:
    return await absence_manager.list_absence_types(db)


@router.post(
    "/types",
    response_model=AbsenceType,
    status_code=status.HTTP_201_CREATED,
    summary="Add a custom absence reason",
)
async def create_type(
    body: AbsenceTypeCreate,
    db: AsyncSession = Depends(get_db),
) -> AbsenceType:
    return await absence_manager.add_custom_absence_type(db, body)


@router.patch("/{absence_id}", response_model=Absence, summary="Edit an absence")
async def update_absence(
    absence_id: uuid.UUID,
    body: AbsenceUpdate,
    db: AsyncSession = Depends(get_db),
    rules: AttendanceRules = Depends(get_rules),
) -> Absence:
    return await absence_manager.update_absence(db, absence_id, body, rules.calendar)


@router.delete(
    "/{absence_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an absence",
)
async def delete_absence(
    absence_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    if not await absence_manager.delete_absence(db, absence_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Absence not found")
