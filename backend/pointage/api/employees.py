from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pointage.api.deps import get_rules
from pointage.db.session import get_db
from pointage.schemas.employee import Employee, EmployeeSummary, EmployeeUpsert
from pointage.services import employee_store
from pointage.services.rules import AttendanceRules

router = APIRouter()


@router.get("/", response_model=list[EmployeeSummary], summary="List employees")
async def list_employees(db: AsyncSession = Depends(get_db)) -> list[EmployeeSummary]:
    return await employee_store.list_employee_summaries(db)


@router.get("/{matricule}", response_model=Employee, summary="Employee with punches")
async def get_employee(matricule: str, db: AsyncSession = Depends(get_db)) -> Employee:
    return await employee_store.get_employee(db, matricule)


@router.put(
    "/{matricule}",
    response_model=Employee,
    summary="Create or update an employee (punches replaced when given)",
)
async def put_employee(
    matricule: str,
    body: EmployeeUpsert,
    db: AsyncSession = Depends(get_db),
    rules: AttendanceRules = Depends(get_rules),
) -> Employee:
    return await employee_store.upsert_employee(db, matricule, body, rules.tz)
