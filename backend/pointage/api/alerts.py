from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from pointage.api.deps import get_rules
from pointage.db.session import get_db
from pointage.schemas.analytics import DailyAlerts
from pointage.services.absence_manager import list_absences_for_day
from pointage.services.alerts import generate_daily_alerts
from pointage.services.employee_store import load_employees
from pointage.services.rules import AttendanceRules

router = APIRouter()


@router.get(
    "/daily",
    response_model=DailyAlerts,
    summary="Attendance alerts for one day, grouped by department or role",
)
async def get_daily_alerts(
    day: date = Query(..., alias="date", description="ISO date YYYY-MM-DD"),
    group_by: Literal["department", "role"] = Query(default="department"),
    search: str = Query(default=""),
    db: AsyncSession = Depends(get_db),
    rules: AttendanceRules = Depends(get_rules),
) -> DailyAlerts:
    employees = await load_employees(db)
    absences = await list_absences_for_day(db, day)
    return generate_daily_alerts(
        employees, day, absences, group_by, search, rules=rules
    )
