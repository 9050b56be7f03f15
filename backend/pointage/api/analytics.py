"""
Analytics API routes.

Every request recomputes from stored punches and absences; nothing is cached
server-side. Clients poll ``/api/absences/version`` to know when to refetch.
"""

import logging
from typing import Literal

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from pointage.api.deps import get_rules
from pointage.db.session import get_db
from pointage.schemas.analytics import AnalyticsFilters, AnalyticsResult, DayRollup, MonthlyKPI
from pointage.services.absence_manager import list_absences
from pointage.services.analytics import aggregate
from pointage.services.employee_store import get_employee, load_employees
from pointage.services.kpi_export import build_kpi_workbook
from pointage.services.monthly_kpi import compute_month_rollups, compute_monthly_kpi
from pointage.services.rules import AttendanceRules

logger = logging.getLogger(__name__)

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def get_filters(
    year: int = Query(..., ge=1970, le=2100),
    month: int = Query(..., ge=1, le=12),
    departments: list[str] = Query(default=[]),
    statuses: list[Literal["Active", "Inactive"]] = Query(default=[]),
    search: str = Query(default=""),
    auto_derive_absence: bool = Query(default=False),
    count_absence_on_holiday: bool = Query(default=False),
) -> AnalyticsFilters:
    return AnalyticsFilters(
        year=year,
        month=month,
        departments=departments,
        statuses=statuses,
        search_text=search,
        auto_derive_absence=auto_derive_absence,
        count_absence_on_holiday=count_absence_on_holiday,
    )


async def _run_aggregate(
    filters: AnalyticsFilters, db: AsyncSession, rules: AttendanceRules
) -> AnalyticsResult:
    employees = await load_employees(db, filters.departments)
    absences = await list_absences(db, filters.year, filters.month)
    return aggregate(employees, filters, absences, rules=rules)


@router.get(
    "/monthly",
    response_model=AnalyticsResult,
    summary="Monthly KPIs for all selected employees",
)
async def get_monthly_analytics(
    filters: AnalyticsFilters = Depends(get_filters),
    db: AsyncSession = Depends(get_db),
    rules: AttendanceRules = Depends(get_rules),
) -> AnalyticsResult:
    return await _run_aggregate(filters, db, rules)


@router.get(
    "/employees/{matricule}/monthly",
    response_model=MonthlyKPI,
    summary="Monthly KPI of one employee",
)
async def get_employee_monthly(
    matricule: str,
    year: int = Query(..., ge=1970, le=2100),
    month: int = Query(..., ge=1, le=12),
    auto_derive_absence: bool = Query(default=False),
    count_absence_on_holiday: bool = Query(default=False),
    db: AsyncSession = Depends(get_db),
    rules: AttendanceRules = Depends(get_rules),
) -> MonthlyKPI:
    employee = await get_employee(db, matricule)
    absences = await list_absences(db, year, month, matricule=employee.matricule)
    return compute_monthly_kpi(
        employee,
        year,
        month,
        absences,
        auto_derive_absence,
        count_absence_on_holiday,
        rules=rules,
    )


@router.get(
    "/employees/{matricule}/days",
    response_model=list[DayRollup],
    summary="Day-by-day rollups of one employee for a month",
)
async def get_employee_days(
    matricule: str,
    year: int = Query(..., ge=1970, le=2100),
    month: int = Query(..., ge=1, le=12),
    count_absence_on_holiday: bool = Query(default=False),
    db: AsyncSession = Depends(get_db),
    rules: AttendanceRules = Depends(get_rules),
) -> list[DayRollup]:
    employee = await get_employee(db, matricule)
    absences = await list_absences(db, year, month, matricule=employee.matricule)
    return compute_month_rollups(
        employee, year, month, absences, count_absence_on_holiday, rules=rules
    )


@router.get(
    "/export",
    summary="Monthly KPIs as an Excel workbook",
    response_class=Response,
)
async def export_monthly_analytics(
    filters: AnalyticsFilters = Depends(get_filters),
    db: AsyncSession = Depends(get_db),
    rules: AttendanceRules = Depends(get_rules),
) -> Response:
    result = await _run_aggregate(filters, db, rules)
    content = build_kpi_workbook(result, rules.policy)
    filename = f"kpi_{filters.year:04d}-{filters.month:02d}.xlsx"
    logger.info("KPI export %s: %d employees", filename, len(result.employee_kpis))
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
