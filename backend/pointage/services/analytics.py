"""
Company- and department-level monthly analytics.

Filters the employee population, computes one MonthlyKPI per remaining
employee and reduces them into company and per-department summaries.
"""

import logging
import unicodedata
from collections import defaultdict
from typing import Iterable, Sequence

from pointage.schemas.absence import Absence
from pointage.schemas.analytics import (
    AnalyticsFilters,
    AnalyticsResult,
    CompanyKPIs,
    DepartmentKPI,
    MonthlyKPI,
)
from pointage.schemas.employee import Employee
from pointage.services.monthly_kpi import compute_monthly_kpi
from pointage.services.rules import AttendanceRules

logger = logging.getLogger(__name__)


def normalize_search(text: str) -> str:
    """Case-fold and strip diacritics ("Élodie" -> "elodie")."""
    decomposed = unicodedata.normalize("NFD", text or "")
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold().strip()


def matches_search(matricule: str, name: str, needle: str) -> bool:
    """Matricule prefix or name substring, both normalised."""
    if not needle:
        return True
    return (
        normalize_search(matricule).startswith(needle)
        or needle in normalize_search(name)
    )


def _average_nonzero_delay(kpis: Sequence[MonthlyKPI]) -> float:
    delays = [k.avg_delay_min for k in kpis if k.avg_delay_min]
    if not delays:
        return 0
    return sum(delays) / len(delays)


def summarize(kpis: Sequence[MonthlyKPI]) -> CompanyKPIs:
    return CompanyKPIs(
        days_worked=sum(k.days_worked for k in kpis),
        days_absent=sum(k.days_absent for k in kpis),
        avg_delay=_average_nonzero_delay(kpis),
        late_days=sum(k.late_days for k in kpis),
        worked_holidays=sum(k.worked_holidays for k in kpis),
    )


def summarize_departments(kpis: Sequence[MonthlyKPI]) -> list[DepartmentKPI]:
    by_department: dict[str, list[MonthlyKPI]] = defaultdict(list)
    for kpi in kpis:
        by_department[kpi.department or "Unknown"].append(kpi)

    return [
        DepartmentKPI(
            department=department,
            employee_count=len(members),
            **summarize(members).model_dump(),
        )
        for department, members in sorted(by_department.items())
    ]


def filter_employees(employees: Iterable[Employee], filters: AnalyticsFilters) -> list[Employee]:
    departments = set(filters.departments)
    statuses = set(filters.statuses)
    return [
        emp for emp in employees
        if (not departments or emp.department in departments)
        and (not statuses or emp.status in statuses)
    ]


def aggregate(
    employees: Iterable[Employee],
    filters: AnalyticsFilters,
    absences: Iterable[Absence],
    *,
    rules: AttendanceRules,
) -> AnalyticsResult:
    selected = filter_employees(employees, filters)

    absences_by_matricule: dict[str, list[Absence]] = defaultdict(list)
    for absence in absences:
        absences_by_matricule[absence.matricule].append(absence)

    employee_kpis = [
        compute_monthly_kpi(
            emp,
            filters.year,
            filters.month,
            absences_by_matricule.get(emp.matricule, []),
            filters.auto_derive_absence,
            filters.count_absence_on_holiday,
            rules=rules,
        )
        for emp in selected
    ]

    needle = normalize_search(filters.search_text)
    if needle:
        employee_kpis = [k for k in employee_kpis if matches_search(k.matricule, k.name, needle)]

    logger.debug(
        "Analytics %04d-%02d: %d employees selected, %d after search",
        filters.year, filters.month, len(selected), len(employee_kpis),
    )

    return AnalyticsResult(
        employee_kpis=employee_kpis,
        company_kpis=summarize(employee_kpis),
        department_kpis=summarize_departments(employee_kpis),
    )
