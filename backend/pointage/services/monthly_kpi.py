"""
Monthly KPIs for one employee, reduced from one day rollup per calendar day.
"""

import logging
from calendar import monthrange
from datetime import date
from typing import Iterable

from pointage.schemas.absence import Absence
from pointage.schemas.analytics import DayRollup, DayStatus, MonthlyKPI
from pointage.schemas.employee import Employee
from pointage.services.day_rollup import compute_day_rollup, iter_local_punches, round_half_up
from pointage.services.rules import AttendanceRules
from pointage.services.schedule_resolver import resolve_schedule

logger = logging.getLogger(__name__)


def month_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def month_days(year: int, month: int) -> list[date]:
    _, last = monthrange(year, month)
    return [date(year, month, d) for d in range(1, last + 1)]


def absences_by_date(absences: Iterable[Absence]) -> dict[date, Absence]:
    """
    Index absences by date. When both a FILE and a MANUAL record exist for
    the same day, the MANUAL one is kept.
    """
    result: dict[date, Absence] = {}
    for absence in absences:
        current = result.get(absence.date)
        if current is None or current.source != "MANUAL":
            result[absence.date] = absence
    return result


def _has_punch_in_month(employee: Employee, year: int, month: int, rules: AttendanceRules) -> bool:
    return any(
        local_time.year == year and local_time.month == month
        for local_time, _ in iter_local_punches(employee, rules.tz)
    )


def compute_month_rollups(
    employee: Employee,
    year: int,
    month: int,
    absences: Iterable[Absence],
    count_absence_on_holiday: bool = False,
    *,
    rules: AttendanceRules,
) -> list[DayRollup]:
    """One rollup per calendar day of the month, in date order."""
    schedule = resolve_schedule(employee, rules.schedule_config)
    by_date = absences_by_date(a for a in absences if a.matricule == employee.matricule)
    return [
        compute_day_rollup(
            employee,
            day,
            schedule,
            by_date.get(day),
            count_absence_on_holiday,
            rules=rules,
        )
        for day in month_days(year, month)
    ]


def _empty_kpi(employee: Employee, year: int, month: int) -> MonthlyKPI:
    return MonthlyKPI(
        matricule=employee.matricule,
        month=month_key(year, month),
        name=employee.full_name,
        department=employee.department,
        status=employee.status,
        days_worked=0,
        days_absent=0,
        delta_days=0,
        total_hours=0,
        avg_delay_min=0,
        late_days=0,
        minor_days=0,
        on_time_days=0,
        worked_holidays=0,
    )


def compute_monthly_kpi(
    employee: Employee,
    year: int,
    month: int,
    absences: Iterable[Absence],
    auto_derive_absence: bool = False,
    count_absence_on_holiday: bool = False,
    *,
    rules: AttendanceRules,
) -> MonthlyKPI:
    """
    Reduce a month of day rollups into KPIs.

    Employees with neither punches nor absences in the month get a zeroed
    record (unless absences are auto-derived), so that someone missing from
    a data slice is not reported as absent all month.
    """
    prefix = month_key(year, month)
    absences = [a for a in absences if a.matricule == employee.matricule]
    has_absences = any(a.date.isoformat().startswith(prefix) for a in absences)

    if (
        not auto_derive_absence
        and not has_absences
        and not _has_punch_in_month(employee, year, month, rules)
    ):
        logger.debug("No data for %s in %s, returning empty KPI", employee.matricule, prefix)
        return _empty_kpi(employee, year, month)

    rollups = compute_month_rollups(
        employee, year, month, absences, count_absence_on_holiday, rules=rules
    )
    required = rules.policy.required_days_per_month

    days_worked = sum(r.credit for r in rollups)
    days_absent = sum(1 for r in rollups if r.is_absent_from_file)
    if auto_derive_absence:
        days_absent = max(days_absent, max(0, required - days_worked))

    delays = [r.delay_min for r in rollups if r.delay_min is not None and r.delay_min > 0]
    avg_delay = sum(delays) / len(delays) if delays else 0

    return MonthlyKPI(
        matricule=employee.matricule,
        month=prefix,
        name=employee.full_name,
        department=employee.department,
        status=employee.status,
        days_worked=days_worked,
        days_absent=days_absent,
        delta_days=days_worked - required,
        total_hours=round_half_up(sum(r.hours for r in rollups), 1),
        avg_delay_min=round_half_up(avg_delay, 1),
        late_days=sum(1 for r in rollups if r.status == DayStatus.LATE),
        minor_days=sum(1 for r in rollups if r.status == DayStatus.MINOR_DELAY),
        on_time_days=sum(1 for r in rollups if r.status == DayStatus.ON_TIME),
        worked_holidays=sum(1 for r in rollups if r.worked_holiday),
    )
