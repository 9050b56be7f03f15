"""
Daily alert feed: one rollup per employee for a given date, mapped to alert
categories and grouped by department (or role).
"""

import logging
from datetime import date
from typing import Iterable, Literal

from pointage.schemas.absence import Absence
from pointage.schemas.analytics import (
    AlertGroup,
    AlertItem,
    AlertTotals,
    AlertType,
    DailyAlerts,
    DayStatus,
)
from pointage.schemas.employee import Employee
from pointage.services.analytics import matches_search, normalize_search
from pointage.services.day_rollup import compute_day_rollup
from pointage.services.monthly_kpi import absences_by_date
from pointage.services.rules import AttendanceRules
from pointage.services.schedule_resolver import resolve_schedule

logger = logging.getLogger(__name__)

GroupBy = Literal["department", "role"]

STATUS_ALERTS: dict[DayStatus, AlertType] = {
    DayStatus.LATE: AlertType.LATE,
    DayStatus.MINOR_DELAY: AlertType.MINOR,
    DayStatus.ABSENT: AlertType.ABSENT,
    DayStatus.WORKED_ON_HOLIDAY: AlertType.HOLIDAY_WORKED,
    DayStatus.HOLIDAY: AlertType.HOLIDAY_NO_ATT,
}

UNKNOWN_GROUP = "Unknown"


def _group_key(employee: Employee, group_by: GroupBy) -> str:
    value = employee.role if group_by == "role" else employee.department
    return value or UNKNOWN_GROUP


def group_alerts(items: Iterable[tuple[str, AlertItem]]) -> list[AlertGroup]:
    groups: dict[str, AlertGroup] = {}
    for key, item in items:
        group = groups.get(key)
        if group is None:
            group = groups[key] = AlertGroup(key=key, totals=AlertTotals(), items=[])
        group.items.append(item)
        field = item.reason_tag.value.lower()
        setattr(group.totals, field, getattr(group.totals, field) + 1)
    return [groups[key] for key in sorted(groups)]


def generate_daily_alerts(
    employees: Iterable[Employee],
    day: date,
    absences: Iterable[Absence],
    group_by: GroupBy = "department",
    search_text: str = "",
    *,
    rules: AttendanceRules,
) -> DailyAlerts:
    needle = normalize_search(search_text)

    absence_by_matricule: dict[str, list[Absence]] = {}
    for absence in absences:
        if absence.date == day:
            absence_by_matricule.setdefault(absence.matricule, []).append(absence)

    keyed_items: list[tuple[str, AlertItem]] = []
    for emp in employees:
        if not matches_search(emp.matricule, emp.full_name, needle):
            continue

        schedule = resolve_schedule(emp, rules.schedule_config)
        absence = absences_by_date(absence_by_matricule.get(emp.matricule, [])).get(day)
        # Alerts are informational: an absence on a holiday never counts
        rollup = compute_day_rollup(emp, day, schedule, absence, False, rules=rules)

        reason = STATUS_ALERTS.get(rollup.status)
        if reason == AlertType.ABSENT and rollup.is_holiday:
            reason = None
        if reason is None:
            continue

        keyed_items.append((
            _group_key(emp, group_by),
            AlertItem(
                matricule=emp.matricule,
                name=emp.full_name,
                department=emp.department,
                role=emp.role,
                delay_min=rollup.delay_min,
                hours=rollup.hours,
                reason_tag=reason,
                note=rollup.absence_info.note if rollup.absence_info else None,
            ),
        ))

    logger.debug("Daily alerts %s: %d items", day.isoformat(), len(keyed_items))
    return DailyAlerts(
        date=day,
        groups=group_alerts(keyed_items),
        total_alerts=len(keyed_items),
    )
