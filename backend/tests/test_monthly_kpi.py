"""
Monthly KPI tests (January 2025: 31 days, holidays on the 1st and the 11th).
"""

from __future__ import annotations

from datetime import date

from pointage.schemas.absence import Absence
from pointage.schemas.analytics import DayStatus
from pointage.schemas.schedule import LatenessPolicy
from pointage.services.monthly_kpi import (
    absences_by_date,
    compute_month_rollups,
    compute_monthly_kpi,
    month_days,
)
from pointage.services.rules import AttendanceRules
from tests.helpers import day_punches, make_absence, make_employee


def kpi(employee, rules, absences: list[Absence] | None = None, **flags):
    return compute_monthly_kpi(employee, 2025, 1, absences or [], rules=rules, **flags)


class TestEmptyMonth:
    def test_zeroed_record_without_data(self, rules: AttendanceRules) -> None:
        result = kpi(make_employee(), rules)
        assert result.month == "2025-01"
        assert result.name == "Amina Benali"
        for field in (
            "days_worked", "days_absent", "delta_days", "total_hours", "avg_delay_min",
            "late_days", "minor_days", "on_time_days", "worked_holidays",
        ):
            assert getattr(result, field) == 0, field

    def test_data_in_other_month_still_zeroed(self, rules: AttendanceRules) -> None:
        emp = make_employee(punches=day_punches(date(2025, 2, 3), "09:00", "18:00"))
        assert kpi(emp, rules).days_worked == 0
        assert kpi(emp, rules).delta_days == 0

    def test_auto_derive_full_month_absent(self, rules: AttendanceRules) -> None:
        result = kpi(make_employee(), rules, auto_derive_absence=True)
        assert result.days_absent == 26
        assert result.days_worked == 0
        assert result.delta_days == -26

    def test_other_employees_absences_ignored(self, rules: AttendanceRules) -> None:
        absences = [make_absence("E999", date(2025, 1, 6))]
        result = kpi(make_employee(), rules, absences)
        assert result.days_absent == 0
        assert result.delta_days == 0


class TestReductions:
    def test_worked_month(self, rules: AttendanceRules) -> None:
        punches = [
            *day_punches(date(2025, 1, 6), "09:12", "13:00", "14:00", "18:05"),  # late 12
            *day_punches(date(2025, 1, 7), "09:08", "12:38"),                    # minor 8
            *day_punches(date(2025, 1, 8), "08:55", "11:55"),                    # half day
            *day_punches(date(2025, 1, 1), "09:00", "13:00"),                    # holiday
        ]
        absences = [make_absence("E001", date(2025, 1, 9))]
        result = kpi(make_employee(punches=punches), rules, absences)

        assert result.days_worked == 3
        assert result.days_absent == 1
        assert result.delta_days == -23
        assert result.total_hours == 18.4
        assert result.late_days == 1
        assert result.minor_days == 1
        assert result.worked_holidays == 1
        assert result.avg_delay_min == 10.0

    def test_avg_delay_excludes_days_without_delay(self, rules: AttendanceRules) -> None:
        punches = [
            *day_punches(date(2025, 1, 6), "09:20", "18:00"),
            *day_punches(date(2025, 1, 7), "08:50", "18:00"),
            *day_punches(date(2025, 1, 8), "09:00", "18:00"),
        ]
        assert kpi(make_employee(punches=punches), rules).avg_delay_min == 20

    def test_auto_derive_keeps_larger_recorded_count(self) -> None:
        rules = AttendanceRules(policy=LatenessPolicy(required_days_per_month=10))
        days = [d for d in month_days(2025, 1) if d.weekday() < 5 and d.day != 1]
        absences = [make_absence("E001", d) for d in days]
        result = kpi(make_employee(), rules, absences, auto_derive_absence=True)
        assert len(days) == 22
        assert result.days_absent == 22
        assert result.delta_days == -10

    def test_auto_derive_clamped_at_zero(self, rules: AttendanceRules) -> None:
        punches = [
            p
            for d in month_days(2025, 1)
            for p in day_punches(d, "09:00", "18:00")
        ]
        result = kpi(make_employee(punches=punches), rules, auto_derive_absence=True)
        assert result.days_worked == 31
        assert result.days_absent == 0
        assert result.delta_days == 5

    def test_days_worked_bounded_by_month_length(self, rules: AttendanceRules) -> None:
        punches = [
            p
            for d in month_days(2025, 1)
            for p in day_punches(d, "06:00", "12:00", "13:00", "23:00")
        ]
        result = kpi(make_employee(punches=punches), rules)
        assert result.days_worked <= 31

    def test_absence_on_holiday_not_counted_as_status(self, rules: AttendanceRules) -> None:
        absences = [make_absence("E001", date(2025, 1, 1))]
        rollups = compute_month_rollups(make_employee(), 2025, 1, absences, rules=rules)
        assert rollups[0].status.value == "Holiday"
        assert len(rollups) == 31


class TestAbsencesByDate:
    def test_manual_wins_over_file(self) -> None:
        day = date(2025, 1, 6)
        manual = make_absence("E001", day, source="MANUAL", reason_code="SICK")
        file_ = make_absence("E001", day, source="FILE")
        assert absences_by_date([manual, file_])[day].reason_code == "SICK"
        assert absences_by_date([file_, manual])[day].reason_code == "SICK"

    def test_month_days(self) -> None:
        assert len(month_days(2024, 2)) == 29
        assert month_days(2025, 12)[-1] == date(2025, 12, 31)


class TestStatusVocabulary:
    def test_reserved_worked_status_never_assigned(self, rules: AttendanceRules) -> None:
        punches = [
            *day_punches(date(2025, 1, 1), "09:00", "18:00"),
            *day_punches(date(2025, 1, 4), "09:00", "18:00"),
            *day_punches(date(2025, 1, 6), "09:20", "18:00"),
            *day_punches(date(2025, 1, 7), "09:07", "11:00"),
            *day_punches(date(2025, 1, 8), "08:55", "18:00"),
        ]
        absences = [make_absence("E001", date(2025, 1, 9))]
        rollups = compute_month_rollups(make_employee(punches=punches), 2025, 1, absences, rules=rules)
        assert DayStatus.WORKED not in {r.status for r in rollups}
