"""
Schedule resolution tests: employee override > department override > company default.
"""

from __future__ import annotations

from datetime import time

from pointage.schemas.schedule import ScheduleConfig, ScheduleDetails, ScheduleOverride, ScheduleTime
from pointage.services.schedule_resolver import resolve_schedule
from tests.helpers import make_employee

COMPANY = ScheduleDetails(
    morning=ScheduleTime(start=time(9, 0), end=time(13, 0)),
    afternoon=ScheduleTime(start=time(14, 0), end=time(18, 0)),
    works_saturday=False,
)

CONFIG = ScheduleConfig(
    company_default=COMPANY,
    department_defaults={
        "Production": ScheduleOverride(works_saturday=True),
    },
    employee_overrides={
        "E042": ScheduleOverride(morning=ScheduleTime(start=time(7, 0), end=time(11, 0))),
    },
)


class TestResolveSchedule:
    def test_no_override_returns_company_default(self) -> None:
        schedule = resolve_schedule(make_employee(department="Sales"), CONFIG)
        assert schedule == COMPANY

    def test_department_override_merges_single_field(self) -> None:
        schedule = resolve_schedule(make_employee(department="Production"), CONFIG)
        assert schedule.works_saturday is True
        assert schedule.morning == COMPANY.morning
        assert schedule.afternoon == COMPANY.afternoon

    def test_employee_override_wins_over_department(self) -> None:
        employee = make_employee(matricule="E042", department="Production")
        schedule = resolve_schedule(employee, CONFIG)
        assert schedule.morning.start == time(7, 0)
        # department layer is not consulted once an employee override exists
        assert schedule.works_saturday is False
        assert schedule.afternoon == COMPANY.afternoon

    def test_merge_does_not_mutate_default(self) -> None:
        resolve_schedule(make_employee(department="Production"), CONFIG)
        assert CONFIG.company_default.works_saturday is False
