"""
Company / department aggregation tests.
"""

from __future__ import annotations

from datetime import date

import pytest

from pointage.schemas.analytics import AnalyticsFilters
from pointage.services.analytics import aggregate, matches_search, normalize_search
from pointage.services.rules import AttendanceRules
from tests.helpers import day_punches, make_absence, make_employee

MONDAY = date(2025, 1, 6)
TUESDAY = date(2025, 1, 7)


def staff():
    return [
        make_employee(
            matricule="S100", first_name="Élodie", last_name="Martin", department="Sales",
            punches=day_punches(MONDAY, "09:20", "18:00"),                 # delay 20
        ),
        make_employee(
            matricule="S101", first_name="Youssef", last_name="Alaoui", department="Sales",
            punches=day_punches(MONDAY, "09:00", "18:00"),                 # no delay
        ),
        make_employee(
            matricule="P200", first_name="Karim", last_name="Idrissi", department="Production",
            punches=day_punches(MONDAY, "09:40", "18:00"),                 # delay 40
        ),
        make_employee(
            matricule="P201", first_name="Sara", last_name="Tazi", department="Production",
            status="Inactive",
        ),
    ]


def filters(**kwargs) -> AnalyticsFilters:
    return AnalyticsFilters(year=2025, month=1, **kwargs)


class TestSearch:
    def test_normalize_strips_diacritics_and_case(self) -> None:
        assert normalize_search("  Élodie MARTÍN ") == "elodie martin"

    def test_matricule_prefix_or_name_substring(self) -> None:
        assert matches_search("S100", "Élodie Martin", "s1")
        assert matches_search("S100", "Élodie Martin", "elod")
        assert not matches_search("S100", "Élodie Martin", "100")
        assert matches_search("S100", "Élodie Martin", "")


class TestAggregate:
    def test_company_totals(self, rules: AttendanceRules) -> None:
        absences = [make_absence("S101", TUESDAY)]
        result = aggregate(staff(), filters(), absences, rules=rules)

        assert len(result.employee_kpis) == 4
        company = result.company_kpis
        assert company.days_worked == 3
        assert company.days_absent == 1
        assert company.late_days == 2
        # S101 (no delay) and P201 (no data) are left out of the average
        assert company.avg_delay == 30

    def test_department_breakdown(self, rules: AttendanceRules) -> None:
        result = aggregate(staff(), filters(), [], rules=rules)
        by_name = {d.department: d for d in result.department_kpis}
        assert [d.department for d in result.department_kpis] == ["Production", "Sales"]
        assert by_name["Sales"].employee_count == 2
        assert by_name["Sales"].avg_delay == 20
        assert by_name["Production"].days_worked == 1

    def test_department_and_status_filters(self, rules: AttendanceRules) -> None:
        result = aggregate(
            staff(), filters(departments=["Production"], statuses=["Active"]), [], rules=rules
        )
        assert [k.matricule for k in result.employee_kpis] == ["P200"]

    def test_search_filter(self, rules: AttendanceRules) -> None:
        result = aggregate(staff(), filters(search_text="ELODIE"), [], rules=rules)
        assert [k.matricule for k in result.employee_kpis] == ["S100"]
        assert result.company_kpis.days_worked == 1

    def test_auto_derive_flag_is_forwarded(self, rules: AttendanceRules) -> None:
        result = aggregate(staff(), filters(auto_derive_absence=True), [], rules=rules)
        inactive = next(k for k in result.employee_kpis if k.matricule == "P201")
        assert inactive.days_absent == 26

    def test_empty_population(self, rules: AttendanceRules) -> None:
        result = aggregate([], filters(), [], rules=rules)
        assert result.employee_kpis == []
        assert result.company_kpis.avg_delay == 0
        assert result.department_kpis == []

    def test_company_delay_is_unrounded_mean(self, rules: AttendanceRules) -> None:
        employees = [
            make_employee(matricule=m, punches=day_punches(MONDAY, clock, "18:00"))
            for m, clock in (("S1", "09:11"), ("S2", "09:12"), ("S3", "09:12"))
        ]
        result = aggregate(employees, filters(), [], rules=rules)
        assert result.company_kpis.avg_delay == pytest.approx(35 / 3)
