"""
Daily alert feed tests.
"""

from __future__ import annotations

from datetime import date

from pointage.schemas.analytics import AlertType
from pointage.services.alerts import generate_daily_alerts
from pointage.services.rules import AttendanceRules
from tests.helpers import day_punches, make_absence, make_employee

MONDAY = date(2025, 1, 6)
NEW_YEAR = date(2025, 1, 1)


def staff(day: date):
    return [
        make_employee(matricule="S1", department="Sales", role="Agent",
                      punches=day_punches(day, "09:30", "18:00")),          # late
        make_employee(matricule="S2", department="Sales", role="Lead",
                      punches=day_punches(day, "09:07", "18:00")),          # minor
        make_employee(matricule="S3", department="Sales",
                      punches=day_punches(day, "09:00", "18:00")),          # on time
        make_employee(matricule="P1", department="Production", role="Agent"),
        make_employee(matricule="X1", department=""),
    ]


class TestGenerateDailyAlerts:
    def test_grouped_by_department(self, rules: AttendanceRules) -> None:
        absences = [make_absence("P1", MONDAY, note="sick child")]
        result = generate_daily_alerts(staff(MONDAY), MONDAY, absences, rules=rules)

        assert result.date == MONDAY
        assert result.total_alerts == 3
        assert [g.key for g in result.groups] == ["Production", "Sales"]

        production, sales = result.groups
        assert production.totals.absent == 1
        assert production.items[0].note == "sick child"
        assert sales.totals.late == 1
        assert sales.totals.minor == 1
        assert {i.matricule: i.reason_tag for i in sales.items} == {
            "S1": AlertType.LATE,
            "S2": AlertType.MINOR,
        }

    def test_grouped_by_role(self, rules: AttendanceRules) -> None:
        absences = [make_absence("X1", MONDAY)]
        result = generate_daily_alerts(
            staff(MONDAY), MONDAY, absences, group_by="role", rules=rules
        )
        assert [g.key for g in result.groups] == ["Agent", "Lead", "Unknown"]
        assert result.groups[0].totals.late == 1

    def test_absences_for_other_days_ignored(self, rules: AttendanceRules) -> None:
        absences = [make_absence("P1", date(2025, 1, 7))]
        result = generate_daily_alerts(staff(MONDAY), MONDAY, absences, rules=rules)
        assert result.total_alerts == 2

    def test_holiday_alerts(self, rules: AttendanceRules) -> None:
        """Everyone on a holiday is either HOLIDAY_WORKED or HOLIDAY_NO_ATT; absences never alert."""
        absences = [make_absence("P1", NEW_YEAR)]
        result = generate_daily_alerts(staff(NEW_YEAR), NEW_YEAR, absences, rules=rules)

        tags = {i.matricule: i.reason_tag for g in result.groups for i in g.items}
        assert tags["S1"] == AlertType.HOLIDAY_WORKED
        assert tags["P1"] == AlertType.HOLIDAY_NO_ATT
        assert AlertType.ABSENT not in tags.values()
        assert sum(g.totals.holiday_worked for g in result.groups) == 3

    def test_search_narrows_population(self, rules: AttendanceRules) -> None:
        result = generate_daily_alerts(
            staff(MONDAY), MONDAY, [], search_text="s1", rules=rules
        )
        assert result.total_alerts == 1
        assert result.groups[0].items[0].matricule == "S1"

    def test_weekend_produces_nothing(self, rules: AttendanceRules) -> None:
        sunday = date(2025, 1, 5)
        result = generate_daily_alerts(staff(sunday), sunday, [], rules=rules)
        assert result.total_alerts == 0
        assert result.groups == []
