from datetime import date, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel

from pointage.schemas.absence import Absence
from pointage.schemas.employee import Punch


class DayStatus(str, Enum):
    """Day classification. ``WORKED`` is reserved: no rule produces it yet."""

    ON_TIME = "OnTime"
    MINOR_DELAY = "MinorDelay"
    LATE = "Late"
    ABSENT = "Absent"
    WORKED = "Worked"
    HOLIDAY = "Holiday"
    WORKED_ON_HOLIDAY = "WorkedOnHoliday"
    WEEKEND = "Weekend"


class AlertType(str, Enum):
    LATE = "LATE"
    MINOR = "MINOR"
    ABSENT = "ABSENT"
    HOLIDAY_WORKED = "HOLIDAY_WORKED"
    HOLIDAY_NO_ATT = "HOLIDAY_NO_ATT"


class DayRollup(BaseModel):
    matricule: str
    date: date
    hours: float
    first_in: datetime | None = None
    delay_min: int | float | None = None
    is_holiday: bool
    worked_holiday: bool
    credit: Literal[0, 0.5, 1]
    is_absent_from_file: bool
    absence_info: Absence | None = None
    punches: list[Punch] = []
    status: DayStatus


class MonthlyKPI(BaseModel):
    matricule: str
    month: str  # YYYY-MM
    name: str
    department: str
    status: str
    days_worked: float
    days_absent: float
    delta_days: float
    total_hours: float
    avg_delay_min: float
    late_days: int
    minor_days: int
    on_time_days: int
    worked_holidays: int


class AnalyticsFilters(BaseModel):
    year: int
    month: int  # 1..12
    departments: list[str] = []
    statuses: list[Literal["Active", "Inactive"]] = []
    search_text: str = ""
    auto_derive_absence: bool = False
    count_absence_on_holiday: bool = False


class CompanyKPIs(BaseModel):
    days_worked: float = 0
    days_absent: float = 0
    avg_delay: float = 0
    late_days: int = 0
    worked_holidays: int = 0


class DepartmentKPI(CompanyKPIs):
    department: str
    employee_count: int = 0


class AnalyticsResult(BaseModel):
    employee_kpis: list[MonthlyKPI]
    company_kpis: CompanyKPIs
    department_kpis: list[DepartmentKPI]


class AlertItem(BaseModel):
    matricule: str
    name: str
    department: str
    role: str | None = None
    delay_min: int | float | None = None
    hours: float | None = None
    reason_tag: AlertType
    note: str | None = None


class AlertTotals(BaseModel):
    late: int = 0
    minor: int = 0
    absent: int = 0
    holiday_worked: int = 0
    holiday_no_att: int = 0


class AlertGroup(BaseModel):
    key: str
    totals: AlertTotals
    items: list[AlertItem]


class DailyAlerts(BaseModel):
    date: date
    groups: list[AlertGroup]
    total_alerts: int
