"""
Monthly KPI workbook export.

Sheet "Employees": one row per employee KPI, delay cells coloured by the
lateness policy. Sheet "Departments": per-department rollup plus a company
total row.
"""

import io
from typing import Sequence

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from pointage.schemas.analytics import AnalyticsResult, MonthlyKPI
from pointage.schemas.schedule import LatenessPolicy

EMPLOYEE_COLUMNS: tuple[tuple[str, str], ...] = (
    ("Matricule", "matricule"),
    ("Name", "name"),
    ("Department", "department"),
    ("Status", "status"),
    ("Month", "month"),
    ("Days worked", "days_worked"),
    ("Days absent", "days_absent"),
    ("Delta days", "delta_days"),
    ("Total hours", "total_hours"),
    ("Avg delay (min)", "avg_delay_min"),
    ("Late days", "late_days"),
    ("Minor delay days", "minor_days"),
    ("On-time days", "on_time_days"),
    ("Worked holidays", "worked_holidays"),
)

DEPARTMENT_COLUMNS: tuple[tuple[str, str], ...] = (
    ("Department", "department"),
    ("Employees", "employee_count"),
    ("Days worked", "days_worked"),
    ("Days absent", "days_absent"),
    ("Avg delay (min)", "avg_delay"),
    ("Late days", "late_days"),
    ("Worked holidays", "worked_holidays"),
)

HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
LATE_FILL = PatternFill(start_color="FF6B6B", end_color="FF6B6B", fill_type="solid")
MINOR_FILL = PatternFill(start_color="FFD700", end_color="FFD700", fill_type="solid")
BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)


def _write_header(ws, columns: Sequence[tuple[str, str]]) -> None:
    for col, (title, _) in enumerate(columns, start=1):
        cell = ws.cell(row=1, column=col, value=title)
        cell.fill = HEADER_FILL
        cell.font = Font(bold=True, color="FFFFFF")
        cell.alignment = Alignment(horizontal="center", vertical="center")
        cell.border = BORDER
        ws.column_dimensions[get_column_letter(col)].width = max(12, len(title) + 2)
    ws.freeze_panes = "A2"


def _delay_fill(kpi: MonthlyKPI, policy: LatenessPolicy):
    if kpi.avg_delay_min > policy.minor_delay_minutes:
        return LATE_FILL
    if kpi.avg_delay_min > policy.grace_minutes:
        return MINOR_FILL
    return None


def build_kpi_workbook(result: AnalyticsResult, policy: LatenessPolicy) -> bytes:
    wb = Workbook()

    ws = wb.active
    ws.title = "Employees"
    _write_header(ws, EMPLOYEE_COLUMNS)
    delay_col = [attr for _, attr in EMPLOYEE_COLUMNS].index("avg_delay_min") + 1
    for row, kpi in enumerate(result.employee_kpis, start=2):
        for col, (_, attr) in enumerate(EMPLOYEE_COLUMNS, start=1):
            cell = ws.cell(row=row, column=col, value=getattr(kpi, attr))
            cell.border = BORDER
        fill = _delay_fill(kpi, policy)
        if fill is not None:
            ws.cell(row=row, column=delay_col).fill = fill

    ws = wb.create_sheet("Departments")
    _write_header(ws, DEPARTMENT_COLUMNS)
    for row, dept in enumerate(result.department_kpis, start=2):
        for col, (_, attr) in enumerate(DEPARTMENT_COLUMNS, start=1):
            ws.cell(row=row, column=col, value=getattr(dept, attr)).border = BORDER

    total_row = len(result.department_kpis) + 2
    company = result.company_kpis
    totals = {
        "department": "Company",
        "employee_count": len(result.employee_kpis),
        **company.model_dump(),
    }
    for col, (_, attr) in enumerate(DEPARTMENT_COLUMNS, start=1):
        cell = ws.cell(row=total_row, column=col, value=totals[attr])
        cell.font = Font(bold=True)
        cell.border = BORDER

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
