from datetime import time

from pydantic import BaseModel


class ScheduleTime(BaseModel):
    start: time
    end: time


class ScheduleDetails(BaseModel):
    morning: ScheduleTime | None = None
    afternoon: ScheduleTime | None = None
    works_saturday: bool = False


class ScheduleOverride(BaseModel):
    """Partial schedule: only the fields that are set replace the default."""

    morning: ScheduleTime | None = None
    afternoon: ScheduleTime | None = None
    works_saturday: bool | None = None


class ScheduleConfig(BaseModel):
    company_default: ScheduleDetails
    department_defaults: dict[str, ScheduleOverride] = {}
    employee_overrides: dict[str, ScheduleOverride] = {}


class LatenessPolicy(BaseModel):
    grace_minutes: int = 5
    minor_delay_minutes: int = 10
    half_day_threshold_hours: float = 4.0
    required_days_per_month: int = 26

    model_config = {"frozen": True}
