"""
Bundle of the read-only inputs every engine computation needs.

Built once per process (see ``pointage.main``) and passed by reference to the
engine functions; nothing in the engine reads module-level configuration.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import time
from pathlib import Path
from zoneinfo import ZoneInfo

from pointage.core.config import Settings
from pointage.holidays import HolidayCalendar
from pointage.schemas.schedule import (
    LatenessPolicy,
    ScheduleConfig,
    ScheduleDetails,
    ScheduleOverride,
    ScheduleTime,
)

logger = logging.getLogger(__name__)

DEFAULT_SCHEDULE_CONFIG = ScheduleConfig(
    company_default=ScheduleDetails(
        morning=ScheduleTime(start=time(9, 0), end=time(13, 0)),
        afternoon=ScheduleTime(start=time(14, 0), end=time(18, 0)),
        works_saturday=False,
    ),
    department_defaults={
        "Production": ScheduleOverride(works_saturday=True),
        "IT": ScheduleOverride(
            morning=ScheduleTime(start=time(8, 30), end=time(12, 30)),
            afternoon=ScheduleTime(start=time(13, 30), end=time(17, 30)),
        ),
    },
    employee_overrides={},
)


def _parse_hhmm(value: str) -> time:
    hours, minutes = value.strip().split(":")[:2]
    return time(int(hours), int(minutes))


@dataclass(frozen=True)
class AttendanceRules:
    policy: LatenessPolicy = field(default_factory=LatenessPolicy)
    schedule_config: ScheduleConfig = field(default_factory=lambda: DEFAULT_SCHEDULE_CONFIG)
    calendar: HolidayCalendar = field(default_factory=HolidayCalendar)
    tz: ZoneInfo = ZoneInfo("Africa/Casablanca")
    saturday_start: time = time(9, 0)

    @classmethod
    def from_settings(cls, settings: Settings) -> "AttendanceRules":
        policy = LatenessPolicy(
            grace_minutes=settings.GRACE_MINUTES,
            minor_delay_minutes=settings.MINOR_DELAY_MINUTES,
            half_day_threshold_hours=settings.HALF_DAY_THRESHOLD_HOURS,
            required_days_per_month=settings.REQUIRED_DAYS_PER_MONTH,
        )

        schedule_config = DEFAULT_SCHEDULE_CONFIG
        if settings.SCHEDULE_CONFIG_FILE:
            payload = json.loads(Path(settings.SCHEDULE_CONFIG_FILE).read_text(encoding="utf-8"))
            schedule_config = ScheduleConfig.model_validate(payload)
            logger.info(
                "Schedule config loaded from %s: departments=%d, employee overrides=%d",
                settings.SCHEDULE_CONFIG_FILE,
                len(schedule_config.department_defaults),
                len(schedule_config.employee_overrides),
            )

        if settings.HOLIDAY_DATA_FILE:
            calendar = HolidayCalendar.from_file(settings.HOLIDAY_DATA_FILE)
        else:
            calendar = HolidayCalendar()

        return cls(
            policy=policy,
            schedule_config=schedule_config,
            calendar=calendar,
            tz=ZoneInfo(settings.TIMEZONE),
            saturday_start=_parse_hhmm(settings.SATURDAY_START_TIME),
        )
