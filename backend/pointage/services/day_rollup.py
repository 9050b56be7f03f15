"""
Single-day attendance outcome for one employee.

The rollup is recomputed on every call and never stored. Source data is
messy, so nothing here raises on bad input: unparseable punch timestamps are
left out of the day, a missing morning window means "no detected delay".
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Iterator, Optional
from zoneinfo import ZoneInfo

from pointage.schemas.absence import Absence
from pointage.schemas.analytics import DayRollup, DayStatus
from pointage.schemas.employee import Employee, Punch
from pointage.schemas.schedule import LatenessPolicy, ScheduleDetails
from pointage.services.rules import AttendanceRules

SATURDAY = 5
SUNDAY = 6

# Spreadsheet serial day numbers start at 1899-12-30; 25569 is 1970-01-01
_EXCEL_UNIX_EPOCH = 25569
_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def round_half_up(value: float, digits: int) -> float:
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def parse_punch_time(value: object, tz: ZoneInfo) -> Optional[datetime]:
    """
    Normalise a raw punch timestamp to an aware datetime in ``tz``.

    Naive values are wall-clock time in ``tz``. Returns None for anything
    that cannot be read.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        if not math.isfinite(value) or value <= _EXCEL_UNIX_EPOCH:
            return None
        utc_days = math.floor(value - _EXCEL_UNIX_EPOCH)
        return (_UNIX_EPOCH + timedelta(days=utc_days)).astimezone(tz)

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            value = datetime.fromisoformat(text)
        except ValueError:
            return None

    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


def iter_local_punches(employee: Employee, tz: ZoneInfo) -> Iterator[tuple[datetime, Punch]]:
    """Yield ``(local_time, punch)`` for every readable punch of ``employee``."""
    for punch in employee.punches or []:
        if punch is None:
            continue
        local_time = parse_punch_time(punch.punch_time, tz)
        if local_time is not None:
            yield local_time, punch


def _raw_number(value: object) -> Optional[float]:
    """Numeric value of a raw file field; blank, zero or non-numeric -> None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number == 0:
        return None
    return number


def _worked_hours(times: list[datetime]) -> float:
    """Pair sorted punches by position as (in, out) and sum the spans."""
    total = 0.0
    for i in range(0, len(times) - 1, 2):
        span = times[i + 1].astimezone(timezone.utc) - times[i].astimezone(timezone.utc)
        total += span.total_seconds() / 3600
    return total


def _credit(hours: float, has_absence: bool, policy: LatenessPolicy) -> float:
    if has_absence:
        return 0
    if hours >= policy.half_day_threshold_hours:
        return 1
    if hours > 0:
        return 0.5
    return 0


@dataclass(frozen=True)
class DayFacts:
    is_holiday: bool
    is_weekend: bool
    is_absent: bool
    credit: float
    delay_min: Optional[float]


def _holiday_status(facts: DayFacts, policy: LatenessPolicy) -> DayStatus:
    return DayStatus.WORKED_ON_HOLIDAY if facts.credit > 0 else DayStatus.HOLIDAY


def _worked_status(facts: DayFacts, policy: LatenessPolicy) -> DayStatus:
    if facts.delay_min is not None:
        if facts.delay_min > policy.minor_delay_minutes:
            return DayStatus.LATE
        if facts.delay_min > policy.grace_minutes:
            return DayStatus.MINOR_DELAY
    return DayStatus.ON_TIME


# Precedence order: the first rule whose predicate holds decides the status.
STATUS_RULES: tuple[
    tuple[Callable[[DayFacts], bool], Callable[[DayFacts, LatenessPolicy], DayStatus]], ...
] = (
    (lambda f: f.is_holiday, _holiday_status),
    (lambda f: f.is_weekend, lambda f, p: DayStatus.WEEKEND),
    (lambda f: f.is_absent, lambda f, p: DayStatus.ABSENT),
    (lambda f: f.credit > 0, _worked_status),
)


def classify_day(facts: DayFacts, policy: LatenessPolicy) -> DayStatus:
    for applies, resolve in STATUS_RULES:
        if applies(facts):
            return resolve(facts, policy)
    # Nothing worked and nothing recorded: neutral rather than absent, so that
    # gaps in the source data do not raise alerts.
    return DayStatus.ON_TIME


def compute_day_rollup(
    employee: Employee,
    day: date,
    schedule: ScheduleDetails,
    absence: Optional[Absence] = None,
    count_absence_on_holiday: bool = False,
    *,
    rules: AttendanceRules,
) -> DayRollup:
    policy = rules.policy

    day_punches = sorted(
        ((t, p) for t, p in iter_local_punches(employee, rules.tz) if t.date() == day),
        key=lambda item: item[0],
    )
    times = [t for t, _ in day_punches]
    first_punch = day_punches[0][1] if day_punches else None

    is_holiday = rules.calendar.is_holiday(day).is_holiday
    weekday = day.weekday()
    is_working_saturday = schedule.works_saturday and weekday == SATURDAY
    is_weekend = not is_working_saturday and weekday in (SATURDAY, SUNDAY)
    is_absent = absence is not None

    raw_hours = _raw_number(first_punch.raw_hours) if first_punch else None
    hours = raw_hours if raw_hours is not None else _worked_hours(times)
    hours = max(0.0, round_half_up(hours, 2))
    credit = _credit(hours, is_absent, policy)

    delay_min = _raw_number(first_punch.raw_lateness) if first_punch else None
    if delay_min is None and times:
        if is_working_saturday:
            start = rules.saturday_start
        else:
            start = schedule.morning.start if schedule.morning else None
        if start is not None:
            scheduled = datetime.combine(day, start, tzinfo=rules.tz)
            late_by = (
                times[0].astimezone(timezone.utc) - scheduled.astimezone(timezone.utc)
            ).total_seconds() / 60
            if late_by > 0:
                delay_min = math.floor(late_by + 0.5)

    facts = DayFacts(
        is_holiday=is_holiday,
        is_weekend=is_weekend,
        is_absent=is_absent,
        credit=credit,
        delay_min=delay_min,
    )
    status = classify_day(facts, policy)
    if status == DayStatus.ABSENT and is_holiday and not count_absence_on_holiday:
        status = DayStatus.HOLIDAY

    return DayRollup(
        matricule=employee.matricule,
        date=day,
        hours=hours,
        first_in=times[0] if times else None,
        delay_min=delay_min,
        is_holiday=is_holiday,
        worked_holiday=is_holiday and credit > 0,
        credit=credit,
        is_absent_from_file=is_absent,
        absence_info=absence,
        punches=[p for _, p in day_punches],
        status=status,
    )
