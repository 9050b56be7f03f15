"""
Public holiday calendar (Morocco).

Fixed holidays recur at the same month-day every year. Religious holidays
follow the lunar calendar and are listed explicitly per year; a year with no
entry simply has no religious holidays.

The table can be replaced by a JSON file of the same shape (see
``HolidayCalendar.from_file``) so that new years can be added without a
release.
"""

import json
import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Literal, Optional

logger = logging.getLogger(__name__)

HolidayKind = Literal["fixed", "religious"]


@dataclass(frozen=True)
class Holiday:
    name: str
    kind: HolidayKind


@dataclass(frozen=True)
class HolidayLookup:
    is_holiday: bool
    details: Optional[Holiday] = None


# --- Built-in table ---

# (month, day) -> name
_FIXED_HOLIDAYS: dict[tuple[int, int], str] = {
    (1, 1): "New Year's Day",
    (1, 11): "Proclamation of Independence",
    (5, 1): "Labour Day",
    (7, 30): "Throne Day",
    (8, 14): "Oued Ed-Dahab Day",
    (8, 20): "Revolution of the King and the People",
    (8, 21): "Youth Day",
    (11, 6): "Green March",
    (11, 18): "Independence Day",
}

_RELIGIOUS_HOLIDAYS: dict[int, dict[date, str]] = {
    2025: {
        date(2025, 3, 31): "Eid al-Fitr",
        date(2025, 4, 1): "Eid al-Fitr",
        date(2025, 6, 7): "Eid al-Adha",
        date(2025, 6, 8): "Eid al-Adha",
        date(2025, 6, 9): "Eid al-Adha (Admin Day)",
        date(2025, 6, 27): "Hijri New Year",
        date(2025, 9, 5): "Prophet's Birthday",
        date(2025, 9, 6): "Prophet's Birthday",
    },
}


class HolidayCalendar:
    """
    Holiday lookup with a per-year memo.

    One instance is built per process and passed by reference to whoever
    needs it; the memo is filled once per year and never invalidated.
    """

    def __init__(
        self,
        fixed: Optional[dict[tuple[int, int], str]] = None,
        religious: Optional[dict[int, dict[date, str]]] = None,
    ) -> None:
        self._fixed = dict(_FIXED_HOLIDAYS if fixed is None else fixed)
        self._religious = dict(_RELIGIOUS_HOLIDAYS if religious is None else religious)
        self._cache: dict[int, dict[date, Holiday]] = {}

    @classmethod
    def from_file(cls, path: str | Path) -> "HolidayCalendar":
        """
        Load a JSON table::

            {"fixed": [{"date": "MM-DD", "name": "..."}],
             "religious": {"2026": [{"date": "YYYY-MM-DD", "name": "..."}]}}
        """
        payload = json.loads(Path(path).read_text(encoding="utf-8"))

        fixed: dict[tuple[int, int], str] = {}
        for entry in payload.get("fixed", []):
            month, day = (int(part) for part in entry["date"].split("-"))
            fixed[(month, day)] = entry["name"]

        religious: dict[int, dict[date, str]] = {}
        for year, entries in payload.get("religious", {}).items():
            religious[int(year)] = {
                date.fromisoformat(entry["date"]): entry["name"] for entry in entries
            }

        logger.info(
            "Holiday table loaded from %s: fixed=%d, religious years=%s",
            path, len(fixed), sorted(religious),
        )
        return cls(fixed=fixed, religious=religious)

    def holidays_for_year(self, year: int) -> dict[date, Holiday]:
        """Return ``{date: Holiday}`` for ``year``; memoised."""
        cached = self._cache.get(year)
        if cached is not None:
            return cached

        holidays: dict[date, Holiday] = {}
        for (month, day), name in self._fixed.items():
            try:
                holidays[date(year, month, day)] = Holiday(name=name, kind="fixed")
            except ValueError:
                # e.g. a 02-29 entry in a non-leap year
                continue

        for day, name in self._religious.get(year, {}).items():
            holidays[day] = Holiday(name=name, kind="religious")

        self._cache[year] = holidays
        logger.debug("Holiday cache filled: year=%d (%d days)", year, len(holidays))
        return holidays

    def is_holiday(self, value: date | str) -> HolidayLookup:
        """
        Look up a ``date`` or a ``YYYY-MM-DD`` string.

        Malformed strings are reported as "not a holiday" instead of raising.
        """
        if isinstance(value, str):
            try:
                value = date.fromisoformat(value.strip())
            except ValueError:
                return HolidayLookup(is_holiday=False)

        details = self.holidays_for_year(value.year).get(value)
        if details is None:
            return HolidayLookup(is_holiday=False)
        return HolidayLookup(is_holiday=True, details=details)
