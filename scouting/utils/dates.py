# scouting/utils/dates.py
import re
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo

MONTHS = {
    "jan": 1, "january": 1, "feb": 2, "february": 2, "mar": 3, "march": 3,
    "apr": 4, "april": 4, "may": 5, "jun": 6, "june": 6, "jul": 7, "july": 7,
    "aug": 8, "august": 8, "sep": 9, "sept": 9, "september": 9,
    "oct": 10, "october": 10, "nov": 11, "november": 11,
    "dec": 12, "december": 12,
}

DASH = r"(?:to|[-–—])"
ISO_RANGE = re.compile(rf"(\d{{4}}-\d{{2}}-\d{{2}})\s*{DASH}\s*(\d{{4}}-\d{{2}}-\d{{2}})", re.I)
SAME_MONTH_RANGE = re.compile(r"([A-Za-z]{3,9})\.?\s+(\d{1,2})\s*[-–—]\s*(\d{1,2}),\s*(\d{4})")
CROSS_MONTH_RANGE = re.compile(
    r"([A-Za-z]{3,9})\.?\s+(\d{1,2})\s*[-–—]\s*([A-Za-z]{3,9})\.?\s+(\d{1,2}),\s*(\d{4})"
)
SINGLE_DAY = re.compile(r"([A-Za-z]{3,9})\.?\s+(\d{1,2}),\s*(\d{4})")

END_FIELDS = ("endDate", "end", "dateEnd", "date_to", "to")
RANGE_FIELDS = ("dates", "tournamentDates", "dateRange", "when")
START_FIELDS = ("startDate", "start", "dateStart", "date_from", "from")


def today_in_zone(tz: ZoneInfo, now: Optional[datetime] = None) -> date:
    """The calendar day in `tz` at instant `now` (default: the current instant)."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(tz).date()


def _make_date(year: int, month: Optional[int], day: int) -> Optional[date]:
    if month is None:
        return None
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_iso_date(value: str) -> Optional[date]:
    try:
        return datetime.fromisoformat(value.strip().replace("Z", "+00:00")).date()
    except ValueError:
        return None


def parse_end_date(value: Any) -> Optional[date]:
    """End date of a date or date-range string such as 'Oct 30–Nov 2, 2025'."""
    if not value:
        return None
    s = str(value).strip()

    iso = parse_iso_date(s)
    if iso:
        return iso

    m = ISO_RANGE.search(s)
    if m:
        end = parse_iso_date(m.group(2))
        if end:
            return end

    m = CROSS_MONTH_RANGE.search(s)
    if m:
        end = _make_date(int(m.group(5)), MONTHS.get(m.group(3).lower()), int(m.group(4)))
        if end:
            return end

    m = SAME_MONTH_RANGE.search(s)
    if m:
        end = _make_date(int(m.group(4)), MONTHS.get(m.group(1).lower()), int(m.group(3)))
        if end:
            return end

    m = SINGLE_DAY.search(s)
    if m:
        return _make_date(int(m.group(3)), MONTHS.get(m.group(1).lower()), int(m.group(2)))
    return None


def tournament_end_date(data: Dict[str, Any]) -> Optional[date]:
    """Best guess at when a tournament ends, from whichever date fields it has."""
    candidates = [data.get(k) for k in END_FIELDS]
    candidates += [data.get(k) for k in RANGE_FIELDS]
    nested = data.get("tournament")
    if isinstance(nested, dict):
        candidates.append(nested.get("dates"))
    # A lone start date is treated as a one-day event
    candidates += [data.get(k) for k in START_FIELDS]

    for candidate in candidates:
        end = parse_end_date(candidate) if isinstance(candidate, str) else None
        if end:
            return end
    return None


def is_past(end: Optional[date], today: date) -> bool:
    return end is not None and end < today
