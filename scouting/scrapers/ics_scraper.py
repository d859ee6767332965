import re
from typing import Any, List, Optional

from icalendar import Calendar
from loguru import logger

from scouting.models.game import CalendarEvent
from .base_scraper import BaseScraper, ScraperError


def normalize_ics_url(url: str) -> str:
    """webcal:// feeds are plain https underneath."""
    return re.sub(r"^webcal:", "https:", url, flags=re.IGNORECASE)


def _prop(component: Any, name: str) -> Optional[str]:
    value = component.get(name)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _when(component: Any, name: str):
    value = component.get(name)
    return value.dt if value is not None else None


def parse_ics(text: str) -> List[CalendarEvent]:
    """Reads the VEVENTs of an iCalendar document."""
    try:
        calendar = Calendar.from_ical(text)
    except ValueError as e:
        raise ScraperError(f"Invalid iCalendar data: {e}") from e

    events = []
    for component in calendar.walk("VEVENT"):
        summary = _prop(component, "SUMMARY")
        events.append(
            CalendarEvent(
                source_id=_prop(component, "UID") or summary,
                title=summary,
                start=_when(component, "DTSTART"),
                end=_when(component, "DTEND"),
                location=_prop(component, "LOCATION"),
                url=_prop(component, "URL"),
            )
        )
    return events


class IcsScraper(BaseScraper):
    """Fetches and parses team calendar feeds."""

    source: str = "ics"
    accept: str = "text/calendar,*/*"

    async def fetch_events(self, url: str) -> List[CalendarEvent]:
        normalized = normalize_ics_url(url)
        text = await self.fetch_text(normalized)
        events = parse_ics(text)
        logger.debug(f"Parsed {len(events)} events from {normalized}")
        return events
