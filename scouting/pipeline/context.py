from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict

from scouting.config.settings import AppSettings
from scouting.utils.dates import today_in_zone


class RunOptions(BaseModel):
    """Per-run switches, usually from the command line."""

    slug: Optional[str] = None
    tournament: Optional[str] = None
    force: bool = False
    debug: bool = False
    dump_html: bool = False
    stale_days: Optional[float] = None
    dry_run: bool = False
    include_past: bool = False
    render: bool = True


class RunContext(BaseModel):
    """Clock values fixed once at the start of a run and shared by every entity."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    now: datetime  # aware, UTC
    today: str  # YYYY-MM-DD in the configured zone
    gated_day: bool
    tz: ZoneInfo

    @classmethod
    def create(cls, settings: AppSettings, now: Optional[datetime] = None) -> "RunContext":
        tz = ZoneInfo(settings.time_zone)
        now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
        today = today_in_zone(tz, now)
        return cls(
            now=now,
            today=today.isoformat(),
            gated_day=today.weekday() == settings.history_gated_weekday,
            tz=tz,
        )

    @property
    def today_date(self) -> date:
        return date.fromisoformat(self.today)

    @property
    def timestamp(self) -> str:
        """ISO instant written to updatedFromMHRAt, e.g. 2025-10-01T14:03:00.000Z."""
        return self.now.isoformat(timespec="milliseconds").replace("+00:00", "Z")
