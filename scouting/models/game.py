from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .enums import HomeAway, SourceType


class CalendarEvent(BaseModel):
    """A raw event read from a calendar feed; consumed once per run."""

    source_id: Optional[str] = None  # UID in the feed (falls back to the title)
    title: Optional[str] = None
    start: Optional[Union[datetime, date]] = None
    end: Optional[Union[datetime, date]] = None
    location: Optional[str] = None
    url: Optional[str] = None


class GameRecord(BaseModel):
    """A normalized game row as consumed by the schedule pages."""

    model_config = ConfigDict(populate_by_name=True)

    date: str
    time: Optional[str] = None
    opponent: str
    home_away: HomeAway = Field(HomeAway.NEUTRAL, alias="homeAway")
    league_game: bool = Field(False, alias="leagueGame")
    tournament: Optional[str] = None
    venue: Optional[str] = None
    source: str = SourceType.ICS.value
    source_id: Optional[str] = Field(None, alias="sourceId")
    source_url: Optional[str] = Field(None, alias="sourceUrl")

    @property
    def dedup_key(self) -> str:
        """Games with the same date, time, opponent and source are the same game."""
        return "|".join(
            [self.date, self.time or "", self.opponent.lower(), self.source or ""]
        )

    @property
    def sort_key(self) -> str:
        return self.date + (self.time or "")

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ScheduleSource(BaseModel):
    """One calendar feed configured for a team."""

    model_config = ConfigDict(populate_by_name=True)

    type: SourceType = SourceType.ICS
    url: str
    self_name: Optional[str] = Field(None, alias="selfName")


class ScheduleConfig(BaseModel):
    """Team slug -> feeds to try in order (first non-empty feed wins)."""

    teams: Dict[str, List[ScheduleSource]] = {}
