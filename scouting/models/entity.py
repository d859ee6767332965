# scouting/models/entity.py
from datetime import datetime, timezone, tzinfo
from typing import Any, ClassVar, Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from scouting.utils.misc_utils import coerce_rank


class Entity(BaseModel):
    """A team or inline opponent: the unit of an MHR refresh.

    Only the fields the pipeline reads are declared; everything else a human
    authored in the JSON is kept as extra data and never rewritten.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    # JSON key holding the last-refreshed timestamp for this kind of entity
    timestamp_field: ClassVar[str] = "lastUpdated"

    name: str
    slug: Optional[str] = None
    rating: Optional[float] = None
    record: Optional[str] = None
    state_rank: Optional[int] = Field(None, alias="mhrStateRank")
    national_rank: Optional[int] = Field(None, alias="mhrNationalRank")
    mhr_url: Optional[str] = Field(None, alias="mhrUrl")
    mhr_team_id: Optional[Union[int, str]] = Field(
        None, validation_alias=AliasChoices("mhrTeamId", "mhrId", "mhr_team_id")
    )
    mhr_year: Optional[int] = Field(None, alias="mhrYear")

    # Location hints used when the page does not name a known state/province
    state: Optional[str] = None
    mhr_state: Optional[str] = Field(None, alias="mhrState")
    region: Optional[str] = None
    division: Optional[str] = None
    location: Optional[str] = None

    @field_validator("state_rank", "national_rank", mode="before")
    @classmethod
    def _coerce_rank(cls, value: Any) -> Optional[int]:
        # "NR" and similar read as unknown; the next scrape overwrites them
        return coerce_rank(value)

    @property
    def label(self) -> str:
        return self.slug or self.name

    @property
    def last_refreshed(self) -> Optional[str]:
        value = (self.model_extra or {}).get(self.timestamp_field)
        return str(value) if value else None

    def refreshed_at(self, tz: tzinfo) -> Optional[datetime]:
        """Parses the last-refreshed timestamp; date-only values are midnight in `tz`."""
        raw = self.last_refreshed
        if not raw:
            return None
        try:
            parsed = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=tz)
        return parsed.astimezone(timezone.utc)

    def location_hints(self) -> List[str]:
        return [h for h in (self.state, self.mhr_state, self.region, self.division, self.location) if h]


class Team(Entity):
    """A standalone team file under the teams directory."""

    timestamp_field: ClassVar[str] = "lastUpdated"

    last_updated: Optional[str] = Field(None, alias="lastUpdated")

    @property
    def last_refreshed(self) -> Optional[str]:
        return self.last_updated


class Opponent(Entity):
    """An opponent defined inline inside a tournament file."""

    timestamp_field: ClassVar[str] = "updatedFromMHRAt"

    updated_from_mhr_at: Optional[str] = Field(None, alias="updatedFromMHRAt")

    @property
    def last_refreshed(self) -> Optional[str]:
        return self.updated_from_mhr_at


class Tournament(BaseModel):
    """A tournament file; opponents are team slugs or inline opponent objects."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str
    slug: Optional[str] = None
    opponents: List[Union[str, Dict[str, Any]]] = []
