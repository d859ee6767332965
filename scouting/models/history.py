from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class Snapshot(BaseModel):
    """One day's values for an entity; fields are None when unavailable today."""

    model_config = ConfigDict(frozen=True)

    rating: Optional[float] = None
    state_rank: Optional[int] = None
    national_rank: Optional[int] = None

    def is_empty(self) -> bool:
        return self.rating is None and self.state_rank is None and self.national_rank is None


class HistoryPoint(BaseModel):
    """A dated entry in an entity's history file."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    date: str  # YYYY-MM-DD in the configured time zone
    rating: Optional[float] = None
    state_rank: Optional[int] = Field(None, alias="stateRank")
    national_rank: Optional[int] = Field(None, alias="nationalRank")

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    def values(self) -> Snapshot:
        return Snapshot(
            rating=self.rating,
            state_rank=self.state_rank,
            national_rank=self.national_rank,
        )
