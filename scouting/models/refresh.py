from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .enums import ExtractionMode, RefreshStatus
from .history import Snapshot


class ExtractedText(BaseModel):
    """Normalized page text plus how it was obtained."""

    model_config = ConfigDict(frozen=True)

    mode: ExtractionMode
    text: str
    raw_html: Optional[str] = None


class ParsedFields(BaseModel):
    """Values parsed from one MHR page; None means the page did not show it."""

    model_config = ConfigDict(frozen=True)

    rating: Optional[float] = None
    record: Optional[str] = None
    state_rank: Optional[int] = None
    national_rank: Optional[int] = None

    def is_empty(self) -> bool:
        return all(
            v is None
            for v in (self.rating, self.record, self.state_rank, self.national_rank)
        )

    def snapshot(self) -> Snapshot:
        return Snapshot(
            rating=self.rating,
            state_rank=self.state_rank,
            national_rank=self.national_rank,
        )


class RefreshOutcome(BaseModel):
    """Per-entity result reported in the run summary."""

    label: str
    status: RefreshStatus
    reason: Optional[str] = None
    fields: Optional[ParsedFields] = None
    # JSON-key -> value changes applied to the entity
    changes: Dict[str, Any] = Field(default_factory=dict)
    history_changed: bool = False


class RunSummary(BaseModel):
    """What a command did, for the end-of-run report."""

    command: str
    outcomes: List[RefreshOutcome] = Field(default_factory=list)
    files_modified: int = 0
    dry_run: bool = False

    def add(self, outcome: RefreshOutcome) -> RefreshOutcome:
        self.outcomes.append(outcome)
        return outcome

    def count(self, status: RefreshStatus) -> int:
        return sum(1 for o in self.outcomes if o.status == status)
