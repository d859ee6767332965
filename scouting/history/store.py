from pathlib import Path
from typing import List, Optional

from loguru import logger
from pydantic import ValidationError

from scouting.models.history import HistoryPoint, Snapshot
from scouting.storage.json_store import (
    ContentError,
    read_json_or,
    write_json,
    write_json_if_changed,
)
from .merge import append_snapshot


class HistoryStore:
    """Reads and writes per-slug history files and rank snapshot files."""

    def __init__(
        self,
        history_dir: Path,
        snapshot_dir: Optional[Path] = None,
        dry_run: bool = False,
    ):
        self.history_dir = history_dir
        self.snapshot_dir = snapshot_dir
        self.dry_run = dry_run

    def path_for(self, slug: str) -> Path:
        return self.history_dir / f"{slug}.json"

    def load(self, slug: str) -> List[HistoryPoint]:
        path = self.path_for(slug)
        raw = read_json_or(path, [])
        if not isinstance(raw, list):
            raise ContentError(f"{path} is not a JSON array")
        try:
            points = [HistoryPoint.model_validate(item) for item in raw]
        except ValidationError as e:
            raise ContentError(f"Invalid history entry in {path}: {e}") from e
        return sorted(points, key=lambda p: p.date)

    def record(self, slug: str, snapshot: Snapshot, today: str, gated_day: bool) -> bool:
        """Merges today's snapshot into the slug's history; True if the file changed."""
        series = self.load(slug)
        updated, changed = append_snapshot(series, snapshot, today, gated_day)
        if not changed:
            logger.debug(f"History unchanged: {slug}")
            return False
        if self.dry_run:
            logger.info(f"[dry-run] would update history: {slug}")
        else:
            write_json(self.path_for(slug), [p.to_json() for p in updated])
            logger.info(f"History updated: {slug}")
        return True

    def write_rank_snapshot(self, key: str, snapshot: Snapshot) -> bool:
        """Latest ranks by slug or MHR id, used by pages as a fallback."""
        if self.snapshot_dir is None:
            return False
        data = {}
        if snapshot.state_rank is not None:
            data["stateRank"] = snapshot.state_rank
        if snapshot.national_rank is not None:
            data["nationalRank"] = snapshot.national_rank
        if not data:
            return False
        path = self.snapshot_dir / f"{key}.json"
        if self.dry_run:
            return read_json_or(path, {}) != data
        changed = write_json_if_changed(path, data)
        if changed:
            logger.info(f"Rank snapshot updated: {path.name}")
        return changed
