"""Records today's rating/ranks from the team files into history, without scraping."""

from typing import Any, Dict, Optional

from loguru import logger

from scouting.history.store import HistoryStore
from scouting.models.enums import RefreshStatus
from scouting.models.history import Snapshot
from scouting.models.refresh import RefreshOutcome, RunSummary
from scouting.storage.json_store import ContentError, list_json_files, read_json
from scouting.utils.misc_utils import coerce_rank, positive_number
from .context import RunContext, RunOptions

STATE_RANK_KEYS = ("mhrStateRank", "stateRank", "mhrStateRankText")
NATIONAL_RANK_KEYS = ("mhrNationalRank", "nationalRank", "mhrNationalRankText")


def _first_rank(team: Dict[str, Any], keys, nested_key: str, ranks_key: str) -> Optional[int]:
    candidates = [team.get(k) for k in keys]
    mhr = team.get("mhr")
    if isinstance(mhr, dict):
        candidates.append(mhr.get(nested_key))
        ranks = mhr.get("ranks")
        if isinstance(ranks, dict):
            candidates.append(ranks.get(ranks_key))
    for value in candidates:
        rank = coerce_rank(value)
        if rank is not None:
            return rank
    return None


def snapshot_from_team(team: Dict[str, Any]) -> Snapshot:
    """Today's values as already written in a team file (numbers or '3rd'-style strings)."""
    rating = team.get("rating")
    return Snapshot(
        rating=positive_number(rating) if isinstance(rating, (int, float)) else None,
        state_rank=_first_rank(team, STATE_RANK_KEYS, "stateRank", "state"),
        national_rank=_first_rank(team, NATIONAL_RANK_KEYS, "nationalRank", "national"),
    )


def append_team_history(
    store: HistoryStore, options: RunOptions, context: RunContext, teams_dir
) -> RunSummary:
    summary = RunSummary(command="history", dry_run=options.dry_run)

    for path in list_json_files(teams_dir):
        try:
            team = read_json(path)
        except ContentError as e:
            logger.warning(f"Skipping {path.name}: {e}")
            summary.add(RefreshOutcome(label=path.stem, status=RefreshStatus.SKIPPED, reason="invalid JSON"))
            continue
        if not isinstance(team, dict) or not team.get("slug"):
            logger.warning(f"Skipping {path.name}: no team or slug.")
            summary.add(RefreshOutcome(label=path.stem, status=RefreshStatus.SKIPPED, reason="no slug"))
            continue

        slug = str(team["slug"])
        if options.slug and options.slug != slug:
            continue

        snapshot = snapshot_from_team(team)
        try:
            changed = store.record(slug, snapshot, context.today, context.gated_day)
        except ContentError as e:
            logger.warning(f"Skipping history for {slug}: {e}")
            summary.add(RefreshOutcome(label=slug, status=RefreshStatus.FAILED, reason=str(e)))
            continue

        for key in filter(None, (slug, team.get("mhrTeamId") or team.get("mhrId"))):
            if store.write_rank_snapshot(str(key), snapshot):
                summary.files_modified += 1

        if changed:
            summary.files_modified += 1
        summary.add(
            RefreshOutcome(
                label=slug,
                status=RefreshStatus.UPDATED if changed else RefreshStatus.UNCHANGED,
                reason=None if changed else "history unchanged",
                history_changed=changed,
            )
        )
    return summary
