from pathlib import Path
from typing import Optional

from loguru import logger
from pydantic import ValidationError

from scouting.models.entity import Team
from scouting.models.enums import RefreshStatus
from scouting.models.refresh import RefreshOutcome, RunSummary
from scouting.scrapers.mhr_scraper import build_mhr_url
from scouting.storage.json_store import ContentError, list_json_files, read_json, write_json
from .refresher import EntityRefresher


async def refresh_teams(refresher: EntityRefresher) -> RunSummary:
    """Refreshes rating, record and ranks for every team file."""
    summary = RunSummary(command="teams", dry_run=refresher.options.dry_run)

    for path in list_json_files(refresher.settings.teams_dir):
        outcome = await refresh_team_file(path, refresher, summary)
        if outcome is not None:
            summary.add(outcome)

    if summary.files_modified == 0:
        logger.info("No team files changed.")
    return summary


async def refresh_team_file(
    path: Path, refresher: EntityRefresher, summary: RunSummary
) -> Optional[RefreshOutcome]:
    """Refreshes one team file; None when --slug excludes it."""
    settings, options = refresher.settings, refresher.options
    label = path.stem
    try:
        raw = read_json(path)
        team = Team.model_validate(raw)
    except ContentError as e:
        logger.warning(f"Skipping {path.name}: {e}")
        return RefreshOutcome(label=label, status=RefreshStatus.SKIPPED, reason="invalid JSON")
    except ValidationError as e:
        logger.warning(f"Skipping {path.name}: not a valid team ({e.error_count()} errors)")
        return RefreshOutcome(label=label, status=RefreshStatus.SKIPPED, reason="invalid team")

    if options.slug and options.slug not in (team.slug, path.stem):
        return None

    label = team.slug or label
    url = build_mhr_url(team, settings.mhr_base_url, settings.mhr_default_year)
    if not url:
        return RefreshOutcome(label=label, status=RefreshStatus.SKIPPED, reason="no mhrUrl or id")

    outcome = await refresher.refresh(team, url, label)
    if outcome.changes:
        raw.update(outcome.changes)
        if not options.dry_run:
            write_json(path, raw)
        summary.files_modified += 1

    if outcome.fields is not None:
        outcome.history_changed = refresher.record_history(team.slug, outcome.fields)
        if outcome.history_changed:
            summary.files_modified += 1
    return outcome
