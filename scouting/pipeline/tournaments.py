from pathlib import Path
from typing import List, Tuple

from loguru import logger
from pydantic import ValidationError

from scouting.models.entity import Opponent, Tournament
from scouting.models.enums import RefreshStatus
from scouting.models.refresh import RefreshOutcome, RunSummary
from scouting.scrapers.mhr_scraper import build_mhr_url
from scouting.storage.json_store import ContentError, list_json_files, read_json, write_json
from scouting.utils.dates import is_past, tournament_end_date
from .refresher import EntityRefresher


async def refresh_tournaments(refresher: EntityRefresher) -> RunSummary:
    """Refreshes inline opponents of every (matching, upcoming) tournament file."""
    settings, options = refresher.settings, refresher.options
    summary = RunSummary(command="tournaments", dry_run=options.dry_run)

    files = list_json_files(settings.tournaments_dir, options.tournament or "")
    if not files:
        if options.tournament:
            logger.info(f"No tournament JSON matched '{options.tournament}' in {settings.tournaments_dir}")
        else:
            logger.info(f"No tournament JSON found in {settings.tournaments_dir}")
        return summary

    for path in files:
        if await refresh_tournament_file(path, refresher, summary):
            summary.files_modified += 1

    logger.info(f"Done. {summary.files_modified} file(s) updated.")
    return summary


async def refresh_tournament_file(
    path: Path, refresher: EntityRefresher, summary: RunSummary
) -> bool:
    """Refreshes one tournament's inline opponents; True if the file changed.

    All opponents are processed before the file is written, once.
    """
    options, context = refresher.options, refresher.context
    try:
        data = read_json(path)
        Tournament.model_validate(data)
    except ContentError as e:
        logger.warning(f"Skipping {path.name}: {e}")
        summary.add(RefreshOutcome(label=path.stem, status=RefreshStatus.SKIPPED, reason="invalid JSON"))
        return False
    except ValidationError as e:
        logger.warning(f"Skipping {path.name}: not a valid tournament ({e.error_count()} errors)")
        summary.add(RefreshOutcome(label=path.stem, status=RefreshStatus.SKIPPED, reason="invalid tournament"))
        return False

    end = tournament_end_date(data)
    if not options.include_past and is_past(end, context.today_date):
        logger.debug(f"[{path.name}] skipped (past tournament, end {end.isoformat()})")
        summary.add(RefreshOutcome(label=path.stem, status=RefreshStatus.SKIPPED, reason="past tournament"))
        return False

    changed = False
    refreshed: List[Tuple[RefreshOutcome, str]] = []
    for i, raw_opp in enumerate(data.get("opponents") or []):
        # Plain strings are slugs of standalone teams, refreshed by `teams`
        if not isinstance(raw_opp, dict):
            continue
        label = f"{path.stem}-op{i + 1}"
        try:
            opponent = Opponent.model_validate(raw_opp)
        except ValidationError as e:
            logger.warning(f"{label}: invalid opponent ({e.error_count()} errors)")
            summary.add(RefreshOutcome(label=label, status=RefreshStatus.SKIPPED, reason="invalid opponent"))
            continue

        url = build_mhr_url(
            opponent, refresher.settings.mhr_base_url, refresher.settings.mhr_default_year
        )
        if not url:
            continue

        outcome = await refresher.refresh(opponent, url, label, cached=True)
        outcome.label = f"{path.stem}: {opponent.name}"
        summary.add(outcome)
        if outcome.changes:
            raw_opp.update(outcome.changes)
            changed = True
        if outcome.fields is not None and opponent.slug:
            refreshed.append((outcome, opponent.slug))

    if changed and not options.dry_run:
        write_json(path, data)
        logger.info(f"Updated {path.name}")

    for outcome, slug in refreshed:
        outcome.history_changed = refresher.record_history(slug, outcome.fields)
        if outcome.history_changed:
            summary.files_modified += 1
    return changed
