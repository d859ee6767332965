from pathlib import Path
from typing import List

from loguru import logger
from pydantic import ValidationError

from scouting.models.enums import RefreshStatus, SourceType
from scouting.models.game import GameRecord, ScheduleConfig, ScheduleSource
from scouting.models.refresh import RefreshOutcome, RunSummary
from scouting.normalization.normalizer import ScheduleNormalizer
from scouting.scrapers.base_scraper import ScraperError
from scouting.scrapers.ics_scraper import IcsScraper
from scouting.storage.json_store import ContentError, read_json_or, write_json_if_changed
from .context import RunOptions


def load_schedule_config(path: Path) -> ScheduleConfig:
    """Reads `{team-slug: [sources...]}`; a missing file means no teams."""
    raw = read_json_or(path, {})
    if not isinstance(raw, dict):
        raise ContentError(f"{path} must map team slugs to source lists")
    try:
        return ScheduleConfig(teams=raw)
    except ValidationError as e:
        raise ContentError(f"Invalid schedule sources in {path}: {e}") from e


async def build_schedule(
    slug: str,
    sources: List[ScheduleSource],
    scraper: IcsScraper,
    normalizer: ScheduleNormalizer,
) -> List[GameRecord]:
    """Games from the first source that yields any, deduplicated and ordered."""
    self_name = slug.replace("-", " ").replace("_", " ")
    games: List[GameRecord] = []

    for source in sources:
        if source.self_name:
            self_name = source.self_name
        try:
            if source.type == SourceType.ICS:
                events = await scraper.fetch_events(source.url)
                games = normalizer.normalize(events, self_name, source.type.value)
        except ScraperError as e:
            logger.warning(f"[{slug}] {source.type.value} failed: {e}")
            continue
        if games:
            break  # first non-empty wins

    return normalizer.dedupe(games)


async def update_schedules(
    config: ScheduleConfig,
    scraper: IcsScraper,
    normalizer: ScheduleNormalizer,
    schedule_dir: Path,
    options: RunOptions,
) -> RunSummary:
    summary = RunSummary(command="schedules", dry_run=options.dry_run)
    slugs = [options.slug] if options.slug else list(config.teams)
    if not slugs:
        logger.info("No teams configured in the schedule sources file.")
        return summary

    for slug in slugs:
        sources = config.teams.get(slug, [])
        logger.info(f"Fetching schedule for {slug}...")
        games = await build_schedule(slug, sources, scraper, normalizer)
        out_file = schedule_dir / f"{slug}.json"

        if options.dry_run:
            changed = False
        else:
            changed = write_json_if_changed(out_file, [g.to_json() for g in games])
        if changed:
            summary.files_modified += 1
        logger.info(f"  {len(games)} games -> {out_file}")
        summary.add(
            RefreshOutcome(
                label=slug,
                status=RefreshStatus.UPDATED if changed else RefreshStatus.UNCHANGED,
                reason=f"{len(games)} games",
            )
        )
    return summary
