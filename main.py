import sys
import argparse
import asyncio
from typing import List, Optional

from scouting.logging.setup import setup_logging
from scouting.config.settings import AppSettings, settings

from loguru import logger

from scouting.history.store import HistoryStore
from scouting.models.refresh import RunSummary
from scouting.normalization.normalizer import ScheduleNormalizer
from scouting.parsing.fields import FieldParser
from scouting.pipeline.context import RunContext, RunOptions
from scouting.pipeline.history import append_team_history
from scouting.pipeline.refresher import EntityRefresher
from scouting.pipeline.report import print_summary
from scouting.pipeline.schedules import load_schedule_config, update_schedules
from scouting.pipeline.teams import refresh_teams
from scouting.pipeline.tournaments import refresh_tournaments
from scouting.scrapers.ics_scraper import IcsScraper
from scouting.scrapers.mhr_scraper import MhrScraper
from scouting.scrapers.renderer import PlaywrightRenderer
from scouting.scrapers.text_extractor import TextExtractor

COMMANDS = ("teams", "tournaments", "history", "schedules")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="scouting-refresh",
        description="Refresh scouting-site JSON from MHR pages and team calendars.",
    )
    parser.add_argument("command", choices=COMMANDS)
    parser.add_argument("--slug", help="Only this team (or schedule) slug")
    parser.add_argument("--tournament", help="Only tournament files whose name contains this")
    parser.add_argument("--force", action="store_true", help="Ignore the freshness cache")
    parser.add_argument("--debug", action="store_true", help="Verbose logs and text dumps")
    parser.add_argument("--dump-html", action="store_true", help="Save fetched HTML")
    parser.add_argument("--stale-days", type=float, help="Override the staleness window")
    parser.add_argument("--dry-run", action="store_true", help="Compute everything, write nothing")
    parser.add_argument("--include-past", action="store_true", help="Also refresh finished tournaments")
    parser.add_argument("--no-render", action="store_true", help="Never fall back to a browser")
    args = parser.parse_args(argv)
    if args.stale_days is not None and args.stale_days <= 0:
        parser.error("--stale-days must be positive")
    return args


def options_from_args(args: argparse.Namespace, app_settings: AppSettings) -> RunOptions:
    return RunOptions(
        slug=args.slug,
        tournament=args.tournament,
        force=args.force,
        debug=args.debug,
        dump_html=args.dump_html,
        stale_days=args.stale_days,
        dry_run=args.dry_run,
        include_past=args.include_past,
        render=app_settings.render_enabled and not args.no_render,
    )


async def run_mhr_refresh(
    command: str, app_settings: AppSettings, options: RunOptions, context: RunContext
) -> RunSummary:
    """Runs the teams or tournaments refresh with a shared scraper and browser."""
    parser = FieldParser(level_pattern=app_settings.level_pattern)
    history = HistoryStore(app_settings.history_dir, app_settings.snapshot_dir, options.dry_run)
    renderer = PlaywrightRenderer(app_settings) if options.render else None

    async with MhrScraper(settings=app_settings) as scraper:
        try:
            extractor = TextExtractor(scraper, parser.has_rank, renderer)
            refresher = EntityRefresher(
                extractor, parser, app_settings, options, context, history
            )
            if command == "teams":
                return await refresh_teams(refresher)
            return await refresh_tournaments(refresher)
        finally:
            if renderer is not None:
                await renderer.close()


async def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    args = parse_args(argv)
    setup_logging("DEBUG" if args.debug else settings.log_level)

    options = options_from_args(args, settings)
    context = RunContext.create(settings)
    logger.debug(f"Run options: {options.model_dump()}")
    logger.info(
        f"Starting '{args.command}' for {context.today}"
        f"{' (gated weekday)' if context.gated_day else ''}"
    )

    if args.command in ("teams", "tournaments"):
        summary = await run_mhr_refresh(args.command, settings, options, context)
    elif args.command == "history":
        store = HistoryStore(settings.history_dir, settings.snapshot_dir, options.dry_run)
        summary = append_team_history(store, options, context, settings.teams_dir)
    else:
        config = load_schedule_config(settings.schedule_sources_file)
        normalizer = ScheduleNormalizer(context.tz)
        async with IcsScraper(settings=settings) as scraper:
            summary = await update_schedules(
                config, scraper, normalizer, settings.schedule_dir, options
            )

    print_summary(summary)
    return 0


def run() -> None:
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("Execution interrupted by user (KeyboardInterrupt).")
        sys.exit(130)
    except Exception as e:
        logger.exception(f"Unhandled exception in main execution: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()
