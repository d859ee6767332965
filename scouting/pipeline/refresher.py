import asyncio
import random
from typing import Any, Awaitable, Callable, Dict, Optional

from loguru import logger

from scouting.config.settings import AppSettings
from scouting.history.store import HistoryStore
from scouting.models.entity import Entity
from scouting.models.enums import RefreshStatus
from scouting.models.refresh import ExtractedText, ParsedFields, RefreshOutcome
from scouting.parsing.fields import FieldParser
from scouting.scrapers.base_scraper import ScraperError
from scouting.scrapers.text_extractor import TextExtractor
from scouting.storage.json_store import ContentError
from scouting.utils.misc_utils import generate_canonical_id, positive_number
from .context import RunContext, RunOptions
from .freshness import DEFAULT_STALE_DAYS, should_refresh

DEBUG_TEXT_CHARS = 4000

Sleeper = Callable[[float], Awaitable[Any]]


def compute_changes(entity: Entity, fields: ParsedFields) -> Dict[str, Any]:
    """JSON-key -> new value for every parsed field that differs from the entity."""
    changes: Dict[str, Any] = {}
    rating = positive_number(fields.rating)
    if rating is not None and rating != entity.rating:
        changes["rating"] = rating
    if fields.record and fields.record != entity.record:
        changes["record"] = fields.record
    if fields.state_rank is not None and fields.state_rank != entity.state_rank:
        changes["mhrStateRank"] = fields.state_rank
    if fields.national_rank is not None and fields.national_rank != entity.national_rank:
        changes["mhrNationalRank"] = fields.national_rank
    return changes


class EntityRefresher:
    """Fetches, parses and diffs one entity at a time, politely spaced."""

    def __init__(
        self,
        extractor: TextExtractor,
        parser: FieldParser,
        settings: AppSettings,
        options: RunOptions,
        context: RunContext,
        history: Optional[HistoryStore] = None,
        sleep: Sleeper = asyncio.sleep,
    ):
        self.extractor = extractor
        self.parser = parser
        self.settings = settings
        self.options = options
        self.context = context
        self.history = history
        self.sleep = sleep

    @property
    def stale_days(self) -> float:
        return self.options.stale_days or self.settings.stale_days or DEFAULT_STALE_DAYS

    async def pause(self) -> None:
        low = self.settings.request_delay_min_ms
        high = max(low, self.settings.request_delay_max_ms)
        await self.sleep(random.uniform(low, high) / 1000)

    async def refresh(
        self,
        entity: Entity,
        url: str,
        label: str,
        cached: bool = False,
    ) -> RefreshOutcome:
        """Refreshes one entity.

        `cached` entities go through the freshness check first and get their
        timestamp bumped on every successful parse, so the cache window restarts
        even when no value moved. Other entities only get a new timestamp when a
        value changed.
        """
        if cached and not should_refresh(
            entity, self.options.force, self.stale_days, self.context.now, self.context.tz
        ):
            return RefreshOutcome(label=label, status=RefreshStatus.SKIPPED, reason="cached")

        logger.debug(f"Fetching MHR for '{entity.name}' from {url}")
        try:
            extracted = await self.extractor.extract(url)
        except ScraperError as e:
            logger.warning(f"{label}: fetch error: {e}")
            return RefreshOutcome(label=label, status=RefreshStatus.FAILED, reason=str(e))
        finally:
            await self.pause()

        self._dump(extracted, label)

        hints = self.parser.hints_for(entity.name, entity.location_hints())
        fields = self.parser.parse(extracted.text, hints)
        logger.debug(f"{label}: mode={extracted.mode.value} fields={fields.model_dump()}")
        if fields.is_empty():
            return RefreshOutcome(
                label=label, status=RefreshStatus.SKIPPED, reason="no MHR values found"
            )

        changes = compute_changes(entity, fields)
        status = RefreshStatus.UPDATED if changes else RefreshStatus.UNCHANGED
        reason = None if changes else "no change"
        if changes or cached:
            changes[entity.timestamp_field] = (
                self.context.timestamp if cached else self.context.today
            )
        return RefreshOutcome(
            label=label,
            status=status,
            reason=reason,
            fields=fields,
            changes=changes,
        )

    def record_history(self, slug: Optional[str], fields: Optional[ParsedFields]) -> bool:
        """Appends today's snapshot for `slug`; history problems never fail the entity."""
        if not slug or fields is None or self.history is None:
            return False
        snapshot = fields.snapshot().model_copy(
            update={"rating": positive_number(fields.rating)}
        )
        try:
            return self.history.record(
                slug, snapshot, self.context.today, self.context.gated_day
            )
        except ContentError as e:
            logger.warning(f"History for {slug} not updated: {e}")
            return False

    def _dump(self, extracted: ExtractedText, label: str) -> None:
        if self.options.dry_run:
            return
        name = generate_canonical_id(label)
        if self.options.debug:
            path = self.settings.debug_dir / f"{name}-mhr-text.txt"
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(extracted.text[:DEBUG_TEXT_CHARS], encoding="utf-8")
            logger.debug(f"Wrote extracted text -> {path}")
        if self.options.dump_html and extracted.raw_html:
            stamp = self.context.now.strftime("%Y%m%dT%H%M%S")
            path = self.settings.dump_dir / f"{name}-{stamp}.html"
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(extracted.raw_html, encoding="utf-8")
            logger.debug(f"Dumped HTML -> {path}")
