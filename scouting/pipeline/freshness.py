from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from loguru import logger

from scouting.models.entity import Entity

DEFAULT_STALE_DAYS = 7


def should_refresh(
    entity: Entity,
    force: bool = False,
    stale_days: float = DEFAULT_STALE_DAYS,
    now: Optional[datetime] = None,
    tz: ZoneInfo = ZoneInfo("UTC"),
) -> bool:
    """Whether a cached entity is due for a refetch.

    Forced runs always refresh, as do entities missing a timestamp, a rating or
    a record. Otherwise the entity refreshes once `stale_days` have elapsed
    since it was last refreshed.
    """
    if force:
        return True
    refreshed_at = entity.refreshed_at(tz)
    if refreshed_at is None or entity.rating is None or not entity.record:
        return True

    now = now or datetime.now(timezone.utc)
    age = now - refreshed_at
    logger.debug(
        f"Cache age {age.total_seconds() / 86400:.1f}d (limit {stale_days}d) for '{entity.name}'"
    )
    return age >= timedelta(days=stale_days)
