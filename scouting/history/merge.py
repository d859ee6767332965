"""Day-gated merging of rating/rank snapshots into an entity's history series.

A series holds at most one point per calendar day, oldest first. On the gated
weekday (when MHR publishes its weekly numbers) today's point is always
written, carrying forward any value the page did not show. On other days a
point is only written when a value actually moved, so history files do not
churn with identical daily rows.
"""

import bisect
from typing import List, Optional, Sequence, Tuple

from scouting.models.history import HistoryPoint, Snapshot

TRACKED_FIELDS = ("rating", "state_rank", "national_rank")


def _known_values(
    same_day: Optional[HistoryPoint], previous: Optional[HistoryPoint]
) -> Snapshot:
    """Latest known value per field: today's point first, then the previous day's."""
    values = {}
    for field in TRACKED_FIELDS:
        value = getattr(same_day, field) if same_day else None
        if value is None and previous is not None:
            value = getattr(previous, field)
        values[field] = value
    return Snapshot(**values)


def _differs(snapshot: Snapshot, known: Snapshot) -> bool:
    return any(
        getattr(snapshot, f) is not None and getattr(snapshot, f) != getattr(known, f)
        for f in TRACKED_FIELDS
    )


def _merge_point(
    date: str, base: Optional[Snapshot], snapshot: Snapshot
) -> HistoryPoint:
    """Today's point: snapshot values where present, `base` values elsewhere."""
    values = {}
    for field in TRACKED_FIELDS:
        value = getattr(snapshot, field)
        if value is None and base is not None:
            value = getattr(base, field)
        values[field] = value
    return HistoryPoint(date=date, **values)


def _serialized(series: Sequence[HistoryPoint]) -> list:
    return [p.to_json() for p in series]


def append_snapshot(
    series: Sequence[HistoryPoint],
    snapshot: Snapshot,
    today: str,
    gated_day: bool,
) -> Tuple[List[HistoryPoint], bool]:
    """Merges today's snapshot into `series`.

    Returns the new series and whether it differs from the input. When nothing
    changed the input series is returned unchanged, so callers can skip the
    write entirely.
    """
    dates = [p.date for p in series]
    same_idx = dates.index(today) if today in dates else None
    same_day = series[same_idx] if same_idx is not None else None
    earlier = [p for p in series if p.date < today]
    previous = earlier[-1] if earlier else None
    known = _known_values(same_day, previous)

    if gated_day:
        entry = _merge_point(today, known, snapshot)
    elif _differs(snapshot, known):
        entry = _merge_point(
            today, same_day.values() if same_day else None, snapshot
        )
    else:
        return list(series), False

    if entry.values().is_empty():
        return list(series), False

    updated = list(series)
    if same_idx is not None:
        updated[same_idx] = entry
    else:
        updated.insert(bisect.bisect_right(dates, today), entry)

    changed = _serialized(updated) != _serialized(series)
    if not changed:
        return list(series), False
    return updated, True
