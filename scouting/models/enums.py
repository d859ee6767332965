from enum import Enum


class HomeAway(str, Enum):
    HOME = "Home"
    AWAY = "Away"
    NEUTRAL = "Neutral"


class SourceType(str, Enum):
    ICS = "ics"
    # Add other calendar feeds as needed


class ExtractionMode(str, Enum):
    LEGACY = "legacy"  # Static HTML fetched over HTTP
    RENDERED = "playwright"  # Body text of the browser-rendered page


class RefreshStatus(str, Enum):
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    FAILED = "failed"
