from datetime import date, datetime, tzinfo
from typing import Dict, Iterable, List, Optional, Tuple

import re

from loguru import logger

from scouting.models.enums import HomeAway, SourceType
from scouting.models.game import CalendarEvent, GameRecord

VS_TITLE = re.compile(r"^(.+?)\s+vs\.?\s+(.+?)$", re.IGNORECASE)
AT_TITLE = re.compile(r"^(.+?)\s+@\s+(.+?)$", re.IGNORECASE)
TITLE_PUNCTUATION = re.compile(r"[:\-–|]")
LEAGUE_TITLE = re.compile(r"league", re.IGNORECASE)
TOURNAMENT_TITLE = re.compile(r"tourney|tournament|classic|cup|showcase", re.IGNORECASE)
TOURNAMENT_NAME = re.compile(r"\b((?:[A-Z][\w'&.]*\s+)*(?:Classic|Cup|Showcase))\b")
TOURNAMENT_PLACEHOLDER = "tournament"
NO_START_DATE = "1970-01-01"


class ScheduleNormalizer:
    """Turns raw calendar events into GameRecords for one team."""

    def __init__(self, tz: tzinfo):
        self.tz = tz

    @staticmethod
    def parse_opponent(title: Optional[str], self_name: str) -> Tuple[str, HomeAway]:
        """Opponent and home/away from an event title such as 'A vs B' or 'A @ B'."""
        t = re.sub(r"\s+", " ", title or "").strip()
        me = self_name.lower()

        vs = VS_TITLE.search(t)
        if vs:
            a, b = vs.group(1).strip(), vs.group(2).strip()
            if me in a.lower():
                return b, HomeAway.HOME
            if me in b.lower():
                return a, HomeAway.AWAY
            return b, HomeAway.NEUTRAL

        at = AT_TITLE.search(t)
        if at:
            a, b = at.group(1).strip(), at.group(2).strip()
            if me in a.lower():
                return b, HomeAway.AWAY  # self @ opponent
            if me in b.lower():
                return a, HomeAway.HOME  # opponent @ self
            return b, HomeAway.NEUTRAL

        cleaned = re.sub(re.escape(self_name), "", t, count=1, flags=re.IGNORECASE) if self_name else t
        cleaned = re.sub(r"\s+", " ", TITLE_PUNCTUATION.sub(" ", cleaned)).strip()
        return cleaned or "TBD", HomeAway.NEUTRAL

    @staticmethod
    def tournament_tag(title: str) -> Optional[str]:
        if not TOURNAMENT_TITLE.search(title):
            return None
        m = TOURNAMENT_NAME.search(title)
        return m.group(1).strip() if m else TOURNAMENT_PLACEHOLDER

    def _date_and_time(self, start) -> Tuple[str, Optional[str]]:
        if start is None:
            return NO_START_DATE, None
        if isinstance(start, datetime):
            local = start.astimezone(self.tz) if start.tzinfo else start
            return local.strftime("%Y-%m-%d"), local.strftime("%H:%M")
        if isinstance(start, date):
            return start.isoformat(), None  # all-day event
        return NO_START_DATE, None

    def normalize_event(
        self, event: CalendarEvent, self_name: str, source: str = SourceType.ICS.value
    ) -> GameRecord:
        title = event.title or "Game"
        game_date, game_time = self._date_and_time(event.start)
        opponent, home_away = self.parse_opponent(title, self_name)
        return GameRecord(
            date=game_date,
            time=game_time,
            opponent=opponent,
            home_away=home_away,
            league_game=bool(LEAGUE_TITLE.search(title)),
            tournament=self.tournament_tag(title),
            venue=event.location,
            source=source,
            source_id=event.source_id,
            source_url=event.url,
        )

    def normalize(
        self,
        events: Iterable[CalendarEvent],
        self_name: str,
        source: str = SourceType.ICS.value,
    ) -> List[GameRecord]:
        return [self.normalize_event(e, self_name, source) for e in events]

    @staticmethod
    def dedupe(games: Iterable[GameRecord]) -> List[GameRecord]:
        """Drops repeated games (first occurrence per key wins), ordered by date then time."""
        unique: Dict[str, GameRecord] = {}
        dropped = 0
        for game in games:
            if game.dedup_key in unique:
                dropped += 1
                continue
            unique[game.dedup_key] = game
        if dropped:
            logger.debug(f"Dropped {dropped} duplicate game(s)")
        return sorted(unique.values(), key=lambda g: g.sort_key)
