import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List

import httpx
import pytest
from tenacity import wait_none

from scouting.config.settings import AppSettings
from scouting.history.store import HistoryStore
from scouting.parsing.fields import FieldParser
from scouting.pipeline.context import RunContext, RunOptions
from scouting.pipeline.refresher import EntityRefresher
from scouting.scrapers.mhr_scraper import MhrScraper
from scouting.scrapers.text_extractor import TextExtractor

# 2025-10-01 is a Wednesday (the gated weekday); 10:00 in Chicago
WEDNESDAY = datetime(2025, 10, 1, 15, 0, tzinfo=timezone.utc)
THURSDAY = datetime(2025, 10, 2, 15, 0, tzinfo=timezone.utc)

MHR_HTML = """<html><head>
<style>.rank { color: red; }</style>
<script>var rating = 1; var record = "99-99-99";</script>
</head><body>
<h1>Rockets 12U A1</h1>
<h3>Rating</h3><div>86.07</div>
<h3>Record</h3><div>10-4-2</div>
<p>Last&nbsp;game 2025-10-01</p>
<ul><li>3rd Missouri 12U - A1</li><li>45th USA 12U - All</li></ul>
</body></html>"""

MHR_HTML_NO_RANKS = """<html><body>
<div>MHR Rating: 81.50</div><div>Record: 5-3-1</div>
<div id="ranks"></div>
</body></html>"""


def write(path: Path, data) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    return path


def load(path: Path):
    return json.loads(path.read_text(encoding="utf-8"))


class FakeRenderer:
    """Stands in for the browser: returns canned text per URL."""

    def __init__(self, pages: Dict[str, str], error: Exception = None):
        self.pages = pages
        self.error = error
        self.calls: List[str] = []

    async def render_text(self, url: str) -> str:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.pages.get(url, "")


class PageServer:
    """httpx handler serving fixed responses and recording requested URLs."""

    def __init__(self, pages: Dict[str, httpx.Response]):
        self.pages = pages
        self.requested: List[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requested.append(url)
        response = self.pages.get(url)
        if response is None:
            return httpx.Response(404, text="not found")
        if callable(response):
            return response(request)
        return response


@pytest.fixture
def app_settings(tmp_path: Path) -> AppSettings:
    content = tmp_path / "site"
    return AppSettings(
        teams_dir=content / "src/content/teams",
        tournaments_dir=content / "src/content/tournaments",
        history_dir=content / "src/data/mhr-history",
        snapshot_dir=content / "src/data/mhr-snapshot",
        schedule_dir=content / "src/data/auto-schedule",
        schedule_sources_file=content / "config/schedule-sources.json",
        debug_dir=content / ".debug",
        dump_dir=content / "tmp/mhr-dumps",
        request_delay_min_ms=0,
        request_delay_max_ms=0,
        request_max_attempts=2,
        render_enabled=False,
    )


@pytest.fixture
def make_client() -> Callable[[Callable], httpx.AsyncClient]:
    def _make(handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make


@pytest.fixture
def make_refresher(app_settings, make_client):
    """Builds an EntityRefresher over a fake MHR site."""

    def _make(
        server: PageServer,
        options: RunOptions = None,
        now: datetime = WEDNESDAY,
        renderer=None,
        sleeps: List[float] = None,
    ) -> EntityRefresher:
        options = options or RunOptions()
        parser = FieldParser(level_pattern=app_settings.level_pattern)
        scraper = MhrScraper(
            client=make_client(server), settings=app_settings, retry_wait=wait_none()
        )
        extractor = TextExtractor(scraper, parser.has_rank, renderer)
        history = HistoryStore(
            app_settings.history_dir, app_settings.snapshot_dir, options.dry_run
        )
        recorded = sleeps if sleeps is not None else []

        async def fake_sleep(seconds: float):
            recorded.append(seconds)

        return EntityRefresher(
            extractor,
            parser,
            app_settings,
            options,
            RunContext.create(app_settings, now=now),
            history,
            sleep=fake_sleep,
        )

    return _make
