import re
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlencode

from bs4 import BeautifulSoup
from loguru import logger

from scouting.models.entity import Entity
from .base_scraper import BaseScraper

WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Collapses all whitespace (non-breaking spaces included) to single spaces."""
    return WHITESPACE.sub(" ", text.replace("\u00a0", " ")).strip()


def html_to_text(html: str) -> str:
    """Visible text of an HTML document; attribute values never leak in."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    return normalize_text(soup.get_text(" "))


def build_mhr_url(
    entity: Entity, base_url: str, default_year: Optional[int] = None
) -> Optional[str]:
    """The entity's MHR page: explicit mhrUrl, else built from its team id."""
    if entity.mhr_url:
        return entity.mhr_url
    if entity.mhr_team_id in (None, ""):
        return None
    year = entity.mhr_year or default_year or datetime.now(timezone.utc).year
    return f"{base_url}?{urlencode({'y': year, 't': entity.mhr_team_id})}"


class MhrScraper(BaseScraper):
    """Fetches raw team pages from MyHockeyRankings."""

    source: str = "MHR"
    accept: str = "text/html,application/xhtml+xml"

    async def fetch_html(self, url: str) -> str:
        html = await self.fetch_text(url)
        logger.debug(f"Fetched {len(html)} bytes of HTML from {url}")
        return html
