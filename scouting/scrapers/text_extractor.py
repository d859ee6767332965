from typing import Callable, Optional

from loguru import logger

from scouting.models.enums import ExtractionMode
from scouting.models.refresh import ExtractedText
from .mhr_scraper import MhrScraper, html_to_text, normalize_text
from .renderer import PageRenderer, RenderError


class TextExtractor:
    """Turns an MHR URL into normalized text for the field parsers.

    The static HTML is always fetched first. Ranks are often injected
    client-side, so when `has_rank` finds none in the static text and a renderer
    is available, the rendered page text is used instead. Renderer failures fall
    back to the static text; failures of the static fetch propagate as
    ScraperError.
    """

    def __init__(
        self,
        scraper: MhrScraper,
        has_rank: Callable[[str], bool],
        renderer: Optional[PageRenderer] = None,
    ):
        self.scraper = scraper
        self.has_rank = has_rank
        self.renderer = renderer

    async def extract(self, url: str) -> ExtractedText:
        html = await self.scraper.fetch_html(url)
        legacy = ExtractedText(
            mode=ExtractionMode.LEGACY, text=html_to_text(html), raw_html=html
        )
        if self.has_rank(legacy.text):
            return legacy
        if self.renderer is None:
            logger.debug(f"No ranks in static HTML for {url}; rendering disabled")
            return legacy

        logger.debug(f"No ranks in static HTML for {url}; rendering page")
        try:
            rendered = await self.renderer.render_text(url)
        except RenderError as e:
            logger.debug(f"Render fallback failed for {url}: {e}")
            return legacy

        text = normalize_text(rendered or "")
        if not text:
            return legacy
        return ExtractedText(mode=ExtractionMode.RENDERED, text=text, raw_html=html)
