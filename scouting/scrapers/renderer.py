from typing import Optional, Protocol

from loguru import logger
from playwright.async_api import (
    Browser,
    Error as PlaywrightError,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from scouting.config.settings import AppSettings, settings as default_settings

# Rank/rating widgets are injected client-side; wait until one shows up.
CONTENT_READY_JS = (
    "() => /Rating|Record|USA\\s+\\d{1,2}U|\\b\\d{1,2}U\\b/i"
    ".test(document.body ? document.body.innerText : '')"
)


class RenderError(Exception):
    """Raised when a page could not be rendered in the browser."""

    pass


class PageRenderer(Protocol):
    """Anything that can render a URL and return the page's visible text."""

    async def render_text(self, url: str) -> str: ...


class PlaywrightRenderer:
    """Headless Chromium renderer; the browser is launched on first use."""

    def __init__(self, settings: Optional[AppSettings] = None):
        self.settings = settings or default_settings
        self._pw: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    async def _ensure_browser(self) -> Browser:
        if self._browser is None:
            logger.debug("Launching headless Chromium")
            self._pw = await async_playwright().start()
            self._browser = await self._pw.chromium.launch(headless=True)
        return self._browser

    async def render_text(self, url: str) -> str:
        try:
            browser = await self._ensure_browser()
            page = await browser.new_page(user_agent=self.settings.render_user_agent)
        except PlaywrightError as e:
            raise RenderError(f"Could not open a browser page: {e}") from e

        try:
            resp = await page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=self.settings.render_timeout_s * 1000,
            )
            if resp is None or not resp.ok:
                status = resp.status if resp is not None else "?"
                raise RenderError(f"HTTP {status} rendering {url}")

            await page.wait_for_timeout(self.settings.render_settle_ms)
            try:
                await page.wait_for_function(
                    CONTENT_READY_JS, timeout=self.settings.render_poll_timeout_ms
                )
            except PlaywrightTimeoutError:
                logger.debug(f"Content predicate not met for {url}; using page as is")

            return await page.evaluate(
                "() => document.body ? document.body.innerText : ''"
            )
        except PlaywrightError as e:
            raise RenderError(f"Rendering {url} failed: {e}") from e
        finally:
            await page.close()

    async def close(self):
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._pw is not None:
            await self._pw.stop()
            self._pw = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()
