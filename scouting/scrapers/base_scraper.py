from typing import Any, Dict, Optional

import httpx
from loguru import logger
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from scouting.config.settings import AppSettings, settings as default_settings

# Define common HTTP status codes that warrant a retry
RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}


class ScraperError(Exception):
    """Raised when a page or feed could not be fetched."""

    pass


class RateLimitError(ScraperError):
    """Exception raised for rate limit errors (429)."""

    pass


class BaseScraper:
    """Shared HTTP plumbing: one client, a timeout, and retry with backoff."""

    source: str = "unknown"
    accept: str = "*/*"

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        settings: Optional[AppSettings] = None,
        retry_wait: Optional[wait_base] = None,
    ):
        self.settings = settings or default_settings
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(self.settings.request_timeout_s),
            follow_redirects=True,
        )
        self.client.headers.update(
            {"User-Agent": self.settings.user_agent, "Accept": self.accept}
        )
        self.retry_wait = retry_wait or wait_exponential(multiplier=1, min=1, max=10)

    async def _make_request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        **kwargs,
    ) -> httpx.Response:
        """Makes an HTTP request, retrying transport errors and retryable statuses."""
        logger.debug(f"Making {method} request to {url}")
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.settings.request_max_attempts),
                wait=self.retry_wait,
                retry=retry_if_exception_type(
                    (httpx.RequestError, httpx.HTTPStatusError, RateLimitError)
                ),
                reraise=True,
            ):
                with attempt:
                    return await self._send(method, url, headers, params, **kwargs)
        except RateLimitError:
            logger.error(f"Still rate limited by {self.source} at {url}; giving up.")
            raise
        except httpx.HTTPStatusError as e:
            raise ScraperError(
                f"HTTP {e.response.status_code} from {url} after "
                f"{self.settings.request_max_attempts} attempts"
            ) from e
        except httpx.RequestError as e:
            raise ScraperError(f"Request to {url} failed: {e!r}") from e
        raise ScraperError(f"No response from {url}")

    async def _send(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]],
        params: Optional[Dict[str, Any]],
        **kwargs,
    ) -> httpx.Response:
        try:
            response = await self.client.request(
                method, url, headers=headers, params=params, **kwargs
            )
        except httpx.RequestError as e:
            # Network errors, timeouts etc. - these are retryable
            logger.warning(f"Request error for {self.source} at {url}, retrying: {e!r}")
            raise

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            logger.warning(
                f"Rate limit hit (429) for {self.source} at {url}. Retry-After: {retry_after}"
            )
            raise RateLimitError(f"Rate limited by {self.source}")

        if response.status_code in RETRYABLE_STATUS_CODES:
            logger.warning(
                f"Retrying request for {self.source} due to status {response.status_code}"
            )
            response.raise_for_status()

        if response.is_error:
            logger.error(
                f"HTTP error during request for {self.source}: {response.status_code} at {url}"
            )
            raise ScraperError(
                f"Fetch failed {response.status_code} {response.reason_phrase}"
            )

        logger.debug(f"Request successful: {response.status_code} for {url}")
        return response

    async def fetch_text(self, url: str) -> str:
        response = await self._make_request("GET", url)
        return response.text

    async def close(self):
        """Closes the underlying HTTP client."""
        await self.client.aclose()
        logger.debug(f"Closed HTTP client for {self.source}")

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()
