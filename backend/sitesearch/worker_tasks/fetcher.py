import asyncio
import logging
import random
from dataclasses import dataclass, field

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from sitesearch.core.config import settings
from sitesearch.utils.html import extract_links

logger = logging.getLogger(__name__)

# Code recorded for pages that could not be reached at all
UNREACHABLE_CODE = 404


@dataclass
class FetchResult:
    code: int
    content: str = ""
    links: list[str] = field(default_factory=list)


def get_default_headers() -> dict[str, str]:
    return {
        "User-Agent": settings.USER_AGENT,
        "Referer": settings.REFERER,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    }


class PageFetcher:
    """
    Downloads a page and parses its outbound links.

    Transport failures (connection errors, timeouts) are retried with a fixed
    wait; an HTTP error status is a valid answer and is returned as is.
    """

    def __init__(
        self,
        timeout: float | None = None,
        retries: int | None = None,
        retry_wait: float | None = None,
        delay: tuple[float, float] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = settings.FETCH_TIMEOUT if timeout is None else timeout
        self.retries = settings.FETCH_RETRIES if retries is None else retries
        self.retry_wait = settings.FETCH_RETRY_WAIT if retry_wait is None else retry_wait
        self.delay = (settings.FETCH_DELAY_MIN, settings.FETCH_DELAY_MAX) if delay is None else delay
        self.transport = transport

    async def fetch(self, url: str) -> FetchResult:
        # politeness delay between requests to the same site
        if self.delay[1] > 0:
            await asyncio.sleep(random.uniform(*self.delay))

        try:
            response = await self._get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(f"[{url}] unreachable after {self.retries + 1} attempts: {e!r}")
            return FetchResult(code=UNREACHABLE_CODE)

        code = response.status_code
        if code >= 400:
            logger.warning(f"[{url}] page status error: {code}")

        content_type = response.headers.get("content-type", "")
        if not content_type.startswith("text/html"):
            logger.debug(f"[{url}] skipping content of type {content_type or 'unknown'}")
            return FetchResult(code=code)

        html = response.text
        logger.info(f"[{url}] fetched with status {code}")
        return FetchResult(code=code, content=html, links=extract_links(html) if code < 400 else [])

    async def _get(self, url: str) -> httpx.Response:
        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            headers=get_default_headers(),
            transport=self.transport,
        ) as http_client:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.retries + 1),
                wait=wait_fixed(self.retry_wait),
                retry=retry_if_exception_type(httpx.TransportError),
                reraise=True,
            ):
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.debug(f"[{url}] retry {attempt.retry_state.attempt_number - 1}")
                    return await http_client.get(url)
        raise httpx.TransportError(f"No attempt made for {url}")
