import time

import httpx
import structlog

from src.config.settings import get_settings
from src.scraping.page import StaticPage
from src.utils.errors import FetchError

log = structlog.get_logger()


class HttpPageFetcher:
    """Loads a page over plain HTTP into a StaticPage."""

    DEFAULT_HEADERS = {
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
        "Accept-Encoding": "gzip, deflate",
    }

    def __init__(
        self,
        timeout: float | None = None,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.timeout = timeout if timeout is not None else settings.request_timeout_s
        self.headers = {
            "User-Agent": settings.user_agent,
            **self.DEFAULT_HEADERS,
            **(headers or {}),
        }
        self._transport = transport

    async def fetch(self, url: str) -> StaticPage:
        start = time.time()
        try:
            async with httpx.AsyncClient(
                follow_redirects=True,
                timeout=self.timeout,
                headers=self.headers,
                transport=self._transport,
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.TimeoutException as e:
            raise FetchError(f"Timed out fetching {url}", url=url, status_code=408) from e
        except httpx.HTTPStatusError as e:
            raise FetchError(
                f"HTTP {e.response.status_code} fetching {url}",
                url=url,
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise FetchError(f"Failed to fetch {url}: {e}", url=url) from e

        duration_ms = int((time.time() - start) * 1000)
        log.info(
            "page_fetched",
            url=url,
            final_url=str(response.url),
            status_code=response.status_code,
            duration_ms=duration_ms,
        )
        return StaticPage(str(response.url), response.text)
