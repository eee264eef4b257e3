import asyncio

import structlog

from src.config.constants import MAX_CONTENT_LENGTH_WARNING, MAX_DELAY_WARNING_MS
from src.config.settings import get_settings
from src.models.content import PageMetadata, WebPageContent, now_ms
from src.scraping.page import PageSource
from src.scraping.parser.html_parser import HtmlParser
from src.utils.errors import ConfigurationError
from src.utils.url import extract_domain

log = structlog.get_logger()


class ContentScraper:
    """Turns a loaded page into a normalized WebPageContent record."""

    def __init__(
        self,
        max_content_length: int | None = None,
        delay_between_pages: int | None = None,
        *,
        page_load_timeout_ms: int | None = None,
        poll_interval_ms: int | None = None,
    ):
        settings = get_settings()
        self.set_max_content_length(
            settings.max_content_length if max_content_length is None else max_content_length
        )
        self.set_delay_between_pages(
            settings.delay_between_pages_ms if delay_between_pages is None else delay_between_pages
        )
        self.page_load_timeout_ms = (
            settings.page_load_timeout_ms if page_load_timeout_ms is None else page_load_timeout_ms
        )
        self.poll_interval_ms = (
            settings.page_poll_interval_ms if poll_interval_ms is None else poll_interval_ms
        )
        self.log = log.bind(service="ContentScraper")

    async def scrape_current_page(self, page: PageSource) -> WebPageContent | None:
        await self.wait_for_page_load(page)

        try:
            html = await page.content()
        except Exception:
            self.log.exception("page_content_read_failed", url=page.url)
            return None

        return self.extract_from_html(html, page.url)

    async def wait_for_page_load(self, page: PageSource) -> None:
        """Poll the page's ready state. Timing out is logged, never raised."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.page_load_timeout_ms / 1000
        while True:
            try:
                if await page.ready_state() == "complete":
                    return
            except Exception as e:
                self.log.warning("ready_state_check_failed", url=page.url, error=str(e))
                return
            if loop.time() >= deadline:
                self.log.warning(
                    "page_load_timeout", url=page.url, timeout_ms=self.page_load_timeout_ms
                )
                return
            await asyncio.sleep(self.poll_interval_ms / 1000)

    def extract_from_html(self, html: str, url: str) -> WebPageContent | None:
        try:
            parser = HtmlParser(html, url)
            if not parser.has_body():
                return None

            content = parser.extract_main_content()
            if not content:
                self.log.debug("no_extractable_text", url=url)
                return None

            return WebPageContent(
                url=url,
                title=parser.extract_title() or "",
                content=content[: self.max_content_length],
                timestamp=now_ms(),
                domain=extract_domain(url),
                metadata=parser.extract_metadata(),
            )
        except Exception:
            self.log.exception("html_extraction_failed", url=url)
            return None

    def extract_main_content(self, html: str) -> str:
        return HtmlParser(html).extract_main_content()

    def extract_metadata(self, html: str) -> PageMetadata:
        return HtmlParser(html).extract_metadata()

    def set_max_content_length(self, length: int) -> None:
        if length < 0:
            raise ConfigurationError("Max content length must be non-negative")
        if length > MAX_CONTENT_LENGTH_WARNING:
            log.warning("max_content_length_very_large", max_content_length=length)
        self.max_content_length = length

    def set_delay_between_pages(self, delay: int) -> None:
        if delay < 0:
            raise ConfigurationError("Delay between pages must be non-negative")
        if delay > MAX_DELAY_WARNING_MS:
            log.warning("delay_between_pages_very_large", delay_ms=delay)
        self.delay_between_pages = delay

    def get_config(self) -> dict[str, int]:
        return {
            "max_content_length": self.max_content_length,
            "delay_between_pages": self.delay_between_pages,
        }
