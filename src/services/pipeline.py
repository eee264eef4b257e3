import asyncio
import inspect
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from src.memory.base import MemoryAdapter
from src.memory.embedder import Embedder
from src.memory.factory import create_adapter
from src.models.config import MemoryConfig, PluginState, PluginStats, ScrapingConfig
from src.models.content import WebPageContent, now_ms
from src.scraping.filter.sensitive_filter import SensitiveFilter
from src.scraping.filter.url_matcher import URLMatcher
from src.scraping.page import PageSource
from src.services.content_scraper import ContentScraper
from src.services.messaging import HostMessaging, Message
from src.services.scheduler import Scheduler, validate_schedule
from src.utils.errors import AdapterError, ConfigurationError

log = structlog.get_logger()

SCRAPING_CONFIG_KEY = "scrapingConfig"
MEMORY_CONFIG_KEY = "memoryConfig"
PAGE_SCRAPED = "PAGE_SCRAPED"


def _validated(model: type, value: Any, what: str):
    if isinstance(value, model):
        return value
    try:
        return model.model_validate(value)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid {what}: {e}") from e


class ContextPipeline:
    """Admission check, extraction, redaction and storage for visited pages.

    Owns the PluginState; every config change replaces the previous one whole.
    """

    def __init__(
        self,
        state: PluginState | None = None,
        *,
        adapter: MemoryAdapter | None = None,
        messaging: HostMessaging | None = None,
        scraper: ContentScraper | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        embedder: Embedder | None = None,
    ):
        self.state = state or PluginState()
        self.adapter = adapter
        self.messaging = messaging
        self.scraper = scraper or ContentScraper()
        self.url_matcher = URLMatcher()
        self.sensitive_filter = SensitiveFilter()
        self.scheduler: Scheduler | None = None
        self._transport = transport
        self._embedder = embedder
        self.log = log.bind(service="ContextPipeline")

        self._configure(self.state.current_config)
        if messaging is not None:
            messaging.on_message(self.handle_message)

    def _configure(self, config: ScrapingConfig) -> None:
        self.url_matcher.update_patterns(config.blacklist)
        self.sensitive_filter.update_patterns(config.sensitive_filters.patterns)
        self.sensitive_filter.set_replacement(config.sensitive_filters.replacement)
        self.scraper.set_max_content_length(config.max_content_length)
        self.scraper.set_delay_between_pages(config.delay_between_pages)

    @property
    def config(self) -> ScrapingConfig:
        return self.state.current_config

    def apply_config(self, config: ScrapingConfig | dict[str, Any]) -> None:
        config = _validated(ScrapingConfig, config, "scraping configuration")
        validate_schedule(config.schedule)
        if self.scheduler is not None:
            self.scheduler.update_config(config.schedule)
        self._configure(config)
        self.state.current_config = config
        self.log.info("scraping_config_applied", enabled=config.enabled, blacklist_size=len(config.blacklist))

    def apply_memory_config(self, config: MemoryConfig | dict[str, Any]) -> MemoryAdapter:
        config = _validated(MemoryConfig, config, "memory configuration")
        adapter = create_adapter(config, transport=self._transport, embedder=self._embedder)
        self.state.memory_config = config
        self.adapter = adapter
        self.log.info("memory_config_applied", provider=config.provider, endpoint=config.endpoint)
        return adapter

    async def load_settings(self) -> None:
        """Pull stored configs from the host. A stored memory config that cannot build an adapter is logged."""
        if self.messaging is None:
            return

        scraping = await self.messaging.get_setting(SCRAPING_CONFIG_KEY)
        if scraping:
            self.apply_config(scraping)

        memory = await self.messaging.get_setting(MEMORY_CONFIG_KEY)
        if memory:
            memory = _validated(MemoryConfig, memory, "memory configuration")
            try:
                self.apply_memory_config(memory)
            except ConfigurationError as e:
                self.state.memory_config = memory
                self.log.warning("stored_memory_config_unusable", error=str(e))

    async def save_settings(self) -> None:
        if self.messaging is None:
            return
        await self.messaging.set_setting(
            SCRAPING_CONFIG_KEY, self.state.current_config.model_dump(by_alias=True)
        )
        await self.messaging.set_setting(
            MEMORY_CONFIG_KEY, self.state.memory_config.model_dump(by_alias=True)
        )

    def start(self) -> None:
        self.state.is_active = True
        self.log.info("scraping_started")

    def stop(self) -> None:
        self.state.is_active = False
        self.log.info("scraping_stopped")

    def is_blacklisted(self, url: str) -> bool:
        return self.url_matcher.is_blacklisted(url)

    def redact(self, content: WebPageContent) -> WebPageContent:
        """Apply sensitive filters to title, content, description and author."""
        if not self.config.sensitive_filters.enabled:
            return content

        sf = self.sensitive_filter
        meta = content.metadata
        metadata = meta.model_copy(
            update={
                "description": sf.filter(meta.description) if meta.description else meta.description,
                "author": sf.filter(meta.author) if meta.author else meta.author,
            }
        )
        return content.model_copy(
            update={
                "title": sf.filter(content.title),
                "content": sf.filter(content.content),
                "metadata": metadata,
            }
        )

    async def scrape(self, page: PageSource) -> WebPageContent | None:
        if not self.config.enabled:
            self.log.debug("scraping_disabled", url=page.url)
            return None

        pattern = self.url_matcher.get_matching_pattern(page.url)
        if pattern is not None:
            self.log.info("page_blacklisted", url=page.url, pattern=pattern)
            return None

        content = await self.scraper.scrape_current_page(page)
        if content is None:
            return None
        return self.redact(content)

    async def process(self, page: PageSource) -> WebPageContent | None:
        """Scrape a page, store it and update stats. Storage failures count as errors and propagate."""
        content = await self.scrape(page)
        if content is None:
            return None

        if self.adapter is not None:
            try:
                await self.adapter.save(content)
            except AdapterError:
                self.state.stats.errors += 1
                raise

        stats = self.state.stats
        stats.total_pages_scraped += 1
        stats.last_scraped_at = now_ms()
        self.log.info("page_scraped", url=content.url, title=content.title, length=len(content.content))

        if self.messaging is not None:
            await self.messaging.send_message(
                {"type": PAGE_SCRAPED, "content": content.model_dump(by_alias=True)}
            )
        return content

    async def clear_data(self) -> None:
        if self.adapter is not None:
            await self.adapter.clear()
        self.state.stats = PluginStats()
        self.log.info("data_cleared")

    async def handle_message(self, message: Message) -> Any:
        """Answer control messages from the host UI."""
        kind = message.get("type")
        match kind:
            case "GET_STATE":
                return self.state.model_dump(by_alias=True)
            case "GET_STATS":
                return self.state.stats.model_dump(by_alias=True)
            case "UPDATE_CONFIG":
                self.apply_config(message.get("config") or {})
                await self.save_settings()
                return {"success": True}
            case "UPDATE_MEMORY_CONFIG":
                self.apply_memory_config(message.get("config") or {})
                await self.save_settings()
                return {"success": True}
            case "START_SCRAPING":
                self.start()
                return {"success": True}
            case "STOP_SCRAPING":
                self.stop()
                return {"success": True}
            case "CLEAR_DATA":
                await self.clear_data()
                return {"success": True}
            case "CHECK_BLACKLIST":
                return {"isBlacklisted": self.is_blacklisted(message.get("url", ""))}
            case "FILTER_SENSITIVE":
                return {"filtered": self.sensitive_filter.filter(message.get("content", ""))}
            case "PAGE_SCRAPED":
                # Outbound notification
                return None
            case _:
                self.log.warning("unknown_message_type", message_type=kind)
                return {"error": "Unknown message type"}


PageProvider = Callable[[], Awaitable[Iterable[PageSource]] | Iterable[PageSource]]


class ScheduledScraper(Scheduler):
    """Runs the pipeline over the provided pages on every in-window tick."""

    def __init__(self, pipeline: ContextPipeline, pages: PageProvider, **kwargs: Any):
        super().__init__(pipeline.config.schedule, **kwargs)
        self.pipeline = pipeline
        self._pages = pages
        pipeline.scheduler = self

    async def on_schedule_trigger(self) -> None:
        state = self.pipeline.state
        if not state.is_active or not state.current_config.enabled:
            log.debug("scheduled_scrape_skipped", is_active=state.is_active)
            return

        pages = self._pages()
        if inspect.isawaitable(pages):
            pages = await pages

        delay_s = self.pipeline.scraper.delay_between_pages / 1000
        for index, page in enumerate(pages):
            if index and delay_s:
                await asyncio.sleep(delay_s)
            try:
                await self.pipeline.process(page)
            except Exception:
                log.exception("scheduled_page_failed", url=page.url)
