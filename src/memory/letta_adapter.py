import httpx
import structlog

from src.memory.base import (
    adapter_operation,
    ensure_same_provider,
    format_content,
    parse_records,
    parse_stats,
    record_metadata,
)
from src.memory.client import MemoryHttpClient
from src.models.config import MemoryConfig, MemoryProvider
from src.models.content import WebPageContent
from src.models.memory import MemoryStats
from src.utils.errors import AdapterError
from src.utils.url import url_to_id

log = structlog.get_logger()


class LettaAdapter:
    """Stores pages as Letta documents."""

    provider = MemoryProvider.LETTA.value

    def __init__(self, config: MemoryConfig, *, transport: httpx.AsyncBaseTransport | None = None):
        self._transport = transport
        self._is_connected = False
        self._apply(config)

    def _apply(self, config: MemoryConfig) -> None:
        self.config = config
        self.client = MemoryHttpClient(config.endpoint, config.api_key, transport=self._transport)

    def _scope(self) -> dict[str, str]:
        return {"collection": self.config.collection, "namespace": self.config.namespace}

    async def connect(self) -> None:
        async with adapter_operation("connect", self.provider):
            if not await self.test_connection():
                raise AdapterError("connect", f"{self.config.endpoint} is unreachable", self.provider)
            self._is_connected = True
            log.info("memory_backend_connected", provider=self.provider, endpoint=self.config.endpoint)

    async def disconnect(self) -> None:
        self._is_connected = False
        log.info("memory_backend_disconnected", provider=self.provider)

    async def save(self, content: WebPageContent) -> None:
        async with adapter_operation("save", self.provider):
            await self.client.post(
                "/documents",
                {
                    "id": url_to_id(content.url),
                    "content": format_content(content),
                    "metadata": record_metadata(content, **self._scope()),
                },
            )

    async def search(self, query: str, limit: int = 10) -> list[WebPageContent]:
        async with adapter_operation("search", self.provider):
            data = await self.client.post("/search", {"query": query, **self._scope(), "limit": limit})
            return parse_records(data, "documents")

    async def delete(self, url: str) -> None:
        async with adapter_operation("delete", self.provider):
            await self.client.delete(f"/documents/{url_to_id(url)}", params=self._scope())

    async def clear(self) -> None:
        async with adapter_operation("clear", self.provider):
            await self.client.delete("/documents", params=self._scope())

    async def get_stats(self) -> MemoryStats:
        try:
            return parse_stats(await self.client.get("/stats", params=self._scope()))
        except Exception as e:
            log.debug("letta_stats_endpoint_failed", error=str(e))

        # Some deployments have no /stats; a wildcard search reports totals too
        try:
            data = await self.client.post("/search", {"query": "*", **self._scope(), "limit": 1})
            return parse_stats(data)
        except Exception as e:
            log.warning("memory_stats_unavailable", provider=self.provider, error=str(e))
            return MemoryStats()

    def validate_config(self) -> bool:
        return bool(self.config.endpoint and self.config.collection)

    async def test_connection(self) -> bool:
        return await self.client.probe()

    def is_connected_to_storage(self) -> bool:
        return self._is_connected

    def get_config(self) -> MemoryConfig:
        return self.config

    def update_config(self, config: MemoryConfig) -> None:
        ensure_same_provider(self.config, config)
        self._apply(config)
