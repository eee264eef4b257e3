from typing import Any

import httpx
import structlog

from src.config.constants import (
    DEFAULT_DISTANCE_METRIC,
    DEFAULT_VECTOR_DIMENSION,
    DEFAULT_VECTOR_PROVIDER,
    DISTANCE_METRICS,
)
from src.memory.base import (
    adapter_operation,
    ensure_same_provider,
    parse_records,
    parse_stats,
    record_metadata,
)
from src.memory.client import MemoryHttpClient
from src.memory.embedder import Embedder, HashEmbedder
from src.models.config import MemoryConfig, MemoryProvider
from src.models.content import WebPageContent
from src.models.memory import MemoryStats
from src.utils.errors import AdapterError, ConfigurationError
from src.utils.url import url_to_id

log = structlog.get_logger()


def parse_dimension(value: Any) -> int:
    if value is None or value == "":
        return DEFAULT_VECTOR_DIMENSION
    if isinstance(value, bool):
        raise ConfigurationError(f"Vector dimension must be a positive integer, got {value!r}")
    try:
        dimension = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Vector dimension must be a positive integer, got {value!r}") from e
    if dimension <= 0:
        raise ConfigurationError(f"Vector dimension must be a positive integer, got {value!r}")
    return dimension


def parse_distance_metric(value: Any) -> str:
    if not value:
        return DEFAULT_DISTANCE_METRIC
    if value not in DISTANCE_METRICS:
        raise ConfigurationError(
            f"Unsupported distance metric: {value}. Expected one of {', '.join(DISTANCE_METRICS)}"
        )
    return value


class VectorDBAdapter:
    """Stores page embeddings in a generic vector database collection."""

    provider = MemoryProvider.VECTOR_DB.value

    def __init__(
        self,
        config: MemoryConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        embedder: Embedder | None = None,
    ):
        self._transport = transport
        self._custom_embedder = embedder
        self._is_connected = False
        self._apply(config)

    def _apply(self, config: MemoryConfig) -> None:
        self.config = config
        options = config.options
        self.vector_provider = options.get("provider") or DEFAULT_VECTOR_PROVIDER
        self.dimension = parse_dimension(options.get("dimension"))
        self.distance_metric = parse_distance_metric(
            options.get("distanceMetric") or options.get("distance_metric")
        )
        self.embedder = self._custom_embedder or HashEmbedder(self.dimension)
        self.client = MemoryHttpClient(config.endpoint, config.api_key, transport=self._transport)
        self._collection_ready = False

    @property
    def _collection_path(self) -> str:
        return f"/collections/{self.config.collection}"

    async def _ensure_collection(self) -> None:
        if self._collection_ready:
            return
        try:
            await self.client.get(self._collection_path)
        except httpx.HTTPStatusError as e:
            if e.response.status_code != 404:
                raise
            await self.client.post(
                "/collections",
                {
                    "name": self.config.collection,
                    "dimension": self.dimension,
                    "distance_metric": self.distance_metric,
                    "metadata": {"namespace": self.config.namespace},
                },
            )
            log.info("vector_collection_created", collection=self.config.collection, dimension=self.dimension)
        self._collection_ready = True

    async def connect(self) -> None:
        async with adapter_operation("connect", self.provider):
            if not await self.test_connection():
                raise AdapterError("connect", f"{self.config.endpoint} is unreachable", self.provider)
            await self._ensure_collection()
            self._is_connected = True
            log.info(
                "memory_backend_connected",
                provider=self.provider,
                vector_provider=self.vector_provider,
                endpoint=self.config.endpoint,
            )

    async def disconnect(self) -> None:
        self._is_connected = False
        log.info("memory_backend_disconnected", provider=self.provider)

    async def save(self, content: WebPageContent) -> None:
        async with adapter_operation("save", self.provider):
            values = await self.embedder.embed(f"{content.title} {content.content}")
            await self.client.post(
                f"{self._collection_path}/vectors",
                {
                    "vectors": [
                        {
                            "id": url_to_id(content.url),
                            "values": values,
                            "metadata": record_metadata(content, content=content.content),
                        }
                    ]
                },
            )

    async def search(self, query: str, limit: int = 10) -> list[WebPageContent]:
        async with adapter_operation("search", self.provider):
            vector = await self.embedder.embed(query)
            data = await self.client.post(
                f"{self._collection_path}/query",
                {"vector": vector, "top_k": limit, "include_metadata": True},
            )
            return parse_records(data, "results", content_in_metadata=True)

    async def delete(self, url: str) -> None:
        async with adapter_operation("delete", self.provider):
            await self.client.delete(f"{self._collection_path}/vectors/{url_to_id(url)}")

    async def clear(self) -> None:
        async with adapter_operation("clear", self.provider):
            await self.client.delete(f"{self._collection_path}/vectors")

    async def get_stats(self) -> MemoryStats:
        try:
            return parse_stats(await self.client.get(f"{self._collection_path}/stats"))
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
