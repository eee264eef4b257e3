from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Protocol, runtime_checkable

import httpx
import structlog
from pydantic import ValidationError

from src.models.config import MemoryConfig
from src.models.content import PageMetadata, WebPageContent, now_ms
from src.models.memory import MemoryStats
from src.utils.errors import AdapterError, ConfigurationError

log = structlog.get_logger()


@runtime_checkable
class MemoryAdapter(Protocol):
    """Operations every storage backend provides."""

    async def connect(self) -> None: ...

    async def disconnect(self) -> None: ...

    async def save(self, content: WebPageContent) -> None: ...

    async def search(self, query: str, limit: int = 10) -> list[WebPageContent]: ...

    async def delete(self, url: str) -> None: ...

    async def clear(self) -> None: ...

    async def get_stats(self) -> MemoryStats: ...

    def validate_config(self) -> bool: ...

    async def test_connection(self) -> bool: ...

    def is_connected_to_storage(self) -> bool: ...

    def get_config(self) -> MemoryConfig: ...

    def update_config(self, config: MemoryConfig) -> None: ...


def error_message(error: BaseException) -> str:
    if isinstance(error, httpx.HTTPStatusError):
        response = error.response
        return f"HTTP {response.status_code} {response.reason_phrase}".strip()
    return str(error) or type(error).__name__


@asynccontextmanager
async def adapter_operation(operation: str, provider: str) -> AsyncIterator[None]:
    """Log any failure inside the block and re-raise it as AdapterError."""
    try:
        yield
    except AdapterError:
        raise
    except Exception as e:
        message = error_message(e)
        log.error("memory_adapter_operation_failed", provider=provider, operation=operation, error=message)
        raise AdapterError(operation, message, provider=provider) from e


def ensure_same_provider(current: MemoryConfig, new: MemoryConfig) -> None:
    if new.provider != current.provider:
        raise ConfigurationError(
            f"Cannot change provider from {current.provider} to {new.provider}; create a new adapter"
        )


def format_content(content: WebPageContent) -> str:
    """Render a page as the plain-text block stored by text backends."""
    lines = [
        f"Title: {content.title or 'Untitled'}",
        f"URL: {content.url or 'Unknown'}",
        f"Domain: {content.domain or 'Unknown'}",
        f"Content: {content.content or 'No content'}",
    ]
    meta = content.metadata
    if meta.description and meta.description.strip():
        lines.append(f"Description: {meta.description}")
    if meta.author and meta.author.strip():
        lines.append(f"Author: {meta.author}")
    if meta.published_date and meta.published_date.strip():
        lines.append(f"Published: {meta.published_date}")
    if meta.keywords:
        keywords = ", ".join(meta.keywords)
        if keywords.strip():
            lines.append(f"Keywords: {keywords}")
    return "\n".join(lines) + "\n"


def record_metadata(page: WebPageContent, /, **extra: Any) -> dict[str, Any]:
    """Backend metadata: core fields, then ``extra``, then the page metadata."""
    return {
        "url": page.url,
        "title": page.title,
        "domain": page.domain,
        "timestamp": page.timestamp,
        **extra,
        **page.metadata_fields(),
    }


def parse_record(item: dict[str, Any], content: str | None = None) -> WebPageContent:
    """Rebuild a WebPageContent from a stored record's metadata."""
    metadata = item.get("metadata")
    if not isinstance(metadata, dict):
        metadata = {}
    if content is None:
        content = item.get("content")
    keywords = metadata.get("keywords")
    return WebPageContent(
        url=str(metadata.get("url") or ""),
        title=str(metadata.get("title") or ""),
        content=str(content or ""),
        timestamp=metadata.get("timestamp") or now_ms(),
        domain=str(metadata.get("domain") or ""),
        metadata=PageMetadata(
            description=metadata.get("description"),
            keywords=keywords if isinstance(keywords, list) else None,
            author=metadata.get("author"),
            published_date=metadata.get("publishedDate"),
            language=metadata.get("language"),
        ),
    )


def parse_records(data: Any, key: str, *, content_in_metadata: bool = False) -> list[WebPageContent]:
    """Parse the list under ``key``; unexpected shapes give an empty list."""
    if not isinstance(data, dict) or not isinstance(data.get(key), list):
        log.warning("unexpected_search_results", key=key)
        return []

    records: list[WebPageContent] = []
    for item in data[key]:
        if not isinstance(item, dict):
            continue
        content = None
        if content_in_metadata:
            metadata = item.get("metadata") if isinstance(item.get("metadata"), dict) else {}
            content = metadata.get("content")
        try:
            records.append(parse_record(item, content=content))
        except ValidationError as e:
            log.warning("invalid_search_record", key=key, error=str(e))
    return records


def parse_stats(data: Any) -> MemoryStats:
    if not isinstance(data, dict):
        return MemoryStats()
    return MemoryStats(total=data.get("total") or 0, last_updated=data.get("lastUpdated") or 0)
