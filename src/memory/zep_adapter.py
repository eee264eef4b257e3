from datetime import datetime
from typing import Any

import httpx
import structlog

from src.config.constants import ZEP_SESSION_PREFIX
from src.memory.base import (
    adapter_operation,
    ensure_same_provider,
    format_content,
    parse_records,
    record_metadata,
)
from src.memory.client import MemoryHttpClient
from src.models.config import MemoryConfig, MemoryProvider
from src.models.content import WebPageContent
from src.models.memory import MemoryStats
from src.utils.errors import AdapterError
from src.utils.url import alnum_only, extract_domain

log = structlog.get_logger()


def _to_epoch_ms(value: Any) -> int:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    if isinstance(value, str) and value:
        try:
            return int(datetime.fromisoformat(value).timestamp() * 1000)
        except ValueError:
            return 0
    return 0


class ZepAdapter:
    """Stores pages as user messages in one Zep session per domain."""

    provider = MemoryProvider.ZEP.value

    def __init__(self, config: MemoryConfig, *, transport: httpx.AsyncBaseTransport | None = None):
        self._transport = transport
        self._is_connected = False
        self._apply(config)

    def _apply(self, config: MemoryConfig) -> None:
        self.config = config
        self.client = MemoryHttpClient(config.endpoint, config.api_key, transport=self._transport)
        self._known_sessions: set[str] = set()

    @staticmethod
    def session_id(domain: str) -> str:
        return f"{ZEP_SESSION_PREFIX}{alnum_only(domain)}"

    async def _ensure_session(self, session_id: str) -> None:
        if session_id in self._known_sessions:
            return
        try:
            await self.client.get(f"/sessions/{session_id}")
        except httpx.HTTPStatusError as e:
            if e.response.status_code != 404:
                raise
            await self.client.post(
                "/sessions",
                {
                    "session_id": session_id,
                    "metadata": {
                        "collection": self.config.collection,
                        "namespace": self.config.namespace,
                    },
                },
            )
            log.info("zep_session_created", session_id=session_id)
        self._known_sessions.add(session_id)

    async def _our_sessions(self) -> list[str]:
        data = await self.client.get("/sessions")
        sessions = data.get("sessions") if isinstance(data, dict) else None
        ids = []
        for session in sessions or []:
            sid = session.get("session_id") if isinstance(session, dict) else None
            if isinstance(sid, str) and sid.startswith(ZEP_SESSION_PREFIX):
                ids.append(sid)
        return ids

    async def _messages(self, session_id: str) -> list[dict]:
        data = await self.client.get(f"/sessions/{session_id}/messages")
        messages = data.get("messages") if isinstance(data, dict) else None
        return [m for m in messages or [] if isinstance(m, dict)]

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
            session_id = self.session_id(content.domain)
            await self._ensure_session(session_id)
            await self.client.post(
                f"/sessions/{session_id}/messages",
                {
                    "role": "user",
                    "content": format_content(content),
                    "metadata": record_metadata(content),
                },
            )

    async def search(self, query: str, limit: int = 10) -> list[WebPageContent]:
        async with adapter_operation("search", self.provider):
            data = await self.client.get(
                "/search",
                params={"collection": self.config.collection, "query": query, "limit": limit},
            )
            return parse_records(data, "results")

    async def delete(self, url: str) -> None:
        async with adapter_operation("delete", self.provider):
            session_id = self.session_id(extract_domain(url))
            for message in await self._messages(session_id):
                metadata = message.get("metadata")
                if not isinstance(metadata, dict) or metadata.get("url") != url:
                    continue
                uuid = message.get("uuid")
                if not uuid:
                    log.warning("zep_message_without_uuid", session_id=session_id, url=url)
                    continue
                await self.client.delete(f"/sessions/{session_id}/messages/{uuid}")
                return
            log.debug("zep_message_not_found", session_id=session_id, url=url)

    async def clear(self) -> None:
        async with adapter_operation("clear", self.provider):
            for session_id in await self._our_sessions():
                await self.client.delete(f"/sessions/{session_id}")
            self._known_sessions.clear()

    async def get_stats(self) -> MemoryStats:
        try:
            total = 0
            last_updated = 0
            for session_id in await self._our_sessions():
                messages = await self._messages(session_id)
                total += len(messages)
                if messages:
                    last_updated = max(last_updated, _to_epoch_ms(messages[-1].get("created_at")))
            return MemoryStats(total=total, last_updated=last_updated)
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
