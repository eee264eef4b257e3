from typing import Any

import httpx
import structlog

from src.config.settings import get_settings

log = structlog.get_logger()


class MemoryHttpClient:
    """JSON-over-HTTP access to a memory backend.

    Each call opens a short-lived ``httpx.AsyncClient`` so an adapter can be
    reconfigured at any time without leaking connections.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (endpoint or "").rstrip("/")
        self.headers = {"Content-Type": "application/json"}
        if api_key:
            self.headers["Authorization"] = f"Bearer {api_key}"
        self.timeout = timeout if timeout is not None else get_settings().request_timeout_s
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        """Send a request and raise ``httpx.HTTPStatusError`` on 4xx/5xx."""
        async with self._client() as client:
            response = await client.request(method, path, params=params, json=json)
        response.raise_for_status()
        return response

    async def get(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        return _json_body(await self.request("GET", path, params=params))

    async def post(self, path: str, payload: Any = None) -> Any:
        return _json_body(await self.request("POST", path, json=payload))

    async def delete(self, path: str, *, params: dict[str, Any] | None = None) -> None:
        await self.request("DELETE", path, params=params)

    async def probe(self) -> bool:
        """True when ``/health`` or ``/`` answers 200. Never raises."""
        for path in ("/health", "/"):
            try:
                response = await self.request("GET", path)
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                log.debug("memory_backend_probe_failed", base_url=self.base_url, path=path, error=str(e))
                continue
            if response.status_code == 200:
                return True
        return False


def _json_body(response: httpx.Response) -> Any:
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        return {}
