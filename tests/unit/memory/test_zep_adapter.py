import httpx
import pytest

from src.memory.zep_adapter import ZepAdapter
from src.models.config import MemoryConfig
from src.utils.errors import AdapterError

ENDPOINT = "https://zep.test"
SESSION = "browser-context-docsexamplecom"


def make_adapter(backend) -> ZepAdapter:
    return ZepAdapter(MemoryConfig(provider="zep", endpoint=ENDPOINT), transport=backend.transport)


def test_session_id_uses_alphanumeric_domain():
    assert ZepAdapter.session_id("docs.example.com") == SESSION


async def test_save_creates_missing_session_once(backend, sample_page):
    backend.route("GET", f"/sessions/{SESSION}", status=404)
    adapter = make_adapter(backend)

    await adapter.save(sample_page)
    await adapter.save(sample_page)

    created = backend.calls("POST", "/sessions")
    assert len(created) == 1
    assert backend.body(created[0]) == {
        "session_id": SESSION,
        "metadata": {"collection": "browser-context", "namespace": "default"},
    }
    assert len(backend.calls("GET", f"/sessions/{SESSION}")) == 1

    messages = backend.calls("POST", f"/sessions/{SESSION}/messages")
    assert len(messages) == 2
    body = backend.body(messages[0])
    assert body["role"] == "user"
    assert body["content"].startswith("Title: Guide\n")
    assert body["metadata"]["url"] == sample_page.url


async def test_save_existing_session_is_not_recreated(backend, sample_page):
    backend.route("GET", f"/sessions/{SESSION}", json={"session_id": SESSION})
    await make_adapter(backend).save(sample_page)
    assert backend.calls("POST", "/sessions") == []


async def test_save_session_lookup_error_raises(backend, sample_page):
    backend.route("GET", f"/sessions/{SESSION}", status=500)
    with pytest.raises(AdapterError, match="^save failed"):
        await make_adapter(backend).save(sample_page)


async def test_search(backend):
    backend.route(
        "GET",
        "/search",
        json={"results": [{"content": "hit", "metadata": {"url": "https://a.test/", "keywords": "nope"}}]},
    )
    results = await make_adapter(backend).search("query", limit=2)
    assert [r.content for r in results] == ["hit"]
    assert results[0].metadata.keywords is None
    params = backend.calls("GET", "/search")[0].url.params
    assert params["collection"] == "browser-context"
    assert "namespace" not in params


async def test_delete_finds_message_by_url(backend, sample_page):
    backend.route(
        "GET",
        f"/sessions/{SESSION}/messages",
        json={
            "messages": [
                {"uuid": "m1", "metadata": {"url": "https://docs.example.com/other"}},
                {"uuid": "m2", "metadata": {"url": sample_page.url}},
            ]
        },
    )
    await make_adapter(backend).delete(sample_page.url)
    [request] = backend.calls("DELETE")
    assert request.url.path == f"/sessions/{SESSION}/messages/m2"


async def test_delete_skips_matching_message_without_uuid(backend, sample_page):
    backend.route(
        "GET",
        f"/sessions/{SESSION}/messages",
        json={
            "messages": [
                {"metadata": {"url": sample_page.url}},
                {"uuid": "m3", "metadata": {"url": sample_page.url}},
            ]
        },
    )
    await make_adapter(backend).delete(sample_page.url)
    assert [r.url.path for r in backend.calls("DELETE")] == [f"/sessions/{SESSION}/messages/m3"]


async def test_delete_never_targets_a_missing_uuid(backend, sample_page):
    backend.route("GET", f"/sessions/{SESSION}/messages", json={"messages": [{"metadata": {"url": sample_page.url}}]})
    await make_adapter(backend).delete(sample_page.url)
    assert backend.calls("DELETE") == []


async def test_delete_unknown_url_is_a_no_op(backend):
    backend.route("GET", f"/sessions/{SESSION}/messages", json={"messages": []})
    await make_adapter(backend).delete("https://docs.example.com/missing")
    assert backend.calls("DELETE") == []


async def test_clear_removes_only_own_sessions(backend):
    backend.route(
        "GET",
        "/sessions",
        json={"sessions": [{"session_id": SESSION}, {"session_id": "someone-else"}]},
    )
    await make_adapter(backend).clear()
    assert [r.url.path for r in backend.calls("DELETE")] == [f"/sessions/{SESSION}"]


async def test_clear_forgets_known_sessions(backend, sample_page):
    adapter = make_adapter(backend)
    await adapter.save(sample_page)
    await adapter.clear()
    await adapter.save(sample_page)
    assert len(backend.calls("GET", f"/sessions/{SESSION}")) == 2


async def test_stats_count_messages(backend):
    backend.route(
        "GET",
        "/sessions",
        json={"sessions": [{"session_id": SESSION}, {"session_id": "browser-context-atest"}]},
    )
    backend.route(
        "GET",
        f"/sessions/{SESSION}/messages",
        json={"messages": [{"uuid": "1"}, {"uuid": "2", "created_at": "2024-01-01T00:00:00+00:00"}]},
    )
    backend.route(
        "GET",
        "/sessions/browser-context-atest/messages",
        json={"messages": [{"uuid": "3", "created_at": "2023-01-01T00:00:00+00:00"}]},
    )
    stats = await make_adapter(backend).get_stats()
    assert stats.total == 3
    assert stats.last_updated == 1_704_067_200_000


async def test_stats_degrade_on_failure(backend):
    def boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    backend.route("GET", "/sessions", handler=boom)
    stats = await make_adapter(backend).get_stats()
    assert (stats.total, stats.last_updated) == (0, 0)
