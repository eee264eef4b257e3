import pytest

from src.memory.embedder import Embedder
from src.memory.vector_db_adapter import VectorDBAdapter
from src.models.config import MemoryConfig
from src.utils.errors import ConfigurationError
from src.utils.url import url_to_id

ENDPOINT = "https://vectors.test"


class FixedEmbedder(Embedder):
    dimension = 3

    def __init__(self):
        self.texts: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.texts.append(text)
        return [0.1, 0.2, 0.3]


def make_adapter(backend, embedder=None, **options) -> VectorDBAdapter:
    config = MemoryConfig(
        provider="vector_db",
        endpoint=ENDPOINT,
        options={"provider": "qdrant", "collection": "pages", **options},
    )
    return VectorDBAdapter(config, transport=backend.transport, embedder=embedder)


async def test_connect_creates_missing_collection(backend):
    backend.route("GET", "/health", json={})
    backend.route("GET", "/collections/pages", status=404)
    adapter = make_adapter(backend, dimension=8, distanceMetric="dotproduct")

    await adapter.connect()

    [request] = backend.calls("POST", "/collections")
    assert backend.body(request) == {
        "name": "pages",
        "dimension": 8,
        "distance_metric": "dotproduct",
        "metadata": {"namespace": "default"},
    }
    assert adapter.is_connected_to_storage()


async def test_connect_existing_collection(backend):
    backend.route("GET", "/health", json={})
    backend.route("GET", "/collections/pages", json={"name": "pages"})
    await make_adapter(backend).connect()
    assert backend.calls("POST", "/collections") == []


async def test_save_upserts_vector(backend, sample_page):
    embedder = FixedEmbedder()
    await make_adapter(backend, embedder=embedder).save(sample_page)

    assert embedder.texts == ["Guide How to configure the service."]
    [request] = backend.calls("POST", "/collections/pages/vectors")
    vector = backend.body(request)["vectors"][0]
    assert vector["id"] == url_to_id(sample_page.url)
    assert vector["values"] == [0.1, 0.2, 0.3]
    assert vector["metadata"]["content"] == sample_page.content
    assert vector["metadata"]["title"] == "Guide"


async def test_search_reads_content_from_metadata(backend):
    backend.route(
        "POST",
        "/collections/pages/query",
        json={"results": [{"score": 0.9, "metadata": {"url": "https://a.test/", "content": "body text"}}]},
    )
    results = await make_adapter(backend, embedder=FixedEmbedder()).search("config", limit=5)

    body = backend.body(backend.calls("POST", "/collections/pages/query")[0])
    assert body == {"vector": [0.1, 0.2, 0.3], "top_k": 5, "include_metadata": True}
    assert results[0].content == "body text"


async def test_default_embedder_uses_configured_dimension(backend, sample_page):
    adapter = make_adapter(backend, dimension=16)
    await adapter.save(sample_page)
    vector = backend.body(backend.calls("POST", "/collections/pages/vectors")[0])["vectors"][0]
    assert len(vector["values"]) == 16


async def test_delete_clear_stats(backend, sample_page):
    backend.route("GET", "/collections/pages/stats", json={"total": 4, "lastUpdated": 10})
    adapter = make_adapter(backend)
    await adapter.delete(sample_page.url)
    await adapter.clear()
    stats = await adapter.get_stats()

    paths = [r.url.path for r in backend.calls("DELETE")]
    assert paths == [f"/collections/pages/vectors/{url_to_id(sample_page.url)}", "/collections/pages/vectors"]
    assert (stats.total, stats.last_updated) == (4, 10)


def test_defaults_when_options_missing():
    adapter = VectorDBAdapter(MemoryConfig(provider="vector_db", endpoint=ENDPOINT))
    assert adapter.vector_provider == "pinecone"
    assert adapter.dimension == 1536
    assert adapter.distance_metric == "cosine"
    assert adapter.embedder.dimension == 1536


def test_update_config_resets_embedder_dimension(backend):
    adapter = make_adapter(backend, dimension=4)
    adapter.update_config(MemoryConfig(provider="vector_db", endpoint=ENDPOINT, options={"dimension": 32}))
    assert adapter.dimension == 32
    assert adapter.embedder.dimension == 32


def test_update_config_keeps_custom_embedder(backend):
    embedder = FixedEmbedder()
    adapter = make_adapter(backend, embedder=embedder)
    adapter.update_config(MemoryConfig(provider="vector_db", endpoint=ENDPOINT))
    assert adapter.embedder is embedder


async def test_save_stores_page_fields_and_content_in_metadata(backend, sample_page):
    await make_adapter(backend, embedder=FixedEmbedder()).save(sample_page)

    metadata = backend.body(backend.calls("POST", "/collections/pages/vectors")[0])["vectors"][0]["metadata"]
    assert metadata["url"] == sample_page.url
    assert metadata["domain"] == sample_page.domain
    assert metadata["timestamp"] == sample_page.timestamp
    assert metadata["content"] == sample_page.content
    assert metadata["author"] == sample_page.metadata.author


@pytest.mark.parametrize("dimension", ["abc", -3, 0, True])
def test_invalid_dimension_is_a_configuration_error(dimension):
    with pytest.raises(ConfigurationError, match="dimension"):
        VectorDBAdapter(MemoryConfig(provider="vector_db", endpoint=ENDPOINT, options={"dimension": dimension}))


def test_unknown_distance_metric_is_a_configuration_error():
    with pytest.raises(ConfigurationError, match="distance metric"):
        VectorDBAdapter(MemoryConfig(provider="vector_db", endpoint=ENDPOINT, options={"distanceMetric": "manhattan"}))


def test_numeric_string_dimension_is_accepted():
    adapter = VectorDBAdapter(MemoryConfig(provider="vector_db", endpoint=ENDPOINT, options={"dimension": "64"}))
    assert adapter.dimension == 64
    assert adapter.embedder.dimension == 64
