"""Unit tests for the vector index and embedding HTTP clients."""

import asyncio
import json

import httpx
import pytest

from shared.clients.ClientInterface import BackendResponseError
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.embed.ollama.EmbedClientOllama import EmbedClientOllama
from shared.clients.embed.openai.EmbedClientOpenai import EmbedClientOpenai
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.clients.rag.models.VectorPoint import IndexRecord
from shared.clients.rag.qdrant.RAGClientQdrant import RAGClientQdrant


def _mock(client, handler) -> list[httpx.Request]:
    """Route the client's requests to handler and collect them."""
    seen: list[httpx.Request] = []

    def _record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    client._client = httpx.AsyncClient(transport=httpx.MockTransport(_record))
    return seen


def _record(i: int) -> IndexRecord:
    return IndexRecord(
        id=f"00000000-0000-0000-0000-00000000000{i}",
        embedding=[0.1 * i, 0.2],
        source_id="pdf:/data",
        document_id="a.pdf",
        chunk_ordinal=i,
        key=f"a_1_{i}",
        file_name="a.pdf",
        text=f"chunk {i}",
    )


################ QDRANT ################

@pytest.fixture
def qdrant_env(monkeypatch):
    monkeypatch.setenv("RAG_ENGINES", "[qdrant]")
    monkeypatch.setenv("RAG_QDRANT_BASE_URL", "http://qdrant:6333")
    monkeypatch.setenv("RAG_QDRANT_API_KEY", "qdrant-key")
    monkeypatch.setenv("RAG_QDRANT_COLLECTION", "docs")


def test_qdrant_upserts_in_batches(helper_config, qdrant_env) -> None:
    client = RAGClientQdrant(helper_config=helper_config, upsert_batch_size=2)
    seen = _mock(client, lambda request: httpx.Response(200, json={"status": "ok"}))

    ids = asyncio.run(client.do_upsert_records([_record(1), _record(2), _record(3)]))

    assert ids == [_record(i).id for i in (1, 2, 3)]
    assert [r.method for r in seen] == ["PUT", "PUT"]
    assert seen[0].url.path == "/collections/docs/points"
    assert seen[0].url.params["wait"] == "true"
    assert seen[0].headers["api-key"] == "qdrant-key"
    first_batch = json.loads(seen[0].content)["points"]
    assert [p["id"] for p in first_batch] == [_record(1).id, _record(2).id]
    assert first_batch[0]["vector"] == [0.1, 0.2]
    assert first_batch[0]["payload"]["document_id"] == "a.pdf"
    assert "embedding" not in first_batch[0]["payload"]


def test_qdrant_deletes_by_id(helper_config, qdrant_env) -> None:
    client = RAGClientQdrant(helper_config=helper_config)
    seen = _mock(client, lambda request: httpx.Response(200, json={"status": "ok"}))

    asyncio.run(client.do_delete_records([]))
    asyncio.run(client.do_delete_records(["id-1", "id-2"]))

    assert len(seen) == 1
    assert seen[0].method == "POST"
    assert seen[0].url.path == "/collections/docs/points/delete"
    assert json.loads(seen[0].content) == {"points": ["id-1", "id-2"]}


def test_qdrant_creates_missing_collection(helper_config, qdrant_env) -> None:
    client = RAGClientQdrant(helper_config=helper_config)

    def _handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/exists"):
            return httpx.Response(200, json={"result": {"exists": False}})
        return httpx.Response(200, json={"result": True})

    seen = _mock(client, _handler)

    created = asyncio.run(client.do_create_collection_if_not_exists(vector_size=768, distance="Cosine"))

    assert created is True
    assert seen[1].method == "PUT"
    assert seen[1].url.path == "/collections/docs"
    assert json.loads(seen[1].content) == {"vectors": {"size": 768, "distance": "Cosine"}}


def test_qdrant_keeps_existing_collection(helper_config, qdrant_env) -> None:
    client = RAGClientQdrant(helper_config=helper_config)
    seen = _mock(client, lambda request: httpx.Response(200, json={"result": {"exists": True}}))

    assert asyncio.run(client.do_create_collection_if_not_exists()) is False
    assert len(seen) == 1


def test_qdrant_rejected_upsert_raises(helper_config, qdrant_env) -> None:
    client = RAGClientQdrant(helper_config=helper_config)
    _mock(client, lambda request: httpx.Response(500, text="boom"))

    with pytest.raises(Exception, match="status 500"):
        asyncio.run(client.do_upsert_records([_record(1)]))


def test_rag_manager_loads_configured_engine_once(helper_config, qdrant_env, monkeypatch) -> None:
    monkeypatch.setenv("RAG_ENGINES", "[qdrant, Qdrant]")
    clients = RAGClientManager(helper_config=helper_config, upsert_batch_size=7).get_clients()
    assert len(clients) == 1
    assert isinstance(clients[0], RAGClientQdrant)
    assert clients[0].upsert_batch_size == 7


def test_rag_manager_rejects_unknown_engine(helper_config, monkeypatch) -> None:
    monkeypatch.setenv("RAG_ENGINES", "[pinecone]")
    with pytest.raises(ValueError):
        RAGClientManager(helper_config=helper_config)


################ EMBEDDING ################

@pytest.fixture
def ollama_env(monkeypatch):
    monkeypatch.setenv("EMBED_ENGINE", "ollama")
    monkeypatch.setenv("EMBED_MODEL", "nomic-embed-text")
    monkeypatch.setenv("EMBED_OLLAMA_BASE_URL", "http://ollama:11434")


def test_ollama_embeds_a_batch(helper_config, ollama_env) -> None:
    client = EmbedClientOllama(helper_config=helper_config)
    seen = _mock(client, lambda request: httpx.Response(200, json={"embeddings": [[0.1, 0.2], [0.3, 0.4]]}))

    vectors = asyncio.run(client.do_embed(["first", "second"]))

    assert vectors == [[0.1, 0.2], [0.3, 0.4]]
    assert seen[0].url.path == "/api/embed"
    assert json.loads(seen[0].content) == {"model": "nomic-embed-text", "input": ["first", "second"]}


def test_ollama_reports_vector_size_from_model_info(helper_config, ollama_env) -> None:
    client = EmbedClientOllama(helper_config=helper_config)
    _mock(client, lambda request: httpx.Response(200, json={"model_info": {"nomic-bert.embedding_length": 768}}))

    assert asyncio.run(client.do_fetch_embedding_vector_size()) == (768, "Cosine")


def test_embedding_text_is_truncated_to_model_limit(helper_config, ollama_env, monkeypatch) -> None:
    monkeypatch.setenv("EMBED_MODEL_MAX_CHARS", "3")
    client = EmbedClientOllama(helper_config=helper_config)
    seen = _mock(client, lambda request: httpx.Response(200, json={"embeddings": [[1.0]]}))

    asyncio.run(client.do_embed("abcdef"))

    assert json.loads(seen[0].content)["input"] == ["abc"]


def test_embedding_count_mismatch_raises(helper_config, ollama_env) -> None:
    client = EmbedClientOllama(helper_config=helper_config)
    _mock(client, lambda request: httpx.Response(200, json={"embeddings": [[0.1]]}))

    with pytest.raises(ValueError):
        asyncio.run(client.do_embed(["one", "two"]))


def test_openai_orders_embeddings_by_index(helper_config, monkeypatch) -> None:
    monkeypatch.setenv("EMBED_MODEL", "text-embedding-3-small")
    monkeypatch.setenv("EMBED_OPENAI_API_KEY", "sk-test")
    client = EmbedClientOpenai(helper_config=helper_config)
    response = {"data": [{"index": 1, "embedding": [2.0]}, {"index": 0, "embedding": [1.0]}]}
    seen = _mock(client, lambda request: httpx.Response(200, json=response))

    vectors = asyncio.run(client.do_embed(["a", "b"]))

    assert vectors == [[1.0], [2.0]]
    assert seen[0].url == "https://api.openai.com/v1/embeddings"
    assert seen[0].headers["Authorization"] == "Bearer sk-test"
    assert asyncio.run(client.do_fetch_embedding_vector_size()) == (1536, "Cosine")


def test_embed_manager_selects_engine(helper_config, ollama_env) -> None:
    assert isinstance(EmbedClientManager(helper_config=helper_config).get_client(), EmbedClientOllama)


################ BASE CLIENT ################

def test_failed_healthcheck_raises_with_status(helper_config, qdrant_env) -> None:
    client = RAGClientQdrant(helper_config=helper_config)
    seen = _mock(client, lambda request: httpx.Response(503, text="starting"))

    with pytest.raises(BackendResponseError) as exc_info:
        asyncio.run(client.do_healthcheck())

    assert exc_info.value.status_code == 503
    assert seen[0].url == "http://qdrant:6333/healthz"


def test_missing_required_setting_fails_construction(helper_config, qdrant_env, monkeypatch) -> None:
    monkeypatch.delenv("RAG_QDRANT_BASE_URL")
    with pytest.raises(ValueError, match="RAG_QDRANT_BASE_URL"):
        RAGClientQdrant(helper_config=helper_config)


def test_requests_need_a_booted_client(helper_config, qdrant_env) -> None:
    client = RAGClientQdrant(helper_config=helper_config)
    assert not client.is_booted()
    with pytest.raises(RuntimeError):
        asyncio.run(client.do_existence_check())
