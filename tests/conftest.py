"""Shared pytest configuration, fixtures and in-memory fakes."""

import logging

import pytest

from shared.clients.rag.models.VectorPoint import IndexRecord, VectorPoint
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import SyncConfig
from services.doc_index_sync.ChunkEmbedder import ChunkEmbedder
from services.doc_index_sync.SnapshotStore import SnapshotStore
from services.doc_index_sync.SyncErrors import ExtractionFailed, SourceUnavailable
from services.doc_index_sync.SyncService import SyncService
from services.doc_index_sync.sources.SourceInterface import SourceInterface


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


class FakeEmbedClient:
    """Embedding backend returning a vector derived from the text length."""

    def __init__(self, batch: bool = True) -> None:
        self.batch = batch
        self.fail = False
        self.calls: list[list[str]] = []

    def supports_batch_embedding(self) -> bool:
        return self.batch

    async def do_embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.fail:
            raise Exception("embedding backend down")
        return [[float(len(text)), 1.0] for text in texts]


class FakeRagClient:
    """Vector index keeping its points in a dict."""

    def __init__(self, name: str = "fake") -> None:
        self.name = name
        self.points: dict[str, IndexRecord] = {}
        self.collection: tuple[int, str] | None = None
        self.fail_upsert = False
        self.fail_delete = False
        self.calls: list[str] = []

    def get_engine_name(self) -> str:
        return self.name

    async def do_create_collection_if_not_exists(self, vector_size: int = 1536, distance: str = "Cosine") -> bool:
        if self.collection is not None:
            return False
        self.collection = (vector_size, distance)
        return True

    async def do_upsert_records(self, records: list[IndexRecord]) -> list[str]:
        self.calls.append("upsert")
        if self.fail_upsert:
            raise Exception("index unavailable")
        for record in records:
            self.points[record.id] = record
        return [record.id for record in records]

    async def do_delete_records(self, record_ids: list[str]) -> None:
        self.calls.append("delete")
        if self.fail_delete:
            raise Exception("index unavailable")
        for record_id in record_ids:
            self.points.pop(record_id, None)

    def texts_of(self, document_id: str) -> list[str]:
        records = [p for p in self.points.values() if p.document_id == document_id]
        return [p.text for p in sorted(records, key=lambda p: p.chunk_ordinal)]


class FakeSource(SourceInterface):
    """Source whose documents are set directly by the test."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.documents: dict[str, tuple[str, list[str]]] = {}
        self.failing: set[str] = set()
        self.unavailable = False
        self.extract_calls: list[str] = []

    def get_source_kind(self) -> str:
        return "fake"

    def put(self, document_id: str, version: str, *texts: str) -> None:
        self.documents[document_id] = (version, list(texts))

    async def do_list_current(self) -> dict[str, str]:
        if self.unavailable:
            raise SourceUnavailable("offline", source_id=self.get_source_id())
        return {document_id: version for document_id, (version, _) in self.documents.items()}

    async def do_extract_and_embed(self, document_id: str, version: str) -> list[IndexRecord]:
        self.extract_calls.append(document_id)
        if document_id in self.failing:
            raise ExtractionFailed("corrupt file", source_id=self.get_source_id(), document_id=document_id)
        _, texts = self.documents[document_id]
        points = [
            VectorPoint(
                source_id=self.get_source_id(),
                document_id=document_id,
                chunk_ordinal=ordinal,
                key=f"{document_id}_{ordinal}",
                file_name=document_id,
                record_type="TEXT",
                text=text,
            )
            for ordinal, text in enumerate(texts)
        ]
        return await self._embed_points(points, version)


@pytest.fixture
def helper_config() -> HelperConfig:
    return HelperConfig(logger=logging.getLogger("doc_index_sync.tests"))


@pytest.fixture
def sync_config() -> SyncConfig:
    return SyncConfig(
        sources=[],
        vector_size=2,
        doc_concurrency=3,
        embed_batch_size=2,
        snapshot_commit_batch_size=2,
        snapshot_db_url="sqlite://",
    )


@pytest.fixture
def snapshot_store(helper_config: HelperConfig, sync_config: SyncConfig):
    store = SnapshotStore(helper_config=helper_config, sync_config=sync_config)
    store.initialize()
    yield store
    store.close()


@pytest.fixture
def embed_client() -> FakeEmbedClient:
    return FakeEmbedClient()


@pytest.fixture
def chunk_embedder(helper_config: HelperConfig, embed_client: FakeEmbedClient, sync_config: SyncConfig) -> ChunkEmbedder:
    return ChunkEmbedder(helper_config=helper_config, embed_client=embed_client, sync_config=sync_config)


@pytest.fixture
def rag_client() -> FakeRagClient:
    return FakeRagClient()


@pytest.fixture
def make_rag_client():
    return FakeRagClient


@pytest.fixture
def make_source(helper_config: HelperConfig, chunk_embedder: ChunkEmbedder, sync_config: SyncConfig):
    def _make(location: str = "docs") -> FakeSource:
        return FakeSource(helper_config=helper_config, location=location, chunk_embedder=chunk_embedder, sync_config=sync_config)

    return _make


@pytest.fixture
def make_service(helper_config: HelperConfig, sync_config: SyncConfig, rag_client: FakeRagClient, snapshot_store: SnapshotStore):
    def _make(*sources: SourceInterface, rag_clients: list | None = None, config: SyncConfig | None = None) -> SyncService:
        return SyncService(
            helper_config=helper_config,
            sync_config=config or sync_config,
            sources=list(sources),
            rag_clients=rag_clients or [rag_client],
            snapshot_store=snapshot_store,
        )

    return _make
