from abc import ABC, abstractmethod

from shared.clients.rag.models.VectorPoint import IndexRecord, VectorPoint, make_record_id
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import SyncConfig
from services.doc_index_sync.ChunkEmbedder import ChunkEmbedder


class SourceInterface(ABC):
    """A configured place documents are ingested from.

    An adapter exposes exactly two operations to the synchronizer:
    enumerating the current document set with versions, and turning one
    document into embedded index records. Neither writes to any store.
    """

    def __init__(self, helper_config: HelperConfig, location: str, chunk_embedder: ChunkEmbedder, sync_config: SyncConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.location = location
        self._chunk_embedder = chunk_embedder
        self._sync_config = sync_config

    ##########################################
    ################ GETTER ##################
    ##########################################

    @abstractmethod
    def get_source_kind(self) -> str:
        """
        Returns the kind of the source in lowercase. E.g. "pdf"
        """
        pass

    def get_source_id(self) -> str:
        """
        Returns the stable identifier of this source instance. E.g. "pdf:/data/pdfs"
        """
        return f"{self.get_source_kind()}:{self.location}"

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self) -> None:
        """Open any connection the adapter needs."""
        pass

    async def close(self) -> None:
        """Release the resources opened by boot()."""
        pass

    ##########################################
    ############### OPERATIONS ###############
    ##########################################

    @abstractmethod
    async def do_list_current(self) -> dict[str, str]:
        """Enumerate the documents currently present in the source.

        Returns:
            dict[str, str]: Version fingerprint per document_id.

        Raises:
            SourceUnavailable: If the source cannot be enumerated completely.
        """
        pass

    @abstractmethod
    async def do_extract_and_embed(self, document_id: str, version: str) -> list[IndexRecord]:
        """Extract, chunk and embed one document.

        Args:
            document_id (str): The document to ingest.
            version (str): Its version as reported by do_list_current(), used for record IDs.

        Returns:
            list[IndexRecord]: The embedded records, possibly empty.

        Raises:
            ExtractionFailed: If the content cannot be read or parsed.
            EmbeddingFailed: If the embedding backend fails.
        """
        pass

    ##########################################
    ################ HELPER ##################
    ##########################################

    async def _embed_points(self, points: list[VectorPoint], version: str) -> list[IndexRecord]:
        """Embed the text of each point and attach its deterministic record ID."""
        if not points:
            return []
        vectors = await self._chunk_embedder.do_embed_passages(
            [point.text for point in points],
            source_id=self.get_source_id(),
            document_id=points[0].document_id,
        )
        return [
            IndexRecord(
                **point.model_dump(),
                id=make_record_id(point.source_id, point.document_id, version, point.chunk_ordinal),
                embedding=vector,
            )
            for point, vector in zip(points, vectors)
        ]
