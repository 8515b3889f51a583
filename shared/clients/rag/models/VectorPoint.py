"""Index record models: one embedded chunk of a source document and its vector payload."""

import uuid

from pydantic import BaseModel


def make_record_id(source_id: str, document_id: str, version: str, chunk_ordinal: int) -> str:
    """Build a deterministic UUID5 record ID for a vector point.

    The same chunk of the same document version always maps to the same ID,
    so re-running an interrupted ingestion overwrites instead of duplicating.
    A new version yields a disjoint set of IDs.

    Args:
        source_id (str): Source instance identifier (e.g. "pdf:/data/pdfs").
        document_id (str): Source-local document identifier.
        version (str): Version fingerprint of the document.
        chunk_ordinal (int): Zero-based position of the chunk within the document.

    Returns:
        str: UUID string usable as a Qdrant point ID.
    """
    return str(uuid.uuid5(uuid.NAMESPACE_OID, f"{source_id}:{document_id}:{version}:{chunk_ordinal}"))


class VectorPoint(BaseModel):
    """Display metadata stored alongside each vector chunk in the vector index.

    Attributes:
        source_id:      Source instance the chunk was ingested from.
        document_id:    Source-local document identifier.
        chunk_ordinal:  Zero-based position of this chunk within the document.
        key:            Human-readable record key (e.g. "handbook_3_0").
        file_name:      Display name of the document.
        page_number:    Page, slide or segment number.
        record_type:    Record-type tag ("PDF", "PPT", "TRANSCRIPT", "TEXT", "WIKI").
        source_url:     Optional link back to the original document.
        text:           Raw text content of this chunk.
    """

    source_id: str
    document_id: str
    chunk_ordinal: int
    key: str
    file_name: str
    page_number: int = 1
    record_type: str = "PDF"
    source_url: str | None = None
    text: str


class IndexRecord(VectorPoint):
    """A fully embedded chunk ready to be upserted into the vector index."""

    id: str
    embedding: list[float]

    def to_point(self) -> dict:
        """Render the record as a Qdrant-style point dict."""
        return {
            "id": self.id,
            "vector": self.embedding,
            "payload": self.model_dump(exclude={"id", "embedding"}),
        }
