"""Error taxonomy of the synchronisation pipeline.

SourceUnavailable:   enumeration failed; the source's pass aborts without mutation.
ExtractionFailed:    one document could not be parsed; skipped, retried next run.
EmbeddingFailed:     the embedding backend failed; skipped, retried next run.
IndexWriteFailed:    a vector index mutation failed; the snapshot row is kept for retry.
SnapshotWriteFailed: the snapshot store could not persist; fatal for the pass.
"""


class SyncError(Exception):
    """Base class of all synchronisation errors."""

    def __init__(self, message: str, source_id: str, document_id: str | None = None) -> None:
        super().__init__(message)
        self.source_id = source_id
        self.document_id = document_id

    def __str__(self) -> str:
        where = self.source_id if self.document_id is None else f"{self.source_id} / {self.document_id}"
        return f"[{where}] {self.args[0]}"


class SourceUnavailable(SyncError):
    pass


class ExtractionFailed(SyncError):
    pass


class EmbeddingFailed(SyncError):
    pass


class IndexWriteFailed(SyncError):
    pass


class SnapshotWriteFailed(SyncError):
    pass
