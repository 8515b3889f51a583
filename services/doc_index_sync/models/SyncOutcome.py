from datetime import datetime

from pydantic import BaseModel


class SyncOutcome(BaseModel):
    """Result of one synchronisation pass over one source.

    Attributes:
        source_id:        The synchronised source.
        status:           "success" or "failed" (enumeration or snapshot failure, timeout).
        unchanged:        Documents whose version matched the snapshot.
        removed:          Documents removed from the index and the snapshot.
        upserted:         Documents (re)ingested and committed.
        failed_documents: Documents skipped because of a per-document error.
        error:            Reason of a failed pass.
    """

    source_id: str
    status: str = "success"
    unchanged: int = 0
    removed: int = 0
    upserted: int = 0
    failed_documents: list[str] = []
    error: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None

    def is_success(self) -> bool:
        return self.status == "success"
