from pydantic import BaseModel

from services.doc_index_sync.models.SyncOutcome import SyncOutcome


class SyncAcceptedResponse(BaseModel):
    status: str = "accepted"
    source_ids: list[str]


class SourceStatus(BaseModel):
    source_id: str
    running: bool
    last_outcome: SyncOutcome | None = None


class SyncStatusResponse(BaseModel):
    sources: list[SourceStatus]
