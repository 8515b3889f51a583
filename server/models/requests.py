from pydantic import BaseModel


class SyncSourceRequest(BaseModel):
    source_id: str
