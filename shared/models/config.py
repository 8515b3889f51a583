from pydantic import BaseModel, Field


class EnvConfig(BaseModel):
    """
    Represents a single configuration parameter required by a client or source.

    Attributes:
        env_key (str): The key/name of the environment variable to read (without the client prefix).
        val_type (str): The expected type of the value. Supported types are "string", "number", "bool", and "list".
        default (str | int | bool | list | None): An optional default value. If None, the variable is required.
    """

    env_key: str
    val_type: str
    default: str | int | bool | list | None = None


class SyncConfig(BaseModel):
    """Process-wide synchronisation settings.

    Built once by HelperConfig.get_sync_config() and passed explicitly to
    SyncService, SourceManager and SnapshotStore.

    Attributes:
        sources:                    Configured sources, each as "kind:location".
        vector_size:                Embedding dimensionality of the collection (0 = ask the model).
        distance:                   Vector distance metric of the collection.
        doc_concurrency:            Max documents extracted/embedded in parallel per pass.
        upsert_batch_size:          Max points per vector index upsert call.
        embed_batch_size:           Max passages per embedding call.
        snapshot_commit_batch_size: Upserted documents per snapshot flush.
        sync_timeout_seconds:       Optional timeout for one source's pass.
        chunk_max_words:            Word budget of a plain-text passage.
        snapshot_db_url:            SQLAlchemy URL of the snapshot store.
        pptx_url_prefix:            Prefix of the source URL stored on PowerPoint records.
        wiki_pages:                 Page paths ingested by wiki sources.
    """

    sources: list[str] = []
    vector_size: int = 1536
    distance: str = "Cosine"
    doc_concurrency: int = Field(default=5, ge=1)
    upsert_batch_size: int = Field(default=100, ge=1)
    embed_batch_size: int = Field(default=64, ge=1)
    snapshot_commit_batch_size: int = Field(default=50, ge=1)
    sync_timeout_seconds: float | None = None
    chunk_max_words: int = Field(default=200, ge=1)
    snapshot_db_url: str = "sqlite:///data/ingestion_cache.db"
    pptx_url_prefix: str = "/Data"
    wiki_pages: list[str] = []
