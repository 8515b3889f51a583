from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperLoader import load_engine_class
from shared.models.config import SyncConfig
from services.doc_index_sync.ChunkEmbedder import ChunkEmbedder
from services.doc_index_sync.sources.SourceInterface import SourceInterface


def parse_source_entry(entry: str) -> tuple[str, str]:
    """
    Splits a SOURCES entry "kind:location" into its parts. E.g. "pdf:/data/pdfs" -> ("pdf", "/data/pdfs")

    Raises:
        ValueError: If the entry has no kind or no location.
    """
    kind, separator, location = entry.strip().partition(":")
    kind, location = kind.strip().lower(), location.strip()
    if not separator or not kind or not location:
        raise ValueError(f"Invalid source entry '{entry}'. Expected 'kind:location'.")
    return kind, location


class SourceManager:
    """
    Manager class to instantiate the source adapters listed in SOURCES.
    """

    def __init__(self, helper_config: HelperConfig, sync_config: SyncConfig, chunk_embedder: ChunkEmbedder):
        self.helper_config = helper_config
        self.sync_config = sync_config
        self.chunk_embedder = chunk_embedder
        self.logging = helper_config.get_logger()
        self.sources = self._initialize_sources()

    def _initialize_sources(self) -> list[SourceInterface]:
        """
        Imports services.doc_index_sync.sources.<kind>.Source<Kind> for every configured entry.

        Returns:
            list[SourceInterface]: One adapter per distinct source ID, in configuration order.

        Raises:
            ValueError: If an entry is malformed, a kind is unsupported or no source is configured.
        """
        sources: list[SourceInterface] = []
        seen: set[str] = set()
        for entry in self.sync_config.sources:
            kind, location = parse_source_entry(entry)
            source_class = load_engine_class("services.doc_index_sync.sources", "Source", kind)
            source = source_class(
                helper_config=self.helper_config,
                location=location,
                chunk_embedder=self.chunk_embedder,
                sync_config=self.sync_config,
            )
            if source.get_source_id() in seen:
                self.logging.warning("Source '%s' configured twice. Ignoring the duplicate.", source.get_source_id())
                continue
            seen.add(source.get_source_id())
            sources.append(source)
            self.logging.debug("Instantiated source '%s'.", source.get_source_id())
        if not sources:
            raise ValueError("No sources specified in configuration.")
        return sources

    def get_sources(self) -> list[SourceInterface]:
        """
        Returns the list of instantiated sources.

        Returns:
            list[SourceInterface]: The source adapters.
        """
        return self.sources
