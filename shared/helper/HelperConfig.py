import logging
import os
from typing import Any, Callable

from shared.models.config import SyncConfig


class HelperConfig:
    """Typed access to the environment. Keys are case-insensitive and an empty value counts as unset.

    Every getter raises ValueError when the key is unset and no default is given.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def _read(self, key: str, default: Any, convert: Callable[[str, str], Any]) -> Any:
        key = key.upper()
        raw = (os.getenv(key) or "").strip()
        if raw:
            return convert(key, raw)
        if default is None:
            raise ValueError(f"Environment variable '{key}' is not set.")
        return default

    def get_string_val(self, key: str, default: str | None = None) -> str:
        return self._read(key, default, lambda _, raw: raw)

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """"3" reads as int, "2.5" as float."""

        def convert(name: str, raw: str) -> float | int:
            try:
                return float(raw) if "." in raw else int(raw)
            except ValueError:
                raise ValueError(f"Environment variable '{name}' is not a number: '{raw}'.")

        return self._read(key, default, convert)

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        return self._read(key, default, lambda _, raw: raw.lower() in ("true", "1", "yes"))

    def get_list_val(self, key: str, default: list | None = None, separator: str = ",", element_type: type = str) -> list:
        """Read a bracketed list such as SOURCES=[pdf:/data/pdfs, wiki:Docs.wiki].

        Blank elements are dropped, the rest are cast with element_type.
        """

        def convert(name: str, raw: str) -> list:
            if not (raw.startswith("[") and raw.endswith("]")):
                raise ValueError(f"Environment variable '{name}' must look like '[a{separator}b]', got '{raw}'.")
            elements = [part.strip() for part in raw[1:-1].split(separator)]
            try:
                return [element_type(part) for part in elements if part]
            except ValueError as e:
                raise ValueError(f"Environment variable '{name}' has an element that is not {element_type.__name__}: {e}")

        return self._read(key, default, convert)

    def get_root_dir(self) -> str:
        return os.getenv("ROOT_DIR") or os.getcwd()

    def get_sync_config(self) -> SyncConfig:
        """Settings shared by the sync service, the source adapters and the snapshot store.

        Raises:
            ValueError: If SOURCES is unset or a value is out of range.
        """
        numbers = {
            "vector_size": ("EMBED_VECTOR_SIZE", 1536),
            "doc_concurrency": ("SYNC_DOC_CONCURRENCY", 5),
            "upsert_batch_size": ("SYNC_UPSERT_BATCH_SIZE", 100),
            "embed_batch_size": ("SYNC_EMBED_BATCH_SIZE", 64),
            "snapshot_commit_batch_size": ("SYNC_SNAPSHOT_COMMIT_BATCH_SIZE", 50),
            "chunk_max_words": ("SYNC_CHUNK_MAX_WORDS", 200),
        }
        timeout = self.get_number_val("SYNC_TIMEOUT_SECONDS", default=0)
        default_db = "sqlite:///" + os.path.join(self.get_root_dir(), "data", "ingestion_cache.db")
        return SyncConfig(
            sources=self.get_list_val("SOURCES"),
            distance=self.get_string_val("EMBED_DISTANCE", default="Cosine"),
            sync_timeout_seconds=float(timeout) if timeout else None,
            snapshot_db_url=self.get_string_val("SNAPSHOT_DB_URL", default=default_db),
            pptx_url_prefix=self.get_string_val("SOURCE_PPTX_URL_PREFIX", default="/Data"),
            wiki_pages=self.get_list_val("SOURCE_WIKI_PAGES", default=[]),
            **{field: int(self.get_number_val(key, default=default)) for field, (key, default) in numbers.items()},
        )

    def get_logger(self) -> logging.Logger:
        return self._logger
