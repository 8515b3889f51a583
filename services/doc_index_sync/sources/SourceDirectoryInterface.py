"""Shared base of the adapters that read a directory of files.

document_id is derived from the file path, version is the file's
last-modified time in UTC (ISO-8601).
"""

import asyncio
import os
from abc import abstractmethod
from datetime import datetime
from pathlib import Path

import pytz

from shared.clients.rag.models.VectorPoint import IndexRecord, VectorPoint
from services.doc_index_sync.SyncErrors import ExtractionFailed, SourceUnavailable
from services.doc_index_sync.sources.SourceInterface import SourceInterface


class SourceDirectoryInterface(SourceInterface):

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # document_id -> file, as seen by the last listing
        self._paths: dict[str, Path] = {}

    ##########################################
    ################ GETTER ##################
    ##########################################

    @abstractmethod
    def get_extensions(self) -> tuple[str, ...]:
        """
        Returns the lowercase file extensions handled by the adapter. E.g. (".pdf",)
        """
        pass

    def is_recursive(self) -> bool:
        return False

    @abstractmethod
    def get_record_type(self) -> str:
        """
        Returns the record-type tag stored on every record. E.g. "PDF"
        """
        pass

    def _make_document_id(self, path: Path) -> str:
        return path.name

    def _iter_files(self) -> list[Path]:
        root = Path(self.location)
        candidates = root.rglob("*") if self.is_recursive() else root.iterdir()
        return sorted(p for p in candidates if p.is_file() and p.suffix.lower() in self.get_extensions())

    def _scan(self) -> dict[str, Path]:
        paths: dict[str, Path] = {}
        for path in self._iter_files():
            document_id = self._make_document_id(path)
            if document_id in paths:
                raise SourceUnavailable(
                    f"'{paths[document_id]}' and '{path}' both map to document id '{document_id}'",
                    source_id=self.get_source_id(),
                )
            paths[document_id] = path
        return paths

    def _get_path(self, document_id: str) -> Path:
        path = self._paths.get(document_id)
        if path is None or not path.is_file():
            # not seen by the last listing, look again
            self._paths = self._scan()
            path = self._paths.get(document_id)
        if path is None:
            raise ExtractionFailed("File no longer present", source_id=self.get_source_id(), document_id=document_id)
        return path

    @staticmethod
    def get_file_version(path: Path) -> str:
        return datetime.fromtimestamp(os.stat(path).st_mtime, pytz.utc).isoformat()

    ##########################################
    ############### OPERATIONS ###############
    ##########################################

    def _list_versions(self) -> dict[str, str]:
        paths = self._scan()
        versions = {document_id: self.get_file_version(path) for document_id, path in paths.items()}
        self._paths = paths
        return versions

    async def do_list_current(self) -> dict[str, str]:
        root = Path(self.location)
        if not root.is_dir():
            raise SourceUnavailable(f"Directory '{self.location}' does not exist", source_id=self.get_source_id())
        try:
            current = await asyncio.to_thread(self._list_versions)
        except OSError as exc:
            raise SourceUnavailable(f"Directory '{self.location}' could not be listed: {exc}", source_id=self.get_source_id()) from exc
        self.logging.debug("Found %d files in '%s'.", len(current), self.location)
        return current

    async def do_extract_and_embed(self, document_id: str, version: str) -> list[IndexRecord]:
        try:
            path = await asyncio.to_thread(self._get_path, document_id)
        except (SourceUnavailable, OSError) as exc:
            raise ExtractionFailed(str(exc), source_id=self.get_source_id(), document_id=document_id) from exc
        try:
            # parsers are blocking, keep them off the event loop
            points = await asyncio.to_thread(self._build_points, path, document_id)
        except ExtractionFailed:
            raise
        except Exception as exc:
            self.logging.error("Could not extract '%s': %s", path, exc)
            raise ExtractionFailed(f"Could not extract '{path.name}': {exc}", source_id=self.get_source_id(), document_id=document_id) from exc

        if not points:
            self.logging.warning("No text extracted from '%s'.", path.name)
        return await self._embed_points(points, version)

    ##########################################
    ############### EXTRACTION ###############
    ##########################################

    @abstractmethod
    def _extract_passages(self, path: Path) -> list[tuple[int, str]]:
        """Parse one file into ordered passages.

        Args:
            path (Path): The file to parse.

        Returns:
            list[tuple[int, str]]: (page_number, passage text) pairs in document order.
        """
        pass

    def _make_key(self, path: Path, page_number: int, index: int) -> str:
        return f"{path.stem}_{page_number}_{index}"

    def _get_source_url(self, path: Path) -> str | None:
        return None

    def _build_points(self, path: Path, document_id: str) -> list[VectorPoint]:
        points: list[VectorPoint] = []
        index_per_page: dict[int, int] = {}
        for ordinal, (page_number, text) in enumerate(self._extract_passages(path)):
            index = index_per_page.get(page_number, 0)
            index_per_page[page_number] = index + 1
            points.append(
                VectorPoint(
                    source_id=self.get_source_id(),
                    document_id=document_id,
                    chunk_ordinal=ordinal,
                    key=self._make_key(path, page_number, index),
                    file_name=path.name,
                    page_number=page_number,
                    record_type=self.get_record_type(),
                    source_url=self._get_source_url(path),
                    text=text,
                )
            )
        return points
