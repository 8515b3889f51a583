from pathlib import Path

from pypdf import PdfReader

from services.doc_index_sync.sources.SourceDirectoryInterface import SourceDirectoryInterface


class SourcePdf(SourceDirectoryInterface):
    """PDF files in one directory, one passage group per page."""

    def get_source_kind(self) -> str:
        return "pdf"

    def get_extensions(self) -> tuple[str, ...]:
        return (".pdf",)

    def get_record_type(self) -> str:
        return "PDF"

    def _extract_passages(self, path: Path) -> list[tuple[int, str]]:
        reader = PdfReader(path)
        passages: list[tuple[int, str]] = []
        for page_number, page in enumerate(reader.pages, start=1):
            text = page.extract_text() or ""
            for passage in self._chunk_embedder.split_plain_text([text]):
                passages.append((page_number, passage))
        return passages
