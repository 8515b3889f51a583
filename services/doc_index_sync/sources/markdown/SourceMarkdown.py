from pathlib import Path

from services.doc_index_sync.sources.SourceDirectoryInterface import SourceDirectoryInterface


class SourceMarkdown(SourceDirectoryInterface):
    """Markdown and plain text files below a directory, searched recursively."""

    def get_source_kind(self) -> str:
        return "markdown"

    def get_extensions(self) -> tuple[str, ...]:
        return (".md", ".markdown", ".txt")

    def is_recursive(self) -> bool:
        return True

    def get_record_type(self) -> str:
        return "TEXT"

    def _make_document_id(self, path: Path) -> str:
        return path.relative_to(self.location).as_posix()

    def _make_key(self, path: Path, page_number: int, index: int) -> str:
        return f"{path.stem}_{index}"

    def _extract_passages(self, path: Path) -> list[tuple[int, str]]:
        content = path.read_text(encoding="utf-8-sig")
        return [(1, chunk) for chunk in self._chunk_embedder.split_markdown(content)]
