from pathlib import Path

from pptx import Presentation

from services.doc_index_sync.sources.SourceDirectoryInterface import SourceDirectoryInterface


class SourcePptx(SourceDirectoryInterface):
    """PowerPoint decks in one directory, one passage group per slide with text.

    Legacy binary .ppt files are not readable and are ignored.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._url_prefix = self._sync_config.pptx_url_prefix.rstrip("/")

    def get_source_kind(self) -> str:
        return "pptx"

    def get_extensions(self) -> tuple[str, ...]:
        return (".pptx", ".pptm")

    def get_record_type(self) -> str:
        return "PPT"

    def _make_key(self, path: Path, page_number: int, index: int) -> str:
        return f"{path.stem}_slide{page_number}_{index}"

    def _get_source_url(self, path: Path) -> str | None:
        return f"{self._url_prefix}/{path.name}"

    def _extract_passages(self, path: Path) -> list[tuple[int, str]]:
        presentation = Presentation(str(path))
        passages: list[tuple[int, str]] = []
        for slide_number, slide in enumerate(presentation.slides, start=1):
            texts = [shape.text_frame.text.strip() for shape in slide.shapes if shape.has_text_frame]
            slide_text = "\n".join(text for text in texts if text)
            if not slide_text:
                continue
            for passage in self._chunk_embedder.split_plain_text([slide_text]):
                passages.append((slide_number, passage))
        return passages
