import re
from pathlib import Path

from services.doc_index_sync.sources.SourceDirectoryInterface import SourceDirectoryInterface

# hours are optional: "00:01.000 --> 00:04.000" and "00:00:01.000 --> 00:00:04.000"
_TIMING = re.compile(r"^(?:\d+:)?\d+:\d+\.\d+\s+-->\s+(?:\d+:)?\d+:\d+\.\d+")
_TAG = re.compile(r"<[^>]+>")


def parse_vtt(content: str) -> str:
    """Caption text of a WebVTT transcript, joined with single spaces.

    Cues are blocks separated by blank lines. Only the lines after a block's
    timing line are caption text, so cue identifiers, the header and NOTE or
    STYLE blocks are dropped. Voice and styling tags such as <v Alice> are
    removed.
    """
    captions: list[str] = []
    for block in re.split(r"\n\s*\n", content.replace("\r\n", "\n")):
        lines = [line.strip() for line in block.split("\n")]
        timing = next((i for i, line in enumerate(lines) if _TIMING.match(line)), None)
        if timing is None:
            continue
        for line in lines[timing + 1:]:
            text = _TAG.sub("", line).strip()
            if text:
                captions.append(text)
    return " ".join(captions)


class SourceTranscript(SourceDirectoryInterface):
    """Meeting transcripts (.vtt) below a directory, searched recursively.

    document_id is the relative POSIX path without the extension, e.g.
    "team/standup" for team/standup.vtt.
    """

    def get_source_kind(self) -> str:
        return "transcript"

    def get_extensions(self) -> tuple[str, ...]:
        return (".vtt",)

    def is_recursive(self) -> bool:
        return True

    def get_record_type(self) -> str:
        return "TRANSCRIPT"

    def _make_document_id(self, path: Path) -> str:
        return path.relative_to(self.location).with_suffix("").as_posix()

    def _make_key(self, path: Path, page_number: int, index: int) -> str:
        return f"{path.stem}_{page_number}"

    def _extract_passages(self, path: Path) -> list[tuple[int, str]]:
        text = parse_vtt(path.read_text(encoding="utf-8-sig"))
        return list(enumerate(self._chunk_embedder.split_plain_text([text])))
