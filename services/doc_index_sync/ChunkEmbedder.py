"""Chunk & Embed.

Splits extracted text into word-bounded passages (preferring paragraph and
sentence breaks over hard truncation) and obtains one embedding per passage
through the configured embedding client, batched where the backend allows.
"""

import re

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import SyncConfig
from services.doc_index_sync.SyncErrors import EmbeddingFailed

MARKDOWN_MAX_WORDS = 300
MARKDOWN_OVERLAP_WORDS = 50

_BLANK_LINE = re.compile(r"\n\s*\n")
_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")
_MARKDOWN_HEADING = re.compile(r"(?=^#{1,6} .*)", re.MULTILINE)


def count_words(text: str) -> int:
    return len(text.split())


def _split_oversized(piece: str, max_words: int) -> list[str]:
    """Split a piece above the word budget at sentence ends, then at word boundaries."""
    if count_words(piece) <= max_words:
        return [piece]
    sentences = [s for s in _SENTENCE_END.split(piece) if s.strip()]
    if len(sentences) > 1:
        parts: list[str] = []
        for sentence in sentences:
            parts.extend(_split_oversized(sentence, max_words))
        return parts
    words = piece.split()
    return [" ".join(words[i: i + max_words]) for i in range(0, len(words), max_words)]


def _pack(pieces: list[str], max_words: int, joiner: str) -> list[str]:
    """Greedily merge consecutive pieces into passages of at most max_words words."""
    passages: list[str] = []
    current: list[str] = []
    current_words = 0
    for piece in pieces:
        words = count_words(piece)
        if current and current_words + words > max_words:
            passages.append(joiner.join(current))
            current, current_words = [], 0
        current.append(piece)
        current_words += words
    if current:
        passages.append(joiner.join(current))
    return passages


def split_plain_text_paragraphs(texts: list[str], max_words: int = 200) -> list[str]:
    """Split plain texts into ordered passages of at most max_words words.

    Paragraphs (blank-line separated) are kept whole where they fit; longer
    paragraphs are cut at sentence ends and, failing that, between words.
    Lines inside a paragraph are joined with single spaces.

    Args:
        texts (list[str]): Texts to split, processed in order.
        max_words (int): Word budget per passage.

    Returns:
        list[str]: Non-empty passages in input order.
    """
    passages: list[str] = []
    for text in texts:
        pieces: list[str] = []
        for paragraph in _BLANK_LINE.split(text or ""):
            paragraph = " ".join(paragraph.split())
            if paragraph:
                pieces.extend(_split_oversized(paragraph, max_words))
        passages.extend(_pack(pieces, max_words, joiner="\n"))
    return passages


def _overlap_tail(paragraphs: list[str], overlap_words: int) -> list[str]:
    """Trailing paragraphs of a finished chunk holding at least overlap_words words."""
    tail: list[str] = []
    words = 0
    for paragraph in reversed(paragraphs):
        tail.insert(0, paragraph)
        words += count_words(paragraph)
        if words >= overlap_words:
            break
    return tail


def chunk_markdown(content: str, max_words: int = MARKDOWN_MAX_WORDS, overlap_words: int = MARKDOWN_OVERLAP_WORDS) -> list[str]:
    """Split markdown into heading-aligned chunks with paragraph overlap.

    Each heading starts a new section. Paragraphs of a section are packed
    into chunks of at most max_words words; when a chunk is full its
    trailing paragraphs (at least overlap_words words) open the next chunk,
    unless carrying them would overflow the budget.

    Args:
        content (str): Markdown text.
        max_words (int): Word budget per chunk.
        overlap_words (int): Minimum words carried over between chunks of a section.

    Returns:
        list[str]: Non-empty chunks in document order.
    """
    chunks: list[str] = []
    for section in _MARKDOWN_HEADING.split(content or ""):
        paragraphs: list[str] = []
        for paragraph in _BLANK_LINE.split(section.strip()):
            paragraph = paragraph.strip()
            if paragraph:
                paragraphs.extend(_split_oversized(paragraph, max_words))

        current: list[str] = []
        current_words = 0
        for paragraph in paragraphs:
            words = count_words(paragraph)
            if current and current_words + words > max_words:
                chunks.append("\n\n".join(current))
                current = _overlap_tail(current, overlap_words)
                current_words = count_words(" ".join(current))
                if current_words + words > max_words:
                    current, current_words = [], 0
            current.append(paragraph)
            current_words += words
        if current:
            chunks.append("\n\n".join(current))
    return chunks


class ChunkEmbedder:
    """Turns extracted text into passages and passages into embedding vectors."""

    def __init__(self, helper_config: HelperConfig, embed_client: EmbedClientInterface, sync_config: SyncConfig) -> None:
        self.logging = helper_config.get_logger()
        self._embed_client = embed_client
        self.max_words = sync_config.chunk_max_words
        self.batch_size = sync_config.embed_batch_size

    def split_plain_text(self, texts: list[str]) -> list[str]:
        return split_plain_text_paragraphs(texts, max_words=self.max_words)

    def split_markdown(self, content: str) -> list[str]:
        return chunk_markdown(content)

    async def do_embed_passages(self, passages: list[str], source_id: str, document_id: str) -> list[list[float]]:
        """Embed passages, one vector per passage in input order.

        Sends batches of at most embed_batch_size passages; backends without
        batch support are called once per passage.

        Args:
            passages (list[str]): Passages to embed.
            source_id (str): Owning source, for error reporting.
            document_id (str): Owning document, for error reporting.

        Returns:
            list[list[float]]: The embedding vectors.

        Raises:
            EmbeddingFailed: If the backend errors or returns the wrong number of vectors.
        """
        if not passages:
            return []

        batch_size = self.batch_size if self._embed_client.supports_batch_embedding() else 1
        vectors: list[list[float]] = []
        try:
            for batch_start in range(0, len(passages), batch_size):
                batch = passages[batch_start: batch_start + batch_size]
                vectors.extend(await self._embed_client.do_embed(texts=batch))
        except Exception as exc:
            self.logging.error("Embedding failed for document '%s' of '%s': %s", document_id, source_id, exc)
            raise EmbeddingFailed(f"Embedding failed: {exc}", source_id=source_id, document_id=document_id) from exc

        if len(vectors) != len(passages):
            raise EmbeddingFailed(
                f"Expected {len(passages)} embeddings, got {len(vectors)}",
                source_id=source_id,
                document_id=document_id,
            )
        self.logging.debug("Embedded %d passages of '%s' in batches of %d.", len(passages), document_id, batch_size)
        return vectors
