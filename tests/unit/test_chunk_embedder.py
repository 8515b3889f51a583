"""Unit tests for the chunk & embed module."""

import asyncio

import pytest

from services.doc_index_sync.ChunkEmbedder import ChunkEmbedder, chunk_markdown, count_words, split_plain_text_paragraphs
from services.doc_index_sync.SyncErrors import EmbeddingFailed


def _paragraph(word: str, n: int) -> str:
    return " ".join(f"{word}{i}" for i in range(n))


def test_short_paragraphs_are_packed_together() -> None:
    passages = split_plain_text_paragraphs(["first paragraph\n\nsecond paragraph"], max_words=10)
    assert passages == ["first paragraph\nsecond paragraph"]


def test_long_text_respects_word_budget_and_order() -> None:
    text = "\n\n".join(_paragraph(word, 30) for word in ("a", "b", "c", "d"))
    passages = split_plain_text_paragraphs([text], max_words=50)

    assert len(passages) == 4
    assert all(count_words(p) <= 50 for p in passages)
    assert passages[0].startswith("a0") and passages[-1].startswith("d0")


def test_oversized_paragraph_is_cut_at_sentence_ends() -> None:
    text = "One two three four. Five six seven eight. Nine ten eleven twelve."
    passages = split_plain_text_paragraphs([text], max_words=5)
    assert passages == ["One two three four.", "Five six seven eight.", "Nine ten eleven twelve."]


def test_sentence_without_breaks_is_cut_between_words() -> None:
    passages = split_plain_text_paragraphs([_paragraph("w", 12)], max_words=5)
    assert [count_words(p) for p in passages] == [5, 5, 2]


def test_lines_inside_a_paragraph_are_joined() -> None:
    assert split_plain_text_paragraphs(["line one\nline two"]) == ["line one line two"]


def test_empty_input_yields_no_passages() -> None:
    assert split_plain_text_paragraphs([]) == []
    assert split_plain_text_paragraphs(["", "   \n\n  "]) == []
    assert chunk_markdown("") == []


def test_chunking_is_deterministic() -> None:
    text = "\n\n".join(_paragraph(word, 17) for word in "abcdefg")
    assert split_plain_text_paragraphs([text], max_words=40) == split_plain_text_paragraphs([text], max_words=40)
    assert chunk_markdown(text, max_words=40, overlap_words=10) == chunk_markdown(text, max_words=40, overlap_words=10)


def test_markdown_headings_start_new_chunks() -> None:
    content = "# Intro\n\nHello there.\n\n## Setup\n\nInstall it."
    chunks = chunk_markdown(content)
    assert chunks == ["# Intro\n\nHello there.", "## Setup\n\nInstall it."]


def test_markdown_chunks_overlap_by_trailing_paragraphs() -> None:
    paragraphs = [_paragraph(word, 40) for word in ("p", "q", "r", "s")]
    chunks = chunk_markdown("\n\n".join(paragraphs), max_words=100, overlap_words=30)

    assert len(chunks) == 3
    assert chunks[0] == "\n\n".join(paragraphs[:2])
    assert chunks[1].startswith(paragraphs[1])
    assert chunks[2] == "\n\n".join(paragraphs[2:])


def test_markdown_overlap_is_dropped_when_it_would_overflow() -> None:
    paragraphs = [_paragraph("p", 60), _paragraph("q", 60)]
    chunks = chunk_markdown("\n\n".join(paragraphs), max_words=100, overlap_words=50)
    assert chunks == paragraphs


def test_passages_are_embedded_in_batches(helper_config, embed_client, sync_config) -> None:
    embedder = ChunkEmbedder(helper_config=helper_config, embed_client=embed_client, sync_config=sync_config)
    passages = ["a", "bb", "ccc", "dddd", "eeeee"]

    vectors = asyncio.run(embedder.do_embed_passages(passages, source_id="s", document_id="d"))

    assert [len(call) for call in embed_client.calls] == [2, 2, 1]
    assert [v[0] for v in vectors] == [1.0, 2.0, 3.0, 4.0, 5.0]


def test_backend_without_batching_is_called_per_passage(helper_config, embed_client, sync_config) -> None:
    embed_client.batch = False
    embedder = ChunkEmbedder(helper_config=helper_config, embed_client=embed_client, sync_config=sync_config)

    asyncio.run(embedder.do_embed_passages(["a", "b", "c"], source_id="s", document_id="d"))

    assert embed_client.calls == [["a"], ["b"], ["c"]]


def test_no_passages_means_no_embedding_call(chunk_embedder, embed_client) -> None:
    assert asyncio.run(chunk_embedder.do_embed_passages([], source_id="s", document_id="d")) == []
    assert embed_client.calls == []


def test_backend_error_raises_embedding_failed(chunk_embedder, embed_client) -> None:
    embed_client.fail = True
    with pytest.raises(EmbeddingFailed) as exc_info:
        asyncio.run(chunk_embedder.do_embed_passages(["a"], source_id="s", document_id="d"))
    assert exc_info.value.document_id == "d"


def test_vector_count_mismatch_raises_embedding_failed(helper_config, sync_config) -> None:
    class ShortEmbedClient:
        def supports_batch_embedding(self) -> bool:
            return True

        async def do_embed(self, texts):
            return [[1.0]]

    embedder = ChunkEmbedder(helper_config=helper_config, embed_client=ShortEmbedClient(), sync_config=sync_config)
    with pytest.raises(EmbeddingFailed):
        asyncio.run(embedder.do_embed_passages(["a", "b"], source_id="s", document_id="d"))
