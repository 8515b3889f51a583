"""Unit tests for configuration and logging helpers."""

import logging

import pytest

from shared.logging.logging_setup import PypdfFilter, get_log_dir


def test_list_values_use_bracket_syntax(helper_config, monkeypatch) -> None:
    monkeypatch.setenv("SOURCES", "[pdf:/data/pdfs, wiki:Docs.wiki ,]")
    assert helper_config.get_list_val("SOURCES") == ["pdf:/data/pdfs", "wiki:Docs.wiki"]

    monkeypatch.setenv("SOURCES", "pdf:/data/pdfs")
    with pytest.raises(ValueError):
        helper_config.get_list_val("SOURCES")


def test_list_value_falls_back_to_default(helper_config, monkeypatch) -> None:
    monkeypatch.delenv("SOURCE_WIKI_PAGES", raising=False)
    assert helper_config.get_list_val("SOURCE_WIKI_PAGES", default=[]) == []
    with pytest.raises(ValueError):
        helper_config.get_list_val("SOURCE_WIKI_PAGES")


def test_sync_config_defaults(helper_config, monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("SOURCES", "[markdown:/docs]")
    monkeypatch.setenv("ROOT_DIR", str(tmp_path))
    unset = (
        "SYNC_TIMEOUT_SECONDS", "SNAPSHOT_DB_URL", "EMBED_VECTOR_SIZE", "SYNC_DOC_CONCURRENCY",
        "SOURCE_PPTX_URL_PREFIX", "SOURCE_WIKI_PAGES",
    )
    for key in unset:
        monkeypatch.delenv(key, raising=False)

    config = helper_config.get_sync_config()

    assert config.sources == ["markdown:/docs"]
    assert config.vector_size == 1536
    assert config.doc_concurrency == 5
    assert config.sync_timeout_seconds is None
    assert config.snapshot_db_url == f"sqlite:///{tmp_path}/data/ingestion_cache.db"
    assert config.pptx_url_prefix == "/Data"
    assert config.wiki_pages == []


def test_sync_config_reads_overrides(helper_config, monkeypatch) -> None:
    monkeypatch.setenv("SOURCES", "[pdf:/data]")
    monkeypatch.setenv("SYNC_TIMEOUT_SECONDS", "90")
    monkeypatch.setenv("SYNC_SNAPSHOT_COMMIT_BATCH_SIZE", "10")
    monkeypatch.setenv("SNAPSHOT_DB_URL", "sqlite://")
    monkeypatch.setenv("SYNC_UPSERT_BATCH_SIZE", "25")
    monkeypatch.setenv("SOURCE_PPTX_URL_PREFIX", "/files")
    monkeypatch.setenv("SOURCE_WIKI_PAGES", "[Home, /Guides/Setup]")

    config = helper_config.get_sync_config()

    assert config.sync_timeout_seconds == 90.0
    assert config.snapshot_commit_batch_size == 10
    assert config.snapshot_db_url == "sqlite://"
    assert config.upsert_batch_size == 25
    assert config.pptx_url_prefix == "/files"
    assert config.wiki_pages == ["Home", "/Guides/Setup"]


def test_invalid_concurrency_is_rejected(helper_config, monkeypatch) -> None:
    monkeypatch.setenv("SOURCES", "[pdf:/data]")
    monkeypatch.setenv("SYNC_DOC_CONCURRENCY", "0")
    with pytest.raises(ValueError):
        helper_config.get_sync_config()


def test_log_dir_resolution(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "custom"))
    assert get_log_dir() == str(tmp_path / "custom")

    monkeypatch.delenv("LOG_DIR")
    monkeypatch.setenv("ROOT_DIR", str(tmp_path))
    assert get_log_dir() == str(tmp_path / "logs")


def test_pypdf_noise_is_filtered() -> None:
    record_filter = PypdfFilter()
    noisy = logging.LogRecord("pypdf._reader", logging.WARNING, "", 0, "incorrect startxref pointer(1)", None, None)
    other = logging.LogRecord("doc_index_sync", logging.WARNING, "", 0, "incorrect startxref pointer(1)", None, None)
    assert record_filter.filter(noisy) is False
    assert record_filter.filter(other) is True
