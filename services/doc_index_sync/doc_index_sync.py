"""Sync runner entry point.

Reconciles every configured source (SOURCES) into the configured vector
indexes (RAG_ENGINES) once and exits. The exit status is non-zero if any
source failed.

Usage:
    python -m services.doc_index_sync.doc_index_sync
"""

import asyncio
import sys

from shared.clients.ClientInterface import ClientInterface
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from services.doc_index_sync.ChunkEmbedder import ChunkEmbedder
from services.doc_index_sync.SnapshotStore import SnapshotStore
from services.doc_index_sync.SyncService import SyncService
from services.doc_index_sync.sources.SourceInterface import SourceInterface
from services.doc_index_sync.sources.SourceManager import SourceManager


async def _boot_client(client: ClientInterface) -> None:
    await client.boot()
    try:
        await client.do_healthcheck()
    except Exception:
        await client.close()
        raise


async def boot_sync_service(config: HelperConfig) -> tuple[SyncService, list[ClientInterface | SourceInterface]]:
    """Instantiate and boot everything a synchronisation needs.

    The embedding client is required. Vector index clients and sources that
    fail to boot are skipped, as long as at least one of each remains.

    Args:
        config (HelperConfig): The configuration helper.

    Returns:
        tuple[SyncService, list]: The service and the booted clients and sources to close on shutdown.

    Raises:
        Exception: If the embedding client, every vector index or every source fails to boot.
    """
    logger = config.get_logger()
    sync_config = config.get_sync_config()

    embed_client = EmbedClientManager(helper_config=config).get_client()
    rag_clients = RAGClientManager(helper_config=config, upsert_batch_size=sync_config.upsert_batch_size).get_clients()
    chunk_embedder = ChunkEmbedder(helper_config=config, embed_client=embed_client, sync_config=sync_config)
    sources = SourceManager(helper_config=config, sync_config=sync_config, chunk_embedder=chunk_embedder).get_sources()

    opened: list[ClientInterface | SourceInterface] = []
    try:
        # no point in syncing without embeddings
        try:
            await _boot_client(embed_client)
            opened.append(embed_client)
        except Exception as e:
            raise Exception(f"Embed client {embed_client.get_engine_name()} could not be booted: {e}") from e

        vector_size = sync_config.vector_size
        if vector_size <= 0:
            vector_size, _ = await embed_client.do_fetch_embedding_vector_size()
            logger.info("Embedding model reports vector size %d.", vector_size)

        booted_rag_clients: list[RAGClientInterface] = []
        for rag_client in rag_clients:
            try:
                await _boot_client(rag_client)
                booted_rag_clients.append(rag_client)
                opened.append(rag_client)
            except Exception as e:
                logger.error(f"Error booting RAG client {rag_client.get_engine_name()}: {e}. Skipping this client.")
        if not booted_rag_clients:
            raise Exception("No RAG clients booted successfully.")

        booted_sources: list[SourceInterface] = []
        for source in sources:
            try:
                await source.boot()
                booted_sources.append(source)
                opened.append(source)
            except Exception as e:
                logger.error(f"Error booting source {source.get_source_id()}: {e}. Skipping this source.")
                await source.close()
        if not booted_sources:
            raise Exception("No sources booted successfully.")

        snapshot_store = SnapshotStore(helper_config=config, sync_config=sync_config)
        snapshot_store.initialize()
    except Exception:
        await close_all(opened)
        raise

    sync_service = SyncService(
        helper_config=config,
        sync_config=sync_config,
        sources=booted_sources,
        rag_clients=booted_rag_clients,
        snapshot_store=snapshot_store,
        vector_size=vector_size,
    )
    return sync_service, opened


async def close_all(opened: list[ClientInterface | SourceInterface]) -> None:
    for item in opened:
        await item.close()


async def shutdown_sync_service(sync_service: SyncService, opened: list[ClientInterface | SourceInterface]) -> None:
    await close_all(opened)
    sync_service.get_snapshot_store().close()


async def main() -> int:
    """Run one full synchronisation.

    Returns:
        int: 0 if every source synchronised successfully, 1 otherwise.
    """
    logger = setup_logging()
    config = HelperConfig(logger=logger)

    try:
        sync_service, opened = await boot_sync_service(config)
    except Exception as e:
        logger.error(f"Could not start synchronisation: {e}. Aborting.")
        return 1

    try:
        outcomes = await sync_service.do_full_sync()
    finally:
        await shutdown_sync_service(sync_service, opened)

    for outcome in outcomes:
        if not outcome.is_success():
            logger.error(f"Source {outcome.source_id} failed: {outcome.error}")
    return 0 if all(outcome.is_success() for outcome in outcomes) else 1


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
