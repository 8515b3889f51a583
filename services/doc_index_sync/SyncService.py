"""Synchronisation service.

Reconciles each configured source against its snapshot: enumerates the
current document set, classifies documents as unchanged, removed or to be
(re)ingested, and applies the difference to every vector index and then to
the snapshot store. Removals are applied and committed before upserts.
A document's snapshot row only advances after its new records are in the
index, so any failure leaves the previous state in place for the next run.
"""

import asyncio
from datetime import datetime

import pytz

from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorPoint import IndexRecord
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import SyncConfig
from services.doc_index_sync.SnapshotStore import SnapshotStore
from services.doc_index_sync.SyncErrors import (
    ExtractionFailed,
    IndexWriteFailed,
    SnapshotWriteFailed,
    SourceUnavailable,
    SyncError,
)
from services.doc_index_sync.models.Snapshot import DocumentSnapshot
from services.doc_index_sync.models.SyncOutcome import SyncOutcome
from services.doc_index_sync.sources.SourceInterface import SourceInterface


class SyncService:
    """Orchestrates the reconciliation of sources into the vector indexes."""

    def __init__(
        self,
        helper_config: HelperConfig,
        sync_config: SyncConfig,
        sources: list[SourceInterface],
        rag_clients: list[RAGClientInterface],
        snapshot_store: SnapshotStore,
        vector_size: int | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._sync_config = sync_config
        self._sources = {source.get_source_id(): source for source in sources}
        self._rag_clients = rag_clients
        self._snapshot_store = snapshot_store
        self._vector_size = vector_size or sync_config.vector_size

        self._locks: dict[str, asyncio.Lock] = {}
        self._last_outcomes: dict[str, SyncOutcome] = {}
        self._collections_lock: asyncio.Lock | None = None
        self._collections_ready = False

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_snapshot_store(self) -> SnapshotStore:
        return self._snapshot_store

    def get_source_ids(self) -> list[str]:
        return list(self._sources)

    def get_source(self, source_id: str) -> SourceInterface | None:
        return self._sources.get(source_id)

    def get_last_outcomes(self) -> dict[str, SyncOutcome]:
        """
        Returns the outcome of the last finished pass per source ID.
        """
        return dict(self._last_outcomes)

    def is_running(self, source_id: str) -> bool:
        lock = self._locks.get(source_id)
        return lock is not None and lock.locked()

    ##########################################
    ############### CORE SYNC ################
    ##########################################

    async def do_full_sync(self) -> list[SyncOutcome]:
        """Synchronise all sources concurrently.

        A failing source never affects the others.

        Returns:
            list[SyncOutcome]: One outcome per source, in configuration order.
        """
        self.logging.info("Starting full sync of %d sources...", len(self._sources))
        sources = list(self._sources.values())
        results = await asyncio.gather(*[self.do_sync(source) for source in sources], return_exceptions=True)

        outcomes: list[SyncOutcome] = []
        for source, result in zip(sources, results):
            if isinstance(result, BaseException):
                self.logging.error("Sync of '%s' crashed: %s", source.get_source_id(), result)
                result = SyncOutcome(source_id=source.get_source_id(), status="failed", error=str(result))
                self._last_outcomes[result.source_id] = result
            outcomes.append(result)

        failed = sum(1 for outcome in outcomes if not outcome.is_success())
        self.logging.info("Full sync finished: %d sources ok, %d failed.", len(outcomes) - failed, failed)
        return outcomes

    async def do_sync(self, source: SourceInterface) -> SyncOutcome:
        """Run one reconciliation pass for a single source.

        Passes over the same source are serialised; a pass requested while
        another is running waits for it and then runs against fresh state.

        Args:
            source (SourceInterface): The source to synchronise.

        Returns:
            SyncOutcome: The pass result. Per-document failures are listed in
            failed_documents; enumeration, snapshot and timeout failures mark
            the whole pass as failed.
        """
        source_id = source.get_source_id()
        lock = self._locks.setdefault(source_id, asyncio.Lock())
        async with lock:
            outcome = SyncOutcome(source_id=source_id, started_at=datetime.now(pytz.utc))
            timeout = self._sync_config.sync_timeout_seconds
            try:
                if timeout:
                    await asyncio.wait_for(self._run_pass(source, outcome), timeout=timeout)
                else:
                    await self._run_pass(source, outcome)
            except asyncio.TimeoutError:
                outcome.status = "failed"
                outcome.error = f"Sync timed out after {timeout} seconds"
                self.logging.error("Sync of '%s' timed out after %s seconds. Committed batches are kept.", source_id, timeout)
            except SyncError as exc:
                outcome.status = "failed"
                outcome.error = str(exc)
                self.logging.error("Sync of '%s' failed: %s", source_id, exc)
            outcome.finished_at = datetime.now(pytz.utc)
            self._last_outcomes[source_id] = outcome

        self.logging.info(
            "Sync of '%s' %s: %d unchanged, %d removed, %d upserted, %d failed documents.",
            source_id, outcome.status, outcome.unchanged, outcome.removed, outcome.upserted, len(outcome.failed_documents),
        )
        return outcome

    async def _run_pass(self, source: SourceInterface, outcome: SyncOutcome) -> None:
        source_id = source.get_source_id()

        # enumerate first, nothing is mutated if this fails
        try:
            current = await source.do_list_current()
        except SourceUnavailable:
            raise
        except Exception as exc:
            raise SourceUnavailable(f"Enumeration failed: {exc}", source_id=source_id) from exc

        previous = self._snapshot_store.get_documents(source_id)

        removed = [previous[document_id] for document_id in previous if document_id not in current]
        to_upsert = [
            document_id
            for document_id, version in current.items()
            if document_id not in previous or previous[document_id].version != version
        ]
        outcome.unchanged = len(current) - len(to_upsert)
        self.logging.info(
            "Source '%s': %d current, %d unchanged, %d to remove, %d to ingest.",
            source_id, len(current), outcome.unchanged, len(removed), len(to_upsert),
        )
        if not removed and not to_upsert:
            return

        await self._ensure_collections(source_id)
        await self._do_removal_phase(source_id, removed, outcome)
        await self._do_upsert_phase(source, to_upsert, current, previous, outcome)

    async def _ensure_collections(self, source_id: str) -> None:
        if self._collections_ready:
            return
        if self._collections_lock is None:
            self._collections_lock = asyncio.Lock()
        async with self._collections_lock:
            if self._collections_ready:
                return
            for rag_client in self._rag_clients:
                try:
                    await rag_client.do_create_collection_if_not_exists(
                        vector_size=self._vector_size, distance=self._sync_config.distance
                    )
                except Exception as exc:
                    raise IndexWriteFailed(
                        f"Collection on {rag_client.get_engine_name()} could not be prepared: {exc}", source_id=source_id
                    ) from exc
            self._collections_ready = True

    ##########################################
    ############# REMOVAL PHASE ##############
    ##########################################

    async def _do_removal_phase(self, source_id: str, removed: list[DocumentSnapshot], outcome: SyncOutcome) -> None:
        deleted: list[str] = []
        for snapshot in removed:
            try:
                await self._delete_from_indexes(source_id, snapshot.document_id, snapshot.records)
            except IndexWriteFailed as exc:
                # row stays, the removal is retried next run
                self.logging.error("Removal of '%s' from '%s' failed: %s", snapshot.document_id, source_id, exc)
                outcome.failed_documents.append(snapshot.document_id)
                continue
            deleted.append(snapshot.document_id)
            self.logging.debug("Removed %d records of '%s'.", len(snapshot.records), snapshot.document_id)

        self._snapshot_store.delete_documents(source_id, deleted)
        outcome.removed = len(deleted)

    ##########################################
    ############## UPSERT PHASE ##############
    ##########################################

    async def _do_upsert_phase(
        self,
        source: SourceInterface,
        to_upsert: list[str],
        current: dict[str, str],
        previous: dict[str, DocumentSnapshot],
        outcome: SyncOutcome,
    ) -> None:
        source_id = source.get_source_id()
        staged: list[DocumentSnapshot] = []
        sem = asyncio.Semaphore(self._sync_config.doc_concurrency)

        async def _upsert_one(document_id: str) -> None:
            async with sem:
                try:
                    snapshot = await self._upsert_document(source, document_id, current[document_id], previous.get(document_id))
                except SnapshotWriteFailed:
                    raise
                except SyncError as exc:
                    # old row and old records stay, the document is retried next run
                    self.logging.error("Ingestion of '%s' from '%s' failed: %s", document_id, source_id, exc)
                    outcome.failed_documents.append(document_id)
                    return
            staged.append(snapshot)
            if len(staged) >= self._sync_config.snapshot_commit_batch_size:
                self._flush_staged(source_id, staged, outcome)

        tasks = [asyncio.create_task(_upsert_one(document_id)) for document_id in to_upsert]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        self._flush_staged(source_id, staged, outcome)

    def _flush_staged(self, source_id: str, staged: list[DocumentSnapshot], outcome: SyncOutcome) -> None:
        if not staged:
            return
        batch = list(staged)
        staged.clear()
        self._snapshot_store.save_documents(source_id, batch)
        outcome.upserted += len(batch)

    async def _upsert_document(
        self,
        source: SourceInterface,
        document_id: str,
        version: str,
        previous: DocumentSnapshot | None,
    ) -> DocumentSnapshot:
        """Ingest one document into every vector index.

        Args:
            source (SourceInterface): The owning source.
            document_id (str): The document to ingest.
            version (str): Its current version.
            previous (DocumentSnapshot | None): The last committed state, if any.

        Returns:
            DocumentSnapshot: The row to stage once the index holds the new records.

        Raises:
            ExtractionFailed: If the adapter could not read the document.
            EmbeddingFailed: If the embedding backend failed.
            IndexWriteFailed: If any vector index rejected the upsert or the stale delete.
        """
        source_id = source.get_source_id()
        try:
            records = await source.do_extract_and_embed(document_id, version)
        except SyncError:
            raise
        except Exception as exc:
            raise ExtractionFailed(f"Unexpected extraction error: {exc}", source_id=source_id, document_id=document_id) from exc

        new_ids = [record.id for record in records]
        await self._write_to_indexes(source_id, document_id, records)

        if previous is not None:
            keep = set(new_ids)
            stale = [record_id for record_id in previous.records if record_id not in keep]
            await self._delete_from_indexes(source_id, document_id, stale)

        self.logging.debug("Ingested '%s' (%d records) at version %s.", document_id, len(records), version)
        return DocumentSnapshot(source_id=source_id, document_id=document_id, version=version, records=new_ids)

    ##########################################
    ############ INDEX MUTATIONS #############
    ##########################################

    async def _write_to_indexes(self, source_id: str, document_id: str, records: list[IndexRecord]) -> None:
        if not records:
            return
        for rag_client in self._rag_clients:
            try:
                await rag_client.do_upsert_records(records)
            except Exception as exc:
                raise IndexWriteFailed(
                    f"Upsert into {rag_client.get_engine_name()} failed: {exc}", source_id=source_id, document_id=document_id
                ) from exc

    async def _delete_from_indexes(self, source_id: str, document_id: str, record_ids: list[str]) -> None:
        if not record_ids:
            return
        for rag_client in self._rag_clients:
            try:
                await rag_client.do_delete_records(record_ids)
            except Exception as exc:
                raise IndexWriteFailed(
                    f"Delete from {rag_client.get_engine_name()} failed: {exc}", source_id=source_id, document_id=document_id
                ) from exc
