"""Snapshot store.

Durable record of which documents of each source were last ingested, at
which version, and which vector records resulted. Backed by SQLAlchemy
(SQLite by default). Every write is one transaction; any persistence error
surfaces as SnapshotWriteFailed.
"""

import os

from sqlalchemy import create_engine, event, select
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shared.helper.HelperConfig import HelperConfig
from shared.models.config import SyncConfig
from services.doc_index_sync.SyncErrors import SnapshotWriteFailed
from services.doc_index_sync.models.Snapshot import Base, DocumentSnapshot, IngestedDocument, IngestedRecord


class SnapshotStore:
    def __init__(self, helper_config: HelperConfig, sync_config: SyncConfig) -> None:
        self.logging = helper_config.get_logger()
        self._db_url = sync_config.snapshot_db_url
        self._engine = None
        self._session_factory: sessionmaker | None = None

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    def initialize(self) -> None:
        """Open the database and create the tables if they do not exist."""
        url = make_url(self._db_url)
        engine_kwargs: dict = {}
        if url.get_backend_name() == "sqlite":
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if url.database in (None, "", ":memory:"):
                # a single shared connection, otherwise every session sees an empty database
                engine_kwargs["poolclass"] = StaticPool
            else:
                db_dir = os.path.dirname(os.path.abspath(url.database))
                os.makedirs(db_dir, exist_ok=True)

        self._engine = create_engine(self._db_url, **engine_kwargs)
        if url.get_backend_name() == "sqlite":
            event.listen(self._engine, "connect", _enable_sqlite_foreign_keys)

        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        self.logging.info("Snapshot store ready at %s", url.render_as_string(hide_password=True))

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None

    def _get_session_factory(self) -> sessionmaker:
        if self._session_factory is None:
            raise Exception("Snapshot store not initialised. Call initialize() first.")
        return self._session_factory

    ##########################################
    ################ READS ###################
    ##########################################

    def get_documents(self, source_id: str) -> dict[str, DocumentSnapshot]:
        """Load all snapshot rows of a source.

        Args:
            source_id (str): The source to load.

        Returns:
            dict[str, DocumentSnapshot]: Snapshots keyed by document_id.

        Raises:
            SnapshotWriteFailed: If the store cannot be read.
        """
        try:
            with self._get_session_factory()() as session:
                rows = session.scalars(
                    select(IngestedDocument).where(IngestedDocument.source_id == source_id)
                ).all()
                return {row.document_id: DocumentSnapshot.from_row(row) for row in rows}
        except SQLAlchemyError as exc:
            raise SnapshotWriteFailed(f"Could not load snapshot: {exc}", source_id=source_id) from exc

    ##########################################
    ################ WRITES ##################
    ##########################################

    def save_documents(self, source_id: str, snapshots: list[DocumentSnapshot]) -> None:
        """Insert or replace snapshot rows, all in one transaction.

        An existing row is replaced together with its record rows, so readers
        see either the old version with the old records or the new version
        with the new records.

        Args:
            source_id (str): The source the snapshots belong to.
            snapshots (list[DocumentSnapshot]): Rows to write.

        Raises:
            SnapshotWriteFailed: If the transaction fails.
        """
        if not snapshots:
            return
        try:
            with self._get_session_factory().begin() as session:
                for snapshot in snapshots:
                    existing = session.get(IngestedDocument, (snapshot.source_id, snapshot.document_id))
                    if existing is not None:
                        session.delete(existing)
                        session.flush()
                    session.add(
                        IngestedDocument(
                            source_id=snapshot.source_id,
                            document_id=snapshot.document_id,
                            version=snapshot.version,
                            records=[
                                IngestedRecord(
                                    record_id=record_id,
                                    source_id=snapshot.source_id,
                                    document_id=snapshot.document_id,
                                    ordinal=ordinal,
                                )
                                for ordinal, record_id in enumerate(snapshot.records)
                            ],
                        )
                    )
        except SQLAlchemyError as exc:
            raise SnapshotWriteFailed(f"Could not save {len(snapshots)} snapshot rows: {exc}", source_id=source_id) from exc
        self.logging.debug("Committed %d snapshot rows for '%s'.", len(snapshots), source_id)

    def delete_documents(self, source_id: str, document_ids: list[str]) -> None:
        """Delete snapshot rows (and, by cascade, their record rows) in one transaction.

        Args:
            source_id (str): The source the documents belong to.
            document_ids (list[str]): Documents to delete. Unknown IDs are ignored.

        Raises:
            SnapshotWriteFailed: If the transaction fails.
        """
        if not document_ids:
            return
        try:
            with self._get_session_factory().begin() as session:
                for document_id in document_ids:
                    existing = session.get(IngestedDocument, (source_id, document_id))
                    if existing is not None:
                        session.delete(existing)
        except SQLAlchemyError as exc:
            raise SnapshotWriteFailed(f"Could not delete {len(document_ids)} snapshot rows: {exc}", source_id=source_id) from exc
        self.logging.debug("Deleted %d snapshot rows for '%s'.", len(document_ids), source_id)

    def count_records(self, source_id: str) -> int:
        """Number of record rows of a source."""
        with self._get_session_factory()() as session:
            return len(session.scalars(select(IngestedRecord.record_id).where(IngestedRecord.source_id == source_id)).all())


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
