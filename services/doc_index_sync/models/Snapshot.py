"""Snapshot store schema and the document snapshot model.

ingested_documents: one row per (source_id, document_id) with its last ingested version.
ingested_records:   one row per vector record, owned by a document row and
                     cascade-deleted with it.
"""

from pydantic import BaseModel
from sqlalchemy import Column, ForeignKeyConstraint, Integer, String
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class IngestedDocument(Base):
    __tablename__ = "ingested_documents"

    source_id = Column(String, primary_key=True)
    document_id = Column(String, primary_key=True)
    version = Column(String, nullable=False)

    records = relationship(
        "IngestedRecord",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="IngestedRecord.ordinal",
        lazy="selectin",
    )


class IngestedRecord(Base):
    __tablename__ = "ingested_records"
    __table_args__ = (
        ForeignKeyConstraint(
            ["source_id", "document_id"],
            ["ingested_documents.source_id", "ingested_documents.document_id"],
            ondelete="CASCADE",
        ),
    )

    record_id = Column(String, primary_key=True)
    source_id = Column(String, nullable=False, index=True)
    document_id = Column(String, nullable=False)
    ordinal = Column(Integer, nullable=False, default=0)


class DocumentSnapshot(BaseModel):
    """Last known state of one document.

    Attributes:
        source_id:   Source instance the document belongs to.
        document_id: Source-local document identifier.
        version:     Version fingerprint, compared by equality only.
        records:     Ordered IDs of the vector records of that version.
    """

    source_id: str
    document_id: str
    version: str
    records: list[str] = []

    @classmethod
    def from_row(cls, row: IngestedDocument) -> "DocumentSnapshot":
        return cls(
            source_id=row.source_id,
            document_id=row.document_id,
            version=row.version,
            records=[record.record_id for record in row.records],
        )
