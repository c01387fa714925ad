"""
Dataset model for transcript documents.

A dataset is one converted CHAT transcript: a header block (``metadata``)
and the list of utterances. Both are stored as JSON exactly as received so
that older document shapes survive untouched; the normalized view served by
the API is derived on every read by ``services.dataset_transform``.
"""
from sqlalchemy import Column, String, DateTime, JSON, Index
from datetime import datetime
from typing import Any, Dict

from corpus_admin.core.database import Base
from corpus_admin.core.types import GUID, generate_uuid


class Dataset(Base):
    """Stored transcript dataset"""
    __tablename__ = "datasets"

    __table_args__ = (
        Index('ix_datasets_created_at', 'created_at'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)

    # Legacy top-level name; newer documents carry the name in metadata.PID
    file_name = Column(String(255), nullable=True)

    # Header block: {"UTF8", "PID", "Languages", "Participants", "ID": [...], "Media", "Begin", "End"}
    # (attribute renamed because `metadata` is reserved on declarative models)
    dataset_metadata = Column("metadata", JSON, nullable=True)

    # Raw utterance records: [{"speaker", "text", "timestamp", "morphology", "grammar"}]
    utterances = Column(JSON, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Dataset {self.id}>"

    def to_document(self) -> Dict[str, Any]:
        """Export the row in the raw stored-document shape"""
        return {
            "_id": str(self.id),
            "file_name": self.file_name,
            "metadata": self.dataset_metadata,
            "utterances": self.utterances,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
