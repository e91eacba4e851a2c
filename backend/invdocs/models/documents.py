from __future__ import annotations

from ..extensions import db
from invdocs.time_utils import to_utc_z


class Document(db.Model):
    """
    Document metadata.

    The file content lives in the blob store under `filename`; a row with
    filename=None is metadata whose blob was never persisted.
    """
    __tablename__ = "documents"
    __table_args__ = (
        db.Index("ix_documents_upload_date", "upload_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    filename = db.Column(db.String(255), nullable=True)
    content_type = db.Column(db.String(128), nullable=False, default="application/octet-stream")
    size_bytes = db.Column(db.Integer, nullable=False, default=0)

    # UPLOAD | REPORT
    source = db.Column(db.String(16), nullable=False, default="UPLOAD")
    uploaded_by = db.Column(db.String(64), nullable=True)

    upload_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "filename": self.filename,
            "content_type": self.content_type,
            "size_bytes": self.size_bytes,
            "source": self.source,
            "uploaded_by": self.uploaded_by,
            "upload_date": to_utc_z(self.upload_date),
        }


class DocumentSequence(db.Model):
    """
    Atomic per-type document sequences (ORD-<n>, SAL-<n>).

    WHY: numbering from the current collection count races under concurrent
    creation; an UPDATE ... SET next_number = next_number + 1 does not.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("document_type", name="uq_doc_sequences_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False, index=True)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_type": self.document_type,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }
