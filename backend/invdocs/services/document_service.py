# Overview: Document numbering plus document metadata/blob lifecycle.

from __future__ import annotations

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models import Document, DocumentSequence
from ..validation import NotFoundError, StoreUnavailableError, ValidationError
from invdocs.time_utils import utcnow
from .activity_service import log_activity, normalize_actor
from .blob_store import BlobNotFoundError, get_blob_store
from .concurrency import run_with_retry


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def next_document_number(
    *,
    document_type: str,
    prefix: str,
    pad: int = 0,
) -> str:
    """
    Atomically allocate the next document number for a document type.

    The increment is a single UPDATE statement, so two concurrent callers can
    never read the same value. The caller owns the surrounding commit.
    """
    def _op() -> str:
        if not document_type:
            raise DocumentSequenceError("document_type is required")

        stmt = (
            update(DocumentSequence)
            .where(DocumentSequence.document_type == document_type)
            .values(next_number=DocumentSequence.next_number + 1)
        )

        result = db.session.execute(stmt)
        if result.rowcount:
            db.session.flush()
            current = (
                db.session.query(DocumentSequence.next_number)
                .filter_by(document_type=document_type)
                .scalar()
            )
            next_num = current - 1
        else:
            seq = DocumentSequence(document_type=document_type, next_number=2)
            db.session.add(seq)
            try:
                db.session.flush()
                next_num = 1
            except IntegrityError:
                db.session.rollback()
                result = db.session.execute(stmt)
                if not result.rowcount:
                    raise
                db.session.flush()
                current = (
                    db.session.query(DocumentSequence.next_number)
                    .filter_by(document_type=document_type)
                    .scalar()
                )
                next_num = current - 1

        return f"{prefix}-{str(next_num).zfill(pad)}"

    return run_with_retry(_op)


# =============================================================================
# Documents (metadata + blob)
# =============================================================================

def list_documents(*, source: str | None = None) -> list[Document]:
    """Metadata only, newest first."""
    query = db.session.query(Document)
    if source:
        query = query.filter(Document.source == source.upper())
    return query.order_by(Document.upload_date.desc(), Document.id.desc()).all()


def get_document(document_id: int) -> Document:
    doc = db.session.get(Document, document_id)
    if doc is None:
        raise NotFoundError("Document not found")
    return doc


def store_document(
    *,
    data: bytes,
    name: str,
    content_type: str | None,
    user=None,
    source: str = "UPLOAD",
    log: bool = True,
) -> Document:
    """
    Persist file content to the blob store, then its metadata row.

    If the metadata insert fails the freshly written blob is removed again so
    no orphan is left behind.
    """
    if not data:
        raise ValidationError("No file content provided for upload.")
    name = (name or "").strip()
    if not name:
        raise ValidationError("File name is required.")

    actor = normalize_actor(user)
    blobs = get_blob_store()

    try:
        locator = blobs.write(data, name)
    except OSError as exc:
        current_app.logger.exception("Blob write failed for %s", name)
        raise StoreUnavailableError("File storage unavailable") from exc

    doc = Document(
        name=name,
        filename=locator,
        content_type=content_type or "application/octet-stream",
        size_bytes=len(data),
        source=source,
        uploaded_by=actor,
        upload_date=utcnow(),
    )
    db.session.add(doc)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        blobs.delete(locator)
        raise

    if log:
        log_activity(actor, f"Uploaded document: {doc.name} ({doc.content_type})")
    return doc


def read_document_content(document_id: int, *, user=None) -> tuple[Document, bytes]:
    """
    Return metadata and bytes for download.

    Raises NotFoundError when either the metadata or its blob is missing.
    """
    doc = get_document(document_id)
    if not doc.filename:
        raise NotFoundError("File content not available for this document.")

    try:
        content = get_blob_store().read(doc.filename)
    except BlobNotFoundError as exc:
        current_app.logger.warning("Blob %s missing for document %s", doc.filename, doc.id)
        raise NotFoundError("File content not available for this document.") from exc

    log_activity(user, f"Downloaded document: {doc.name}")
    return doc, content


def delete_document(*, document_id: int, user=None) -> None:
    """
    Delete a document's blob and metadata as one logical unit.

    The blob goes first; a blob that is already missing is not an error, so
    deleting metadata whose blob write previously failed succeeds. If the
    blob cannot be removed for any other reason the metadata is kept and
    StoreUnavailableError is raised, so nothing is orphaned.
    """
    doc = get_document(document_id)
    name = doc.name

    if doc.filename:
        try:
            removed = get_blob_store().delete(doc.filename)
        except OSError as exc:
            current_app.logger.exception("Blob delete failed for document %s", doc.id)
            raise StoreUnavailableError("File storage unavailable; document kept") from exc
        if not removed:
            current_app.logger.warning("Blob %s already missing for document %s", doc.filename, doc.id)

    db.session.delete(doc)
    db.session.commit()

    log_activity(user, f"Deleted document: {name}")
