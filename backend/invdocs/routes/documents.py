# Overview: Flask API routes for stored documents; uploads, metadata, downloads and deletion.

"""
Documents Routes

Uploads arrive either as a raw request body (file name in X-File-Name,
type in Content-Type) or as multipart form data with a `file` part.
Metadata listings never include file content.
"""

from io import BytesIO
from urllib.parse import unquote

from flask import Blueprint, request, jsonify, send_file, g

from ..decorators import with_actor
from ..services import document_service
from ..validation import NotFoundError, ValidationError


documents_bp = Blueprint("documents", __name__, url_prefix="/api/documents")


def _read_upload() -> tuple[bytes, str, str]:
    upload = request.files.get("file")
    if upload is not None:
        return upload.read(), upload.filename or "", upload.mimetype or ""

    name = unquote(request.headers.get("X-File-Name", ""))
    return request.get_data(cache=False), name, request.mimetype or ""


@documents_bp.post("")
@with_actor
def upload_document_route():
    data, name, content_type = _read_upload()

    try:
        doc = document_service.store_document(
            data=data,
            name=name,
            content_type=content_type,
            user=g.actor,
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({"message": "File uploaded successfully", "document": doc.to_dict()}), 201


@documents_bp.get("")
def list_documents_route():
    source = request.args.get("source")
    docs = document_service.list_documents(source=source)
    return jsonify({"items": [d.to_dict() for d in docs], "count": len(docs)})


@documents_bp.get("/<int:document_id>")
def get_document_route(document_id: int):
    try:
        doc = document_service.get_document(document_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"document": doc.to_dict()})


@documents_bp.get("/download/<int:document_id>")
@with_actor
def download_document_route(document_id: int):
    try:
        doc, content = document_service.read_document_content(document_id, user=g.actor)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return send_file(
        BytesIO(content),
        mimetype=doc.content_type or "application/octet-stream",
        as_attachment=True,
        download_name=doc.name,
    )


@documents_bp.delete("/<int:document_id>")
@with_actor
def delete_document_route(document_id: int):
    try:
        document_service.delete_document(document_id=document_id, user=g.actor)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return "", 204
