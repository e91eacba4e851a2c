from flask import Blueprint, jsonify, request

from invdocs.services import activity_service


logs_bp = Blueprint("logs", __name__, url_prefix="/api/logs")


@logs_bp.get("")
def list_logs():
    limit = request.args.get("limit", type=int)
    entries = activity_service.list_recent(limit)
    return jsonify({"items": [e.to_dict() for e in entries], "count": len(entries)}), 200
