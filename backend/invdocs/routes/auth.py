# Overview: Flask API routes for accounts; registration, login and account maintenance.

# backend/invdocs/routes/auth.py
"""
Account API routes

- Self-registration requires the shared security code
- Login verifies a bcrypt hash; the client keeps the username and sends it
  back as X-Username on later requests
- Renaming, password changes and deletion also require the security code
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import with_actor
from ..services import auth_service
from ..services.auth_service import AuthenticationError, SecurityCodeError
from ..validation import ConflictError, NotFoundError, ValidationError


auth_bp = Blueprint("auth", __name__, url_prefix="/api")


def _security_code(data: dict):
    # The browser client historically sends camelCase.
    return data.get("security_code", data.get("securityCode"))


@auth_bp.post("/register")
def register_route():
    data = request.get_json(silent=True) or {}

    try:
        user = auth_service.register_user(
            username=data.get("username"),
            password=data.get("password"),
            security_code=_security_code(data),
        )
    except SecurityCodeError as e:
        return jsonify({"error": str(e)}), 403
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "User registered successfully", "user": user.to_dict()}), 201


@auth_bp.post("/login")
def login_route():
    data = request.get_json(silent=True) or {}

    try:
        user = auth_service.authenticate(data.get("username"), data.get("password"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except AuthenticationError as e:
        return jsonify({"error": str(e)}), 401
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "message": "Login successful",
        "username": user.username,
        "user": user.to_dict(),
    }), 200


@auth_bp.get("/accounts")
def list_accounts_route():
    users = auth_service.list_users()
    return jsonify({"items": [u.to_dict() for u in users], "count": len(users)})


@auth_bp.get("/accounts/<int:user_id>")
def get_account_route(user_id: int):
    try:
        user = auth_service.get_user(user_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"user": user.to_dict()})


@auth_bp.put("/accounts/<int:user_id>")
@with_actor
def update_account_route(user_id: int):
    data = request.get_json(silent=True) or {}
    patch = {k: data[k] for k in ("username", "password") if k in data}

    try:
        user = auth_service.update_user(
            user_id=user_id,
            patch=patch,
            security_code=_security_code(data),
            actor=g.actor,
        )
    except SecurityCodeError as e:
        return jsonify({"error": str(e)}), 403
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({"user": user.to_dict()})


@auth_bp.delete("/accounts/<int:user_id>")
@with_actor
def delete_account_route(user_id: int):
    data = request.get_json(silent=True) or {}
    code = _security_code(data)
    if code is None:
        code = request.headers.get("X-Security-Code")

    try:
        auth_service.delete_user(user_id=user_id, security_code=code, actor=g.actor)
    except SecurityCodeError as e:
        return jsonify({"error": str(e)}), 403
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return "", 204
