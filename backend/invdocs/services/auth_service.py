# Overview: Service-layer operations for accounts; registration, login and account maintenance.

"""
Account Service

WHY: Every action must be attributable to a named account. Uses bcrypt for
password hashing; plaintext passwords are never stored or compared.

Self-registration, password changes and account deletion all require the
shared security code (REGISTRATION_SECURITY_CODE).
"""

import bcrypt
import hmac
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User
from ..validation import ConflictError, NotFoundError, ValidationError
from .activity_service import log_activity, normalize_actor

MIN_PASSWORD_LENGTH = 8


class AuthenticationError(Exception):
    """Raised when credentials do not match an account."""
    pass


class SecurityCodeError(Exception):
    """Raised when the shared security code is missing or wrong."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets minimum requirements.

    Raises ValidationError if requirements not met.
    """
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def check_security_code(code) -> None:
    expected = str(current_app.config.get("REGISTRATION_SECURITY_CODE", ""))
    if not hmac.compare_digest(str(code or ""), expected):
        raise SecurityCodeError("Invalid security code")


def _require_unique_username(username: str) -> None:
    if db.session.query(User).filter_by(username=username).first() is not None:
        raise ConflictError("Username already exists")


def create_user(username: str, password: str) -> User:
    """Create an account without a security code check (CLI / bootstrap)."""
    username = (username or "").strip()
    if not username:
        raise ValidationError("Missing username or password")
    if len(username) > 64:
        raise ValidationError("username exceeds max length 64")
    _require_unique_username(username)

    user = User(username=username, password_hash=hash_password(password))
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError("Username already exists") from exc
    return user


def register_user(*, username: str, password: str, security_code) -> User:
    """
    Self-registration guarded by the shared security code.

    Raises:
        SecurityCodeError: wrong code (403)
        ValidationError: missing username/password or weak password (400)
        ConflictError: username taken (409)
    """
    check_security_code(security_code)
    if not username or not password:
        raise ValidationError("Missing username or password")

    user = create_user(username, password)
    log_activity("System", f"Registered user: {user.username}")
    return user


def authenticate(username: str, password: str) -> User:
    if not username or not password:
        raise ValidationError("Missing credentials")

    user = db.session.query(User).filter_by(username=username.strip()).first()
    if user is None or not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid credentials")

    log_activity(user.username, "Logged in")
    return user


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.username.asc()).all()


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("Account not found")
    return user


def update_user(*, user_id: int, patch: dict, security_code, actor=None) -> User:
    """
    Rename an account and/or change its password.

    Requires the security code, like the original change-password flow.
    """
    check_security_code(security_code)
    user = get_user(user_id)

    new_username = patch.get("username")
    if new_username is not None:
        new_username = str(new_username).strip()
        if not new_username:
            raise ValidationError("username cannot be blank")
        if new_username != user.username:
            _require_unique_username(new_username)
            user.username = new_username

    if patch.get("password") is not None:
        user.password_hash = hash_password(patch["password"])

    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError("Username already exists") from exc

    log_activity(normalize_actor(actor), f"Updated account: {user.username}")
    return user


def delete_user(*, user_id: int, security_code, actor=None) -> None:
    check_security_code(security_code)
    user = get_user(user_id)
    username = user.username

    db.session.delete(user)
    db.session.commit()

    log_activity(normalize_actor(actor), f"Deleted account: {username}")


def ensure_default_admin() -> User | None:
    """
    Create the default admin account when no accounts exist.

    Safe to call repeatedly (idempotent). Returns the created user or None.
    """
    if db.session.query(User).count() > 0:
        return None

    user = create_user(
        current_app.config.get("DEFAULT_ADMIN_USERNAME", "admin"),
        current_app.config.get("DEFAULT_ADMIN_PASSWORD", "password"),
    )
    log_activity("System", "Default admin user created")
    return user
