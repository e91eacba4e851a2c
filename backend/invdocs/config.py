# backend/invdocs/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/invdocs.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///invdocs.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Uploaded files and archived reports (filesystem blob store)
    BLOB_STORAGE_DIR = os.environ.get("BLOB_STORAGE_DIR", "instance/blobs")

    # Raw uploads are accepted up to 50MB
    MAX_CONTENT_LENGTH = 50 * 1024 * 1024

    # Required for self-registration, password changes and account deletion
    REGISTRATION_SECURITY_CODE = os.environ.get("SECRET_SECURITY_CODE", "1234")

    # Create tables and the default admin when the app starts (dev convenience)
    AUTO_BOOTSTRAP = os.environ.get("AUTO_BOOTSTRAP", "1") == "1"

    # bcrypt cost factor
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    DEFAULT_ADMIN_USERNAME =os.environ.get("DEFAULT_ADMIN_USERNAME", "admin")
    DEFAULT_ADMIN_PASSWORD = os.environ.get("DEFAULT_ADMIN_PASSWORD", "password")

    # Identical consecutive activity entries inside this window are collapsed
    ACTIVITY_DEDUP_WINDOW_SECONDS = int(os.environ.get("ACTIVITY_DEDUP_WINDOW_SECONDS", "30"))
    ACTIVITY_LOG_LIMIT = 500

    # Report letterhead
    COMPANY_NAME = os.environ.get("COMPANY_NAME", "L&B Company")
    COMPANY_ADDRESS = os.environ.get(
        "COMPANY_ADDRESS", "Jalan Mawar 8, Taman Bukit Beruang Permai, Melaka"
    )
    COMPANY_PHONE = os.environ.get("COMPANY_PHONE", "01133127622")
    COMPANY_EMAIL = os.environ.get("COMPANY_EMAIL", "lbcompany@gmail.com")
    CURRENCY_LABEL = os.environ.get("CURRENCY_LABEL", "RM")
    REPORT_TIMEZONE = os.environ.get("REPORT_TIMEZONE", "Asia/Kuala_Lumpur")
    # Deflate PDF page streams; set to 0 to emit plain-text content streams
    REPORT_PDF_COMPRESSION = os.environ.get("REPORT_PDF_COMPRESSION", "1") == "1"

    CORS_ALLOWED_ORIGINS = {
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    }
