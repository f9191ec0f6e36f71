"""
Application configuration loaded from environment variables.

Supports switching between local and cloud Firestore databases via
DATABASE_MODE.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file from backend directory
backend_dir = Path(__file__).parent.parent
load_dotenv(backend_dir / ".env")


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class Config:
    """Application configuration."""

    # Flask settings
    DEBUG = os.getenv("FLASK_DEBUG", "0") == "1"
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    FLASK_ENV = os.getenv("FLASK_ENV", "development")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    # Environment mode: "local" or "cloud"
    DATABASE_MODE = os.getenv("DATABASE_MODE", "local")

    # Firestore / GCP
    GCP_CREDENTIALS_PATH = os.getenv("GCP_CREDENTIALS_PATH", "./gcp-credentials.json")
    GCP_PROJECT_ID = os.getenv("GCP_PROJECT_ID", "")
    FIRESTORE_DATABASE_LOCAL = os.getenv("FIRESTORE_DATABASE_LOCAL", "wots-dev")
    FIRESTORE_DATABASE_CLOUD = os.getenv("FIRESTORE_DATABASE_CLOUD", "(default)")
    ENABLE_FIRESTORE = _flag("ENABLE_FIRESTORE", "false")

    # Push notifications (FCM via firebase-admin)
    ENABLE_PUSH = _flag("ENABLE_PUSH", "false")

    # Detail reminder job
    ENABLE_SCHEDULER = _flag("ENABLE_SCHEDULER", "false")
    DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "America/New_York")

    # Shared secret for the admin endpoints; empty disables the check
    ADMIN_API_TOKEN = os.getenv("ADMIN_API_TOKEN", "")

    @classmethod
    def get_firestore_database(cls) -> str:
        """Get Firestore database ID based on DATABASE_MODE."""
        if cls.DATABASE_MODE == "cloud":
            return cls.FIRESTORE_DATABASE_CLOUD
        return cls.FIRESTORE_DATABASE_LOCAL

    @classmethod
    def resolve_credentials_path(cls) -> Path:
        """Credentials path, relative paths resolved against backend/."""
        creds_path = Path(cls.GCP_CREDENTIALS_PATH)
        if not creds_path.is_absolute():
            creds_path = backend_dir / creds_path
        return creds_path


# Singleton instance
config = Config()
