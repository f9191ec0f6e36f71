"""
Firestore client wrapper.

Supports multiple databases based on DATABASE_MODE:
- local: uses 'wots-dev' database
- cloud: uses '(default)' database

Includes connection testing and graceful degradation when Firestore is unavailable.
"""

import os
import logging
import threading

from wots.config import config

logger = logging.getLogger("db.firestore")

# Firestore client (initialized lazily)
_firestore_client = None
_firestore_available = None  # None = not tested, True/False = tested


def firestore_enabled() -> bool:
    """Check if Firestore is enabled in config."""
    return config.ENABLE_FIRESTORE


def firestore_available() -> bool:
    """
    Check if Firestore is both enabled AND reachable.

    Returns False if disabled or connection failed.
    """
    if not firestore_enabled():
        return False

    if _firestore_available is not None:
        return _firestore_available

    get_firestore_client()
    return _firestore_available if _firestore_available is not None else False


def check_firestore_connection(client, timeout: float = 3.0) -> bool:
    """
    Test Firestore connection with a quick read operation.

    Returns True if connection succeeds within timeout.
    """
    global _firestore_available

    result = {"success": False}

    def _test():
        try:
            list(client.collections())
            result["success"] = True
        except Exception as e:
            logger.warning("Connection test failed: %s", e)

    thread = threading.Thread(target=_test, daemon=True)
    thread.start()
    thread.join(timeout=timeout)

    if thread.is_alive():
        logger.warning("Connection test timed out (%ss)", timeout)
        _firestore_available = False
        return False

    _firestore_available = result["success"]
    if result["success"]:
        logger.info("Connection test passed")

    return result["success"]


def get_firestore_client():
    """
    Get or create Firestore client.

    Uses the database specified by DATABASE_MODE:
    - local mode → wots-dev database
    - cloud mode → (default) database

    Returns None if Firestore is disabled or unavailable.
    """
    global _firestore_client, _firestore_available

    if not firestore_enabled():
        return None

    # If we've tested and it's unavailable, don't retry
    if _firestore_available is False:
        return None

    if _firestore_client is not None:
        return _firestore_client

    creds_path = config.resolve_credentials_path()
    if not creds_path.exists():
        logger.error("Credentials not found: %s", creds_path)
        _firestore_available = False
        return None

    os.environ["GOOGLE_APPLICATION_CREDENTIALS"] = str(creds_path)

    try:
        from google.cloud import firestore

        database_id = config.get_firestore_database()
        _firestore_client = firestore.Client(
            project=config.GCP_PROJECT_ID or None,
            database=database_id,
        )
        logger.info(
            "Connected to project: %s, database: %s (%s)",
            config.GCP_PROJECT_ID, database_id, config.DATABASE_MODE.upper(),
        )
    except Exception:
        logger.exception("Connection error")
        _firestore_available = False
        return None

    check_firestore_connection(_firestore_client, timeout=3.0)
    return _firestore_client


def reset_firestore_state():
    """Reset Firestore state for testing or retry."""
    global _firestore_client, _firestore_available
    _firestore_client = None
    _firestore_available = None
