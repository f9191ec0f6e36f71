"""
Database connections for WOTS.

- Firestore: document store holding detail assignments, users and personnel
  (via google-cloud-firestore)
"""

from .firestore import (
    get_firestore_client,
    firestore_enabled,
    firestore_available,
    reset_firestore_state,
)

__all__ = [
    "get_firestore_client",
    "firestore_enabled",
    "firestore_available",
    "reset_firestore_state",
]
