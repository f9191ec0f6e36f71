"""
Exception types raised by the detail services.
"""


class WotsError(Exception):
    """Base class for errors raised by this package."""


class InvalidDocumentError(WotsError):
    """A Firestore snapshot does not have the shape the services need."""

    def __init__(self, message: str, document_id: str = None):
        super().__init__(message)
        self.document_id = document_id


class InvalidTimeSlotError(WotsError, ValueError):
    """A time slot argument is not one of the accepted values."""


class FirestoreUnavailableError(WotsError):
    """Firestore is disabled or could not be reached."""
