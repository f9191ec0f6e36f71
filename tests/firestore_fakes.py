"""
Firestore stand-ins for unit tests, built on MagicMock.
"""

from unittest.mock import MagicMock


def build_snapshot(doc_id, data, exists=True):
    """A DocumentSnapshot look-alike."""
    snap = MagicMock()
    snap.id = doc_id
    snap.exists = exists
    snap.to_dict.return_value = data if exists else None
    snap.reference = MagicMock()
    snap.reference.id = doc_id
    return snap


class FakeDocumentStore:
    """
    Firestore client stand-in for lookups by document path.

    collection(name).document(id) returns a reference whose `path` is
    "name/id"; get_all(refs) returns snapshots for those paths, missing
    documents come back with exists=False.
    """

    def __init__(self, documents=None):
        self.documents = documents or {}
        self.get_all_calls = []

    def collection(self, name):
        collection = MagicMock()

        def _document(doc_id):
            ref = MagicMock()
            ref.id = doc_id
            ref.path = f"{name}/{doc_id}"
            return ref

        collection.document.side_effect = _document
        return collection

    def get_all(self, refs):
        refs = list(refs)
        self.get_all_calls.append([r.path for r in refs])
        for ref in refs:
            data = self.documents.get(ref.path)
            yield build_snapshot(ref.id, data, exists=data is not None)
