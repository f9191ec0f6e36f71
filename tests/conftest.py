"""
Pytest configuration for all tests.
Sets up Python path to find the backend wots package.
"""

import sys
import os
from unittest.mock import MagicMock

import pytest

# Add backend directory to Python path
backend_path = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'backend'))
if backend_path not in sys.path:
    sys.path.insert(0, backend_path)

tests_path = os.path.abspath(os.path.dirname(__file__))
if tests_path not in sys.path:
    sys.path.insert(0, tests_path)

from firestore_fakes import build_snapshot  # noqa: E402


@pytest.fixture
def make_snapshot():
    return build_snapshot


@pytest.fixture
def mock_client():
    """MagicMock Firestore client; tests wire the query chains they need."""
    return MagicMock()
