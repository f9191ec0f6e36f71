"""
API routes for WOTS.

- details.py: detail admin endpoints
"""

from .details import bp as details_bp

__all__ = ["details_bp"]
