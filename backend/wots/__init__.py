"""
WOTS detail service.

Daily reset and rollover of cleaning-detail assignments, plus reminder pushes
to the assigned personnel.
"""

__version__ = "0.1.0"
