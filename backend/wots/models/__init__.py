"""
Record types for documents in Firestore.
"""

from .detail import (
    DETAIL_ASSIGNMENTS,
    TimeSlot,
    AssignmentStatus,
    PersonnelRef,
    DetailTask,
    DetailAssignment,
    ResetResult,
    TodayAssignment,
    TodayAssignmentState,
)

__all__ = [
    "DETAIL_ASSIGNMENTS",
    "TimeSlot",
    "AssignmentStatus",
    "PersonnelRef",
    "DetailTask",
    "DetailAssignment",
    "ResetResult",
    "TodayAssignment",
    "TodayAssignmentState",
]
