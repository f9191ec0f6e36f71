"""
Cleaning-detail records stored in the `detailAssignments` collection.

Firestore documents are loosely shaped dicts with camelCase keys. These
dataclasses validate a snapshot at the store boundary and convert it back to
the stored shape. Keys the models do not know about are carried through
untouched.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional

from wots.errors import InvalidDocumentError, InvalidTimeSlotError


DETAIL_ASSIGNMENTS = "detailAssignments"


class TimeSlot(str, Enum):
    """Coarse scheduling tag of an assignment. BOTH matches either query."""
    MORNING = "morning"
    EVENING = "evening"
    BOTH = "both"


class AssignmentStatus(str, Enum):
    """Assignment lifecycle.

    assigned -> in_progress -> completed -> approved, with rejection sending
    the assignment back to assigned. The daily reset returns every status to
    ASSIGNED.
    """
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    APPROVED = "approved"
    REJECTED = "rejected"


# Statuses that still need work from the assignees
OPEN_STATUSES = [
    AssignmentStatus.ASSIGNED.value,
    AssignmentStatus.IN_PROGRESS.value,
    AssignmentStatus.REJECTED.value,
]

# Assignment-level workflow fields cleared by a reset or a clone
WORKFLOW_FIELDS = (
    "startedAt",
    "startedBy",
    "completedAt",
    "completedBy",
    "completionNotes",
    "approvedAt",
    "approvedBy",
    "approvedByName",
    "approverNotes",
    "rejectedAt",
    "rejectedBy",
    "rejectionReason",
)

_TIME_SLOTS = {slot.value for slot in TimeSlot}
_STATUSES = {status.value for status in AssignmentStatus}


def validate_time_slot(time_slot: str, allow_both: bool = False) -> str:
    """Return the slot value, raising InvalidTimeSlotError for anything else."""
    if isinstance(time_slot, TimeSlot):
        time_slot = time_slot.value
    allowed = _TIME_SLOTS if allow_both else _TIME_SLOTS - {TimeSlot.BOTH.value}
    if time_slot not in allowed:
        raise InvalidTimeSlotError(
            f"Invalid time slot {time_slot!r}; expected one of {sorted(allowed)}"
        )
    return time_slot


def slot_matches(document_slot: Optional[str], time_slot: str) -> bool:
    """True if a document tagged `document_slot` applies to `time_slot`."""
    return document_slot == time_slot or document_slot == TimeSlot.BOTH.value


@dataclass(frozen=True)
class PersonnelRef:
    """Summary of a person a task or assignment points at."""
    personnel_id: str
    name: Optional[str] = None
    rank: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> Optional["PersonnelRef"]:
        """None for empty refs (missing dict or missing personnelId)."""
        if not isinstance(data, dict) or not data.get("personnelId"):
            return None
        return cls(
            personnel_id=data["personnelId"],
            name=data.get("name"),
            rank=data.get("rank"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"personnelId": self.personnel_id, "name": self.name, "rank": self.rank}


@dataclass
class DetailTask:
    """One checklist item embedded in an assignment's `tasks` array."""

    task_id: str
    task_text: Optional[str] = None
    area_name: Optional[str] = None
    location: Optional[str] = None
    critical_failure: Optional[bool] = None
    assigned_to: Optional[Dict[str, Any]] = None
    completed: bool = False
    completed_at: Any = None
    notes: Optional[str] = ""

    # The stored map; every key except the completion fields and notes is
    # written back from here unchanged, explicit nulls included
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: Any, document_id: str = None) -> "DetailTask":
        if not isinstance(data, dict):
            raise InvalidDocumentError(
                f"Task entry must be a map, got {type(data).__name__}", document_id
            )
        if not data.get("taskId"):
            raise InvalidDocumentError("Task entry is missing taskId", document_id)

        return cls(
            task_id=data["taskId"],
            task_text=data.get("taskText"),
            area_name=data.get("areaName"),
            location=data.get("location"),
            critical_failure=data.get("criticalFailure"),
            assigned_to=data.get("assignedTo"),
            completed=bool(data.get("completed", False)),
            completed_at=data.get("completedAt"),
            notes=data.get("notes", ""),
            raw=dict(data),
        )

    @property
    def assignee(self) -> Optional[PersonnelRef]:
        return PersonnelRef.from_dict(self.assigned_to)

    def reset(self) -> "DetailTask":
        """Copy with completion cleared and notes set to ""."""
        return replace(self, completed=False, completed_at=None, notes="")

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.raw)
        data["taskId"] = self.task_id
        # Only filled in for tasks built without a stored map
        for key, value in (
            ("taskText", self.task_text),
            ("areaName", self.area_name),
            ("location", self.location),
            ("criticalFailure", self.critical_failure),
            ("assignedTo", self.assigned_to),
        ):
            if key not in data and value is not None:
                data[key] = value
        data["completed"] = self.completed
        data["completedAt"] = self.completed_at
        data["notes"] = self.notes
        return data


@dataclass
class DetailAssignment:
    """One day / time-slot instance of a cleaning-detail checklist."""

    id: Optional[str]
    assignment_date: Optional[str] = None
    time_slot: Optional[str] = None
    status: Optional[str] = None
    template_id: Optional[str] = None
    template_name: Optional[str] = None
    morning_time: Optional[str] = None
    evening_time: Optional[str] = None
    tasks: List[DetailTask] = field(default_factory=list)
    assigned_to: List[Dict[str, Any]] = field(default_factory=list)
    cloned_from: Optional[str] = None

    @classmethod
    def from_snapshot(cls, document_id: Optional[str], data: Any) -> "DetailAssignment":
        """
        Build from a raw document dict.

        Raises InvalidDocumentError when `tasks` is not a list, a task has no
        taskId, or `timeSlot`/`status` hold unknown values.
        """
        if not isinstance(data, dict):
            raise InvalidDocumentError("Assignment document has no data", document_id)

        raw_tasks = data.get("tasks") or []
        if not isinstance(raw_tasks, list):
            raise InvalidDocumentError("Assignment tasks must be a list", document_id)

        time_slot = data.get("timeSlot")
        if time_slot is not None and time_slot not in _TIME_SLOTS:
            raise InvalidDocumentError(f"Unknown timeSlot {time_slot!r}", document_id)

        status = data.get("status")
        if status is not None and status not in _STATUSES:
            raise InvalidDocumentError(f"Unknown status {status!r}", document_id)

        assigned_to = data.get("assignedTo") or []
        if not isinstance(assigned_to, list):
            assigned_to = []

        return cls(
            id=document_id,
            assignment_date=data.get("assignmentDate"),
            time_slot=time_slot,
            status=status,
            template_id=data.get("templateId"),
            template_name=data.get("templateName"),
            morning_time=data.get("morningTime"),
            evening_time=data.get("eveningTime"),
            tasks=[DetailTask.from_dict(t, document_id) for t in raw_tasks],
            assigned_to=assigned_to,
            cloned_from=data.get("clonedFrom"),
        )

    def matches_slot(self, time_slot: str) -> bool:
        return slot_matches(self.time_slot, time_slot)

    def personnel_ids(self) -> List[str]:
        """Distinct personnel ids from task assignees and the legacy roster."""
        seen = []
        for task in self.tasks:
            ref = task.assignee
            if ref and ref.personnel_id not in seen:
                seen.append(ref.personnel_id)
        for person in self.assigned_to:
            ref = PersonnelRef.from_dict(person)
            if ref and ref.personnel_id not in seen:
                seen.append(ref.personnel_id)
        return seen

    def task_count_for(self, personnel_ids) -> int:
        return sum(
            1 for task in self.tasks
            if task.assignee and task.assignee.personnel_id in personnel_ids
        )


@dataclass
class ResetResult:
    """Outcome of resetting one assignment."""
    id: str
    was_reset: bool
    previous_status: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.was_reset:
            return {
                "id": self.id,
                "was_reset": True,
                "previous_status": self.previous_status,
            }
        return {"id": self.id, "was_reset": False, "error": self.error}


class TodayAssignmentState(str, Enum):
    """How the day's assignment for a slot was obtained."""
    EXISTING = "existing"          # at least one assignment already exists
    CLONED = "cloned"              # cloned from the latest approved assignment
    NO_SOURCE = "no_source"        # nothing today and nothing to clone
    CLONE_FAILED = "clone_failed"  # a source was found but the clone write failed


@dataclass
class TodayAssignment:
    """Resolution of "what is today's assignment for this slot"."""
    state: TodayAssignmentState
    assignment_id: Optional[str] = None
    cloned_from: Optional[str] = None
    template_name: Optional[str] = None
    error: Optional[str] = None

    @property
    def was_cloned(self) -> bool:
        return self.state == TodayAssignmentState.CLONED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "assignment_id": self.assignment_id,
            "cloned_from": self.cloned_from,
            "template_name": self.template_name,
            "error": self.error,
        }
