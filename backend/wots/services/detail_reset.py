"""
Detail reset engine.

Resets the day's cleaning-detail assignments and rolls the latest approved
assignment forward when a day has none. Every function takes the Firestore
client as its first argument so the scheduled job, the admin endpoints and
the tests can hand in whatever client they hold.

The daily reset is status-blind: approved and completed assignments are
reset like any other, so a previous day's approval never carries forward.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytz
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from wots.config import config
from wots.errors import InvalidDocumentError, WotsError
from wots.models.detail import (
    DETAIL_ASSIGNMENTS,
    OPEN_STATUSES,
    WORKFLOW_FIELDS,
    AssignmentStatus,
    DetailAssignment,
    ResetResult,
    TodayAssignment,
    TodayAssignmentState,
    slot_matches,
    validate_time_slot,
)
from wots.services.timezone import localize_date_time

logger = logging.getLogger("service.DetailReset")

# Approved assignments scanned when looking for one to clone
RECENT_APPROVED_SCAN_LIMIT = 20

DEFAULT_MORNING_TIME = "08:00"
DEFAULT_EVENING_TIME = "18:00"

# Firestore caps a WriteBatch at 500 operations
BATCH_LIMIT = 500


def _utcnow() -> datetime:
    return datetime.now(pytz.utc)


def _assignments(client):
    return client.collection(DETAIL_ASSIGNMENTS)


def _cleared_workflow_fields() -> Dict[str, Any]:
    return {name: None for name in WORKFLOW_FIELDS}


# -----------------------------------------------------------------------------
# Reset
# -----------------------------------------------------------------------------

def reset_assignment_for_new_day(client, assignment_id: str, assignment_data: Dict[str, Any]) -> ResetResult:
    """
    Return one assignment to the start of its day with a single update.

    Tasks keep their identity, text, area, location, critical flag and
    assignee; completion and notes are cleared. Errors from validation or
    from the update propagate to the caller.
    """
    assignment = DetailAssignment.from_snapshot(assignment_id, assignment_data)
    now = _utcnow()

    updates = {
        "status": AssignmentStatus.ASSIGNED.value,
        "tasks": [task.reset().to_dict() for task in assignment.tasks],
        **_cleared_workflow_fields(),
        "updatedAt": now,
        "lastResetAt": now,
    }

    _assignments(client).document(assignment_id).update(updates)

    return ResetResult(
        id=assignment_id,
        was_reset=True,
        previous_status=assignment_data.get("status"),
    )


def get_assignments_to_reset(client, today: str, time_slot: str) -> list:
    """
    All of today's assignment snapshots for the slot, whatever their status.

    Only assignmentDate is filtered in the query; the slot filter (exact
    slot or "both") is applied in memory.
    """
    time_slot = validate_time_slot(time_slot)
    snapshots = (
        _assignments(client)
        .where(filter=FieldFilter("assignmentDate", "==", today))
        .get()
    )
    return [
        snap for snap in snapshots
        if slot_matches((snap.to_dict() or {}).get("timeSlot"), time_slot)
    ]


def reset_existing_assignments(client, today: str, time_slot: str) -> List[ResetResult]:
    """
    Reset every assignment of the day/slot, one at a time.

    A failure on one assignment is recorded and the loop moves on. Query
    failures propagate.
    """
    results = []
    for snap in get_assignments_to_reset(client, today, time_slot):
        try:
            result = reset_assignment_for_new_day(client, snap.id, snap.to_dict() or {})
        except Exception as e:
            logger.exception("Error resetting assignment %s", snap.id)
            results.append(ResetResult(id=snap.id, was_reset=False, error=str(e)))
            continue

        logger.info("Reset assignment %s from %s to assigned", snap.id, result.previous_status)
        results.append(result)

    return results


# -----------------------------------------------------------------------------
# Lookup
# -----------------------------------------------------------------------------

def has_assignment_for_today(client, today: str, time_slot: str) -> bool:
    """True if any assignment of the day applies to the slot."""
    return len(get_assignments_to_reset(client, today, time_slot)) > 0


def get_todays_assignments(client, today: str, time_slot: str) -> list:
    """Today's snapshots for the slot that still need work."""
    time_slot = validate_time_slot(time_slot)
    snapshots = (
        _assignments(client)
        .where(filter=FieldFilter("assignmentDate", "==", today))
        .where(filter=FieldFilter("status", "in", OPEN_STATUSES))
        .get()
    )
    return [
        snap for snap in snapshots
        if slot_matches((snap.to_dict() or {}).get("timeSlot"), time_slot)
    ]


def get_most_recent_completed_assignment(client, time_slot: str) -> Optional[Dict[str, Any]]:
    """
    Latest approved assignment for the slot, with its id merged in.

    Returns None when no approved assignment applies to the slot.
    """
    time_slot = validate_time_slot(time_slot)
    snapshots = (
        _assignments(client)
        .where(filter=FieldFilter("status", "==", AssignmentStatus.APPROVED.value))
        .order_by("assignmentDate", direction=firestore.Query.DESCENDING)
        .limit(RECENT_APPROVED_SCAN_LIMIT)
        .get()
    )
    for snap in snapshots:
        data = snap.to_dict() or {}
        if slot_matches(data.get("timeSlot"), time_slot):
            return {"id": snap.id, **data}
    return None


# -----------------------------------------------------------------------------
# Clone
# -----------------------------------------------------------------------------

def _due_date_time(source: DetailAssignment, new_date: str, time_slot: str, timezone: str) -> datetime:
    if time_slot == "evening":
        target_time = source.evening_time or DEFAULT_EVENING_TIME
    else:
        target_time = source.morning_time or DEFAULT_MORNING_TIME
    return localize_date_time(new_date, target_time, timezone)


def clone_assignment_for_date(
    client,
    source_assignment: Dict[str, Any],
    new_date: str,
    time_slot: str,
    timezone: Optional[str] = None,
) -> str:
    """
    Create a fresh assignment for `new_date` from `source_assignment`.

    The source document is only read. The new document points back at it via
    clonedFrom and starts in "assigned" with every task incomplete. Returns
    the id Firestore generated for the new document.
    """
    time_slot = validate_time_slot(time_slot, allow_both=True)
    source = DetailAssignment.from_snapshot(source_assignment.get("id"), source_assignment)
    if not source.id:
        raise WotsError("Cannot clone an assignment without an id")

    now = _utcnow()
    tasks = []
    for task in source.tasks:
        data = task.to_dict()
        data["completed"] = False
        data["completedAt"] = None
        tasks.append(data)

    new_assignment = {
        "templateId": source_assignment.get("templateId"),
        "templateName": source_assignment.get("templateName"),
        "timeSlot": source_assignment.get("timeSlot"),
        "morningTime": source_assignment.get("morningTime"),
        "eveningTime": source_assignment.get("eveningTime"),
        "assignmentDate": new_date,
        "dueDateTime": _due_date_time(source, new_date, time_slot, timezone or config.DEFAULT_TIMEZONE),
        "status": AssignmentStatus.ASSIGNED.value,
        "tasks": tasks,
        **_cleared_workflow_fields(),
        "assignedTo": source_assignment.get("assignedTo") or [],
        "createdBy": "system",
        "createdByName": "Auto-generated",
        "createdAt": now,
        "updatedAt": now,
        "clonedFrom": source.id,
    }

    _, doc_ref = _assignments(client).add(new_assignment)
    return doc_ref.id


def resolve_todays_assignment(
    client,
    today: str,
    time_slot: str,
    timezone: Optional[str] = None,
    reset_results: Optional[List[ResetResult]] = None,
) -> TodayAssignment:
    """
    Work out the day's assignment for the slot, cloning one if needed.

    NO assignment today -> latest approved found? -> clone -> CLONED
                                              \\-> not found -> NO_SOURCE
    An assignment already reset this run (or found by query) is EXISTING.
    """
    for result in reset_results or []:
        if result.was_reset:
            return TodayAssignment(TodayAssignmentState.EXISTING, assignment_id=result.id)

    existing = get_assignments_to_reset(client, today, time_slot)
    if existing:
        return TodayAssignment(TodayAssignmentState.EXISTING, assignment_id=existing[0].id)

    source = get_most_recent_completed_assignment(client, time_slot)
    if source is None:
        return TodayAssignment(TodayAssignmentState.NO_SOURCE)

    try:
        new_id = clone_assignment_for_date(client, source, today, time_slot, timezone)
    except Exception as e:
        logger.exception("Error cloning assignment %s", source["id"])
        return TodayAssignment(
            TodayAssignmentState.CLONE_FAILED,
            cloned_from=source["id"],
            template_name=source.get("templateName"),
            error=str(e),
        )

    logger.info("Auto-cloned assignment %s to %s for %s %s", source["id"], new_id, today, time_slot)
    return TodayAssignment(
        TodayAssignmentState.CLONED,
        assignment_id=new_id,
        cloned_from=source["id"],
        template_name=source.get("templateName"),
    )


# -----------------------------------------------------------------------------
# Admin bulk reset
# -----------------------------------------------------------------------------

RESET_MODE_STATUS = "status"
RESET_MODE_ASSIGNMENTS = "assignments"


def bulk_reset_assignments(client, mode: str = RESET_MODE_STATUS, status_filter: str = "all") -> int:
    """
    Reset many assignments at once with batched writes.

    mode "status" clears completion but keeps each task's assignee; with
    status_filter "all" it skips assignments already "assigned".
    mode "assignments" also clears every task's assignedTo.
    Malformed documents are logged and skipped. Returns the number of
    assignments updated.
    """
    if mode not in (RESET_MODE_STATUS, RESET_MODE_ASSIGNMENTS):
        raise ValueError(f"Unknown reset mode {mode!r}")
    if status_filter != "all" and status_filter not in {s.value for s in AssignmentStatus}:
        raise ValueError(f"Unknown status filter {status_filter!r}")

    query = _assignments(client)
    if status_filter != "all":
        query = query.where(filter=FieldFilter("status", "==", status_filter))

    batch = client.batch()
    pending = 0
    updated = 0
    now = _utcnow()

    for snap in query.stream():
        data = snap.to_dict() or {}
        if (
            mode == RESET_MODE_STATUS
            and status_filter == "all"
            and data.get("status") == AssignmentStatus.ASSIGNED.value
        ):
            continue

        try:
            assignment = DetailAssignment.from_snapshot(snap.id, data)
        except InvalidDocumentError as e:
            logger.warning("Skipping malformed assignment %s in bulk reset: %s", snap.id, e)
            continue

        tasks = []
        for task in assignment.tasks:
            task_data = task.reset().to_dict()
            if mode == RESET_MODE_ASSIGNMENTS:
                task_data["assignedTo"] = None
            tasks.append(task_data)

        batch.update(snap.reference, {
            "tasks": tasks,
            "status": AssignmentStatus.ASSIGNED.value,
            **_cleared_workflow_fields(),
            "updatedAt": now,
        })
        pending += 1
        updated += 1

        if pending >= BATCH_LIMIT:
            batch.commit()
            batch = client.batch()
            pending = 0

    if pending:
        batch.commit()

    logger.info("Bulk reset (%s, %s) updated %d assignment(s)", mode, status_filter, updated)
    return updated
