"""
Detail reminder dispatcher.

Sequence for one slot (morning or evening):
1. reset every assignment of the day for the slot
2. make sure the day has an assignment (clone the latest approved one if not)
3. push a reminder to each person with tasks on the day's open assignments

Reset outcomes are always returned. A failed push to one user is recorded and
does not stop the others.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from wots.errors import InvalidDocumentError
from wots.models.detail import DetailAssignment, validate_time_slot
from wots.services.detail_reset import (
    get_todays_assignments,
    reset_existing_assignments,
    resolve_todays_assignment,
)
from wots.services.messaging import (
    DEFAULT_TEMPLATE_NAME,
    build_detail_notification,
    remove_invalid_tokens,
)
from wots.services.timezone import get_current_time_in_timezone, get_today_in_timezone

logger = logging.getLogger("service.DetailReminders")

USERS = "users"
PERSONNEL = "personnel"

# Keeps each get_all round trip small
LOOKUP_CHUNK_SIZE = 30


@dataclass
class Recipient:
    """A user account to push to, and the personnel ids that led to it."""
    user_id: str
    reference: Any
    tokens: List[str]
    personnel_ids: List[str] = field(default_factory=list)


def _chunks(items: List[str], size: int = LOOKUP_CHUNK_SIZE):
    for i in range(0, len(items), size):
        yield items[i:i + size]


def _tokens_of(snapshot) -> List[str]:
    tokens = (snapshot.to_dict() or {}).get("fcmTokens")
    return [t for t in tokens if t] if isinstance(tokens, list) else []


def extract_personnel_ids(assignments: List[DetailAssignment]) -> List[str]:
    """Distinct personnel ids across assignments, in first-seen order."""
    ids = []
    for assignment in assignments:
        for pid in assignment.personnel_ids():
            if pid not in ids:
                ids.append(pid)
    return ids


def get_recipients_for_personnel(client, personnel_ids: List[str]) -> List[Recipient]:
    """
    Resolve personnel ids to user accounts holding FCM tokens.

    A personnel id may be a user uid directly, or a personnel document whose
    userId links to a user. Users are deduplicated; users without tokens are
    dropped.
    """
    recipients: Dict[str, Recipient] = {}

    def _add(user_snapshot, personnel_id):
        tokens = _tokens_of(user_snapshot)
        if not tokens:
            return
        recipient = recipients.get(user_snapshot.id)
        if recipient is None:
            recipient = Recipient(user_snapshot.id, user_snapshot.reference, tokens)
            recipients[user_snapshot.id] = recipient
        if personnel_id not in recipient.personnel_ids:
            recipient.personnel_ids.append(personnel_id)

    users = client.collection(USERS)
    personnel = client.collection(PERSONNEL)

    for chunk in _chunks(list(personnel_ids)):
        for snap in client.get_all([users.document(pid) for pid in chunk]):
            if snap.exists:
                _add(snap, snap.id)

        links = {}
        for snap in client.get_all([personnel.document(pid) for pid in chunk]):
            if not snap.exists:
                continue
            user_id = (snap.to_dict() or {}).get("userId")
            if user_id:
                links.setdefault(user_id, []).append(snap.id)

        if links:
            for user_snap in client.get_all([users.document(uid) for uid in links]):
                if not user_snap.exists:
                    continue
                for pid in links.get(user_snap.id, []):
                    _add(user_snap, pid)

    return list(recipients.values())


def _load_assignments(snapshots) -> List[DetailAssignment]:
    assignments = []
    for snap in snapshots:
        try:
            assignments.append(DetailAssignment.from_snapshot(snap.id, snap.to_dict()))
        except InvalidDocumentError as e:
            logger.warning("Skipping malformed assignment %s: %s", snap.id, e)
    return assignments


def _task_count_for(recipient: Recipient, assignments: List[DetailAssignment]) -> int:
    own = sum(a.task_count_for(recipient.personnel_ids) for a in assignments)
    if own:
        return own
    # Only on a legacy assignment-level roster: count the whole day's tasks
    return sum(len(a.tasks) for a in assignments)


def _deliver(notifier, recipient: Recipient, reminder) -> Dict[str, Any]:
    delivery = {
        "user_id": recipient.user_id,
        "token_count": len(recipient.tokens),
        "success_count": 0,
        "failure_count": 0,
        "error": None,
    }
    try:
        result = notifier.send_multicast(recipient.tokens, reminder)
    except Exception as e:
        logger.exception("Failed to send detail reminder to user %s", recipient.user_id)
        delivery["failure_count"] = len(recipient.tokens)
        delivery["error"] = str(e)
        return delivery

    delivery["success_count"] = result.success_count
    delivery["failure_count"] = result.failure_count

    if result.invalid_tokens:
        try:
            remove_invalid_tokens(recipient.reference, result.invalid_tokens)
        except Exception:
            logger.exception("Failed to prune tokens for user %s", recipient.user_id)
    return delivery


def send_detail_reminders(
    client,
    notifier,
    time_slot: str,
    timezone: str,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Reset, resolve and notify for one time slot.

    Query failures in the reset or clone lookup propagate; the scheduler
    reports the failed run. The returned dict always carries reset_results.
    """
    time_slot = validate_time_slot(time_slot)
    today = get_today_in_timezone(timezone, now)

    reset_results = reset_existing_assignments(client, today, time_slot)
    if reset_results:
        logger.info("Reset %d existing assignment(s) for %s %s", len(reset_results), today, time_slot)

    today_assignment = resolve_todays_assignment(
        client, today, time_slot, timezone, reset_results=reset_results
    )

    result: Dict[str, Any] = {
        "sent": False,
        "time_slot": time_slot,
        "date": today,
        "reset_results": [r.to_dict() for r in reset_results],
        "today_assignment": today_assignment.to_dict(),
        "cloned_assignment": None,
    }
    if today_assignment.was_cloned:
        result["cloned_assignment"] = {
            "id": today_assignment.assignment_id,
            "cloned_from": today_assignment.cloned_from,
            "template_name": today_assignment.template_name,
        }

    assignments = _load_assignments(get_todays_assignments(client, today, time_slot))
    if not assignments:
        result["reason"] = "No assignments for today's time slot (and no previous to clone)"
        return result
    result["assignment_count"] = len(assignments)

    personnel_ids = extract_personnel_ids(assignments)
    if not personnel_ids:
        result["reason"] = "No personnel assigned to tasks"
        return result
    result["personnel_count"] = len(personnel_ids)

    recipients = get_recipients_for_personnel(client, personnel_ids)
    token_count = sum(len(r.tokens) for r in recipients)
    if token_count == 0:
        result["reason"] = "No FCM tokens found for assigned personnel"
        return result

    template_name = assignments[0].template_name or DEFAULT_TEMPLATE_NAME
    time_str = get_current_time_in_timezone(timezone, now).replace(":", "")

    deliveries = []
    for recipient in recipients:
        reminder = build_detail_notification(
            time_slot, time_str, _task_count_for(recipient, assignments), template_name
        )
        deliveries.append(_deliver(notifier, recipient, reminder))

    success_count = sum(d["success_count"] for d in deliveries)
    failure_count = sum(d["failure_count"] for d in deliveries)
    logger.info("Detail reminder: sent %d/%d notifications", success_count, token_count)

    result.update({
        "sent": success_count > 0,
        "success_count": success_count,
        "failure_count": failure_count,
        "token_count": token_count,
        "deliveries": deliveries,
    })
    return result
