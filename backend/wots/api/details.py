"""
Detail admin API endpoints.

Provides endpoints for:
- Triggering the reminder run for a slot by hand
- The bulk reset tool (status only, or status and task assignees)
- Reading the reminder config
"""

import logging
from functools import wraps

import pytz
from flask import Blueprint, request, jsonify

from wots.config import config
from wots.db.firestore import get_firestore_client
from wots.errors import FirestoreUnavailableError, InvalidTimeSlotError
from wots.services.detail_config import get_detail_notification_config
from wots.services.detail_reminders import send_detail_reminders
from wots.services.detail_reset import bulk_reset_assignments
from wots.services.messaging import get_notifier
from wots.services.timezone import get_configured_timezone

logger = logging.getLogger("api.details")

bp = Blueprint("details", __name__, url_prefix="/api/v1/details")


def require_admin_token(view):
    """Check X-Admin-Token when ADMIN_API_TOKEN is configured."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        expected = config.ADMIN_API_TOKEN
        if expected and request.headers.get("X-Admin-Token") != expected:
            return jsonify({"error": "unauthorized"}), 401
        return view(*args, **kwargs)
    return wrapper


def _client():
    client = get_firestore_client()
    if client is None:
        raise FirestoreUnavailableError("Firestore is not available")
    return client


@bp.errorhandler(FirestoreUnavailableError)
def handle_unavailable(e):
    return jsonify({"error": str(e)}), 503


@bp.route("/reminders", methods=["POST"])
@require_admin_token
def trigger_reminders():
    """Run reset + reminders for a slot now. Bypasses the scheduled run lock."""
    data = request.get_json(silent=True) or {}
    time_slot = data.get("time_slot")
    if not time_slot:
        return jsonify({"error": "time_slot is required"}), 400

    timezone = data.get("timezone")
    if timezone and timezone not in pytz.all_timezones_set:
        return jsonify({"error": f"Unknown timezone: {timezone}"}), 400

    client = _client()
    timezone = timezone or get_configured_timezone(client)

    try:
        result = send_detail_reminders(client, get_notifier(), time_slot, timezone)
    except InvalidTimeSlotError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.exception("Manual detail reminder failed")
        return jsonify({"error": f"Failed to send detail reminders: {str(e)}"}), 500

    return jsonify({"ok": True, "result": result})


@bp.route("/reset", methods=["POST"])
@require_admin_token
def bulk_reset():
    data = request.get_json(silent=True) or {}
    mode = data.get("mode", "status")
    status_filter = data.get("status", "all")

    client = _client()
    try:
        updated = bulk_reset_assignments(client, mode=mode, status_filter=status_filter)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.exception("Bulk reset failed")
        return jsonify({"error": f"Failed to reset assignments: {str(e)}"}), 500

    return jsonify({"ok": True, "updated": updated, "mode": mode, "status": status_filter})


@bp.route("/config", methods=["GET"])
@require_admin_token
def get_config():
    client = _client()
    return jsonify({
        "timezone": get_configured_timezone(client),
        "notifications": get_detail_notification_config(client).to_dict(),
    })
