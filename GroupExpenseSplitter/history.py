"""
History Module

Audit trail of changes made to a group (expenses, settlements, members,
group settings).

Data Model:
    Event stored at: groups/{group_id}/history/{event_id}
    Fields:
        - event_id: string (Firestore auto ID)
        - event_type: string (expense_created, settlement_created, ...)
        - actor_id: string or None
        - description: string
        - data: dict or None
        - timestamp: string (ISO, UTC)
        - restored: bool (expense_deleted events only, once restored)

Functions:
    log_event: Record an event (never raises on storage failure).
    get_history: Get all events for a group, newest first.
    get_event: Get a single event.
    mark_event_restored: Flag a deleted-expense event as restored.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from config.firebase_config import get_db

logger = logging.getLogger("groupsplit.history")

EVENT_TYPES = {
    "group_created",
    "group_updated",
    "group_archived",
    "member_added",
    "expense_created",
    "expense_updated",
    "expense_deleted",
    "expense_restored",
    "settlement_created",
    "settlement_deleted",
}


def log_event(
    group_id: str,
    event_type: str,
    actor_id: Optional[str],
    description: str,
    data: Optional[dict] = None
) -> Optional[str]:
    """
    Record a history event for a group.

    The primary write that triggered the event has already happened, so a
    failure here is logged and swallowed.

    Returns:
        str | None: The new event ID, or None if it could not be stored.
    """
    if event_type not in EVENT_TYPES:
        raise ValueError(f"event_type must be one of {sorted(EVENT_TYPES)}, got: {event_type}")

    try:
        db = get_db()
        if db is None:
            raise RuntimeError("Firestore is not available")

        doc_ref = db.collection("groups").document(group_id) \
                    .collection("history").document()
        doc_ref.set({
            "event_id": doc_ref.id,
            "event_type": event_type,
            "actor_id": actor_id,
            "description": description,
            "data": data,
            "timestamp": datetime.now(timezone.utc).isoformat()
        })
        return doc_ref.id
    except Exception:
        logger.exception("Failed to log history event %s for group %s", event_type, group_id)
        return None


def get_history(group_id: str) -> list[dict]:
    """
    Get all history events for a group, newest first.

    Raises:
        RuntimeError: If Firestore is not available.
    """
    db = get_db()
    if db is None:
        raise RuntimeError("Firestore is not available")

    docs = db.collection("groups").document(group_id) \
             .collection("history").stream()
    events = [doc.to_dict() for doc in docs]
    events.sort(key=lambda e: e.get("timestamp") or "", reverse=True)
    return events


def get_event(group_id: str, event_id: str) -> Optional[dict]:
    """Get a single history event, or None if it does not exist."""
    db = get_db()
    if db is None:
        raise RuntimeError("Firestore is not available")

    doc = db.collection("groups").document(group_id) \
            .collection("history").document(event_id).get()
    return doc.to_dict() if doc.exists else None


def mark_event_restored(group_id: str, event_id: str) -> None:
    """Flag an expense_deleted event so it cannot be restored twice."""
    db = get_db()
    if db is None:
        raise RuntimeError("Firestore is not available")

    db.collection("groups").document(group_id) \
      .collection("history").document(event_id).update({"restored": True})
