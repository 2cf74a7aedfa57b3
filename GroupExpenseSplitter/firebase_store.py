"""
Firebase Store Module

This module saves computed results to Firebase Firestore so clients can
read the latest balances and settlement plan without recomputing.

Features:
    - Save balances per member
    - Save the simplified transfer plan
    - Save analytics summary
    - All saves are idempotent (safe to overwrite)

Firestore Structure:
    groups/{group_id}/results/balances/balances/{member_id}
        - member_id: string
        - net_balance: float
        - updated_at: timestamp

    groups/{group_id}/results/transfers/transfers/{transfer_id}
        - transfer_id: string (T001, T002, ...)
        - from_member: string
        - to_member: string
        - amount: float
        - updated_at: timestamp

    groups/{group_id}/results/analytics/analytics/summary
        - total_spent: float
        - category_breakdown: list
        - monthly_spending: list
        - payer_totals: list
        - updated_at: timestamp

Functions:
    save_balances: Save member balances to Firestore.
    save_transfers: Save the transfer plan to Firestore.
    save_analytics: Save analytics summary to Firestore.
"""

import logging
from datetime import datetime, timezone

from config.firebase_config import get_db
from utils import generate_id

logger = logging.getLogger("groupsplit.store")


def _get_timestamp() -> str:
    """
    Get current UTC timestamp in ISO format.

    Returns:
        str: ISO formatted timestamp.
    """
    return datetime.now(timezone.utc).isoformat()


def _validate_group_id(group_id: str) -> None:
    """
    Validate that group_id is a non-empty string.

    Raises:
        ValueError: If group_id is invalid.
    """
    if not isinstance(group_id, str) or not group_id.strip():
        raise ValueError("group_id must be a non-empty string")


def _results_collection(db, group_id: str, name: str):
    return db.collection("groups").document(group_id) \
             .collection("results").document(name) \
             .collection(name)


def save_balances(group_id: str, balances: list[dict]) -> dict:
    """
    Save member balances to Firestore.

    Stores each member's balance as a separate document at:
        groups/{group_id}/results/balances/balances/{member_id}

    Args:
        group_id: The ID of the group.
        balances: Output of compute_balances().

    Returns:
        dict: Summary of saved documents with count and member IDs.

    Raises:
        ValueError: If group_id is invalid.
        RuntimeError: If Firestore is not available.
    """
    _validate_group_id(group_id)

    db = get_db()
    if db is None:
        raise RuntimeError("Firestore is not available")

    timestamp = _get_timestamp()
    collection = _results_collection(db, group_id, "balances")
    saved_ids = []

    for balance in balances:
        member_id = balance["member_id"]
        collection.document(member_id).set({
            "member_id": member_id,
            "net_balance": balance.get("net_balance", 0.0),
            "updated_at": timestamp
        })
        saved_ids.append(member_id)

    return {
        "saved_count": len(saved_ids),
        "member_ids": saved_ids,
        "updated_at": timestamp
    }


def save_transfers(group_id: str, transfers: list[dict]) -> dict:
    """
    Save the simplified transfer plan to Firestore.

    Generates sequential transfer IDs (T001, T002, ...) and stores at:
        groups/{group_id}/results/transfers/transfers/{transfer_id}

    Transfers left over from a previous, longer plan are deleted so the
    stored plan always matches the latest computation.

    Args:
        group_id: The ID of the group.
        transfers: Output of simplify_debts().

    Returns:
        dict: Summary of saved documents with count and transfer IDs.

    Raises:
        ValueError: If group_id is invalid.
        RuntimeError: If Firestore is not available.
    """
    _validate_group_id(group_id)

    db = get_db()
    if db is None:
        raise RuntimeError("Firestore is not available")

    timestamp = _get_timestamp()
    collection = _results_collection(db, group_id, "transfers")
    saved_ids = []

    for index, transfer in enumerate(transfers, start=1):
        transfer_id = generate_id("T", index)
        collection.document(transfer_id).set({
            "transfer_id": transfer_id,
            "from_member": transfer.get("from_member"),
            "to_member": transfer.get("to_member"),
            "amount": transfer.get("amount", 0.0),
            "updated_at": timestamp
        })
        saved_ids.append(transfer_id)

    stale = [doc.id for doc in collection.stream() if doc.id not in saved_ids]
    for transfer_id in stale:
        collection.document(transfer_id).delete()
    if stale:
        logger.debug("Removed %d stale transfers for group %s", len(stale), group_id)

    return {
        "saved_count": len(saved_ids),
        "transfer_ids": saved_ids,
        "updated_at": timestamp
    }


def save_analytics(group_id: str, analytics: dict) -> dict:
    """
    Save analytics summary to Firestore.

    Stores the full analytics output as a single document at:
        groups/{group_id}/results/analytics/analytics/summary

    Args:
        group_id: The ID of the group.
        analytics: Output of generate_analytics().

    Returns:
        dict: Confirmation with document path and timestamp.

    Raises:
        ValueError: If group_id is invalid.
        RuntimeError: If Firestore is not available.
    """
    _validate_group_id(group_id)

    db = get_db()
    if db is None:
        raise RuntimeError("Firestore is not available")

    timestamp = _get_timestamp()

    _results_collection(db, group_id, "analytics").document("summary").set({
        "total_spent": analytics.get("total_spent", 0.0),
        "category_breakdown": analytics.get("category_breakdown", []),
        "monthly_spending": analytics.get("monthly_spending", []),
        "payer_totals": analytics.get("payer_totals", []),
        "updated_at": timestamp
    })

    return {
        "saved": True,
        "path": f"groups/{group_id}/results/analytics/analytics/summary",
        "updated_at": timestamp
    }
