"""
Settlements Module

Records payments members have made to each other outside the app, which
reduce what the payer owes and what the payee is owed.

Data Model:
    Settlement stored at: groups/{group_id}/settlements/{settlement_id}
    Fields:
        - settlement_id: string (S001, S002, ... format)
        - payer_id: string (member who paid)
        - payee_id: string (member who received)
        - amount: float (must be > 0)
        - date: string (YYYY-MM-DD)
        - notes: string or None
        - created_by: string or None

Functions:
    record_settlement: Record a payment between two members.
    get_settlements: Get all settlements for a group.
    delete_settlement: Remove a recorded settlement.
"""

import logging
from typing import Optional

from config.firebase_config import get_db
from config.settings import settings
from groups import get_members
from history import log_event
from utils import (
    next_sequential_id,
    validate_amount,
    validate_date,
    validate_non_empty_string,
)

logger = logging.getLogger("groupsplit.settlements")


class Settlement:
    """
    Represents a recorded payment from one member to another.

    Attributes:
        settlement_id (str): Unique identifier in S### format.
        payer_id (str): Member who paid.
        payee_id (str): Member who received the money.
        amount (float): Amount paid (> 0).
        date (str): Date of the payment (YYYY-MM-DD).
        notes (str | None): Optional note.
        created_by (str | None): ID of whoever recorded it.
    """

    def __init__(
        self,
        settlement_id: str,
        payer_id: str,
        payee_id: str,
        amount: float,
        date: str,
        notes: Optional[str] = None,
        created_by: Optional[str] = None
    ):
        self.settlement_id = settlement_id
        self.payer_id = payer_id
        self.payee_id = payee_id
        self.amount = amount
        self.date = date
        self.notes = notes
        self.created_by = created_by

    def to_dict(self) -> dict:
        """Convert settlement to dictionary for Firestore storage."""
        return {
            "settlement_id": self.settlement_id,
            "payer_id": self.payer_id,
            "payee_id": self.payee_id,
            "amount": self.amount,
            "date": self.date,
            "notes": self.notes,
            "created_by": self.created_by
        }

    def to_record(self) -> dict:
        """Shape consumed by balances.compute_balances()."""
        return {
            "settlement_id": self.settlement_id,
            "payer_id": self.payer_id,
            "payee_id": self.payee_id,
            "amount": self.amount,
            "notes": self.notes
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Settlement":
        """Create a Settlement instance from a dictionary."""
        return cls(
            settlement_id=data.get("settlement_id"),
            payer_id=data.get("payer_id"),
            payee_id=data.get("payee_id"),
            amount=data.get("amount"),
            date=data.get("date"),
            notes=data.get("notes"),
            created_by=data.get("created_by")
        )

    def __repr__(self) -> str:
        return f"Settlement(id='{self.settlement_id}', {self.payer_id} -> {self.payee_id}, amount={self.amount})"


def _settlements_ref(db, group_id: str):
    return db.collection("groups").document(group_id).collection("settlements")


def record_settlement(
    group_id: str,
    payer_id: str,
    payee_id: str,
    amount: float,
    date: str,
    notes: Optional[str] = None,
    actor_id: Optional[str] = None
) -> Settlement:
    """
    Record a payment from one member to another.

    Args:
        group_id: The ID of the group.
        payer_id: Member who paid.
        payee_id: Member who received the money.
        amount: Amount paid (must be > 0).
        date: Date of the payment (YYYY-MM-DD).
        notes: Optional note.
        actor_id: Optional ID of whoever recorded it.

    Returns:
        Settlement: The recorded settlement.

    Raises:
        ValueError: If input validation fails.
        RuntimeError: If Firestore is not available.
    """
    validate_non_empty_string(group_id, "group_id")
    validate_non_empty_string(payer_id, "payer_id")
    validate_non_empty_string(payee_id, "payee_id")
    validate_date(date, "date")
    if not validate_amount(amount):
        raise ValueError(f"amount must be a positive number, got: {amount}")
    if payer_id == payee_id:
        raise ValueError("payer_id and payee_id must be different members")

    db = get_db()
    if db is None:
        raise RuntimeError("Firestore is not available")

    names = {m.member_id: m.name for m in get_members(group_id)}
    for field, member_id in (("payer_id", payer_id), ("payee_id", payee_id)):
        if member_id not in names:
            raise ValueError(f"{field} '{member_id}' is not a member of group {group_id}")

    settlements_ref = _settlements_ref(db, group_id)
    settlement = Settlement(
        settlement_id=next_sequential_id(settlements_ref, "S"),
        payer_id=payer_id,
        payee_id=payee_id,
        amount=float(amount),
        date=date,
        notes=notes.strip() if notes else None,
        created_by=actor_id
    )
    settlements_ref.document(settlement.settlement_id).set(settlement.to_dict())
    logger.info("Recorded settlement %s in group %s", settlement.settlement_id, group_id)

    log_event(
        group_id, "settlement_created", actor_id,
        f"{names[payer_id]} paid {names[payee_id]} {settings.CURRENCY_SYMBOL}{settlement.amount:.2f}.",
        {"settlement_id": settlement.settlement_id}
    )
    return settlement


def get_settlements(group_id: str) -> list[Settlement]:
    """
    Get all settlements for a group, ordered by date then settlement ID.

    Raises:
        ValueError: If group_id is invalid.
        RuntimeError: If Firestore is not available.
    """
    validate_non_empty_string(group_id, "group_id")

    db = get_db()
    if db is None:
        raise RuntimeError("Firestore is not available")

    docs = _settlements_ref(db, group_id).stream()
    settlements = [Settlement.from_dict(doc.to_dict()) for doc in docs]
    return sorted(settlements, key=lambda s: (s.date or "", s.settlement_id))


def delete_settlement(group_id: str, settlement_id: str, actor_id: Optional[str] = None) -> None:
    """
    Remove a recorded settlement.

    Raises:
        ValueError: If the settlement does not exist.
        RuntimeError: If Firestore is not available.
    """
    validate_non_empty_string(group_id, "group_id")
    validate_non_empty_string(settlement_id, "settlement_id")

    db = get_db()
    if db is None:
        raise RuntimeError("Firestore is not available")

    doc_ref = _settlements_ref(db, group_id).document(settlement_id)
    doc = doc_ref.get()
    if not doc.exists:
        raise ValueError(f"Settlement {settlement_id} not found in group {group_id}")

    doc_ref.delete()
    logger.info("Deleted settlement %s from group %s", settlement_id, group_id)
    log_event(group_id, "settlement_deleted", actor_id, f"Deleted settlement {settlement_id}.",
              {"settlement_id": settlement_id, "previous": doc.to_dict()})
