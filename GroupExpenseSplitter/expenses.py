"""
Expenses Module

This module handles all expense-related operations for the group expense
splitter application.

Features:
    - Add/edit/delete expenses, and restore deleted ones
    - Equal, exact, share-weighted and percentage splits
    - Single or multiple payers per expense
    - Automatic categorisation from the description
    - Keeps the group's total_expenses aggregate in step

Data Model:
    Expense stored at: groups/{group_id}/expenses/{expense_id}
    Fields:
        - expense_id: string (E001, E002, ... format)
        - description: string
        - amount: float (must be > 0)
        - payer_id: string (member who paid, first payer if several)
        - payers: list of {member_id, amount} or None
        - split_type: string (equally, unequally, by_shares, by_percentage)
        - participants: list of {member_id, amount_owed}
        - date: string (YYYY-MM-DD)
        - category: string
        - created_by: string or None

Functions:
    add_expense: Add a new expense to a group.
    update_expense: Replace an existing expense.
    delete_expense: Delete an expense.
    restore_expense: Re-create a deleted expense from its history event.
    get_expense: Get a single expense.
    get_expenses: Get all expenses for a group.
"""

import logging
from decimal import Decimal
from typing import Optional

from categories import CATEGORY_LIST, classify_expense
from config.firebase_config import get_db
from config.settings import settings
from groups import adjust_total_expenses, get_member_ids
from history import get_event, log_event, mark_event_restored
from splits import TOLERANCE, compute_split
from utils import (
    next_sequential_id,
    validate_amount,
    validate_date,
    validate_non_empty_string,
)

logger = logging.getLogger("groupsplit.expenses")


class Expense:
    """
    Represents a single expense in a group.

    Attributes:
        expense_id (str): Unique identifier in E### format.
        description (str): What the money was spent on.
        amount (float): Amount of the expense (must be > 0).
        payer_id (str): Member ID of who paid.
        split_type (str): How the amount was divided.
        participants (list[dict]): {member_id, amount_owed} per participant.
        date (str): Date of expense (YYYY-MM-DD).
        category (str): One of categories.CATEGORY_LIST.
        payers (list[dict] | None): {member_id, amount} for multi-payer expenses.
        created_by (str | None): ID of whoever recorded the expense.
    """

    def __init__(
        self,
        expense_id: str,
        description: str,
        amount: float,
        payer_id: str,
        split_type: str,
        participants: list[dict],
        date: str,
        category: str,
        payers: Optional[list[dict]] = None,
        created_by: Optional[str] = None
    ):
        self.expense_id = expense_id
        self.description = description
        self.amount = amount
        self.payer_id = payer_id
        self.split_type = split_type
        self.participants = participants
        self.date = date
        self.category = category
        self.payers = payers
        self.created_by = created_by

    def to_dict(self) -> dict:
        """Convert expense to dictionary for Firestore storage."""
        return {
            "expense_id": self.expense_id,
            "description": self.description,
            "amount": self.amount,
            "payer_id": self.payer_id,
            "payers": self.payers,
            "split_type": self.split_type,
            "participants": self.participants,
            "date": self.date,
            "category": self.category,
            "created_by": self.created_by
        }

    def to_record(self) -> dict:
        """Shape consumed by balances.compute_balances()."""
        record = {
            "expense_id": self.expense_id,
            "description": self.description,
            "payer_id": self.payer_id,
            "amount": self.amount,
            "participants": [
                {"member_id": p["member_id"], "amount_owed": p["amount_owed"]}
                for p in self.participants
            ]
        }
        if self.payers:
            record["payers"] = [dict(p) for p in self.payers]
        return record

    @classmethod
    def from_dict(cls, data: dict) -> "Expense":
        """Create an Expense instance from a dictionary."""
        return cls(
            expense_id=data.get("expense_id"),
            description=data.get("description"),
            amount=data.get("amount"),
            payer_id=data.get("payer_id"),
            split_type=data.get("split_type", "unequally"),
            participants=data.get("participants", []),
            date=data.get("date"),
            category=data.get("category", "Other"),
            payers=data.get("payers"),
            created_by=data.get("created_by")
        )

    def __repr__(self) -> str:
        return f"Expense(id='{self.expense_id}', payer='{self.payer_id}', amount={self.amount}, category='{self.category}')"


def _require_db():
    db = get_db()
    if db is None:
        raise RuntimeError("Firestore is not available")
    return db


def _expenses_ref(db, group_id: str):
    return db.collection("groups").document(group_id).collection("expenses")


def _validate_payers(amount: float, payers: list[dict], member_ids: set) -> list[dict]:
    """Check a multi-payer breakdown and normalise it."""
    total = Decimal("0")
    cleaned = []
    for payer in payers:
        member_id = payer.get("member_id")
        if member_id not in member_ids:
            raise ValueError(f"payer '{member_id}' is not a member of this group")
        if not validate_amount(payer.get("amount")):
            raise ValueError(f"payer amount for '{member_id}' must be a positive number")
        total += Decimal(str(payer["amount"]))
        cleaned.append({"member_id": member_id, "amount": float(payer["amount"])})

    if abs(total - Decimal(str(amount))) > TOLERANCE:
        raise ValueError(f"Sum of payer amounts ({total}) must equal total expense ({amount})")
    return cleaned


def _build_expense(
    group_id: str,
    expense_id: str,
    description: str,
    amount: float,
    payer_id: Optional[str],
    split_type: str,
    participants: list[dict],
    date: str,
    category: Optional[str],
    payers: Optional[list[dict]],
    actor_id: Optional[str]
) -> Expense:
    """Validate inputs against the group and compute the split."""
    validate_non_empty_string(description, "description")
    validate_date(date, "date")
    if not validate_amount(amount):
        raise ValueError(f"amount must be a positive number, got: {amount}")
    if category is not None and category not in CATEGORY_LIST:
        raise ValueError(f"category must be one of {CATEGORY_LIST}, got: {category}")
    if not isinstance(participants, list) or len(participants) == 0:
        raise ValueError("participants must be a non-empty list")

    member_ids = set(get_member_ids(group_id))
    if not member_ids:
        raise ValueError(f"Group {group_id} has no members")

    for participant in participants:
        if participant.get("member_id") not in member_ids:
            raise ValueError(f"participant '{participant.get('member_id')}' is not a member of this group")

    cleaned_payers = None
    if payers:
        cleaned_payers = _validate_payers(amount, payers, member_ids)
        payer_id = cleaned_payers[0]["member_id"]
    else:
        validate_non_empty_string(payer_id, "payer_id")
        if payer_id not in member_ids:
            raise ValueError(f"payer_id '{payer_id}' is not a member of this group")

    return Expense(
        expense_id=expense_id,
        description=description.strip(),
        amount=float(amount),
        payer_id=payer_id,
        split_type=split_type,
        participants=compute_split(amount, split_type, participants),
        date=date,
        category=category or classify_expense(description),
        payers=cleaned_payers,
        created_by=actor_id
    )


def add_expense(
    group_id: str,
    description: str,
    amount: float,
    payer_id: Optional[str],
    split_type: str,
    participants: list[dict],
    date: str,
    category: Optional[str] = None,
    payers: Optional[list[dict]] = None,
    actor_id: Optional[str] = None
) -> Expense:
    """
    Add a new expense to a group.

    Args:
        group_id: The ID of the group.
        description: What the expense was for.
        amount: Amount of the expense (must be > 0).
        payer_id: Member ID of who paid (ignored when payers is given).
        split_type: equally, unequally, by_shares or by_percentage.
        participants: Participant dicts, see splits.compute_split().
        date: Date of the expense (YYYY-MM-DD).
        category: Optional category; classified from description if omitted.
        payers: Optional {member_id, amount} list for multi-payer expenses.
        actor_id: Optional ID of whoever recorded the expense.

    Returns:
        Expense: The created expense object.

    Raises:
        ValueError: If input validation fails.
        RuntimeError: If Firestore is not available.

    Notes:
        - Payer does NOT have to be a participant
        - The group's total_expenses is increased by amount
    """
    validate_non_empty_string(group_id, "group_id")
    db = _require_db()

    expenses_ref = _expenses_ref(db, group_id)
    expense = _build_expense(
        group_id, next_sequential_id(expenses_ref, "E"), description, amount,
        payer_id, split_type, participants, date, category, payers, actor_id
    )

    expenses_ref.document(expense.expense_id).set(expense.to_dict())
    adjust_total_expenses(group_id, expense.amount)
    logger.info("Added expense %s to group %s (%.2f)", expense.expense_id, group_id, expense.amount)

    log_event(
        group_id, "expense_created", actor_id,
        f'Added expense "{expense.description}" for {settings.CURRENCY_SYMBOL}{expense.amount:.2f}.',
        {"expense_id": expense.expense_id}
    )
    return expense


def get_expense(group_id: str, expense_id: str) -> Optional[Expense]:
    """Get a single expense, or None if it does not exist."""
    validate_non_empty_string(group_id, "group_id")
    validate_non_empty_string(expense_id, "expense_id")
    db = _require_db()

    doc = _expenses_ref(db, group_id).document(expense_id).get()
    if not doc.exists:
        return None
    return Expense.from_dict(doc.to_dict())


def update_expense(
    group_id: str,
    expense_id: str,
    description: str,
    amount: float,
    payer_id: Optional[str],
    split_type: str,
    participants: list[dict],
    date: str,
    category: Optional[str] = None,
    payers: Optional[list[dict]] = None,
    actor_id: Optional[str] = None
) -> Expense:
    """
    Replace an existing expense.

    The group's total_expenses is adjusted by the difference between the
    new and old amounts.

    Raises:
        ValueError: If the expense does not exist or validation fails.
        RuntimeError: If Firestore is not available.
    """
    existing = get_expense(group_id, expense_id)
    if existing is None:
        raise ValueError(f"Expense {expense_id} not found in group {group_id}")

    expense = _build_expense(
        group_id, expense_id, description, amount,
        payer_id, split_type, participants, date, category, payers,
        existing.created_by
    )

    db = _require_db()
    _expenses_ref(db, group_id).document(expense_id).set(expense.to_dict())

    delta = expense.amount - float(existing.amount)
    if delta:
        adjust_total_expenses(group_id, delta)
    logger.info("Updated expense %s in group %s", expense_id, group_id)

    log_event(
        group_id, "expense_updated", actor_id,
        f'Updated expense "{expense.description}".',
        {"expense_id": expense_id, "previous": existing.to_dict()}
    )
    return expense


def delete_expense(group_id: str, expense_id: str, actor_id: Optional[str] = None) -> Expense:
    """
    Delete an expense and subtract its amount from the group's total.

    Returns:
        Expense: The deleted expense.

    Raises:
        ValueError: If the expense does not exist.
        RuntimeError: If Firestore is not available.
    """
    existing = get_expense(group_id, expense_id)
    if existing is None:
        raise ValueError(f"Expense {expense_id} not found in group {group_id}")

    db = _require_db()
    _expenses_ref(db, group_id).document(expense_id).delete()
    adjust_total_expenses(group_id, -float(existing.amount))
    logger.info("Deleted expense %s from group %s", expense_id, group_id)

    log_event(
        group_id, "expense_deleted", actor_id,
        f'Deleted expense "{existing.description}".',
        {"expense_id": expense_id, "previous": existing.to_dict()}
    )
    return existing


def restore_expense(group_id: str, event_id: str, actor_id: Optional[str] = None) -> Expense:
    """
    Re-create a deleted expense from its expense_deleted history event.

    The restored expense gets a new ID and keeps the original owed amounts,
    split type, payers, date and category.

    Returns:
        Expense: The restored expense.

    Raises:
        ValueError: If the event does not exist, is not a deleted expense,
            or has already been restored.
        RuntimeError: If Firestore is not available.
    """
    validate_non_empty_string(group_id, "group_id")
    validate_non_empty_string(event_id, "event_id")

    event = get_event(group_id, event_id)
    if event is None:
        raise ValueError(f"History event {event_id} not found in group {group_id}")
    previous = (event.get("data") or {}).get("previous")
    if event.get("event_type") != "expense_deleted" or not previous:
        raise ValueError("This history event cannot be restored")
    if event.get("restored"):
        raise ValueError(f"History event {event_id} has already been restored")

    db = _require_db()
    expenses_ref = _expenses_ref(db, group_id)
    # Owed amounts are replayed verbatim so the restored split matches the deleted one
    expense = _build_expense(
        group_id, next_sequential_id(expenses_ref, "E"), previous["description"],
        previous["amount"], previous.get("payer_id"), "unequally",
        [{"member_id": p["member_id"], "amount_owed": p["amount_owed"]} for p in previous["participants"]],
        previous["date"], previous.get("category"), previous.get("payers"), actor_id
    )
    expense.split_type = previous.get("split_type", "unequally")

    expenses_ref.document(expense.expense_id).set(expense.to_dict())
    adjust_total_expenses(group_id, expense.amount)
    mark_event_restored(group_id, event_id)
    logger.info("Restored expense %s in group %s from event %s", expense.expense_id, group_id, event_id)

    log_event(
        group_id, "expense_restored", actor_id,
        f'Restored expense "{expense.description}" for {settings.CURRENCY_SYMBOL}{expense.amount:.2f}.',
        {"expense_id": expense.expense_id, "restored_from_event_id": event_id}
    )
    return expense


def get_expenses(group_id: str) -> list[Expense]:
    """
    Get all expenses for a group, ordered by date then expense ID.

    Raises:
        ValueError: If group_id is invalid.
        RuntimeError: If Firestore is not available.
    """
    validate_non_empty_string(group_id, "group_id")
    db = _require_db()

    docs = _expenses_ref(db, group_id).stream()
    expenses = [Expense.from_dict(doc.to_dict()) for doc in docs]
    return sorted(expenses, key=lambda e: (e.date or "", e.expense_id))
