"""
Groups Module

This module handles groups and their members for the group expense
splitter application.

Features:
    - Create, update and archive groups
    - Add members to a group
    - Retrieve members in insertion order
    - Maintain the cached total_expenses display aggregate

Data Model:
    Group stored at: groups/{group_id}
    Fields:
        - group_id: string (G001, G002, ... format)
        - name: string
        - description: string or None
        - created_by: string or None
        - created_at: string (ISO timestamp)
        - total_expenses: float (display aggregate only)
        - archived: bool

    Member stored at: groups/{group_id}/members/{member_id}
    Fields:
        - member_id: string (M001, M002, ... format)
        - name: string
        - email: string or None
        - joined_at: string (ISO timestamp)

Functions:
    create_group: Create a new group.
    get_group: Get a single group.
    list_groups: Get all groups, optionally including archived ones.
    update_group: Update name / description.
    archive_group: Mark a fully settled group as archived.
    adjust_total_expenses: Add a delta to the cached total.
    add_member: Add a new member to a group.
    get_members: Get all members of a group.
    get_member_ids: Get member IDs of a group, in member order.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from config.firebase_config import get_db
from history import log_event
from utils import next_sequential_id, validate_non_empty_string

logger = logging.getLogger("groupsplit.groups")

UPDATABLE_FIELDS = {"name", "description"}


class Group:
    """
    Represents an expense-sharing group.

    Attributes:
        group_id (str): Unique identifier in G### format.
        name (str): Display name.
        description (str | None): Optional description.
        created_by (str | None): Member or user ID of the creator.
        created_at (str | None): ISO timestamp.
        total_expenses (float): Sum of all expense amounts in the group.
        archived (bool): Whether the group has been archived.
    """

    def __init__(
        self,
        group_id: str,
        name: str,
        description: Optional[str] = None,
        created_by: Optional[str] = None,
        created_at: Optional[str] = None,
        total_expenses: float = 0.0,
        archived: bool = False
    ):
        self.group_id = group_id
        self.name = name
        self.description = description
        self.created_by = created_by
        self.created_at = created_at
        self.total_expenses = total_expenses
        self.archived = archived

    def to_dict(self) -> dict:
        """Convert group to dictionary for Firestore storage."""
        return {
            "group_id": self.group_id,
            "name": self.name,
            "description": self.description,
            "created_by": self.created_by,
            "created_at": self.created_at,
            "total_expenses": self.total_expenses,
            "archived": self.archived
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Group":
        """Create a Group instance from a dictionary."""
        return cls(
            group_id=data.get("group_id"),
            name=data.get("name"),
            description=data.get("description"),
            created_by=data.get("created_by"),
            created_at=data.get("created_at"),
            total_expenses=data.get("total_expenses", 0.0),
            archived=data.get("archived", False)
        )

    def __repr__(self) -> str:
        return f"Group(id='{self.group_id}', name='{self.name}', total={self.total_expenses})"


class Member:
    """
    Represents a member of a group.

    Attributes:
        member_id (str): Unique identifier within the group (M### format).
        name (str): Display name.
        email (str | None): Optional contact email.
        joined_at (str | None): ISO timestamp.
    """

    def __init__(
        self,
        member_id: str,
        name: str,
        email: Optional[str] = None,
        joined_at: Optional[str] = None
    ):
        self.member_id = member_id
        self.name = name
        self.email = email
        self.joined_at = joined_at

    def to_dict(self) -> dict:
        """Convert member to dictionary for Firestore storage."""
        return {
            "member_id": self.member_id,
            "name": self.name,
            "email": self.email,
            "joined_at": self.joined_at
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Member":
        """Create a Member instance from a dictionary."""
        return cls(
            member_id=data.get("member_id"),
            name=data.get("name"),
            email=data.get("email"),
            joined_at=data.get("joined_at")
        )

    def __repr__(self) -> str:
        return f"Member(id='{self.member_id}', name='{self.name}')"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _require_db():
    db = get_db()
    if db is None:
        raise RuntimeError("Firestore is not available")
    return db


def _group_ref(db, group_id: str):
    return db.collection("groups").document(group_id)


def create_group(
    name: str,
    created_by: Optional[str] = None,
    description: Optional[str] = None
) -> Group:
    """
    Create a new group.

    Args:
        name: Display name of the group.
        created_by: Optional ID of the creating user.
        description: Optional description.

    Returns:
        Group: The created group.

    Raises:
        ValueError: If name is empty.
        RuntimeError: If Firestore is not available.
    """
    validate_non_empty_string(name, "name")
    db = _require_db()

    group_id = next_sequential_id(db.collection("groups"), "G")
    group = Group(
        group_id=group_id,
        name=name.strip(),
        description=description.strip() if description else None,
        created_by=created_by,
        created_at=_now()
    )
    _group_ref(db, group_id).set(group.to_dict())
    logger.info("Created group %s (%s)", group_id, group.name)

    log_event(group_id, "group_created", created_by, f'Group "{group.name}" was created.')
    return group


def get_group(group_id: str) -> Optional[Group]:
    """
    Get a group by ID.

    Returns:
        Group | None: The group, or None if it does not exist.

    Raises:
        ValueError: If group_id is invalid.
        RuntimeError: If Firestore is not available.
    """
    validate_non_empty_string(group_id, "group_id")
    db = _require_db()

    doc = _group_ref(db, group_id).get()
    if not doc.exists:
        return None
    return Group.from_dict(doc.to_dict())


def list_groups(include_archived: bool = False) -> list[Group]:
    """Get all groups, ordered by group ID."""
    db = _require_db()
    groups = [Group.from_dict(doc.to_dict()) for doc in db.collection("groups").stream()]
    if not include_archived:
        groups = [g for g in groups if not g.archived]
    return sorted(groups, key=lambda g: g.group_id)


def _get_existing_group_ref(db, group_id: str):
    ref = _group_ref(db, group_id)
    doc = ref.get()
    if not doc.exists:
        raise ValueError(f"Group {group_id} not found")
    return ref, doc.to_dict()


def update_group(group_id: str, actor_id: Optional[str] = None, **fields) -> Group:
    """
    Update a group's name and/or description.

    Raises:
        ValueError: If the group does not exist or a field is not updatable.
        RuntimeError: If Firestore is not available.
    """
    validate_non_empty_string(group_id, "group_id")
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update fields: {sorted(unknown)}")
    if "name" in fields:
        validate_non_empty_string(fields["name"], "name")
        fields["name"] = fields["name"].strip()

    db = _require_db()
    ref, data = _get_existing_group_ref(db, group_id)

    changes = {k: v for k, v in fields.items() if data.get(k) != v}
    if changes:
        ref.update(changes)
        data.update(changes)
        summary = ", ".join(f"{k} to \"{v}\"" for k, v in changes.items())
        log_event(group_id, "group_updated", actor_id, f"Group updated: {summary}.", {"changes": changes})

    return Group.from_dict(data)


def archive_group(group_id: str, actor_id: Optional[str] = None) -> None:
    """
    Mark a group as archived. Archived groups keep all their records.

    A group can only be archived once every member's net balance is within
    one cent of zero.

    Raises:
        ValueError: If the group does not exist or still has open debts.
        RuntimeError: If Firestore is not available.
    """
    # Deferred: expenses and settlements both import this module
    from balances import compute_balances
    from expenses import get_expenses
    from settlements import get_settlements

    validate_non_empty_string(group_id, "group_id")
    db = _require_db()
    ref, data = _get_existing_group_ref(db, group_id)

    balances = compute_balances(
        get_member_ids(group_id),
        [e.to_record() for e in get_expenses(group_id)],
        [s.to_record() for s in get_settlements(group_id)]
    )
    if any(abs(b["net_balance"]) >= 0.01 for b in balances):
        raise ValueError("Cannot archive group. All debts must be settled first.")

    ref.update({"archived": True})
    logger.info("Archived group %s", group_id)

    log_event(group_id, "group_archived", actor_id, f'Group "{data.get("name")}" was archived.')


def adjust_total_expenses(group_id: str, delta: float) -> float:
    """
    Add delta to the group's cached total_expenses.

    Returns:
        float: The new total, rounded to 2 decimal places.
    """
    db = _require_db()
    ref, data = _get_existing_group_ref(db, group_id)
    new_total = round(float(data.get("total_expenses", 0.0)) + float(delta), 2)
    ref.update({"total_expenses": new_total})
    return new_total


def add_member(
    group_id: str,
    name: str,
    email: Optional[str] = None,
    actor_id: Optional[str] = None
) -> Member:
    """
    Add a new member to a group.

    Args:
        group_id: The ID of the group.
        name: Name of the member.
        email: Optional email address.
        actor_id: Optional ID of whoever added the member.

    Returns:
        Member: The created member object.

    Raises:
        ValueError: If input validation fails or the group does not exist.
        RuntimeError: If Firestore is not available.
    """
    validate_non_empty_string(group_id, "group_id")
    validate_non_empty_string(name, "name")
    if email is not None and "@" not in email:
        raise ValueError(f"email is not valid, got: {email}")

    db = _require_db()
    _get_existing_group_ref(db, group_id)

    members_ref = _group_ref(db, group_id).collection("members")
    member = Member(
        member_id=next_sequential_id(members_ref, "M"),
        name=name.strip(),
        email=email.strip().lower() if email else None,
        joined_at=_now()
    )
    members_ref.document(member.member_id).set(member.to_dict())
    logger.info("Added member %s to group %s", member.member_id, group_id)

    log_event(group_id, "member_added", actor_id, f"{member.name} joined the group.",
              {"member_id": member.member_id})
    return member


def get_members(group_id: str) -> list[Member]:
    """
    Get all members of a group, ordered by member ID.

    Raises:
        ValueError: If group_id is invalid.
        RuntimeError: If Firestore is not available.
    """
    validate_non_empty_string(group_id, "group_id")
    db = _require_db()

    docs = _group_ref(db, group_id).collection("members").stream()
    members = [Member.from_dict(doc.to_dict()) for doc in docs]
    return sorted(members, key=lambda m: m.member_id)


def get_member_ids(group_id: str) -> list[str]:
    """Get member IDs of a group, in member order."""
    return [m.member_id for m in get_members(group_id)]
