"""
Balances Module

This module folds a group's expenses and settlements into one net balance
per member.

Features:
    - Arbitrary split rules (each participant carries its own amount_owed)
    - Single-payer and multi-payer expenses
    - Recorded settlements between members
    - Decimal-safe accumulation, rounded once at the end

Data Model:
    Input - members (list of member_id strings):
        Defines the output universe and order.

    Input - expenses (list of dicts):
        - payer_id: string
        - amount: number (> 0)
        - participants: list of {member_id, amount_owed}
        - payers: optional list of {member_id, amount} (replaces payer_id)

    Input - settlements (list of dicts):
        - payer_id: string (member who handed over the money)
        - payee_id: string (member who received it)
        - amount: number (> 0)

    Output - balances (list of dicts, same order as members):
        - member_id: string
        - net_balance: float (positive = is owed, negative = owes)

Functions:
    compute_balances: Calculate per-member net balances.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP

from errors import UnknownMemberError

logger = logging.getLogger("groupsplit.balances")


def _to_decimal(value) -> Decimal:
    """Convert a numeric value to Decimal without binary float noise."""
    if isinstance(value, bool) or not isinstance(value, (Decimal, int, float, str)):
        raise TypeError(f"amount must be numeric, got: {value!r}")
    result = value if isinstance(value, Decimal) else Decimal(str(value))
    if not result.is_finite():
        raise ValueError(f"amount must be a finite number, got: {value!r}")
    return result


def _round_decimal(value: Decimal) -> float:
    """
    Round a Decimal to 2 decimal places and convert to float.

    Args:
        value: Decimal value to round.

    Returns:
        float: Rounded value as float.
    """
    return float(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _apply(accumulator: dict, member_id: str, delta: Decimal, record_kind: str, strict: bool) -> None:
    """Add delta to a member's running balance, dropping unknown members."""
    if member_id in accumulator:
        accumulator[member_id] += delta
        return

    if strict:
        raise UnknownMemberError(member_id, record_kind)
    logger.debug("Ignoring %s contribution for unknown member %s", record_kind, member_id)


def compute_balances(
    members: list[str],
    expenses: list[dict],
    settlements: list[dict],
    strict: bool = False
) -> list[dict]:
    """
    Calculate per-member net balances from expenses and settlements.

    For each expense:
        1. The payer is credited with the full amount (or each entry of
           payers is credited with its own amount)
        2. Each participant is debited with their amount_owed

    For each settlement:
        1. The payer is credited with the amount (their debt shrinks)
        2. The payee is debited with the amount (their credit shrinks)

    Args:
        members: Member IDs of the group, in display order.
        expenses: Expense records already scoped to the group.
        settlements: Settlement records already scoped to the group.
        strict: Raise UnknownMemberError instead of ignoring records that
            reference members outside the group.

    Returns:
        list[dict]: One {member_id, net_balance} per member, in input order.

    Raises:
        TypeError: If an amount is not numeric.
        ValueError: If an amount is NaN or infinite.

    Notes:
        - Members with no activity still appear with 0.0
        - Only the final per-member value is rounded
        - Split sums are not validated here
        - Does NOT read from or write to Firestore
    """
    accumulator = {member_id: Decimal("0") for member_id in members}

    for expense in expenses:
        payers = expense.get("payers")
        if payers:
            for payer in payers:
                _apply(accumulator, payer["member_id"], _to_decimal(payer["amount"]), "expense", strict)
        else:
            _apply(accumulator, expense["payer_id"], _to_decimal(expense["amount"]), "expense", strict)

        for participant in expense.get("participants", []):
            owed = _to_decimal(participant["amount_owed"])
            _apply(accumulator, participant["member_id"], -owed, "expense", strict)

    for settlement in settlements:
        amount = _to_decimal(settlement["amount"])
        _apply(accumulator, settlement["payer_id"], amount, "settlement", strict)
        _apply(accumulator, settlement["payee_id"], -amount, "settlement", strict)

    return [
        {"member_id": member_id, "net_balance": _round_decimal(accumulator[member_id])}
        for member_id in members
    ]
