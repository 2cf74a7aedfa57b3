"""
Utilities Module

This module provides helpers shared by the data-access modules and the API,
plus presentation-ready views over computed balances.

Features:
    - Per-member "who owes whom" view over a simplified settlement plan
    - Cross-group balance aggregation
    - Per-member breakdown of how a balance was reached
    - Sequential document IDs (E001, S001, ...)
    - Currency formatting and input validation

Data Model:
    Input - balances: list of {member_id, net_balance} (compute_balances)
    Input - transfers: list of {from_member, to_member, amount} (simplify_debts)

Functions:
    member_positions: Per-member owes / owed_by lists.
    aggregate_balances: Sum net balances of the same member across groups.
    explain_member_balance: Itemise the records behind a member's balance.
    next_sequential_id: Next free {prefix}### ID in a collection.
    format_currency: Format amount with currency symbol.
    validate_amount: Validate if input is a valid monetary amount.
    validate_date: Validate a YYYY-MM-DD date string.
    validate_non_empty_string: Validate a required string field.
    generate_id: Generate a formatted identifier.
"""

import re
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from config.settings import settings


def _round_decimal(value: Decimal) -> float:
    """
    Round a Decimal to 2 decimal places and convert to float.

    Args:
        value: Decimal value to round.

    Returns:
        float: Rounded value as float.
    """
    return float(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def member_positions(balances: list[dict], transfers: list[dict]) -> list[dict]:
    """
    Build the per-member view of a simplified settlement plan.

    Args:
        balances: Output from compute_balances().
        transfers: Output from simplify_debts() for the same balances.

    Returns:
        list[dict]: One entry per member, in balance order:
            - member_id: string
            - net_balance: float
            - owes: list of {to, amount}
            - owed_by: list of {from, amount}
    """
    positions = {
        b["member_id"]: {
            "member_id": b["member_id"],
            "net_balance": b["net_balance"],
            "owes": [],
            "owed_by": []
        }
        for b in balances
    }

    for t in transfers:
        if t["from_member"] in positions:
            positions[t["from_member"]]["owes"].append({"to": t["to_member"], "amount": t["amount"]})
        if t["to_member"] in positions:
            positions[t["to_member"]]["owed_by"].append({"from": t["from_member"], "amount": t["amount"]})

    return list(positions.values())


def aggregate_balances(group_balances: list[list[dict]]) -> list[dict]:
    """
    Sum each member's net balance across several groups.

    Args:
        group_balances: One compute_balances() result per group.

    Returns:
        list[dict]: {member_id, net_balance} in first-seen order.
    """
    totals = {}
    for balances in group_balances:
        for b in balances:
            totals.setdefault(b["member_id"], Decimal("0"))
            totals[b["member_id"]] += Decimal(str(b["net_balance"]))

    return [
        {"member_id": member_id, "net_balance": _round_decimal(total)}
        for member_id, total in totals.items()
    ]


def explain_member_balance(member_id: str, expenses: list[dict], settlements: list[dict]) -> dict:
    """
    Itemise every record that moved a member's balance.

    Args:
        member_id: Member to explain.
        expenses: Expense records (payer_id, amount, participants, payers).
        settlements: Settlement records (payer_id, payee_id, amount).

    Returns:
        dict: Explanation containing:
            - member_id: string
            - items: list of {kind, record_id, description, effect}
            - total_paid: float (expense amounts fronted)
            - total_share: float (sum of amount_owed)
            - settlements_paid: float
            - settlements_received: float
            - net_balance: float

    Notes:
        - net_balance matches compute_balances() for a known member
    """
    items = []
    total_paid = Decimal("0")
    total_share = Decimal("0")
    paid_out = Decimal("0")
    received = Decimal("0")

    for expense in expenses:
        paid = Decimal("0")
        payers = expense.get("payers")
        if payers:
            for payer in payers:
                if payer["member_id"] == member_id:
                    paid += Decimal(str(payer["amount"]))
        elif expense.get("payer_id") == member_id:
            paid = Decimal(str(expense["amount"]))

        share = Decimal("0")
        for participant in expense.get("participants", []):
            if participant["member_id"] == member_id:
                share += Decimal(str(participant["amount_owed"]))

        if paid == 0 and share == 0:
            continue

        total_paid += paid
        total_share += share
        items.append({
            "kind": "expense",
            "record_id": expense.get("expense_id", "N/A"),
            "description": expense.get("description", ""),
            "paid": _round_decimal(paid),
            "share": _round_decimal(share),
            "effect": _round_decimal(paid - share)
        })

    for settlement in settlements:
        amount = Decimal(str(settlement["amount"]))
        if settlement["payer_id"] == member_id:
            effect = amount
            paid_out += amount
        elif settlement["payee_id"] == member_id:
            effect = -amount
            received += amount
        else:
            continue

        items.append({
            "kind": "settlement",
            "record_id": settlement.get("settlement_id", "N/A"),
            "description": settlement.get("notes") or "",
            "paid": _round_decimal(amount if effect > 0 else Decimal("0")),
            "share": 0.0,
            "effect": _round_decimal(effect)
        })

    return {
        "member_id": member_id,
        "items": items,
        "total_paid": _round_decimal(total_paid),
        "total_share": _round_decimal(total_share),
        "settlements_paid": _round_decimal(paid_out),
        "settlements_received": _round_decimal(received),
        "net_balance": _round_decimal(total_paid - total_share + paid_out - received)
    }


def next_sequential_id(collection_ref, prefix: str) -> str:
    """
    Generate the next sequential ID in a Firestore collection.

    Format: {prefix}001, {prefix}002, ...

    Logic:
        1. Stream the existing document IDs
        2. Take the highest numeric suffix among IDs matching {prefix}###
        3. Return that number + 1, zero-padded to 3 digits

    IDs that do not follow the pattern are ignored, so a collection with only
    legacy IDs starts again from {prefix}001.
    """
    pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
    max_num = 0

    for doc in collection_ref.stream():
        match = pattern.match(doc.id)
        if match:
            max_num = max(max_num, int(match.group(1)))

    return generate_id(prefix, max_num + 1)


def format_currency(amount: float, symbol: str = None) -> str:
    """
    Format a monetary amount with the appropriate currency symbol.

    Args:
        amount: The amount to format.
        symbol: Currency symbol (default: settings.CURRENCY_SYMBOL).

    Returns:
        str: Formatted string like "₹1,234.56".
    """
    if symbol is None:
        symbol = settings.CURRENCY_SYMBOL
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def validate_amount(value) -> bool:
    """
    Validate if the input is a valid monetary amount.

    Args:
        value: Value to validate.

    Returns:
        bool: True if valid positive number.
    """
    if isinstance(value, bool):
        return False
    try:
        amount = float(value)
        return amount > 0
    except (TypeError, ValueError):
        return False


def validate_date(date_str: str, field_name: str) -> bool:
    """
    Validate date string format (YYYY-MM-DD).

    Raises:
        ValueError: If date format is invalid.
    """
    try:
        datetime.strptime(date_str, "%Y-%m-%d")
        return True
    except (TypeError, ValueError):
        raise ValueError(f"{field_name} must be in YYYY-MM-DD format, got: {date_str}")


def validate_non_empty_string(value: str, field_name: str) -> bool:
    """
    Validate that a string is non-empty.

    Raises:
        ValueError: If string is empty or not a string.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field_name} must be a non-empty string")
    return True


def generate_id(prefix: str = "ID", number: int = 1) -> str:
    """
    Generate a formatted identifier.

    Args:
        prefix: Prefix for the ID (e.g., "M", "E").
        number: Numeric value to format.

    Returns:
        str: Formatted ID like "M001", "E042".
    """
    return f"{prefix}{number:03d}"
