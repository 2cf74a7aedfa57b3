"""
Analytics Module

This module provides spending summaries for a group.

Features:
    - Total spent
    - Category-wise expense breakdown
    - Month-by-month spending
    - Per-member payer totals

Data Model:
    Input - members: list of dicts with:
        - member_id: string
        - name: string (optional)

    Input - expenses: list of dicts with:
        - payer_id: string
        - payers: list of {member_id, amount} (optional)
        - amount: float
        - category: string (optional, "Other" if missing)
        - date: string (YYYY-MM-DD)

    Output - dict containing:
        - total_spent: float
        - category_breakdown: list of {category, amount}, largest first
        - monthly_spending: list of {month, amount}, oldest first
        - payer_totals: list of {member_id, name, amount}, largest first

Functions:
    generate_analytics: Generate analytics from expense data.
"""

from collections import defaultdict
from decimal import Decimal, ROUND_HALF_UP


def _round_decimal(value: Decimal) -> float:
    """
    Round a Decimal to 2 decimal places and convert to float.

    Args:
        value: Decimal value to round.

    Returns:
        float: Rounded value as float.
    """
    return float(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def generate_analytics(members: list[dict], expenses: list[dict]) -> dict:
    """
    Generate spending analytics for a group.

    Args:
        members: List of member dicts with member_id (name optional).
        expenses: List of expense dicts with payer_id, amount, category, date.

    Returns:
        dict: total_spent, category_breakdown, monthly_spending, payer_totals.

    Notes:
        - All amounts rounded to 2 decimal places
        - Multi-payer expenses credit each payer with their own portion
        - Payers who are not in members are left out of payer_totals
        - Members who paid nothing are left out of payer_totals
    """
    names = {m["member_id"]: m.get("name") or m["member_id"] for m in members}

    category_totals = defaultdict(Decimal)
    monthly_totals = defaultdict(Decimal)
    payer_totals = defaultdict(Decimal)
    total_spent = Decimal("0")

    for expense in expenses:
        amount = Decimal(str(expense["amount"]))
        category = expense.get("category") or "Other"
        month = (expense.get("date") or "")[:7]

        category_totals[category] += amount
        if month:
            monthly_totals[month] += amount
        total_spent += amount

        payers = expense.get("payers")
        if payers:
            for payer in payers:
                payer_totals[payer["member_id"]] += Decimal(str(payer["amount"]))
        else:
            payer_totals[expense["payer_id"]] += amount

    category_breakdown = [
        {"category": category, "amount": _round_decimal(amount)}
        for category, amount in sorted(category_totals.items(), key=lambda kv: kv[1], reverse=True)
    ]

    monthly_spending = [
        {"month": month, "amount": _round_decimal(monthly_totals[month])}
        for month in sorted(monthly_totals)
    ]

    paid = [
        {"member_id": member_id, "name": names[member_id], "amount": _round_decimal(amount)}
        for member_id, amount in payer_totals.items()
        if member_id in names and amount > 0
    ]
    paid.sort(key=lambda p: p["amount"], reverse=True)

    return {
        "total_spent": _round_decimal(total_spent),
        "category_breakdown": category_breakdown,
        "monthly_spending": monthly_spending,
        "payer_totals": paid
    }
