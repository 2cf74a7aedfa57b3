"""
Simplifier Module

This module turns net balances into a short list of suggested payments
that would settle every debt in a group.

Features:
    - Greedy largest-debtor to largest-creditor matching
    - One-cent tolerance for rounding leftovers
    - Deterministic output (stable ordering for equal amounts)

Data Model:
    Input - balances (list of dicts, as produced by compute_balances):
        - member_id: string
        - net_balance: float (positive = is owed, negative = owes)

    Output - list of transfers:
        - from_member: string (debtor who pays)
        - to_member: string (creditor who receives)
        - amount: float (rounded to 2 decimal places)

Functions:
    simplify_debts: Convert balances into suggested settlement transfers.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP

from errors import UnbalancedLedgerError

logger = logging.getLogger("groupsplit.simplifier")

# Amounts at or below one cent are treated as settled
EPSILON = Decimal("0.01")


def _round_decimal(value: Decimal) -> float:
    """
    Round a Decimal to 2 decimal places and convert to float.

    Args:
        value: Decimal value to round.

    Returns:
        float: Rounded value as float.
    """
    return float(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def simplify_debts(balances: list[dict], strict: bool = False) -> list[dict]:
    """
    Convert net balances into suggested settlement transfers.

    Uses a greedy algorithm:
        1. Separate members into debtors (net_balance < 0) and creditors
           (net_balance > 0)
        2. Sort both by amount, largest first (stable for ties)
        3. Walk both lists together:
           - Settle the minimum of the current debtor's and creditor's
             remaining amounts
           - Emit a transfer only if that amount exceeds one cent
           - Move past whichever side has less than one cent left
        4. Stop as soon as either list runs out

    Args:
        balances: List of {member_id, net_balance} dicts.
        strict: Raise UnbalancedLedgerError if anything above one cent is
            left unsettled when the walk ends.

    Returns:
        list[dict]: Transfers with from_member, to_member and amount.

    Notes:
        - Not an optimal minimum-transaction solver; the greedy order is
          part of the contract
        - Emits at most n - 1 transfers for n non-zero balances
        - Leftover residue is dropped unless strict is set
        - Does NOT modify input balances
    """
    # Remaining amounts are stored as positive numbers on both sides
    debtors = []
    creditors = []

    for balance in balances:
        net = Decimal(str(balance["net_balance"]))
        if net < 0:
            debtors.append([balance["member_id"], -net])
        elif net > 0:
            creditors.append([balance["member_id"], net])

    debtors.sort(key=lambda x: x[1], reverse=True)
    creditors.sort(key=lambda x: x[1], reverse=True)

    transfers = []
    i = 0
    j = 0

    while i < len(debtors) and j < len(creditors):
        debtor = debtors[i]
        creditor = creditors[j]

        amount = min(debtor[1], creditor[1])

        if amount > EPSILON:
            transfers.append({
                "from_member": debtor[0],
                "to_member": creditor[0],
                "amount": _round_decimal(amount)
            })

        debtor[1] -= amount
        creditor[1] -= amount

        if debtor[1] < EPSILON:
            i += 1
        if creditor[1] < EPSILON:
            j += 1

    # Only non-empty when the balances did not sum to zero
    residue = {}
    for member_id, remaining in debtors[i:]:
        if remaining > EPSILON:
            residue[member_id] = _round_decimal(-remaining)
    for member_id, remaining in creditors[j:]:
        if remaining > EPSILON:
            residue[member_id] = _round_decimal(remaining)

    if residue:
        if strict:
            raise UnbalancedLedgerError(residue)
        logger.warning("Dropping unsettled residue after simplification: %s", residue)

    return transfers
