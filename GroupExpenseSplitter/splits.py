"""
Splits Module

This module turns an expense amount and a split rule into the per-member
amounts owed that the balance calculator consumes.

Features:
    - Equal, exact-amount, share-weighted and percentage splits
    - Whole-cent shares that never go negative and add up exactly
    - Validation that owed amounts add up to the expense total

Data Model:
    Input - participants (list of dicts):
        - member_id: string
        - amount_owed: number (used by "unequally")
        - shares: number (used by "by_shares")
        - percentage: number (used by "by_percentage")

    Output - list of dicts:
        - member_id: string
        - amount_owed: float (rounded to 2 decimal places)

Functions:
    compute_split: Calculate owed amounts for a split type.
    validate_split: Check that owed amounts sum to the expense amount.
"""

from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP

SPLIT_TYPES = ("equally", "unequally", "by_shares", "by_percentage")

TOLERANCE = Decimal("0.01")

CENT = Decimal("0.01")


def _to_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0")
    return Decimal(str(value))


def _round2(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _distribute(total: Decimal, weights: list[Decimal]) -> list[Decimal]:
    """
    Split total in proportion to weights, in whole cents.

    Each share is rounded down to the cent, then the cents left over are
    handed out one at a time starting from the last weighted participant.
    Shares are never negative and always add up to total exactly.
    """
    total = _round2(total)
    weight_sum = sum(weights, Decimal("0"))
    owed = [(total * w / weight_sum).quantize(CENT, rounding=ROUND_DOWN) for w in weights]

    leftover = int((total - sum(owed, Decimal("0"))) / CENT)
    weighted = [idx for idx, w in enumerate(weights) if w > 0]
    for k in range(leftover):
        owed[weighted[-1 - (k % len(weighted))]] += CENT
    return owed


def validate_split(amount, participants: list[dict]) -> None:
    """
    Check that participant amounts add up to the expense amount.

    Args:
        amount: Expense total.
        participants: List of dicts with member_id and amount_owed.

    Raises:
        ValueError: If the sum differs from amount by more than 0.01, or
            any owed amount is negative.
    """
    total = _to_decimal(amount)
    owed_sum = Decimal("0")
    for p in participants:
        owed = _to_decimal(p.get("amount_owed"))
        if owed < 0:
            raise ValueError(f"amount_owed for '{p.get('member_id')}' cannot be negative")
        owed_sum += owed

    if abs(owed_sum - total) > TOLERANCE:
        raise ValueError(
            f"Sum of amounts ({_round2(owed_sum)}) must equal total expense ({_round2(total)})"
        )


def compute_split(amount, split_type: str, participants: list[dict]) -> list[dict]:
    """
    Calculate how much each participant owes for an expense.

    Split types:
        - equally: amount / n for every participant
        - unequally: amount_owed supplied by the caller, checked against amount
        - by_shares: proportional to each participant's shares; falls back to
          an equal split when all shares are zero
        - by_percentage: amount * percentage / 100; percentages must total 100

    Args:
        amount: Expense total (must be > 0).
        split_type: One of SPLIT_TYPES.
        participants: Non-empty list of participant dicts.

    Returns:
        list[dict]: {member_id, amount_owed} per participant, in input order.

    Raises:
        ValueError: On an unknown split type, empty participants, a
            non-positive amount, or amounts that do not add up.
    """
    if split_type not in SPLIT_TYPES:
        raise ValueError(f"split_type must be one of {SPLIT_TYPES}, got: {split_type}")
    if not participants:
        raise ValueError("participants must be a non-empty list")

    total = _to_decimal(amount)
    if total <= 0:
        raise ValueError(f"amount must be a positive number, got: {amount}")

    member_ids = [p["member_id"] for p in participants]
    if len(set(member_ids)) != len(member_ids):
        raise ValueError("participants must not repeat a member")

    if split_type == "equally":
        owed = _distribute(total, [Decimal("1")] * len(participants))

    elif split_type == "unequally":
        validate_split(total, participants)
        owed = [_round2(_to_decimal(p.get("amount_owed"))) for p in participants]

    elif split_type == "by_shares":
        shares = [_to_decimal(p.get("shares")) for p in participants]
        if any(s < 0 for s in shares):
            raise ValueError("shares cannot be negative")
        if sum(shares, Decimal("0")) > 0:
            owed = _distribute(total, shares)
        else:
            owed = _distribute(total, [Decimal("1")] * len(participants))

    else:
        percentages = [_to_decimal(p.get("percentage")) for p in participants]
        if any(pct < 0 for pct in percentages):
            raise ValueError("percentage cannot be negative")
        pct_sum = sum(percentages, Decimal("0"))
        if abs(pct_sum - 100) > TOLERANCE:
            raise ValueError(f"Sum of percentages ({pct_sum}%) must equal 100%")
        # Weighted by the actual sum so a 100.01% entry cannot overshoot the total
        owed = _distribute(total, percentages)

    return [
        {"member_id": member_id, "amount_owed": float(value)}
        for member_id, value in zip(member_ids, owed)
    ]
