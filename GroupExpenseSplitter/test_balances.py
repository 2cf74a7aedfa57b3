from decimal import Decimal

import pytest

from balances import compute_balances
from errors import UnknownMemberError


def _expense(payer, amount, shares):
    return {
        "payer_id": payer,
        "amount": amount,
        "participants": [{"member_id": m, "amount_owed": owed} for m, owed in shares.items()]
    }


def test_no_activity_gives_zero_balances():
    balances = compute_balances(["a", "b", "c"], [], [])
    assert balances == [
        {"member_id": "a", "net_balance": 0.0},
        {"member_id": "b", "net_balance": 0.0},
        {"member_id": "c", "net_balance": 0.0},
    ]


def test_single_equal_split():
    expenses = [_expense("a", 100, {"a": 50, "b": 50})]
    assert compute_balances(["a", "b"], expenses, []) == [
        {"member_id": "a", "net_balance": 50.0},
        {"member_id": "b", "net_balance": -50.0},
    ]


def test_settlement_cancels_debt():
    expenses = [_expense("a", 100, {"a": 50, "b": 50})]
    settlements = [{"payer_id": "b", "payee_id": "a", "amount": 50}]
    balances = compute_balances(["a", "b"], expenses, settlements)
    assert [b["net_balance"] for b in balances] == [0.0, 0.0]


def test_partial_settlement():
    expenses = [_expense("a", 90, {"a": 30, "b": 30, "c": 30})]
    settlements = [{"payer_id": "c", "payee_id": "a", "amount": 10}]
    balances = compute_balances(["a", "b", "c"], expenses, settlements)
    assert [b["net_balance"] for b in balances] == [50.0, -30.0, -20.0]


def test_payer_not_participating():
    expenses = [_expense("a", 60, {"b": 30, "c": 30})]
    balances = compute_balances(["a", "b", "c"], expenses, [])
    assert [b["net_balance"] for b in balances] == [60.0, -30.0, -30.0]


def test_multi_payer_expense():
    expense = _expense("a", 100, {"a": 25, "b": 25, "c": 50})
    expense["payers"] = [{"member_id": "a", "amount": 70}, {"member_id": "b", "amount": 30}]
    balances = compute_balances(["a", "b", "c"], [expense], [])
    assert [b["net_balance"] for b in balances] == [45.0, 5.0, -50.0]


def test_output_follows_member_order():
    expenses = [_expense("a", 100, {"a": 50, "b": 50})]
    balances = compute_balances(["b", "c", "a"], expenses, [])
    assert [b["member_id"] for b in balances] == ["b", "c", "a"]


def test_unknown_members_are_ignored():
    expenses = [_expense("ghost", 100, {"a": 50, "ghost": 50})]
    settlements = [{"payer_id": "a", "payee_id": "nobody", "amount": 5}]
    balances = compute_balances(["a", "b"], expenses, settlements)
    assert [b["net_balance"] for b in balances] == [-45.0, 0.0]


def test_strict_mode_rejects_unknown_members():
    expenses = [_expense("ghost", 100, {"a": 50, "ghost": 50})]
    with pytest.raises(UnknownMemberError) as exc:
        compute_balances(["a", "b"], expenses, [], strict=True)
    assert exc.value.member_id == "ghost"


def test_rounds_only_the_final_value():
    # Three thirds of 10 leave each debtor at -3.333..., rounded once at the end
    third = Decimal("10") / 3
    expenses = [_expense("a", 10, {"a": third, "b": third, "c": third})]
    balances = compute_balances(["a", "b", "c"], expenses, [])
    assert [b["net_balance"] for b in balances] == [6.67, -3.33, -3.33]


def test_float_drift_does_not_leak():
    expenses = [_expense("a", 0.3, {"a": 0.1, "b": 0.1, "c": 0.1}) for _ in range(10)]
    settlements = [{"payer_id": m, "payee_id": "a", "amount": 1.0} for m in ("b", "c")]
    balances = compute_balances(["a", "b", "c"], expenses, settlements)
    assert [b["net_balance"] for b in balances] == [0.0, 0.0, 0.0]


def test_zero_sum_and_idempotence():
    members = ["a", "b", "c", "d"]
    expenses = [
        _expense("a", 123.45, {"a": 41.15, "b": 41.15, "c": 41.15}),
        _expense("d", 80, {"b": 20, "c": 20, "d": 40}),
        _expense("b", 19.99, {"a": 9.99, "d": 10}),
    ]
    settlements = [{"payer_id": "c", "payee_id": "a", "amount": 20}]

    first = compute_balances(members, expenses, settlements)
    second = compute_balances(members, expenses, settlements)

    assert first == second
    assert abs(sum(b["net_balance"] for b in first)) <= 0.02


def test_does_not_mutate_inputs():
    members = ["a", "b"]
    expenses = [_expense("a", 100, {"a": 50, "b": 50})]
    snapshot = [dict(e, participants=[dict(p) for p in e["participants"]]) for e in expenses]
    compute_balances(members, expenses, [])
    assert expenses == snapshot
    assert members == ["a", "b"]


def test_non_numeric_amount_raises_type_error():
    with pytest.raises(TypeError):
        compute_balances(["a"], [_expense("a", None, {})], [])


@pytest.mark.parametrize("amount", [float("nan"), float("inf"), "-Infinity"])
def test_non_finite_amount_raises_value_error(amount):
    with pytest.raises(ValueError, match="finite"):
        compute_balances(["a"], [_expense("a", amount, {})], [])


def test_non_finite_settlement_raises_value_error():
    with pytest.raises(ValueError, match="finite"):
        compute_balances(["a", "b"], [], [{"payer_id": "a", "payee_id": "b", "amount": float("nan")}])
