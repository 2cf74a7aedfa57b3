import pytest

from balances import compute_balances
from simplifier import simplify_debts
from utils import (
    aggregate_balances,
    explain_member_balance,
    format_currency,
    generate_id,
    member_positions,
    next_sequential_id,
    validate_amount,
    validate_date,
    validate_non_empty_string,
)

expenses = [
    {
        "expense_id": "E001",
        "description": "Hotel",
        "payer_id": "a",
        "amount": 90,
        "participants": [
            {"member_id": "a", "amount_owed": 30},
            {"member_id": "b", "amount_owed": 30},
            {"member_id": "c", "amount_owed": 30},
        ]
    },
    {
        "expense_id": "E002",
        "description": "Taxi",
        "payer_id": "b",
        "amount": 20,
        "participants": [
            {"member_id": "b", "amount_owed": 10},
            {"member_id": "c", "amount_owed": 10},
        ]
    },
]
settlements = [{"settlement_id": "S001", "payer_id": "c", "payee_id": "a", "amount": 15, "notes": "cash"}]


def test_member_positions():
    balances = [
        {"member_id": "a", "net_balance": -30.0},
        {"member_id": "b", "net_balance": 10.0},
        {"member_id": "c", "net_balance": 20.0},
    ]
    positions = member_positions(balances, simplify_debts(balances))

    assert positions[0] == {
        "member_id": "a",
        "net_balance": -30.0,
        "owes": [{"to": "c", "amount": 20.0}, {"to": "b", "amount": 10.0}],
        "owed_by": []
    }
    assert positions[1]["owed_by"] == [{"from": "a", "amount": 10.0}]
    assert positions[2]["owed_by"] == [{"from": "a", "amount": 20.0}]


def test_aggregate_balances_across_groups():
    trip = [{"member_id": "a", "net_balance": 10.1}, {"member_id": "b", "net_balance": -10.1}]
    flat = [{"member_id": "b", "net_balance": 20.2}, {"member_id": "c", "net_balance": -20.2}]

    assert aggregate_balances([trip, flat]) == [
        {"member_id": "a", "net_balance": 10.1},
        {"member_id": "b", "net_balance": 10.1},
        {"member_id": "c", "net_balance": -20.2},
    ]


@pytest.mark.parametrize("member_id", ["a", "b", "c"])
def test_explanation_agrees_with_balances(member_id):
    balances = {b["member_id"]: b["net_balance"] for b in compute_balances(["a", "b", "c"], expenses, settlements)}
    explanation = explain_member_balance(member_id, expenses, settlements)
    assert explanation["net_balance"] == balances[member_id]


def test_explanation_items():
    explanation = explain_member_balance("c", expenses, settlements)

    assert explanation["total_paid"] == 0.0
    assert explanation["total_share"] == 40.0
    assert explanation["settlements_paid"] == 15.0
    assert [item["record_id"] for item in explanation["items"]] == ["E001", "E002", "S001"]
    assert explanation["items"][-1]["effect"] == 15.0


def test_explanation_for_idle_member():
    explanation = explain_member_balance("z", expenses, settlements)
    assert explanation["items"] == []
    assert explanation["net_balance"] == 0.0


def test_next_sequential_id(fake_db):
    collection = fake_db.collection("things")
    assert next_sequential_id(collection, "E") == "E001"

    collection.document("E001").set({})
    collection.document("E007").set({})
    collection.document("legacy-id").set({})
    assert next_sequential_id(collection, "E") == "E008"


def test_format_currency():
    assert format_currency(1234.5, "₹") == "₹1,234.50"
    assert format_currency(-20, "$") == "-$20.00"


@pytest.mark.parametrize("value, expected", [
    (10, True), ("2.5", True), (0, False), (-1, False), ("abc", False), (None, False), (True, False),
])
def test_validate_amount(value, expected):
    assert validate_amount(value) is expected


def test_validators_raise_value_error():
    assert validate_date("2025-12-01", "date")
    with pytest.raises(ValueError):
        validate_date("01/12/2025", "date")
    with pytest.raises(ValueError):
        validate_non_empty_string("   ", "name")


def test_generate_id():
    assert generate_id("M", 3) == "M003"
    assert generate_id("T", 1234) == "T1234"
