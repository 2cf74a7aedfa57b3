import pytest
from fastapi.testclient import TestClient

from main import app

client = TestClient(app)


@pytest.fixture
def group_id(fake_db):
    response = client.post("/groups", json={"name": "Goa Trip", "created_by": "u1"})
    assert response.status_code == 201
    gid = response.json()["group_id"]
    for name in ("Alice", "Bob", "Chitra"):
        assert client.post(f"/groups/{gid}/members", json={"name": name}).status_code == 201
    return gid


def test_health():
    assert client.get("/health").json()["status"] == "healthy"


def test_calculate_is_stateless():
    payload = {
        "members": ["a", "b"],
        "expenses": [{
            "payer_id": "a",
            "amount": 100,
            "participants": [{"member_id": "a", "amount_owed": 50}, {"member_id": "b", "amount_owed": 50}]
        }],
        "settlements": []
    }
    response = client.post("/calculate", json=payload)

    assert response.status_code == 200
    assert response.json() == {
        "balances": [{"member_id": "a", "net_balance": 50.0}, {"member_id": "b", "net_balance": -50.0}],
        "transfers": [{"from_member": "b", "to_member": "a", "amount": 50.0}]
    }


def test_calculate_strict_mode_returns_400():
    payload = {
        "members": ["a"],
        "expenses": [{"payer_id": "ghost", "amount": 10, "participants": []}],
        "strict": True
    }
    response = client.post("/calculate", json=payload)
    assert response.status_code == 400
    assert "ghost" in response.json()["detail"]


def test_calculate_requires_a_payer():
    payload = {"members": ["a"], "expenses": [{"amount": 10, "participants": []}]}
    assert client.post("/calculate", json=payload).status_code == 422


def test_missing_group_is_404(fake_db):
    assert client.get("/groups/G404").status_code == 404
    assert client.get("/groups/G404/balances").status_code == 404


def test_group_flow(group_id):
    members = client.get(f"/groups/{group_id}/members").json()
    assert [m["name"] for m in members] == ["Alice", "Bob", "Chitra"]

    expense = client.post(f"/groups/{group_id}/expenses", json={
        "description": "Hotel",
        "amount": 300,
        "payer_id": "M001",
        "split_type": "equally",
        "participants": [{"member_id": "M001"}, {"member_id": "M002"}, {"member_id": "M003"}],
        "date": "2025-12-02"
    })
    assert expense.status_code == 201
    assert expense.json()["category"] == "Travel"

    settlement = client.post(f"/groups/{group_id}/settlements", json={
        "payer_id": "M002", "payee_id": "M001", "amount": 100, "date": "2025-12-03"
    })
    assert settlement.status_code == 201

    body = client.get(f"/groups/{group_id}/balances").json()
    assert body["balances"] == [
        {"member_id": "M001", "net_balance": 100.0},
        {"member_id": "M002", "net_balance": 0.0},
        {"member_id": "M003", "net_balance": -100.0},
    ]
    assert body["transfers"] == [{"from_member": "M003", "to_member": "M001", "amount": 100.0}]
    assert body["positions"][0]["name"] == "Alice"
    assert body["positions"][0]["owed_by"] == [{"from": "M003", "amount": 100.0}]

    assert client.get(f"/groups/{group_id}").json()["total_expenses"] == 300.0


def test_invalid_expense_is_400(group_id):
    response = client.post(f"/groups/{group_id}/expenses", json={
        "description": "Fuel",
        "amount": 100,
        "payer_id": "M001",
        "split_type": "unequally",
        "participants": [{"member_id": "M001", "amount_owed": 10}],
        "date": "2025-12-02"
    })
    assert response.status_code == 400


def test_delete_expense(group_id):
    client.post(f"/groups/{group_id}/expenses", json={
        "description": "Snacks",
        "amount": 30,
        "payer_id": "M002",
        "participants": [{"member_id": "M001"}, {"member_id": "M002"}],
        "date": "2025-12-02"
    })
    assert client.delete(f"/groups/{group_id}/expenses/E001").status_code == 200
    assert client.get(f"/groups/{group_id}/expenses").json() == []
    assert client.delete(f"/groups/{group_id}/expenses/E001").status_code == 404


def test_analytics_and_history(group_id):
    client.post(f"/groups/{group_id}/expenses", json={
        "description": "Pizza",
        "amount": 45,
        "payer_id": "M003",
        "participants": [{"member_id": "M001"}, {"member_id": "M003"}],
        "date": "2026-01-15"
    })

    analytics = client.get(f"/groups/{group_id}/analytics").json()
    assert analytics["total_spent"] == 45.0
    assert analytics["payer_totals"] == [{"member_id": "M003", "name": "Chitra", "amount": 45.0}]

    history = client.get(f"/groups/{group_id}/history").json()
    assert "expense_created" in {e["event_type"] for e in history}


def test_firestore_unavailable_is_503(no_db):
    assert client.post("/groups", json={"name": "Offline"}).status_code == 503


def _add_dinner(gid, amount=90, payer="M001", members=("M001", "M002")):
    response = client.post(f"/groups/{gid}/expenses", json={
        "description": "Dinner",
        "amount": amount,
        "payer_id": payer,
        "participants": [{"member_id": m} for m in members],
        "date": "2025-12-02"
    })
    assert response.status_code == 201
    return response.json()


def test_list_and_update_groups(group_id):
    client.post("/groups", json={"name": "Flat"})

    assert [g["name"] for g in client.get("/groups").json()] == ["Goa Trip", "Flat"]

    response = client.patch(f"/groups/{group_id}", json={"name": "Goa 2025", "actor_id": "u1"})
    assert response.status_code == 200
    assert response.json()["name"] == "Goa 2025"
    assert client.get(f"/groups/{group_id}").json()["name"] == "Goa 2025"


def test_archive_requires_settled_debts(group_id):
    _add_dinner(group_id)

    refused = client.post(f"/groups/{group_id}/archive")
    assert refused.status_code == 409
    assert "settled" in refused.json()["detail"]

    client.post(f"/groups/{group_id}/settlements", json={
        "payer_id": "M002", "payee_id": "M001", "amount": 45, "date": "2025-12-03"
    })
    archived = client.post(f"/groups/{group_id}/archive", params={"actor_id": "u1"})
    assert archived.status_code == 200
    assert archived.json()["archived"] is True
    assert client.get("/groups").json() == []
    assert len(client.get("/groups", params={"include_archived": True}).json()) == 1


def test_edit_expense(group_id):
    _add_dinner(group_id)

    response = client.put(f"/groups/{group_id}/expenses/E001", json={
        "description": "Dinner and drinks",
        "amount": 120,
        "payer_id": "M002",
        "split_type": "by_percentage",
        "participants": [
            {"member_id": "M001", "percentage": 75},
            {"member_id": "M002", "percentage": 25},
        ],
        "date": "2025-12-02"
    })

    assert response.status_code == 200
    assert response.json()["participants"] == [
        {"member_id": "M001", "amount_owed": 90.0},
        {"member_id": "M002", "amount_owed": 30.0},
    ]
    assert client.get(f"/groups/{group_id}").json()["total_expenses"] == 120.0


def test_edit_missing_expense_is_404(group_id):
    response = client.put(f"/groups/{group_id}/expenses/E404", json={
        "description": "Ghost",
        "amount": 10,
        "payer_id": "M001",
        "participants": [{"member_id": "M001"}],
        "date": "2025-12-02"
    })
    assert response.status_code == 404


def test_delete_settlement(group_id):
    client.post(f"/groups/{group_id}/settlements", json={
        "payer_id": "M002", "payee_id": "M001", "amount": 10, "date": "2025-12-03"
    })

    assert client.delete(f"/groups/{group_id}/settlements/S001").status_code == 204
    assert client.get(f"/groups/{group_id}/settlements").json() == []
    assert client.delete(f"/groups/{group_id}/settlements/S001").status_code == 404


def test_member_explanation(group_id):
    _add_dinner(group_id)

    response = client.get(f"/groups/{group_id}/members/M002/explanation")

    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Bob"
    assert body["net_balance"] == -45.0
    assert body["net_balance_display"] == "-₹45.00"
    assert [item["record_id"] for item in body["items"]] == ["E001"]

    assert client.get(f"/groups/{group_id}/members/M404/explanation").status_code == 404


def test_restore_deleted_expense(group_id):
    _add_dinner(group_id)
    client.delete(f"/groups/{group_id}/expenses/E001")
    event_id = next(
        e["event_id"] for e in client.get(f"/groups/{group_id}/history").json()
        if e["event_type"] == "expense_deleted"
    )

    response = client.post(f"/groups/{group_id}/history/{event_id}/restore")
    assert response.status_code == 201
    assert response.json()["description"] == "Dinner"
    assert [e["expense_id"] for e in client.get(f"/groups/{group_id}/expenses").json()] == ["E001"]

    assert client.post(f"/groups/{group_id}/history/{event_id}/restore").status_code == 400
    assert client.post(f"/groups/{group_id}/history/missing/restore").status_code == 404


def test_overview_matches_members_by_email(fake_db):
    for name in ("Flat", "Trip"):
        gid = client.post("/groups", json={"name": name}).json()["group_id"]
        client.post(f"/groups/{gid}/members", json={"name": "Asha", "email": "asha@example.com"})
        client.post(f"/groups/{gid}/members", json={"name": "Ravi"})
        _add_dinner(gid, amount=100)

    body = client.get("/overview").json()

    assert body["currency"] == "INR"
    assert body["balances"] == [
        {"member_id": "asha@example.com", "net_balance": 100.0, "display": "₹100.00"},
        {"member_id": "G001/M002", "net_balance": -50.0, "display": "-₹50.00"},
        {"member_id": "G002/M002", "net_balance": -50.0, "display": "-₹50.00"},
    ]
