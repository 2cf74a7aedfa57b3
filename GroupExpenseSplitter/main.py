"""
GroupExpenseSplitter - FastAPI Web Backend

This module serves as the main entry point for the group expense splitting
API.

Features:
    - RESTful API for managing groups, members, expenses and settlements
    - Integration with Firebase Firestore backend
    - Balance calculation and debt simplification
    - Spending analytics and activity history

Endpoints:
    POST   /groups                                            - Create a new group
    GET    /groups                                            - List groups
    GET    /groups/{group_id}                                 - Get a group
    PATCH  /groups/{group_id}                                 - Update name / description
    POST   /groups/{group_id}/archive                         - Archive a settled group
    POST   /groups/{group_id}/members                         - Add member to group
    GET    /groups/{group_id}/members                         - List members
    GET    /groups/{group_id}/members/{member_id}/explanation - Itemised balance
    POST   /groups/{group_id}/expenses                        - Add expense to group
    GET    /groups/{group_id}/expenses                        - List expenses
    PUT    /groups/{group_id}/expenses/{expense_id}           - Edit an expense
    DELETE /groups/{group_id}/expenses/{expense_id}           - Delete an expense
    POST   /groups/{group_id}/settlements                     - Record a settlement
    GET    /groups/{group_id}/settlements                     - List settlements
    DELETE /groups/{group_id}/settlements/{settlement_id}     - Delete a settlement
    GET    /groups/{group_id}/balances                        - Balances and settlement plan
    GET    /groups/{group_id}/analytics                       - Spending analytics
    GET    /groups/{group_id}/history                         - Activity history
    POST   /groups/{group_id}/history/{event_id}/restore      - Restore a deleted expense
    GET    /overview                                          - Balances across all groups
    POST   /calculate                                         - Stateless calculation
    GET    /health                                            - Health check

Usage:
    uvicorn main:app --reload
"""

import logging
from typing import Literal, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field, model_validator

from analytics import generate_analytics
from balances import compute_balances
from config.settings import settings
from expenses import (
    add_expense,
    delete_expense,
    get_expense,
    get_expenses,
    restore_expense,
    update_expense,
)
from firebase_store import save_analytics, save_balances, save_transfers
from groups import (
    add_member,
    archive_group,
    create_group,
    get_group,
    get_members,
    list_groups,
    update_group,
)
from history import get_event, get_history
from settlements import delete_settlement, get_settlements, record_settlement
from simplifier import simplify_debts
from splits import SPLIT_TYPES
from utils import aggregate_balances, explain_member_balance, format_currency, member_positions

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger("groupsplit.api")

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


# =============================================================================
# Pydantic Models for Request/Response Validation
# =============================================================================

class GroupCreate(BaseModel):
    """Request model for creating a group."""
    name: str = Field(..., min_length=1, description="Group name")
    description: Optional[str] = Field(None, description="Optional description")
    created_by: Optional[str] = Field(None, description="ID of the creating user")


class GroupResponse(BaseModel):
    """Response model for group data."""
    group_id: str
    name: str
    description: Optional[str]
    created_by: Optional[str]
    created_at: Optional[str]
    total_expenses: float
    archived: bool


class GroupUpdate(BaseModel):
    """Request model for updating a group."""
    name: Optional[str] = Field(None, min_length=1, description="New group name")
    description: Optional[str] = Field(None, description="New description")
    actor_id: Optional[str] = Field(None, description="Who made the change")


class MemberCreate(BaseModel):
    """Request model for adding a member."""
    name: str = Field(..., min_length=1, description="Member name")
    email: Optional[str] = Field(None, description="Optional email address")


class MemberResponse(BaseModel):
    """Response model for member data."""
    member_id: str
    name: str
    email: Optional[str]
    joined_at: Optional[str]


class ParticipantIn(BaseModel):
    """One participant of an expense; which field matters depends on split_type."""
    member_id: str = Field(..., min_length=1)
    amount_owed: Optional[float] = Field(None, ge=0)
    shares: Optional[float] = Field(None, ge=0)
    percentage: Optional[float] = Field(None, ge=0, le=100)


class PayerIn(BaseModel):
    """One payer of a multi-payer expense."""
    member_id: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0)


class ExpenseCreate(BaseModel):
    """Request model for adding an expense."""
    description: str = Field(..., min_length=1, description="What the expense was for")
    amount: float = Field(..., gt=0, description="Expense amount (must be > 0)")
    payer_id: Optional[str] = Field(None, description="Member ID of payer")
    payers: Optional[list[PayerIn]] = Field(None, description="Multi-payer breakdown")
    split_type: Literal[SPLIT_TYPES] = Field("equally", description="How to split the amount")
    participants: list[ParticipantIn] = Field(..., min_length=1, description="Who shares the expense")
    date: str = Field(..., pattern=DATE_PATTERN, description="Expense date (YYYY-MM-DD)")
    category: Optional[str] = Field(None, description="Category; classified if omitted")
    actor_id: Optional[str] = Field(None, description="Who recorded the expense")

    @model_validator(mode="after")
    def _require_payer(self):
        if not self.payer_id and not self.payers:
            raise ValueError("Either payer_id or payers must be provided")
        return self


class ExpenseResponse(BaseModel):
    """Response model for expense data."""
    expense_id: str
    description: str
    amount: float
    payer_id: str
    payers: Optional[list[dict]]
    split_type: str
    participants: list[dict]
    date: str
    category: str


class SettlementCreate(BaseModel):
    """Request model for recording a settlement."""
    payer_id: str = Field(..., min_length=1, description="Member who paid")
    payee_id: str = Field(..., min_length=1, description="Member who received")
    amount: float = Field(..., gt=0, description="Amount paid (must be > 0)")
    date: str = Field(..., pattern=DATE_PATTERN, description="Payment date (YYYY-MM-DD)")
    notes: Optional[str] = Field(None, description="Optional note")
    actor_id: Optional[str] = Field(None, description="Who recorded the settlement")


class SettlementResponse(BaseModel):
    """Response model for settlement data."""
    settlement_id: str
    payer_id: str
    payee_id: str
    amount: float
    date: str
    notes: Optional[str]


class ParticipantRecord(BaseModel):
    member_id: str
    amount_owed: float = Field(..., ge=0)


class ExpenseRecord(BaseModel):
    """Expense as consumed by the balance calculator."""
    payer_id: Optional[str] = None
    payers: Optional[list[PayerIn]] = None
    amount: float = Field(..., gt=0)
    participants: list[ParticipantRecord] = []

    @model_validator(mode="after")
    def _require_payer(self):
        if not self.payer_id and not self.payers:
            raise ValueError("Either payer_id or payers must be provided")
        return self


class SettlementRecord(BaseModel):
    """Settlement as consumed by the balance calculator."""
    payer_id: str
    payee_id: str
    amount: float = Field(..., gt=0)


class CalculateRequest(BaseModel):
    """Request model for a stateless calculation."""
    members: list[str]
    expenses: list[ExpenseRecord] = []
    settlements: list[SettlementRecord] = []
    strict: bool = False


class CalculateResponse(BaseModel):
    """Response model for calculation results."""
    balances: list[dict]
    transfers: list[dict]


class BalancesResponse(BaseModel):
    """Response model for a group's balances."""
    balances: list[dict]
    transfers: list[dict]
    positions: list[dict]


class ExplanationResponse(BaseModel):
    """Response model for a member's itemised balance."""
    member_id: str
    name: str
    items: list[dict]
    total_paid: float
    total_share: float
    settlements_paid: float
    settlements_received: float
    net_balance: float
    net_balance_display: str


class OverviewResponse(BaseModel):
    """Response model for balances summed across active groups."""
    currency: str
    balances: list[dict]


class AnalyticsResponse(BaseModel):
    """Response model for group analytics."""
    total_spent: float
    category_breakdown: list[dict]
    monthly_spending: list[dict]
    payer_totals: list[dict]


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="Group Expense Splitter",
    description="Track shared expenses in a group and work out who owes whom",
    version="1.0.0"
)


# =============================================================================
# Helper Functions
# =============================================================================

def _require_group(group_id: str):
    """Fetch a group or raise 404."""
    group = get_group(group_id)
    if group is None:
        raise HTTPException(status_code=404, detail=f"Group {group_id} not found")
    return group


def _raise_for(e: Exception):
    """Map a domain exception onto an HTTP error."""
    if isinstance(e, HTTPException):
        raise e
    if isinstance(e, ValueError):
        raise HTTPException(status_code=400, detail=str(e))
    if isinstance(e, RuntimeError):
        raise HTTPException(status_code=503, detail=str(e))
    logger.exception("Unhandled error")
    raise HTTPException(status_code=500, detail=str(e))


def _expense_response(e) -> ExpenseResponse:
    return ExpenseResponse(
        expense_id=e.expense_id,
        description=e.description,
        amount=e.amount,
        payer_id=e.payer_id,
        payers=e.payers,
        split_type=e.split_type,
        participants=e.participants,
        date=e.date,
        category=e.category
    )


def _expense_fields(expense_data: ExpenseCreate) -> dict:
    """Keyword arguments shared by add_expense() and update_expense()."""
    return {
        "description": expense_data.description,
        "amount": expense_data.amount,
        "payer_id": expense_data.payer_id,
        "split_type": expense_data.split_type,
        "participants": [p.model_dump(exclude_none=True) for p in expense_data.participants],
        "date": expense_data.date,
        "category": expense_data.category,
        "payers": [p.model_dump() for p in expense_data.payers] if expense_data.payers else None,
    }


def _group_balances(group_id: str, members) -> list[dict]:
    """Net balances of a group's members from its stored records."""
    return compute_balances(
        [m.member_id for m in members],
        [e.to_record() for e in get_expenses(group_id)],
        [s.to_record() for s in get_settlements(group_id)]
    )


# =============================================================================
# API Endpoints
# =============================================================================

@app.post("/groups", response_model=GroupResponse, status_code=201)
async def create_new_group(group_data: GroupCreate):
    """Create a new group."""
    try:
        group = create_group(
            name=group_data.name,
            created_by=group_data.created_by,
            description=group_data.description
        )
        return GroupResponse(**group.to_dict())
    except Exception as e:
        _raise_for(e)


@app.get("/groups/{group_id}", response_model=GroupResponse)
async def read_group(group_id: str):
    """Get a single group."""
    try:
        return GroupResponse(**_require_group(group_id).to_dict())
    except Exception as e:
        _raise_for(e)


@app.get("/groups", response_model=list[GroupResponse])
async def list_all_groups(include_archived: bool = False):
    """List groups, hiding archived ones unless asked."""
    try:
        return [GroupResponse(**g.to_dict()) for g in list_groups(include_archived)]
    except Exception as e:
        _raise_for(e)


@app.patch("/groups/{group_id}", response_model=GroupResponse)
async def edit_group(group_id: str, group_data: GroupUpdate):
    """Rename a group or change its description."""
    try:
        _require_group(group_id)
        fields = group_data.model_dump(exclude_none=True, exclude={"actor_id"})
        group = update_group(group_id, actor_id=group_data.actor_id, **fields)
        return GroupResponse(**group.to_dict())
    except Exception as e:
        _raise_for(e)


@app.post("/groups/{group_id}/archive", response_model=GroupResponse)
async def archive_settled_group(group_id: str, actor_id: Optional[str] = None):
    """Archive a group; refused with 409 while any debt is still open."""
    try:
        _require_group(group_id)
        archive_group(group_id, actor_id=actor_id)
        return GroupResponse(**_require_group(group_id).to_dict())
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        _raise_for(e)


@app.post("/groups/{group_id}/members", response_model=MemberResponse, status_code=201)
async def add_group_member(group_id: str, member_data: MemberCreate):
    """Add a member to a group."""
    try:
        _require_group(group_id)
        member = add_member(group_id=group_id, name=member_data.name, email=member_data.email)
        return MemberResponse(**member.to_dict())
    except Exception as e:
        _raise_for(e)


@app.get("/groups/{group_id}/members", response_model=list[MemberResponse])
async def list_group_members(group_id: str):
    """List members of a group."""
    try:
        _require_group(group_id)
        return [MemberResponse(**m.to_dict()) for m in get_members(group_id)]
    except Exception as e:
        _raise_for(e)


@app.post("/groups/{group_id}/expenses", response_model=ExpenseResponse, status_code=201)
async def add_group_expense(group_id: str, expense_data: ExpenseCreate):
    """
    Add an expense to a group.

    Request flow:
        1. Validate input using Pydantic model
        2. Check the group exists
        3. Call add_expense() from expenses.py (computes the split)
        4. Return created expense data
    """
    try:
        _require_group(group_id)
        expense = add_expense(
            group_id=group_id,
            actor_id=expense_data.actor_id,
            **_expense_fields(expense_data)
        )
        return _expense_response(expense)
    except Exception as e:
        _raise_for(e)


@app.get("/groups/{group_id}/expenses", response_model=list[ExpenseResponse])
async def list_group_expenses(group_id: str):
    """List expenses of a group."""
    try:
        _require_group(group_id)
        return [_expense_response(e) for e in get_expenses(group_id)]
    except Exception as e:
        _raise_for(e)


@app.delete("/groups/{group_id}/expenses/{expense_id}", response_model=ExpenseResponse)
async def remove_group_expense(group_id: str, expense_id: str):
    """Delete an expense from a group."""
    try:
        _require_group(group_id)
        return _expense_response(delete_expense(group_id, expense_id))
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        _raise_for(e)


@app.put("/groups/{group_id}/expenses/{expense_id}", response_model=ExpenseResponse)
async def edit_group_expense(group_id: str, expense_id: str, expense_data: ExpenseCreate):
    """Replace an expense; the group's total is adjusted by the difference."""
    try:
        _require_group(group_id)
        if get_expense(group_id, expense_id) is None:
            raise HTTPException(status_code=404, detail=f"Expense {expense_id} not found")
        expense = update_expense(
            group_id=group_id,
            expense_id=expense_id,
            actor_id=expense_data.actor_id,
            **_expense_fields(expense_data)
        )
        return _expense_response(expense)
    except Exception as e:
        _raise_for(e)


@app.post("/groups/{group_id}/settlements", response_model=SettlementResponse, status_code=201)
async def add_group_settlement(group_id: str, settlement_data: SettlementCreate):
    """Record a payment between two members."""
    try:
        _require_group(group_id)
        settlement = record_settlement(
            group_id=group_id,
            payer_id=settlement_data.payer_id,
            payee_id=settlement_data.payee_id,
            amount=settlement_data.amount,
            date=settlement_data.date,
            notes=settlement_data.notes,
            actor_id=settlement_data.actor_id
        )
        return SettlementResponse(**settlement.to_dict())
    except Exception as e:
        _raise_for(e)


@app.get("/groups/{group_id}/settlements", response_model=list[SettlementResponse])
async def list_group_settlements(group_id: str):
    """List recorded settlements of a group."""
    try:
        _require_group(group_id)
        return [SettlementResponse(**s.to_dict()) for s in get_settlements(group_id)]
    except Exception as e:
        _raise_for(e)


@app.delete("/groups/{group_id}/settlements/{settlement_id}", status_code=204)
async def remove_group_settlement(group_id: str, settlement_id: str, actor_id: Optional[str] = None):
    """Delete a recorded settlement."""
    try:
        _require_group(group_id)
        delete_settlement(group_id, settlement_id, actor_id=actor_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        _raise_for(e)


@app.get("/groups/{group_id}/balances", response_model=BalancesResponse)
async def get_group_balances(group_id: str):
    """
    Calculate and persist balances for a group.

    Request flow:
        1. Fetch members, expenses and settlements from Firestore
        2. Calculate balances (balances.py)
        3. Simplify debts (simplifier.py)
        4. Build per-member positions (utils.py)
        5. Persist balances and transfers (firebase_store.py)
        6. Return complete results
    """
    try:
        _require_group(group_id)
        members = get_members(group_id)
        names = {m.member_id: m.name for m in members}

        balances = _group_balances(group_id, members)
        transfers = simplify_debts(balances)

        positions = member_positions(balances, transfers)
        for position in positions:
            position["name"] = names.get(position["member_id"])

        save_balances(group_id, balances)
        save_transfers(group_id, transfers)

        return BalancesResponse(balances=balances, transfers=transfers, positions=positions)
    except Exception as e:
        _raise_for(e)


@app.get("/groups/{group_id}/members/{member_id}/explanation", response_model=ExplanationResponse)
async def explain_group_member(group_id: str, member_id: str):
    """Itemise the expenses and settlements behind one member's balance."""
    try:
        _require_group(group_id)
        member = next((m for m in get_members(group_id) if m.member_id == member_id), None)
        if member is None:
            raise HTTPException(status_code=404, detail=f"Member {member_id} not found")

        explanation = explain_member_balance(
            member_id,
            [e.to_record() for e in get_expenses(group_id)],
            [s.to_record() for s in get_settlements(group_id)]
        )
        return ExplanationResponse(
            name=member.name,
            net_balance_display=format_currency(explanation["net_balance"]),
            **explanation
        )
    except Exception as e:
        _raise_for(e)


@app.get("/groups/{group_id}/analytics", response_model=AnalyticsResponse)
async def get_group_analytics(group_id: str):
    """Calculate, persist and return spending analytics for a group."""
    try:
        _require_group(group_id)
        members = [m.to_dict() for m in get_members(group_id)]
        expenses = [e.to_dict() for e in get_expenses(group_id)]

        analytics = generate_analytics(members, expenses)
        save_analytics(group_id, analytics)
        return AnalyticsResponse(**analytics)
    except Exception as e:
        _raise_for(e)


@app.get("/groups/{group_id}/history")
async def get_group_history(group_id: str):
    """Activity history of a group, newest first."""
    try:
        _require_group(group_id)
        return get_history(group_id)
    except Exception as e:
        _raise_for(e)


@app.post("/groups/{group_id}/history/{event_id}/restore", response_model=ExpenseResponse, status_code=201)
async def restore_group_expense(group_id: str, event_id: str, actor_id: Optional[str] = None):
    """Bring back a deleted expense from its history event."""
    try:
        _require_group(group_id)
        if get_event(group_id, event_id) is None:
            raise HTTPException(status_code=404, detail=f"History event {event_id} not found")
        return _expense_response(restore_expense(group_id, event_id, actor_id=actor_id))
    except Exception as e:
        _raise_for(e)


@app.get("/overview", response_model=OverviewResponse)
async def balances_overview():
    """
    Net balance of every person across all active groups.

    Members are matched across groups by email; members without an email
    are reported per group as "{group_id}/{member_id}".
    """
    try:
        per_group = []
        for group in list_groups():
            members = get_members(group.group_id)
            balances = _group_balances(group.group_id, members)
            keys = {m.member_id: m.email or f"{group.group_id}/{m.member_id}" for m in members}
            per_group.append([
                {"member_id": keys[b["member_id"]], "net_balance": b["net_balance"]}
                for b in balances
            ])

        overview = aggregate_balances(per_group)
        for entry in overview:
            entry["display"] = format_currency(entry["net_balance"])
        return OverviewResponse(currency=settings.CURRENCY_CODE, balances=overview)
    except Exception as e:
        _raise_for(e)


@app.post("/calculate", response_model=CalculateResponse)
async def calculate(payload: CalculateRequest):
    """
    Compute balances and a settlement plan from records in the request body.

    Nothing is read from or written to Firestore.
    """
    try:
        balances = compute_balances(
            payload.members,
            [e.model_dump(exclude_none=True) for e in payload.expenses],
            [s.model_dump() for s in payload.settlements],
            strict=payload.strict
        )
        transfers = simplify_debts(balances, strict=payload.strict)
        return CalculateResponse(balances=balances, transfers=transfers)
    except Exception as e:
        _raise_for(e)


# =============================================================================
# Health Check Endpoint
# =============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint to verify API is running."""
    return {"status": "healthy", "service": "Group Expense Splitter"}


# =============================================================================
# Run with: python main.py
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=True)
