from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from expense_tracker.api.deps import RowId, get_current_user, get_expense_service
from expense_tracker.schemas.auth import UserPublic
from expense_tracker.schemas.expense import (
    ExpenseCreate,
    ExpenseDetail,
    ExpenseFilter,
    ExpenseOut,
    ExpenseSection,
    ExpenseUpdate,
)
from expense_tracker.services.expenses import ExpenseService

router = APIRouter(prefix="/expenses", tags=["expenses"])


@router.get("", response_model=list[ExpenseOut])
def list_expenses(
    filter: ExpenseFilter = ExpenseFilter.TODAY,
    expenses: ExpenseService = Depends(get_expense_service),
    current_user: UserPublic = Depends(get_current_user),
) -> list[ExpenseOut]:
    return expenses.list_expenses(current_user.id, filter)


@router.get("/sections", response_model=list[ExpenseSection])
def list_expense_sections(
    filter: ExpenseFilter = ExpenseFilter.TODAY,
    expenses: ExpenseService = Depends(get_expense_service),
    current_user: UserPublic = Depends(get_current_user),
) -> list[ExpenseSection]:
    return expenses.list_sections(current_user.id, filter)


@router.post("", response_model=ExpenseDetail)
def create_expense(
    payload: ExpenseCreate,
    expenses: ExpenseService = Depends(get_expense_service),
    current_user: UserPublic = Depends(get_current_user),
) -> ExpenseDetail:
    return expenses.add_expense(
        current_user.id,
        payload.amount,
        payload.category_id,
        payload.date,
        payload.note,
    )


@router.get("/{expense_id}", response_model=ExpenseDetail)
def get_expense(
    expense_id: RowId,
    expenses: ExpenseService = Depends(get_expense_service),
    current_user: UserPublic = Depends(get_current_user),
) -> ExpenseDetail:
    row = expenses.get_expense(current_user.id, expense_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Expense not found")
    return row


@router.patch("/{expense_id}", response_model=ExpenseDetail)
def update_expense(
    expense_id: RowId,
    payload: ExpenseUpdate,
    expenses: ExpenseService = Depends(get_expense_service),
    current_user: UserPublic = Depends(get_current_user),
) -> ExpenseDetail:
    return expenses.update_expense(
        current_user.id,
        expense_id,
        payload.amount,
        payload.category_id,
        payload.date,
        payload.note,
    )


@router.delete("/{expense_id}")
def delete_expense(
    expense_id: RowId,
    expenses: ExpenseService = Depends(get_expense_service),
    current_user: UserPublic = Depends(get_current_user),
) -> dict:
    if expenses.get_expense(current_user.id, expense_id) is None:
        raise HTTPException(status_code=404, detail="Expense not found")

    expenses.delete_expense(current_user.id, expense_id)
    return {"ok": True}
