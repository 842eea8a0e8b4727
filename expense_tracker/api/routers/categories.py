from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from expense_tracker.api.deps import RowId, get_category_service, get_current_user
from expense_tracker.schemas.auth import UserPublic
from expense_tracker.schemas.category import CategoryCreate, CategoryOut, CategoryUpdate
from expense_tracker.services.categories import CategoryService

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=list[CategoryOut])
def list_categories(
    categories: CategoryService = Depends(get_category_service),
    current_user: UserPublic = Depends(get_current_user),
) -> list[CategoryOut]:
    return categories.list_categories(current_user.id)


@router.post("", response_model=CategoryOut)
def create_category(
    payload: CategoryCreate,
    categories: CategoryService = Depends(get_category_service),
    current_user: UserPublic = Depends(get_current_user),
) -> CategoryOut:
    return categories.add_category(current_user.id, payload.name)


@router.get("/{category_id}", response_model=CategoryOut)
def get_category(
    category_id: RowId,
    categories: CategoryService = Depends(get_category_service),
    current_user: UserPublic = Depends(get_current_user),
) -> CategoryOut:
    row = categories.get_category(current_user.id, category_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Category not found")
    return row


@router.patch("/{category_id}", response_model=CategoryOut)
def rename_category(
    category_id: RowId,
    payload: CategoryUpdate,
    categories: CategoryService = Depends(get_category_service),
    current_user: UserPublic = Depends(get_current_user),
) -> CategoryOut:
    return categories.rename_category(current_user.id, category_id, payload.name)


@router.delete("/{category_id}")
def delete_category(
    category_id: RowId,
    categories: CategoryService = Depends(get_category_service),
    current_user: UserPublic = Depends(get_current_user),
) -> dict:
    if categories.get_category(current_user.id, category_id) is None:
        raise HTTPException(status_code=404, detail="Category not found")

    ok = categories.delete_category(current_user.id, category_id)
    return {"ok": ok, "mode": "disabled"}
