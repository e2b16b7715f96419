"""费用类别API"""

from typing import Any, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from garment_erp.core.deps import get_db
from garment_erp.models import Expense, ExpenseCategory
from garment_erp.schemas.expense import ExpenseCategoryCreate, ExpenseCategoryUpdate, ExpenseCategoryResponse
from garment_erp.api.api_v1.endpoints.audit_logs import create_audit_log, snapshot

router = APIRouter()


async def _ensure_unique_name(db: AsyncSession, name: str, exclude_id: Optional[int] = None):
    query = select(ExpenseCategory).where(ExpenseCategory.name == name)
    if exclude_id:
        query = query.where(ExpenseCategory.id != exclude_id)
    if (await db.execute(query)).scalar_one_or_none():
        raise HTTPException(status_code=409, detail=f"费用类别已存在: {name}")


@router.get("/", response_model=List[ExpenseCategoryResponse])
async def list_categories(
    *,
    db: AsyncSession = Depends(get_db),
    is_active: Optional[bool] = Query(None)) -> Any:
    """获取费用类别列表"""
    query = select(ExpenseCategory)
    if is_active is not None:
        query = query.where(ExpenseCategory.is_active == is_active)
    return (await db.execute(query.order_by(ExpenseCategory.name))).scalars().all()


@router.post("/", response_model=ExpenseCategoryResponse)
async def create_category(
    *,
    db: AsyncSession = Depends(get_db),
    category_in: ExpenseCategoryCreate) -> Any:
    """创建费用类别"""
    await _ensure_unique_name(db, category_in.name)

    category = ExpenseCategory(**category_in.model_dump())
    db.add(category)
    await db.flush()
    await create_audit_log(db, "create", "expense_category", category.id, category.name,
                           f"创建费用类别 {category.name}", new_value=snapshot(category))
    await db.commit()
    await db.refresh(category)
    return category


@router.put("/{category_id}", response_model=ExpenseCategoryResponse)
async def update_category(
    *,
    db: AsyncSession = Depends(get_db),
    category_id: int,
    category_in: ExpenseCategoryUpdate) -> Any:
    """更新费用类别"""
    category = await db.get(ExpenseCategory, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="费用类别不存在")

    update_data = category_in.model_dump(exclude_unset=True)
    if update_data.get("name") and update_data["name"] != category.name:
        await _ensure_unique_name(db, update_data["name"], exclude_id=category_id)

    old_value = snapshot(category)
    for field, value in update_data.items():
        setattr(category, field, value)
    await create_audit_log(db, "update", "expense_category", category.id, category.name,
                           f"更新费用类别 {category.name}", old_value=old_value, new_value=snapshot(category))
    await db.commit()
    await db.refresh(category)
    return category


@router.delete("/{category_id}")
async def delete_category(
    *,
    db: AsyncSession = Depends(get_db),
    category_id: int) -> Any:
    """删除费用类别"""
    category = await db.get(ExpenseCategory, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="费用类别不存在")

    usage = (await db.execute(
        select(func.count(Expense.id)).where(Expense.category_id == category_id)
    )).scalar() or 0
    if usage > 0:
        raise HTTPException(
            status_code=400,
            detail=f"该类别已被 {usage} 条费用使用，无法删除，可改为停用"
        )

    await create_audit_log(db, "delete", "expense_category", category.id, category.name,
                           f"删除费用类别 {category.name}", old_value=snapshot(category))
    await db.delete(category)
    await db.commit()

    return {"message": "删除成功"}
