"""费用管理API（日常费用 + 月度费用）"""

from collections import OrderedDict
from datetime import date
from typing import Any, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from garment_erp.core.deps import get_db, CURRENT_USER_ID
from garment_erp.models import Expense, ExpenseCategory, MonthlyExpense, Line
from garment_erp.schemas.expense import (
    ExpenseCreate, ExpenseUpdate, ExpenseResponse, ExpenseListResponse,
    MonthlyExpenseCreate, MonthlyExpenseUpdate, MonthlyExpenseResponse, MonthlyExpenseListResponse,
)
from garment_erp.api.api_v1.endpoints.audit_logs import create_audit_log, snapshot

router = APIRouter()


def build_expense_response(expense: Expense) -> ExpenseResponse:
    """构建费用响应"""
    return ExpenseResponse(
        id=expense.id,
        date=expense.date,
        line_id=expense.line_id,
        line_code=expense.line.code if expense.line else "",
        category_id=expense.category_id,
        category_name=expense.category.name if expense.category else "",
        amount=float(expense.amount),
        description=expense.description,
        payment_method=expense.payment_method,
        payment_method_display=expense.payment_method_display,
        created_at=expense.created_at,
        updated_at=expense.updated_at,
    )


def build_monthly_response(item: MonthlyExpense) -> MonthlyExpenseResponse:
    return MonthlyExpenseResponse(
        id=item.id,
        month=item.month,
        year=item.year,
        category=item.category,
        amount=float(item.amount),
        description=item.description,
        payment_date=item.payment_date,
        payment_status=item.payment_status,
        remarks=item.remarks,
        created_at=item.created_at,
        updated_at=item.updated_at,
    )


async def _load_expense(db: AsyncSession, expense_id: int) -> Expense:
    result = await db.execute(
        select(Expense).where(Expense.id == expense_id).execution_options(populate_existing=True)
    )
    expense = result.scalar_one_or_none()
    if not expense:
        raise HTTPException(status_code=404, detail="费用记录不存在")
    return expense


async def _check_references(db: AsyncSession, category_id: Optional[int], line_id: Optional[int]):
    if category_id is not None and not await db.get(ExpenseCategory, category_id):
        raise HTTPException(status_code=404, detail="费用类别不存在")
    if line_id and not await db.get(Line, line_id):
        raise HTTPException(status_code=404, detail="生产线不存在")


# ========== 月度费用 ==========

async def _ensure_unique_period(db: AsyncSession, month: int, year: int, category: str,
                                exclude_id: Optional[int] = None):
    query = select(MonthlyExpense).where(and_(
        MonthlyExpense.month == month,
        MonthlyExpense.year == year,
        MonthlyExpense.category == category,
    ))
    if exclude_id:
        query = query.where(MonthlyExpense.id != exclude_id)
    if (await db.execute(query)).scalar_one_or_none():
        raise HTTPException(status_code=409, detail=f"{year}-{month:02d} 已存在类别 {category} 的月度费用")


@router.get("/monthly", response_model=MonthlyExpenseListResponse)
async def list_monthly_expenses(
    *,
    db: AsyncSession = Depends(get_db),
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None),
    payment_status: Optional[str] = Query(None)) -> Any:
    """获取月度费用列表"""
    conditions = []
    if month:
        conditions.append(MonthlyExpense.month == month)
    if year:
        conditions.append(MonthlyExpense.year == year)
    if payment_status:
        conditions.append(MonthlyExpense.payment_status == payment_status)

    query = select(MonthlyExpense)
    if conditions:
        query = query.where(and_(*conditions))
    query = query.order_by(MonthlyExpense.year.desc(), MonthlyExpense.month.desc(), MonthlyExpense.category)
    items = (await db.execute(query)).scalars().all()

    paid = sum(float(i.amount) for i in items if i.payment_status == "PAID")
    total = sum(float(i.amount) for i in items)
    return MonthlyExpenseListResponse(
        data=[build_monthly_response(i) for i in items],
        total=len(items),
        total_amount=total,
        paid_amount=paid,
        pending_amount=total - paid,
    )


@router.post("/monthly", response_model=MonthlyExpenseResponse)
async def create_monthly_expense(
    *,
    db: AsyncSession = Depends(get_db),
    item_in: MonthlyExpenseCreate) -> Any:
    """新增月度费用（同月同类别唯一）"""
    await _ensure_unique_period(db, item_in.month, item_in.year, item_in.category)

    item = MonthlyExpense(**item_in.model_dump())
    db.add(item)
    await db.flush()
    await create_audit_log(db, "create", "monthly_expense", item.id, item.category,
                           f"新增月度费用 {item.year}-{item.month:02d} {item.category}",
                           new_value=snapshot(item))
    await db.commit()
    await db.refresh(item)

    return build_monthly_response(item)


@router.put("/monthly/{item_id}", response_model=MonthlyExpenseResponse)
async def update_monthly_expense(
    *,
    db: AsyncSession = Depends(get_db),
    item_id: int,
    item_in: MonthlyExpenseUpdate) -> Any:
    """更新月度费用"""
    item = await db.get(MonthlyExpense, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="月度费用不存在")

    update_data = item_in.model_dump(exclude_unset=True)
    if update_data.get("category") and update_data["category"] != item.category:
        await _ensure_unique_period(db, item.month, item.year, update_data["category"], exclude_id=item_id)

    old_value = snapshot(item)
    for field, value in update_data.items():
        setattr(item, field, value)
    await create_audit_log(db, "update", "monthly_expense", item.id, item.category,
                           f"更新月度费用 {item.year}-{item.month:02d} {item.category}",
                           old_value=old_value, new_value=snapshot(item))
    await db.commit()
    await db.refresh(item)

    return build_monthly_response(item)


@router.delete("/monthly/{item_id}")
async def delete_monthly_expense(
    *,
    db: AsyncSession = Depends(get_db),
    item_id: int) -> Any:
    """删除月度费用"""
    item = await db.get(MonthlyExpense, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="月度费用不存在")

    await create_audit_log(db, "delete", "monthly_expense", item.id, item.category,
                           f"删除月度费用 {item.year}-{item.month:02d} {item.category}",
                           old_value=snapshot(item))
    await db.delete(item)
    await db.commit()

    return {"message": "删除成功"}


# ========== 日常费用 ==========

@router.get("/", response_model=ExpenseListResponse)
async def list_expenses(
    *,
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    line_id: Optional[int] = Query(None),
    category_id: Optional[int] = Query(None),
    payment_method: Optional[str] = Query(None)) -> Any:
    """获取费用列表"""
    conditions = []
    if start_date:
        conditions.append(Expense.date >= start_date)
    if end_date:
        conditions.append(Expense.date <= end_date)
    if line_id:
        conditions.append(Expense.line_id == line_id)
    if category_id:
        conditions.append(Expense.category_id == category_id)
    if payment_method:
        conditions.append(Expense.payment_method == payment_method)

    query = select(Expense)
    if conditions:
        query = query.where(and_(*conditions))

    # 汇总（全部筛选结果）
    summary_query = (
        select(ExpenseCategory.name, func.sum(Expense.amount), func.count(Expense.id))
        .join(ExpenseCategory, Expense.category_id == ExpenseCategory.id)
        .group_by(ExpenseCategory.name)
    )
    if conditions:
        summary_query = summary_query.where(and_(*conditions))
    by_category = OrderedDict()
    for name, amount, count in (await db.execute(summary_query)).all():
        by_category[name] = {"category": name, "amount": float(amount or 0), "count": count}
    total_amount = sum(item["amount"] for item in by_category.values())

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0

    query = query.order_by(Expense.date.desc(), Expense.id.desc())
    query = query.offset((page - 1) * limit).limit(limit)
    expenses = (await db.execute(query)).scalars().all()

    return ExpenseListResponse(
        data=[build_expense_response(e) for e in expenses],
        total=total,
        page=page,
        limit=limit,
        total_amount=total_amount,
        by_category=sorted(by_category.values(), key=lambda x: x["amount"], reverse=True),
    )


@router.post("/", response_model=ExpenseResponse)
async def create_expense(
    *,
    db: AsyncSession = Depends(get_db),
    expense_in: ExpenseCreate) -> Any:
    """新增费用"""
    await _check_references(db, expense_in.category_id, expense_in.line_id)

    expense = Expense(**expense_in.model_dump(), created_by=CURRENT_USER_ID)
    db.add(expense)
    await db.flush()
    await create_audit_log(db, "create", "expense", expense.id, None,
                           f"新增费用 {expense.amount}", new_value=snapshot(expense))
    await db.commit()

    # 重新加载关系
    return build_expense_response(await _load_expense(db, expense.id))


@router.get("/{expense_id}", response_model=ExpenseResponse)
async def get_expense(
    *,
    db: AsyncSession = Depends(get_db),
    expense_id: int) -> Any:
    """获取费用详情"""
    return build_expense_response(await _load_expense(db, expense_id))


@router.put("/{expense_id}", response_model=ExpenseResponse)
async def update_expense(
    *,
    db: AsyncSession = Depends(get_db),
    expense_id: int,
    expense_in: ExpenseUpdate) -> Any:
    """更新费用"""
    expense = await _load_expense(db, expense_id)
    update_data = expense_in.model_dump(exclude_unset=True)
    await _check_references(db, update_data.get("category_id"), update_data.get("line_id"))

    old_value = snapshot(expense)
    for field, value in update_data.items():
        setattr(expense, field, value)
    await create_audit_log(db, "update", "expense", expense.id, None,
                           f"更新费用 #{expense.id}", old_value=old_value, new_value=snapshot(expense))
    await db.commit()

    return build_expense_response(await _load_expense(db, expense_id))


@router.delete("/{expense_id}")
async def delete_expense(
    *,
    db: AsyncSession = Depends(get_db),
    expense_id: int) -> Any:
    """删除费用"""
    expense = await _load_expense(db, expense_id)
    await create_audit_log(db, "delete", "expense", expense.id, None,
                           f"删除费用 #{expense.id}", old_value=snapshot(expense))
    await db.delete(expense)
    await db.commit()

    return {"message": "删除成功"}
