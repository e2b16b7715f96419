"""现金账API"""

from datetime import date, datetime
from typing import Any, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from garment_erp.core.deps import get_db, CURRENT_USER_ID
from garment_erp.models import CashbookEntry, Line
from garment_erp.models.cashbook import CASH_RECEIVED_CATEGORY, DAILY_EXPENSE_CATEGORY
from garment_erp.schemas.cashbook import (
    CashbookEntryCreate, CashbookEntryUpdate, CashbookEntryResponse, CashbookListResponse,
    QuickEntryCreate, QuickEntryListResponse,
)
from garment_erp.services import cashbook as cashbook_service
from garment_erp.services.file_export import records_to_csv, sheets_to_xlsx, CSV_MEDIA_TYPE, XLSX_MEDIA_TYPE
from garment_erp.api.api_v1.endpoints.audit_logs import create_audit_log, snapshot

router = APIRouter()

EXPORT_HEADERS = ["date", "type", "category", "description", "amount", "running_balance",
                  "line", "reference_type", "reference_id"]


def build_entry_response(entry: CashbookEntry, balance: Optional[float] = None) -> CashbookEntryResponse:
    """构建现金账响应"""
    return CashbookEntryResponse(
        id=entry.id,
        date=entry.date,
        type=entry.type,
        type_display=entry.type_display,
        amount=float(entry.amount),
        category=entry.category,
        description=entry.description,
        reference_type=entry.reference_type,
        reference_id=entry.reference_id,
        line_id=entry.line_id,
        line_code=entry.line.code if entry.line else "",
        running_balance=balance,
        created_at=entry.created_at,
        updated_at=entry.updated_at,
    )


def _conditions(
    entry_date: Optional[date] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    entry_type: Optional[str] = None,
    category: Optional[str] = None,
    line_id: Optional[int] = None,
    min_amount: Optional[float] = None,
    max_amount: Optional[float] = None,
) -> list:
    conditions = []
    if entry_date:
        conditions.append(CashbookEntry.date == entry_date)
    if start_date:
        conditions.append(CashbookEntry.date >= start_date)
    if end_date:
        conditions.append(CashbookEntry.date <= end_date)
    if entry_type:
        conditions.append(CashbookEntry.type == entry_type)
    if category:
        conditions.append(CashbookEntry.category.ilike(f"%{category}%"))
    if line_id:
        conditions.append(CashbookEntry.line_id == line_id)
    if min_amount is not None:
        conditions.append(CashbookEntry.amount >= min_amount)
    if max_amount is not None:
        conditions.append(CashbookEntry.amount <= max_amount)
    return conditions


async def _fetch_entries(db: AsyncSession, conditions: list) -> List[CashbookEntry]:
    query = select(CashbookEntry)
    if conditions:
        query = query.where(and_(*conditions))
    return list((await db.execute(query)).scalars().all())


async def _load_entry(db: AsyncSession, entry_id: int) -> CashbookEntry:
    result = await db.execute(
        select(CashbookEntry).where(CashbookEntry.id == entry_id).execution_options(populate_existing=True)
    )
    entry = result.scalar_one_or_none()
    if not entry:
        raise HTTPException(status_code=404, detail="现金账记录不存在")
    return entry


async def _check_line(db: AsyncSession, line_id: Optional[int]):
    if line_id and not await db.get(Line, line_id):
        raise HTTPException(status_code=404, detail="生产线不存在")


def _validate_type(entry_type: Optional[str]):
    if entry_type and entry_type not in ("CREDIT", "DEBIT"):
        raise HTTPException(status_code=400, detail="类型必须为 CREDIT 或 DEBIT")


async def _create_entry(db: AsyncSession, values: dict) -> CashbookEntry:
    await _check_line(db, values.get("line_id"))
    entry = CashbookEntry(**values, created_by=CURRENT_USER_ID)
    db.add(entry)
    await db.flush()
    await create_audit_log(db, "create", "cashbook", entry.id, entry.category,
                           f"新增{entry.type_display} {entry.amount}", new_value=snapshot(entry))
    await db.commit()
    # 重新加载关系
    return await _load_entry(db, entry.id)


@router.get("/", response_model=CashbookListResponse)
async def list_entries(
    *,
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    entry_date: Optional[date] = Query(None, alias="date", description="指定日期"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    type: Optional[str] = Query(None, description="CREDIT / DEBIT"),
    category: Optional[str] = Query(None),
    line_id: Optional[int] = Query(None)) -> Any:
    """
    获取现金账列表

    滚动余额按筛选结果的时间顺序计算，分页按最新在前返回
    """
    _validate_type(type)
    entries = await _fetch_entries(
        db, _conditions(entry_date, start_date, end_date, type, category, line_id)
    )
    with_balance = cashbook_service.apply_running_balance(entries)
    summary = cashbook_service.totals(entries)

    newest_first = list(reversed(with_balance))
    page_items = newest_first[(page - 1) * limit: page * limit]

    return CashbookListResponse(
        data=[build_entry_response(entry, balance) for entry, balance in page_items],
        total=len(entries),
        page=page,
        limit=limit,
        **summary
    )


async def _list_quick_entries(db: AsyncSession, entry_type: str, default_category: str,
                              start_date, end_date, category, min_amount, max_amount) -> QuickEntryListResponse:
    entries = await _fetch_entries(db, _conditions(
        None, start_date, end_date, entry_type, category or default_category, None, min_amount, max_amount
    ))
    entries.sort(key=cashbook_service.chronological_key, reverse=True)
    return QuickEntryListResponse(
        data=[build_entry_response(e) for e in entries],
        total=len(entries),
        total_amount=sum(float(e.amount) for e in entries),
    )


@router.get("/cash-received", response_model=QuickEntryListResponse)
async def list_cash_received(
    *,
    db: AsyncSession = Depends(get_db),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    category: Optional[str] = Query(None, description="默认 Cash Received"),
    min_amount: Optional[float] = Query(None, ge=0),
    max_amount: Optional[float] = Query(None, ge=0)) -> Any:
    """收款记录列表"""
    return await _list_quick_entries(db, "CREDIT", CASH_RECEIVED_CATEGORY,
                                     start_date, end_date, category, min_amount, max_amount)


@router.post("/cash-received", response_model=CashbookEntryResponse)
async def create_cash_received(
    *,
    db: AsyncSession = Depends(get_db),
    entry_in: QuickEntryCreate) -> Any:
    """录入收款"""
    values = entry_in.model_dump()
    values["category"] = values.get("category") or CASH_RECEIVED_CATEGORY
    entry = await _create_entry(db, dict(values, type="CREDIT"))
    return build_entry_response(entry)


@router.get("/daily-expense", response_model=QuickEntryListResponse)
async def list_daily_expenses(
    *,
    db: AsyncSession = Depends(get_db),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    category: Optional[str] = Query(None, description="默认 Daily Expense"),
    min_amount: Optional[float] = Query(None, ge=0),
    max_amount: Optional[float] = Query(None, ge=0)) -> Any:
    """日常支出列表"""
    return await _list_quick_entries(db, "DEBIT", DAILY_EXPENSE_CATEGORY,
                                     start_date, end_date, category, min_amount, max_amount)


@router.post("/daily-expense", response_model=CashbookEntryResponse)
async def create_daily_expense(
    *,
    db: AsyncSession = Depends(get_db),
    entry_in: QuickEntryCreate) -> Any:
    """录入日常支出"""
    values = entry_in.model_dump()
    values["category"] = values.get("category") or DAILY_EXPENSE_CATEGORY
    entry = await _create_entry(db, dict(values, type="DEBIT"))
    return build_entry_response(entry)


@router.get("/summary")
async def get_summary(
    *,
    db: AsyncSession = Depends(get_db),
    period: str = Query("current_month", description="today / current_month / last_month / all_time")) -> Any:
    """现金账区间汇总"""
    try:
        start, end, _ = cashbook_service.period_range(period)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    entries = await _fetch_entries(db, _conditions(start_date=start, end_date=end))
    return cashbook_service.build_summary(entries, period)


@router.get("/monthly-report")
async def get_monthly_report(
    *,
    db: AsyncSession = Depends(get_db),
    month: Optional[str] = Query(None, description="YYYY-MM，默认当月")) -> Any:
    """现金账月报"""
    month = month or date.today().strftime("%Y-%m")
    try:
        start, end = cashbook_service.month_range(month)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    entries = await _fetch_entries(db, _conditions(start_date=start, end_date=end))
    return cashbook_service.build_monthly_report(entries, month)


@router.get("/export")
async def export_entries(
    *,
    db: AsyncSession = Depends(get_db),
    format: str = Query("csv", description="csv / xlsx"),
    entry_date: Optional[date] = Query(None, alias="date"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    type: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    line_id: Optional[int] = Query(None)) -> Any:
    """导出现金账（含滚动余额）"""
    if format not in ("csv", "xlsx"):
        raise HTTPException(status_code=400, detail="导出格式仅支持 csv / xlsx")
    _validate_type(type)
    entries = await _fetch_entries(
        db, _conditions(entry_date, start_date, end_date, type, category, line_id)
    )
    rows = [
        {
            "date": entry.date,
            "type": entry.type,
            "category": entry.category,
            "description": entry.description,
            "amount": entry.amount,
            "running_balance": balance,
            "line": entry.line.code if entry.line else "",
            "reference_type": entry.reference_type,
            "reference_id": entry.reference_id,
        }
        for entry, balance in cashbook_service.apply_running_balance(entries)
    ]

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filename = f"cashbook_{timestamp}.{format}"
    if format == "csv":
        content = records_to_csv(rows, EXPORT_HEADERS).encode("utf-8-sig")
        media_type = CSV_MEDIA_TYPE
    else:
        content = sheets_to_xlsx({"cashbook": rows}, {"cashbook": EXPORT_HEADERS})
        media_type = XLSX_MEDIA_TYPE
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@router.post("/", response_model=CashbookEntryResponse)
async def create_entry(
    *,
    db: AsyncSession = Depends(get_db),
    entry_in: CashbookEntryCreate) -> Any:
    """新增现金账记录"""
    entry = await _create_entry(db, entry_in.model_dump())
    return build_entry_response(entry)


@router.get("/{entry_id}", response_model=CashbookEntryResponse)
async def get_entry(
    *,
    db: AsyncSession = Depends(get_db),
    entry_id: int) -> Any:
    """获取现金账记录"""
    return build_entry_response(await _load_entry(db, entry_id))


@router.put("/{entry_id}", response_model=CashbookEntryResponse)
async def update_entry(
    *,
    db: AsyncSession = Depends(get_db),
    entry_id: int,
    entry_in: CashbookEntryUpdate) -> Any:
    """更新现金账记录"""
    entry = await _load_entry(db, entry_id)
    update_data = entry_in.model_dump(exclude_unset=True)
    if update_data.get("line_id"):
        await _check_line(db, update_data["line_id"])

    old_value = snapshot(entry)
    for field, value in update_data.items():
        setattr(entry, field, value)
    await create_audit_log(db, "update", "cashbook", entry.id, entry.category,
                           f"修改现金账记录 #{entry.id}", old_value=old_value, new_value=snapshot(entry))
    await db.commit()

    # 重新加载关系
    return build_entry_response(await _load_entry(db, entry_id))


@router.delete("/{entry_id}")
async def delete_entry(
    *,
    db: AsyncSession = Depends(get_db),
    entry_id: int) -> Any:
    """删除现金账记录"""
    entry = await _load_entry(db, entry_id)
    await create_audit_log(db, "delete", "cashbook", entry.id, entry.category,
                           f"删除现金账记录 #{entry.id}", old_value=snapshot(entry))
    await db.delete(entry)
    await db.commit()

    return {"message": "删除成功"}
