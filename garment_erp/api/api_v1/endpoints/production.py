"""小时生产记录API"""

from datetime import date
from typing import Any, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from garment_erp.core.deps import get_db
from garment_erp.models import ProductionEntry, DailyProductionReport, Shipment, Line, Style
from garment_erp.schemas.production import (
    ProductionEntryCreate, ProductionEntryUpdate, ProductionEntryResponse, ProductionEntryListResponse,
)
from garment_erp.services import production_reports
from garment_erp.api.api_v1.endpoints.audit_logs import create_audit_log, snapshot

router = APIRouter()


def build_entry_response(entry: ProductionEntry) -> ProductionEntryResponse:
    """构建生产记录响应"""
    return ProductionEntryResponse(
        id=entry.id,
        date=entry.date,
        hour_index=entry.hour_index,
        line_id=entry.line_id,
        line_code=entry.line.code if entry.line else "",
        style_id=entry.style_id,
        style_number=entry.style.style_number if entry.style else "",
        stage=entry.stage,
        stage_display=entry.stage_display,
        input_qty=entry.input_qty,
        output_qty=entry.output_qty,
        defect_qty=entry.defect_qty,
        notes=entry.notes,
        created_at=entry.created_at,
        updated_at=entry.updated_at,
    )


async def load_entry(db: AsyncSession, entry_id: int) -> ProductionEntry:
    result = await db.execute(
        select(ProductionEntry).where(ProductionEntry.id == entry_id)
        .execution_options(populate_existing=True)
    )
    entry = result.scalar_one_or_none()
    if not entry:
        raise HTTPException(status_code=404, detail="生产记录不存在")
    return entry


async def check_line_and_style(db: AsyncSession, line_id: Optional[int], style_id: Optional[int]):
    if line_id is not None and not await db.get(Line, line_id):
        raise HTTPException(status_code=404, detail="生产线不存在")
    if style_id is not None and not await db.get(Style, style_id):
        raise HTTPException(status_code=404, detail="款式不存在")


async def check_cutting_balance(
    db: AsyncSession,
    entry_date: date,
    line_id: int,
    style_id: int,
    extra_input: int = 0,
    extra_used: int = 0,
    exclude_id: Optional[int] = None,
):
    """
    裁剪工序：同日同线同款的 产出 + 次品 不得超过 投入

    extra_* 为尚未写入的数量
    """
    query = select(
        func.coalesce(func.sum(ProductionEntry.input_qty), 0),
        func.coalesce(func.sum(ProductionEntry.output_qty + ProductionEntry.defect_qty), 0),
    ).where(and_(
        ProductionEntry.stage == "CUTTING",
        ProductionEntry.date == entry_date,
        ProductionEntry.line_id == line_id,
        ProductionEntry.style_id == style_id,
    ))
    if exclude_id:
        query = query.where(ProductionEntry.id != exclude_id)
    total_input, total_used = (await db.execute(query)).one()
    total_input = int(total_input) + extra_input
    total_used = int(total_used) + extra_used
    if total_used > total_input:
        raise HTTPException(
            status_code=400,
            detail=f"产出与次品合计 {total_used} 超过裁剪投入 {total_input}"
        )


@router.get("/entries", response_model=ProductionEntryListResponse)
async def list_entries(
    *,
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=1000),
    entry_date: Optional[date] = Query(None, alias="date"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    stage: Optional[str] = Query(None),
    line_id: Optional[int] = Query(None),
    style_id: Optional[int] = Query(None)) -> Any:
    """获取生产记录列表"""
    conditions = []
    if entry_date:
        conditions.append(ProductionEntry.date == entry_date)
    if start_date:
        conditions.append(ProductionEntry.date >= start_date)
    if end_date:
        conditions.append(ProductionEntry.date <= end_date)
    if stage:
        conditions.append(ProductionEntry.stage == stage)
    if line_id:
        conditions.append(ProductionEntry.line_id == line_id)
    if style_id:
        conditions.append(ProductionEntry.style_id == style_id)

    query = select(ProductionEntry)
    if conditions:
        query = query.where(and_(*conditions))

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0

    query = query.order_by(ProductionEntry.date.desc(), ProductionEntry.hour_index, ProductionEntry.id)
    query = query.offset((page - 1) * limit).limit(limit)
    entries = (await db.execute(query)).scalars().all()

    return ProductionEntryListResponse(
        data=[build_entry_response(e) for e in entries],
        total=total,
        page=page,
        limit=limit
    )


@router.post("/entries", response_model=ProductionEntryResponse)
async def create_entry(
    *,
    db: AsyncSession = Depends(get_db),
    entry_in: ProductionEntryCreate) -> Any:
    """新增生产记录"""
    await check_line_and_style(db, entry_in.line_id, entry_in.style_id)
    if entry_in.stage == "CUTTING":
        await check_cutting_balance(
            db, entry_in.date, entry_in.line_id, entry_in.style_id,
            extra_input=entry_in.input_qty,
            extra_used=entry_in.output_qty + entry_in.defect_qty,
        )

    entry = ProductionEntry(**entry_in.model_dump())
    db.add(entry)
    await db.flush()
    await create_audit_log(db, "create", "production", entry.id, entry.stage,
                           f"新增生产记录 {entry.date} {entry.stage}", new_value=snapshot(entry))
    await db.commit()

    # 重新加载关系
    return build_entry_response(await load_entry(db, entry.id))


@router.get("/entries/{entry_id}", response_model=ProductionEntryResponse)
async def get_entry(
    *,
    db: AsyncSession = Depends(get_db),
    entry_id: int) -> Any:
    """获取生产记录"""
    return build_entry_response(await load_entry(db, entry_id))


@router.put("/entries/{entry_id}", response_model=ProductionEntryResponse)
async def update_entry(
    *,
    db: AsyncSession = Depends(get_db),
    entry_id: int,
    entry_in: ProductionEntryUpdate) -> Any:
    """更新生产记录"""
    entry = await load_entry(db, entry_id)
    update_data = entry_in.model_dump(exclude_unset=True)
    await check_line_and_style(db, update_data.get("line_id"), update_data.get("style_id"))

    merged = {**snapshot(entry), **update_data}
    if merged["stage"] == "CUTTING":
        await check_cutting_balance(
            db,
            update_data.get("date", entry.date),
            merged["line_id"],
            merged["style_id"],
            extra_input=merged["input_qty"],
            extra_used=merged["output_qty"] + merged["defect_qty"],
            exclude_id=entry_id,
        )
    # 裁剪记录移出原分组时，原分组剩余的投入仍须覆盖产出
    moved = any(
        key in update_data and update_data[key] != getattr(entry, key)
        for key in ("date", "line_id", "style_id", "stage")
    )
    if entry.stage == "CUTTING" and moved:
        await check_cutting_balance(db, entry.date, entry.line_id, entry.style_id, exclude_id=entry_id)

    old_value = snapshot(entry)
    for field, value in update_data.items():
        setattr(entry, field, value)
    await create_audit_log(db, "update", "production", entry.id, entry.stage,
                           f"更新生产记录 #{entry.id}", old_value=old_value, new_value=snapshot(entry))
    await db.commit()

    return build_entry_response(await load_entry(db, entry_id))


@router.delete("/entries/{entry_id}")
async def delete_entry(
    *,
    db: AsyncSession = Depends(get_db),
    entry_id: int) -> Any:
    """删除生产记录"""
    entry = await load_entry(db, entry_id)
    if entry.stage == "CUTTING":
        await check_cutting_balance(db, entry.date, entry.line_id, entry.style_id, exclude_id=entry_id)
    await create_audit_log(db, "delete", "production", entry.id, entry.stage,
                           f"删除生产记录 #{entry.id}", old_value=snapshot(entry))
    await db.delete(entry)
    await db.commit()

    return {"message": "删除成功"}


@router.get("/balances")
async def list_balances(
    *,
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    style_no: Optional[str] = Query(None, description="款号模糊搜索"),
    status: Optional[str] = Query(None)) -> Any:
    """款式生产余量（订单数量 - 生产日报累计产量）"""
    query = select(Style)
    if style_no:
        query = query.where(Style.style_number.ilike(f"%{style_no}%"))
    if status:
        query = query.where(Style.status == status)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0
    query = query.order_by(Style.style_number).offset((page - 1) * limit).limit(limit)
    styles = (await db.execute(query)).scalars().all()

    style_ids = [s.id for s in styles]
    produced = dict((await db.execute(
        select(DailyProductionReport.style_id, func.sum(DailyProductionReport.production_qty))
        .where(DailyProductionReport.style_id.in_(style_ids))
        .group_by(DailyProductionReport.style_id)
    )).all()) if style_ids else {}
    shipped = dict((await db.execute(
        select(Shipment.style_id, func.sum(Shipment.quantity))
        .where(Shipment.style_id.in_(style_ids))
        .group_by(Shipment.style_id)
    )).all()) if style_ids else {}

    rows = [
        production_reports.production_balance(s, int(produced.get(s.id) or 0), int(shipped.get(s.id) or 0))
        for s in styles
    ]
    return {
        "data": rows,
        "total": total,
        "page": page,
        "limit": limit,
        "total_order_qty": sum(r["order_qty"] for r in rows),
        "total_produced": sum(r["total_produced"] for r in rows),
        "total_balance": sum(r["balance"] for r in rows),
    }
