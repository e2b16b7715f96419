"""裁剪投入 / 产出API"""

from datetime import date, timedelta
from typing import Any, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from garment_erp.core.deps import get_db
from garment_erp.models import ProductionEntry
from garment_erp.schemas.production import CuttingInputCreate, CuttingOutputCreate, ProductionEntryResponse
from garment_erp.services import production_reports
from garment_erp.services.cashbook import month_range
from garment_erp.api.api_v1.endpoints.audit_logs import create_audit_log, snapshot
from garment_erp.api.api_v1.endpoints.production import (
    build_entry_response, load_entry, check_line_and_style, check_cutting_balance,
)

router = APIRouter()


async def _cutting_entries(db: AsyncSession, start: date, end: Optional[date] = None,
                           line_id: Optional[int] = None, style_id: Optional[int] = None) -> List[ProductionEntry]:
    conditions = [
        ProductionEntry.stage == "CUTTING",
        ProductionEntry.date >= start,
        ProductionEntry.date <= (end or start),
    ]
    if line_id:
        conditions.append(ProductionEntry.line_id == line_id)
    if style_id:
        conditions.append(ProductionEntry.style_id == style_id)
    query = select(ProductionEntry).where(and_(*conditions)).order_by(
        ProductionEntry.date, ProductionEntry.hour_index, ProductionEntry.id
    )
    return list((await db.execute(query)).scalars().all())


@router.get("/daily-input")
async def list_daily_input(
    *,
    db: AsyncSession = Depends(get_db),
    entry_date: Optional[date] = Query(None, alias="date", description="默认今天"),
    line_id: Optional[int] = Query(None),
    style_id: Optional[int] = Query(None)) -> Any:
    """当日裁剪投入记录"""
    entry_date = entry_date or date.today()
    entries = [e for e in await _cutting_entries(db, entry_date, line_id=line_id, style_id=style_id)
               if e.input_qty]
    return {
        "date": entry_date.isoformat(),
        "data": [build_entry_response(e) for e in entries],
        "total": len(entries),
        "total_input": sum(e.input_qty for e in entries),
    }


@router.post("/daily-input", response_model=ProductionEntryResponse)
async def create_daily_input(
    *,
    db: AsyncSession = Depends(get_db),
    input_in: CuttingInputCreate) -> Any:
    """录入裁剪投入"""
    await check_line_and_style(db, input_in.line_id, input_in.style_id)

    entry = ProductionEntry(
        date=input_in.date,
        hour_index=input_in.hour_index,
        line_id=input_in.line_id,
        style_id=input_in.style_id,
        stage="CUTTING",
        input_qty=input_in.input_qty,
        output_qty=0,
        defect_qty=0,
        notes=input_in.notes,
    )
    db.add(entry)
    await db.flush()
    await create_audit_log(db, "create", "production", entry.id, "CUTTING",
                           f"裁剪投入 {entry.input_qty}", new_value=snapshot(entry))
    await db.commit()

    return build_entry_response(await load_entry(db, entry.id))


@router.get("/daily-output")
async def list_daily_output(
    *,
    db: AsyncSession = Depends(get_db),
    entry_date: Optional[date] = Query(None, alias="date", description="默认今天"),
    line_id: Optional[int] = Query(None),
    style_id: Optional[int] = Query(None)) -> Any:
    """当日裁剪产出记录"""
    entry_date = entry_date or date.today()
    entries = [e for e in await _cutting_entries(db, entry_date, line_id=line_id, style_id=style_id)
               if e.output_qty or e.defect_qty]
    return {
        "date": entry_date.isoformat(),
        "data": [build_entry_response(e) for e in entries],
        "total": len(entries),
        "total_output": sum(e.output_qty for e in entries),
        "total_defects": sum(e.defect_qty for e in entries),
    }


@router.post("/daily-output", response_model=ProductionEntryResponse)
async def create_daily_output(
    *,
    db: AsyncSession = Depends(get_db),
    output_in: CuttingOutputCreate) -> Any:
    """
    录入裁剪产出

    同一小时已有裁剪记录时累加到该记录，否则新建
    """
    await check_line_and_style(db, output_in.line_id, output_in.style_id)
    await check_cutting_balance(
        db, output_in.date, output_in.line_id, output_in.style_id,
        extra_used=output_in.output_qty + output_in.defect_qty,
    )

    existing = (await db.execute(
        select(ProductionEntry).where(and_(
            ProductionEntry.stage == "CUTTING",
            ProductionEntry.date == output_in.date,
            ProductionEntry.line_id == output_in.line_id,
            ProductionEntry.style_id == output_in.style_id,
            ProductionEntry.hour_index == output_in.hour_index,
        )).order_by(ProductionEntry.id.desc())
    )).scalars().first()

    if existing:
        old_value = snapshot(existing)
        existing.output_qty = (existing.output_qty or 0) + output_in.output_qty
        existing.defect_qty = (existing.defect_qty or 0) + output_in.defect_qty
        if output_in.notes:
            existing.notes = output_in.notes
        entry = existing
        await create_audit_log(db, "update", "production", entry.id, "CUTTING",
                               f"裁剪产出 {output_in.output_qty}", old_value=old_value, new_value=snapshot(entry))
    else:
        entry = ProductionEntry(
            date=output_in.date,
            hour_index=output_in.hour_index,
            line_id=output_in.line_id,
            style_id=output_in.style_id,
            stage="CUTTING",
            input_qty=0,
            output_qty=output_in.output_qty,
            defect_qty=output_in.defect_qty,
            notes=output_in.notes,
        )
        db.add(entry)
        await db.flush()
        await create_audit_log(db, "create", "production", entry.id, "CUTTING",
                               f"裁剪产出 {output_in.output_qty}", new_value=snapshot(entry))
    await db.commit()

    return build_entry_response(await load_entry(db, entry.id))


@router.get("/summary")
async def get_cutting_summary(
    *,
    db: AsyncSession = Depends(get_db),
    entry_date: Optional[date] = Query(None, alias="date", description="默认今天")) -> Any:
    """裁剪日汇总（含与前一日对比）"""
    entry_date = entry_date or date.today()
    entries = await _cutting_entries(db, entry_date)
    previous = await _cutting_entries(db, entry_date - timedelta(days=1))
    summary = production_reports.summarize_cutting(entries, previous)
    summary["date"] = entry_date.isoformat()
    return summary


@router.get("/monthly-report")
async def get_cutting_monthly_report(
    *,
    db: AsyncSession = Depends(get_db),
    month: Optional[str] = Query(None, description="YYYY-MM，默认当月"),
    line_id: Optional[int] = Query(None),
    style_id: Optional[int] = Query(None)) -> Any:
    """裁剪月报"""
    month = month or date.today().strftime("%Y-%m")
    try:
        start, end = month_range(month)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    entries = await _cutting_entries(db, start, end, line_id, style_id)
    report = production_reports.cutting_monthly_report(entries)
    report["month"] = month
    return report
