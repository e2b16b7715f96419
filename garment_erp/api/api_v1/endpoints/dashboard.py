"""首页看板API"""

from datetime import date, timedelta
from typing import Any, List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from garment_erp.core.deps import get_db
from garment_erp.models import ProductionEntry, Target, CashbookEntry
from garment_erp.services import dashboard, production_reports
from garment_erp.services.cashbook import month_range

router = APIRouter()


async def _production_entries(db: AsyncSession, day: date, stage: Optional[str] = None) -> List[ProductionEntry]:
    query = select(ProductionEntry).where(ProductionEntry.date == day)
    if stage:
        query = query.where(ProductionEntry.stage == stage)
    return list((await db.execute(query.order_by(ProductionEntry.id))).scalars().all())


async def _cashbook_entries(db: AsyncSession, start: date, end: date) -> List[CashbookEntry]:
    query = select(CashbookEntry).where(and_(CashbookEntry.date >= start, CashbookEntry.date <= end))
    return list((await db.execute(query.order_by(CashbookEntry.date, CashbookEntry.id))).scalars().all())


async def _daily_production(db: AsyncSession, day: date) -> dict:
    summary = dashboard.production_summary(await _production_entries(db, day))
    summary["date"] = day.isoformat()
    return summary


async def _cutting(db: AsyncSession, day: date) -> dict:
    summary = production_reports.summarize_cutting(
        await _production_entries(db, day, "CUTTING"),
        await _production_entries(db, day - timedelta(days=1), "CUTTING"),
    )
    summary["date"] = day.isoformat()
    return summary


async def _targets(db: AsyncSession, day: date) -> dict:
    query = select(Target).where(Target.date == day).order_by(Target.line_no, Target.id)
    summary = dashboard.target_summary((await db.execute(query)).scalars().all())
    summary["date"] = day.isoformat()
    return summary


async def _cashbook(db: AsyncSession, day: date) -> dict:
    start, end = month_range(day.strftime("%Y-%m"))
    previous_start, previous_end = month_range((start - timedelta(days=1)).strftime("%Y-%m"))
    summary = dashboard.cashbook_summary(
        await _cashbook_entries(db, start, end),
        await _cashbook_entries(db, previous_start, previous_end),
    )
    summary["month"] = start.strftime("%Y-%m")
    return summary


@router.get("/summary")
async def get_dashboard_summary(
    *,
    db: AsyncSession = Depends(get_db),
    day: Optional[date] = Query(None, alias="date", description="默认今天")) -> Any:
    """看板总览"""
    day = day or date.today()
    production = await _daily_production(db, day)
    target = await _targets(db, day)
    cashbook = await _cashbook(db, day)
    cutting = await _cutting(db, day)
    return {
        "date": day.isoformat(),
        "overview": dashboard.overview(production, target, cashbook, cutting),
        "production": production,
        "target": target,
        "cashbook": cashbook,
        "cutting": cutting,
    }


@router.get("/cashbook-summary")
async def get_cashbook_summary(
    *,
    db: AsyncSession = Depends(get_db),
    day: Optional[date] = Query(None, alias="date", description="统计该日期所在月份")) -> Any:
    """当月现金账汇总"""
    return await _cashbook(db, day or date.today())


@router.get("/cutting-summary")
async def get_cutting_summary(
    *,
    db: AsyncSession = Depends(get_db),
    day: Optional[date] = Query(None, alias="date")) -> Any:
    """当日裁剪汇总"""
    return await _cutting(db, day or date.today())


@router.get("/target-summary")
async def get_target_summary(
    *,
    db: AsyncSession = Depends(get_db),
    day: Optional[date] = Query(None, alias="date")) -> Any:
    """当日目标汇总"""
    return await _targets(db, day or date.today())


@router.get("/daily-production-summary")
async def get_daily_production_summary(
    *,
    db: AsyncSession = Depends(get_db),
    day: Optional[date] = Query(None, alias="date")) -> Any:
    """当日生产汇总"""
    return await _daily_production(db, day or date.today())
