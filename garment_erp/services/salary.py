"""
工资服务
- 当前工资标准查询
- 工资标准批量更新（旧标准停用，保留历史）
- 日工资计算与保存
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from garment_erp.models.salary import SalaryRate, DailySalary, SECTION_ORDER

logger = logging.getLogger(__name__)


def section_sort_key(section: str) -> tuple:
    """工段排序：固定顺序在前，其余按名称"""
    if section in SECTION_ORDER:
        return (0, SECTION_ORDER.index(section), "")
    return (1, 0, section)


def current_rates(rates: Sequence[SalaryRate]) -> Dict[str, Dict[str, Optional[float]]]:
    """
    每个工段最新的有效工资标准

    Returns:
        {工段: {"regular": 金额, "overtime": 金额}}
    """
    latest: Dict[tuple, SalaryRate] = {}
    for rate in rates:
        if not rate.is_active:
            continue
        key = (rate.section, rate.rate_type)
        chosen = latest.get(key)
        if chosen is None or (rate.effective_date, rate.id or 0) > (chosen.effective_date, chosen.id or 0):
            latest[key] = rate

    result: Dict[str, Dict[str, Optional[float]]] = {}
    for (section, rate_type), rate in latest.items():
        entry = result.setdefault(section, {"regular": None, "overtime": None})
        entry["regular" if rate_type == "REGULAR" else "overtime"] = float(rate.amount)
    return dict(sorted(result.items(), key=lambda kv: section_sort_key(kv[0])))


def salary_amounts(worker_count: int, regular_rate: Any, overtime_hours: Any, overtime_rate: Any) -> Dict[str, Decimal]:
    """常规工资 = 人数 × 日薪；加班工资 = 加班工时 × 加班时薪"""
    regular = Decimal(str(regular_rate or 0)) * int(worker_count or 0)
    overtime = Decimal(str(overtime_hours or 0)) * Decimal(str(overtime_rate or 0))
    return {
        "regular_amount": regular.quantize(Decimal("0.01")),
        "overtime_amount": overtime.quantize(Decimal("0.01")),
        "total_amount": (regular + overtime).quantize(Decimal("0.01")),
    }


async def load_current_rates(db: AsyncSession) -> Dict[str, Dict[str, Optional[float]]]:
    rates = (await db.execute(select(SalaryRate).where(SalaryRate.is_active.is_(True)))).scalars().all()
    return current_rates(rates)


async def replace_section_rate(
    db: AsyncSession, section: str, rate_type: str, amount: float, effective_date: date
) -> SalaryRate:
    """停用该工段该类型的现行标准，并新增一条"""
    active = (await db.execute(
        select(SalaryRate).where(
            SalaryRate.section == section,
            SalaryRate.rate_type == rate_type,
            SalaryRate.is_active.is_(True),
        )
    )).scalars().all()
    for rate in active:
        rate.is_active = False
    rate = SalaryRate(
        section=section,
        rate_type=rate_type,
        amount=Decimal(str(amount)),
        effective_date=effective_date,
        is_active=True,
    )
    db.add(rate)
    await db.flush()
    return rate


async def save_daily_salary(db: AsyncSession, salary_date: date, records: Sequence[Any]) -> List[DailySalary]:
    """
    保存某日工资（覆盖当天已有记录）

    记录未填写日薪/加班时薪时使用该工段当前工资标准
    """
    rates = await load_current_rates(db)
    await db.execute(delete(DailySalary).where(DailySalary.date == salary_date))

    saved = []
    for record in records:
        section_rates = rates.get(record.section, {})
        regular_rate = record.regular_rate if record.regular_rate is not None else (section_rates.get("regular") or 0)
        overtime_rate = record.overtime_rate if record.overtime_rate is not None else (section_rates.get("overtime") or 0)
        amounts = salary_amounts(record.worker_count, regular_rate, record.overtime_hours, overtime_rate)
        item = DailySalary(
            date=salary_date,
            section=record.section,
            worker_count=record.worker_count,
            regular_rate=Decimal(str(regular_rate)),
            overtime_hours=Decimal(str(record.overtime_hours or 0)),
            overtime_rate=Decimal(str(overtime_rate)),
            remarks=record.remarks,
            **amounts,
        )
        db.add(item)
        saved.append(item)

    await db.commit()
    logger.info(f"💰 日工资已保存: {salary_date} 共 {len(saved)} 个工段")
    return sorted(saved, key=lambda s: section_sort_key(s.section))


def summarize_daily_salary(records: Sequence[DailySalary]) -> Dict[str, Any]:
    return {
        "total_workers": sum(r.worker_count or 0 for r in records),
        "total_overtime_hours": float(sum(Decimal(str(r.overtime_hours or 0)) for r in records)),
        "regular_amount": float(sum(Decimal(str(r.regular_amount or 0)) for r in records)),
        "overtime_amount": float(sum(Decimal(str(r.overtime_amount or 0)) for r in records)),
        "total_amount": float(sum(Decimal(str(r.total_amount or 0)) for r in records)),
        "section_count": len(records),
    }
