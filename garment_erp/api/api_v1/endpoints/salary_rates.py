"""工资标准API"""

from datetime import date
from typing import Any, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from garment_erp.core.deps import get_db
from garment_erp.models import SalaryRate
from garment_erp.schemas.salary import SalaryRateCreate, SalaryRateResponse, SalaryRateBulkUpdate
from garment_erp.services import salary as salary_service
from garment_erp.api.api_v1.endpoints.audit_logs import create_audit_log, snapshot

router = APIRouter()


@router.get("/")
async def list_salary_rates(
    *,
    db: AsyncSession = Depends(get_db),
    section: Optional[str] = Query(None),
    include_inactive: bool = Query(False, description="包含历史标准")) -> Any:
    """获取工资标准（含每个工段的现行标准）"""
    query = select(SalaryRate)
    if section:
        query = query.where(SalaryRate.section == section)
    if not include_inactive:
        query = query.where(SalaryRate.is_active.is_(True))
    query = query.order_by(SalaryRate.section, SalaryRate.rate_type, SalaryRate.effective_date.desc())
    rates = (await db.execute(query)).scalars().all()

    current = salary_service.current_rates(rates)
    sections = sorted({r.section for r in rates}, key=salary_service.section_sort_key)
    return {
        "data": [SalaryRateResponse.model_validate(r) for r in rates],
        "current_rates": current,
        "sections": sections,
    }


@router.post("/", response_model=SalaryRateResponse)
async def create_salary_rate(
    *,
    db: AsyncSession = Depends(get_db),
    rate_in: SalaryRateCreate) -> Any:
    """新增工资标准（同工段同类型的现行标准自动停用）"""
    rate = await salary_service.replace_section_rate(
        db, rate_in.section, rate_in.rate_type, rate_in.amount, rate_in.effective_date or date.today()
    )
    await create_audit_log(db, "create", "salary_rate", rate.id, rate.section,
                           f"新增工资标准 {rate.section} {rate.rate_type} {rate.amount}",
                           new_value=snapshot(rate))
    await db.commit()
    await db.refresh(rate)
    return rate


@router.put("/")
async def bulk_update_salary_rates(
    *,
    db: AsyncSession = Depends(get_db),
    update_in: SalaryRateBulkUpdate) -> Any:
    """
    批量更新工资标准

    每个工段单独校验，错误收集后返回，其余工段照常更新
    """
    effective_date = update_in.effective_date or date.today()
    updated = []
    errors = []
    for item in update_in.rates:
        if item.regular is None and item.overtime is None:
            errors.append({"section": item.section, "error": "至少需要填写日薪或加班时薪"})
            continue
        for rate_type, amount in (("REGULAR", item.regular), ("OVERTIME", item.overtime)):
            if amount is None:
                continue
            rate = await salary_service.replace_section_rate(db, item.section, rate_type, amount, effective_date)
            updated.append({"section": rate.section, "rate_type": rate.rate_type, "amount": float(rate.amount)})

    if updated:
        await create_audit_log(db, "update", "salary_rate", None, None,
                               f"批量更新工资标准 {len(updated)} 项", new_value={"rates": updated})
    await db.commit()

    return {
        "message": "工资标准已更新" if not errors else "部分工资标准更新失败",
        "updated": updated,
        "errors": errors,
        "current_rates": await salary_service.load_current_rates(db),
    }


@router.delete("/")
async def deactivate_salary_rates(
    *,
    db: AsyncSession = Depends(get_db),
    rate_id: Optional[int] = Query(None, alias="id"),
    section: Optional[str] = Query(None),
    rate_type: Optional[str] = Query(None)) -> Any:
    """停用工资标准（按ID，或按工段 + 类型）"""
    if rate_id:
        conditions = [SalaryRate.id == rate_id]
    elif section:
        conditions = [SalaryRate.section == section]
        if rate_type:
            conditions.append(SalaryRate.rate_type == rate_type)
    else:
        raise HTTPException(status_code=400, detail="需要提供 id 或 section")

    rates = (await db.execute(
        select(SalaryRate).where(and_(SalaryRate.is_active.is_(True), *conditions))
    )).scalars().all()
    if not rates:
        raise HTTPException(status_code=404, detail="没有可停用的工资标准")

    for rate in rates:
        rate.is_active = False
    await create_audit_log(db, "delete", "salary_rate", rate_id, section,
                           f"停用工资标准 {len(rates)} 项", old_value={"ids": [r.id for r in rates]})
    await db.commit()

    return {"message": "停用成功", "deactivated": len(rates)}
