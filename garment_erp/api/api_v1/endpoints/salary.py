"""日工资API"""

from datetime import date
from typing import Any, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from garment_erp.core.deps import get_db
from garment_erp.models import DailySalary
from garment_erp.schemas.salary import DailySalarySave, DailySalaryResponse
from garment_erp.services import salary as salary_service
from garment_erp.api.api_v1.endpoints.audit_logs import create_audit_log

router = APIRouter()


@router.get("/daily")
async def get_daily_salary(
    *,
    db: AsyncSession = Depends(get_db),
    salary_date: Optional[date] = Query(None, alias="date", description="默认今天")) -> Any:
    """某日工资（按工段固定顺序）"""
    salary_date = salary_date or date.today()
    records = (await db.execute(
        select(DailySalary).where(DailySalary.date == salary_date)
    )).scalars().all()
    records = sorted(records, key=lambda r: salary_service.section_sort_key(r.section))

    return {
        "date": salary_date.isoformat(),
        "records": [DailySalaryResponse.model_validate(r) for r in records],
        "summary": salary_service.summarize_daily_salary(records),
        "current_rates": await salary_service.load_current_rates(db),
    }


@router.post("/daily")
async def save_daily_salary(
    *,
    db: AsyncSession = Depends(get_db),
    salary_in: DailySalarySave) -> Any:
    """保存某日工资（覆盖当天记录，未填标准时取现行工资标准）"""
    await create_audit_log(db, "update", "daily_salary", None, salary_in.date.isoformat(),
                           f"保存日工资 {salary_in.date} 共 {len(salary_in.records)} 个工段")
    records = await salary_service.save_daily_salary(db, salary_in.date, salary_in.records)

    return {
        "message": "保存成功",
        "date": salary_in.date.isoformat(),
        "records": [DailySalaryResponse.model_validate(r) for r in records],
        "summary": salary_service.summarize_daily_salary(records),
    }
