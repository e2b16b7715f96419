"""生产目标API"""

from datetime import date
from typing import Any, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, delete, and_
from sqlalchemy.ext.asyncio import AsyncSession

from garment_erp.core.config import settings
from garment_erp.core.deps import get_db
from garment_erp.models import Target, ProductionEntry
from garment_erp.schemas.target import TargetCreate, TargetUpdate, TargetResponse, TargetBulkDelete
from garment_erp.services import production_reports
from garment_erp.api.api_v1.endpoints.audit_logs import create_audit_log, snapshot

router = APIRouter()

# 目标日报统计的工序
REPORT_STAGE = "SEWING"


@router.get("/", response_model=List[TargetResponse])
async def list_targets(
    *,
    db: AsyncSession = Depends(get_db),
    target_date: Optional[date] = Query(None, alias="date"),
    line_no: Optional[str] = Query(None)) -> Any:
    """获取目标列表（不传日期时返回全部）"""
    query = select(Target)
    if target_date:
        query = query.where(Target.date == target_date)
    if line_no:
        query = query.where(Target.line_no == line_no)
    query = query.order_by(Target.date.desc(), Target.line_no, Target.style_no)
    return (await db.execute(query)).scalars().all()


@router.get("/daily-report")
async def get_daily_report(
    *,
    db: AsyncSession = Depends(get_db),
    report_date: date = Query(..., alias="date", description="报表日期")) -> Any:
    """
    生产目标日报

    每个目标按小时（8-9 … 7-8）汇总对应线号、款号的缝制产出
    """
    targets = (await db.execute(
        select(Target).where(Target.date == report_date).order_by(Target.line_no)
    )).scalars().all()
    entries = (await db.execute(
        select(ProductionEntry).where(and_(
            ProductionEntry.date == report_date,
            ProductionEntry.stage == REPORT_STAGE,
        ))
    )).scalars().all()

    report = production_reports.build_target_daily_report(targets, entries, settings.WORKING_HOURS_PER_DAY)
    report["date"] = report_date.isoformat()
    return report


@router.post("/bulk-delete")
async def bulk_delete_targets(
    *,
    db: AsyncSession = Depends(get_db),
    delete_in: TargetBulkDelete) -> Any:
    """批量删除目标"""
    result = await db.execute(delete(Target).where(Target.id.in_(delete_in.ids)))
    deleted = result.rowcount or 0
    await create_audit_log(db, "delete", "target", None, None,
                           f"批量删除目标 {deleted} 条", old_value={"ids": delete_in.ids})
    await db.commit()

    return {"message": "删除成功", "deleted": deleted}


@router.post("/", response_model=TargetResponse)
async def create_target(
    *,
    db: AsyncSession = Depends(get_db),
    target_in: TargetCreate) -> Any:
    """创建目标"""
    target = Target(**target_in.model_dump())
    db.add(target)
    await db.flush()
    await create_audit_log(db, "create", "target", target.id, f"{target.line_no}/{target.style_no}",
                           f"新增目标 {target.date} {target.line_no}", new_value=snapshot(target))
    await db.commit()
    await db.refresh(target)
    return target


@router.get("/{target_id}", response_model=TargetResponse)
async def get_target(
    *,
    db: AsyncSession = Depends(get_db),
    target_id: int) -> Any:
    """获取目标详情"""
    target = await db.get(Target, target_id)
    if not target:
        raise HTTPException(status_code=404, detail="目标不存在")
    return target


@router.put("/{target_id}", response_model=TargetResponse)
async def update_target(
    *,
    db: AsyncSession = Depends(get_db),
    target_id: int,
    target_in: TargetUpdate) -> Any:
    """更新目标"""
    target = await db.get(Target, target_id)
    if not target:
        raise HTTPException(status_code=404, detail="目标不存在")

    old_value = snapshot(target)
    for field, value in target_in.model_dump(exclude_unset=True).items():
        setattr(target, field, value)
    await create_audit_log(db, "update", "target", target.id, f"{target.line_no}/{target.style_no}",
                           f"更新目标 #{target.id}", old_value=old_value, new_value=snapshot(target))
    await db.commit()
    await db.refresh(target)
    return target


@router.delete("/{target_id}")
async def delete_target(
    *,
    db: AsyncSession = Depends(get_db),
    target_id: int) -> Any:
    """删除目标"""
    target = await db.get(Target, target_id)
    if not target:
        raise HTTPException(status_code=404, detail="目标不存在")

    await create_audit_log(db, "delete", "target", target.id, f"{target.line_no}/{target.style_no}",
                           f"删除目标 #{target.id}", old_value=snapshot(target))
    await db.delete(target)
    await db.commit()

    return {"message": "删除成功"}
