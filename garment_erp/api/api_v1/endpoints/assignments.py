"""款式上线安排API"""

from datetime import date
from typing import Any, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from garment_erp.core.deps import get_db
from garment_erp.models import StyleAssignment, Line, Style
from garment_erp.schemas.assignment import (
    StyleAssignmentCreate, StyleAssignmentUpdate, StyleAssignmentResponse, StyleAssignmentListResponse,
)
from garment_erp.api.api_v1.endpoints.audit_logs import create_audit_log, snapshot

router = APIRouter()


def build_assignment_response(assignment: StyleAssignment, today: Optional[date] = None) -> StyleAssignmentResponse:
    """构建上线安排响应"""
    line, style = assignment.line, assignment.style
    return StyleAssignmentResponse(
        id=assignment.id,
        line_id=assignment.line_id,
        line_code=line.code if line else "",
        line_name=line.name if line else "",
        style_id=assignment.style_id,
        style_number=style.style_number if style else "",
        buyer=style.buyer if style else "",
        start_date=assignment.start_date,
        end_date=assignment.end_date,
        target_per_hour=assignment.target_per_hour,
        is_active=assignment.is_active_on(today or date.today()),
        created_at=assignment.created_at,
        updated_at=assignment.updated_at,
    )


def active_on(day: date):
    return and_(
        StyleAssignment.start_date <= day,
        or_(StyleAssignment.end_date.is_(None), StyleAssignment.end_date >= day),
    )


async def _load_assignment(db: AsyncSession, assignment_id: int) -> StyleAssignment:
    result = await db.execute(
        select(StyleAssignment).where(StyleAssignment.id == assignment_id)
        .execution_options(populate_existing=True)
    )
    assignment = result.scalar_one_or_none()
    if not assignment:
        raise HTTPException(status_code=404, detail="上线安排不存在")
    return assignment


async def _check_period(db: AsyncSession, line_id: int, start: date, end: Optional[date],
                        exclude_id: Optional[int] = None):
    """同一生产线的安排时间段不得重叠"""
    if end is not None and end < start:
        raise HTTPException(status_code=400, detail="结束日期不能早于开始日期")
    query = select(StyleAssignment).where(and_(
        StyleAssignment.line_id == line_id,
        StyleAssignment.start_date <= (end or date.max),
        or_(StyleAssignment.end_date.is_(None), StyleAssignment.end_date >= start),
    ))
    if exclude_id:
        query = query.where(StyleAssignment.id != exclude_id)
    existing = (await db.execute(query)).scalars().first()
    if existing:
        style_no = existing.style.style_number if existing.style else existing.style_id
        raise HTTPException(
            status_code=409,
            detail=f"该生产线在此期间已安排款式 {style_no}，请先结束原安排"
        )


@router.get("/", response_model=StyleAssignmentListResponse)
async def list_assignments(
    *,
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    line_id: Optional[int] = Query(None),
    style_id: Optional[int] = Query(None),
    on_date: Optional[date] = Query(None, alias="date", description="当天有效的安排"),
    active_only: bool = Query(False, description="仅今天有效的安排")) -> Any:
    """获取上线安排列表"""
    today = date.today()
    conditions = []
    if line_id:
        conditions.append(StyleAssignment.line_id == line_id)
    if style_id:
        conditions.append(StyleAssignment.style_id == style_id)
    if on_date:
        conditions.append(active_on(on_date))
    elif active_only:
        conditions.append(active_on(today))

    query = select(StyleAssignment)
    if conditions:
        query = query.where(and_(*conditions))

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0
    active_count = (await db.execute(
        select(func.count()).select_from(query.where(active_on(today)).subquery())
    )).scalar() or 0

    query = query.order_by(StyleAssignment.start_date.desc(), StyleAssignment.id.desc())
    query = query.offset((page - 1) * limit).limit(limit)
    assignments = (await db.execute(query)).scalars().all()

    return StyleAssignmentListResponse(
        data=[build_assignment_response(a, today) for a in assignments],
        total=total,
        page=page,
        limit=limit,
        active_count=active_count,
    )


@router.post("/", response_model=StyleAssignmentResponse)
async def create_assignment(
    *,
    db: AsyncSession = Depends(get_db),
    assignment_in: StyleAssignmentCreate) -> Any:
    """安排款式上线"""
    line = await db.get(Line, assignment_in.line_id)
    if not line:
        raise HTTPException(status_code=404, detail="生产线不存在")
    style = await db.get(Style, assignment_in.style_id)
    if not style:
        raise HTTPException(status_code=404, detail="款式不存在")

    data = assignment_in.model_dump()
    data["start_date"] = data["start_date"] or date.today()
    await _check_period(db, data["line_id"], data["start_date"], data["end_date"])

    assignment = StyleAssignment(**data)
    db.add(assignment)
    await db.flush()
    await create_audit_log(db, "create", "style_assignment", assignment.id,
                           f"{line.code}/{style.style_number}",
                           f"安排款式 {style.style_number} 上线 {line.code}",
                           new_value=snapshot(assignment))
    await db.commit()

    # 重新加载关系
    return build_assignment_response(await _load_assignment(db, assignment.id))


@router.get("/{assignment_id}", response_model=StyleAssignmentResponse)
async def get_assignment(
    *,
    db: AsyncSession = Depends(get_db),
    assignment_id: int) -> Any:
    """获取上线安排"""
    return build_assignment_response(await _load_assignment(db, assignment_id))


@router.put("/{assignment_id}", response_model=StyleAssignmentResponse)
async def update_assignment(
    *,
    db: AsyncSession = Depends(get_db),
    assignment_id: int,
    assignment_in: StyleAssignmentUpdate) -> Any:
    """更新上线安排（修改日期或结束安排）"""
    assignment = await _load_assignment(db, assignment_id)
    update_data = assignment_in.model_dump(exclude_unset=True)
    if update_data.get("start_date") is None:
        update_data.pop("start_date", None)
    if update_data.get("target_per_hour") is None:
        update_data.pop("target_per_hour", None)

    await _check_period(
        db,
        assignment.line_id,
        update_data.get("start_date", assignment.start_date),
        update_data.get("end_date", assignment.end_date),
        exclude_id=assignment_id,
    )

    old_value = snapshot(assignment)
    for field, value in update_data.items():
        setattr(assignment, field, value)
    await create_audit_log(db, "update", "style_assignment", assignment.id, None,
                           f"更新上线安排 #{assignment.id}", old_value=old_value, new_value=snapshot(assignment))
    await db.commit()

    return build_assignment_response(await _load_assignment(db, assignment_id))


@router.delete("/{assignment_id}")
async def delete_assignment(
    *,
    db: AsyncSession = Depends(get_db),
    assignment_id: int) -> Any:
    """删除上线安排"""
    assignment = await _load_assignment(db, assignment_id)
    await create_audit_log(db, "delete", "style_assignment", assignment.id, None,
                           f"删除上线安排 #{assignment.id}", old_value=snapshot(assignment))
    await db.delete(assignment)
    await db.commit()

    return {"message": "删除成功"}
