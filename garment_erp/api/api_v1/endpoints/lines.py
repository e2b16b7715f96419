"""生产线管理API"""

from typing import Any, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from garment_erp.core.deps import get_db
from garment_erp.models import Factory, Line, CashbookEntry, Expense, ProductionEntry, StyleAssignment
from garment_erp.schemas.reference import LineCreate, LineUpdate, LineResponse, LineListResponse
from garment_erp.api.api_v1.endpoints.audit_logs import create_audit_log, snapshot

router = APIRouter()


def build_line_response(line: Line) -> LineResponse:
    """构建生产线响应"""
    return LineResponse(
        id=line.id,
        name=line.name,
        code=line.code,
        factory_id=line.factory_id,
        factory_name=line.factory.name if line.factory else "",
        is_active=line.is_active,
        created_at=line.created_at,
        updated_at=line.updated_at,
    )


async def _load_line(db: AsyncSession, line_id: int) -> Line:
    result = await db.execute(
        select(Line).where(Line.id == line_id).execution_options(populate_existing=True)
    )
    line = result.scalar_one_or_none()
    if not line:
        raise HTTPException(status_code=404, detail="生产线不存在")
    return line


async def _check_factory(db: AsyncSession, factory_id: Optional[int]):
    if factory_id and not await db.get(Factory, factory_id):
        raise HTTPException(status_code=404, detail="工厂不存在")


async def _ensure_unique_code(db: AsyncSession, code: str, exclude_id: Optional[int] = None):
    query = select(Line).where(Line.code == code)
    if exclude_id:
        query = query.where(Line.id != exclude_id)
    if (await db.execute(query)).scalar_one_or_none():
        raise HTTPException(status_code=409, detail=f"生产线编码已存在: {code}")


@router.get("/", response_model=LineListResponse)
async def list_lines(
    *,
    db: AsyncSession = Depends(get_db),
    factory_id: Optional[int] = Query(None),
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None, description="按名称或编码搜索")) -> Any:
    """获取生产线列表"""
    conditions = []
    if factory_id:
        conditions.append(Line.factory_id == factory_id)
    if is_active is not None:
        conditions.append(Line.is_active == is_active)
    if search:
        conditions.append(or_(Line.name.ilike(f"%{search}%"), Line.code.ilike(f"%{search}%")))

    query = select(Line)
    if conditions:
        query = query.where(and_(*conditions))
    lines = (await db.execute(query.order_by(Line.code))).scalars().all()

    return LineListResponse(
        data=[build_line_response(line) for line in lines],
        total=len(lines)
    )


@router.get("/{line_id}", response_model=LineResponse)
async def get_line(
    *,
    db: AsyncSession = Depends(get_db),
    line_id: int) -> Any:
    """获取生产线详情"""
    return build_line_response(await _load_line(db, line_id))


@router.post("/", response_model=LineResponse)
async def create_line(
    *,
    db: AsyncSession = Depends(get_db),
    line_in: LineCreate) -> Any:
    """创建生产线"""
    await _check_factory(db, line_in.factory_id)
    await _ensure_unique_code(db, line_in.code)

    line = Line(**line_in.model_dump())
    db.add(line)
    await db.flush()
    await create_audit_log(db, "create", "line", line.id, line.code,
                           f"创建生产线 {line.code}", new_value=snapshot(line))
    await db.commit()

    # 重新加载关系
    return build_line_response(await _load_line(db, line.id))


@router.put("/{line_id}", response_model=LineResponse)
async def update_line(
    *,
    db: AsyncSession = Depends(get_db),
    line_id: int,
    line_in: LineUpdate) -> Any:
    """更新生产线"""
    line = await _load_line(db, line_id)

    update_data = line_in.model_dump(exclude_unset=True)
    if "factory_id" in update_data:
        await _check_factory(db, update_data["factory_id"])
    if update_data.get("code") and update_data["code"] != line.code:
        await _ensure_unique_code(db, update_data["code"], exclude_id=line_id)

    old_value = snapshot(line)
    for field, value in update_data.items():
        setattr(line, field, value)
    await create_audit_log(db, "update", "line", line.id, line.code,
                           f"更新生产线 {line.code}", old_value=old_value, new_value=snapshot(line))
    await db.commit()

    return build_line_response(await _load_line(db, line_id))


@router.delete("/{line_id}")
async def delete_line(
    *,
    db: AsyncSession = Depends(get_db),
    line_id: int) -> Any:
    """删除生产线"""
    line = await _load_line(db, line_id)

    # 检查是否被业务记录引用
    usage = 0
    for model in (CashbookEntry, Expense, ProductionEntry, StyleAssignment):
        usage += (await db.execute(
            select(func.count(model.id)).where(model.line_id == line_id)
        )).scalar() or 0
    if usage > 0:
        raise HTTPException(
            status_code=400,
            detail=f"该生产线已被 {usage} 条记录使用，无法删除，可改为停用"
        )

    await create_audit_log(db, "delete", "line", line.id, line.code,
                           f"删除生产线 {line.code}", old_value=snapshot(line))
    await db.delete(line)
    await db.commit()

    return {"message": "删除成功"}
