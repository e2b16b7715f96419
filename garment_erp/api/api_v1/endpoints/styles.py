"""款式（订单）管理API"""

from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from garment_erp.core.deps import get_db
from garment_erp.models import Style, Shipment, ProductionEntry, DailyProductionReport, StyleAssignment
from garment_erp.schemas.reference import StyleCreate, StyleUpdate, StyleResponse, StyleListResponse
from garment_erp.api.api_v1.endpoints.audit_logs import create_audit_log, snapshot

router = APIRouter()


async def shipped_quantities(db: AsyncSession, style_ids) -> Dict[int, int]:
    """各款式累计发货数量"""
    if not style_ids:
        return {}
    rows = (await db.execute(
        select(Shipment.style_id, func.coalesce(func.sum(Shipment.quantity), 0))
        .where(Shipment.style_id.in_(list(style_ids)))
        .group_by(Shipment.style_id)
    )).all()
    return {row[0]: int(row[1]) for row in rows}


def build_style_response(style: Style, shipped: int = 0) -> StyleResponse:
    """构建款式响应"""
    return StyleResponse(
        id=style.id,
        style_number=style.style_number,
        buyer=style.buyer,
        po_number=style.po_number,
        item=style.item,
        order_qty=style.order_qty,
        unit_price=float(style.unit_price or 0),
        commission_percentage=float(style.commission_percentage or 0),
        status=style.status,
        status_display=style.status_display,
        shipped_qty=shipped,
        remaining_qty=max(0, (style.order_qty or 0) - shipped),
        created_at=style.created_at,
        updated_at=style.updated_at,
    )


async def _ensure_unique_number(db: AsyncSession, style_number: str, exclude_id: Optional[int] = None):
    query = select(Style).where(Style.style_number == style_number)
    if exclude_id:
        query = query.where(Style.id != exclude_id)
    if (await db.execute(query)).scalar_one_or_none():
        raise HTTPException(status_code=409, detail=f"款号已存在: {style_number}")


@router.get("/", response_model=StyleListResponse)
async def list_styles(
    *,
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    search: Optional[str] = Query(None, description="款号 / 买家 / PO号"),
    status: Optional[str] = Query(None),
    buyer: Optional[str] = Query(None)) -> Any:
    """获取款式列表"""
    conditions = []
    if search:
        conditions.append(or_(
            Style.style_number.ilike(f"%{search}%"),
            Style.buyer.ilike(f"%{search}%"),
            Style.po_number.ilike(f"%{search}%"),
        ))
    if status:
        conditions.append(Style.status == status)
    if buyer:
        conditions.append(Style.buyer.ilike(f"%{buyer}%"))

    query = select(Style)
    if conditions:
        query = query.where(and_(*conditions))

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0

    query = query.order_by(Style.created_at.desc(), Style.id.desc())
    query = query.offset((page - 1) * limit).limit(limit)
    styles = (await db.execute(query)).scalars().all()
    shipped = await shipped_quantities(db, [s.id for s in styles])

    return StyleListResponse(
        data=[build_style_response(s, shipped.get(s.id, 0)) for s in styles],
        total=total,
        page=page,
        limit=limit
    )


@router.get("/{style_id}", response_model=StyleResponse)
async def get_style(
    *,
    db: AsyncSession = Depends(get_db),
    style_id: int) -> Any:
    """获取款式详情"""
    style = await db.get(Style, style_id)
    if not style:
        raise HTTPException(status_code=404, detail="款式不存在")
    shipped = await shipped_quantities(db, [style.id])
    return build_style_response(style, shipped.get(style.id, 0))


@router.post("/", response_model=StyleResponse)
async def create_style(
    *,
    db: AsyncSession = Depends(get_db),
    style_in: StyleCreate) -> Any:
    """创建款式"""
    await _ensure_unique_number(db, style_in.style_number)

    style = Style(**style_in.model_dump())
    db.add(style)
    await db.flush()
    await create_audit_log(db, "create", "style", style.id, style.style_number,
                           f"创建款式 {style.style_number}", new_value=snapshot(style))
    await db.commit()
    await db.refresh(style)

    return build_style_response(style)


@router.put("/{style_id}", response_model=StyleResponse)
async def update_style(
    *,
    db: AsyncSession = Depends(get_db),
    style_id: int,
    style_in: StyleUpdate) -> Any:
    """更新款式"""
    style = await db.get(Style, style_id)
    if not style:
        raise HTTPException(status_code=404, detail="款式不存在")

    update_data = style_in.model_dump(exclude_unset=True)
    if update_data.get("style_number") and update_data["style_number"] != style.style_number:
        await _ensure_unique_number(db, update_data["style_number"], exclude_id=style_id)

    # 订单数量不能小于已发货数量
    shipped = (await shipped_quantities(db, [style_id])).get(style_id, 0)
    if update_data.get("order_qty") is not None and update_data["order_qty"] < shipped:
        raise HTTPException(
            status_code=400,
            detail=f"订单数量 {update_data['order_qty']} 不能小于已发货数量 {shipped}"
        )

    old_value = snapshot(style)
    for field, value in update_data.items():
        setattr(style, field, value)
    await create_audit_log(db, "update", "style", style.id, style.style_number,
                           f"更新款式 {style.style_number}", old_value=old_value, new_value=snapshot(style))
    await db.commit()
    await db.refresh(style)

    return build_style_response(style, shipped)


@router.delete("/{style_id}")
async def delete_style(
    *,
    db: AsyncSession = Depends(get_db),
    style_id: int) -> Any:
    """删除款式"""
    style = await db.get(Style, style_id)
    if not style:
        raise HTTPException(status_code=404, detail="款式不存在")

    usage = 0
    for model in (Shipment, ProductionEntry, DailyProductionReport, StyleAssignment):
        usage += (await db.execute(
            select(func.count(model.id)).where(model.style_id == style_id)
        )).scalar() or 0
    if usage > 0:
        raise HTTPException(
            status_code=400,
            detail=f"该款式已被 {usage} 条记录使用，无法删除"
        )

    await create_audit_log(db, "delete", "style", style.id, style.style_number,
                           f"删除款式 {style.style_number}", old_value=snapshot(style))
    await db.delete(style)
    await db.commit()

    return {"message": "删除成功"}
