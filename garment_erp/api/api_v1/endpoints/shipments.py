"""发货管理API"""

from datetime import date
from typing import Any, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from garment_erp.core.deps import get_db, CURRENT_USER_ID
from garment_erp.core.exceptions import BusinessError, to_http
from garment_erp.models import Shipment, Style
from garment_erp.schemas.shipment import (
    ShipmentCreate, ShipmentUpdate, ShipmentResponse, ShipmentListResponse, ShipmentSummary,
)
from garment_erp.services import shipments as shipment_service
from garment_erp.api.api_v1.endpoints.audit_logs import create_audit_log, snapshot

router = APIRouter()


def build_shipment_response(shipment: Shipment) -> ShipmentResponse:
    """构建发货响应"""
    style = shipment.style
    return ShipmentResponse(
        id=shipment.id,
        date=shipment.date,
        style_id=shipment.style_id,
        style_number=style.style_number if style else "",
        buyer=style.buyer if style else "",
        po_number=(style.po_number or "") if style else "",
        quantity=shipment.quantity,
        destination=shipment.destination,
        awb_or_container=shipment.awb_or_container,
        remarks=shipment.remarks,
        value=shipment.value,
        created_at=shipment.created_at,
        updated_at=shipment.updated_at,
    )


async def _load_shipment(db: AsyncSession, shipment_id: int) -> Shipment:
    result = await db.execute(
        select(Shipment).where(Shipment.id == shipment_id).execution_options(populate_existing=True)
    )
    shipment = result.scalar_one_or_none()
    if not shipment:
        raise HTTPException(status_code=404, detail="发货记录不存在")
    return shipment


@router.get("/", response_model=ShipmentListResponse)
async def list_shipments(
    *,
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    style_id: Optional[int] = Query(None),
    po_number: Optional[str] = Query(None),
    destination: Optional[str] = Query(None)) -> Any:
    """获取发货列表（含汇总）"""
    conditions = []
    if start_date:
        conditions.append(Shipment.date >= start_date)
    if end_date:
        conditions.append(Shipment.date <= end_date)
    if style_id:
        conditions.append(Shipment.style_id == style_id)
    if destination:
        conditions.append(Shipment.destination.ilike(f"%{destination}%"))

    query = select(Shipment)
    if po_number:
        query = query.join(Style, Shipment.style_id == Style.id)
        conditions.append(Style.po_number.ilike(f"%{po_number}%"))
    if conditions:
        query = query.where(and_(*conditions))

    # 汇总基于全部筛选结果
    all_shipments = (await db.execute(query)).scalars().all()
    summary = shipment_service.summarize_shipments(all_shipments)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0
    query = query.order_by(Shipment.date.desc(), Shipment.id.desc())
    query = query.offset((page - 1) * limit).limit(limit)
    shipments = (await db.execute(query)).scalars().all()

    return ShipmentListResponse(
        data=[build_shipment_response(s) for s in shipments],
        total=total,
        page=page,
        limit=limit,
        summary=ShipmentSummary(**summary),
    )


@router.post("/", response_model=ShipmentResponse)
async def create_shipment(
    *,
    db: AsyncSession = Depends(get_db),
    shipment_in: ShipmentCreate) -> Any:
    """新增发货（累计发货不得超过订单数量）"""
    try:
        await shipment_service.validate_shipment(db, shipment_in.style_id, shipment_in.quantity)
    except BusinessError as e:
        raise to_http(e)

    shipment = Shipment(**shipment_in.model_dump(), created_by=CURRENT_USER_ID)
    db.add(shipment)
    await db.flush()
    await create_audit_log(db, "create", "shipment", shipment.id, shipment.destination,
                           f"新增发货 {shipment.quantity} 件至 {shipment.destination}",
                           new_value=snapshot(shipment))
    await db.commit()

    # 重新加载关系
    return build_shipment_response(await _load_shipment(db, shipment.id))


@router.get("/{shipment_id}", response_model=ShipmentResponse)
async def get_shipment(
    *,
    db: AsyncSession = Depends(get_db),
    shipment_id: int) -> Any:
    """获取发货详情"""
    return build_shipment_response(await _load_shipment(db, shipment_id))


@router.put("/{shipment_id}", response_model=ShipmentResponse)
async def update_shipment(
    *,
    db: AsyncSession = Depends(get_db),
    shipment_id: int,
    shipment_in: ShipmentUpdate) -> Any:
    """更新发货（校验时排除本条记录）"""
    shipment = await _load_shipment(db, shipment_id)
    update_data = shipment_in.model_dump(exclude_unset=True)

    style_id = update_data.get("style_id") or shipment.style_id
    quantity = update_data.get("quantity") or shipment.quantity
    try:
        await shipment_service.validate_shipment(db, style_id, quantity, exclude_id=shipment_id)
    except BusinessError as e:
        raise to_http(e)

    old_value = snapshot(shipment)
    for field, value in update_data.items():
        setattr(shipment, field, value)
    await create_audit_log(db, "update", "shipment", shipment.id, shipment.destination,
                           f"更新发货 #{shipment.id}", old_value=old_value, new_value=snapshot(shipment))
    await db.commit()

    return build_shipment_response(await _load_shipment(db, shipment_id))


@router.delete("/{shipment_id}")
async def delete_shipment(
    *,
    db: AsyncSession = Depends(get_db),
    shipment_id: int) -> Any:
    """删除发货"""
    shipment = await _load_shipment(db, shipment_id)
    await create_audit_log(db, "delete", "shipment", shipment.id, shipment.destination,
                           f"删除发货 #{shipment.id}", old_value=snapshot(shipment))
    await db.delete(shipment)
    await db.commit()

    return {"message": "删除成功"}
