"""
发货服务
- 订单数量约束：同一款式累计发货不超过订单数量
- 发货汇总
"""

from collections import OrderedDict
from typing import Any, Dict, Optional, Sequence

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from garment_erp.core.exceptions import BusinessRuleError, NotFoundError
from garment_erp.models import Shipment, Style


def check_order_quantity(order_qty: int, already_shipped: int, quantity: int) -> None:
    """已发货 + 本次发货 不得超过订单数量"""
    if already_shipped + quantity > (order_qty or 0):
        remaining = max(0, (order_qty or 0) - already_shipped)
        raise BusinessRuleError(
            f"发货数量 {quantity} 超过剩余可发数量 {remaining}"
            f"（订单 {order_qty}，已发 {already_shipped}）"
        )


async def shipped_quantity(db: AsyncSession, style_id: int, exclude_id: Optional[int] = None) -> int:
    query = select(func.coalesce(func.sum(Shipment.quantity), 0)).where(Shipment.style_id == style_id)
    if exclude_id:
        query = query.where(Shipment.id != exclude_id)
    return int((await db.execute(query)).scalar() or 0)


async def validate_shipment(db: AsyncSession, style_id: int, quantity: int,
                            exclude_id: Optional[int] = None) -> Style:
    """
    校验发货

    Raises:
        NotFoundError: 款式不存在
        BusinessRuleError: 超过订单数量
    """
    style = await db.get(Style, style_id)
    if not style:
        raise NotFoundError("款式不存在")
    check_order_quantity(style.order_qty, await shipped_quantity(db, style_id, exclude_id), quantity)
    return style


def summarize_shipments(shipments: Sequence[Any]) -> Dict[str, Any]:
    """发货汇总：数量、货值、按目的地、按款式"""
    by_destination: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
    by_style: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
    for s in shipments:
        destination = by_destination.setdefault(s.destination, {
            "destination": s.destination, "shipments": 0, "quantity": 0, "value": 0.0,
        })
        style_no = s.style.style_number if s.style else str(s.style_id)
        style = by_style.setdefault(style_no, {
            "style_number": style_no,
            "order_qty": s.style.order_qty if s.style else 0,
            "shipments": 0, "quantity": 0, "value": 0.0,
        })
        for bucket in (destination, style):
            bucket["shipments"] += 1
            bucket["quantity"] += s.quantity or 0
            bucket["value"] += s.value

    return {
        "total_shipments": len(shipments),
        "total_quantity": sum(s.quantity or 0 for s in shipments),
        "total_value": round(sum(s.value for s in shipments), 2),
        "by_destination": sorted(by_destination.values(), key=lambda d: d["quantity"], reverse=True),
        "by_style": sorted(by_style.values(), key=lambda d: d["quantity"], reverse=True),
    }
