"""操作日志API"""

from typing import Any, Optional
from datetime import datetime, timedelta
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from garment_erp.core.deps import get_db, CURRENT_USER_ID
from garment_erp.models.audit_log import AuditLog
from garment_erp.schemas.audit_log import AuditLogResponse, AuditLogListResponse
from garment_erp.services.data_transfer import serialize_value

router = APIRouter()


def build_log_response(log: AuditLog) -> AuditLogResponse:
    """构建日志响应"""
    return AuditLogResponse(
        id=log.id,
        user_id=log.user_id,
        action=log.action,
        resource_type=log.resource_type,
        resource_id=log.resource_id,
        resource_name=log.resource_name,
        description=log.description,
        old_value=log.old_value,
        new_value=log.new_value,
        created_at=log.created_at,
        action_display=log.action_display,
        resource_type_display=log.resource_type_display,
    )


def _parse_day(value: str) -> datetime:
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise HTTPException(status_code=400, detail=f"日期格式错误，应为 YYYY-MM-DD: {value}")


@router.get("/", response_model=AuditLogListResponse)
async def list_logs(
    *,
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    action: Optional[str] = Query(None),
    resource_type: Optional[str] = Query(None),
    user_id: Optional[int] = Query(None),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None)) -> Any:
    """获取操作日志列表"""
    conditions = []
    if action:
        conditions.append(AuditLog.action == action)
    if resource_type:
        conditions.append(AuditLog.resource_type == resource_type)
    if user_id:
        conditions.append(AuditLog.user_id == user_id)
    if start_date:
        conditions.append(AuditLog.created_at >= _parse_day(start_date))
    if end_date:
        # 包含结束当天
        conditions.append(AuditLog.created_at < _parse_day(end_date) + timedelta(days=1))

    query = select(AuditLog)
    count_query = select(func.count(AuditLog.id))
    if conditions:
        query = query.where(and_(*conditions))
        count_query = count_query.where(and_(*conditions))

    total = (await db.execute(count_query)).scalar() or 0

    # 分页查询
    query = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
    query = query.offset((page - 1) * limit).limit(limit)
    logs = (await db.execute(query)).scalars().all()

    return AuditLogListResponse(
        data=[build_log_response(log) for log in logs],
        total=total,
        page=page,
        limit=limit
    )


# 日志记录工具函数
async def create_audit_log(
    db: AsyncSession,
    action: str,
    resource_type: str,
    resource_id: Optional[int] = None,
    resource_name: Optional[str] = None,
    description: Optional[str] = None,
    old_value: Optional[dict] = None,
    new_value: Optional[dict] = None,
    user_id: int = CURRENT_USER_ID) -> AuditLog:
    """创建审计日志（随业务操作一同提交）"""
    log = AuditLog(
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        resource_name=resource_name,
        description=description,
        old_value=old_value,
        new_value=new_value,
    )
    db.add(log)
    return log


def snapshot(obj: Any) -> dict:
    """记录当前字段值（用于 old_value / new_value）"""
    return {
        column.key: serialize_value(getattr(obj, column.key))
        for column in obj.__table__.columns
        if column.key not in ("created_at", "updated_at")
    }
