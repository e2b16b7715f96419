"""操作日志 Schema"""
from typing import Optional, List, Any
from pydantic import BaseModel
from datetime import datetime


class AuditLogResponse(BaseModel):
    """操作日志响应"""
    id: int
    user_id: Optional[int] = None
    action: str
    action_display: str = ""
    resource_type: str
    resource_type_display: str = ""
    resource_id: Optional[int] = None
    resource_name: Optional[str] = None
    description: Optional[str] = None
    old_value: Optional[Any] = None
    new_value: Optional[Any] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AuditLogListResponse(BaseModel):
    """操作日志列表响应"""
    data: List[AuditLogResponse]
    total: int
    page: int
    limit: int
