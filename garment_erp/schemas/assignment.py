"""款式上线安排 Schema"""
from typing import Optional, List
from pydantic import BaseModel, Field
import datetime as dt


class StyleAssignmentBase(BaseModel):
    line_id: int
    style_id: int
    start_date: Optional[dt.date] = Field(None, description="开始日期，默认今天")
    end_date: Optional[dt.date] = Field(None, description="结束日期，留空表示持续")
    target_per_hour: int = Field(default=0, ge=0, description="小时目标")


class StyleAssignmentCreate(StyleAssignmentBase):
    pass


class StyleAssignmentUpdate(BaseModel):
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    target_per_hour: Optional[int] = Field(None, ge=0)


class StyleAssignmentResponse(BaseModel):
    id: int
    line_id: int
    line_code: str = ""
    line_name: str = ""
    style_id: int
    style_number: str = ""
    buyer: str = ""
    start_date: dt.date
    end_date: Optional[dt.date] = None
    target_per_hour: int
    is_active: bool = False
    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True


class StyleAssignmentListResponse(BaseModel):
    data: List[StyleAssignmentResponse]
    total: int
    page: int
    limit: int
    active_count: int = 0
