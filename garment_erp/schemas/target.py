"""生产目标 Schema"""
from typing import Optional, List
from pydantic import BaseModel, Field
import datetime as dt

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class TargetBase(BaseModel):
    """目标基础字段"""
    date: dt.date
    line_no: str = Field(..., min_length=1, max_length=20, description="线号")
    style_no: str = Field(..., min_length=1, max_length=50, description="款号")
    line_target: int = Field(..., gt=0, description="小时目标")
    in_time: str = Field(default="08:00", pattern=TIME_PATTERN)
    out_time: str = Field(default="20:00", pattern=TIME_PATTERN)
    hourly_production: int = Field(default=0, ge=0)


class TargetCreate(TargetBase):
    pass


class TargetUpdate(BaseModel):
    date: Optional[dt.date] = None
    line_no: Optional[str] = Field(None, min_length=1, max_length=20)
    style_no: Optional[str] = Field(None, min_length=1, max_length=50)
    line_target: Optional[int] = Field(None, gt=0)
    in_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    out_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    hourly_production: Optional[int] = Field(None, ge=0)


class TargetResponse(TargetBase):
    id: int
    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True


class TargetBulkDelete(BaseModel):
    ids: List[int] = Field(..., min_length=1)
