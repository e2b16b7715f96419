"""工资 Schema"""
from typing import Optional, List, Literal
from pydantic import BaseModel, Field
import datetime as dt


class SalaryRateCreate(BaseModel):
    section: str = Field(..., min_length=1, max_length=50)
    rate_type: Literal["REGULAR", "OVERTIME"]
    amount: float = Field(..., ge=0)
    effective_date: Optional[dt.date] = None


class SalaryRateResponse(BaseModel):
    id: int
    section: str
    rate_type: str
    amount: float
    effective_date: dt.date
    is_active: bool
    created_at: dt.datetime

    class Config:
        from_attributes = True


class SectionRateUpdate(BaseModel):
    """单个工段的新工资标准（不填的类型保持不变）"""
    section: str = Field(..., min_length=1, max_length=50)
    regular: Optional[float] = Field(None, ge=0)
    overtime: Optional[float] = Field(None, ge=0)


class SalaryRateBulkUpdate(BaseModel):
    rates: List[SectionRateUpdate] = Field(..., min_length=1)
    effective_date: Optional[dt.date] = None


class DailySalaryRecord(BaseModel):
    section: str = Field(..., min_length=1, max_length=50)
    worker_count: int = Field(default=0, ge=0)
    regular_rate: Optional[float] = Field(None, ge=0, description="不填则取当前工资标准")
    overtime_hours: float = Field(default=0, ge=0)
    overtime_rate: Optional[float] = Field(None, ge=0, description="不填则取当前工资标准")
    remarks: Optional[str] = None


class DailySalarySave(BaseModel):
    date: dt.date
    records: List[DailySalaryRecord]


class DailySalaryResponse(BaseModel):
    id: int
    date: dt.date
    section: str
    worker_count: int
    regular_rate: float
    overtime_hours: float
    overtime_rate: float
    regular_amount: float
    overtime_amount: float
    total_amount: float
    remarks: Optional[str] = None

    class Config:
        from_attributes = True
