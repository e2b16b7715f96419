"""生产记录 / 裁剪 / 生产日报 Schema"""
from typing import Optional, List, Literal
from pydantic import BaseModel, Field
import datetime as dt


class ProductionEntryBase(BaseModel):
    """小时生产记录基础字段"""
    date: dt.date
    hour_index: int = Field(default=8, ge=8, le=19, description="小时序号 8-19")
    line_id: int
    style_id: int
    stage: Literal["CUTTING", "SEWING", "FINISHING", "QUALITY"] = "SEWING"
    input_qty: int = Field(default=0, ge=0)
    output_qty: int = Field(default=0, ge=0)
    defect_qty: int = Field(default=0, ge=0)
    notes: Optional[str] = None


class ProductionEntryCreate(ProductionEntryBase):
    pass


class ProductionEntryUpdate(BaseModel):
    date: Optional[dt.date] = None
    hour_index: Optional[int] = Field(None, ge=8, le=19)
    line_id: Optional[int] = None
    style_id: Optional[int] = None
    stage: Optional[Literal["CUTTING", "SEWING", "FINISHING", "QUALITY"]] = None
    input_qty: Optional[int] = Field(None, ge=0)
    output_qty: Optional[int] = Field(None, ge=0)
    defect_qty: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None


class ProductionEntryResponse(ProductionEntryBase):
    id: int
    line_code: str = ""
    style_number: str = ""
    stage_display: str = ""
    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True


class ProductionEntryListResponse(BaseModel):
    data: List[ProductionEntryResponse]
    total: int
    page: int
    limit: int


class CuttingInputCreate(BaseModel):
    """裁剪投入（收到裁片）"""
    date: dt.date
    line_id: int
    style_id: int
    input_qty: int = Field(..., gt=0)
    hour_index: int = Field(default=8, ge=8, le=19)
    notes: Optional[str] = None


class CuttingOutputCreate(BaseModel):
    """裁剪产出（交付下道工序）"""
    date: dt.date
    line_id: int
    style_id: int
    output_qty: int = Field(..., ge=0)
    defect_qty: int = Field(default=0, ge=0)
    hour_index: int = Field(default=8, ge=8, le=19)
    notes: Optional[str] = None


class DailyReportUpsert(BaseModel):
    """生产日报录入"""
    date: dt.date
    style_id: int
    line_no: str = Field(..., min_length=1, max_length=20)
    target_qty: int = Field(default=0, ge=0)
    production_qty: int = Field(default=0, ge=0)
    unit_price: Optional[float] = Field(None, ge=0, description="不填则取款式单价")
    notes: Optional[str] = None
    action: Literal["ADD", "SUBTRACT", "REPLACE"] = Field(default="ADD", description="累加 / 扣减 / 覆盖")


class DailyReportResponse(BaseModel):
    id: int
    date: dt.date
    style_id: int
    style_number: str = ""
    buyer: str = ""
    line_no: str
    target_qty: int
    production_qty: int
    unit_price: float
    total_amount: float
    net_amount: float
    efficiency: float = 0
    notes: Optional[str] = None

    class Config:
        from_attributes = True
