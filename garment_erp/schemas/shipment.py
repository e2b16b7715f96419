"""发货 Schema"""
from typing import Optional, List
from pydantic import BaseModel, Field
import datetime as dt


class ShipmentBase(BaseModel):
    """发货基础字段"""
    date: dt.date
    style_id: int
    quantity: int = Field(..., gt=0, description="发货数量")
    destination: str = Field(..., min_length=1, max_length=100, description="目的地")
    awb_or_container: Optional[str] = Field(None, max_length=100, description="空运单号/集装箱号")
    remarks: Optional[str] = None


class ShipmentCreate(ShipmentBase):
    pass


class ShipmentUpdate(BaseModel):
    date: Optional[dt.date] = None
    style_id: Optional[int] = None
    quantity: Optional[int] = Field(None, gt=0)
    destination: Optional[str] = Field(None, min_length=1, max_length=100)
    awb_or_container: Optional[str] = None
    remarks: Optional[str] = None


class ShipmentResponse(ShipmentBase):
    id: int
    style_number: str = ""
    buyer: str = ""
    po_number: str = ""
    value: float = 0
    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True


class ShipmentSummary(BaseModel):
    total_shipments: int = 0
    total_quantity: int = 0
    total_value: float = 0
    by_destination: List[dict] = []
    by_style: List[dict] = []


class ShipmentListResponse(BaseModel):
    data: List[ShipmentResponse]
    total: int
    page: int
    limit: int
    summary: ShipmentSummary
