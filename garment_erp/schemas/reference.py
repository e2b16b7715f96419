"""工厂 / 生产线 / 款式 Schema"""
from typing import Optional, List
from pydantic import BaseModel, Field
from datetime import datetime


class FactoryBase(BaseModel):
    """工厂基础字段"""
    name: str = Field(..., min_length=1, max_length=100, description="工厂名称")
    code: str = Field(..., min_length=1, max_length=20, description="工厂编码")
    location: Optional[str] = Field(None, max_length=200, description="地址")
    is_active: bool = Field(default=True, description="是否启用")


class FactoryCreate(FactoryBase):
    pass


class FactoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    code: Optional[str] = Field(None, min_length=1, max_length=20)
    location: Optional[str] = None
    is_active: Optional[bool] = None


class FactoryResponse(FactoryBase):
    id: int
    line_count: int = 0
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class LineBase(BaseModel):
    """生产线基础字段"""
    name: str = Field(..., min_length=1, max_length=100, description="线名称")
    code: str = Field(..., min_length=1, max_length=20, description="线编码，如 L-01")
    factory_id: Optional[int] = Field(None, description="所属工厂ID")
    is_active: bool = Field(default=True, description="是否启用")


class LineCreate(LineBase):
    pass


class LineUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    code: Optional[str] = Field(None, min_length=1, max_length=20)
    factory_id: Optional[int] = None
    is_active: Optional[bool] = None


class LineResponse(LineBase):
    id: int
    factory_name: str = ""
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class LineListResponse(BaseModel):
    data: List[LineResponse]
    total: int


class StyleBase(BaseModel):
    """款式基础字段"""
    style_number: str = Field(..., min_length=1, max_length=50, description="款号")
    buyer: str = Field(..., min_length=1, max_length=100, description="买家")
    po_number: Optional[str] = Field(None, max_length=50, description="PO号")
    item: Optional[str] = Field(None, max_length=100, description="品名")
    order_qty: int = Field(default=0, ge=0, description="订单数量")
    unit_price: float = Field(default=0, ge=0, description="单价（美元）")
    commission_percentage: float = Field(default=0, ge=0, le=100, description="加工费比例(%)")
    status: str = Field(default="PENDING", pattern="^(PENDING|RUNNING|COMPLETE)$", description="状态")


class StyleCreate(StyleBase):
    pass


class StyleUpdate(BaseModel):
    style_number: Optional[str] = Field(None, min_length=1, max_length=50)
    buyer: Optional[str] = Field(None, min_length=1, max_length=100)
    po_number: Optional[str] = None
    item: Optional[str] = None
    order_qty: Optional[int] = Field(None, ge=0)
    unit_price: Optional[float] = Field(None, ge=0)
    commission_percentage: Optional[float] = Field(None, ge=0, le=100)
    status: Optional[str] = Field(None, pattern="^(PENDING|RUNNING|COMPLETE)$")


class StyleResponse(StyleBase):
    id: int
    status_display: str = ""
    shipped_qty: int = 0
    remaining_qty: int = 0
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class StyleListResponse(BaseModel):
    data: List[StyleResponse]
    total: int
    page: int
    limit: int
