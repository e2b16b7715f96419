"""现金账 Schema"""
from typing import Optional, List, Literal
from pydantic import BaseModel, Field
import datetime as dt


class CashbookEntryBase(BaseModel):
    """现金账基础字段"""
    date: dt.date = Field(..., description="日期")
    type: Literal["CREDIT", "DEBIT"] = Field(..., description="CREDIT 收入 / DEBIT 支出")
    amount: float = Field(..., gt=0, description="金额，必须大于0")
    category: str = Field(..., min_length=1, max_length=100, description="类别")
    description: Optional[str] = Field(None, description="说明")
    reference_type: Optional[str] = Field(None, max_length=50, description="来源类型")
    reference_id: Optional[str] = Field(None, max_length=50, description="来源ID")
    line_id: Optional[int] = Field(None, description="生产线ID")


class CashbookEntryCreate(CashbookEntryBase):
    pass


class CashbookEntryUpdate(BaseModel):
    date: Optional[dt.date] = None
    type: Optional[Literal["CREDIT", "DEBIT"]] = None
    amount: Optional[float] = Field(None, gt=0)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    line_id: Optional[int] = None


class QuickEntryCreate(BaseModel):
    """收款 / 日常支出快捷录入（类别有默认值）"""
    date: dt.date
    amount: float = Field(..., gt=0)
    category: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    line_id: Optional[int] = None


class CashbookEntryResponse(CashbookEntryBase):
    id: int
    type_display: str = ""
    line_code: str = ""
    running_balance: Optional[float] = None
    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True


class CashbookListResponse(BaseModel):
    """现金账列表响应"""
    data: List[CashbookEntryResponse]
    total: int
    page: int
    limit: int
    total_credit: float = 0
    total_debit: float = 0
    closing_balance: float = 0


class QuickEntryListResponse(BaseModel):
    data: List[CashbookEntryResponse]
    total: int
    total_amount: float = 0
