"""费用 Schema"""
from typing import Optional, List, Literal
from pydantic import BaseModel, Field
import datetime as dt


class ExpenseCategoryBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="类别名称")
    description: Optional[str] = Field(None, max_length=200)
    is_active: bool = True


class ExpenseCategoryCreate(ExpenseCategoryBase):
    pass


class ExpenseCategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class ExpenseCategoryResponse(ExpenseCategoryBase):
    id: int
    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True


class ExpenseBase(BaseModel):
    """费用基础字段"""
    date: dt.date = Field(..., description="日期")
    line_id: Optional[int] = Field(None, description="生产线ID")
    category_id: int = Field(..., description="费用类别ID")
    amount: float = Field(..., gt=0, description="金额")
    description: Optional[str] = None
    payment_method: Literal["CASH", "MFS", "BANK", "OTHER"] = Field(default="CASH", description="支付方式")


class ExpenseCreate(ExpenseBase):
    pass


class ExpenseUpdate(BaseModel):
    date: Optional[dt.date] = None
    line_id: Optional[int] = None
    category_id: Optional[int] = None
    amount: Optional[float] = Field(None, gt=0)
    description: Optional[str] = None
    payment_method: Optional[Literal["CASH", "MFS", "BANK", "OTHER"]] = None


class ExpenseResponse(ExpenseBase):
    id: int
    category_name: str = ""
    line_code: str = ""
    payment_method_display: str = ""
    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True


class ExpenseListResponse(BaseModel):
    data: List[ExpenseResponse]
    total: int
    page: int
    limit: int
    total_amount: float = 0
    by_category: List[dict] = []


class MonthlyExpenseBase(BaseModel):
    """月度费用基础字段"""
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    category: str = Field(..., min_length=1, max_length=100)
    amount: float = Field(..., ge=0)
    description: Optional[str] = None
    payment_date: Optional[dt.date] = None
    payment_status: Literal["PENDING", "PAID"] = "PENDING"
    remarks: Optional[str] = None


class MonthlyExpenseCreate(MonthlyExpenseBase):
    pass


class MonthlyExpenseUpdate(BaseModel):
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    amount: Optional[float] = Field(None, ge=0)
    description: Optional[str] = None
    payment_date: Optional[dt.date] = None
    payment_status: Optional[Literal["PENDING", "PAID"]] = None
    remarks: Optional[str] = None


class MonthlyExpenseResponse(MonthlyExpenseBase):
    id: int
    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True


class MonthlyExpenseListResponse(BaseModel):
    data: List[MonthlyExpenseResponse]
    total: int
    total_amount: float = 0
    paid_amount: float = 0
    pending_amount: float = 0
