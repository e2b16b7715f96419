"""
费用模型
- ExpenseCategory: 费用类别
- Expense: 日常费用（按线、按类别）
- MonthlyExpense: 月度固定费用（房租、电费等），同月同类别唯一
"""

from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Text, Boolean, Date, DateTime, ForeignKey, DECIMAL, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from garment_erp.db.base import Base


class ExpenseCategory(Base):
    """费用类别"""
    __tablename__ = "expense_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True, index=True, comment="类别名称")
    description = Column(String(200), comment="说明")
    is_active = Column(Boolean, default=True, comment="是否启用")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<ExpenseCategory {self.name}>"


class Expense(Base):
    """日常费用"""
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False, index=True, comment="日期")
    line_id = Column(Integer, ForeignKey("lines.id"), nullable=True, index=True, comment="生产线")
    category_id = Column(Integer, ForeignKey("expense_categories.id"), nullable=False, index=True, comment="费用类别")
    amount = Column(DECIMAL(12, 2), nullable=False, comment="金额")
    description = Column(Text, comment="说明")

    # CASH: 现金
    # MFS: 移动支付
    # BANK: 银行
    # OTHER: 其他
    payment_method = Column(String(10), nullable=False, default="CASH", comment="支付方式")

    created_by = Column(Integer, comment="创建人ID")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    line = relationship("Line", lazy="selectin")
    category = relationship("ExpenseCategory", lazy="selectin")

    def __repr__(self):
        return f"<Expense {self.date} {self.amount}>"

    @property
    def payment_method_display(self) -> str:
        method_map = {
            "CASH": "现金",
            "MFS": "移动支付",
            "BANK": "银行",
            "OTHER": "其他",
        }
        return method_map.get(self.payment_method, self.payment_method)


class MonthlyExpense(Base):
    """月度费用"""
    __tablename__ = "monthly_expenses"
    __table_args__ = (
        UniqueConstraint("month", "year", "category", name="uq_monthly_expense_period_category"),
    )

    id = Column(Integer, primary_key=True, index=True)
    month = Column(Integer, nullable=False, comment="月份 1-12")
    year = Column(Integer, nullable=False, comment="年份")
    category = Column(String(100), nullable=False, comment="类别")
    amount = Column(DECIMAL(12, 2), nullable=False, comment="金额")
    description = Column(Text, comment="说明")
    payment_date = Column(Date, comment="付款日期")

    # PENDING / PAID
    payment_status = Column(String(10), nullable=False, default="PENDING", comment="付款状态")
    remarks = Column(Text, comment="备注")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<MonthlyExpense {self.year}-{self.month:02d} {self.category}>"
