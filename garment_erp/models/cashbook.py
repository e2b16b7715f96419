"""
现金账模型

收入（CREDIT）增加余额，支出（DEBIT）减少余额；
余额不落库，查询时按时间顺序计算
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey, DECIMAL
from sqlalchemy.orm import relationship
from garment_erp.db.base import Base

CASH_RECEIVED_CATEGORY = "Cash Received"
DAILY_EXPENSE_CATEGORY = "Daily Expense"


class CashbookEntry(Base):
    """现金账分录"""
    __tablename__ = "cashbook_entries"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False, index=True, comment="日期")

    # CREDIT: 收入
    # DEBIT: 支出
    type = Column(String(10), nullable=False, index=True, comment="收支类型")
    amount = Column(DECIMAL(12, 2), nullable=False, comment="金额")
    category = Column(String(100), nullable=False, index=True, comment="类别")
    description = Column(Text, comment="说明")

    # 来源单据（如 expense / shipment）
    reference_type = Column(String(50), comment="来源类型")
    reference_id = Column(String(50), comment="来源ID")

    line_id = Column(Integer, ForeignKey("lines.id"), nullable=True, index=True, comment="生产线")

    created_by = Column(Integer, comment="创建人ID")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    line = relationship("Line", lazy="selectin")

    def __repr__(self):
        return f"<CashbookEntry {self.date} {self.type} {self.amount}>"

    @property
    def type_display(self) -> str:
        return {"CREDIT": "收入", "DEBIT": "支出"}.get(self.type, self.type)

    @property
    def signed_amount(self) -> float:
        """带符号金额：收入为正，支出为负"""
        value = float(self.amount or 0)
        return value if self.type == "CREDIT" else -value
