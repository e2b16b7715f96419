"""
款式（订单）模型
一个款式对应买家的一个 PO，发货数量不得超过订单数量
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, DateTime, DECIMAL
from garment_erp.db.base import Base


class Style(Base):
    """款式"""
    __tablename__ = "styles"

    id = Column(Integer, primary_key=True, index=True)
    style_number = Column(String(50), nullable=False, unique=True, index=True, comment="款号")
    buyer = Column(String(100), nullable=False, comment="买家")
    po_number = Column(String(50), index=True, comment="PO号")
    item = Column(String(100), comment="品名")
    order_qty = Column(Integer, nullable=False, default=0, comment="订单数量")
    unit_price = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"), comment="单价（美元）")
    # 加工费比例，净收入 = 产值 × 比例 / 100 × 汇率
    commission_percentage = Column(DECIMAL(5, 2), nullable=False, default=Decimal("0.00"), comment="加工费比例(%)")

    # PENDING: 待生产
    # RUNNING: 生产中
    # COMPLETE: 已完成
    status = Column(String(20), nullable=False, default="PENDING", comment="状态")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Style {self.style_number} ({self.buyer})>"

    @property
    def status_display(self) -> str:
        status_map = {
            "PENDING": "待生产",
            "RUNNING": "生产中",
            "COMPLETE": "已完成",
        }
        return status_map.get(self.status, self.status)
