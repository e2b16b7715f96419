"""
发货记录
同一款式累计发货数量不得超过订单数量
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from garment_erp.db.base import Base


class Shipment(Base):
    """发货"""
    __tablename__ = "shipments"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False, index=True, comment="发货日期")
    style_id = Column(Integer, ForeignKey("styles.id"), nullable=False, index=True, comment="款式")
    quantity = Column(Integer, nullable=False, comment="数量")
    destination = Column(String(100), nullable=False, index=True, comment="目的地")
    awb_or_container = Column(String(100), comment="空运单号/集装箱号")
    remarks = Column(Text, comment="备注")

    created_by = Column(Integer, comment="创建人ID")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    style = relationship("Style", lazy="selectin")

    def __repr__(self):
        return f"<Shipment {self.date} style={self.style_id} qty={self.quantity}>"

    @property
    def value(self) -> float:
        """货值（数量 × 款式单价）"""
        if not self.style:
            return 0.0
        return float(self.quantity or 0) * float(self.style.unit_price or 0)
