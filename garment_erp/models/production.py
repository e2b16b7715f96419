"""
生产模型
- ProductionEntry: 按小时记录的各工序投入/产出（裁剪、缝制、整烫、质检）
- DailyProductionReport: 每日每线每款的产量日报，生产收入的来源
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import (
    Column, Integer, String, Text, Date, DateTime, ForeignKey, DECIMAL, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from garment_erp.db.base import Base

STAGES = ["CUTTING", "SEWING", "FINISHING", "QUALITY"]


class ProductionEntry(Base):
    """小时生产记录"""
    __tablename__ = "production_entries"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False, index=True, comment="日期")
    # 8 表示 8:00-9:00，最大 19
    hour_index = Column(Integer, nullable=False, default=8, comment="小时序号")
    line_id = Column(Integer, ForeignKey("lines.id"), nullable=False, index=True, comment="生产线")
    style_id = Column(Integer, ForeignKey("styles.id"), nullable=False, index=True, comment="款式")
    stage = Column(String(20), nullable=False, default="SEWING", index=True, comment="工序")
    input_qty = Column(Integer, nullable=False, default=0, comment="投入数量")
    output_qty = Column(Integer, nullable=False, default=0, comment="产出数量")
    defect_qty = Column(Integer, nullable=False, default=0, comment="次品数量")
    notes = Column(Text, comment="备注")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    line = relationship("Line", lazy="selectin")
    style = relationship("Style", lazy="selectin")

    def __repr__(self):
        return f"<ProductionEntry {self.date} h{self.hour_index} {self.stage}>"

    @property
    def stage_display(self) -> str:
        stage_map = {
            "CUTTING": "裁剪",
            "SEWING": "缝制",
            "FINISHING": "整烫",
            "QUALITY": "质检",
        }
        return stage_map.get(self.stage, self.stage)


class DailyProductionReport(Base):
    """生产日报

    total_amount = production_qty × unit_price（美元）
    net_amount = total_amount × 加工费比例 / 100 × 汇率（塔卡）
    """
    __tablename__ = "daily_production_reports"
    __table_args__ = (
        UniqueConstraint("date", "style_id", "line_no", name="uq_daily_report_date_style_line"),
    )

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False, index=True, comment="日期")
    style_id = Column(Integer, ForeignKey("styles.id"), nullable=False, index=True, comment="款式")
    line_no = Column(String(20), nullable=False, index=True, comment="线号")
    target_qty = Column(Integer, nullable=False, default=0, comment="目标数量")
    production_qty = Column(Integer, nullable=False, default=0, comment="生产数量")
    unit_price = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"), comment="单价（美元）")
    total_amount = Column(DECIMAL(14, 2), nullable=False, default=Decimal("0.00"), comment="产值（美元）")
    net_amount = Column(DECIMAL(14, 2), nullable=False, default=Decimal("0.00"), comment="净收入（塔卡）")
    notes = Column(Text, comment="备注")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    style = relationship("Style", lazy="selectin")

    def __repr__(self):
        return f"<DailyProductionReport {self.date} {self.line_no}>"
