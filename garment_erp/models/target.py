"""
生产目标
line_target 为每小时目标，日目标 = line_target × 工作小时数
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Date, DateTime
from garment_erp.db.base import Base


class Target(Base):
    """生产线小时目标"""
    __tablename__ = "targets"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False, index=True, comment="日期")
    line_no = Column(String(20), nullable=False, index=True, comment="线号")
    style_no = Column(String(50), nullable=False, index=True, comment="款号")
    line_target = Column(Integer, nullable=False, comment="小时目标")
    in_time = Column(String(5), nullable=False, default="08:00", comment="上班时间 HH:MM")
    out_time = Column(String(5), nullable=False, default="20:00", comment="下班时间 HH:MM")
    hourly_production = Column(Integer, nullable=False, default=0, comment="小时产量")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Target {self.date} {self.line_no}/{self.style_no}>"
