"""
款式上线安排
同一生产线同一时间只安排一个款式，end_date 为空表示持续生产中
"""

from datetime import date, datetime
from sqlalchemy import Column, Integer, Date, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from garment_erp.db.base import Base


class StyleAssignment(Base):
    """款式上线安排"""
    __tablename__ = "style_assignments"

    id = Column(Integer, primary_key=True, index=True)
    line_id = Column(Integer, ForeignKey("lines.id"), nullable=False, index=True, comment="生产线")
    style_id = Column(Integer, ForeignKey("styles.id"), nullable=False, index=True, comment="款式")
    start_date = Column(Date, nullable=False, index=True, comment="开始日期")
    end_date = Column(Date, comment="结束日期")
    target_per_hour = Column(Integer, nullable=False, default=0, comment="小时目标")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    line = relationship("Line", lazy="selectin")
    style = relationship("Style", lazy="selectin")

    def __repr__(self):
        return f"<StyleAssignment line={self.line_id} style={self.style_id} {self.start_date}~{self.end_date}>"

    def is_active_on(self, day: date) -> bool:
        return self.start_date <= day and (self.end_date is None or self.end_date >= day)
