"""
工资模型
- SalaryRate: 各工段的工资标准（常规/加班），更新时旧标准停用、保留历史
- DailySalary: 每日各工段的人数与工资
"""

from datetime import datetime, date
from sqlalchemy import Column, Integer, String, Text, Boolean, Date, DateTime, DECIMAL
from garment_erp.db.base import Base

# 工段展示顺序，未列出的排在后面
SECTION_ORDER = ["Staff", "Operator", "Helper", "Cutting", "Finishing", "Quality", "Security"]


class SalaryRate(Base):
    """工资标准"""
    __tablename__ = "salary_rates"

    id = Column(Integer, primary_key=True, index=True)
    section = Column(String(50), nullable=False, index=True, comment="工段")

    # REGULAR: 日薪
    # OVERTIME: 加班时薪
    rate_type = Column(String(10), nullable=False, comment="类型")
    amount = Column(DECIMAL(10, 2), nullable=False, comment="金额")
    effective_date = Column(Date, nullable=False, default=date.today, comment="生效日期")
    is_active = Column(Boolean, nullable=False, default=True, index=True, comment="是否有效")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<SalaryRate {self.section} {self.rate_type} {self.amount}>"


class DailySalary(Base):
    """日工资"""
    __tablename__ = "daily_salaries"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False, index=True, comment="日期")
    section = Column(String(50), nullable=False, comment="工段")
    worker_count = Column(Integer, nullable=False, default=0, comment="人数")
    regular_rate = Column(DECIMAL(10, 2), nullable=False, default=0, comment="日薪")
    overtime_hours = Column(DECIMAL(8, 2), nullable=False, default=0, comment="加班总工时")
    overtime_rate = Column(DECIMAL(10, 2), nullable=False, default=0, comment="加班时薪")
    regular_amount = Column(DECIMAL(12, 2), nullable=False, default=0, comment="常规工资")
    overtime_amount = Column(DECIMAL(12, 2), nullable=False, default=0, comment="加班工资")
    total_amount = Column(DECIMAL(12, 2), nullable=False, default=0, comment="合计")
    remarks = Column(Text, comment="备注")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<DailySalary {self.date} {self.section} {self.total_amount}>"
