"""
工厂与生产线
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from garment_erp.db.base import Base


class Factory(Base):
    """工厂"""
    __tablename__ = "factories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, comment="工厂名称")
    code = Column(String(20), nullable=False, unique=True, index=True, comment="工厂编码")
    location = Column(String(200), comment="地址")
    is_active = Column(Boolean, default=True, comment="是否启用")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    lines = relationship("Line", back_populates="factory", passive_deletes=True)

    def __repr__(self):
        return f"<Factory {self.code}: {self.name}>"


class Line(Base):
    """生产线

    编码如 L-01，目标和生产日报按线号（即编码）关联
    """
    __tablename__ = "lines"

    id = Column(Integer, primary_key=True, index=True)
    factory_id = Column(Integer, ForeignKey("factories.id"), nullable=True, index=True, comment="所属工厂")
    name = Column(String(100), nullable=False, comment="线名称")
    code = Column(String(20), nullable=False, unique=True, index=True, comment="线编码")
    is_active = Column(Boolean, default=True, comment="是否启用")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    factory = relationship("Factory", back_populates="lines", lazy="selectin")

    def __repr__(self):
        return f"<Line {self.code}>"
