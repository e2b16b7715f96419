"""
操作日志模型 - 记录系统中的所有重要操作
用于审计追踪和问题排查
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, JSON
from garment_erp.db.base import Base


class AuditLog(Base):
    """操作日志 - 审计追踪"""
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)

    # 操作人（单机版固定为 1）
    user_id = Column(Integer, nullable=True, index=True)

    # 操作类型
    # create / update / delete / import / export / backup / restore
    action = Column(String(20), nullable=False, index=True, comment="操作类型")

    # 资源类型，如 cashbook / expense / shipment / role
    resource_type = Column(String(50), nullable=False, index=True, comment="资源类型")

    resource_id = Column(Integer, index=True, comment="资源ID")
    resource_name = Column(String(100), comment="资源名称")
    description = Column(String(500), comment="操作描述")

    old_value = Column(JSON, comment="修改前")
    new_value = Column(JSON, comment="修改后")

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f"<AuditLog {self.action} {self.resource_type}:{self.resource_id}>"

    @property
    def action_display(self) -> str:
        """操作类型显示名称"""
        action_map = {
            "create": "创建",
            "update": "更新",
            "delete": "删除",
            "import": "导入",
            "export": "导出",
            "backup": "备份",
            "restore": "恢复",
        }
        return action_map.get(self.action, self.action)

    @property
    def resource_type_display(self) -> str:
        """资源类型显示名称"""
        type_map = {
            "line": "生产线",
            "factory": "工厂",
            "style": "款式",
            "cashbook": "现金账",
            "expense": "费用",
            "expense_category": "费用类别",
            "monthly_expense": "月度费用",
            "production": "生产记录",
            "production_report": "生产日报",
            "target": "目标",
            "shipment": "发货",
            "salary_rate": "工资标准",
            "daily_salary": "日工资",
            "role": "角色",
            "user": "用户",
            "database": "数据库",
        }
        return type_map.get(self.resource_type, self.resource_type)
