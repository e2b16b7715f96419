# models包初始化文件
# 导入全部模型，确保建表和导入导出时元数据完整

from garment_erp.models.user import User
from garment_erp.models.role import Role, user_roles
from garment_erp.models.audit_log import AuditLog
from garment_erp.models.factory import Factory, Line
from garment_erp.models.style import Style
from garment_erp.models.cashbook import CashbookEntry
from garment_erp.models.expense import ExpenseCategory, Expense, MonthlyExpense
from garment_erp.models.production import ProductionEntry, DailyProductionReport
from garment_erp.models.target import Target
from garment_erp.models.shipment import Shipment
from garment_erp.models.assignment import StyleAssignment
from garment_erp.models.salary import SalaryRate, DailySalary

__all__ = [
    "User",
    "Role",
    "user_roles",
    "AuditLog",
    "Factory",
    "Line",
    "Style",
    "CashbookEntry",
    "ExpenseCategory",
    "Expense",
    "MonthlyExpense",
    "ProductionEntry",
    "DailyProductionReport",
    "Target",
    "Shipment",
    "StyleAssignment",
    "SalaryRate",
    "DailySalary",
]
