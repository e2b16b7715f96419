"""API 路由聚合 - 单机版（无认证）"""
from fastapi import APIRouter

from garment_erp.api.api_v1.endpoints import (
    factories, lines, styles, cashbook, expenses, expense_categories,
    production, cutting, daily_reports, targets, shipments,
    salary_rates, salary, profit_loss,
    assignments, dashboard,
    roles, users, audit_logs, database, backup,
)

api_router = APIRouter()

# 基础资料
api_router.include_router(factories.router, prefix="/factories", tags=["工厂管理"])
api_router.include_router(lines.router, prefix="/lines", tags=["生产线管理"])
api_router.include_router(styles.router, prefix="/styles", tags=["款式订单"])

# 财务
api_router.include_router(cashbook.router, prefix="/cashbook", tags=["现金簿"])
api_router.include_router(expenses.router, prefix="/expenses", tags=["费用管理"])
api_router.include_router(expense_categories.router, prefix="/expense-categories", tags=["费用类别"])
api_router.include_router(profit_loss.router, prefix="/profit-loss", tags=["损益报表"])

# 生产
api_router.include_router(production.router, prefix="/production", tags=["生产记录"])
api_router.include_router(cutting.router, prefix="/cutting", tags=["裁床管理"])
api_router.include_router(daily_reports.router, prefix="/daily-production-report", tags=["生产日报"])
api_router.include_router(targets.router, prefix="/target", tags=["生产目标"])
api_router.include_router(shipments.router, prefix="/shipments", tags=["出货管理"])
api_router.include_router(assignments.router, prefix="/style-assignments", tags=["上线安排"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["首页看板"])

# 工资
api_router.include_router(salary_rates.router, prefix="/admin/salary-rates", tags=["工资费率"])
api_router.include_router(salary.router, prefix="/salary", tags=["日工资"])

# 系统
api_router.include_router(roles.router, prefix="/admin/roles", tags=["角色权限"])
api_router.include_router(users.router, prefix="/admin/users", tags=["用户管理"])
api_router.include_router(audit_logs.router, prefix="/admin/logs", tags=["操作日志"])
api_router.include_router(database.router, prefix="/database", tags=["数据导入导出"])
api_router.include_router(backup.router, prefix="/backup", tags=["数据备份"])
