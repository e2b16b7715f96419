import asyncio
import logging
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from garment_erp.db import session as db_session
from garment_erp.db.base import Base
from garment_erp.core.permissions import SYSTEM_ROLES, ROLE_PERMISSIONS, normalize_permissions

# 导入所有模型，确保表能被创建
from garment_erp.models import Role, User, ExpenseCategory

logger = logging.getLogger(__name__)

DEFAULT_EXPENSE_CATEGORIES = [
    ("Daily Expense", "日常零星开支"),
    ("Utilities", "水电燃气"),
    ("Transport", "运输费用"),
    ("Maintenance", "设备维修"),
    ("Office Supplies", "办公用品"),
    ("Food", "餐费"),
    ("Other", "其他"),
]


async def ensure_tables_exist() -> None:
    """
    确保数据库表存在（应用启动时调用）
    """
    async with db_session.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def seed_reference_data(db: AsyncSession) -> dict:
    """
    写入基础数据（可重复执行）
    - 系统角色及默认权限
    - 默认费用类别
    - 默认操作员（ID=1，超级管理员）
    """
    result = {"roles_created": 0, "categories_created": 0, "operator_created": False}

    existing_roles = {
        r.code: r for r in (await db.execute(select(Role))).scalars().all()
    }
    for code, (name, description) in SYSTEM_ROLES.items():
        if code in existing_roles:
            continue
        role = Role(
            name=name,
            code=code,
            description=description,
            permissions=normalize_permissions(ROLE_PERMISSIONS[code]),
            is_system=True,
        )
        db.add(role)
        existing_roles[code] = role
        result["roles_created"] += 1

    existing_categories = set(
        (await db.execute(select(ExpenseCategory.name))).scalars().all()
    )
    for name, description in DEFAULT_EXPENSE_CATEGORIES:
        if name not in existing_categories:
            db.add(ExpenseCategory(name=name, description=description))
            result["categories_created"] += 1

    operator = await db.get(User, 1)
    if not operator:
        operator = User(id=1, username="admin", full_name="Administrator", email="admin@localhost")
        operator.roles = [existing_roles["SUPER_ADMIN"]]
        db.add(operator)
        result["operator_created"] = True

    await db.commit()
    return result


async def init_db() -> None:
    """
    初始化数据库 - 创建所有表并写入基础数据
    """
    await ensure_tables_exist()
    async with db_session.SessionLocal() as db:
        result = await seed_reference_data(db)
    logger.info(f"📊 数据库初始化完成: {result}")


if __name__ == "__main__":
    asyncio.run(init_db())
