"""依赖注入 - 单机版（无认证）"""
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession

from garment_erp.db.session import SessionLocal

# 单机版固定操作人ID
CURRENT_USER_ID = 1


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    获取数据库会话依赖
    """
    async with SessionLocal() as session:
        yield session
