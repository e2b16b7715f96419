from datetime import datetime
from typing import List, Set, TYPE_CHECKING
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship

from garment_erp.db.base import Base

# 延迟导入避免循环依赖
if TYPE_CHECKING:
    from garment_erp.models.role import Role


class User(Base):
    """操作员（仅用于角色分配，不含登录凭据）"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False, comment="用户名")
    full_name = Column(String(100), comment="姓名")
    email = Column(String(100), unique=True, comment="邮箱")
    is_active = Column(Boolean, nullable=False, default=True, comment="是否启用")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    roles = relationship("Role", secondary="user_roles", back_populates="users", lazy="selectin")

    def __repr__(self):
        return f"<User {self.username}>"

    @property
    def is_super_admin(self) -> bool:
        return any(r.code == "SUPER_ADMIN" and r.is_active for r in (self.roles or []))

    def get_all_permissions(self) -> Set[str]:
        """获取用户的所有权限（来自所有启用的角色）"""
        if self.is_super_admin:
            from garment_erp.core.permissions import ALL_PERMISSIONS
            return set(ALL_PERMISSIONS)
        permissions = set()
        for role in (self.roles or []):
            if role.is_active:
                permissions.update(role.permissions or [])
        return permissions

    def has_permission(self, permission: str) -> bool:
        """检查用户是否有某个权限"""
        return permission in self.get_all_permissions()

    def has_any_permission(self, permissions: List[str]) -> bool:
        """检查用户是否有任一权限"""
        user_perms = self.get_all_permissions()
        return any(p in user_perms for p in permissions)
