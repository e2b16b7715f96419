"""角色与权限 Schema"""
from typing import Optional, List
from pydantic import BaseModel, Field
from datetime import datetime


class RoleBase(BaseModel):
    """角色基础字段"""
    name: str = Field(..., min_length=1, max_length=50, description="角色名称")
    description: Optional[str] = Field(None, max_length=200, description="角色描述")
    permissions: List[str] = Field(default=[], description="权限列表")
    is_active: bool = Field(default=True, description="是否启用")


class RoleCreate(RoleBase):
    """创建角色"""
    code: str = Field(..., min_length=1, max_length=50, pattern=r"^[A-Z][A-Z0-9_]*$", description="角色编码")


class RoleUpdate(BaseModel):
    """更新角色"""
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = None
    permissions: Optional[List[str]] = None
    is_active: Optional[bool] = None


class RoleResponse(RoleBase):
    """角色响应"""
    id: int
    code: str
    is_system: bool
    created_at: datetime
    updated_at: datetime
    user_count: int = 0  # 使用该角色的用户数

    class Config:
        from_attributes = True


class RoleListResponse(BaseModel):
    """角色列表响应"""
    data: List[RoleResponse]
    total: int


class RolePermissionUpdate(BaseModel):
    role: str = Field(..., description="角色编码")
    permissions: List[str]


class RoleBulkUpdate(BaseModel):
    """批量更新角色权限"""
    role_updates: List[RolePermissionUpdate] = Field(..., min_length=1)


class CategoryToggle(BaseModel):
    """分类全选 / 全不选"""
    checked: bool


# 权限相关
class PermissionInfo(BaseModel):
    """权限信息"""
    code: str
    label: str
    category: str


class PermissionCategory(BaseModel):
    """权限分类"""
    name: str
    permissions: List[PermissionInfo]


class PermissionListResponse(BaseModel):
    """权限列表响应（按分类分组）"""
    categories: List[PermissionCategory]
    total: int


class UserBase(BaseModel):
    username: str = Field(..., min_length=1, max_length=50)
    full_name: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=100)
    is_active: bool = True


class UserCreate(UserBase):
    role_codes: List[str] = Field(default=[], description="角色编码列表")


class UserRoleAssign(BaseModel):
    """用户角色分配"""
    role_codes: List[str]


class UserResponse(UserBase):
    id: int
    roles: List[str] = []
    permissions: List[str] = []
    created_at: datetime

    class Config:
        from_attributes = True
