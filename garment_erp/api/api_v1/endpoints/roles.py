"""角色与权限管理API"""

from typing import Any, List
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from garment_erp.core.deps import get_db
from garment_erp.core import permissions as perm
from garment_erp.models.role import Role
from garment_erp.schemas.role import (
    RoleCreate, RoleUpdate, RoleResponse, RoleListResponse, RoleBulkUpdate, CategoryToggle,
    PermissionInfo, PermissionCategory, PermissionListResponse,
)
from garment_erp.api.api_v1.endpoints.audit_logs import create_audit_log

router = APIRouter()


def build_role_response(role: Role) -> RoleResponse:
    """构建角色响应"""
    return RoleResponse(
        id=role.id,
        name=role.name,
        code=role.code,
        description=role.description,
        permissions=list(role.permissions or []),
        is_active=role.is_active,
        is_system=role.is_system,
        created_at=role.created_at,
        updated_at=role.updated_at,
        user_count=len(role.users or []),
    )


async def _load_role(db: AsyncSession, code: str) -> Role:
    result = await db.execute(
        select(Role).where(Role.code == code).execution_options(populate_existing=True)
    )
    role = result.scalar_one_or_none()
    if not role:
        raise HTTPException(status_code=404, detail=f"角色不存在: {code}")
    return role


def _normalize(permissions: List[str]) -> List[str]:
    try:
        return perm.normalize_permissions(permissions)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _ensure_editable(role: Role):
    if role.code == perm.SUPER_ADMIN:
        raise HTTPException(status_code=400, detail="超级管理员拥有全部权限，不可修改")


@router.get("/", response_model=RoleListResponse)
async def list_roles(
    *,
    db: AsyncSession = Depends(get_db)) -> Any:
    """获取角色列表"""
    roles = (await db.execute(select(Role).order_by(Role.is_system.desc(), Role.id))).scalars().all()
    return RoleListResponse(
        data=[build_role_response(r) for r in roles],
        total=len(roles)
    )


@router.get("/permissions", response_model=PermissionListResponse)
async def list_permissions() -> Any:
    """获取权限目录（按分类分组）"""
    categories = [
        PermissionCategory(
            name=name,
            permissions=[
                PermissionInfo(code=code, label=perm.get_permission_label(code), category=name)
                for code in codes
            ],
        )
        for name, codes in perm.PERMISSION_CATEGORIES.items()
    ]
    return PermissionListResponse(categories=categories, total=len(perm.ALL_PERMISSIONS))


@router.put("/")
async def bulk_update_roles(
    *,
    db: AsyncSession = Depends(get_db),
    update_in: RoleBulkUpdate) -> Any:
    """
    批量更新角色权限

    全部校验通过后才写入，任一失败则不做任何修改
    """
    pending = []
    for item in update_in.role_updates:
        role = await _load_role(db, item.role)
        _ensure_editable(role)
        pending.append((role, _normalize(item.permissions)))

    for role, permissions in pending:
        old_value = {"permissions": list(role.permissions or [])}
        role.permissions = permissions
        await create_audit_log(db, "update", "role", role.id, role.code,
                               f"更新角色权限 {role.code}", old_value=old_value,
                               new_value={"permissions": permissions})
    await db.commit()

    roles = [build_role_response(await _load_role(db, role.code)) for role, _ in pending]
    return {"message": f"已更新 {len(roles)} 个角色", "data": roles}


@router.post("/", response_model=RoleResponse)
async def create_role(
    *,
    db: AsyncSession = Depends(get_db),
    role_in: RoleCreate) -> Any:
    """创建自定义角色"""
    existing = await db.execute(
        select(Role).where(or_(Role.code == role_in.code, Role.name == role_in.name))
    )
    if existing.scalars().first():
        raise HTTPException(status_code=409, detail="角色编码或名称已存在")

    role = Role(
        name=role_in.name,
        code=role_in.code,
        description=role_in.description,
        permissions=_normalize(role_in.permissions),
        is_active=role_in.is_active,
        is_system=False,
    )
    db.add(role)
    await db.flush()
    await create_audit_log(db, "create", "role", role.id, role.code,
                           f"创建角色 {role.name}", new_value={"permissions": role.permissions})
    await db.commit()

    return build_role_response(await _load_role(db, role.code))


@router.get("/{code}")
async def get_role(
    *,
    db: AsyncSession = Depends(get_db),
    code: str) -> Any:
    """获取角色详情（含用户与分类勾选状态）"""
    role = await _load_role(db, code)
    return {
        "role": build_role_response(role),
        "users": [{"id": u.id, "username": u.username, "full_name": u.full_name} for u in role.users],
        "categories": {
            name: perm.category_state(role.permissions or [], name)
            for name in perm.PERMISSION_CATEGORIES
        },
    }


@router.put("/{code}", response_model=RoleResponse)
async def update_role(
    *,
    db: AsyncSession = Depends(get_db),
    code: str,
    role_in: RoleUpdate) -> Any:
    """更新角色"""
    role = await _load_role(db, code)
    update_data = role_in.model_dump(exclude_unset=True)

    if "permissions" in update_data:
        _ensure_editable(role)
        update_data["permissions"] = _normalize(update_data["permissions"] or [])
    if update_data.get("name") and update_data["name"] != role.name:
        duplicate = await db.execute(select(Role).where(Role.name == update_data["name"], Role.id != role.id))
        if duplicate.scalars().first():
            raise HTTPException(status_code=409, detail="角色名称已存在")
    if role.code == perm.SUPER_ADMIN and update_data.get("is_active") is False:
        raise HTTPException(status_code=400, detail="超级管理员角色不可停用")

    old_value = {"name": role.name, "description": role.description,
                 "permissions": list(role.permissions or []), "is_active": role.is_active}
    for field, value in update_data.items():
        setattr(role, field, value)
    await create_audit_log(db, "update", "role", role.id, role.code, f"更新角色 {role.code}",
                           old_value=old_value, new_value=role_in.model_dump(exclude_unset=True))
    await db.commit()

    return build_role_response(await _load_role(db, code))


@router.post("/{code}/categories/{category}", response_model=RoleResponse)
async def toggle_category(
    *,
    db: AsyncSession = Depends(get_db),
    code: str,
    category: str,
    toggle_in: CategoryToggle) -> Any:
    """分类全选 / 全不选（不影响其他分类的权限）"""
    role = await _load_role(db, code)
    _ensure_editable(role)
    try:
        if toggle_in.checked:
            permissions = perm.select_category(role.permissions or [], category)
        else:
            permissions = perm.deselect_category(role.permissions or [], category)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    old_value = {"permissions": list(role.permissions or [])}
    role.permissions = permissions
    await create_audit_log(db, "update", "role", role.id, role.code,
                           f"{'全选' if toggle_in.checked else '取消'}分类 {category}",
                           old_value=old_value, new_value={"permissions": permissions})
    await db.commit()

    return build_role_response(await _load_role(db, code))


@router.delete("/{code}")
async def delete_role(
    *,
    db: AsyncSession = Depends(get_db),
    code: str) -> Any:
    """删除自定义角色"""
    role = await _load_role(db, code)
    if role.is_system:
        raise HTTPException(status_code=400, detail="系统角色不可删除")
    if role.users:
        raise HTTPException(
            status_code=400,
            detail=f"该角色已分配给 {len(role.users)} 个用户，无法删除"
        )

    await create_audit_log(db, "delete", "role", role.id, role.code, f"删除角色 {role.name}",
                           old_value={"permissions": list(role.permissions or [])})
    await db.delete(role)
    await db.commit()

    return {"message": "删除成功"}
