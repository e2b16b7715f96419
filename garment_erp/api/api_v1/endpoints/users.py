"""操作员与角色分配API"""

from typing import Any, List
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from garment_erp.core.deps import get_db, CURRENT_USER_ID
from garment_erp.core.permissions import ALL_PERMISSIONS
from garment_erp.models import User, Role
from garment_erp.schemas.role import UserCreate, UserRoleAssign, UserResponse
from garment_erp.api.api_v1.endpoints.audit_logs import create_audit_log

router = APIRouter()


def build_user_response(user: User) -> UserResponse:
    """构建用户响应"""
    owned = user.get_all_permissions()
    return UserResponse(
        id=user.id,
        username=user.username,
        full_name=user.full_name,
        email=user.email,
        is_active=user.is_active,
        roles=[r.code for r in user.roles],
        permissions=[p for p in ALL_PERMISSIONS if p in owned],
        created_at=user.created_at,
    )


async def _load_user(db: AsyncSession, user_id: int) -> User:
    result = await db.execute(
        select(User).where(User.id == user_id).execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="用户不存在")
    return user


async def _roles_by_code(db: AsyncSession, codes: List[str]) -> List[Role]:
    if not codes:
        return []
    roles = (await db.execute(select(Role).where(Role.code.in_(codes)))).scalars().all()
    missing = sorted(set(codes) - {r.code for r in roles})
    if missing:
        raise HTTPException(status_code=400, detail=f"角色不存在: {', '.join(missing)}")
    return list(roles)


@router.get("/", response_model=List[UserResponse])
async def list_users(
    *,
    db: AsyncSession = Depends(get_db)) -> Any:
    """获取用户列表"""
    users = (await db.execute(select(User).order_by(User.id))).scalars().all()
    return [build_user_response(u) for u in users]


@router.post("/", response_model=UserResponse)
async def create_user(
    *,
    db: AsyncSession = Depends(get_db),
    user_in: UserCreate) -> Any:
    """创建用户"""
    conditions = [User.username == user_in.username]
    if user_in.email:
        conditions.append(User.email == user_in.email)
    if (await db.execute(select(User).where(or_(*conditions)))).scalars().first():
        raise HTTPException(status_code=409, detail="用户名或邮箱已存在")

    roles = await _roles_by_code(db, user_in.role_codes)
    user = User(**user_in.model_dump(exclude={"role_codes"}))
    user.roles = roles
    db.add(user)
    await db.flush()
    await create_audit_log(db, "create", "user", user.id, user.username,
                           f"创建用户 {user.username}", new_value={"roles": user_in.role_codes})
    await db.commit()

    return build_user_response(await _load_user(db, user.id))


@router.put("/{user_id}/roles", response_model=UserResponse)
async def assign_roles(
    *,
    db: AsyncSession = Depends(get_db),
    user_id: int,
    assign_in: UserRoleAssign) -> Any:
    """分配用户角色（整体替换）"""
    user = await _load_user(db, user_id)
    roles = await _roles_by_code(db, assign_in.role_codes)
    if user.id == CURRENT_USER_ID and "SUPER_ADMIN" not in assign_in.role_codes:
        raise HTTPException(status_code=400, detail="默认操作员必须保留超级管理员角色")

    old_value = {"roles": [r.code for r in user.roles]}
    user.roles = roles
    await create_audit_log(db, "update", "user", user.id, user.username, f"分配角色 {user.username}",
                           old_value=old_value, new_value={"roles": assign_in.role_codes})
    await db.commit()

    return build_user_response(await _load_user(db, user_id))


@router.delete("/{user_id}")
async def delete_user(
    *,
    db: AsyncSession = Depends(get_db),
    user_id: int) -> Any:
    """删除用户"""
    if user_id == CURRENT_USER_ID:
        raise HTTPException(status_code=400, detail="默认操作员不可删除")
    user = await _load_user(db, user_id)

    await create_audit_log(db, "delete", "user", user.id, user.username, f"删除用户 {user.username}",
                           old_value={"roles": [r.code for r in user.roles]})
    await db.delete(user)
    await db.commit()

    return {"message": "删除成功"}
