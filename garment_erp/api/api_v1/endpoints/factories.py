"""工厂管理API"""

from typing import Any, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from garment_erp.core.deps import get_db
from garment_erp.models.factory import Factory, Line
from garment_erp.schemas.reference import FactoryCreate, FactoryUpdate, FactoryResponse
from garment_erp.api.api_v1.endpoints.audit_logs import create_audit_log, snapshot

router = APIRouter()


async def _line_count(db: AsyncSession, factory_id: int) -> int:
    return (await db.execute(
        select(func.count(Line.id)).where(Line.factory_id == factory_id)
    )).scalar() or 0


async def build_factory_response(db: AsyncSession, factory: Factory) -> FactoryResponse:
    return FactoryResponse(
        id=factory.id,
        name=factory.name,
        code=factory.code,
        location=factory.location,
        is_active=factory.is_active,
        line_count=await _line_count(db, factory.id),
        created_at=factory.created_at,
        updated_at=factory.updated_at,
    )


async def _ensure_unique_code(db: AsyncSession, code: str, exclude_id: Optional[int] = None):
    query = select(Factory).where(Factory.code == code)
    if exclude_id:
        query = query.where(Factory.id != exclude_id)
    if (await db.execute(query)).scalar_one_or_none():
        raise HTTPException(status_code=409, detail=f"工厂编码已存在: {code}")


@router.get("/", response_model=List[FactoryResponse])
async def list_factories(
    *,
    db: AsyncSession = Depends(get_db),
    is_active: Optional[bool] = Query(None)) -> Any:
    """获取工厂列表"""
    query = select(Factory)
    if is_active is not None:
        query = query.where(Factory.is_active == is_active)
    factories = (await db.execute(query.order_by(Factory.code))).scalars().all()
    return [await build_factory_response(db, f) for f in factories]


@router.get("/{factory_id}", response_model=FactoryResponse)
async def get_factory(
    *,
    db: AsyncSession = Depends(get_db),
    factory_id: int) -> Any:
    """获取工厂详情"""
    factory = await db.get(Factory, factory_id)
    if not factory:
        raise HTTPException(status_code=404, detail="工厂不存在")
    return await build_factory_response(db, factory)


@router.post("/", response_model=FactoryResponse)
async def create_factory(
    *,
    db: AsyncSession = Depends(get_db),
    factory_in: FactoryCreate) -> Any:
    """创建工厂"""
    await _ensure_unique_code(db, factory_in.code)

    factory = Factory(**factory_in.model_dump())
    db.add(factory)
    await db.flush()
    await create_audit_log(db, "create", "factory", factory.id, factory.code,
                           f"创建工厂 {factory.name}", new_value=snapshot(factory))
    await db.commit()
    await db.refresh(factory)

    return await build_factory_response(db, factory)


@router.put("/{factory_id}", response_model=FactoryResponse)
async def update_factory(
    *,
    db: AsyncSession = Depends(get_db),
    factory_id: int,
    factory_in: FactoryUpdate) -> Any:
    """更新工厂"""
    factory = await db.get(Factory, factory_id)
    if not factory:
        raise HTTPException(status_code=404, detail="工厂不存在")

    update_data = factory_in.model_dump(exclude_unset=True)
    if update_data.get("code") and update_data["code"] != factory.code:
        await _ensure_unique_code(db, update_data["code"], exclude_id=factory_id)

    old_value = snapshot(factory)
    for field, value in update_data.items():
        setattr(factory, field, value)
    await create_audit_log(db, "update", "factory", factory.id, factory.code,
                           f"更新工厂 {factory.name}", old_value=old_value, new_value=snapshot(factory))
    await db.commit()
    await db.refresh(factory)

    return await build_factory_response(db, factory)


@router.delete("/{factory_id}")
async def delete_factory(
    *,
    db: AsyncSession = Depends(get_db),
    factory_id: int) -> Any:
    """删除工厂"""
    factory = await db.get(Factory, factory_id)
    if not factory:
        raise HTTPException(status_code=404, detail="工厂不存在")

    # 检查是否有生产线
    line_count = await _line_count(db, factory_id)
    if line_count > 0:
        raise HTTPException(
            status_code=400,
            detail=f"该工厂下有 {line_count} 条生产线，无法删除"
        )

    await create_audit_log(db, "delete", "factory", factory.id, factory.code,
                           f"删除工厂 {factory.name}", old_value=snapshot(factory))
    await db.delete(factory)
    await db.commit()

    return {"message": "删除成功"}
