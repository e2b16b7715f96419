"""数据备份与恢复API - 单机版（无权限检查）"""

import io
import os
import tarfile
from typing import Any
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from fastapi.responses import FileResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from garment_erp.core.config import settings
from garment_erp.core.deps import get_db
from garment_erp.core.exceptions import BusinessError, to_http
from garment_erp.schemas.backup import BackupCreate, RecoveryRequest, ScheduleCreate, ScheduleUpdate
from garment_erp.services import backup as backup_service
from garment_erp.services import scheduler as scheduler_service
from garment_erp.api.api_v1.endpoints.audit_logs import create_audit_log

router = APIRouter()


def _with_display(meta: dict) -> dict:
    return {**meta, "size_display": f"{(meta.get('size') or 0) / 1024 / 1024:.2f} MB"}


def _with_next_run(schedule: dict) -> dict:
    return {**schedule, "next_run_time": scheduler_service.next_run_time(schedule["id"])}


@router.post("/")
async def create_backup(
    *,
    db: AsyncSession = Depends(get_db),
    backup_in: BackupCreate) -> Any:
    """创建备份"""
    try:
        meta = await backup_service.create_backup(db, backup_in.backup_type, backup_in.config.model_dump())
    except BusinessError as e:
        raise to_http(e)
    if meta["status"] != "success":
        raise HTTPException(status_code=500, detail=f"备份失败: {meta['error']}")

    await create_audit_log(db, "backup", "database", None, meta["id"],
                           f"创建备份 {meta['id']} ({meta['type']})")
    await db.commit()
    return {"message": "备份创建成功", "backup": _with_display(meta)}


@router.get("/")
async def list_backups() -> Any:
    """获取备份列表（最新在前）"""
    backups = [_with_display(m) for m in backup_service.list_backups()]
    return {
        "backups": backups,
        "total": len(backups),
        "backup_dir": os.path.abspath(backup_service.get_backup_dir()),
    }


@router.get("/recover")
async def list_recoverable_backups() -> Any:
    """可用于恢复的备份"""
    backups = [_with_display(m) for m in backup_service.list_backups() if m.get("status") == "success"]
    return {"backups": backups, "total": len(backups)}


@router.post("/recover")
async def recover_backup(
    *,
    db: AsyncSession = Depends(get_db),
    recovery_in: RecoveryRequest) -> Any:
    """从备份恢复（危险操作）"""
    try:
        result = await backup_service.recover_backup(db, recovery_in.model_dump())
    except BusinessError as e:
        raise to_http(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"恢复失败: {str(e)}")

    # 数据库文件恢复后当前会话已关闭，不再写日志
    if not result.get("restored_database"):
        await create_audit_log(db, "restore", "database", None, recovery_in.backup_id,
                               f"从备份恢复 {recovery_in.backup_id} ({recovery_in.recovery_type})")
        await db.commit()
    return {"message": "恢复成功", **result}


# ---------- 计划备份 ----------

@router.get("/schedule")
async def list_schedules() -> Any:
    """备份计划列表"""
    schedules = [_with_next_run(s) for s in backup_service.load_schedules()]
    return {"schedules": schedules, "total": len(schedules)}


@router.post("/schedule")
async def create_schedule(schedule_in: ScheduleCreate) -> Any:
    """新增备份计划"""
    try:
        schedule = backup_service.add_schedule(
            schedule_in.name, schedule_in.cron_expression,
            schedule_in.backup_type, schedule_in.config.model_dump(),
        )
    except BusinessError as e:
        raise to_http(e)
    scheduler_service.sync_schedule_job(schedule)
    return {"message": "备份计划已创建", "schedule": _with_next_run(schedule)}


@router.put("/schedule")
async def update_schedule(schedule_in: ScheduleUpdate) -> Any:
    """更新备份计划（启用 / 停用 / 修改 cron / 修改配置）"""
    changes = schedule_in.model_dump(exclude={"id"}, exclude_unset=True)
    try:
        schedule = backup_service.update_schedule(schedule_in.id, changes)
    except BusinessError as e:
        raise to_http(e)
    scheduler_service.sync_schedule_job(schedule)
    return {"message": "备份计划已更新", "schedule": _with_next_run(schedule)}


@router.delete("/schedule")
async def delete_schedule(
    schedule_id: str = Query(..., alias="id")) -> Any:
    """删除备份计划"""
    try:
        backup_service.delete_schedule(schedule_id)
    except BusinessError as e:
        raise to_http(e)
    scheduler_service.remove_schedule_job(schedule_id)
    return {"message": "删除成功"}


@router.get("/scheduler/status")
async def get_backup_scheduler_status() -> Any:
    """获取自动备份调度器状态"""
    return {
        "auto_backup": {
            "enabled": settings.AUTO_BACKUP_ENABLED,
            "schedule": f"每天 {settings.AUTO_BACKUP_HOUR:02d}:{settings.AUTO_BACKUP_MINUTE:02d}",
            "keep_count": settings.AUTO_BACKUP_KEEP_COUNT,
        },
        "scheduler": scheduler_service.get_scheduler_status()
    }


@router.post("/trigger")
async def trigger_auto_backup(background_tasks: BackgroundTasks) -> Any:
    """立即触发一次自动备份"""
    background_tasks.add_task(scheduler_service.trigger_backup_now)
    return {"message": "备份任务已触发，请稍后查看备份列表"}


# ---------- 单个备份 ----------

@router.get("/{backup_id}")
async def get_backup(backup_id: str) -> Any:
    """获取备份详情"""
    try:
        return _with_display(backup_service.get_backup(backup_id))
    except BusinessError as e:
        raise to_http(e)


@router.get("/{backup_id}/download")
async def download_backup(backup_id: str) -> Any:
    """下载备份（未压缩的备份打包后下载）"""
    try:
        meta = backup_service.get_backup(backup_id)
    except BusinessError as e:
        raise to_http(e)
    location = meta.get("location") or ""

    if os.path.isfile(location):
        filename = os.path.basename(location)
        return FileResponse(
            path=location,
            filename=filename,
            media_type="application/gzip",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'}
        )
    if not os.path.isdir(location):
        raise HTTPException(status_code=404, detail="备份文件不存在")

    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        tar.add(location, arcname=backup_id)
    filename = f"{backup_id}.tar.gz"
    return Response(
        content=buffer.getvalue(),
        media_type="application/gzip",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@router.delete("/{backup_id}")
async def delete_backup(backup_id: str) -> Any:
    """删除备份"""
    try:
        backup_service.delete_backup(backup_id)
    except BusinessError as e:
        raise to_http(e)
    return {"message": "删除成功"}
