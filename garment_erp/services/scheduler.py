"""
定时任务调度器服务
使用 APScheduler 实现每日自动备份和自定义计划备份
"""

import logging
from typing import Any, Dict, Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from garment_erp.core.config import settings
from garment_erp.db import session as db_session
from garment_erp.services import backup as backup_service

logger = logging.getLogger(__name__)

# 全局调度器实例
scheduler: Optional[AsyncIOScheduler] = None

AUTO_BACKUP_JOB_ID = "auto_backup"


async def auto_backup():
    """执行自动备份任务"""
    try:
        async with db_session.SessionLocal() as db:
            meta = await backup_service.create_backup(db, "full", {"compression": True}, trigger="auto")
        if meta["status"] == "success":
            size_mb = meta["size"] / 1024 / 1024
            logger.info(f"✅ 自动备份完成: {meta['id']} ({size_mb:.2f} MB)")

        # 清理旧的自动备份（保留最近 N 个）
        backup_service.cleanup_old_backups(keep_count=settings.AUTO_BACKUP_KEEP_COUNT)

    except Exception as e:
        logger.error(f"❌ 自动备份失败: {str(e)}")


async def run_scheduled_backup(schedule_id: str):
    """执行计划备份任务"""
    try:
        schedule = backup_service.get_schedule(schedule_id)
        if not schedule.get("enabled"):
            return
        async with db_session.SessionLocal() as db:
            meta = await backup_service.create_backup(
                db, schedule["backup_type"], schedule["config"], trigger=f"schedule:{schedule_id}"
            )
        backup_service.mark_schedule_run(schedule_id, meta["status"])
        backup_service.cleanup_old_backups()
        logger.info(f"⏰ 计划备份 {schedule['name']} 执行完成: {meta['status']}")
    except Exception as e:
        logger.error(f"❌ 计划备份失败 ({schedule_id}): {str(e)}")


def _job_id(schedule_id: str) -> str:
    return f"backup_schedule_{schedule_id}"


def sync_schedule_job(schedule: Dict[str, Any]):
    """按计划配置注册 / 更新 / 移除调度任务"""
    if not scheduler:
        return
    job_id = _job_id(schedule["id"])
    if not schedule.get("enabled"):
        remove_schedule_job(schedule["id"])
        return
    scheduler.add_job(
        run_scheduled_backup,
        trigger=CronTrigger.from_crontab(schedule["cron_expression"]),
        args=[schedule["id"]],
        id=job_id,
        name=f"计划备份: {schedule['name']}",
        replace_existing=True,
    )


def remove_schedule_job(schedule_id: str):
    if scheduler and scheduler.get_job(_job_id(schedule_id)):
        scheduler.remove_job(_job_id(schedule_id))


def next_run_time(schedule_id: str) -> Optional[str]:
    if not scheduler:
        return None
    job = scheduler.get_job(_job_id(schedule_id))
    if job and job.next_run_time:
        return job.next_run_time.isoformat()
    return None


def init_scheduler():
    """初始化并启动调度器"""
    global scheduler

    scheduler = AsyncIOScheduler()

    # 添加自动备份任务
    # 默认每天凌晨 3 点执行
    if settings.AUTO_BACKUP_ENABLED:
        scheduler.add_job(
            auto_backup,
            trigger=CronTrigger(
                hour=settings.AUTO_BACKUP_HOUR,
                minute=settings.AUTO_BACKUP_MINUTE
            ),
            id=AUTO_BACKUP_JOB_ID,
            name="自动数据备份",
            replace_existing=True
        )
    else:
        logger.info("📦 自动备份已禁用")

    # 注册持久化的计划备份
    for schedule in backup_service.load_schedules():
        try:
            sync_schedule_job(schedule)
        except ValueError as e:
            logger.warning(f"备份计划 {schedule.get('name')} 注册失败: {e}")

    scheduler.start()
    logger.info(f"⏰ 定时任务调度器已启动 - 自动备份时间: 每天 {settings.AUTO_BACKUP_HOUR:02d}:{settings.AUTO_BACKUP_MINUTE:02d}")


def shutdown_scheduler():
    """关闭调度器"""
    global scheduler
    if scheduler:
        scheduler.shutdown()
        scheduler = None
        logger.info("⏰ 定时任务调度器已关闭")


def get_scheduler_status() -> dict:
    """获取调度器状态"""
    if not scheduler:
        return {
            "enabled": False,
            "running": False,
            "jobs": []
        }

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None
        })

    return {
        "enabled": settings.AUTO_BACKUP_ENABLED,
        "running": scheduler.running,
        "jobs": jobs
    }


async def trigger_backup_now():
    """立即触发一次备份（手动触发）"""
    await auto_backup()
