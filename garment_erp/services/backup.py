"""
备份与恢复服务

备份目录结构：
    <备份目录>/
        backup_metadata.json          # 所有备份的元数据
        schedules.json                # 计划备份
        2024-05-01/<备份ID>/          # 未压缩的备份
            production_data.json
            user_data.json
            settings.json
            database.db               # 仅 SQLite
            manifest.json
        2024-05-01/<备份ID>.tar.gz    # 压缩的备份

全量备份导出全部记录；增量备份只导出上次备份之后变动的记录，
差异备份只导出上次全量备份之后变动的记录
"""

import hashlib
import json
import logging
import os
import shutil
import tarfile
import tempfile
import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Dict, Iterator, List, Optional

from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.ext.asyncio import AsyncSession

from garment_erp.core.config import settings
from garment_erp.core.exceptions import BusinessRuleError, NotFoundError
from garment_erp.db.session import reload_database_engine
from garment_erp.services.data_transfer import (
    PRODUCTION_TABLES, USER_TABLES, export_data, import_data, resolve_tables,
)

logger = logging.getLogger(__name__)

METADATA_FILE = "backup_metadata.json"
SCHEDULES_FILE = "schedules.json"
MANIFEST_FILE = "manifest.json"
PRODUCTION_FILE = "production_data.json"
USER_FILE = "user_data.json"
SETTINGS_FILE = "settings.json"
DATABASE_FILE = "database.db"

DEFAULT_CONFIG = {
    "database": True,
    "production_data": True,
    "user_data": True,
    "settings": True,
    "compression": False,
    "retention": 30,
}


def get_db_path() -> Optional[str]:
    """获取 SQLite 数据库文件路径，非 SQLite 返回 None"""
    db_url = settings.DATABASE_URI
    if db_url.startswith("sqlite:///"):
        return db_url.replace("sqlite:///", "")
    elif db_url.startswith("sqlite+aiosqlite:///"):
        return db_url.replace("sqlite+aiosqlite:///", "")
    return None


def get_backup_dir() -> str:
    """获取备份目录（默认与数据库文件同级的 backups 目录）"""
    if settings.BACKUP_DIR:
        backup_dir = settings.BACKUP_DIR
    else:
        db_path = get_db_path() or "./garment_erp.db"
        backup_dir = os.path.join(os.path.dirname(os.path.abspath(db_path)), "backups")
    os.makedirs(backup_dir, exist_ok=True)
    return backup_dir


def _read_json(path: str, default: Any) -> Any:
    if not os.path.exists(path):
        return default
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _write_json(path: str, data: Any) -> None:
    # 先写临时文件再替换，避免中途失败留下损坏的文件
    tmp_path = f"{path}.tmp"
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2, default=str)
    os.replace(tmp_path, path)


def load_metadata() -> List[Dict[str, Any]]:
    return _read_json(os.path.join(get_backup_dir(), METADATA_FILE), [])


def save_metadata(items: List[Dict[str, Any]]) -> None:
    _write_json(os.path.join(get_backup_dir(), METADATA_FILE), items)


def _upsert_metadata(meta: Dict[str, Any]) -> None:
    items = [m for m in load_metadata() if m["id"] != meta["id"]]
    items.append(meta)
    save_metadata(items)


def file_sha256(path: str) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()


def combined_checksum(files: List[Dict[str, Any]]) -> str:
    """由清单中各文件的哈希计算整体校验和"""
    digest = hashlib.sha256()
    for item in sorted(files, key=lambda f: f["name"]):
        digest.update(f"{item['name']}:{item['sha256']}".encode("utf-8"))
    return digest.hexdigest()


def public_settings() -> Dict[str, Any]:
    """可写入备份的系统配置（隐藏数据库连接中的密码）"""
    data = settings.model_dump()
    uri = data.get("DATABASE_URI", "")
    if "@" in uri and "://" in uri:
        scheme, rest = uri.split("://", 1)
        data["DATABASE_URI"] = f"{scheme}://***@{rest.split('@', 1)[1]}"
    return data


def _since_for(backup_type: str) -> Optional[datetime]:
    """增量 / 差异备份的起始时间（UTC）"""
    if backup_type == "full":
        return None
    candidates = [
        m for m in load_metadata()
        if m.get("status") == "success" and (backup_type == "incremental" or m.get("type") == "full")
    ]
    if not candidates:
        return None
    latest = max(candidates, key=lambda m: m["created_at_utc"])
    return datetime.fromisoformat(latest["created_at_utc"])


def new_backup_id(prefix: str = "backup") -> str:
    return f"{prefix}_{datetime.now().strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:6]}"


def check_backup_content(config: Dict[str, Any]) -> None:
    if not (config.get("database") or config.get("production_data") or config.get("user_data")):
        raise BusinessRuleError("请至少选择一项备份内容")


async def create_backup(
    db: AsyncSession,
    backup_type: str = "full",
    config: Optional[Dict[str, Any]] = None,
    trigger: str = "manual",
) -> Dict[str, Any]:
    """
    创建备份

    Returns:
        备份元数据；未产生任何数据文件时状态为 failed

    Raises:
        BusinessRuleError: 未选择任何备份内容
    """
    config = {**DEFAULT_CONFIG, **(config or {})}
    check_backup_content(config)
    now = datetime.now()
    prefix = "auto_backup" if trigger == "auto" else "backup"
    backup_id = new_backup_id(prefix)
    date_dir = os.path.join(get_backup_dir(), now.strftime("%Y-%m-%d"))
    backup_path = os.path.join(date_dir, backup_id)
    since = _since_for(backup_type)

    meta: Dict[str, Any] = {
        "id": backup_id,
        "timestamp": now.isoformat(),
        "created_at_utc": datetime.utcnow().isoformat(),
        "type": backup_type,
        "size": 0,
        "status": "in_progress",
        "config": config,
        "checksum": None,
        "location": backup_path,
        "trigger": trigger,
        "since": since.isoformat() if since else None,
        "error": None,
    }

    try:
        os.makedirs(backup_path, exist_ok=True)
        written: List[str] = []

        if config["production_data"]:
            document = await export_data(db, PRODUCTION_TABLES, "json", "backup", since)
            _write_json(os.path.join(backup_path, PRODUCTION_FILE), document)
            written.append(PRODUCTION_FILE)
        if config["user_data"]:
            document = await export_data(db, USER_TABLES, "json", "backup", since)
            _write_json(os.path.join(backup_path, USER_FILE), document)
            written.append(USER_FILE)
        if config["settings"]:
            _write_json(os.path.join(backup_path, SETTINGS_FILE), public_settings())
            written.append(SETTINGS_FILE)
        if config["database"]:
            db_path = get_db_path()
            if db_path and os.path.exists(db_path):
                shutil.copy2(db_path, os.path.join(backup_path, DATABASE_FILE))
                written.append(DATABASE_FILE)
            else:
                logger.warning(f"数据库文件不存在或非 SQLite，跳过文件复制: {db_path}")

        data_files = [f for f in written if f != SETTINGS_FILE]
        if not data_files:
            raise BusinessRuleError("未生成任何数据文件，请至少选择一项备份内容")

        files = [
            {
                "name": name,
                "size": os.path.getsize(os.path.join(backup_path, name)),
                "sha256": file_sha256(os.path.join(backup_path, name)),
            }
            for name in written
        ]
        meta["checksum"] = combined_checksum(files)
        _write_json(os.path.join(backup_path, MANIFEST_FILE), {
            "backup_id": backup_id,
            "type": backup_type,
            "created_at": meta["timestamp"],
            "since": meta["since"],
            "files": files,
            "checksum": meta["checksum"],
        })

        if config["compression"]:
            archive_path = f"{backup_path}.tar.gz"
            with tarfile.open(archive_path, "w:gz") as tar:
                tar.add(backup_path, arcname=backup_id)
            shutil.rmtree(backup_path)
            meta["location"] = archive_path
            meta["size"] = os.path.getsize(archive_path)
        else:
            meta["size"] = sum(os.path.getsize(os.path.join(backup_path, f))
                               for f in os.listdir(backup_path))

        meta["status"] = "success"
        logger.info(f"✅ 备份完成: {backup_id} ({meta['size'] / 1024:.1f} KB, {backup_type})")
    except Exception as e:
        meta["status"] = "failed"
        meta["error"] = getattr(e, "message", None) or str(e)
        if os.path.isdir(backup_path):
            shutil.rmtree(backup_path, ignore_errors=True)
        logger.error(f"❌ 备份失败: {backup_id}: {meta['error']}")
    finally:
        _upsert_metadata(meta)

    return meta


def list_backups() -> List[Dict[str, Any]]:
    """备份列表（最新在前）"""
    return sorted(load_metadata(), key=lambda m: m["timestamp"], reverse=True)


def get_backup(backup_id: str) -> Dict[str, Any]:
    for meta in load_metadata():
        if meta["id"] == backup_id:
            return meta
    raise NotFoundError("备份不存在")


def _is_within(path: str, root: str) -> bool:
    path, root = os.path.abspath(path), os.path.abspath(root)
    return os.path.commonpath([path, root]) == root


def _check_location(path: str) -> None:
    # 确保文件在备份目录内，防止路径遍历
    if not _is_within(path, get_backup_dir()):
        raise BusinessRuleError("非法的备份路径")


def _extract_archive(archive_path: str, target_dir: str) -> None:
    with tarfile.open(archive_path, "r:gz") as tar:
        if hasattr(tarfile, "data_filter"):
            try:
                tar.extractall(target_dir, filter="data")
            except tarfile.FilterError as e:
                raise BusinessRuleError(f"备份压缩包包含非法路径: {e}")
            return
        for member in tar.getmembers():
            if member.issym() or member.islnk() or not _is_within(os.path.join(target_dir, member.name), target_dir):
                raise BusinessRuleError(f"备份压缩包包含非法路径: {member.name}")
        tar.extractall(target_dir)


def delete_backup(backup_id: str) -> None:
    """删除备份文件与元数据"""
    meta = get_backup(backup_id)
    location = meta.get("location") or ""
    if location:
        _check_location(location)
        if os.path.isdir(location):
            shutil.rmtree(location)
        elif os.path.isfile(location):
            os.remove(location)
    save_metadata([m for m in load_metadata() if m["id"] != backup_id])
    logger.info(f"🗑️ 删除备份: {backup_id}")


def cleanup_old_backups(keep_count: Optional[int] = None, now: Optional[datetime] = None) -> List[str]:
    """
    清理过期备份
    - 超过各自保留天数的备份
    - 自动备份只保留最近 N 个
    """
    keep_count = settings.AUTO_BACKUP_KEEP_COUNT if keep_count is None else keep_count
    now = now or datetime.now()
    removed: List[str] = []

    for meta in load_metadata():
        retention = (meta.get("config") or {}).get("retention") or settings.BACKUP_RETENTION_DAYS
        if datetime.fromisoformat(meta["timestamp"]) < now - timedelta(days=retention):
            removed.append(meta["id"])

    auto = sorted(
        (m for m in load_metadata() if m.get("trigger") == "auto" and m["id"] not in removed),
        key=lambda m: m["timestamp"],
        reverse=True,
    )
    removed.extend(m["id"] for m in auto[keep_count:])

    for backup_id in removed:
        try:
            delete_backup(backup_id)
            logger.info(f"🗑️ 清理旧备份: {backup_id}")
        except (OSError, NotFoundError, BusinessRuleError) as e:
            logger.warning(f"清理旧备份时出错: {backup_id}: {e}")
    return removed


@contextmanager
def open_backup(meta: Dict[str, Any]) -> Iterator[str]:
    """得到可读取的备份目录（压缩包会解压到临时目录）"""
    location = meta.get("location") or ""
    _check_location(location)
    if os.path.isdir(location):
        yield location
        return
    if not os.path.isfile(location):
        raise NotFoundError("备份文件不存在")
    with tempfile.TemporaryDirectory() as tmp_dir:
        _extract_archive(location, tmp_dir)
        yield os.path.join(tmp_dir, meta["id"])


def verify_backup_dir(path: str, expected_checksum: Optional[str]) -> Dict[str, Any]:
    """按清单逐个校验文件哈希与整体校验和"""
    manifest = _read_json(os.path.join(path, MANIFEST_FILE), None)
    if manifest is None:
        return {"valid": False, "errors": ["缺少备份清单"]}
    errors = []
    for item in manifest.get("files", []):
        file_path = os.path.join(path, item["name"])
        if not os.path.exists(file_path):
            errors.append(f"文件缺失: {item['name']}")
        elif file_sha256(file_path) != item["sha256"]:
            errors.append(f"文件校验失败: {item['name']}")
    checksum = combined_checksum(manifest.get("files", []))
    if expected_checksum and checksum != expected_checksum:
        errors.append("备份校验和不匹配")
    return {"valid": not errors, "errors": errors, "files": manifest.get("files", [])}


def _recovery_tables(request: Dict[str, Any], available: List[str]) -> List[str]:
    if request["recovery_type"] == "selective":
        if not request.get("selected_tables"):
            raise BusinessRuleError("选择性恢复需要指定数据表")
        try:
            wanted = resolve_tables(request["selected_tables"])
        except ValueError as e:
            raise BusinessRuleError(str(e))
        return [t for t in wanted if t in available]
    return resolve_tables(available)


async def recover_backup(db: AsyncSession, request: Dict[str, Any]) -> Dict[str, Any]:
    """
    从备份恢复

    - full / selective: 重放备份中的数据（覆盖已有数据时为 replace，否则 merge）
    - database_only: 用备份中的 SQLite 文件替换当前数据库
    """
    meta = get_backup(request["backup_id"])
    if meta.get("status") != "success":
        raise BusinessRuleError("只能从成功的备份恢复")
    if request.get("overwrite_existing") and request["recovery_type"] != "database_only" and meta.get("type") != "full":
        # 增量 / 差异备份只含变动记录
        raise BusinessRuleError("增量或差异备份只能以合并方式恢复，不能覆盖已有数据")

    result: Dict[str, Any] = {"backup_id": meta["id"], "recovery_type": request["recovery_type"]}
    with open_backup(meta) as path:
        if request.get("validate_before_recovery", True):
            verification = verify_backup_dir(path, meta.get("checksum"))
            if not verification["valid"]:
                raise BusinessRuleError(f"备份校验失败: {'; '.join(verification['errors'])}")
            result["validated"] = True

        if request.get("create_recovery_point", True):
            point = await create_backup(db, "full", {"compression": False}, trigger="pre_recovery")
            result["recovery_point"] = point["id"]

        if request["recovery_type"] == "database_only":
            source = os.path.join(path, DATABASE_FILE)
            db_path = get_db_path()
            if not db_path:
                raise BusinessRuleError("仅 SQLite 数据库支持文件级恢复")
            if not os.path.exists(source):
                raise BusinessRuleError("该备份不包含数据库文件")
            await db.close()
            await reload_database_engine()
            shutil.copy2(source, db_path)
            await reload_database_engine()
            result["restored_database"] = True
            logger.info(f"♻️ 数据库文件已从备份恢复: {meta['id']}")
            return result

        document: Dict[str, Any] = {"metadata": {}, "data": {}}
        for name in (PRODUCTION_FILE, USER_FILE):
            part = _read_json(os.path.join(path, name), None)
            if part:
                document["data"].update(part.get("data", {}))
        if not document["data"]:
            raise BusinessRuleError("该备份不包含可恢复的数据")

        tables = _recovery_tables(request, list(document["data"].keys()))
        mode = "replace" if request.get("overwrite_existing") else "merge"
        result["import"] = await import_data(db, document, mode, tables)
        result["tables"] = tables
        result["mode"] = mode

    logger.info(f"♻️ 已从备份恢复: {meta['id']} ({request['recovery_type']})")
    return result


# ---------- 计划备份 ----------

def validate_cron(expression: str) -> CronTrigger:
    """校验五段式 cron 表达式"""
    try:
        return CronTrigger.from_crontab(expression)
    except ValueError as e:
        raise BusinessRuleError(f"无效的 cron 表达式: {expression} ({e})")


def load_schedules() -> List[Dict[str, Any]]:
    return _read_json(os.path.join(get_backup_dir(), SCHEDULES_FILE), [])


def save_schedules(items: List[Dict[str, Any]]) -> None:
    _write_json(os.path.join(get_backup_dir(), SCHEDULES_FILE), items)


def get_schedule(schedule_id: str) -> Dict[str, Any]:
    for item in load_schedules():
        if item["id"] == schedule_id:
            return item
    raise NotFoundError("备份计划不存在")


def add_schedule(name: str, cron_expression: str, backup_type: str, config: Dict[str, Any]) -> Dict[str, Any]:
    validate_cron(cron_expression)
    config = {**DEFAULT_CONFIG, **(config or {})}
    check_backup_content(config)
    schedule = {
        "id": f"schedule_{uuid.uuid4().hex[:8]}",
        "name": name,
        "cron_expression": cron_expression,
        "backup_type": backup_type,
        "config": config,
        "enabled": True,
        "created_at": datetime.now().isoformat(),
        "last_run": None,
        "last_status": None,
    }
    save_schedules(load_schedules() + [schedule])
    logger.info(f"⏰ 新增备份计划: {name} ({cron_expression})")
    return schedule


def update_schedule(schedule_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    items = load_schedules()
    for item in items:
        if item["id"] != schedule_id:
            continue
        if changes.get("cron_expression"):
            validate_cron(changes["cron_expression"])
            item["cron_expression"] = changes["cron_expression"]
        if changes.get("enabled") is not None:
            item["enabled"] = bool(changes["enabled"])
        if changes.get("config") is not None:
            config = {**item["config"], **changes["config"]}
            check_backup_content(config)
            item["config"] = config
        item["updated_at"] = datetime.now().isoformat()
        save_schedules(items)
        return item
    raise NotFoundError("备份计划不存在")


def delete_schedule(schedule_id: str) -> None:
    items = load_schedules()
    remaining = [item for item in items if item["id"] != schedule_id]
    if len(remaining) == len(items):
        raise NotFoundError("备份计划不存在")
    save_schedules(remaining)


def mark_schedule_run(schedule_id: str, status: str) -> None:
    items = load_schedules()
    for item in items:
        if item["id"] == schedule_id:
            item["last_run"] = datetime.now().isoformat()
            item["last_status"] = status
    save_schedules(items)
