"""备份与恢复 Schema"""
from typing import Optional, List, Literal
from pydantic import BaseModel, Field


class BackupConfig(BaseModel):
    """备份内容与选项"""
    database: bool = Field(default=True, description="复制数据库文件（仅 SQLite）")
    production_data: bool = Field(default=True, description="业务数据")
    user_data: bool = Field(default=True, description="用户与角色")
    settings: bool = Field(default=True, description="系统配置")
    compression: bool = Field(default=False, description="打包为 tar.gz")
    retention: int = Field(default=30, ge=1, description="保留天数")


class BackupCreate(BaseModel):
    backup_type: Literal["full", "incremental", "differential"] = "full"
    config: BackupConfig = BackupConfig()


class BackupMetadata(BaseModel):
    id: str
    timestamp: str
    type: str
    size: int = 0
    status: Literal["success", "failed", "in_progress"]
    config: BackupConfig
    checksum: Optional[str] = None
    location: str = ""
    trigger: str = "manual"
    error: Optional[str] = None


class RecoveryRequest(BaseModel):
    backup_id: str
    recovery_type: Literal["full", "selective", "database_only"] = "full"
    selected_tables: List[str] = []
    overwrite_existing: bool = False
    validate_before_recovery: bool = True
    create_recovery_point: bool = True


class ScheduleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    cron_expression: str = Field(..., description="五段式 cron 表达式，如 0 2 * * *")
    backup_type: Literal["full", "incremental", "differential"] = "full"
    config: BackupConfig = BackupConfig()


class ScheduleUpdate(BaseModel):
    id: str
    enabled: Optional[bool] = None
    cron_expression: Optional[str] = None
    config: Optional[BackupConfig] = None
