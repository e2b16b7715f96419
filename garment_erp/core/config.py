from typing import List, Union
import logging

from pydantic import AnyHttpUrl, Field, validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

class Settings(BaseSettings):
    PROJECT_NAME: str = "服装厂生产管理系统"
    API_V1_STR: str = "/api/v1"

    # CORS配置
    BACKEND_CORS_ORIGINS: List[Union[str, AnyHttpUrl]] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    @validator("BACKEND_CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # 数据库配置（sqlite:///、postgresql:// 均可，异步驱动自动替换）
    DATABASE_URI: str = "sqlite:///./garment_erp.db"

    # 服务配置
    SERVER_HOST: str = "127.0.0.1"  # 默认只监听本地
    SERVER_PORT: int = 8000
    RELOAD: bool = False  # 开发时热重载

    # 日志配置
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    # 备份配置
    BACKUP_DIR: str = Field(default="", description="备份目录，留空则放在数据库文件同级 backups 目录")
    BACKUP_RETENTION_DAYS: int = 30  # 手动/计划备份默认保留天数
    AUTO_BACKUP_ENABLED: bool = True  # 是否启用自动备份
    AUTO_BACKUP_HOUR: int = 3  # 每天备份时间（小时，0-23）
    AUTO_BACKUP_MINUTE: int = 0  # 每天备份时间（分钟，0-59）
    AUTO_BACKUP_KEEP_COUNT: int = 7  # 保留最近多少个自动备份

    # 业务参数
    USD_TO_BDT_RATE: float = Field(default=120.0, description="美元兑塔卡汇率，用于计算生产净收入")
    WORKING_HOURS_PER_DAY: int = Field(default=12, gt=0, description="每日标准工作小时数")
    MONTHLY_EXPENSE_DIVISOR: int = Field(default=30, description="月度费用折算日费用的天数")

    class Config:
        case_sensitive = True
        env_file = ".env"

    @property
    def async_database_uri(self) -> str:
        """异步驱动连接串"""
        uri = self.DATABASE_URI
        if uri.startswith("sqlite:///"):
            return uri.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
        if uri.startswith("postgresql://"):
            return uri.replace("postgresql://", "postgresql+asyncpg://", 1)
        return uri

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URI.startswith("sqlite")


settings = Settings()
logger.info(f"加载配置: API_V1_STR={settings.API_V1_STR}, CORS={settings.BACKEND_CORS_ORIGINS}")
