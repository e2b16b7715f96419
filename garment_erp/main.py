from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from garment_erp.api.api_v1.api import api_router
from garment_erp.core.config import settings
from garment_erp.core.logging_config import setup_logging, get_logger
from garment_erp.services.scheduler import init_scheduler, shutdown_scheduler
from garment_erp.db import session as db_session
from garment_erp.db.init_db import ensure_tables_exist, seed_reference_data

# 初始化日志系统
setup_logging(settings.LOG_LEVEL, settings.LOG_DIR)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 启动时
    logger.info("🚀 应用启动中...")

    # 确保数据库表存在
    try:
        await ensure_tables_exist()
        logger.info("📊 数据库表已就绪")
    except Exception as e:
        logger.warning(f"数据库表初始化警告: {e}")

    # 基础数据检查
    try:
        async with db_session.SessionLocal() as db:
            result = await seed_reference_data(db)
        if result["roles_created"] or result["categories_created"] or result["operator_created"]:
            logger.info(f"🔧 基础数据已补齐: {result}")
    except Exception as e:
        logger.warning(f"基础数据检查跳过: {e}")

    init_scheduler()
    yield
    # 关闭时
    logger.info("🛑 应用关闭中...")
    shutdown_scheduler()

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    description="服装厂生产管理系统 - 单机版",
    lifespan=lifespan
)

# CORS配置
if settings.BACKEND_CORS_ORIGINS:
    logger.info(f"配置CORS，允许的源: {settings.BACKEND_CORS_ORIGINS}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

logger.info(f"注册API路由，前缀: {settings.API_V1_STR}")
app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/")
async def root():
    return {"message": "服装厂生产管理系统 - 单机版"}


@app.get("/health")
async def health():
    return {"status": "ok"}
