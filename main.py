import uvicorn

from garment_erp.core.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "garment_erp.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.RELOAD,
        log_level=settings.LOG_LEVEL.lower()
    )
