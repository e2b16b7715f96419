"""数据库导入导出API"""

import json
import logging
from datetime import datetime
from typing import Any, Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from garment_erp.core.config import settings
from garment_erp.core.deps import get_db
from garment_erp.services import data_transfer
from garment_erp.services.file_export import CSV_MEDIA_TYPE, XLSX_MEDIA_TYPE
from garment_erp.api.api_v1.endpoints.audit_logs import create_audit_log

logger = logging.getLogger(__name__)

router = APIRouter()

EXPORT_FORMATS = ("json", "csv", "xlsx")


@router.get("/export")
async def export_database(
    *,
    db: AsyncSession = Depends(get_db),
    format: str = Query("json", description="json / csv / xlsx"),
    tables: Optional[str] = Query(None, description="逗号分隔的表名，默认全部")) -> Any:
    """导出数据库"""
    if format not in EXPORT_FORMATS:
        raise HTTPException(status_code=400, detail="导出格式仅支持 json / csv / xlsx")
    try:
        document = await data_transfer.export_data(db, data_transfer.parse_tables_param(tables), format)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if format == "json":
        content = json.dumps(document, ensure_ascii=False, indent=2).encode("utf-8")
        media_type = "application/json"
    elif format == "csv":
        content = data_transfer.render_csv(document).encode("utf-8-sig")
        media_type = CSV_MEDIA_TYPE
    else:
        content = data_transfer.render_xlsx(document)
        media_type = XLSX_MEDIA_TYPE

    await create_audit_log(db, "export", "database", None, format,
                           f"导出数据库 ({format})", new_value=document["metadata"]["record_counts"])
    await db.commit()

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filename = f"database_export_{timestamp}.{format}"
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@router.post("/import")
async def import_database(
    *,
    db: AsyncSession = Depends(get_db),
    file: UploadFile = File(..., description="导出的 JSON / CSV / XLSX 文件"),
    mode: str = Form("merge", description="merge 合并 / replace 清空后导入"),
    tables: Optional[str] = Form(None, description="逗号分隔的表名，默认文件中的全部表")) -> Any:
    """导入数据库"""
    if mode not in data_transfer.IMPORT_MODES:
        raise HTTPException(status_code=400, detail="导入模式仅支持 merge / replace")

    content = await file.read()
    try:
        document = data_transfer.parse_import_file(file.filename, content)
        selected = data_transfer.parse_tables_param(tables)
        result = await data_transfer.import_data(db, document, mode, selected or None)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        await db.rollback()
        logger.error(f"❌ 导入失败: {e}")
        raise HTTPException(status_code=500, detail=f"导入失败: {str(e)}")

    await create_audit_log(db, "import", "database", None, file.filename,
                           f"导入数据库 ({mode}): 成功 {result['imported']} 条, 失败 {result['errors']} 条",
                           new_value={"imported": result["imported"], "errors": result["errors"]})
    await db.commit()

    return {
        "message": "导入完成" if not result["errors"] else "导入完成，部分记录失败",
        **result,
    }


@router.get("/status")
async def database_status(
    *,
    db: AsyncSession = Depends(get_db)) -> Any:
    """数据库状态（各表记录数）"""
    counts = await data_transfer.table_counts(db)
    return {
        "dialect": db.bind.dialect.name if db.bind else ("sqlite" if settings.is_sqlite else "unknown"),
        "tables": [
            {"name": name, "label": spec.label, "count": counts[name]}
            for name, spec in data_transfer.TABLE_SPECS.items()
        ],
        "total_records": sum(counts.values()),
    }
