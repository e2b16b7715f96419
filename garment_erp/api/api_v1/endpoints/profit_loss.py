"""损益报表API"""

from datetime import date, datetime
from typing import Any, Optional, Tuple
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from garment_erp.core.deps import get_db
from garment_erp.services.cashbook import month_range
from garment_erp.services.profit_loss import calculate_profit_loss
from garment_erp.services.file_export import records_to_csv, sheets_to_xlsx, CSV_MEDIA_TYPE, XLSX_MEDIA_TYPE

router = APIRouter()

EXPORT_HEADERS = ["date", "earnings", "monthly_expenses", "daily_cash_expenses", "daily_salary",
                  "net_profit", "production_count", "cash_expense_count", "salary_count"]


def resolve_period(month: Optional[str], start_date: Optional[date], end_date: Optional[date]) -> Tuple[date, date]:
    """统计区间：指定起止日期优先，其次月份，默认当月"""
    if start_date or end_date:
        if not (start_date and end_date):
            raise HTTPException(status_code=400, detail="start_date 与 end_date 需同时提供")
        if start_date > end_date:
            raise HTTPException(status_code=400, detail="开始日期不能晚于结束日期")
        return start_date, end_date
    try:
        return month_range(month or date.today().strftime("%Y-%m"))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/")
async def get_profit_loss(
    *,
    db: AsyncSession = Depends(get_db),
    month: Optional[str] = Query(None, description="YYYY-MM，默认当月"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None)) -> Any:
    """损益汇总（日明细 + 线明细）"""
    start, end = resolve_period(month, start_date, end_date)
    return await calculate_profit_loss(db, start, end)


@router.get("/export")
async def export_profit_loss(
    *,
    db: AsyncSession = Depends(get_db),
    format: str = Query("csv", description="csv / xlsx"),
    month: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None)) -> Any:
    """导出损益日明细"""
    if format not in ("csv", "xlsx"):
        raise HTTPException(status_code=400, detail="导出格式仅支持 csv / xlsx")
    start, end = resolve_period(month, start_date, end_date)
    result = await calculate_profit_loss(db, start, end)
    rows = result["daily_breakdown"]

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filename = f"profit_loss_{start.isoformat()}_{end.isoformat()}_{timestamp}.{format}"
    if format == "csv":
        content = records_to_csv(rows, EXPORT_HEADERS).encode("utf-8-sig")
        media_type = CSV_MEDIA_TYPE
    else:
        content = sheets_to_xlsx(
            {"daily": rows, "lines": result["line_breakdown"]},
            {"daily": EXPORT_HEADERS},
        )
        media_type = XLSX_MEDIA_TYPE
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )
