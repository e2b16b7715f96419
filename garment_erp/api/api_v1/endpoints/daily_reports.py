"""生产日报API（损益收入来源）"""

from datetime import date
from typing import Any, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from garment_erp.core.config import settings
from garment_erp.core.deps import get_db
from garment_erp.models import DailyProductionReport, Style
from garment_erp.schemas.production import DailyReportUpsert, DailyReportResponse
from garment_erp.services import production_reports
from garment_erp.api.api_v1.endpoints.audit_logs import create_audit_log, snapshot

router = APIRouter()


def build_report_response(report: DailyProductionReport) -> DailyReportResponse:
    """构建日报响应"""
    return DailyReportResponse(
        id=report.id,
        date=report.date,
        style_id=report.style_id,
        style_number=report.style.style_number if report.style else "",
        buyer=report.style.buyer if report.style else "",
        line_no=report.line_no,
        target_qty=report.target_qty,
        production_qty=report.production_qty,
        unit_price=float(report.unit_price or 0),
        total_amount=float(report.total_amount or 0),
        net_amount=float(report.net_amount or 0),
        efficiency=production_reports.efficiency(report.production_qty, report.target_qty),
        notes=report.notes,
    )


async def _load_report(db: AsyncSession, report_id: int) -> DailyProductionReport:
    result = await db.execute(
        select(DailyProductionReport).where(DailyProductionReport.id == report_id)
        .execution_options(populate_existing=True)
    )
    report = result.scalar_one_or_none()
    if not report:
        raise HTTPException(status_code=404, detail="生产日报不存在")
    return report


@router.get("/")
async def list_reports(
    *,
    db: AsyncSession = Depends(get_db),
    report_date: Optional[date] = Query(None, alias="date", description="默认今天"),
    style_no: Optional[str] = Query(None),
    line_no: Optional[str] = Query(None)) -> Any:
    """生产日报（按线分组）"""
    report_date = report_date or date.today()
    query = select(DailyProductionReport).where(DailyProductionReport.date == report_date)
    if line_no:
        query = query.where(DailyProductionReport.line_no == line_no)
    if style_no:
        query = query.join(Style, DailyProductionReport.style_id == Style.id).where(Style.style_number == style_no)
    reports = (await db.execute(query)).scalars().all()

    grouped = production_reports.summarize_daily_reports(reports)
    for line in grouped["lines"]:
        line["reports"] = [build_report_response(r) for r in line["reports"]]

    # 每个款式取最新一条
    latest = {}
    for r in sorted(reports, key=lambda x: (x.date, x.id)):
        latest[r.style_id] = r

    return {
        "date": report_date.isoformat(),
        "lines": grouped["lines"],
        "by_style": [build_report_response(r) for r in latest.values()],
        "summary": grouped["summary"],
    }


@router.post("/", response_model=DailyReportResponse)
async def upsert_report(
    *,
    db: AsyncSession = Depends(get_db),
    report_in: DailyReportUpsert) -> Any:
    """
    录入生产日报

    同日同款同线已存在时按 action 合并（ADD 累加 / SUBTRACT 扣减 / REPLACE 覆盖）
    """
    style = await db.get(Style, report_in.style_id)
    if not style:
        raise HTTPException(status_code=404, detail="款式不存在")

    report = (await db.execute(
        select(DailyProductionReport).where(and_(
            DailyProductionReport.date == report_in.date,
            DailyProductionReport.style_id == report_in.style_id,
            DailyProductionReport.line_no == report_in.line_no,
        ))
    )).scalar_one_or_none()

    if report is None and report_in.action == "SUBTRACT":
        raise HTTPException(status_code=400, detail="没有可扣减的生产日报")

    unit_price = report_in.unit_price if report_in.unit_price is not None else style.unit_price
    current_target = report.target_qty if report else 0
    current_production = report.production_qty if report else 0
    quantities = production_reports.merge_report_quantities(
        report_in.action, current_target, current_production,
        report_in.target_qty, report_in.production_qty,
    )
    amounts = production_reports.report_amounts(
        quantities["production_qty"], unit_price, style.commission_percentage, settings.USD_TO_BDT_RATE
    )

    if report is None:
        report = DailyProductionReport(
            date=report_in.date,
            style_id=report_in.style_id,
            line_no=report_in.line_no,
            unit_price=production_reports.money(unit_price),
            notes=report_in.notes,
            **quantities,
            **amounts,
        )
        db.add(report)
        await db.flush()
        await create_audit_log(db, "create", "production_report", report.id, report.line_no,
                               f"新增生产日报 {report.date} {report.line_no}", new_value=snapshot(report))
    else:
        old_value = snapshot(report)
        report.unit_price = production_reports.money(unit_price)
        if report_in.notes is not None:
            report.notes = report_in.notes
        for field, value in {**quantities, **amounts}.items():
            setattr(report, field, value)
        await create_audit_log(db, "update", "production_report", report.id, report.line_no,
                               f"{report_in.action} 生产日报 {report.date} {report.line_no}",
                               old_value=old_value, new_value=snapshot(report))
    await db.commit()

    # 重新加载关系
    return build_report_response(await _load_report(db, report.id))


@router.delete("/{report_id}")
async def delete_report(
    *,
    db: AsyncSession = Depends(get_db),
    report_id: int) -> Any:
    """删除生产日报"""
    report = await _load_report(db, report_id)
    await create_audit_log(db, "delete", "production_report", report.id, report.line_no,
                           f"删除生产日报 {report.date} {report.line_no}", old_value=snapshot(report))
    await db.delete(report)
    await db.commit()

    return {"message": "删除成功"}
