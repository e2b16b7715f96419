"""
生产统计服务
- 裁剪日汇总 / 月报
- 生产目标日报（按小时）
- 生产日报的金额计算与累加规则
"""

from collections import OrderedDict
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional, Sequence

# 小时序号 8..19 对应 8-9 ... 7-8
HOUR_INDEXES = list(range(8, 20))


def hour_label(hour_index: int) -> str:
    """小时序号转显示标签，如 8 -> '8-9'，13 -> '1-2'"""
    start = hour_index if hour_index <= 12 else hour_index - 12
    end = start + 1 if start < 12 else 1
    return f"{start}-{end}"


HOUR_LABELS = [hour_label(h) for h in HOUR_INDEXES]


def efficiency(output_qty: float, input_qty: float) -> int:
    """效率 = 产出 / 投入 × 100（四舍五入），投入为 0 时为 0"""
    if not input_qty:
        return 0
    return int(round(output_qty / input_qty * 100))


def _bucket(name: str) -> Dict[str, Any]:
    return {"name": name, "input": 0, "output": 0, "defects": 0, "wip": 0, "efficiency": 0}


def _finish(bucket: Dict[str, Any]) -> Dict[str, Any]:
    bucket["wip"] = bucket["input"] - bucket["output"]
    bucket["efficiency"] = efficiency(bucket["output"], bucket["input"])
    return bucket


def summarize_cutting(entries: Sequence[Any], previous_entries: Sequence[Any] = ()) -> Dict[str, Any]:
    """
    裁剪日汇总

    Args:
        entries: 当日裁剪工序记录（需可访问 line.code、style.style_number）
        previous_entries: 前一日记录，用于计算趋势
    """
    total = _bucket("total")
    by_line: Dict[str, Dict[str, Any]] = {}
    by_style: Dict[str, Dict[str, Any]] = {}
    for e in entries:
        line_code = e.line.code if e.line else str(e.line_id)
        style_no = e.style.style_number if e.style else str(e.style_id)
        for bucket in (total,
                       by_line.setdefault(line_code, _bucket(line_code)),
                       by_style.setdefault(style_no, _bucket(style_no))):
            bucket["input"] += e.input_qty or 0
            bucket["output"] += e.output_qty or 0
            bucket["defects"] += e.defect_qty or 0

    _finish(total)
    lines = sorted((_finish(b) for b in by_line.values()), key=lambda b: b["efficiency"], reverse=True)
    styles = sorted((_finish(b) for b in by_style.values()), key=lambda b: b["efficiency"], reverse=True)

    previous_output = sum(e.output_qty or 0 for e in previous_entries)
    change = total["output"] - previous_output
    return {
        "total_input": total["input"],
        "total_output": total["output"],
        "total_defects": total["defects"],
        "wip": total["wip"],
        "efficiency": total["efficiency"],
        "entry_count": len(entries),
        "by_line": lines,
        "by_style": styles,
        "top_lines": lines[:5],
        "trend": {
            "previous_output": previous_output,
            "change": change,
            "change_percent": round(change / previous_output * 100, 1) if previous_output else 0,
        },
    }


def cutting_monthly_report(entries: Iterable[Any]) -> Dict[str, Any]:
    """裁剪月报：按天汇总投入、产出、在制、次品"""
    days: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
    for e in sorted(entries, key=lambda x: x.date):
        key = e.date.isoformat()
        day = days.setdefault(key, _bucket(key))
        day["input"] += e.input_qty or 0
        day["output"] += e.output_qty or 0
        day["defects"] += e.defect_qty or 0
    rows = [dict(_finish(d), date=d["name"]) for d in days.values()]
    for row in rows:
        row.pop("name")
    total_input = sum(r["input"] for r in rows)
    total_output = sum(r["output"] for r in rows)
    return {
        "days": rows,
        "summary": {
            "total_input": total_input,
            "total_output": total_output,
            "total_defects": sum(r["defects"] for r in rows),
            "wip": total_input - total_output,
            "efficiency": efficiency(total_output, total_input),
            "working_days": len(rows),
        },
    }


def working_hours(in_time: Optional[str], out_time: Optional[str], default: int = 12) -> int:
    """
    由上下班时间推算工作小时数（取整），无法推算时返回默认值
    """
    try:
        in_h, in_m = (int(p) for p in in_time.split(":"))
        out_h, out_m = (int(p) for p in out_time.split(":"))
    except (AttributeError, ValueError):
        return default
    hours = ((out_h * 60 + out_m) - (in_h * 60 + in_m)) // 60
    if hours <= 0:
        return default
    return hours


def build_target_daily_report(
    targets: Sequence[Any],
    entries: Sequence[Any],
    default_hours: int = 12,
) -> Dict[str, Any]:
    """
    生产目标日报

    按线号 + 款号将小时生产记录（output_qty）归入对应目标的小时格子；
    当天没有目标时，按生产记录的线/款生成零目标行
    """
    hourly: Dict[tuple, Dict[str, int]] = {}
    for e in entries:
        line_code = e.line.code if e.line else str(e.line_id)
        style_no = e.style.style_number if e.style else str(e.style_id)
        slots = hourly.setdefault((line_code, style_no), {label: 0 for label in HOUR_LABELS})
        if e.hour_index in HOUR_INDEXES:
            slots[hour_label(e.hour_index)] += e.output_qty or 0

    rows = []
    if targets:
        for t in targets:
            hours = working_hours(t.in_time, t.out_time, default_hours)
            slots = hourly.get((t.line_no, t.style_no), {label: 0 for label in HOUR_LABELS})
            total_production = sum(slots.values())
            rows.append({
                "id": t.id,
                "line_no": t.line_no,
                "style_no": t.style_no,
                "line_target": t.line_target,
                "in_time": t.in_time,
                "out_time": t.out_time,
                "working_hours": hours,
                "total_target": t.line_target * hours,
                "hourly_production": dict(slots),
                "total_production": total_production,
                "average_production_per_hour": round(total_production / hours, 2) if hours else 0,
            })
    else:
        for (line_code, style_no), slots in hourly.items():
            total_production = sum(slots.values())
            rows.append({
                "id": None,
                "line_no": line_code,
                "style_no": style_no,
                "line_target": 0,
                "in_time": None,
                "out_time": None,
                "working_hours": default_hours,
                "total_target": 0,
                "hourly_production": dict(slots),
                "total_production": total_production,
                "average_production_per_hour": round(total_production / default_hours, 2),
            })
    rows.sort(key=lambda r: (r["line_no"], r["style_no"]))

    total_target = sum(r["total_target"] for r in rows)
    total_production = sum(r["total_production"] for r in rows)
    total_hours = sum(r["working_hours"] for r in rows)
    return {
        "time_slots": HOUR_LABELS,
        "rows": rows,
        "summary": {
            "total_lines": len({r["line_no"] for r in rows}),
            "total_target": total_target,
            "total_production": total_production,
            "achievement": round(total_production / total_target * 100, 1) if total_target else 0,
            "average_production_per_hour": round(total_production / total_hours, 2) if total_hours else 0,
        },
    }


def money(value: Any) -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def report_amounts(production_qty: int, unit_price: Any, percentage: Any, exchange_rate: float) -> Dict[str, Decimal]:
    """生产日报金额：产值（美元）与净收入（塔卡）"""
    total = Decimal(str(unit_price or 0)) * int(production_qty or 0)
    net = total * Decimal(str(percentage or 0)) / 100 * Decimal(str(exchange_rate))
    return {"total_amount": money(total), "net_amount": money(net)}


def merge_report_quantities(
    action: str,
    current_target: int,
    current_production: int,
    target_qty: int,
    production_qty: int,
) -> Dict[str, int]:
    """
    生产日报数量合并规则
    - ADD: 产量累加，目标取较大值
    - SUBTRACT: 产量扣减（不小于 0），目标不变
    - REPLACE: 直接覆盖
    """
    if action == "ADD":
        return {
            "target_qty": max(current_target, target_qty),
            "production_qty": current_production + production_qty,
        }
    if action == "SUBTRACT":
        return {
            "target_qty": current_target,
            "production_qty": max(0, current_production - production_qty),
        }
    if action == "REPLACE":
        return {"target_qty": target_qty, "production_qty": production_qty}
    raise ValueError(f"不支持的操作: {action}")


def summarize_daily_reports(reports: Sequence[Any]) -> Dict[str, Any]:
    """生产日报按线分组汇总"""
    by_line: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
    for r in sorted(reports, key=lambda x: (x.line_no, x.id)):
        group = by_line.setdefault(r.line_no, {
            "line_no": r.line_no, "reports": [], "target_qty": 0, "production_qty": 0,
            "total_amount": 0.0, "net_amount": 0.0,
        })
        group["reports"].append(r)
        group["target_qty"] += r.target_qty or 0
        group["production_qty"] += r.production_qty or 0
        group["total_amount"] += float(r.total_amount or 0)
        group["net_amount"] += float(r.net_amount or 0)
    for group in by_line.values():
        group["efficiency"] = efficiency(group["production_qty"], group["target_qty"])

    target = sum(g["target_qty"] for g in by_line.values())
    production = sum(g["production_qty"] for g in by_line.values())
    return {
        "lines": list(by_line.values()),
        "summary": {
            "total_reports": len(reports),
            "total_lines": len(by_line),
            "total_target": target,
            "total_production": production,
            "total_amount": round(sum(g["total_amount"] for g in by_line.values()), 2),
            "net_amount": round(sum(g["net_amount"] for g in by_line.values()), 2),
            "efficiency": efficiency(production, target),
        },
    }


def production_balance(style: Any, produced: int, shipped: int) -> Dict[str, Any]:
    """款式生产余量：订单数量 - 累计生产（可为负，表示超产）"""
    order_qty = style.order_qty or 0
    return {
        "style_id": style.id,
        "style_number": style.style_number,
        "buyer": style.buyer,
        "po_number": style.po_number,
        "status": style.status,
        "order_qty": order_qty,
        "total_produced": produced,
        "balance": order_qty - produced,
        "shipped_qty": shipped,
        "ready_to_ship": max(produced - shipped, 0),
        "progress": round(produced / order_qty * 100, 1) if order_qty else 0,
    }
