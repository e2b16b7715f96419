"""
首页看板汇总
- 生产（各工序投入 / 产出 / 在制，按线、按款效率）
- 目标（目标与实际产量对比）
- 现金账（当月收支、分类、按线、与上月对比）
- 裁剪（复用裁剪日汇总）
"""

from collections import OrderedDict
from decimal import Decimal
from typing import Any, Dict, Sequence

from garment_erp.services.production_reports import efficiency

STAGES = ("CUTTING", "SEWING", "FINISHING", "QUALITY")


def _percent_change(current: float, previous: float) -> float:
    if not previous:
        return 0
    return round((current - previous) / abs(previous) * 100, 1)


def production_summary(entries: Sequence[Any]) -> Dict[str, Any]:
    """当日生产记录汇总"""
    by_stage = {stage.lower(): {"input": 0, "output": 0, "wip": 0} for stage in STAGES}
    by_line: "OrderedDict[int, Dict[str, Any]]" = OrderedDict()
    by_style: "OrderedDict[int, Dict[str, Any]]" = OrderedDict()

    for e in entries:
        stage = by_stage.get((e.stage or "").lower())
        if stage is not None:
            stage["input"] += e.input_qty or 0
            stage["output"] += e.output_qty or 0
        line = by_line.setdefault(e.line_id, {
            "line_id": e.line_id,
            "line_code": e.line.code if e.line else str(e.line_id),
            "line_name": e.line.name if e.line else "",
            "total_input": 0, "total_output": 0, "total_defects": 0,
        })
        line["total_input"] += e.input_qty or 0
        line["total_output"] += e.output_qty or 0
        line["total_defects"] += e.defect_qty or 0
        style = by_style.setdefault(e.style_id, {
            "style_id": e.style_id,
            "style_number": e.style.style_number if e.style else str(e.style_id),
            "buyer": e.style.buyer if e.style else "",
            "total_input": 0, "total_output": 0,
        })
        style["total_input"] += e.input_qty or 0
        style["total_output"] += e.output_qty or 0

    for stage in by_stage.values():
        stage["wip"] = stage["input"] - stage["output"]
    for group in list(by_line.values()) + list(by_style.values()):
        group["efficiency"] = efficiency(group["total_output"], group["total_input"])

    lines = sorted(by_line.values(), key=lambda g: g["efficiency"], reverse=True)
    styles = sorted(by_style.values(), key=lambda g: g["efficiency"], reverse=True)
    return {
        "total_production": sum(e.output_qty or 0 for e in entries),
        "total_defects": sum(e.defect_qty or 0 for e in entries),
        "by_stage": by_stage,
        "by_line": lines,
        "top_styles": styles[:5],
    }


def target_summary(targets: Sequence[Any]) -> Dict[str, Any]:
    """当日目标汇总（小时目标 vs 小时产量）"""
    by_line: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
    for t in targets:
        line = by_line.setdefault(t.line_no, {
            "line_no": t.line_no, "total_target": 0, "total_production": 0, "style_count": 0,
        })
        line["total_target"] += t.line_target or 0
        line["total_production"] += t.hourly_production or 0
        line["style_count"] += 1
    for line in by_line.values():
        line["efficiency"] = efficiency(line["total_production"], line["total_target"])

    lines = sorted(by_line.values(), key=lambda g: g["efficiency"], reverse=True)
    total_target = sum(g["total_target"] for g in lines)
    total_actual = sum(g["total_production"] for g in lines)
    variance = total_actual - total_target
    return {
        "total_targets": len(targets),
        "total_line_target": total_target,
        "total_hourly_production": total_actual,
        "average_efficiency": efficiency(total_actual, total_target),
        "by_line": lines,
        "top_lines": lines[:5],
        "target_vs_actual": {
            "total_target": total_target,
            "total_actual": total_actual,
            "variance": variance,
            "variance_percent": round(variance / total_target * 100, 1) if total_target else 0,
        },
    }


def cashbook_summary(entries: Sequence[Any], previous_entries: Sequence[Any] = ()) -> Dict[str, Any]:
    """当月现金账汇总，previous_entries 为上月记录"""
    def _net(items: Sequence[Any]) -> Decimal:
        total = Decimal("0")
        for e in items:
            amount = Decimal(str(e.amount or 0))
            total += amount if e.type == "CREDIT" else -amount
        return total

    credits = sum((Decimal(str(e.amount or 0)) for e in entries if e.type == "CREDIT"), Decimal("0"))
    debits = sum((Decimal(str(e.amount or 0)) for e in entries if e.type == "DEBIT"), Decimal("0"))

    by_category: Dict[tuple, Dict[str, Any]] = {}
    by_line: "OrderedDict[int, Dict[str, Any]]" = OrderedDict()
    for e in entries:
        amount = Decimal(str(e.amount or 0))
        category = by_category.setdefault((e.category, e.type), {
            "category": e.category, "type": e.type, "total_amount": Decimal("0"), "count": 0,
        })
        category["total_amount"] += amount
        category["count"] += 1
        if e.line_id:
            line = by_line.setdefault(e.line_id, {
                "line_id": e.line_id,
                "line_code": e.line.code if e.line else str(e.line_id),
                "total_credit": Decimal("0"), "total_debit": Decimal("0"),
            })
            line["total_credit" if e.type == "CREDIT" else "total_debit"] += amount

    categories = sorted(by_category.values(), key=lambda c: c["total_amount"], reverse=True)
    for category in categories:
        category["total_amount"] = float(category["total_amount"])
    lines = []
    for line in by_line.values():
        net = line["total_credit"] - line["total_debit"]
        lines.append({**line, "total_credit": float(line["total_credit"]),
                      "total_debit": float(line["total_debit"]), "net_amount": float(net)})
    lines.sort(key=lambda l: abs(l["net_amount"]), reverse=True)

    current = credits - debits
    previous = _net(previous_entries)
    return {
        "total_credit": float(credits),
        "total_debit": float(debits),
        "net_cash_flow": float(current),
        "by_category": categories,
        "top_categories": categories[:5],
        "by_line": lines,
        "monthly_trend": {
            "current_month": float(current),
            "previous_month": float(previous),
            "change": float(current - previous),
            "change_percent": _percent_change(float(current), float(previous)),
        },
    }


def overview(production: Dict[str, Any], target: Dict[str, Any],
             cashbook: Dict[str, Any], cutting: Dict[str, Any]) -> Dict[str, Any]:
    """看板总览，目标达成率按缝制产出计算"""
    sewing_output = production["by_stage"]["sewing"]["output"]
    return {
        "total_production": production["total_production"],
        "total_target": target["total_line_target"],
        "sewing_output": sewing_output,
        "target_achievement": efficiency(sewing_output, target["total_line_target"]),
        "net_cash_flow": cashbook["net_cash_flow"],
        "cutting_efficiency": cutting["efficiency"],
    }
