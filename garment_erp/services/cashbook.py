"""
现金账统计服务

纯函数，输入为现金账分录（ORM 对象或任意具备 date/type/amount 等属性的对象），
便于在接口和测试中复用
"""

import calendar
from collections import OrderedDict
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from garment_erp.models.cashbook import CASH_RECEIVED_CATEGORY, DAILY_EXPENSE_CATEGORY

PERIODS = ("today", "current_month", "last_month", "all_time")
ALL_TIME_START = date(2020, 1, 1)


def _amount(entry: Any) -> Decimal:
    return Decimal(str(entry.amount or 0))


def chronological_key(entry: Any) -> tuple:
    """时间顺序：日期，其次录入时间，最后ID"""
    created = getattr(entry, "created_at", None) or datetime.min
    return (entry.date, created, getattr(entry, "id", 0) or 0)


def apply_running_balance(entries: Iterable[Any]) -> List[Tuple[Any, float]]:
    """
    按时间顺序计算滚动余额

    收入加、支出减，最后一条的余额等于 收入合计 - 支出合计

    Returns:
        [(分录, 该分录后的余额), ...]，按时间升序
    """
    balance = Decimal("0")
    result = []
    for entry in sorted(entries, key=chronological_key):
        if entry.type == "CREDIT":
            balance += _amount(entry)
        else:
            balance -= _amount(entry)
        result.append((entry, float(balance)))
    return result


def totals(entries: Iterable[Any]) -> Dict[str, float]:
    """收入、支出合计与期末余额"""
    credit = Decimal("0")
    debit = Decimal("0")
    for entry in entries:
        if entry.type == "CREDIT":
            credit += _amount(entry)
        else:
            debit += _amount(entry)
    return {
        "total_credit": float(credit),
        "total_debit": float(debit),
        "closing_balance": float(credit - debit),
    }


def is_cash_received(entry: Any) -> bool:
    return entry.type == "CREDIT" and entry.category == CASH_RECEIVED_CATEGORY


def is_daily_expense(entry: Any) -> bool:
    return entry.type == "DEBIT" and entry.category == DAILY_EXPENSE_CATEGORY


def period_range(period: str, today: Optional[date] = None) -> Tuple[date, date, str]:
    """
    统计区间

    Returns:
        (开始日期, 结束日期, 区间名称)
    """
    today = today or date.today()
    if period == "today":
        return today, today, today.strftime("%b %d, %Y")
    if period == "last_month":
        last_day = today.replace(day=1) - timedelta(days=1)
        return last_day.replace(day=1), last_day, last_day.strftime("%B %Y")
    if period == "all_time":
        return ALL_TIME_START, today, "All Time"
    if period == "current_month":
        last = calendar.monthrange(today.year, today.month)[1]
        return today.replace(day=1), today.replace(day=last), today.strftime("%B %Y")
    raise ValueError(f"不支持的统计区间: {period}")


def month_range(month: str) -> Tuple[date, date]:
    """解析 YYYY-MM，返回当月首尾日期"""
    try:
        year, mon = (int(part) for part in month.split("-"))
        last = calendar.monthrange(year, mon)[1]
        return date(year, mon, 1), date(year, mon, last)
    except (ValueError, TypeError):
        raise ValueError(f"月份格式错误，应为 YYYY-MM: {month}")


def entry_brief(entry: Any) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "date": entry.date.isoformat(),
        "type": entry.type,
        "category": entry.category,
        "amount": float(_amount(entry)),
        "description": entry.description,
    }


def build_summary(entries: Sequence[Any], period: str, today: Optional[date] = None) -> Dict[str, Any]:
    """
    区间汇总：收款与日常支出的合计、均值、支出排行、最近交易、按日汇总
    """
    start, end, period_name = period_range(period, today)
    in_range = [e for e in entries if start <= e.date <= end]
    newest_first = sorted(in_range, key=chronological_key, reverse=True)

    received = [e for e in in_range if is_cash_received(e)]
    expenses = [e for e in in_range if is_daily_expense(e)]
    total_received = sum((_amount(e) for e in received), Decimal("0"))
    total_expenses = sum((_amount(e) for e in expenses), Decimal("0"))
    net = total_received - total_expenses

    # 按说明归类的支出排行
    by_description: Dict[str, Decimal] = {}
    for e in expenses:
        key = e.description or "Other"
        by_description[key] = by_description.get(key, Decimal("0")) + _amount(e)
    top_expenses = sorted(by_description.items(), key=lambda kv: kv[1], reverse=True)[:5]

    daily: Dict[str, Dict[str, Any]] = {}
    for e in in_range:
        key = e.date.isoformat()
        day = daily.setdefault(key, {"date": key, "cash_received": 0.0, "expenses": 0.0,
                                     "net": 0.0, "transaction_count": 0})
        if is_cash_received(e):
            day["cash_received"] += float(_amount(e))
        elif is_daily_expense(e):
            day["expenses"] += float(_amount(e))
        day["net"] = day["cash_received"] - day["expenses"]
        day["transaction_count"] += 1
    days = len(daily)

    highest_receipt = max(received, key=_amount) if received else None
    highest_expense = max(expenses, key=_amount) if expenses else None

    return {
        "period": period_name,
        "period_type": period,
        "date_range": {"start_date": start.isoformat(), "end_date": end.isoformat()},
        "totals": {
            "cash_received": float(total_received),
            "expenses": float(total_expenses),
            "net_amount": float(net),
            "total_transactions": len(in_range),
        },
        "breakdown": {
            "cash_received_count": len(received),
            "expenses_count": len(expenses),
            "days_with_transactions": days,
            "averages": {
                "daily_received": float(total_received) / days if days else 0.0,
                "daily_expenses": float(total_expenses) / days if days else 0.0,
            },
        },
        "top_expense_categories": [
            {"description": name, "amount": float(amount)} for name, amount in top_expenses
        ],
        "recent_transactions": [entry_brief(e) for e in newest_first[:10]],
        "daily_summary": sorted(daily.values(), key=lambda d: d["date"], reverse=True)[:30],
        "insights": {
            "highest_receipt": entry_brief(highest_receipt) if highest_receipt else None,
            "highest_expense": entry_brief(highest_expense) if highest_expense else None,
            "is_profit": net > 0,
            "profit_margin": float(net / total_received * 100) if total_received > 0 else 0.0,
        },
    }


def build_monthly_report(entries: Sequence[Any], month: str) -> Dict[str, Any]:
    """
    月报：按天列出收款与支出明细及当日合计
    """
    start, end = month_range(month)
    in_month = sorted((e for e in entries if start <= e.date <= end), key=chronological_key)

    days: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
    for e in in_month:
        key = e.date.isoformat()
        day = days.setdefault(key, {"date": key, "cash_received": [], "expenses": [],
                                    "total_received": 0.0, "total_expenses": 0.0, "net": 0.0})
        if e.type == "CREDIT":
            day["cash_received"].append(entry_brief(e))
            day["total_received"] += float(_amount(e))
        else:
            day["expenses"].append(entry_brief(e))
            day["total_expenses"] += float(_amount(e))
        day["net"] = day["total_received"] - day["total_expenses"]

    summary = totals(in_month)
    return {
        "month": month,
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
        "days": list(days.values()),
        "summary": {
            "total_received": summary["total_credit"],
            "total_expenses": summary["total_debit"],
            "net": summary["closing_balance"],
            "days_with_transactions": len(days),
            "transaction_count": len(in_month),
        },
    }
