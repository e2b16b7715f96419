"""
损益计算服务

收入：生产日报净收入（net_amount）
支出：月度固定费用折算日费用 + 日常现金支出 + 日工资
"""

import logging
from collections import defaultdict
from datetime import date
from typing import Any, Dict, List, Sequence, Tuple

from sqlalchemy import select, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from garment_erp.core.config import settings
from garment_erp.models import (
    CashbookEntry, DailyProductionReport, DailySalary, Expense, MonthlyExpense,
)
from garment_erp.models.cashbook import DAILY_EXPENSE_CATEGORY

logger = logging.getLogger(__name__)


def _new_day(day: str, daily_equivalent: float) -> Dict[str, Any]:
    return {
        "date": day,
        "earnings": 0.0,
        "monthly_expenses": daily_equivalent,
        "daily_cash_expenses": 0.0,
        "daily_salary": 0.0,
        "net_profit": 0.0,
        "production_count": 0,
        "cash_expense_count": 0,
        "salary_count": 0,
    }


def build_profit_loss(
    production: Sequence[Any],
    cash_expenses: Sequence[Tuple[date, float]],
    salaries: Sequence[Any],
    monthly_totals: Dict[Tuple[int, int], float],
    divisor: int = 30,
) -> Dict[str, Any]:
    """
    汇总损益

    Args:
        production: 生产日报（date, line_no, net_amount）
        cash_expenses: 日常现金支出 [(日期, 金额)]
        salaries: 日工资（date, total_amount）
        monthly_totals: {(年, 月): 当月月度费用合计}
        divisor: 月度费用折算天数
    """
    def daily_equivalent(d: date) -> float:
        return monthly_totals.get((d.year, d.month), 0.0) / divisor

    days: Dict[str, Dict[str, Any]] = {}

    def day_of(d: date) -> Dict[str, Any]:
        key = d.isoformat()
        if key not in days:
            days[key] = _new_day(key, daily_equivalent(d))
        return days[key]

    lines: Dict[str, Dict[str, Any]] = {}
    line_days: Dict[str, set] = defaultdict(set)
    for r in production:
        day = day_of(r.date)
        day["earnings"] += float(r.net_amount or 0)
        day["production_count"] += 1

        line_no = r.line_no or "General"
        line = lines.setdefault(line_no, {"line_no": line_no, "earnings": 0.0, "monthly_expenses": 0.0,
                                          "net_profit": 0.0, "production_count": 0})
        line["earnings"] += float(r.net_amount or 0)
        line["production_count"] += 1
        if r.date not in line_days[line_no]:
            line_days[line_no].add(r.date)
            line["monthly_expenses"] += daily_equivalent(r.date)

    for expense_date, amount in cash_expenses:
        day = day_of(expense_date)
        day["daily_cash_expenses"] += float(amount or 0)
        day["cash_expense_count"] += 1

    for s in salaries:
        day = day_of(s.date)
        day["daily_salary"] += float(s.total_amount or 0)
        day["salary_count"] += 1

    daily_breakdown = sorted(days.values(), key=lambda d: d["date"])
    for day in daily_breakdown:
        day["net_profit"] = (
            day["earnings"] - day["monthly_expenses"] - day["daily_cash_expenses"] - day["daily_salary"]
        )

    line_breakdown = sorted(lines.values(), key=lambda l: l["earnings"] - l["monthly_expenses"], reverse=True)
    for line in line_breakdown:
        line["net_profit"] = line["earnings"] - line["monthly_expenses"]

    total_earnings = sum(d["earnings"] for d in daily_breakdown)
    monthly_charge = sum(d["monthly_expenses"] for d in daily_breakdown)
    total_cash = sum(d["daily_cash_expenses"] for d in daily_breakdown)
    total_salary = sum(d["daily_salary"] for d in daily_breakdown)
    total_expenses = monthly_charge + total_cash + total_salary
    net_profit = total_earnings - total_expenses

    return {
        "summary": {
            "total_earnings": round(total_earnings, 2),
            "total_expenses": round(total_expenses, 2),
            "net_profit": round(net_profit, 2),
            "profit_margin": round(net_profit / total_earnings * 100, 2) if total_earnings > 0 else 0,
            "breakdown": {
                "monthly_expenses": round(sum(monthly_totals.values()), 2),
                "monthly_expenses_charged": round(monthly_charge, 2),
                "daily_cash_expenses": round(total_cash, 2),
                "daily_salary": round(total_salary, 2),
            },
        },
        "daily_breakdown": daily_breakdown,
        "line_breakdown": line_breakdown,
        "top_performing_lines": line_breakdown[:5],
        "worst_performing_lines": list(reversed(line_breakdown[-5:])),
    }


def _months_between(start: date, end: date) -> List[Tuple[int, int]]:
    months = []
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        months.append((year, month))
        month += 1
        if month > 12:
            year, month = year + 1, 1
    return months


async def calculate_profit_loss(db: AsyncSession, start: date, end: date) -> Dict[str, Any]:
    """读取区间内数据并计算损益"""
    production = (await db.execute(
        select(DailyProductionReport).where(
            DailyProductionReport.date >= start, DailyProductionReport.date <= end
        )
    )).scalars().all()

    salaries = (await db.execute(
        select(DailySalary).where(DailySalary.date >= start, DailySalary.date <= end)
    )).scalars().all()

    expense_rows = (await db.execute(
        select(Expense.date, Expense.amount).where(Expense.date >= start, Expense.date <= end)
    )).all()
    cashbook_rows = (await db.execute(
        select(CashbookEntry.date, CashbookEntry.amount).where(
            CashbookEntry.date >= start,
            CashbookEntry.date <= end,
            CashbookEntry.type == "DEBIT",
            CashbookEntry.category == DAILY_EXPENSE_CATEGORY,
        )
    )).all()
    cash_expenses = [(row[0], float(row[1] or 0)) for row in list(expense_rows) + list(cashbook_rows)]

    months = _months_between(start, end)
    monthly_totals: Dict[Tuple[int, int], float] = {key: 0.0 for key in months}
    month_filter = or_(*[and_(MonthlyExpense.year == y, MonthlyExpense.month == m) for y, m in months])
    for item in (await db.execute(select(MonthlyExpense).where(month_filter))).scalars().all():
        monthly_totals[(item.year, item.month)] += float(item.amount or 0)

    result = build_profit_loss(
        production, cash_expenses, salaries, monthly_totals, settings.MONTHLY_EXPENSE_DIVISOR
    )
    result["period"] = {
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
        "label": start.strftime("%B %Y") if len(months) == 1 else f"{start.isoformat()} ~ {end.isoformat()}",
    }
    logger.debug(f"损益计算完成: {start} ~ {end}, 净利润 {result['summary']['net_profit']}")
    return result
