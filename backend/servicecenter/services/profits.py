"""
Отчёты о доходах: по исполнителям, по квитанциям исполнителя, по товарам.

Доход квитанции = работа + доход с запчастей. Зарплата исполнителя =
работа × ставка за работу + доход с запчастей × ставка за товары.
"""
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from servicecenter.core.dates import day_end, day_start
from servicecenter.models import Executor, Part, Repair, RepairStatus, Transaction, TransactionCategory
from servicecenter.services.money import ZERO, round_money, to_decimal


def _paid_in_range(q, start: Optional[datetime], end: Optional[datetime]):
    q = q.where(Repair.is_paid == True, Repair.date_end.is_not(None))
    if start:
        q = q.where(Repair.date_end >= day_start(start))
    if end:
        q = q.where(Repair.date_end <= day_end(end))
    return q


async def _executor_rates(db: AsyncSession) -> dict[str, tuple[Decimal, Decimal]]:
    r = await db.execute(select(Executor.name, Executor.salary_percent, Executor.products_percent))
    return {row.name: (to_decimal(row.salary_percent), to_decimal(row.products_percent)) for row in r.all()}


async def _commissions(db: AsyncSession, repair_ids: list[int]) -> dict[int, Decimal]:
    """Чистая банковская комиссия по каждой квитанции (положительное число)."""
    if not repair_ids:
        return {}
    r = await db.execute(
        select(Transaction.repair_id, func.sum(Transaction.amount))
        .where(
            Transaction.repair_id.in_(repair_ids),
            Transaction.category == TransactionCategory.BANK_COMMISSION.value,
        )
        .group_by(Transaction.repair_id)
    )
    return {repair_id: round_money(-to_decimal(total)) for repair_id, total in r.all()}


def executor_share(cost_labor, parts_profit, salary_percent, products_percent) -> Decimal:
    return round_money(
        to_decimal(cost_labor) * to_decimal(salary_percent) / 100
        + to_decimal(parts_profit) * to_decimal(products_percent) / 100
    )


async def executor_profits(db: AsyncSession, start: Optional[datetime], end: Optional[datetime]) -> list[dict]:
    r = await db.execute(_paid_in_range(select(Repair), start, end))
    repairs = list(r.scalars().all())
    rates = await _executor_rates(db)
    commissions = await _commissions(db, [x.id for x in repairs])
    groups: dict[str, list[Repair]] = defaultdict(list)
    for repair in repairs:
        groups[repair.executor or ""].append(repair)
    result = []
    for name, items in sorted(groups.items()):
        salary, products = rates.get(name, (ZERO, ZERO))
        labor = sum((to_decimal(x.cost_labor) for x in items), ZERO)
        parts_profit = sum((to_decimal(x.profit) for x in items), ZERO)
        result.append({
            "executorName": name,
            "repairCount": len(items),
            "totalLabor": float(round_money(labor)),
            "totalPartsProfit": float(round_money(parts_profit)),
            "totalProfit": float(round_money(labor + parts_profit)),
            "salaryPercent": float(salary),
            "productsPercent": float(products),
            "executorProfit": float(executor_share(labor, parts_profit, salary, products)),
            "totalCommission": float(sum((commissions.get(x.id, ZERO) for x in items), ZERO)),
        })
    return result


async def receipt_profits(
    db: AsyncSession,
    executor_name: Optional[str],
    start: Optional[datetime],
    end: Optional[datetime],
) -> list[dict]:
    q = _paid_in_range(select(Repair), start, end)
    if executor_name:
        q = q.where(Repair.executor == executor_name)
    r = await db.execute(q.order_by(Repair.date_end.desc()))
    repairs = list(r.scalars().all())
    rates = await _executor_rates(db)
    commissions = await _commissions(db, [x.id for x in repairs])
    out = []
    for x in repairs:
        salary, products = rates.get(x.executor, (ZERO, ZERO))
        out.append({
            "id": x.id,
            "receiptId": x.receipt_id,
            "clientName": x.client_name,
            "deviceName": x.device_name,
            "executorName": x.executor,
            "dateEnd": x.date_end.isoformat() if x.date_end else None,
            "costLabor": float(to_decimal(x.cost_labor)),
            "partsProfit": float(to_decimal(x.profit)),
            "profit": float(round_money(to_decimal(x.cost_labor) + to_decimal(x.profit))),
            "salaryPercent": float(salary),
            "productsPercent": float(products),
            "executorProfit": float(executor_share(x.cost_labor, x.profit, salary, products)),
            "commission": float(commissions.get(x.id, ZERO)),
        })
    return out


async def product_profits(db: AsyncSession, start: Optional[datetime], end: Optional[datetime]) -> dict:
    """Проданные за период запчасти и стоимость остатка на складе."""
    q = select(
        func.count(Part.id),
        func.coalesce(func.sum(Part.price_uah), 0),
        func.coalesce(func.sum(Part.cost_uah), 0),
    ).where(Part.in_stock == False, Part.date_sold.is_not(None))
    if start:
        q = q.where(Part.date_sold >= day_start(start))
    if end:
        q = q.where(Part.date_sold <= day_end(end))
    sold_count, revenue, expenses = (await db.execute(q)).one()
    unsold = (await db.execute(
        select(func.coalesce(func.sum(Part.cost_uah), 0)).where(Part.in_stock == True)
    )).scalar_one()
    revenue = round_money(revenue)
    expenses = round_money(expenses)
    return {
        "soldCount": sold_count,
        "totalRevenue": float(revenue),
        "totalExpenses": float(expenses),
        "profit": float(revenue - expenses),
        "unsoldValue": float(round_money(unsold)),
    }


async def unpaid_ready(db: AsyncSession, start: Optional[datetime], end: Optional[datetime]) -> list[Repair]:
    q = select(Repair).where(Repair.status == RepairStatus.READY.value, Repair.is_paid == False)
    if start:
        q = q.where(Repair.date_end >= day_start(start))
    if end:
        q = q.where(Repair.date_end <= day_end(end))
    r = await db.execute(q.order_by(Repair.date_end.desc(), Repair.id.desc()))
    return list(r.scalars().all())
