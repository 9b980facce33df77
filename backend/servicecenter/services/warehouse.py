"""Склад: приход, списание, запчасти в квитанциях и пересчёт сумм ремонта."""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from servicecenter.core.logging_config import get_logger
from servicecenter.models import Part, PaymentType, Repair, TransactionCategory
from servicecenter.services import ledger
from servicecenter.services.money import ZERO, round_money, to_decimal
from servicecenter.services.repair_lifecycle import compute_totals

logger = get_logger(__name__)


class PartError(Exception):
    pass


async def get_repair_parts(db: AsyncSession, repair_id: int) -> list[Part]:
    r = await db.execute(select(Part).where(Part.repair_id == repair_id).order_by(Part.id))
    return list(r.scalars().all())


async def recalculate_repair(db: AsyncSession, repair: Repair) -> None:
    """Сумма и доход квитанции по текущим запчастям."""
    parts = await get_repair_parts(db, repair.id)
    repair.total_cost, repair.profit = compute_totals(
        repair.cost_labor,
        (p.price_uah for p in parts),
        (p.profit for p in parts),
    )
    await db.flush()


def _sold_date(repair: Repair) -> Optional[datetime]:
    return repair.date_end if repair.is_paid else None


async def attach_part(
    db: AsyncSession,
    repair: Repair,
    price_uah,
    part_id: Optional[int] = None,
    name: Optional[str] = None,
    supplier: Optional[str] = None,
    cost_uah=None,
) -> Part:
    """
    Добавить запчасть в квитанцию: со склада (part_id) или вручную.
    Прибыль = цена продажи − себестоимость. Дата продажи — дата оплаты квитанции.
    """
    price = round_money(price_uah)
    if price <= 0:
        raise PartError("Ціна продажу має бути більшою за 0")
    if part_id is not None:
        part = await db.get(Part, part_id)
        if part is None:
            raise LookupError("Товар не знайдено")
        if not part.in_stock and part.repair_id not in (None, repair.id):
            raise PartError("Товар вже продано")
        part.repair_id = repair.id
        part.price_uah = price
        part.profit = round_money(price - to_decimal(part.cost_uah))
        part.in_stock = False
        part.date_sold = _sold_date(repair)
    else:
        if not (name or "").strip():
            raise PartError("Вкажіть назву")
        if not (supplier or "").strip():
            raise PartError("Вкажіть постачальника")
        cost = round_money(cost_uah)
        part = Part(
            name=name.strip(),
            supplier=supplier.strip(),
            price_usd=ZERO,
            exchange_rate=ZERO,
            cost_uah=cost,
            price_uah=price,
            profit=round_money(price - cost),
            in_stock=False,
            repair_id=repair.id,
            date_arrival=datetime.utcnow(),
            date_sold=_sold_date(repair),
        )
        db.add(part)
    await db.flush()
    await recalculate_repair(db, repair)
    logger.info("Запчасть id=%s добавлена в квитанцию #%s", part.id, repair.receipt_id)
    return part


def _return_to_stock(part: Part) -> None:
    part.repair_id = None
    part.in_stock = True
    part.date_sold = None
    part.price_uah = ZERO
    part.profit = ZERO


async def detach_part(db: AsyncSession, repair: Repair, part_id: int) -> None:
    """Убрать запчасть из квитанции: ручные удаляются, складские возвращаются в наличие."""
    part = await db.get(Part, part_id)
    if part is None:
        raise LookupError("Запчастину не знайдено")
    if part.repair_id != repair.id:
        raise PartError("Запчастина не належить цьому ремонту")
    if part.is_manual:
        await db.delete(part)
    else:
        _return_to_stock(part)
    await db.flush()
    await recalculate_repair(db, repair)


async def update_part_price(db: AsyncSession, repair: Repair, part_id: int, price_uah) -> Part:
    part = await db.get(Part, part_id)
    if part is None:
        raise LookupError("Запчастину не знайдено")
    if part.repair_id != repair.id:
        raise PartError("Запчастина не належить цьому ремонту")
    price = round_money(price_uah)
    if price <= 0:
        raise PartError("Ціна продажу має бути більшою за 0")
    part.price_uah = price
    part.profit = round_money(price - to_decimal(part.cost_uah))
    await db.flush()
    await recalculate_repair(db, repair)
    return part


async def set_parts_payment(db: AsyncSession, repair_id: int, is_paid: bool, date_end: Optional[datetime]) -> int:
    """Дата продажи всех запчастей квитанции: дата оплаты или пусто."""
    parts = await get_repair_parts(db, repair_id)
    for part in parts:
        part.date_sold = date_end if is_paid else None
    await db.flush()
    return len(parts)


async def release_repair_parts(db: AsyncSession, repair_id: int) -> None:
    """Отвязать все запчасти квитанции: ручные удаляются, складские возвращаются в наличие."""
    for part in await get_repair_parts(db, repair_id):
        if part.is_manual:
            await db.delete(part)
        else:
            _return_to_stock(part)
    await db.flush()


async def return_repair_parts(db: AsyncSession, repair: Repair) -> None:
    """Возврат всех запчастей квитанции (при возврате денег клиенту)."""
    await release_repair_parts(db, repair.id)
    await recalculate_repair(db, repair)


async def add_stock_items(
    db: AsyncSession,
    name: str,
    supplier: str,
    quantity: int = 1,
    price_usd=None,
    exchange_rate=None,
    cost_uah=None,
    invoice: Optional[str] = None,
    product_code: Optional[str] = None,
    barcode: Optional[str] = None,
    date_arrival: Optional[datetime] = None,
    payment_type: Optional[str] = None,
) -> list[Part]:
    """
    Приход: quantity одинаковых позиций. Себестоимость без явного значения —
    цена в долларах × курс. С типом оплаты — расход «Покупка» из кассы.
    """
    if not (name or "").strip():
        raise PartError("Вкажіть назву")
    if quantity < 1:
        raise PartError("Кількість має бути не менше 1")
    usd = round_money(price_usd)
    rate = round_money(exchange_rate)
    cost = round_money(cost_uah) if cost_uah is not None else round_money(usd * rate)
    arrival = date_arrival or datetime.utcnow()
    items = []
    for _ in range(quantity):
        part = Part(
            name=name.strip(),
            supplier=(supplier or "").strip(),
            price_usd=usd,
            exchange_rate=rate,
            cost_uah=cost,
            price_uah=ZERO,
            profit=ZERO,
            in_stock=True,
            date_arrival=arrival,
            invoice=invoice,
            product_code=product_code,
            barcode=barcode or None,
        )
        db.add(part)
        items.append(part)
    await db.flush()
    if payment_type:
        total = round_money(cost * quantity)
        if total > 0:
            register = await ledger.get_register_settings(db)
            if register.applies_to(arrival):
                delta = -total
                await ledger.post(
                    db,
                    TransactionCategory.PURCHASE.value,
                    -total,
                    f"Покупка: {name.strip()} × {quantity} ({supplier})",
                    cash_delta=delta if payment_type == PaymentType.CASH.value else ZERO,
                    card_delta=delta if payment_type == PaymentType.CARD.value else ZERO,
                    date_executed=arrival,
                    payment_type=payment_type,
                )
    logger.info("Приход на склад: %s × %s (%s)", name, quantity, supplier)
    return items


async def delete_stock_item(db: AsyncSession, part: Part, write_off: bool = False) -> None:
    """Удалить позицию. Списание оставляет в кассе запись «Списання» без суммы."""
    if part.repair_id is not None:
        raise PartError("Товар прив'язано до квитанції, спочатку приберіть його з ремонту")
    if write_off:
        register = await ledger.get_register_settings(db)
        if register.enabled:
            await ledger.post(
                db,
                TransactionCategory.WRITE_OFF.value,
                Decimal("0"),
                f"Списання: {part.name} ({part.supplier}), собівартість {to_decimal(part.cost_uah):.2f} грн",
            )
    await db.delete(part)
    await db.flush()
    logger.info("Позиция склада id=%s удалена (списание=%s)", part.id, write_off)
