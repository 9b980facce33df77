"""Квитанции: выборка со фильтрами, создание и изменение с проводками в кассу."""
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import select, func, or_, cast, String
from sqlalchemy.ext.asyncio import AsyncSession

from servicecenter.config import settings
from servicecenter.core.dates import day_end, day_start
from servicecenter.core.logging_config import get_logger
from servicecenter.models import Repair, RepairStatus, status_from_label
from servicecenter.schemas.repair import RepairCreate, RepairUpdate
from servicecenter.services import ledger, warehouse
from servicecenter.services.money import phone_digits, round_money
from servicecenter.services.repair_lifecycle import normalize_for_save

logger = get_logger(__name__)


class RepairError(Exception):
    pass


async def get_repair(db: AsyncSession, repair_id: int) -> Optional[Repair]:
    result = await db.execute(select(Repair).where(Repair.id == repair_id))
    return result.scalar_one_or_none()


async def next_receipt_id(db: AsyncSession) -> int:
    r = await db.execute(select(func.max(Repair.receipt_id)))
    current = r.scalar_one_or_none()
    return (current or 0) + 1


async def _receipt_taken(db: AsyncSession, receipt_id: int, exclude_id: Optional[int] = None) -> bool:
    q = select(Repair.id).where(Repair.receipt_id == receipt_id)
    if exclude_id is not None:
        q = q.where(Repair.id != exclude_id)
    r = await db.execute(q.limit(1))
    return r.scalar_one_or_none() is not None


def _search_condition(search: str):
    text = search.strip().lower()
    conditions = [
        func.lower(Repair.client_name, type_=String).contains(text),
        func.lower(Repair.device_name, type_=String).contains(text),
        cast(Repair.receipt_id, String).contains(text),
        cast(Repair.cost_labor, String).contains(text),
        cast(Repair.total_cost, String).contains(text),
    ]
    digits = phone_digits(text)
    if digits:
        # Телефон сравнивается только по цифрам: «067-12» найдёт «0671234567»
        phone = func.replace(
            func.replace(func.replace(Repair.client_phone, "-", ""), " ", ""), "+", "", type_=String
        )
        conditions.append(phone.contains(digits))
    return or_(*conditions)


def build_repairs_query(
    search: Optional[str] = None,
    statuses: Optional[Sequence[int]] = None,
    should_call: Optional[bool] = None,
    executor: Optional[str] = None,
    date_start: Optional[datetime] = None,
    date_end: Optional[datetime] = None,
    payment_date_start: Optional[datetime] = None,
    payment_date_end: Optional[datetime] = None,
):
    """Условия выборки квитанций; фильтр по дате оплаты оставляет только оплаченные."""
    q = select(Repair)
    if search and search.strip():
        q = q.where(_search_condition(search))
    if statuses:
        q = q.where(Repair.status.in_(list(statuses)))
    if should_call is not None:
        q = q.where(Repair.should_call == should_call)
    if executor:
        q = q.where(Repair.executor == executor)
    if date_start:
        q = q.where(Repair.date_start >= day_start(date_start))
    if date_end:
        q = q.where(Repair.date_start <= day_end(date_end))
    if payment_date_start or payment_date_end:
        q = q.where(Repair.is_paid == True)
        if payment_date_start:
            q = q.where(Repair.date_end >= day_start(payment_date_start))
        if payment_date_end:
            q = q.where(Repair.date_end <= day_end(payment_date_end))
    return q


async def list_repairs(db: AsyncSession, page: int = 1, limit: int = 50, **filters) -> tuple[list[Repair], int]:
    q = build_repairs_query(**filters)
    total_r = await db.execute(select(func.count()).select_from(q.subquery()))
    total = total_r.scalar_one()
    r = await db.execute(
        q.order_by(Repair.receipt_id.desc()).offset((page - 1) * limit).limit(limit)
    )
    return list(r.scalars().all()), total


async def status_counts(db: AsyncSession) -> dict[int, int]:
    r = await db.execute(select(Repair.status, func.count()).group_by(Repair.status))
    counts = {s.value: 0 for s in RepairStatus}
    for status, count in r.all():
        counts[status] = count
    return counts


async def create_repair(db: AsyncSession, data: RepairCreate) -> Repair:
    receipt_id = data.receipt_id or await next_receipt_id(db)
    if await _receipt_taken(db, receipt_id):
        raise RepairError(f"Квитанція #{receipt_id} вже існує")
    repair = Repair(
        receipt_id=receipt_id,
        device_name=data.device_name,
        fault_desc=data.fault_desc,
        work_done=data.work_done,
        cost_labor=round_money(data.cost_labor),
        is_paid=data.is_paid,
        status=status_from_label(data.status).value,
        client_name=data.client_name,
        client_phone=data.client_phone,
        date_start=data.date_start or datetime.utcnow(),
        date_end=data.date_end,
        note=data.note,
        should_call=data.should_call,
        executor=data.executor or settings.default_executor,
        payment_type=data.payment_type or "Готівка",
    )
    normalize_for_save(repair)
    repair.total_cost = repair.cost_labor
    repair.profit = round_money(0)
    db.add(repair)
    await db.flush()
    if repair.is_paid:
        await ledger.record_repair_payment(db, repair)
    logger.info("Создана квитанция id=%s receipt=%s", repair.id, repair.receipt_id)
    return repair


async def update_repair(
    db: AsyncSession,
    repair: Repair,
    data: RepairUpdate,
    payment_suffix: str = "",
) -> Repair:
    """
    Слияние изменённых полей, согласование статуса с оплатой и пересчёт сумм.
    Переход в «оплачено» проводит оплату в кассе, обратный — отмену оплаты.
    """
    was_paid = repair.is_paid
    changes = data.model_dump(exclude_unset=True)
    if "receipt_id" in changes and changes["receipt_id"] != repair.receipt_id:
        if await _receipt_taken(db, changes["receipt_id"], exclude_id=repair.id):
            raise RepairError(f"Квитанція #{changes['receipt_id']} вже існує")
    status_sent = "status" in changes and changes["status"] is not None
    for field, value in changes.items():
        if field == "status":
            continue
        if value is None and field not in ("date_end",):
            continue
        setattr(repair, field, value)
    if status_sent:
        new_status = status_from_label(changes["status"]).value
        if new_status != RepairStatus.ISSUED.value and "is_paid" not in changes:
            # Уход с «Видано» снимает оплату
            repair.is_paid = False
        repair.status = new_status
    elif "is_paid" in changes and not repair.is_paid and repair.status == RepairStatus.ISSUED.value:
        repair.status = RepairStatus.READY.value
    repair.cost_labor = round_money(repair.cost_labor)
    normalize_for_save(repair)
    if repair.is_paid and not was_paid and "date_end" not in changes:
        # Дата оплаты: сейчас, а не старая дата «Готовий»
        repair.date_end = datetime.utcnow()
    await warehouse.recalculate_repair(db, repair)
    if repair.is_paid != was_paid:
        await warehouse.set_parts_payment(db, repair.id, repair.is_paid, repair.date_end)
        if repair.is_paid:
            await ledger.record_repair_payment(db, repair, suffix=payment_suffix)
        else:
            await ledger.cancel_repair_payment(db, repair)
    await db.flush()
    logger.info("Обновлена квитанция id=%s статус=%s оплачено=%s", repair.id, repair.status, repair.is_paid)
    return repair


async def delete_repair(db: AsyncSession, repair: Repair) -> None:
    await warehouse.release_repair_parts(db, repair.id)
    await db.delete(repair)
    await db.flush()
    logger.info("Удалена квитанция id=%s receipt=%s", repair.id, repair.receipt_id)
