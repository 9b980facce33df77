"""
Касса: остатки наличных и карты, проводки, сверка, оплата и возврат по квитанциям.

Каждая проводка хранит остатки после себя (cash, card). Текущий остаток —
остатки последней проводки по id, без проводок — 0/0.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from servicecenter.config import settings
from servicecenter.core.logging_config import get_logger
from servicecenter.models import (
    AppSetting,
    Executor,
    Repair,
    RepairStatus,
    Transaction,
    TransactionCategory,
    PaymentType,
)
from servicecenter.services.money import ZERO, percent_of, round_money, to_decimal

logger = get_logger(__name__)

KEY_COMMISSION = "card_commission_percent"
KEY_ENABLED = "cash_register_enabled"
KEY_START_DATE = "cash_register_start_date"

# Суммы по квитанции, которые составляют «оплачено клиентом»
_PAYMENT_CATEGORIES = (
    TransactionCategory.INCOME.value,
    TransactionCategory.CANCELLATION.value,
    TransactionCategory.REFUND.value,
)


class LedgerError(Exception):
    pass


@dataclass
class RegisterSettings:
    card_commission_percent: Decimal
    enabled: bool
    start_date: Optional[datetime]

    def applies_to(self, when: Optional[datetime]) -> bool:
        """Проводки пишутся только во включённую кассу и не раньше даты включения."""
        if not self.enabled:
            return False
        if self.start_date is None or when is None:
            return True
        return when >= self.start_date

    def to_dict(self) -> dict:
        return {
            "cardCommissionPercent": float(self.card_commission_percent),
            "cashRegisterEnabled": self.enabled,
            "cashRegisterStartDate": self.start_date.isoformat() if self.start_date else None,
        }


async def _get_setting(db: AsyncSession, key: str) -> Optional[str]:
    r = await db.execute(select(AppSetting.value).where(AppSetting.key == key))
    return r.scalar_one_or_none()


async def _set_setting(db: AsyncSession, key: str, value: str) -> None:
    row = await db.get(AppSetting, key)
    if row is None:
        db.add(AppSetting(key=key, value=value))
    else:
        row.value = value
    await db.flush()


async def get_register_settings(db: AsyncSession) -> RegisterSettings:
    commission = await _get_setting(db, KEY_COMMISSION)
    enabled = await _get_setting(db, KEY_ENABLED)
    start = await _get_setting(db, KEY_START_DATE)
    return RegisterSettings(
        card_commission_percent=to_decimal(commission) if commission else settings.default_card_commission_percent,
        enabled=enabled == "1",
        start_date=datetime.fromisoformat(start) if start else None,
    )


async def update_commission(db: AsyncSession, percent) -> RegisterSettings:
    value = to_decimal(percent)
    if value < 0 or value > 100:
        raise LedgerError("Комісія має бути від 0 до 100%")
    await _set_setting(db, KEY_COMMISSION, str(value))
    return await get_register_settings(db)


async def get_balances(db: AsyncSession) -> tuple[Decimal, Decimal]:
    r = await db.execute(
        select(Transaction.cash, Transaction.card).order_by(Transaction.id.desc()).limit(1)
    )
    row = r.first()
    if row is None:
        return ZERO, ZERO
    return to_decimal(row.cash), to_decimal(row.card)


async def post(
    db: AsyncSession,
    category: str,
    amount,
    description: str,
    cash_delta=ZERO,
    card_delta=ZERO,
    date_executed: Optional[datetime] = None,
    executor_id: Optional[int] = None,
    executor_name: Optional[str] = None,
    repair_id: Optional[int] = None,
    payment_type: Optional[str] = None,
    related_transaction_id: Optional[int] = None,
) -> Transaction:
    """Добавить проводку: новые остатки = текущие + изменения."""
    cash, card = await get_balances(db)
    now = datetime.utcnow()
    txn = Transaction(
        date_created=now,
        date_executed=date_executed or now,
        category=category,
        amount=round_money(amount),
        cash=round_money(cash + to_decimal(cash_delta)),
        card=round_money(card + to_decimal(card_delta)),
        description=description,
        executor_id=executor_id,
        executor_name=executor_name,
        repair_id=repair_id,
        payment_type=payment_type,
        related_transaction_id=related_transaction_id,
    )
    db.add(txn)
    await db.flush()
    logger.info(
        "Проводка id=%s категория=%s сумма=%s остатки=%s/%s",
        txn.id, category, txn.amount, txn.cash, txn.card,
    )
    return txn


def _deltas(payment_type: str, amount: Decimal) -> tuple[Decimal, Decimal]:
    if payment_type == PaymentType.CARD.value:
        return ZERO, amount
    return amount, ZERO


async def _executor_id(db: AsyncSession, name: str) -> Optional[int]:
    r = await db.execute(select(Executor.id).where(Executor.name == name))
    return r.scalar_one_or_none()


async def record_repair_payment(
    db: AsyncSession,
    repair: Repair,
    suffix: str = "",
) -> Optional[Transaction]:
    """
    Проводка «Прибуток» по оплаченной квитанции. Картой — ещё и «Комісія банку»
    отдельной строкой. None, если касса не ведётся на дату оплаты или сумма нулевая.
    """
    register = await get_register_settings(db)
    when = repair.date_end or datetime.utcnow()
    total = round_money(repair.total_cost)
    if total <= 0 or not register.applies_to(when):
        return None
    payment_type = repair.payment_type or PaymentType.CASH.value
    executor = repair.executor or settings.default_executor
    executor_id = await _executor_id(db, executor)
    description = f"Оплата квитанції #{repair.receipt_id}. {payment_type}. {executor}{suffix}"
    commission = ZERO
    if payment_type == PaymentType.CARD.value:
        commission = percent_of(total, register.card_commission_percent)
        description += f" (Комісія: {commission:.2f} грн)"
    cash_delta, card_delta = _deltas(payment_type, total)
    income = await post(
        db,
        TransactionCategory.INCOME.value,
        total,
        description,
        cash_delta=cash_delta,
        card_delta=card_delta,
        date_executed=when,
        executor_id=executor_id,
        executor_name=executor,
        repair_id=repair.id,
        payment_type=payment_type,
    )
    if commission > 0:
        await post(
            db,
            TransactionCategory.BANK_COMMISSION.value,
            -commission,
            f"Комісія банку за оплату квитанції #{repair.receipt_id}",
            card_delta=-commission,
            date_executed=when,
            executor_id=executor_id,
            executor_name=executor,
            repair_id=repair.id,
            payment_type=PaymentType.CARD.value,
            related_transaction_id=income.id,
        )
    logger.info("Оплата квитанции #%s проведена: %s %s", repair.receipt_id, total, payment_type)
    return income


async def _last_income(db: AsyncSession, repair_id: int) -> Optional[Transaction]:
    r = await db.execute(
        select(Transaction)
        .where(
            Transaction.repair_id == repair_id,
            Transaction.category == TransactionCategory.INCOME.value,
        )
        .order_by(Transaction.id.desc())
        .limit(1)
    )
    return r.scalar_one_or_none()


async def _net_sum(db: AsyncSession, repair_id: int, categories) -> Decimal:
    r = await db.execute(
        select(func.coalesce(func.sum(Transaction.amount), 0)).where(
            Transaction.repair_id == repair_id,
            Transaction.category.in_(categories),
        )
    )
    return round_money(r.scalar_one())


async def cancel_repair_payment(db: AsyncSession, repair: Repair) -> Optional[Transaction]:
    """
    Снятие оплаты с квитанции: «Скасування» на ещё не возвращённую сумму
    и возврат банковской комиссии. None, если проводить нечего.
    """
    net_paid = await _net_sum(db, repair.id, _PAYMENT_CATEGORIES)
    if net_paid <= 0:
        return None
    income = await _last_income(db, repair.id)
    payment_type = (income.payment_type if income else None) or repair.payment_type or PaymentType.CASH.value
    cash_delta, card_delta = _deltas(payment_type, -net_paid)
    txn = await post(
        db,
        TransactionCategory.CANCELLATION.value,
        -net_paid,
        f"Скасування оплати квитанції #{repair.receipt_id}",
        cash_delta=cash_delta,
        card_delta=card_delta,
        executor_id=income.executor_id if income else None,
        executor_name=income.executor_name if income else repair.executor,
        repair_id=repair.id,
        payment_type=payment_type,
        related_transaction_id=income.id if income else None,
    )
    net_commission = await _net_sum(db, repair.id, (TransactionCategory.BANK_COMMISSION.value,))
    if net_commission < 0:
        await post(
            db,
            TransactionCategory.BANK_COMMISSION.value,
            -net_commission,
            f"Скасування комісії банку за квитанцію #{repair.receipt_id}",
            card_delta=-net_commission,
            repair_id=repair.id,
            payment_type=PaymentType.CARD.value,
            related_transaction_id=income.id if income else None,
        )
    logger.info("Оплата квитанции #%s отменена: %s", repair.receipt_id, net_paid)
    return txn


async def refund_repair(
    db: AsyncSession,
    repair: Repair,
    amount=None,
    refund_type: Optional[str] = None,
    note: str = "",
) -> Optional[Transaction]:
    """
    Возврат денег клиенту. Сумма по умолчанию — вся квитанция.
    Полный возврат карточной оплаты возвращает и комиссию.
    После возврата квитанция не оплачена и в статусе «Готовий».
    """
    if not repair.is_paid:
        raise LedgerError("Квитанція не оплачена")
    total = round_money(repair.total_cost)
    refund_amount = total if amount is None else round_money(amount)
    if refund_amount <= 0 or refund_amount > total:
        raise LedgerError("Некоректна сума повернення")
    income = await _last_income(db, repair.id)
    original_type = (income.payment_type if income else None) or repair.payment_type or PaymentType.CASH.value
    refund_type = refund_type or original_type
    if refund_type not in (PaymentType.CASH.value, PaymentType.CARD.value):
        raise LedgerError(f"Невідомий тип оплати: {refund_type}")
    is_full = refund_amount == total

    description = f"Повернення коштів за квитанцію #{repair.receipt_id}"
    if not is_full:
        description += f" (часткове: {refund_amount:.2f} з {total:.2f} ₴)"
    if note:
        description += f". {note}"
    if refund_type != original_type:
        description += f" [Оплата: {original_type}, Повернення: {refund_type}]"

    txn = None
    register = await get_register_settings(db)
    if register.enabled:
        cash_delta, card_delta = _deltas(refund_type, -refund_amount)
        txn = await post(
            db,
            TransactionCategory.REFUND.value,
            -refund_amount,
            description,
            cash_delta=cash_delta,
            card_delta=card_delta,
            executor_id=await _executor_id(db, repair.executor) or (income.executor_id if income else None),
            executor_name=repair.executor or (income.executor_name if income else None),
            repair_id=repair.id,
            payment_type=refund_type,
            related_transaction_id=income.id if income else None,
        )
        if is_full and original_type == PaymentType.CARD.value:
            net_commission = await _net_sum(db, repair.id, (TransactionCategory.BANK_COMMISSION.value,))
            if net_commission < 0:
                await post(
                    db,
                    TransactionCategory.BANK_COMMISSION.value,
                    -net_commission,
                    f"Повернення комісії банку за квитанцію #{repair.receipt_id}",
                    card_delta=-net_commission,
                    repair_id=repair.id,
                    payment_type=PaymentType.CARD.value,
                    related_transaction_id=txn.id,
                )

    repair.is_paid = False
    repair.status = RepairStatus.READY.value
    await db.flush()
    logger.info("Возврат по квитанции #%s: %s (%s)", repair.receipt_id, refund_amount, refund_type)
    return txn


async def reconcile(db: AsyncSession, actual_cash, actual_card, description: str = "") -> Transaction:
    """
    Сверка с пересчитанными деньгами: «Коригування» на разницу.
    Совпадающие суммы дают проводку с нулём и прежними остатками.
    """
    cash, card = await get_balances(db)
    actual_cash = round_money(actual_cash)
    actual_card = round_money(actual_card)
    diff_cash = actual_cash - cash
    diff_card = actual_card - card
    text = description.strip() if description else ""
    if not text:
        text = f"Звірка каси: готівка {diff_cash:+.2f}, картка {diff_card:+.2f}"
    if diff_cash and diff_card:
        payment_type = PaymentType.MIXED.value
    elif diff_card:
        payment_type = PaymentType.CARD.value
    else:
        payment_type = PaymentType.CASH.value
    txn = await post(
        db,
        TransactionCategory.ADJUSTMENT.value,
        diff_cash + diff_card,
        text,
        cash_delta=diff_cash,
        card_delta=diff_card,
        payment_type=payment_type,
    )
    logger.info("Сверка кассы: разница %s/%s", diff_cash, diff_card)
    return txn


async def activate(db: AsyncSession, initial_cash, initial_card) -> RegisterSettings:
    """Включение кассы с начальными остатками. Выключить обратно нельзя."""
    register = await get_register_settings(db)
    if register.enabled:
        raise LedgerError("Касу вже активовано")
    now = datetime.utcnow()
    await _set_setting(db, KEY_ENABLED, "1")
    await _set_setting(db, KEY_START_DATE, now.isoformat())
    await reconcile(db, initial_cash, initial_card, "Початковий баланс каси")
    logger.info("Касса активирована: %s/%s", initial_cash, initial_card)
    return await get_register_settings(db)


async def add_manual(
    db: AsyncSession,
    kind: str,
    category: str,
    amount,
    payment_type: str,
    description: str = "",
    date_executed: Optional[datetime] = None,
) -> Transaction:
    """Ручной приход или расход по пользовательской категории."""
    value = round_money(amount)
    if value <= 0:
        raise LedgerError("Сума має бути більшою за 0")
    if kind not in ("income", "expense"):
        raise LedgerError("Тип операції: income або expense")
    if payment_type not in (PaymentType.CASH.value, PaymentType.CARD.value):
        raise LedgerError(f"Невідомий тип оплати: {payment_type}")
    if not (category or "").strip():
        raise LedgerError("Вкажіть категорію")
    signed = value if kind == "income" else -value
    cash_delta, card_delta = _deltas(payment_type, signed)
    return await post(
        db,
        category.strip(),
        signed,
        description or category.strip(),
        cash_delta=cash_delta,
        card_delta=card_delta,
        date_executed=date_executed,
        payment_type=payment_type,
    )


async def delete_transaction(db: AsyncSession, txn: Transaction) -> None:
    """Удалить проводку и убрать её влияние из остатков всех последующих."""
    r = await db.execute(
        select(Transaction.cash, Transaction.card)
        .where(Transaction.id < txn.id)
        .order_by(Transaction.id.desc())
        .limit(1)
    )
    prev = r.first()
    prev_cash, prev_card = (to_decimal(prev.cash), to_decimal(prev.card)) if prev else (ZERO, ZERO)
    delta_cash = to_decimal(txn.cash) - prev_cash
    delta_card = to_decimal(txn.card) - prev_card
    later = await db.execute(select(Transaction).where(Transaction.id > txn.id))
    for row in later.scalars().all():
        row.cash = round_money(to_decimal(row.cash) - delta_cash)
        row.card = round_money(to_decimal(row.card) - delta_card)
        if row.related_transaction_id == txn.id:
            row.related_transaction_id = None
    await db.delete(txn)
    await db.flush()
    logger.info("Проводка id=%s удалена, остатки пересчитаны", txn.id)
