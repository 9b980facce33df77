"""
Статусы и оплата квитанции.

Функции работают с любым объектом, у которого есть status, is_paid, date_end,
payment_type и cost_labor: с ORM-моделью Repair на сервере и с RepairDraft
в клиенте. Правило: оплачено ⇒ «Видано».
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from servicecenter.models.repair import RepairStatus, status_from_label
from servicecenter.models.transaction import PaymentType
from servicecenter.services.money import round_money, to_decimal

PAYMENT_TYPES = (PaymentType.CASH.value, PaymentType.CARD.value)


@dataclass
class StatusChange:
    """Результат смены статуса: что ещё должен сделать вызывающий код."""
    status: RepairStatus
    requires_payment: bool = False
    date_end_stamped: bool = False
    payment_cleared: bool = False


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.utcnow()


def apply_status_change(repair, new_status, now: Optional[datetime] = None) -> StatusChange:
    """
    Сменить статус квитанции.
    «Готовий» ставит дату окончания. «Видано» без оплаты не применяется сразу:
    requires_payment=True, дальше confirm_payment с выбранным типом оплаты.
    Уход с «Видано» снимает оплату.
    """
    target = status_from_label(new_status)
    if target == RepairStatus.ISSUED and not repair.is_paid:
        return StatusChange(status=RepairStatus(repair.status), requires_payment=True)
    change = StatusChange(status=target)
    if target != RepairStatus.ISSUED and repair.is_paid:
        repair.is_paid = False
        change.payment_cleared = True
    if target == RepairStatus.READY:
        repair.date_end = _now(now)
        change.date_end_stamped = True
    repair.status = target.value
    return change


def confirm_payment(repair, payment_type: str, now: Optional[datetime] = None) -> None:
    """Подтверждение оплаты: «Видано», оплачено, дата окончания — сейчас."""
    if payment_type not in PAYMENT_TYPES:
        raise ValueError(f"Невідомий тип оплати: {payment_type}")
    repair.status = RepairStatus.ISSUED.value
    repair.is_paid = True
    repair.date_end = _now(now)
    repair.payment_type = payment_type


def set_paid(
    repair,
    paid: bool,
    now: Optional[datetime] = None,
    use_today: bool = True,
    payment_type: Optional[str] = None,
) -> None:
    """
    Галочка «Оплачено». Включение ведёт через тот же путь, что и «Видано»;
    use_today=False оставляет уже стоящую дату окончания.
    Снятие галочки возвращает квитанцию в «Готовий», остальные поля не трогаются.
    """
    if paid:
        kept_date = repair.date_end
        confirm_payment(repair, payment_type or repair.payment_type or PaymentType.CASH.value, now)
        if not use_today and kept_date is not None:
            repair.date_end = kept_date
        return
    repair.is_paid = False
    if repair.status == RepairStatus.ISSUED.value:
        repair.status = RepairStatus.READY.value


def normalize_for_save(repair, now: Optional[datetime] = None) -> None:
    """Привести квитанцию к согласованному виду перед записью."""
    status = status_from_label(repair.status)
    repair.status = status.value
    if repair.is_paid or status == RepairStatus.ISSUED:
        payment_type = repair.payment_type if repair.payment_type in PAYMENT_TYPES else PaymentType.CASH.value
        repair.status = RepairStatus.ISSUED.value
        repair.is_paid = True
        repair.payment_type = payment_type
        if repair.date_end is None:
            repair.date_end = _now(now)


def compute_totals(cost_labor, prices: Iterable, profits: Iterable) -> tuple[Decimal, Decimal]:
    """Сумма = работа + цены запчастей; доход = сумма доходов запчастей."""
    total = to_decimal(cost_labor) + sum((to_decimal(p) for p in prices), Decimal("0"))
    profit = sum((to_decimal(p) for p in profits), Decimal("0"))
    return round_money(total), round_money(profit)


@dataclass
class RepairDraft:
    """Редактируемая копия квитанции на стороне клиента."""
    id: Optional[int] = None
    receipt_id: Optional[int] = None
    device_name: str = ""
    fault_desc: str = ""
    work_done: str = ""
    cost_labor: Decimal = Decimal("0")
    total_cost: Decimal = Decimal("0")
    is_paid: bool = False
    status: int = RepairStatus.QUEUE.value
    client_name: str = ""
    client_phone: str = ""
    profit: Decimal = Decimal("0")
    date_start: Optional[datetime] = None
    date_end: Optional[datetime] = None
    note: str = ""
    should_call: bool = False
    executor: str = ""
    payment_type: str = PaymentType.CASH.value
    parts: list = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict) -> "RepairDraft":
        return cls(
            id=data.get("id"),
            receipt_id=data.get("receiptId"),
            device_name=data.get("deviceName") or "",
            fault_desc=data.get("faultDesc") or "",
            work_done=data.get("workDone") or "",
            cost_labor=to_decimal(data.get("costLabor")),
            total_cost=to_decimal(data.get("totalCost")),
            is_paid=bool(data.get("isPaid")),
            status=status_from_label(data.get("status")).value,
            client_name=data.get("clientName") or "",
            client_phone=data.get("clientPhone") or "",
            profit=to_decimal(data.get("profit")),
            date_start=_parse_dt(data.get("dateStart")),
            date_end=_parse_dt(data.get("dateEnd")),
            note=data.get("note") or "",
            should_call=bool(data.get("shouldCall")),
            executor=data.get("executor") or "",
            payment_type=data.get("paymentType") or PaymentType.CASH.value,
            parts=list(data.get("parts") or []),
        )

    def recalculate(self) -> None:
        self.total_cost, self.profit = compute_totals(
            self.cost_labor,
            (p.get("priceUah") for p in self.parts),
            (p.get("profit") for p in self.parts),
        )

    def to_api(self) -> dict:
        return {
            "receiptId": self.receipt_id,
            "deviceName": self.device_name,
            "faultDesc": self.fault_desc,
            "workDone": self.work_done,
            "costLabor": float(self.cost_labor),
            "totalCost": float(self.total_cost),
            "isPaid": self.is_paid,
            "status": self.status,
            "clientName": self.client_name,
            "clientPhone": self.client_phone,
            "profit": float(self.profit),
            "dateStart": self.date_start.isoformat() if self.date_start else None,
            "dateEnd": self.date_end.isoformat() if self.date_end else None,
            "note": self.note,
            "shouldCall": self.should_call,
            "executor": self.executor,
            "paymentType": self.payment_type,
        }


def _parse_dt(value) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00")).replace(tzinfo=None)
