import enum
from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import String, Integer, Boolean, Numeric, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from servicecenter.core.database import Base


class RepairStatus(int, enum.Enum):
    QUEUE = 1
    IN_PROGRESS = 2
    WAITING = 3
    READY = 4
    NO_ANSWER = 5
    ISSUED = 6
    ODESSA = 7


STATUS_LABELS: dict[RepairStatus, str] = {
    RepairStatus.QUEUE: "У черзі",
    RepairStatus.IN_PROGRESS: "У роботі",
    RepairStatus.WAITING: "Очікув. відпов./деталі",
    RepairStatus.READY: "Готовий до видачі",
    RepairStatus.NO_ANSWER: "Не додзвонилися",
    RepairStatus.ISSUED: "Видано",
    RepairStatus.ODESSA: "Одеса",
}

# Старые подписи из ранних версий базы
_LABEL_ALIASES = {
    "Очікування": RepairStatus.WAITING,
    "Готовий": RepairStatus.READY,
    "Не додзвонились": RepairStatus.NO_ANSWER,
}


def status_from_label(value) -> RepairStatus:
    """Статус по числу или подписи. Неизвестное значение — «У черзі»."""
    if isinstance(value, RepairStatus):
        return value
    if isinstance(value, int) or (isinstance(value, str) and value.strip().isdigit()):
        try:
            return RepairStatus(int(value))
        except ValueError:
            return RepairStatus.QUEUE
    text = (value or "").strip()
    for status, label in STATUS_LABELS.items():
        if label == text:
            return status
    return _LABEL_ALIASES.get(text, RepairStatus.QUEUE)


class Repair(Base):
    __tablename__ = "repairs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    receipt_id: Mapped[int] = mapped_column(Integer, unique=True, nullable=False, index=True)
    device_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    fault_desc: Mapped[str] = mapped_column(Text, default="", nullable=False)
    work_done: Mapped[str] = mapped_column(Text, default="", nullable=False)
    cost_labor: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    total_cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    is_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[int] = mapped_column(Integer, default=RepairStatus.QUEUE.value, nullable=False, index=True)
    client_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    client_phone: Mapped[str] = mapped_column(String(64), default="", nullable=False)
    profit: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    date_start: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    date_end: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    note: Mapped[str] = mapped_column(Text, default="", nullable=False)
    should_call: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    executor: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    payment_type: Mapped[str] = mapped_column(String(32), default="Готівка", nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )
