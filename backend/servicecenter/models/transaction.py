import enum
from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import String, Integer, Numeric, DateTime, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column

from servicecenter.core.database import Base


class TransactionCategory(str, enum.Enum):
    """Системные категории. Пользовательские хранятся в expense/income_categories."""
    INCOME = "Прибуток"
    PURCHASE = "Покупка"
    CANCELLATION = "Скасування"
    WRITE_OFF = "Списання"
    ADJUSTMENT = "Коригування"
    REFUND = "Повернення"
    BANK_COMMISSION = "Комісія банку"


class PaymentType(str, enum.Enum):
    CASH = "Готівка"
    CARD = "Картка"
    MIXED = "Змішано"


class Transaction(Base):
    """Операция кассы. cash/card — остатки после операции."""

    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    date_created: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    date_executed: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    cash: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    card: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    executor_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    executor_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    # id ремонта (в API: receiptId)
    repair_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    payment_type: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    related_transaction_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("transactions.id", ondelete="SET NULL"), nullable=True
    )
