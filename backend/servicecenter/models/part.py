from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import String, Boolean, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from servicecenter.core.database import Base

# Поставщики, которые означают «не складская позиция»: при снятии с ремонта удаляются
MANUAL_SUPPLIERS = frozenset(("ЧипЗона", "Послуга"))


class Part(Base):
    """Позиция склада. Привязанная к ремонту — запчасть в квитанции."""

    __tablename__ = "parts"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    supplier: Mapped[str] = mapped_column(String(255), default="", nullable=False, index=True)
    price_usd: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    exchange_rate: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    cost_uah: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    price_uah: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    profit: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    in_stock: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    repair_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("repairs.id", ondelete="SET NULL"), nullable=True, index=True
    )
    date_arrival: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    date_sold: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    invoice: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    product_code: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    barcode: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, index=True)

    @property
    def is_manual(self) -> bool:
        return self.supplier in MANUAL_SUPPLIERS
