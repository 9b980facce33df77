from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import String, Boolean, Numeric, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from servicecenter.core.database import Base


class Executor(Base):
    __tablename__ = "executors"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    salary_percent: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=0, nullable=False)
    products_percent: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=0, nullable=False)
    color: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    icon: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    @property
    def is_admin(self) -> bool:
        """Ставки 100/100 — администратор кабинета."""
        return self.salary_percent == 100 and self.products_percent == 100

    @property
    def is_full_access(self) -> bool:
        """Ставки 0/0 — видит все ремонты как в основной программе."""
        return self.salary_percent == 0 and self.products_percent == 0


class Counterparty(Base):
    __tablename__ = "counterparties"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    smart_import: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
