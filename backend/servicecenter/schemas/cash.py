from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator

from servicecenter.core.dates import naive_utc
from servicecenter.schemas.common import CamelModel


class ReconcileRequest(CamelModel):
    """Пересчитанные деньги: наличные и карта."""
    actual_cash: Decimal
    actual_card: Decimal
    description: str = ""


class ActivateRequest(CamelModel):
    initial_cash: Decimal = Decimal("0")
    initial_card: Decimal = Decimal("0")


class RegisterSettingsUpdate(CamelModel):
    card_commission_percent: Decimal = Field(ge=0, le=100)


class ManualTransactionCreate(CamelModel):
    # income или expense
    type: str
    category: str
    amount: Decimal
    payment_type: str
    description: str = ""
    date_executed: Optional[datetime] = None

    @field_validator("date_executed")
    @classmethod
    def _naive(cls, v):
        return naive_utc(v)


class CategoryCreate(CamelModel):
    name: str = Field(min_length=1, max_length=128)


class CategoryUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    active: Optional[bool] = None
