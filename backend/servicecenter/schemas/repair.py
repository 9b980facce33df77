from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from pydantic import Field, field_validator

from servicecenter.core.dates import naive_utc
from servicecenter.schemas.common import CamelModel


class RepairCreate(CamelModel):
    """Новая квитанция. Номер без явного значения — следующий свободный."""
    receipt_id: Optional[int] = Field(default=None, ge=1)
    device_name: str = ""
    fault_desc: str = ""
    work_done: str = ""
    cost_labor: Decimal = Field(default=Decimal("0"), ge=0)
    is_paid: bool = False
    # Число 1..7 или подпись статуса
    status: Union[int, str] = 1
    client_name: str = ""
    client_phone: str = ""
    date_start: Optional[datetime] = None
    date_end: Optional[datetime] = None
    note: str = ""
    should_call: bool = False
    executor: Optional[str] = None
    payment_type: Optional[str] = None

    @field_validator("date_start", "date_end")
    @classmethod
    def _naive(cls, v):
        return naive_utc(v)


class RepairUpdate(CamelModel):
    """Изменение квитанции: передаются только изменённые поля."""
    receipt_id: Optional[int] = Field(default=None, ge=1)
    device_name: Optional[str] = None
    fault_desc: Optional[str] = None
    work_done: Optional[str] = None
    cost_labor: Optional[Decimal] = Field(default=None, ge=0)
    is_paid: Optional[bool] = None
    status: Optional[Union[int, str]] = None
    client_name: Optional[str] = None
    client_phone: Optional[str] = None
    date_start: Optional[datetime] = None
    date_end: Optional[datetime] = None
    note: Optional[str] = None
    should_call: Optional[bool] = None
    executor: Optional[str] = None
    payment_type: Optional[str] = None

    @field_validator("date_start", "date_end")
    @classmethod
    def _naive(cls, v):
        return naive_utc(v)


class RefundRequest(CamelModel):
    refund_amount: Optional[Decimal] = Field(default=None, gt=0)
    refund_type: Optional[str] = None
    return_parts_to_warehouse: bool = False
    note: str = ""


class RepairPartAdd(CamelModel):
    """Запчасть в квитанцию: part_id — со склада, иначе ручная позиция."""
    part_id: Optional[int] = None
    price_uah: Decimal
    cost_uah: Optional[Decimal] = Field(default=None, ge=0)
    name: Optional[str] = None
    supplier: Optional[str] = None


class RepairPartUpdate(CamelModel):
    price_uah: Decimal


class PartsPaymentUpdate(CamelModel):
    is_paid: bool
    date_end: Optional[datetime] = None

    @field_validator("date_end")
    @classmethod
    def _naive(cls, v):
        return naive_utc(v)
