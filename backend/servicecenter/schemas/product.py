from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator

from servicecenter.core.dates import naive_utc
from servicecenter.schemas.common import CamelModel


class ProductCreate(CamelModel):
    """Приход: quantity одинаковых позиций. Без costUah себестоимость = priceUsd × exchangeRate."""
    name: str
    supplier: str = ""
    quantity: int = Field(default=1, ge=1)
    price_usd: Decimal = Field(default=Decimal("0"), ge=0)
    exchange_rate: Decimal = Field(default=Decimal("0"), ge=0)
    cost_uah: Optional[Decimal] = Field(default=None, ge=0)
    invoice: Optional[str] = None
    product_code: Optional[str] = None
    barcode: Optional[str] = None
    date_arrival: Optional[datetime] = None
    payment_type: Optional[str] = None

    @field_validator("date_arrival")
    @classmethod
    def _naive(cls, v):
        return naive_utc(v)


class ProductUpdate(CamelModel):
    name: Optional[str] = None
    supplier: Optional[str] = None
    price_usd: Optional[Decimal] = Field(default=None, ge=0)
    exchange_rate: Optional[Decimal] = Field(default=None, ge=0)
    cost_uah: Optional[Decimal] = Field(default=None, ge=0)
    invoice: Optional[str] = None
    product_code: Optional[str] = None
    date_arrival: Optional[datetime] = None

    @field_validator("date_arrival")
    @classmethod
    def _naive(cls, v):
        return naive_utc(v)


class BarcodeUpdate(CamelModel):
    barcode: str


class ParseRequest(CamelModel):
    text: str


class ImportItem(CamelModel):
    product_code: str = ""
    name: str
    quantity: int = Field(default=1, ge=1)
    price_usd: Decimal = Field(ge=0)


class ImportRequest(CamelModel):
    """Массовый приход разобранной накладной от контрагента."""
    supplier: str
    exchange_rate: Decimal = Field(gt=0)
    items: list[ImportItem]
    invoice: Optional[str] = None
    payment_type: Optional[str] = None
