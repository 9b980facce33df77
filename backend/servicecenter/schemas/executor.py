from decimal import Decimal
from typing import Optional

from pydantic import Field

from servicecenter.schemas.common import CamelModel


class ExecutorCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    salary_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    products_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    color: Optional[str] = None
    icon: Optional[str] = None


class ExecutorUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    salary_percent: Optional[Decimal] = Field(default=None, ge=0, le=100)
    products_percent: Optional[Decimal] = Field(default=None, ge=0, le=100)
    color: Optional[str] = None
    icon: Optional[str] = None
    # Сброс пароля кабинета: следующий вход задаст новый
    reset_password: bool = False


class CounterpartyCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    smart_import: bool = False


class CounterpartyUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    smart_import: Optional[bool] = None


class LoginRequest(CamelModel):
    name: str
    password: str


class ChangePasswordRequest(CamelModel):
    old_password: str
    new_password: str


class MyRepairUpdate(CamelModel):
    """Изменение из кабинета: статус, выполненные работы, оплата (только полный доступ)."""
    status: Optional[int] = Field(default=None, ge=1, le=7)
    work_done: Optional[str] = None
    is_paid: Optional[bool] = None
