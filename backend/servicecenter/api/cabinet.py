"""
Кабинет исполнителя: вход по имени и паролю, свои ремонты, зарплата.

Ставки 0/0 — полный доступ: все ремонты и отметка оплаты. Исполнитель со ставкой
за работу видит только свои неоплаченные ремонты в статусах 1–3; администратор (100/100)
видит так же, но может менять статус и чужих ремонтов.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from servicecenter.core.database import get_db
from servicecenter.core.dates import day_end, day_start, parse_date_param
from servicecenter.core.logging_config import get_logger
from servicecenter.models import Executor, Repair, RepairStatus
from servicecenter.schemas.executor import ChangePasswordRequest, LoginRequest, MyRepairUpdate
from servicecenter.schemas.repair import RepairUpdate
from servicecenter.schemas.responses import executor_to_response, repair_to_response
from servicecenter.services import repair_service
from servicecenter.services.auth_service import (
    PasswordError,
    change_password as change_executor_password,
    check_login,
    create_access_token,
    executor_id_from_token,
    executor_role,
)
from servicecenter.services.money import ZERO, round_money, to_decimal

router = APIRouter(prefix="/api/auth", tags=["cabinet"])
my_router = APIRouter(prefix="/api/my", tags=["cabinet"])
security = HTTPBearer(auto_error=False)
logger = get_logger(__name__)

_LIMITED_STATUSES = (RepairStatus.QUEUE.value, RepairStatus.IN_PROGRESS.value, RepairStatus.WAITING.value)


async def get_current_executor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Executor:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Потрібна авторизація",
            headers={"WWW-Authenticate": "Bearer"},
        )
    executor_id = executor_id_from_token(credentials.credentials)
    if executor_id is None:
        logger.warning("Кабинет: токен не прошёл проверку (неверный или истёк)")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Невірний або прострочений токен")
    executor = await db.get(Executor, executor_id)
    if executor is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Виконавця не знайдено")
    return executor


def _me_response(executor: Executor) -> dict:
    return {**executor_to_response(executor), "role": executor_role(executor), "fullAccess": executor.is_full_access}


@router.post("/login")
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Первый вход задаёт пароль, дальше он проверяется."""
    name = body.name.strip()
    r = await db.execute(select(Executor).where(Executor.name == name))
    executor = r.scalar_one_or_none()
    if executor is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Невірне ім'я або пароль")
    try:
        ok = check_login(executor, body.password)
    except PasswordError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not ok:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Невірне ім'я або пароль")
    return {
        "accessToken": create_access_token(executor),
        "tokenType": "bearer",
        "user": _me_response(executor),
    }


@router.get("/me")
async def me(executor: Executor = Depends(get_current_executor)):
    return _me_response(executor)


@router.post("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    executor: Executor = Depends(get_current_executor),
    db: AsyncSession = Depends(get_db),
):
    try:
        change_executor_password(executor, body.old_password, body.new_password)
    except PasswordError as e:
        raise HTTPException(status_code=400, detail=str(e))
    await db.flush()
    return {"ok": True}


@my_router.get("/repairs")
async def my_repairs(
    limit: int = Query(200, ge=1, le=1000),
    executor: Executor = Depends(get_current_executor),
    db: AsyncSession = Depends(get_db),
):
    q = select(Repair)
    if not executor.is_full_access:
        q = q.where(Repair.executor == executor.name)
        if executor.salary_percent > 0:
            q = q.where(Repair.is_paid == False, Repair.status.in_(_LIMITED_STATUSES))
    r = await db.execute(q.order_by(Repair.receipt_id.desc()).limit(limit))
    return [repair_to_response(x) for x in r.scalars().all()]


@my_router.put("/repairs/{repair_id}/status")
async def update_my_repair(
    repair_id: int,
    body: MyRepairUpdate,
    executor: Executor = Depends(get_current_executor),
    db: AsyncSession = Depends(get_db),
):
    """
    Статус и выполненные работы. Чужие ремонты меняют полный доступ (0/0) и администратор (100/100),
    оплату отмечает только полный доступ: наличными, снятие оплаты возвращает «У роботі».
    """
    repair = await repair_service.get_repair(db, repair_id)
    if not repair:
        raise HTTPException(status_code=404, detail="Ремонт не знайдено")
    full = executor.is_full_access
    if repair.executor != executor.name and not (full or executor.is_admin):
        raise HTTPException(status_code=403, detail="Це не ваш ремонт")
    if not full and (body.is_paid is not None or body.status == RepairStatus.ISSUED.value):
        raise HTTPException(status_code=403, detail="Оплату відмічає виконавець з повним доступом")
    update = body.model_dump(exclude_none=True)
    if not update:
        raise HTTPException(status_code=400, detail="Немає змін")
    if update.get("is_paid") == repair.is_paid:
        del update["is_paid"]
    elif update.get("is_paid"):
        update["payment_type"] = "Готівка"
    elif "is_paid" in update:
        update["status"] = RepairStatus.IN_PROGRESS.value
    repair = await repair_service.update_repair(
        db, repair, RepairUpdate(**update), payment_suffix=" (через Web)"
    )
    logger.info("Кабинет: исполнитель %s изменил ремонт id=%s", executor.name, repair.id)
    return repair_to_response(repair)


@my_router.get("/salary")
async def my_salary(
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    executor: Executor = Depends(get_current_executor),
    db: AsyncSession = Depends(get_db),
):
    """Зарплата за оплаченные ремонты: работа × ставка + запчасти (сумма − работа) × ставка за товары."""
    q = select(Repair).where(
        Repair.executor == executor.name,
        Repair.is_paid == True,
        Repair.date_end.is_not(None),
    )
    start = parse_date_param(startDate)
    end = parse_date_param(endDate)
    if start:
        q = q.where(Repair.date_end >= day_start(start))
    if end:
        q = q.where(Repair.date_end <= day_end(end))
    repairs = list((await db.execute(q)).scalars().all())
    labor = sum((to_decimal(x.cost_labor) for x in repairs), ZERO)
    parts = sum((to_decimal(x.total_cost) - to_decimal(x.cost_labor) for x in repairs), ZERO)
    salary_percent = to_decimal(executor.salary_percent)
    products_percent = to_decimal(executor.products_percent)
    labor_salary = round_money(labor * salary_percent / Decimal(100))
    parts_salary = round_money(parts * products_percent / Decimal(100))
    return {
        "repairCount": len(repairs),
        "totalLabor": float(round_money(labor)),
        "totalParts": float(round_money(parts)),
        "salaryPercent": float(salary_percent),
        "productsPercent": float(products_percent),
        "laborSalary": float(labor_salary),
        "partsSalary": float(parts_salary),
        "totalSalary": float(labor_salary + parts_salary),
        "generatedAt": datetime.utcnow().isoformat(),
    }
