from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import select

from servicecenter.config import APP_VERSION, settings
from servicecenter.core.database import engine, Base, async_session_maker
from servicecenter.core.logging_config import setup_logging, get_logger
from servicecenter.core.sync_status import SyncStatusMiddleware
from servicecenter.models import AppSetting, Executor, ExpenseCategory, IncomeCategory
from servicecenter.api.system import router as system_router, sync_router
from servicecenter.api.repairs import router as repairs_router
from servicecenter.api.products import router as products_router
from servicecenter.api.executors import router as executors_router, counterparties_router
from servicecenter.api.cash_register import (
    router as cash_register_router,
    transactions_router,
    expense_categories_router,
    income_categories_router,
)
from servicecenter.api.profits import router as profits_router
from servicecenter.api.locks import router as locks_router
from servicecenter.api.backups import router as backups_router
from servicecenter.api.cabinet import router as auth_router, my_router
from servicecenter.api.integrations import router as integrations_router
from servicecenter.services import backup_service, ledger

setup_logging()
logger = get_logger(__name__)

DEFAULT_EXPENSE_CATEGORIES = ("Оренда", "Комунальні послуги", "Зарплата", "Інструменти", "Інше")
DEFAULT_INCOME_CATEGORIES = ("Продаж аксесуарів", "Інше")


async def ensure_default_executor():
    """Исполнитель по умолчанию, если список пуст."""
    async with async_session_maker() as session:
        r = await session.execute(select(Executor).limit(1))
        if r.scalar_one_or_none() is not None:
            return
        session.add(Executor(name=settings.default_executor, salary_percent=0, products_percent=0))
        await session.commit()
        logger.info("Создан исполнитель по умолчанию: %s", settings.default_executor)


async def seed_categories():
    """Категории приходов и расходов из дефолтного списка, если таблицы пусты."""
    async with async_session_maker() as session:
        for model, names in (
            (ExpenseCategory, DEFAULT_EXPENSE_CATEGORIES),
            (IncomeCategory, DEFAULT_INCOME_CATEGORIES),
        ):
            r = await session.execute(select(model).limit(1))
            if r.scalar_one_or_none() is not None:
                continue
            for name in names:
                session.add(model(name=name, active=True))
            logger.info("Категории %s заполнены (%s шт.)", model.__tablename__, len(names))
        await session.commit()


async def ensure_register_settings():
    async with async_session_maker() as session:
        if await session.get(AppSetting, ledger.KEY_COMMISSION) is None:
            session.add(AppSetting(key=ledger.KEY_COMMISSION, value=str(settings.default_card_commission_percent)))
            await session.commit()


async def auto_backup():
    async with async_session_maker() as session:
        info = await backup_service.create_backup(session, "auto")
    logger.info("Автоматическая копия при старте: %s", info["fileName"])


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Таблицы БД проверены/созданы")
    try:
        await ensure_default_executor()
    except Exception as e:
        logger.warning("Исполнитель по умолчанию: %s", e)
    try:
        await seed_categories()
    except Exception as e:
        logger.warning("Категории: %s", e)
    try:
        await ensure_register_settings()
    except Exception as e:
        logger.warning("Настройки кассы: %s", e)
    if settings.auto_backup_on_start:
        try:
            await auto_backup()
        except Exception as e:
            logger.warning("Автоматическая копия: %s", e)
    yield
    await engine.dispose()


app = FastAPI(title=settings.server_name, version=APP_VERSION, lifespan=lifespan)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Необработанная ошибка: %s", exc)
    detail = "Внутрішня помилка сервера"
    err_str = str(exc).lower()
    if "duplicate key" in err_str or "unique constraint" in err_str:
        detail = "Конфлікт даних (дублікат). Оновіть дані та повторіть."
    elif "foreign key" in err_str:
        detail = "Помилка зв'язку з даними. Оновіть дані та повторіть."
    return JSONResponse(
        status_code=500,
        content={"detail": detail},
    )

app.add_middleware(SyncStatusMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()] or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(system_router)
app.include_router(sync_router)
app.include_router(repairs_router)
app.include_router(products_router)
app.include_router(executors_router)
app.include_router(counterparties_router)
app.include_router(transactions_router)
app.include_router(cash_register_router)
app.include_router(expense_categories_router)
app.include_router(income_categories_router)
app.include_router(profits_router)
app.include_router(locks_router)
app.include_router(backups_router)
app.include_router(auth_router)
app.include_router(my_router)
app.include_router(integrations_router)
