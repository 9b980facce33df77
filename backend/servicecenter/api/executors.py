"""Исполнители (мастера) и контрагенты (поставщики)."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from servicecenter.core.database import get_db
from servicecenter.core.logging_config import get_logger
from servicecenter.core.security import RequireApiToken
from servicecenter.models import Counterparty, Executor
from servicecenter.schemas.executor import CounterpartyCreate, CounterpartyUpdate, ExecutorCreate, ExecutorUpdate
from servicecenter.schemas.responses import counterparty_to_response, executor_to_response

router = APIRouter(prefix="/api/executors", tags=["executors"])
counterparties_router = APIRouter(prefix="/api/counterparties", tags=["counterparties"], dependencies=[RequireApiToken])
logger = get_logger(__name__)


async def _name_taken(db: AsyncSession, model, name: str, exclude_id=None) -> bool:
    q = select(model.id).where(model.name == name)
    if exclude_id is not None:
        q = q.where(model.id != exclude_id)
    r = await db.execute(q.limit(1))
    return r.scalar_one_or_none() is not None


@router.get("/list")
async def public_executor_list(db: AsyncSession = Depends(get_db)):
    """Имена для входа в кабинет. Без токена; администраторы (100/100) не показываются."""
    r = await db.execute(select(Executor).order_by(Executor.name))
    return [{"id": e.id, "name": e.name} for e in r.scalars().all() if not e.is_admin]


@router.get("", dependencies=[RequireApiToken])
async def list_executors(db: AsyncSession = Depends(get_db)):
    r = await db.execute(select(Executor).order_by(Executor.name))
    return [executor_to_response(e) for e in r.scalars().all()]


@router.post("", status_code=201, dependencies=[RequireApiToken])
async def create_executor(data: ExecutorCreate, db: AsyncSession = Depends(get_db)):
    name = data.name.strip()
    if await _name_taken(db, Executor, name):
        raise HTTPException(status_code=400, detail="Виконавець з таким ім'ям вже існує")
    e = Executor(
        name=name,
        salary_percent=data.salary_percent,
        products_percent=data.products_percent,
        color=data.color,
        icon=data.icon,
    )
    db.add(e)
    await db.flush()
    logger.info("Создан исполнитель id=%s name=%s", e.id, e.name)
    return executor_to_response(e)


@router.put("/{executor_id}", dependencies=[RequireApiToken])
async def update_executor(executor_id: int, data: ExecutorUpdate, db: AsyncSession = Depends(get_db)):
    e = await db.get(Executor, executor_id)
    if not e:
        raise HTTPException(status_code=404, detail="Виконавця не знайдено")
    if data.name is not None:
        name = data.name.strip()
        if await _name_taken(db, Executor, name, exclude_id=e.id):
            raise HTTPException(status_code=400, detail="Виконавець з таким ім'ям вже існує")
        e.name = name
    if data.salary_percent is not None:
        e.salary_percent = data.salary_percent
    if data.products_percent is not None:
        e.products_percent = data.products_percent
    if data.color is not None:
        e.color = data.color
    if data.icon is not None:
        e.icon = data.icon
    if data.reset_password:
        e.password_hash = None
    await db.flush()
    return executor_to_response(e)


@router.delete("/{executor_id}", dependencies=[RequireApiToken])
async def delete_executor(executor_id: int, db: AsyncSession = Depends(get_db)):
    e = await db.get(Executor, executor_id)
    if not e:
        raise HTTPException(status_code=404, detail="Виконавця не знайдено")
    await db.delete(e)
    await db.flush()
    logger.info("Удалён исполнитель id=%s", executor_id)
    return {"ok": True, "id": executor_id}


@counterparties_router.get("")
async def list_counterparties(db: AsyncSession = Depends(get_db)):
    r = await db.execute(select(Counterparty).order_by(Counterparty.name))
    return [counterparty_to_response(c) for c in r.scalars().all()]


@counterparties_router.post("", status_code=201)
async def create_counterparty(data: CounterpartyCreate, db: AsyncSession = Depends(get_db)):
    name = data.name.strip()
    if await _name_taken(db, Counterparty, name):
        raise HTTPException(status_code=400, detail="Контрагент з такою назвою вже існує")
    c = Counterparty(name=name, smart_import=data.smart_import)
    db.add(c)
    await db.flush()
    return counterparty_to_response(c)


@counterparties_router.put("/{counterparty_id}")
async def update_counterparty(counterparty_id: int, data: CounterpartyUpdate, db: AsyncSession = Depends(get_db)):
    c = await db.get(Counterparty, counterparty_id)
    if not c:
        raise HTTPException(status_code=404, detail="Контрагента не знайдено")
    if data.name is not None:
        name = data.name.strip()
        if await _name_taken(db, Counterparty, name, exclude_id=c.id):
            raise HTTPException(status_code=400, detail="Контрагент з такою назвою вже існує")
        c.name = name
    if data.smart_import is not None:
        c.smart_import = data.smart_import
    await db.flush()
    return counterparty_to_response(c)


@counterparties_router.delete("/{counterparty_id}")
async def delete_counterparty(counterparty_id: int, db: AsyncSession = Depends(get_db)):
    c = await db.get(Counterparty, counterparty_id)
    if not c:
        raise HTTPException(status_code=404, detail="Контрагента не знайдено")
    await db.delete(c)
    await db.flush()
    return {"ok": True, "id": counterparty_id}
