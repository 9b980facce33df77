"""Рекомендательные блокировки квитанций: кто сейчас редактирует."""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from servicecenter.core.database import get_db
from servicecenter.core.logging_config import get_logger
from servicecenter.core.security import RequireApiToken
from servicecenter.models import RepairLock

router = APIRouter(prefix="/api/locks", tags=["locks"], dependencies=[RequireApiToken])
logger = get_logger(__name__)


class LockBody(BaseModel):
    device: str = "Android"


def _lock_to_response(lock) -> dict:
    if lock is None:
        return {"locked": False, "device": None, "time": None}
    return {"locked": True, "device": lock.device, "time": lock.locked_at.isoformat()}


@router.get("/{repair_id}")
async def get_lock(repair_id: int, db: AsyncSession = Depends(get_db)):
    return _lock_to_response(await db.get(RepairLock, repair_id))


@router.post("/{repair_id}")
async def take_lock(repair_id: int, body: Optional[LockBody] = None, db: AsyncSession = Depends(get_db)):
    """Занять или продлить блокировку. Занята другим устройством — 409."""
    device = (body.device.strip() if body else "") or "Android"
    lock = await db.get(RepairLock, repair_id)
    if lock is not None and lock.device != device:
        raise HTTPException(status_code=409, detail=f"Квитанцію редагує {lock.device}")
    if lock is None:
        lock = RepairLock(repair_id=repair_id, device=device, locked_at=datetime.utcnow())
        db.add(lock)
    else:
        lock.locked_at = datetime.utcnow()
    await db.flush()
    logger.info("Блокировка квитанции id=%s устройством %s", repair_id, device)
    return _lock_to_response(lock)


@router.delete("/{repair_id}")
async def release_lock(repair_id: int, db: AsyncSession = Depends(get_db)):
    lock = await db.get(RepairLock, repair_id)
    if lock is not None:
        await db.delete(lock)
        await db.flush()
    return {"ok": True}
