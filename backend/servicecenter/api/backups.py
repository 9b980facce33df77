"""Резервные копии: список, создание, восстановление, переименование, удаление."""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from servicecenter.core.database import get_db
from servicecenter.core.security import RequireApiToken
from servicecenter.services import backup_service
from servicecenter.services.backup_service import BackupError

router = APIRouter(prefix="/api/backups", tags=["backups"], dependencies=[RequireApiToken])


class CreateBackupBody(BaseModel):
    tag: str = ""
    encrypt: bool = False


class RenameBackupBody(BaseModel):
    newName: str


@router.get("")
async def list_backups():
    return backup_service.list_backups()


@router.post("", status_code=201)
async def create_backup(body: CreateBackupBody, db: AsyncSession = Depends(get_db)):
    try:
        return await backup_service.create_backup(db, "manual", tag=body.tag, encrypt=body.encrypt)
    except BackupError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/{file_name}/restore")
async def restore_backup(file_name: str, db: AsyncSession = Depends(get_db)):
    """Все текущие данные заменяются содержимым копии."""
    try:
        counts = await backup_service.restore_backup(db, file_name)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="Файл не знайдено")
    except BackupError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"ok": True, "tables": counts}


@router.put("/{file_name}")
async def rename_backup(file_name: str, body: RenameBackupBody):
    try:
        return backup_service.rename_backup(file_name, body.newName)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="Файл не знайдено")
    except BackupError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{file_name}")
async def delete_backup(file_name: str):
    try:
        backup_service.delete_backup(file_name)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="Файл не знайдено")
    except BackupError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"ok": True}
