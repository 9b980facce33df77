"""Интеграции, которых нет в этой версии: ответ с success=false."""
from fastapi import APIRouter

from servicecenter.core.logging_config import get_logger
from servicecenter.core.security import RequireApiToken

router = APIRouter(prefix="/api/integrations", tags=["integrations"], dependencies=[RequireApiToken])
logger = get_logger(__name__)


@router.post("/google-drive/upload")
async def google_drive_upload():
    logger.info("Запрошена выгрузка в Google Drive: не поддерживается")
    return {"success": False, "message": "Інтеграція з Google Drive недоступна"}


@router.post("/legacy-import")
async def legacy_import():
    logger.info("Запрошен импорт из старой базы: не поддерживается")
    return {"success": False, "message": "Імпорт зі старої бази недоступний"}
