"""Статический bearer-токен для /api и зависимость, которая его проверяет."""
import secrets
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from servicecenter.config import settings
from servicecenter.core.logging_config import get_logger

logger = get_logger(__name__)
security = HTTPBearer(auto_error=False)

_generated_token: Optional[str] = None


def get_api_token() -> str:
    """Токен из настроек, иначе один случайный токен на процесс."""
    global _generated_token
    if settings.api_token:
        return settings.api_token
    if _generated_token is None:
        _generated_token = secrets.token_hex(32)
        logger.info("API-токен не задан в настройках, сгенерирован новый")
    return _generated_token


async def require_api_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> None:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Потрібна авторизація",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not secrets.compare_digest(credentials.credentials, get_api_token()):
        logger.warning("Неверный API-токен")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Невірний токен",
            headers={"WWW-Authenticate": "Bearer"},
        )


RequireApiToken = Depends(require_api_token)
