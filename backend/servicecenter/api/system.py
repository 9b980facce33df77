"""Служебное: проверка живости, данные для подключения клиента, статус синхронизации."""
from fastapi import APIRouter

from servicecenter.config import APP_VERSION, settings
from servicecenter.core.security import RequireApiToken, get_api_token
from servicecenter.core.sync_status import local_addresses, status_to_response, sync_state

router = APIRouter(tags=["system"])
sync_router = APIRouter(prefix="/api/sync", tags=["sync"], dependencies=[RequireApiToken])


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/api/health")
def api_health():
    return {"status": "ok"}


@router.get("/api/server-info")
def server_info():
    """Публичный: клиент берёт отсюда токен для остальных запросов."""
    return {
        "name": settings.server_name,
        "version": APP_VERSION,
        "port": settings.server_port,
        "addresses": local_addresses(),
        "token": get_api_token(),
    }


@sync_router.get("/status")
def sync_status():
    return status_to_response()


@sync_router.post("/start")
def sync_start():
    sync_state.set_running(True)
    return status_to_response()


@sync_router.post("/stop")
def sync_stop():
    sync_state.set_running(False)
    return status_to_response()
