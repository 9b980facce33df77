"""Состояние сервера синхронизации: активные клиенты локальной сети и пауза приёма запросов."""
import socket
import time
from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from servicecenter.config import settings
from servicecenter.core.logging_config import get_logger

logger = get_logger(__name__)

LOCAL_HOSTS = frozenset(("127.0.0.1", "::1", "localhost"))
# Пути, которые перестают обслуживать удалённых клиентов при остановке
GATED_PREFIXES = ("/api/repairs", "/api/products", "/api/locks")


@dataclass
class ClientInfo:
    ip: str
    user_agent: str
    last_seen: float

    def to_dict(self) -> dict:
        return {
            "ip": self.ip,
            "userAgent": self.user_agent,
            "lastSeen": time.strftime("%Y-%m-%dT%H:%M:%S", time.localtime(self.last_seen)),
        }


class SyncState:
    def __init__(self, timeout_seconds: int):
        self.timeout_seconds = timeout_seconds
        self.running = True
        self._clients: dict[str, ClientInfo] = {}

    def touch(self, ip: str, user_agent: str, now: Optional[float] = None) -> None:
        self._clients[ip] = ClientInfo(ip=ip, user_agent=user_agent, last_seen=now or time.time())

    def active_clients(self, now: Optional[float] = None) -> list[ClientInfo]:
        now = now or time.time()
        for ip in [ip for ip, c in self._clients.items() if now - c.last_seen > self.timeout_seconds]:
            del self._clients[ip]
        return sorted(self._clients.values(), key=lambda c: c.last_seen, reverse=True)

    def set_running(self, running: bool) -> None:
        self.running = running
        if not running:
            self._clients.clear()
        logger.info("Сервер синхронизации %s", "запущен" if running else "остановлен")


sync_state = SyncState(settings.active_client_timeout_seconds)


def local_addresses() -> list[str]:
    """IPv4-адреса машины для подключения телефонов из локальной сети."""
    try:
        _, _, addresses = socket.gethostbyname_ex(socket.gethostname())
    except OSError:
        return []
    return sorted(a for a in set(addresses) if not a.startswith("127."))


def status_to_response() -> dict:
    clients = sync_state.active_clients()
    return {
        "running": sync_state.running,
        "port": settings.server_port,
        "addresses": local_addresses(),
        "activeConnections": len(clients),
        "clients": [c.to_dict() for c in clients],
    }


class SyncStatusMiddleware(BaseHTTPMiddleware):
    """Учёт активных клиентов; при остановке удалённым клиентам — 503."""

    async def dispatch(self, request: Request, call_next):
        host = request.client.host if request.client else ""
        is_local = host in LOCAL_HOSTS
        if request.url.path.startswith("/api/") and not is_local:
            if not sync_state.running and request.url.path.startswith(GATED_PREFIXES):
                return JSONResponse(status_code=503, content={"detail": "Сервер синхронізації зупинено"})
            sync_state.touch(host, request.headers.get("user-agent", ""))
        return await call_next(request)
