"""
HTTP-клиент сервера сервисного центра.

Токен берётся один раз из /api/server-info и отправляется в каждом запросе.
Любой ответ не 2xx — ApiError. Повторов нет.
"""
from typing import Any, Optional

import httpx

from servicecenter.core.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 10.0


class ApiError(Exception):
    def __init__(self, status_code: int, detail: str):
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


def _detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(data, dict) and "detail" in data:
        detail = data["detail"]
        return detail if isinstance(detail, str) else str(detail)
    return str(data)


class ApiClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._http = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)
        self.token: Optional[str] = None
        self.server_info: dict = {}

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def init(self) -> dict:
        """Данные сервера и токен. Повторный вызов перечитывает их."""
        r = await self._http.get("/api/server-info")
        if not r.is_success:
            raise ApiError(r.status_code, _detail(r))
        self.server_info = r.json()
        self.token = self.server_info.get("token")
        logger.info("Подключено к серверу %s (%s)", self.server_info.get("name"), self._http.base_url)
        return self.server_info

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[dict] = None,
        json: Any = None,
    ) -> Any:
        if self.token is None:
            await self.init()
        clean_params = {k: v for k, v in (params or {}).items() if v is not None and v != ""}
        r = await self._http.request(
            method,
            path,
            params=clean_params,
            json=json,
            headers={"Authorization": f"Bearer {self.token}"},
        )
        if not r.is_success:
            detail = _detail(r)
            logger.warning("%s %s: %s %s", method, path, r.status_code, detail)
            raise ApiError(r.status_code, detail)
        if not r.content:
            return None
        return r.json()

    async def get(self, path: str, params: Optional[dict] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: Any = None, params: Optional[dict] = None) -> Any:
        return await self.request("POST", path, params=params, json=json)

    async def put(self, path: str, json: Any = None) -> Any:
        return await self.request("PUT", path, json=json)

    async def delete(self, path: str, params: Optional[dict] = None) -> Any:
        return await self.request("DELETE", path, params=params)
