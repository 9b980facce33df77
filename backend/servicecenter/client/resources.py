"""Обёртки над разделами API. Тела запросов и ответы — dict с ключами camelCase."""
from typing import Any, List, Optional

from servicecenter.client.api import ApiClient
from servicecenter.config import settings
from servicecenter.core.logging_config import get_logger
from servicecenter.services.fuzzy_search import fuzzy_search

logger = get_logger(__name__)

FUZZY_KEYS = ("clientName", "clientPhone", "deviceName", "receiptId", "note")


class RepairsApi:
    def __init__(self, api: ApiClient):
        self.api = api

    async def list(self, page: int = 1, limit: int = 50, **filters) -> dict:
        """filters — параметры запроса как есть: search, status, shouldCall, executor, dateStart…"""
        status = filters.get("status")
        if isinstance(status, (list, tuple)):
            filters["status"] = ",".join(str(s) for s in status)
        return await self.api.get("/api/repairs", params={"page": page, "limit": limit, **filters})

    async def search(self, query: str, **filters) -> List[dict]:
        """
        Поиск на сервере; пустой результат по непустому запросу — нечёткий поиск
        по последним квитанциям на клиенте.
        """
        result = await self.list(search=query, **filters)
        rows = result["data"]
        if rows or not (query or "").strip():
            return rows
        recent = await self.list(page=1, limit=settings.fuzzy_fallback_limit)
        found = fuzzy_search(recent["data"], query, FUZZY_KEYS)
        logger.info("Нечёткий поиск %r: %s из %s", query, len(found), len(recent["data"]))
        return found

    async def get(self, repair_id: int) -> dict:
        return await self.api.get(f"/api/repairs/{repair_id}")

    async def create(self, data: dict) -> dict:
        return await self.api.post("/api/repairs", json=data)

    async def update(self, repair_id: int, data: dict) -> dict:
        return await self.api.put(f"/api/repairs/{repair_id}", json=data)

    async def delete(self, repair_id: int) -> Any:
        return await self.api.delete(f"/api/repairs/{repair_id}")

    async def next_receipt_id(self) -> int:
        return (await self.api.get("/api/repairs/next-receipt-id"))["nextReceiptId"]

    async def status_counts(self) -> dict:
        return await self.api.get("/api/repairs/status-counts")

    async def refund(
        self,
        repair_id: int,
        amount: Optional[float] = None,
        refund_type: Optional[str] = None,
        return_parts: bool = False,
        note: str = "",
    ) -> dict:
        return await self.api.post(f"/api/repairs/{repair_id}/refund", json={
            "refundAmount": amount,
            "refundType": refund_type,
            "returnPartsToWarehouse": return_parts,
            "note": note,
        })

    async def parts(self, repair_id: int) -> List[dict]:
        return await self.api.get(f"/api/repairs/{repair_id}/parts")

    async def add_part(self, repair_id: int, data: dict) -> dict:
        return await self.api.post(f"/api/repairs/{repair_id}/parts", json=data)

    async def update_part_price(self, repair_id: int, part_id: int, price_uah: float) -> dict:
        return await self.api.put(f"/api/repairs/{repair_id}/parts/{part_id}", json={"priceUah": price_uah})

    async def remove_part(self, repair_id: int, part_id: int) -> Any:
        return await self.api.delete(f"/api/repairs/{repair_id}/parts/{part_id}")

    async def set_parts_payment(self, repair_id: int, is_paid: bool, date_end: Optional[str] = None) -> dict:
        return await self.api.post(
            f"/api/repairs/{repair_id}/parts/payment",
            json={"isPaid": is_paid, "dateEnd": date_end},
        )

    async def lock(self, repair_id: int, device: str) -> dict:
        return await self.api.post(f"/api/locks/{repair_id}", json={"device": device})

    async def unlock(self, repair_id: int) -> Any:
        return await self.api.delete(f"/api/locks/{repair_id}")

    async def lock_status(self, repair_id: int) -> dict:
        return await self.api.get(f"/api/locks/{repair_id}")


class WarehouseApi:
    def __init__(self, api: ApiClient):
        self.api = api

    async def list(self, stock_filter: str = "inStock", grouped: bool = False, **filters) -> List[dict]:
        return await self.api.get(
            "/api/products",
            params={"stockFilter": stock_filter, "grouped": "true" if grouped else None, **filters},
        )

    async def suppliers(self) -> List[str]:
        return await self.api.get("/api/products/suppliers")

    async def add(self, data: dict) -> dict:
        return await self.api.post("/api/products", json=data)

    async def update(self, part_id: int, data: dict) -> dict:
        return await self.api.put(f"/api/products/{part_id}", json=data)

    async def delete(self, part_id: int, write_off: bool = False) -> Any:
        return await self.api.delete(f"/api/products/{part_id}", params={"writeOff": "true" if write_off else None})

    async def find_barcode(self, code: str) -> dict:
        return await self.api.get(f"/api/products/barcode/{code}")

    async def set_barcode(self, part_id: int, code: str) -> dict:
        return await self.api.put(f"/api/products/{part_id}/barcode", json={"barcode": code})

    async def clear_barcode(self, part_id: int) -> dict:
        return await self.api.delete(f"/api/products/{part_id}/barcode")

    async def parse(self, text: str) -> dict:
        return await self.api.post("/api/products/parse", json={"text": text})

    async def import_items(self, supplier: str, exchange_rate: float, items: List[dict], **extra) -> dict:
        return await self.api.post("/api/products/import", json={
            "supplier": supplier,
            "exchangeRate": exchange_rate,
            "items": items,
            **extra,
        })


class CashRegisterApi:
    def __init__(self, api: ApiClient):
        self.api = api

    async def balances(self) -> dict:
        return await self.api.get("/api/cash-register/balances")

    async def settings(self) -> dict:
        return await self.api.get("/api/cash-register/settings")

    async def update_commission(self, percent: float) -> dict:
        return await self.api.put("/api/cash-register/settings", json={"cardCommissionPercent": percent})

    async def activate(self, initial_cash: float, initial_card: float) -> dict:
        return await self.api.post(
            "/api/cash-register/activate",
            json={"initialCash": initial_cash, "initialCard": initial_card},
        )

    async def transactions(self, **filters) -> List[dict]:
        return await self.api.get("/api/transactions", params=filters)

    async def add(self, kind: str, category: str, amount: float, payment_type: str, description: str = "") -> dict:
        return await self.api.post("/api/transactions", json={
            "type": kind,
            "category": category,
            "amount": amount,
            "paymentType": payment_type,
            "description": description,
        })

    async def reconcile(self, actual_cash: float, actual_card: float, description: str = "") -> dict:
        return await self.api.post("/api/transactions/reconcile", json={
            "actualCash": actual_cash,
            "actualCard": actual_card,
            "description": description,
        })

    async def delete(self, transaction_id: int) -> Any:
        return await self.api.delete(f"/api/transactions/{transaction_id}")


class DirectoryApi:
    """Исполнители, контрагенты, категории кассы."""

    def __init__(self, api: ApiClient):
        self.api = api

    async def executors(self) -> List[dict]:
        return await self.api.get("/api/executors")

    async def create_executor(self, data: dict) -> dict:
        return await self.api.post("/api/executors", json=data)

    async def update_executor(self, executor_id: int, data: dict) -> dict:
        return await self.api.put(f"/api/executors/{executor_id}", json=data)

    async def delete_executor(self, executor_id: int) -> Any:
        return await self.api.delete(f"/api/executors/{executor_id}")

    async def counterparties(self) -> List[dict]:
        return await self.api.get("/api/counterparties")

    async def create_counterparty(self, name: str, smart_import: bool = False) -> dict:
        return await self.api.post("/api/counterparties", json={"name": name, "smartImport": smart_import})

    async def categories(self, kind: str, active_only: bool = False) -> List[dict]:
        """kind: expense или income."""
        return await self.api.get(
            f"/api/{kind}-categories",
            params={"activeOnly": "true" if active_only else None},
        )

    async def create_category(self, kind: str, name: str) -> dict:
        return await self.api.post(f"/api/{kind}-categories", json={"name": name})


class BackupsApi:
    def __init__(self, api: ApiClient):
        self.api = api

    async def list(self) -> List[dict]:
        return await self.api.get("/api/backups")

    async def create(self, tag: str = "", encrypt: bool = False) -> dict:
        return await self.api.post("/api/backups", json={"tag": tag, "encrypt": encrypt})

    async def restore(self, file_name: str) -> dict:
        return await self.api.post(f"/api/backups/{file_name}/restore")

    async def rename(self, file_name: str, new_name: str) -> dict:
        return await self.api.put(f"/api/backups/{file_name}", json={"newName": new_name})

    async def delete(self, file_name: str) -> Any:
        return await self.api.delete(f"/api/backups/{file_name}")


class ServiceCenterClient(ApiClient):
    """Клиент со всеми разделами API."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.repairs = RepairsApi(self)
        self.warehouse = WarehouseApi(self)
        self.cash = CashRegisterApi(self)
        self.directory = DirectoryApi(self)
        self.backups = BackupsApi(self)
