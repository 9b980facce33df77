"""HTTP-клиент и редактор квитанции против приложения в памяти (httpx.ASGITransport)."""
from decimal import Decimal
from typing import List, get_type_hints

import httpx
import pytest

from servicecenter.client import ApiError, BackupsApi, RepairEditor, RepairsApi, ServiceCenterClient, WarehouseApi
from servicecenter.main import app, lifespan


@pytest.fixture
async def api(fresh_db):
    async with lifespan(app):
        transport = httpx.ASGITransport(app=app)
        async with ServiceCenterClient("http://testserver", transport=transport) as c:
            yield c


def test_resource_annotations_resolve():
    # Методы list в классах обёрток не должны ломать аннотации List[...]
    assert get_type_hints(RepairsApi.search)["return"] == List[dict]
    assert get_type_hints(WarehouseApi.list)["return"] == List[dict]
    assert get_type_hints(BackupsApi.list)["return"] == List[dict]


async def test_init_takes_token_from_server_info(api):
    info = await api.init()
    assert api.token == "test-token"
    assert info["version"] == "1.0.0"


async def test_api_error_on_missing_repair(api):
    with pytest.raises(ApiError) as exc:
        await api.repairs.get(9999)
    assert exc.value.status_code == 404
    assert exc.value.detail == "Ремонт не знайдено"


async def test_search_falls_back_to_fuzzy(api):
    await api.repairs.create({"clientName": "Petrenko", "deviceName": "iPhone 11"})
    await api.repairs.create({"clientName": "Ivanov", "deviceName": "Xiaomi"})

    # Точное совпадение находит сервер
    found = await api.repairs.search("Petrenko")
    assert [r["clientName"] for r in found] == ["Petrenko"]
    # Опечатка и неверная раскладка: нечёткий поиск на клиенте
    found = await api.repairs.search("Ptrenko")
    assert [r["clientName"] for r in found] == ["Petrenko"]
    found = await api.repairs.search("зуекутлщ")
    assert [r["clientName"] for r in found] == ["Petrenko"]
    assert await api.repairs.search("qqqqqq") == []


async def test_list_with_status_list(api):
    await api.repairs.create({"clientName": "A", "status": 2})
    await api.repairs.create({"clientName": "B", "status": 4})
    await api.repairs.create({"clientName": "C"})
    result = await api.repairs.list(status=[2, 4])
    assert sorted(r["clientName"] for r in result["data"]) == ["A", "B"]
    counts = await api.repairs.status_counts()
    assert counts["1"] == 1


async def test_editor_issue_with_payment(api):
    editor = RepairEditor(api.repairs)
    editor.draft.client_name = "Editor Client"
    editor.draft.cost_labor = Decimal("300")
    await editor.save()
    assert not editor.is_new
    assert editor.draft.receipt_id == 1

    await editor.add_part({"name": "Screen", "supplier": "ЧипЗона", "priceUah": 500, "costUah": 350})
    assert editor.draft.total_cost == Decimal("800.00")
    assert editor.draft.profit == Decimal("150.00")

    change = editor.change_status(6)
    assert change.requires_payment
    editor.confirm_payment("Картка")
    saved = await editor.save()
    assert saved["isPaid"] is True
    assert saved["status"] == 6
    assert saved["paymentType"] == "Картка"
    assert saved["totalCost"] == 800

    parts = await api.repairs.parts(editor.draft.id)
    assert parts[0]["dateSold"] is not None

    # Снятие оплаты: «Готовий», дата продажи запчастей очищается
    editor.toggle_paid(False)
    saved = await editor.save()
    assert saved["isPaid"] is False
    assert saved["status"] == 4
    parts = await api.repairs.parts(editor.draft.id)
    assert parts[0]["dateSold"] is None


async def test_editor_open_existing(api):
    created = await api.repairs.create({"clientName": "Open Me", "costLabor": 150})
    editor = await RepairEditor.open(api.repairs, created["id"])
    assert editor.draft.client_name == "Open Me"
    assert editor.draft.cost_labor == Decimal("150")
    editor.change_status(4)
    saved = await editor.save()
    assert saved["status"] == 4
    assert saved["dateEnd"] is not None


async def test_cash_and_warehouse_wrappers(api):
    await api.cash.activate(1000, 500)
    await api.cash.add("expense", "Оренда", 100, "Готівка")
    assert await api.cash.balances() == {"cash": 900, "card": 500, "total": 1400}

    await api.warehouse.add({"name": "Glass", "supplier": "ARC", "costUah": 50, "quantity": 2})
    grouped = await api.warehouse.list(grouped=True)
    assert grouped[0]["quantity"] == 2
    assert await api.warehouse.suppliers() == ["ARC"]

    parsed = await api.warehouse.parse("X1\tCable\t3\t150$")
    assert parsed["items"][0]["priceUsd"] == 1.5
    result = await api.warehouse.import_items("DFI", 40, parsed["items"])
    assert result["created"] == 3


async def test_locks_from_two_devices(api):
    await api.repairs.lock(1, "PC")
    with pytest.raises(ApiError) as exc:
        await api.repairs.lock(1, "Phone")
    assert exc.value.status_code == 409
    await api.repairs.unlock(1)
    status = await api.repairs.lock_status(1)
    assert status["locked"] is False
