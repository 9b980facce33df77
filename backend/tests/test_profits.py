"""Отчёты о доходах по исполнителям, квитанциям и товарам."""
import pytest


@pytest.fixture
def paid_repair(client, auth_headers, make_repair):
    """Оплаченный ремонт мастера Oleh: работа 1000, запчасть 200 → 500."""
    client.post(
        "/api/executors",
        json={"name": "Oleh", "salaryPercent": 40, "productsPercent": 50},
        headers=auth_headers,
    )
    repair = make_repair(costLabor=1000, executor="Oleh")
    item = client.post(
        "/api/products", json={"name": "Camera", "supplier": "DFI", "costUah": 200}, headers=auth_headers
    ).json()["items"][0]
    client.post(
        f"/api/repairs/{repair['id']}/parts", json={"partId": item["id"], "priceUah": 500}, headers=auth_headers
    )
    r = client.put(f"/api/repairs/{repair['id']}", json={"isPaid": True}, headers=auth_headers)
    assert r.json()["totalCost"] == 1500
    return r.json()


def test_executor_profits(client, auth_headers, paid_repair):
    rows = client.get("/api/profits/executors", headers=auth_headers).json()
    assert len(rows) == 1
    row = rows[0]
    assert row["executorName"] == "Oleh"
    assert row["repairCount"] == 1
    assert row["totalLabor"] == 1000
    assert row["totalPartsProfit"] == 300
    assert row["totalProfit"] == 1300
    # 1000 × 40% + 300 × 50%
    assert row["executorProfit"] == 550
    assert row["totalCommission"] == 0


def test_receipt_profits(client, auth_headers, paid_repair, make_repair):
    make_repair(isPaid=True)
    rows = client.get("/api/profits/receipts", params={"executorName": "Oleh"}, headers=auth_headers).json()
    assert [r["receiptId"] for r in rows] == [paid_repair["receiptId"]]
    assert rows[0]["profit"] == 1300
    assert rows[0]["executorProfit"] == 550

    rows = client.get(
        "/api/profits/receipts",
        params={"startDate": "2000-01-01", "endDate": "2000-01-31"},
        headers=auth_headers,
    ).json()
    assert rows == []


def test_product_profits(client, auth_headers, paid_repair):
    client.post("/api/products", json={"name": "Glass", "supplier": "ARC", "costUah": 100}, headers=auth_headers)
    data = client.get("/api/profits/products", headers=auth_headers).json()
    assert data == {
        "soldCount": 1,
        "totalRevenue": 500,
        "totalExpenses": 200,
        "profit": 300,
        "unsoldValue": 100,
    }


def test_card_commission_in_report(client, auth_headers, make_repair, activate_register):
    activate_register()
    repair = make_repair(costLabor=1000)
    client.put(f"/api/repairs/{repair['id']}", json={"isPaid": True, "paymentType": "Картка"}, headers=auth_headers)
    rows = client.get("/api/profits/executors", headers=auth_headers).json()
    assert rows[0]["totalCommission"] == 15


def test_unpaid_ready(client, auth_headers, make_repair):
    ready = make_repair(status=4)
    make_repair(status=2)
    make_repair(status=6)
    rows = client.get("/api/profits/unpaid-ready", headers=auth_headers).json()
    assert [r["id"] for r in rows] == [ready["id"]]
