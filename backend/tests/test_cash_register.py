"""Касса: активация, оплата квитанций, комиссия, возвраты, сверка, ручные операции."""


def _transactions(client, headers, **params):
    r = client.get("/api/transactions", params=params, headers=headers)
    assert r.status_code == 200
    return r.json()


def test_activate_once(client, auth_headers, activate_register, get_balances):
    assert get_balances() == (0, 0)
    data = activate_register(1000, 500)
    assert data["cashRegisterEnabled"] is True
    assert data["cashRegisterStartDate"] is not None
    assert (data["cash"], data["card"]) == (1000, 500)

    r = client.post("/api/cash-register/activate", json={"initialCash": 1, "initialCard": 1}, headers=auth_headers)
    assert r.status_code == 400

    rows = _transactions(client, auth_headers)
    assert [t["category"] for t in rows] == ["Коригування"]
    assert rows[0]["paymentType"] == "Змішано"


def test_payments_before_activation_not_recorded(client, auth_headers, make_repair, get_balances):
    make_repair(status=6)
    assert _transactions(client, auth_headers) == []
    assert get_balances() == (0, 0)


def test_cash_payment_and_cancel(client, auth_headers, make_repair, activate_register, get_balances):
    activate_register(1000, 500)
    repair = make_repair()
    rid = repair["id"]

    r = client.put(f"/api/repairs/{rid}", json={"isPaid": True, "paymentType": "Готівка"}, headers=auth_headers)
    assert r.status_code == 200
    assert get_balances() == (1300, 500)

    income = _transactions(client, auth_headers, category="Прибуток")
    assert len(income) == 1
    assert income[0]["amount"] == 300
    assert income[0]["receiptId"] == rid
    assert income[0]["executorName"] == "Андрій"
    assert income[0]["description"].startswith("Оплата квитанції #1. Готівка. Андрій")

    client.put(f"/api/repairs/{rid}", json={"isPaid": False}, headers=auth_headers)
    assert get_balances() == (1000, 500)
    cancel = _transactions(client, auth_headers, category="Скасування")
    assert cancel[0]["amount"] == -300


def test_card_payment_commission_and_full_refund(
    client, auth_headers, make_repair, activate_register, get_balances
):
    activate_register(1000, 500)
    repair = make_repair(costLabor=1000)
    rid = repair["id"]

    client.put(f"/api/repairs/{rid}", json={"isPaid": True, "paymentType": "Картка"}, headers=auth_headers)
    # 1.5% комиссии банка
    assert get_balances() == (1000, 1485)
    commission = _transactions(client, auth_headers, category="Комісія банку")
    assert commission[0]["amount"] == -15

    r = client.post(f"/api/repairs/{rid}/refund", json={}, headers=auth_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["repair"]["isPaid"] is False
    assert body["repair"]["status"] == 4
    assert body["transaction"]["category"] == "Повернення"
    assert body["transaction"]["amount"] == -1000
    # Полный возврат возвращает и комиссию
    assert get_balances() == (1000, 500)
    # Возврат комиссии проводится той же категорией, сумма комиссии по квитанции = 0
    commission = _transactions(client, auth_headers, category="Комісія банку")
    assert sorted(c["amount"] for c in commission) == [-15, 15]
    assert any(c["description"].startswith("Повернення комісії банку") for c in commission)


def test_partial_refund(client, auth_headers, make_repair, activate_register, get_balances):
    activate_register(1000, 500)
    repair = make_repair(isPaid=True)
    assert get_balances() == (1300, 500)

    r = client.post(f"/api/repairs/{repair['id']}/refund", json={"refundAmount": 100}, headers=auth_headers)
    txn = r.json()["transaction"]
    assert "(часткове: 100.00 з 300.00 ₴)" in txn["description"]
    assert get_balances() == (1200, 500)


def test_refund_validation(client, auth_headers, make_repair, activate_register):
    activate_register()
    unpaid = make_repair()
    r = client.post(f"/api/repairs/{unpaid['id']}/refund", json={}, headers=auth_headers)
    assert r.status_code == 400

    paid = make_repair(isPaid=True)
    r = client.post(f"/api/repairs/{paid['id']}/refund", json={"refundAmount": 500}, headers=auth_headers)
    assert r.status_code == 400


def test_refund_returns_parts_to_stock(client, auth_headers, make_repair, activate_register):
    activate_register()
    repair = make_repair()
    rid = repair["id"]
    r = client.post(
        "/api/products",
        json={"name": "Battery", "supplier": "ARC", "costUah": 200},
        headers=auth_headers,
    )
    item = r.json()["items"][0]
    client.post(f"/api/repairs/{rid}/parts", json={"partId": item["id"], "priceUah": 350}, headers=auth_headers)
    client.put(f"/api/repairs/{rid}", json={"isPaid": True}, headers=auth_headers)

    r = client.post(f"/api/repairs/{rid}/refund", json={"returnPartsToWarehouse": True}, headers=auth_headers)
    body = r.json()
    assert body["transaction"]["amount"] == -650
    assert body["repair"]["parts"] == []
    assert body["repair"]["totalCost"] == 300
    stock = client.get("/api/products", headers=auth_headers).json()
    assert [p["id"] for p in stock] == [item["id"]]


def test_reconcile(client, auth_headers, activate_register, get_balances):
    activate_register(1000, 500)

    r = client.post("/api/transactions/reconcile", json={"actualCash": 1000, "actualCard": 500}, headers=auth_headers)
    assert r.status_code == 201
    assert r.json()["amount"] == 0
    # Нулевая сверка видна в списке
    assert len(_transactions(client, auth_headers, category="Коригування")) == 2

    r = client.post(
        "/api/transactions/reconcile",
        json={"actualCash": 1100, "actualCard": 450, "description": "Перерахунок"},
        headers=auth_headers,
    )
    data = r.json()
    assert data["amount"] == 50
    assert data["paymentType"] == "Змішано"
    assert data["description"] == "Перерахунок"
    assert get_balances() == (1100, 450)


def test_manual_transactions_and_delete(client, auth_headers, activate_register, get_balances):
    activate_register(1000, 500)
    r = client.post(
        "/api/transactions",
        json={"type": "expense", "category": "Оренда", "amount": 200, "paymentType": "Готівка"},
        headers=auth_headers,
    )
    assert r.status_code == 201
    expense = r.json()
    assert expense["amount"] == -200
    client.post(
        "/api/transactions",
        json={"type": "income", "category": "Продаж аксесуарів", "amount": 100, "paymentType": "Картка"},
        headers=auth_headers,
    )
    assert get_balances() == (800, 600)

    # Удаление из середины пересчитывает остатки последующих проводок
    r = client.delete(f"/api/transactions/{expense['id']}", headers=auth_headers)
    assert r.json() == {"ok": True, "id": expense["id"]}
    assert get_balances() == (1000, 600)
    assert client.delete(f"/api/transactions/{expense['id']}", headers=auth_headers).status_code == 404


def test_manual_transaction_validation(client, auth_headers):
    base = {"type": "expense", "category": "Оренда", "amount": 100, "paymentType": "Готівка"}
    r = client.post("/api/transactions", json={**base, "amount": 0}, headers=auth_headers)
    assert r.status_code == 400
    r = client.post("/api/transactions", json={**base, "type": "other"}, headers=auth_headers)
    assert r.status_code == 400
    r = client.post("/api/transactions", json={**base, "paymentType": "Змішано"}, headers=auth_headers)
    assert r.status_code == 400


def test_transactions_search(client, auth_headers, activate_register):
    activate_register()
    client.post(
        "/api/transactions",
        json={"type": "expense", "category": "Оренда", "amount": 50, "paymentType": "Готівка", "description": "Rent May"},
        headers=auth_headers,
    )
    rows = _transactions(client, auth_headers, search="rent")
    assert [t["description"] for t in rows] == ["Rent May"]


def test_commission_settings(client, auth_headers):
    r = client.get("/api/cash-register/settings", headers=auth_headers)
    assert r.json()["cardCommissionPercent"] == 1.5
    assert r.json()["cashRegisterEnabled"] is False

    r = client.put("/api/cash-register/settings", json={"cardCommissionPercent": 2.5}, headers=auth_headers)
    assert r.json()["cardCommissionPercent"] == 2.5
    r = client.put("/api/cash-register/settings", json={"cardCommissionPercent": 150}, headers=auth_headers)
    assert r.status_code == 422


def test_categories(client, auth_headers):
    names = [c["name"] for c in client.get("/api/expense-categories", headers=auth_headers).json()]
    assert "Оренда" in names

    r = client.post("/api/expense-categories", json={"name": "Оренда"}, headers=auth_headers)
    assert r.status_code == 400

    r = client.post("/api/expense-categories", json={"name": "Реклама"}, headers=auth_headers)
    assert r.status_code == 201
    cid = r.json()["id"]
    r = client.put(f"/api/expense-categories/{cid}", json={"active": False}, headers=auth_headers)
    assert r.json()["active"] is False

    active = client.get("/api/expense-categories", params={"activeOnly": "true"}, headers=auth_headers).json()
    assert "Реклама" not in [c["name"] for c in active]

    assert client.delete(f"/api/expense-categories/{cid}", headers=auth_headers).status_code == 200
    incomes = [c["name"] for c in client.get("/api/income-categories", headers=auth_headers).json()]
    assert "Продаж аксесуарів" in incomes
