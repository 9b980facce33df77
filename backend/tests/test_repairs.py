"""Квитанции: создание, поиск, статусы и оплата, запчасти."""


def test_create_repair_gets_next_receipt_id(client, auth_headers, make_repair):
    r = client.get("/api/repairs/next-receipt-id", headers=auth_headers)
    assert r.json() == {"nextReceiptId": 1}

    data = make_repair(clientPhone="067-123-45-67")
    assert data["receiptId"] == 1
    assert data["status"] == 1
    assert data["statusLabel"] == "У черзі"
    assert data["isPaid"] is False
    assert data["totalCost"] == 300
    assert data["executor"] == "Андрій"
    assert data["parts"] == []

    r = client.get("/api/repairs/next-receipt-id", headers=auth_headers)
    assert r.json() == {"nextReceiptId": 2}


def test_duplicate_receipt_id_rejected(client, auth_headers, make_repair):
    make_repair(receiptId=10)
    r = client.post("/api/repairs", json={"receiptId": 10}, headers=auth_headers)
    assert r.status_code == 400
    assert "#10" in r.json()["detail"]

    other = make_repair()
    assert other["receiptId"] == 11
    r = client.put(f"/api/repairs/{other['id']}", json={"receiptId": 10}, headers=auth_headers)
    assert r.status_code == 400


def test_list_search_and_filters(client, auth_headers, make_repair):
    make_repair(clientName="Ivan Petrenko", clientPhone="067-123-45-67")
    make_repair(clientName="Olga Shevchenko", deviceName="Samsung A52", status=4)
    make_repair(clientName="Petro Ivanov", deviceName="Xiaomi", shouldCall=True)

    r = client.get("/api/repairs", params={"search": "petrenko"}, headers=auth_headers)
    assert [x["clientName"] for x in r.json()["data"]] == ["Ivan Petrenko"]

    # Телефон ищется по цифрам, без дефисов
    r = client.get("/api/repairs", params={"search": "0671234"}, headers=auth_headers)
    assert len(r.json()["data"]) == 1

    r = client.get("/api/repairs", params={"status": "4"}, headers=auth_headers)
    assert [x["deviceName"] for x in r.json()["data"]] == ["Samsung A52"]

    r = client.get("/api/repairs", params={"shouldCall": "true"}, headers=auth_headers)
    assert [x["clientName"] for x in r.json()["data"]] == ["Petro Ivanov"]

    r = client.get("/api/repairs", params={"limit": 2}, headers=auth_headers)
    body = r.json()
    assert [x["receiptId"] for x in body["data"]] == [3, 2]
    assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "totalPages": 2}


def test_bad_status_filter(client, auth_headers):
    r = client.get("/api/repairs", params={"status": "a,b"}, headers=auth_headers)
    assert r.status_code == 400


def test_status_counts(client, auth_headers, make_repair):
    make_repair()
    make_repair(status=4)
    make_repair(status=4)
    r = client.get("/api/repairs/status-counts", headers=auth_headers)
    counts = r.json()
    assert counts["1"] == 1
    assert counts["4"] == 2
    assert counts["6"] == 0
    assert set(counts) == {str(i) for i in range(1, 8)}


def test_issued_on_create_means_paid(client, auth_headers, make_repair):
    data = make_repair(status=6)
    assert data["isPaid"] is True
    assert data["status"] == 6
    assert data["paymentType"] == "Готівка"
    assert data["dateEnd"] is not None


def test_status_label_accepted(client, auth_headers, make_repair):
    data = make_repair(status="Готовий до видачі")
    assert data["status"] == 4


def test_paid_flag_moves_status(client, auth_headers, make_repair):
    repair = make_repair()
    rid = repair["id"]

    r = client.put(f"/api/repairs/{rid}", json={"isPaid": True}, headers=auth_headers)
    data = r.json()
    assert data["isPaid"] is True
    assert data["status"] == 6
    assert data["dateEnd"] is not None

    # Снятие оплаты возвращает в «Готовий»
    r = client.put(f"/api/repairs/{rid}", json={"isPaid": False}, headers=auth_headers)
    data = r.json()
    assert data["isPaid"] is False
    assert data["status"] == 4


def test_leaving_issued_clears_payment(client, auth_headers, make_repair):
    repair = make_repair(status=6)
    r = client.put(f"/api/repairs/{repair['id']}", json={"status": 2}, headers=auth_headers)
    data = r.json()
    assert data["status"] == 2
    assert data["isPaid"] is False


def test_update_keeps_unsent_fields(client, auth_headers, make_repair):
    repair = make_repair(note="Screen cracked")
    r = client.put(f"/api/repairs/{repair['id']}", json={"workDone": "Replaced"}, headers=auth_headers)
    data = r.json()
    assert data["workDone"] == "Replaced"
    assert data["note"] == "Screen cracked"
    assert data["clientName"] == "Ivan Petrenko"


def test_delete_repair(client, auth_headers, make_repair):
    repair = make_repair()
    r = client.delete(f"/api/repairs/{repair['id']}", headers=auth_headers)
    assert r.json() == {"ok": True, "id": repair["id"]}
    assert client.get(f"/api/repairs/{repair['id']}", headers=auth_headers).status_code == 404


def _stock_item(client, headers, **fields):
    body = {"name": "Display", "supplier": "DFI", "priceUsd": 10, "exchangeRate": 41.5}
    body.update(fields)
    r = client.post("/api/products", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["items"][0]


def test_parts_change_totals(client, auth_headers, make_repair):
    repair = make_repair()
    rid = repair["id"]
    item = _stock_item(client, auth_headers)
    assert item["costUah"] == 415

    r = client.post(f"/api/repairs/{rid}/parts", json={"partId": item["id"], "priceUah": 600}, headers=auth_headers)
    assert r.status_code == 201
    body = r.json()
    assert body["part"]["profit"] == 185
    assert body["part"]["inStock"] is False
    assert body["repair"]["totalCost"] == 900
    assert body["repair"]["profit"] == 185

    r = client.post(
        f"/api/repairs/{rid}/parts",
        json={"name": "Glue", "supplier": "ЧипЗона", "priceUah": 100, "costUah": 40},
        headers=auth_headers,
    )
    manual = r.json()["part"]
    assert r.json()["repair"]["totalCost"] == 1000
    assert r.json()["repair"]["profit"] == 245

    r = client.put(f"/api/repairs/{rid}/parts/{item['id']}", json={"priceUah": 700}, headers=auth_headers)
    assert r.json()["part"]["profit"] == 285
    assert r.json()["repair"]["totalCost"] == 1100

    # Ручная позиция удаляется, складская возвращается в наличие
    r = client.delete(f"/api/repairs/{rid}/parts/{manual['id']}", headers=auth_headers)
    assert r.json()["repair"]["totalCost"] == 1000
    r = client.delete(f"/api/repairs/{rid}/parts/{item['id']}", headers=auth_headers)
    assert r.json()["repair"]["totalCost"] == 300
    assert r.json()["repair"]["profit"] == 0

    stock = client.get("/api/products", params={"stockFilter": "all"}, headers=auth_headers).json()
    assert [p["id"] for p in stock] == [item["id"]]
    assert stock[0]["inStock"] is True
    assert stock[0]["priceUah"] == 0


def test_part_cannot_be_sold_twice(client, auth_headers, make_repair):
    first = make_repair()
    second = make_repair()
    item = _stock_item(client, auth_headers)
    client.post(f"/api/repairs/{first['id']}/parts", json={"partId": item["id"], "priceUah": 600}, headers=auth_headers)
    r = client.post(
        f"/api/repairs/{second['id']}/parts", json={"partId": item["id"], "priceUah": 600}, headers=auth_headers
    )
    assert r.status_code == 400


def test_part_validation(client, auth_headers, make_repair):
    repair = make_repair()
    rid = repair["id"]
    r = client.post(f"/api/repairs/{rid}/parts", json={"partId": 9999, "priceUah": 100}, headers=auth_headers)
    assert r.status_code == 404
    r = client.post(
        f"/api/repairs/{rid}/parts", json={"name": "X", "supplier": "Послуга", "priceUah": 0}, headers=auth_headers
    )
    assert r.status_code == 400
    r = client.post(f"/api/repairs/{rid}/parts", json={"name": "X", "priceUah": 50}, headers=auth_headers)
    assert r.status_code == 400


def test_payment_stamps_parts_sold_date(client, auth_headers, make_repair):
    repair = make_repair()
    rid = repair["id"]
    item = _stock_item(client, auth_headers)
    client.post(f"/api/repairs/{rid}/parts", json={"partId": item["id"], "priceUah": 600}, headers=auth_headers)

    parts = client.get(f"/api/repairs/{rid}/parts", headers=auth_headers).json()
    assert parts[0]["dateSold"] is None

    r = client.put(f"/api/repairs/{rid}", json={"isPaid": True}, headers=auth_headers)
    assert r.json()["parts"][0]["dateSold"] is not None

    r = client.put(f"/api/repairs/{rid}", json={"isPaid": False}, headers=auth_headers)
    assert r.json()["parts"][0]["dateSold"] is None


def test_delete_repair_returns_parts(client, auth_headers, make_repair):
    repair = make_repair()
    item = _stock_item(client, auth_headers)
    client.post(
        f"/api/repairs/{repair['id']}/parts", json={"partId": item["id"], "priceUah": 600}, headers=auth_headers
    )
    client.delete(f"/api/repairs/{repair['id']}", headers=auth_headers)
    stock = client.get("/api/products", headers=auth_headers).json()
    assert [p["id"] for p in stock] == [item["id"]]
    assert stock[0]["repairId"] is None
