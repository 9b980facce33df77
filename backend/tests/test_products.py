"""Склад: приход, группировка, штрихкоды, списание, разбор и импорт накладных."""

DFI_TEXT = "A-100\tDisplay iPhone 11\t2\t1250$\nB-200\tBattery iPhone 11\t5\t8.40$"


def _add(client, headers, **fields):
    body = {"name": "Display iPhone 11", "supplier": "DFI", "quantity": 1, "priceUsd": 10, "exchangeRate": 41.5}
    body.update(fields)
    r = client.post("/api/products", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def test_add_quantity_and_grouped_list(client, auth_headers):
    data = _add(client, auth_headers, quantity=3)
    assert data["count"] == 3
    assert all(p["costUah"] == 415 for p in data["items"])
    _add(client, auth_headers, name="Battery", supplier="ARC", costUah=300)

    grouped = client.get("/api/products", params={"grouped": "true"}, headers=auth_headers).json()
    by_name = {g["name"]: g for g in grouped}
    assert by_name["Display iPhone 11"]["quantity"] == 3
    assert by_name["Display iPhone 11"]["totalCost"] == 1245
    assert by_name["Battery"]["quantity"] == 1

    assert client.get("/api/products/suppliers", headers=auth_headers).json() == ["ARC", "DFI"]
    rows = client.get("/api/products", params={"supplier": "ARC"}, headers=auth_headers).json()
    assert [p["name"] for p in rows] == ["Battery"]
    rows = client.get("/api/products", params={"search": "batt"}, headers=auth_headers).json()
    assert len(rows) == 1


def test_add_validation(client, auth_headers):
    r = client.post("/api/products", json={"name": "X", "quantity": 0}, headers=auth_headers)
    assert r.status_code == 422
    r = client.post("/api/products", json={"name": "  "}, headers=auth_headers)
    assert r.status_code == 400


def test_update_recomputes_cost(client, auth_headers):
    item = _add(client, auth_headers)["items"][0]
    r = client.put(f"/api/products/{item['id']}", json={"exchangeRate": 42}, headers=auth_headers)
    assert r.json()["costUah"] == 420
    r = client.put(f"/api/products/{item['id']}", json={"costUah": 399.99}, headers=auth_headers)
    assert r.json()["costUah"] == 399.99


def test_barcode(client, auth_headers):
    item = _add(client, auth_headers)["items"][0]
    assert client.get("/api/products/barcode/4820000000017", headers=auth_headers).status_code == 404

    r = client.put(f"/api/products/{item['id']}/barcode", json={"barcode": "4820000000017"}, headers=auth_headers)
    assert r.json()["barcode"] == "4820000000017"
    r = client.get("/api/products/barcode/4820000000017", headers=auth_headers)
    assert r.json()["id"] == item["id"]

    r = client.put(f"/api/products/{item['id']}/barcode", json={"barcode": " "}, headers=auth_headers)
    assert r.status_code == 400

    client.delete(f"/api/products/{item['id']}/barcode", headers=auth_headers)
    assert client.get("/api/products/barcode/4820000000017", headers=auth_headers).status_code == 404


def test_purchase_posts_expense(client, auth_headers, activate_register, get_balances):
    activate_register(1000, 500)
    _add(client, auth_headers, quantity=2, costUah=100, paymentType="Готівка")
    assert get_balances() == (800, 500)
    rows = client.get("/api/transactions", params={"category": "Покупка"}, headers=auth_headers).json()
    assert rows[0]["amount"] == -200


def test_write_off(client, auth_headers, activate_register, get_balances):
    activate_register(1000, 500)
    item = _add(client, auth_headers)["items"][0]
    r = client.delete(f"/api/products/{item['id']}", params={"writeOff": "true"}, headers=auth_headers)
    assert r.json() == {"ok": True, "id": item["id"]}
    assert client.get("/api/products", headers=auth_headers).json() == []

    # Списание видно в кассе, остатки не меняются
    rows = client.get("/api/transactions", params={"category": "Списання"}, headers=auth_headers).json()
    assert len(rows) == 1
    assert rows[0]["amount"] == 0
    assert get_balances() == (1000, 500)


def test_cannot_delete_part_in_repair(client, auth_headers, make_repair):
    repair = make_repair()
    item = _add(client, auth_headers)["items"][0]
    client.post(
        f"/api/repairs/{repair['id']}/parts", json={"partId": item["id"], "priceUah": 500}, headers=auth_headers
    )
    r = client.delete(f"/api/products/{item['id']}", headers=auth_headers)
    assert r.status_code == 400


def test_parse_and_import(client, auth_headers):
    r = client.post("/api/products/parse", json={"text": DFI_TEXT}, headers=auth_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["format"] == "DFI"
    assert body["items"][0] == {"productCode": "A-100", "name": "Display iPhone 11", "quantity": 2, "priceUsd": 12.5}
    assert body["items"][1]["priceUsd"] == 8.4

    r = client.post(
        "/api/products/import",
        json={"supplier": "DFI", "exchangeRate": 40, "items": body["items"], "invoice": "INV-7"},
        headers=auth_headers,
    )
    assert r.status_code == 201
    assert r.json() == {"ok": True, "created": 7}

    rows = client.get("/api/products", params={"search": "a-100"}, headers=auth_headers).json()
    assert len(rows) == 2
    assert rows[0]["costUah"] == 500
    assert rows[0]["invoice"] == "INV-7"


def test_parse_unknown_format(client, auth_headers):
    r = client.post("/api/products/parse", json={"text": "just some text"}, headers=auth_headers)
    assert r.status_code == 400


def test_import_requires_items(client, auth_headers):
    r = client.post(
        "/api/products/import", json={"supplier": "DFI", "exchangeRate": 40, "items": []}, headers=auth_headers
    )
    assert r.status_code == 400
