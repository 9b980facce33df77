"""Разбор накладных DFI и ARC."""
from decimal import Decimal

import pytest

from servicecenter.services.smart_import import (
    ImportFormat,
    ParseError,
    detect_format,
    parse_arc,
    parse_clipboard,
    parse_dfi,
)

DFI = "12345\tРезистор 10кОм\t5\t1234$\n67890\tКонденсатор 100мкФ\t10\t567$\n11111\tДіод 1N4148\t20\t89$"

ARC_SHORT = """Резистор 10кОм


12345



Qty: 5 шт

12.34$


Конденсатор 100мкФ


67890



Qty: 10 шт

5.67$
"""

ARC_MARKERS = """Дисплей iPhone 11
Дисплей iPhone 11
Код
A-778
Артикул
IP11-LCD
Кол-во
x 2 / шт
Цена
24,50$
Сумма
49.00$
Шлейф зарядки
Код
B-100
Артикул
FLEX-01
Кол-во
x 1 / шт
Цена
3.10$
Сумма
3.10$
"""


def test_detect_format():
    assert detect_format(DFI) == ImportFormat.DFI
    assert detect_format(ARC_SHORT) == ImportFormat.ARC
    assert detect_format(ARC_MARKERS) == ImportFormat.ARC
    assert detect_format("") == ImportFormat.UNKNOWN
    assert detect_format("hello\tworld") == ImportFormat.UNKNOWN


def test_parse_dfi_prices_in_cents():
    items = parse_dfi(DFI)
    assert len(items) == 3
    assert items[0].product_code == "12345"
    assert items[0].name == "Резистор 10кОм"
    assert items[0].quantity == 5
    assert items[0].price_usd == Decimal("12.34")
    assert items[2].price_usd == Decimal("0.89")


def test_parse_dfi_skips_bad_rows():
    text = "1\tA\t0\t100$\n2\tB\tx\t100$\n3\tC\n4\tD\t1\t2.50$"
    items = parse_dfi(text)
    assert [i.name for i in items] == ["D"]
    assert items[0].price_usd == Decimal("2.50")


def test_parse_arc_short_export():
    items = parse_arc(ARC_SHORT)
    assert [(i.product_code, i.name, i.quantity, i.price_usd) for i in items] == [
        ("12345", "Резистор 10кОм", 5, Decimal("12.34")),
        ("67890", "Конденсатор 100мкФ", 10, Decimal("5.67")),
    ]


def test_parse_arc_markers():
    items = parse_arc(ARC_MARKERS)
    assert len(items) == 2
    first, second = items
    assert first.name == "Дисплей iPhone 11"
    assert first.product_code == "A-778"
    assert first.quantity == 2
    assert first.price_usd == Decimal("24.50")
    assert second.product_code == "B-100"
    assert second.quantity == 1
    assert second.price_usd == Decimal("3.10")


def test_parse_clipboard():
    fmt, items = parse_clipboard(DFI)
    assert fmt == ImportFormat.DFI
    assert items[1].to_dict() == {
        "productCode": "67890",
        "name": "Конденсатор 100мкФ",
        "quantity": 10,
        "priceUsd": 5.67,
    }
    with pytest.raises(ParseError):
        parse_clipboard("not an invoice")
