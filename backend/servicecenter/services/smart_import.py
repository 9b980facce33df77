"""
Разбор накладных поставщиков, скопированных из буфера обмена.

DFI — таблица через табуляцию: код, название, количество, цена.
ARC — блоки строк с маркерами «Код», «Артикул», «Кол-во», «Цена», «Сумма»
либо короткая выгрузка: название, код, «Qty: N шт», цена в долларах.
"""
import enum
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Iterator, Optional

from servicecenter.core.logging_config import get_logger

logger = get_logger(__name__)

_PRICE_WITH_DOLLAR = re.compile(r"([\d.,]+)\$")
_ARC_QUANTITY = re.compile(r"x\s*(\d+)", re.IGNORECASE)
_ARC_QTY_LINE = re.compile(r"qty:\s*(\d+)", re.IGNORECASE)


class ImportFormat(str, enum.Enum):
    DFI = "DFI"
    ARC = "ARC"
    UNKNOWN = "UNKNOWN"


class ParseError(ValueError):
    pass


@dataclass
class ParsedItem:
    product_code: str
    name: str
    quantity: int
    price_usd: Decimal

    def to_dict(self) -> dict:
        return {
            "productCode": self.product_code,
            "name": self.name,
            "quantity": self.quantity,
            "priceUsd": float(self.price_usd),
        }


def _decimal(text: str) -> Optional[Decimal]:
    try:
        return Decimal(text.replace(",", ".", 1))
    except InvalidOperation:
        return None


def _non_empty_lines(text: str) -> list[str]:
    return [line for line in (text or "").split("\n") if line.strip()]


def _dfi_price(raw: str) -> Optional[Decimal]:
    """«1234$» — центы, «12.34$» и «12.34» — доллары."""
    m = _PRICE_WITH_DOLLAR.search(raw)
    if m:
        value = m.group(1).replace(",", ".", 1)
        if "." in value:
            return _decimal(value)
        return Decimal(int(value)) / 100 if value.isdigit() else None
    return _decimal(raw)


def parse_dfi(text: str) -> list[ParsedItem]:
    items = []
    for line in _non_empty_lines(text):
        columns = line.split("\t")
        if len(columns) < 4:
            logger.warning("DFI: пропущена строка, мало колонок: %r", line)
            continue
        code, name, qty_raw, price_raw = (c.strip() for c in columns[:4])
        try:
            quantity = int(qty_raw)
        except ValueError:
            quantity = 0
        if quantity <= 0:
            logger.warning("DFI: некорректное количество: %r", qty_raw)
            continue
        price = _dfi_price(price_raw)
        if price is None:
            logger.warning("DFI: некорректная цена: %r", price_raw)
            continue
        items.append(ParsedItem(product_code=code, name=name, quantity=quantity, price_usd=price))
    return items


def _arc_blocks(lines: list[str]) -> Iterator[tuple[str, dict]]:
    """Блоки ARC: название (иногда продублировано) и значения после маркеров."""
    i = 0
    markers = ("Код", "Артикул", "Кол-во", "Цена", "Сумма")
    while i < len(lines):
        name = lines[i]
        if i + 1 < len(lines) and lines[i + 1] == name:
            i += 1
        i += 1
        values = {}
        for marker in markers:
            while i < len(lines) and lines[i] != marker:
                i += 1
            if i < len(lines):
                i += 1
                if i < len(lines):
                    values[marker] = lines[i]
                    i += 1
        yield name, values


def _parse_arc_compact(lines: list[str]) -> list[ParsedItem]:
    """Короткая выгрузка ARC: название, код, «Qty: 5 шт», «12.34$» по строке на значение."""
    items = []
    i = 0
    while i + 3 < len(lines):
        qty = _ARC_QTY_LINE.search(lines[i + 2])
        price = _PRICE_WITH_DOLLAR.search(lines[i + 3])
        if not (qty and price):
            i += 1
            continue
        value = _decimal(price.group(1)) or Decimal("0")
        if value > 0:
            items.append(ParsedItem(
                product_code=lines[i + 1],
                name=lines[i],
                quantity=int(qty.group(1)),
                price_usd=value,
            ))
        i += 4
    return items


def parse_arc(text: str) -> list[ParsedItem]:
    lines = [line.strip() for line in (text or "").split("\n") if line.strip()]
    if "Кол-во" not in lines:
        return _parse_arc_compact(lines)
    items = []
    for name, values in _arc_blocks(lines):
        code = values.get("Код") or values.get("Артикул") or ""
        quantity = 1
        m = _ARC_QUANTITY.search(values.get("Кол-во", ""))
        if m:
            quantity = int(m.group(1))
        price = Decimal("0")
        m = _PRICE_WITH_DOLLAR.search(values.get("Цена", ""))
        if m:
            price = _decimal(m.group(1)) or Decimal("0")
        if name and code and price > 0:
            items.append(ParsedItem(product_code=code, name=name, quantity=quantity, price_usd=price))
    return items


def detect_format(text: str) -> ImportFormat:
    lines = _non_empty_lines(text)
    if not lines:
        return ImportFormat.UNKNOWN
    columns = lines[0].split("\t")
    if len(columns) >= 4 and "$" in columns[3]:
        return ImportFormat.DFI
    markers = {line.strip() for line in lines}
    if "$" in text and ("qty:" in text.lower() or "Кол-во" in markers):
        return ImportFormat.ARC
    return ImportFormat.UNKNOWN


def parse_clipboard(text: str) -> tuple[ImportFormat, list[ParsedItem]]:
    fmt = detect_format(text)
    if fmt == ImportFormat.DFI:
        return fmt, parse_dfi(text)
    if fmt == ImportFormat.ARC:
        return fmt, parse_arc(text)
    raise ParseError("Не вдалося визначити формат даних. Підтримуються формати: DFI та ARC.")
