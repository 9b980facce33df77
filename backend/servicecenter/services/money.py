"""Денежные суммы: округление до копеек и разбор ввода пользователя."""
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, ROUND_DOWN
from typing import Union

CENT = Decimal("0.01")
ZERO = Decimal("0")

Number = Union[Decimal, int, float, str, None]


def to_decimal(value: Number) -> Decimal:
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return value
    try:
        # float через str, чтобы 0.1 не превращалось в 0.1000000000000000055...
        return Decimal(str(value))
    except InvalidOperation:
        return ZERO


def round_money(value: Number) -> Decimal:
    """Округление до 2 знаков (половина вверх). Повторное округление ничего не меняет."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def normalize_money_input(text: str) -> str:
    """Оставить цифры и один десятичный разделитель; запятая становится точкой."""
    cleaned = re.sub(r"[^\d.,]", "", text or "")
    cleaned = cleaned.replace(",", ".", 1)
    head, dot, tail = cleaned.partition(".")
    return head + dot + tail.replace(".", "").replace(",", "")


def limit_decimal_places(text: str, places: int = 2) -> str:
    """Отбросить лишние знаки после точки (без округления)."""
    head, dot, tail = text.partition(".")
    if not dot:
        return text
    return head + dot + tail[:places]


def parse_money(text: Number) -> Decimal:
    """Сумма из строки пользователя. Не разобралось — 0."""
    if isinstance(text, (Decimal, int, float)):
        return round_money(text)
    normalized = limit_decimal_places(normalize_money_input(text or ""))
    if normalized in ("", "."):
        return ZERO
    try:
        return Decimal(normalized).quantize(CENT, rounding=ROUND_DOWN)
    except InvalidOperation:
        return ZERO


def percent_of(amount: Number, percent: Number) -> Decimal:
    return round_money(to_decimal(amount) * to_decimal(percent) / Decimal(100))


def format_phone_number(value: str) -> str:
    """До 10 цифр в формате 067-123-45-67."""
    digits = re.sub(r"\D", "", value or "")[:10]
    groups = (digits[:3], digits[3:6], digits[6:8], digits[8:10])
    return "-".join(g for g in groups if g)


def phone_digits(value: str) -> str:
    return re.sub(r"\D", "", value or "")
