"""
Нечёткий поиск по списку записей с учётом неверной раскладки клавиатуры.

Оценка совпадения от 0 (точное вхождение) до 1 (ничего общего). Поле длиннее
запроса сравнивается по лучшей подстроке (rapidfuzz partial_ratio), короче:
нормированным расстоянием Левенштейна целиком.
"""
from typing import Callable, Iterable, Optional, Sequence

from rapidfuzz import fuzz
from rapidfuzz.distance import Levenshtein

FUZZY_THRESHOLD = 0.35
MIN_MATCH_LENGTH = 2

_LATIN = "qwertyuiop[]asdfghjkl;'zxcvbnm,.QWERTYUIOP{}ASDFGHJKL:\"ZXCVBNM<>"
_CYRILLIC = "йцукенгшщзхїфівапролджєячсмитьбюЙЦУКЕНГШЩЗХЇФІВАПРОЛДЖЄЯЧСМИТЬБЮ"

# Латиница ↔ кириллица по позициям клавиш (украинская раскладка)
LAYOUT_MAP: dict[str, str] = {}
LAYOUT_MAP.update(zip(_LATIN, _CYRILLIC))
LAYOUT_MAP.update(zip(_CYRILLIC[:32], _LATIN[:32]))


def convert_layout(text: str) -> str:
    return "".join(LAYOUT_MAP.get(ch, ch) for ch in text)


def match_score(pattern: str, text: str) -> float:
    pattern = pattern.lower()
    text = (text or "").lower()
    if not text:
        return 1.0
    if pattern in text:
        return 0.0
    if len(text) < len(pattern):
        return Levenshtein.normalized_distance(pattern, text)
    return 1.0 - fuzz.partial_ratio(pattern, text) / 100.0


def _field_values(item, keys: Sequence[str], getter: Optional[Callable]) -> Iterable[str]:
    for key in keys:
        value = getter(item, key) if getter else item.get(key)
        if value is None or value == "":
            continue
        yield str(value)


def _search(items: list, pattern: str, keys: Sequence[str], threshold: float, getter) -> list[tuple[float, int]]:
    scored = []
    for idx, item in enumerate(items):
        best = min(
            (match_score(pattern, v) for v in _field_values(item, keys, getter)),
            default=1.0,
        )
        if best <= threshold:
            scored.append((best, idx))
    scored.sort()
    return scored


def fuzzy_search(
    items: Sequence,
    pattern: str,
    keys: Sequence[str],
    threshold: float = FUZZY_THRESHOLD,
    getter: Optional[Callable] = None,
    id_key: str = "id",
) -> list:
    """
    Записи, где хотя бы одно поле из keys похоже на pattern.
    Запрос в другой раскладке ищется тоже; результаты сливаются без повторов по id.
    Пустой запрос возвращает список как есть, запрос короче 2 символов — пустой список.
    """
    items = list(items)
    pattern = (pattern or "").strip()
    if not pattern:
        return items
    if len(pattern) < MIN_MATCH_LENGTH:
        return []
    found = _search(items, pattern, keys, threshold, getter)
    converted = convert_layout(pattern)
    if converted != pattern:
        found += _search(items, converted, keys, threshold, getter)
    result = []
    seen = set()
    for _, idx in found:
        item = items[idx]
        item_id = getter(item, id_key) if getter else item.get(id_key)
        marker = item_id if item_id is not None else idx
        if marker in seen:
            continue
        seen.add(marker)
        result.append(item)
    return result
