from datetime import date, datetime, time, timezone
from typing import Optional


def naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Даты хранятся без зоны, в UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_date_param(s: Optional[str]) -> Optional[datetime]:
    """Параметр запроса: 2024-05-01 или полная ISO-дата. Не разобралось — None."""
    if not s:
        return None
    try:
        return datetime.combine(datetime.strptime(s, "%Y-%m-%d").date(), time.min)
    except ValueError:
        pass
    try:
        return naive_utc(datetime.fromisoformat(s.replace("Z", "+00:00")))
    except ValueError:
        return None


def day_start(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.combine(value.date(), time.min)


def day_end(value: Optional[datetime]) -> Optional[datetime]:
    """Конец дня включительно: 23:59:59.999."""
    if value is None:
        return None
    return datetime.combine(value.date(), time(23, 59, 59, 999000))


def iso(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)
