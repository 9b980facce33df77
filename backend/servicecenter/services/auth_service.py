"""
Пароли и токены кабинета исполнителя.

Пароль хранится как bcrypt-хеш в Executor.password_hash. Пока хеша нет,
первый вход задаёт пароль. Токен кабинета: JWT с id исполнителя в sub
и его ставками, чтобы веб-клиент не запрашивал их отдельно.
"""
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
import jwt

from servicecenter.config import settings
from servicecenter.core.logging_config import get_logger
from servicecenter.models import Executor

logger = get_logger(__name__)

MIN_PASSWORD_LENGTH = 4


class PasswordError(Exception):
    pass


def _hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def _matches(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # В базе не bcrypt-хеш (например, после ручного импорта)
        return False


def set_password(executor: Executor, password: str) -> None:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise PasswordError(f"Пароль має бути не менше {MIN_PASSWORD_LENGTH} символів")
    executor.password_hash = _hash(password)


def check_login(executor: Executor, password: str) -> bool:
    """Верный ли пароль. Без сохранённого пароля вход задаёт его (PasswordError, если короткий)."""
    if not executor.password_hash:
        set_password(executor, password)
        logger.info("Исполнитель id=%s задал пароль кабинета", executor.id)
        return True
    return _matches(password, executor.password_hash)


def change_password(executor: Executor, old_password: str, new_password: str) -> None:
    if not executor.password_hash or not _matches(old_password, executor.password_hash):
        raise PasswordError("Невірний поточний пароль")
    set_password(executor, new_password)


def executor_role(executor: Executor) -> str:
    return "admin" if executor.is_admin else "executor"


def create_access_token(executor: Executor, now: Optional[datetime] = None) -> str:
    now = now or datetime.utcnow()
    claims = {
        "sub": str(executor.id),
        "name": executor.name,
        "role": executor_role(executor),
        "salaryPercent": float(executor.salary_percent),
        "productsPercent": float(executor.products_percent),
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_expire_minutes),
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def executor_id_from_token(token: str) -> Optional[int]:
    """id исполнителя из токена; None, если токен неверный, истёк или без sub."""
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        return int(claims["sub"])
    except (jwt.PyJWTError, KeyError, TypeError, ValueError):
        return None
