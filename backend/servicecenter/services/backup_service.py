"""
Резервные копии базы: JSON всех таблиц, сжатый gzip, по желанию зашифрованный AES-256-GCM.

Зашифрованный файл: gzip(nonce (12) + tag (16) + ciphertext). Ключ — файл
в каталоге копий, создаётся при первом шифровании.
"""
import gzip
import json
import re
import secrets
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from sqlalchemy import DateTime, Numeric, delete, insert, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from servicecenter.config import settings
from servicecenter.core.database import Base
from servicecenter.core.logging_config import get_logger

logger = get_logger(__name__)

FORMAT_VERSION = 1
PLAIN_SUFFIX = ".json.gz"
ENCRYPTED_SUFFIX = ".encrypted.gz"
KEY_FILE = ".backup.key"
BACKUP_TYPES = ("manual", "auto")

_SAFE_NAME = re.compile(r"^[\w\-. ]+$", re.UNICODE)
_SAFE_TAG = re.compile(r"[^\w\-]+", re.UNICODE)


class BackupError(Exception):
    pass


def backup_dir() -> Path:
    path = Path(settings.backup_dir)
    path.mkdir(parents=True, exist_ok=True)
    return path


def _resolve(file_name: str) -> Path:
    """Путь к файлу копии. Имена с каталогами и «..» отклоняются."""
    if not file_name or not _SAFE_NAME.match(file_name) or ".." in file_name:
        raise BackupError("Некоректне ім'я файлу")
    if not (file_name.endswith(PLAIN_SUFFIX) or file_name.endswith(ENCRYPTED_SUFFIX)):
        raise BackupError("Це не файл резервної копії")
    base = backup_dir().resolve()
    path = (base / file_name).resolve()
    if path.parent != base:
        raise BackupError("Некоректне ім'я файлу")
    return path


def _load_key(create: bool) -> Optional[bytes]:
    key_path = backup_dir() / KEY_FILE
    if key_path.exists():
        return bytes.fromhex(key_path.read_text().strip())
    if not create:
        return None
    # 32 байта, AES-256
    key = secrets.token_bytes(32)
    key_path.write_text(key.hex())
    logger.info("Создан ключ шифрования резервных копий: %s", key_path)
    return key


def _encrypt(data: bytes, key: bytes) -> bytes:
    nonce = secrets.token_bytes(12)
    encryptor = Cipher(algorithms.AES(key), modes.GCM(nonce), backend=default_backend()).encryptor()
    ciphertext = encryptor.update(data) + encryptor.finalize()
    return nonce + encryptor.tag + ciphertext


def _decrypt(blob: bytes, key: bytes) -> bytes:
    nonce, tag, ciphertext = blob[:12], blob[12:28], blob[28:]
    decryptor = Cipher(algorithms.AES(key), modes.GCM(nonce, tag), backend=default_backend()).decryptor()
    return decryptor.update(ciphertext) + decryptor.finalize()


def _json_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def _column_value(column, value: Any) -> Any:
    if value is None:
        return None
    if isinstance(column.type, DateTime):
        return datetime.fromisoformat(value)
    if isinstance(column.type, Numeric):
        return Decimal(str(value))
    return value


async def export_data(db: AsyncSession) -> dict:
    tables = {}
    for table in Base.metadata.sorted_tables:
        r = await db.execute(select(table).order_by(*table.primary_key.columns))
        tables[table.name] = [
            {key: _json_value(value) for key, value in row._mapping.items()}
            for row in r.all()
        ]
    return {"version": FORMAT_VERSION, "createdAt": datetime.utcnow().isoformat(), "tables": tables}


def make_file_name(backup_type: str, tag: str = "", encrypted: bool = False, now: Optional[datetime] = None) -> str:
    """{tag_}{type}_{YYYY-MM-DD_HH-MM-SS} + расширение."""
    stamp = (now or datetime.now()).strftime("%Y-%m-%d_%H-%M-%S")
    clean_tag = _SAFE_TAG.sub("_", tag.strip()).strip("_") if tag else ""
    prefix = f"{clean_tag}_" if clean_tag else ""
    return f"{prefix}{backup_type}_{stamp}{ENCRYPTED_SUFFIX if encrypted else PLAIN_SUFFIX}"


async def create_backup(
    db: AsyncSession,
    backup_type: str = "manual",
    tag: str = "",
    encrypt: bool = False,
) -> dict:
    if backup_type not in BACKUP_TYPES:
        raise BackupError(f"Невідомий тип копії: {backup_type}")
    data = await export_data(db)
    payload = json.dumps(data, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    if encrypt:
        payload = _encrypt(payload, _load_key(create=True))
    file_name = make_file_name(backup_type, tag, encrypt)
    path = backup_dir() / file_name
    path.write_bytes(gzip.compress(payload))
    rows = sum(len(v) for v in data["tables"].values())
    logger.info("Резервная копия создана: %s (строк=%s)", file_name, rows)
    return _file_info(path)


def _file_info(path: Path) -> dict:
    stat = path.stat()
    name = path.name
    return {
        "fileName": name,
        "size": stat.st_size,
        "date": datetime.fromtimestamp(stat.st_mtime).isoformat(),
        "encrypted": name.endswith(ENCRYPTED_SUFFIX),
        "type": "auto" if re.search(r"(^|_)auto_\d{4}-", name) else "manual",
    }


def list_backups() -> list[dict]:
    files = [
        p for p in backup_dir().iterdir()
        if p.is_file() and (p.name.endswith(PLAIN_SUFFIX) or p.name.endswith(ENCRYPTED_SUFFIX))
    ]
    files.sort(key=lambda p: p.stat().st_mtime, reverse=True)
    return [_file_info(p) for p in files]


def read_backup(file_name: str) -> dict:
    path = _resolve(file_name)
    if not path.exists():
        raise FileNotFoundError(file_name)
    try:
        payload = gzip.decompress(path.read_bytes())
    except OSError:
        raise BackupError("Файл пошкоджено")
    if file_name.endswith(ENCRYPTED_SUFFIX):
        key = _load_key(create=False)
        if key is None:
            raise BackupError("Немає ключа для розшифрування")
        try:
            payload = _decrypt(payload, key)
        except InvalidTag:
            raise BackupError("Невірний ключ або файл пошкоджено")
    try:
        data = json.loads(payload.decode("utf-8"))
    except ValueError:
        raise BackupError("Файл пошкоджено")
    if not isinstance(data, dict) or "tables" not in data:
        raise BackupError("Невідомий формат копії")
    return data


async def restore_backup(db: AsyncSession, file_name: str) -> dict:
    """Заменить все строки всех таблиц содержимым копии."""
    data = read_backup(file_name)
    tables = data["tables"]
    for table in reversed(Base.metadata.sorted_tables):
        await db.execute(delete(table))
    counts = {}
    for table in Base.metadata.sorted_tables:
        rows = tables.get(table.name) or []
        values = [
            {c.name: _column_value(c, row.get(c.name)) for c in table.columns if c.name in row}
            for row in rows
        ]
        if values:
            await db.execute(insert(table), values)
        counts[table.name] = len(values)
    await db.flush()
    if db.bind.dialect.name == "postgresql":
        await _reset_sequences(db)
    db.expire_all()
    logger.info("Восстановлено из копии %s: %s", file_name, counts)
    return counts


async def _reset_sequences(db: AsyncSession) -> None:
    for table in Base.metadata.sorted_tables:
        if "id" not in table.columns or not table.columns["id"].autoincrement:
            continue
        await db.execute(text(
            f"SELECT setval(pg_get_serial_sequence('{table.name}', 'id'), "
            f"COALESCE((SELECT MAX(id) FROM {table.name}), 1))"
        ))


def rename_backup(file_name: str, new_name: str) -> dict:
    src = _resolve(file_name)
    if not src.exists():
        raise FileNotFoundError(file_name)
    suffix = ENCRYPTED_SUFFIX if file_name.endswith(ENCRYPTED_SUFFIX) else PLAIN_SUFFIX
    new_name = (new_name or "").strip()
    if not new_name.endswith(suffix):
        new_name += suffix
    dst = _resolve(new_name)
    if dst.exists():
        raise BackupError("Файл з таким ім'ям вже існує")
    src.rename(dst)
    logger.info("Резервная копия переименована: %s -> %s", file_name, new_name)
    return _file_info(dst)


def delete_backup(file_name: str) -> None:
    path = _resolve(file_name)
    if not path.exists():
        raise FileNotFoundError(file_name)
    path.unlink()
    logger.info("Резервная копия удалена: %s", file_name)
