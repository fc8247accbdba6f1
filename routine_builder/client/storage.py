from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Protocol
from urllib.parse import urlparse

import redis

logger = logging.getLogger("routine-builder.storage")


class KeyValueStorage(Protocol):
    """Durable string storage, the local equivalent of a browser's localStorage."""

    backend_kind: str

    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...


class InMemoryStorage(KeyValueStorage):
    backend_kind = "memory"

    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value


class JsonFileStorage(KeyValueStorage):
    """All keys live in one JSON object on disk; every write rewrites the file."""

    backend_kind = "file"

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def get_item(self, key: str) -> Optional[str]:
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        items = self._read_all()
        items[key] = value
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_name(self._path.name + ".tmp")
        tmp.write_text(json.dumps(items, ensure_ascii=False), encoding="utf-8")
        tmp.replace(self._path)

    def _read_all(self) -> dict[str, object]:
        if not self._path.exists():
            return {}
        try:
            obj = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        except ValueError:
            # Corrupt file: start over so the next write replaces it.
            logger.warning("file_storage_parse_failed path=%s", self._path)
            return {}
        if not isinstance(obj, dict):
            logger.warning("file_storage_not_an_object path=%s", self._path)
            return {}
        return obj


class RedisStorage(KeyValueStorage):
    backend_kind = "redis"

    def __init__(
        self,
        *,
        redis_url: str,
        connect_timeout_s: float = 1.0,
        socket_timeout_s: float = 1.0,
        key_prefix: str = "routine_builder",
    ) -> None:
        self._key_prefix = key_prefix.strip(":") or "routine_builder"
        self._redis = redis.Redis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=connect_timeout_s,
            socket_timeout=socket_timeout_s,
        )

    def _key(self, key: str) -> str:
        return f"{self._key_prefix}:{key}"

    def get_item(self, key: str) -> Optional[str]:
        value = self._redis.get(self._key(key))
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        self._redis.set(self._key(key), value)

    def close(self) -> None:
        self._redis.close()


def build_storage(url: Optional[str]) -> KeyValueStorage:
    """Pick a backend from `memory://`, `redis://...`, `file://<path>` or a bare path."""
    raw = (url or "").strip()
    if not raw or raw == "memory://":
        return InMemoryStorage()

    parsed = urlparse(raw)
    if parsed.scheme in {"redis", "rediss", "unix"}:
        return RedisStorage(redis_url=raw)
    if parsed.scheme == "file":
        return JsonFileStorage((parsed.netloc or "") + parsed.path)
    if parsed.scheme and len(parsed.scheme) > 1:
        raise ValueError(f"unsupported storage url scheme: {parsed.scheme}")
    return JsonFileStorage(raw)
