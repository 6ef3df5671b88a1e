"""
Local resumable cache.

Backends store opaque strings by key:
- MemoryCache: process-local dict (tests, one-shot CLI runs)
- JsonFileCache: one JSON file per key under ~/.ninja/cache/

VersionedCache wraps a backend with a {schema_version, payload} envelope.
Reads check the version explicitly; a mismatch or an unreadable entry is a
cache miss and the entry is discarded. Entries are never migrated field by
field.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol, TypeVar
from urllib.parse import quote, unquote

from loguru import logger
from pydantic import BaseModel, ValidationError

from practice_engine.core.errors import StaleCache

ModelT = TypeVar("ModelT", bound=BaseModel)


class CacheBackend(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> bool: ...

    def keys(self, prefix: str = "") -> list[str]: ...


class MemoryCache:
    """Dict-backed cache backend."""

    def __init__(self):
        self._entries: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._entries.get(key)

    def set(self, key: str, value: str) -> None:
        self._entries[key] = value

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self._entries if k.startswith(prefix))


class JsonFileCache:
    """
    File-backed cache backend.

    Each key is stored as `<quoted key>.json` so keys survive a round trip
    through the file system unchanged.
    """

    def __init__(self, cache_dir: Path):
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.cache_dir / f"{quote(key, safe='')}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning(f"Cache entry {key} unreadable: {e}")
            return None

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(value, encoding="utf-8")
        tmp.replace(path)

    def delete(self, key: str) -> bool:
        path = self._path(key)
        if path.exists():
            path.unlink()
            return True
        return False

    def keys(self, prefix: str = "") -> list[str]:
        found = (unquote(p.stem) for p in self.cache_dir.glob("*.json"))
        return sorted(k for k in found if k.startswith(prefix))


class CacheEnvelope(BaseModel):
    schema_version: int
    payload: Any


class VersionedCache:
    """Schema-versioned view over a cache backend."""

    def __init__(self, backend: CacheBackend, schema_version: int):
        self.backend = backend
        self.schema_version = schema_version

    def read_payload(self, key: str) -> Any | None:
        """
        Raw payload for a key, or None on miss, corruption or version mismatch.
        """
        raw = self.backend.get(key)
        if raw is None:
            logger.debug(f"Cache miss: {key}")
            return None

        try:
            envelope = CacheEnvelope.model_validate_json(raw)
            self._check_version(key, envelope)
        except ValidationError as e:
            logger.warning(f"Discarding corrupt cache entry {key}: {e.error_count()} errors")
            self.backend.delete(key)
            return None
        except StaleCache as e:
            logger.warning(f"Discarding stale cache entry: {e}")
            self.backend.delete(key)
            return None

        logger.debug(f"Cache hit: {key}")
        return envelope.payload

    def read(self, key: str, model: type[ModelT]) -> ModelT | None:
        payload = self.read_payload(key)
        if payload is None:
            return None
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable {model.__name__} at {key}: {e.error_count()} errors")
            self.backend.delete(key)
            return None

    def write_payload(self, key: str, payload: Any) -> None:
        envelope = CacheEnvelope(schema_version=self.schema_version, payload=payload)
        self.backend.set(key, envelope.model_dump_json())

    def write(self, key: str, value: BaseModel) -> None:
        self.write_payload(key, value.model_dump(mode="json"))

    def delete(self, key: str) -> bool:
        return self.backend.delete(key)

    def keys(self, prefix: str = "") -> list[str]:
        return self.backend.keys(prefix)

    def _check_version(self, key: str, envelope: CacheEnvelope) -> None:
        if envelope.schema_version != self.schema_version:
            raise StaleCache(key, envelope.schema_version, self.schema_version)
