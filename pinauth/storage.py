"""
Durable key-value persistence for the PIN vault.

Values are strings; a missing entry reads as ``None``. ``set_many`` writes
several entries as one unit, so readers never see half of an update.
"""
import os
import logging
import tempfile
import threading
from pathlib import Path
from typing import Optional, Protocol, Union
from collections.abc import Mapping

import orjson

logger = logging.getLogger("pinauth.storage")


class KeyValueStore(Protocol):
    """Contract of the preferences store scoped to the vault."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def set_many(self, items: Mapping[str, str]) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """Dict-backed store, lost at process exit."""

    def __init__(self, data: Optional[Mapping[str, str]] = None) -> None:
        self._data: dict[str, str] = dict(data or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self.set_many({key: value})

    def set_many(self, items: Mapping[str, str]) -> None:
        with self._lock:
            self._data.update(items)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)


class JsonFileStore:
    """Store persisted as a single orjson-encoded object.

    Every write replaces the whole file via a temporary file and
    ``os.replace``, which is atomic on POSIX and Windows.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, str]:
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError:
            return {}
        if not raw:
            return {}
        try:
            data = orjson.loads(raw)
        except orjson.JSONDecodeError:
            logger.warning("Ignoring unreadable preferences file %s", self._path)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed preferences file %s", self._path)
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(
            dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "wb") as fp:
                fp.write(orjson.dumps(data, option=orjson.OPT_SORT_KEYS))
                fp.flush()
                os.fsync(fp.fileno())
            os.replace(tmp, self._path)
        except BaseException:
            try:
                os.unlink(tmp)
            except FileNotFoundError:
                pass
            raise

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        self.set_many({key: value})

    def set_many(self, items: Mapping[str, str]) -> None:
        with self._lock:
            data = self._read()
            data.update(items)
            self._write(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if data.pop(key, None) is not None:
                self._write(data)
