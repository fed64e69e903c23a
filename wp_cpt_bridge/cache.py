"""
Key-value cache stores for serialized WordPress metadata.

Values are opaque text blobs; entries never expire on their own and are only
removed by an explicit flush.
"""

import hashlib
import logging
import os
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

log = logging.getLogger("wp-cpt-bridge.cache")

POST_TYPE_NAMESPACE = "posttype"
TAXONOMY_NAMESPACE = "taxonomy"


def cache_key(kind: str, store_id: Union[int, str]) -> str:
    return f"{kind}_{store_id}"


class CacheStore(Protocol):
    def load(self, key: str) -> Optional[str]: ...

    def save(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...

    def clean(self) -> None: ...


class MemoryCache:
    """Process-local cache, mostly for tests and single-worker setups."""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    def load(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def save(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def clean(self) -> None:
        self._data.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._data


class FileCache:
    """
    One file per key under a directory.

    Writes go to a temporary file first and are moved into place, so a reader
    never sees a half-written entry.
    """

    suffix = ".cache"

    def __init__(self, directory: Union[str, Path]) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        digest = hashlib.sha1(key.encode("utf-8")).hexdigest()[:12]
        safe = "".join(c if c.isalnum() or c in "-_" else "_" for c in key)
        return self.directory / f"{safe}-{digest}{self.suffix}"

    def load(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def save(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp = path.with_name(f"{path.name}.{os.getpid()}.tmp")
        try:
            tmp.write_text(value, encoding="utf-8")
            os.replace(tmp, path)
        finally:
            tmp.unlink(missing_ok=True)
        log.debug("Saved cache entry %s (%d bytes)", key, len(value))

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def clean(self) -> None:
        for path in self.directory.glob(f"*{self.suffix}"):
            path.unlink(missing_ok=True)


def build_cache(cache_dir: Optional[str] = None) -> CacheStore:
    if cache_dir:
        log.info("Using file cache at %s", cache_dir)
        return FileCache(cache_dir)
    return MemoryCache()
