# session/store.py
from __future__ import annotations
import os
import re
from pathlib import Path
from typing import Dict, Optional

from livecontext.core.constants import DEFAULT_STORE_DIR
from livecontext.core.logging import get_logger

logger = get_logger("livecontext.session.store")


class MemoryStore:
    def __init__(self) -> None:
        self._blobs: Dict[str, bytes] = {}

    def load(self, key: str) -> Optional[bytes]:
        return self._blobs.get(key)

    def save(self, key: str, blob: bytes) -> None:
        self._blobs[key] = blob


class JsonFileStore:
    """One ``<key>.json`` file per key under ``base_dir``."""

    def __init__(self, base_dir: Optional[str] = None):
        self.base = Path(base_dir or os.getenv("STORE_DIR", DEFAULT_STORE_DIR))

    def _path(self, key: str) -> Path:
        safe = re.sub(r"[^A-Za-z0-9_-]+", "_", key).strip("_") or "blob"
        return self.base / f"{safe}.json"

    def load(self, key: str) -> Optional[bytes]:
        p = self._path(key)
        if not p.exists():
            return None
        return p.read_bytes()

    def save(self, key: str, blob: bytes) -> None:
        self.base.mkdir(parents=True, exist_ok=True)
        p = self._path(key)
        tmp = p.with_suffix(".tmp")
        tmp.write_bytes(blob)
        tmp.replace(p)
        logger.info("STORE_SAVE key=%s bytes=%s path=%s", key, len(blob), p)
