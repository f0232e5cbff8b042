# session/archive.py
from __future__ import annotations
from typing import List, Sequence, Tuple

from pydantic import TypeAdapter, ValidationError

from livecontext.core.constants import SEARCH_HISTORY_STORAGE_KEY, SESSIONS_STORAGE_KEY
from livecontext.core.logging import get_logger
from livecontext.schemas.state import SavedSession, SearchHistoryItem
from livecontext.schemas.transports import KeyValueStore

logger = get_logger("livecontext.session.archive")

_sessions_adapter = TypeAdapter(List[SavedSession])
_history_adapter = TypeAdapter(List[SearchHistoryItem])


class SessionArchive:
    """Saved sessions and search history on top of a key-value blob store."""

    def __init__(self, store: KeyValueStore):
        self.store = store
        self.load_errors: List[str] = []

    def _load(self, key: str, adapter: TypeAdapter) -> list:
        blob = self.store.load(key)
        if not blob:
            return []
        try:
            return adapter.validate_json(blob)
        except ValidationError as e:
            logger.warning("ARCHIVE_LOAD_FAILED key=%s errors=%s", key, e.error_count())
            self.load_errors.append(key)
            return []

    def load_sessions(self) -> Tuple[SavedSession, ...]:
        return tuple(self._load(SESSIONS_STORAGE_KEY, _sessions_adapter))

    def save_sessions(self, sessions: Sequence[SavedSession]) -> None:
        self.store.save(SESSIONS_STORAGE_KEY, _sessions_adapter.dump_json(list(sessions)))

    def load_search_history(self) -> Tuple[SearchHistoryItem, ...]:
        return tuple(self._load(SEARCH_HISTORY_STORAGE_KEY, _history_adapter))

    def save_search_history(self, items: Sequence[SearchHistoryItem]) -> None:
        self.store.save(SEARCH_HISTORY_STORAGE_KEY, _history_adapter.dump_json(list(items)))
