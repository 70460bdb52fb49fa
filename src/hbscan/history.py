from __future__ import annotations

import json
import logging

from hbscan.storage import KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_KEY = "hbscan_search_history"
DEFAULT_HISTORY_LIMIT = 5


class SearchHistoryStore:
    """Most-recent-first list of past query strings.

    Loaded once with ``load()``; every mutation is written back with ``save()``.
    """

    def __init__(
        self,
        store: KeyValueStore,
        key: str = DEFAULT_HISTORY_KEY,
        max_entries: int = DEFAULT_HISTORY_LIMIT,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._store = store
        self._key = key
        self._max_entries = max_entries
        self._entries: list[str] = []

    @property
    def entries(self) -> list[str]:
        return list(self._entries)

    @property
    def max_entries(self) -> int:
        return self._max_entries

    async def load(self) -> list[str]:
        raw = await self._store.get(self._key)
        self._entries = self._decode(raw)
        logger.info("search_history_loaded", extra={"component": "navigator", "count": len(self._entries)})
        return self.entries

    async def save(self) -> None:
        await self._store.set(self._key, json.dumps(self._entries, ensure_ascii=False))

    async def record(self, text: str) -> list[str]:
        query = text.strip()
        if not query:
            return self.entries
        self._entries = [query, *(entry for entry in self._entries if entry != query)][: self._max_entries]
        await self.save()
        return self.entries

    async def clear(self) -> None:
        self._entries = []
        await self.save()

    def _decode(self, raw: str | None) -> list[str]:
        if not raw:
            return []
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("search_history_corrupt", extra={"component": "navigator", "key": self._key})
            return []
        if not isinstance(payload, list):
            return []
        entries: list[str] = []
        for item in payload:
            if isinstance(item, str) and item.strip() and item not in entries:
                entries.append(item)
        return entries[: self._max_entries]
