"""In-process DocumentStore. Zero dependencies; state lives as long as the process."""

from __future__ import annotations

import copy
from collections import defaultdict


class MemoryDocumentStore:
    """DocumentStore backed by plain dicts. Returned values are copies."""

    def __init__(self) -> None:
        self._docs: dict[str, dict[str, dict]] = defaultdict(dict)
        self._subs: dict[tuple[str, str, str], list[dict]] = defaultdict(list)

    async def get(self, collection: str, doc_id: str) -> dict | None:
        doc = self._docs[collection].get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def set(self, collection: str, doc_id: str, data: dict) -> None:
        self._docs[collection][doc_id] = copy.deepcopy(data)

    async def update(self, collection: str, doc_id: str, changes: dict) -> bool:
        doc = self._docs[collection].get(doc_id)
        if doc is None:
            return False
        doc.update(copy.deepcopy(changes))
        return True

    async def all(self, collection: str) -> list[dict]:
        return [copy.deepcopy(d) for d in self._docs[collection].values()]

    async def append(self, collection: str, doc_id: str, sub: str, item: dict) -> None:
        self._subs[(collection, doc_id, sub)].append(copy.deepcopy(item))

    async def items(self, collection: str, doc_id: str, sub: str) -> list[dict]:
        return [copy.deepcopy(i) for i in self._subs.get((collection, doc_id, sub), [])]

    async def update_item(
        self, collection: str, doc_id: str, sub: str, item_id: str, changes: dict,
    ) -> bool:
        for item in self._subs.get((collection, doc_id, sub), []):
            if item.get("id") == item_id:
                item.update(copy.deepcopy(changes))
                return True
        return False

    async def clear(self, collection: str, doc_id: str, sub: str) -> int:
        removed = self._subs.pop((collection, doc_id, sub), [])
        return len(removed)

    def writable(self) -> bool:
        return True
