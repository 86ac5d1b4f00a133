"""Storage interface (port) for keyed documents and ordered sub-collections."""

from __future__ import annotations

from typing import Protocol


class DocumentStore(Protocol):
    """Port: keyed JSON documents, each with optional append-ordered sub-collections.

    Documents are plain dicts. Items in a sub-collection must carry an
    ``"id"`` key and are returned in insertion order. Writes are
    independent last-write-wins; nothing spans documents.
    """

    async def get(self, collection: str, doc_id: str) -> dict | None: ...

    async def set(self, collection: str, doc_id: str, data: dict) -> None: ...

    async def update(self, collection: str, doc_id: str, changes: dict) -> bool: ...

    async def all(self, collection: str) -> list[dict]: ...

    async def append(self, collection: str, doc_id: str, sub: str, item: dict) -> None: ...

    async def items(self, collection: str, doc_id: str, sub: str) -> list[dict]: ...

    async def update_item(
        self, collection: str, doc_id: str, sub: str, item_id: str, changes: dict,
    ) -> bool: ...

    async def clear(self, collection: str, doc_id: str, sub: str) -> int: ...

    def writable(self) -> bool: ...
