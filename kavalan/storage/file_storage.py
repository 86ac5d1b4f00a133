"""File-based DocumentStore implementation.

Stores data as:
- One JSON file per document: base_dir/<collection>/<doc_id>.json
- One JSON Lines file per sub-collection: base_dir/<collection>/<doc_id>/<sub>.jsonl

Appends are plain line appends; item updates and clears rewrite the
sub-collection file. There is no locking: concurrent writers race and
the last write wins.
"""

from __future__ import annotations

import json
import re
from pathlib import Path

import structlog

log = structlog.get_logger()

_SAFE_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.\-]*$")


def _is_safe(value: str) -> bool:
    return bool(_SAFE_NAME.match(value)) and ".." not in value


def _check_name(value: str) -> str:
    if not _is_safe(value):
        raise ValueError(f"unsafe storage key: {value!r}")
    return value


class FileDocumentStore:
    """DocumentStore backed by JSON / JSON Lines files on disk."""

    def __init__(self, base_dir: str | Path) -> None:
        self._base_dir = Path(base_dir)
        self._base_dir.mkdir(parents=True, exist_ok=True)

    def _collection_dir(self, collection: str) -> Path:
        path = self._base_dir / _check_name(collection)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _doc_path(self, collection: str, doc_id: str) -> Path:
        return self._collection_dir(collection) / f"{_check_name(doc_id)}.json"

    def _sub_path(self, collection: str, doc_id: str, sub: str) -> Path:
        return self._collection_dir(collection) / _check_name(doc_id) / f"{_check_name(sub)}.jsonl"

    @staticmethod
    def _write_json(path: Path, data: dict) -> None:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, separators=(",", ":"), ensure_ascii=False)

    @staticmethod
    def _read_lines(path: Path) -> list[dict]:
        if not path.exists():
            return []
        items = []
        with open(path, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line:
                    items.append(json.loads(line))
        return items

    @staticmethod
    def _write_lines(path: Path, items: list[dict]) -> None:
        with open(path, "w", encoding="utf-8") as f:
            for item in items:
                f.write(json.dumps(item, separators=(",", ":"), ensure_ascii=False) + "\n")

    async def get(self, collection: str, doc_id: str) -> dict | None:
        # A key that could never have been written is simply absent.
        if not _is_safe(doc_id):
            return None
        path = self._doc_path(collection, doc_id)
        if not path.exists():
            return None
        with open(path, encoding="utf-8") as f:
            return json.load(f)

    async def set(self, collection: str, doc_id: str, data: dict) -> None:
        path = self._doc_path(collection, doc_id)
        self._write_json(path, data)
        log.debug("document_written", collection=collection, doc_id=doc_id)

    async def update(self, collection: str, doc_id: str, changes: dict) -> bool:
        current = await self.get(collection, doc_id)
        if current is None:
            return False
        current.update(changes)
        await self.set(collection, doc_id, current)
        return True

    async def all(self, collection: str) -> list[dict]:
        docs = []
        for path in sorted(self._collection_dir(collection).glob("*.json")):
            with open(path, encoding="utf-8") as f:
                docs.append(json.load(f))
        return docs

    async def append(self, collection: str, doc_id: str, sub: str, item: dict) -> None:
        path = self._sub_path(collection, doc_id, sub)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(item, separators=(",", ":"), ensure_ascii=False) + "\n")
        log.debug("item_appended", collection=collection, doc_id=doc_id, sub=sub,
                  item_id=item.get("id"))

    async def items(self, collection: str, doc_id: str, sub: str) -> list[dict]:
        if not _is_safe(doc_id):
            return []
        return self._read_lines(self._sub_path(collection, doc_id, sub))

    async def update_item(
        self, collection: str, doc_id: str, sub: str, item_id: str, changes: dict,
    ) -> bool:
        if not _is_safe(doc_id):
            return False
        path = self._sub_path(collection, doc_id, sub)
        items = self._read_lines(path)
        found = False
        for item in items:
            if item.get("id") == item_id:
                item.update(changes)
                found = True
                break
        if found:
            self._write_lines(path, items)
        return found

    async def clear(self, collection: str, doc_id: str, sub: str) -> int:
        if not _is_safe(doc_id):
            return 0
        path = self._sub_path(collection, doc_id, sub)
        count = len(self._read_lines(path))
        if path.exists():
            path.unlink()
        return count

    def writable(self) -> bool:
        probe = self._base_dir / ".write_probe"
        try:
            probe.write_text("ok")
            probe.unlink()
        except OSError:
            return False
        return True
