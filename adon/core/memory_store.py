"""In-memory DocumentStore. Records documents in a dict for local runs and tests."""

import copy
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from adon.core.errors import NotFoundError
from adon.core.store import Document, DocumentStore


class InMemoryStore(DocumentStore):
    """Documents keyed by full path. Reads and writes copy, so callers never share state."""

    def __init__(self):
        self.documents: Dict[str, Document] = {}

    def seed(self, path: str, data: Document) -> None:
        """Put a document in place synchronously (test setup)."""
        self.documents[path] = copy.deepcopy(data)

    def _children(self, collection: str) -> List[Tuple[str, Document]]:
        prefix = collection.rstrip("/") + "/"
        children = []
        for path, data in self.documents.items():
            if path.startswith(prefix) and "/" not in path[len(prefix):]:
                children.append((path[len(prefix):], copy.deepcopy(data)))
        return children

    async def get(self, path: str) -> Optional[Document]:
        data = self.documents.get(path)
        return copy.deepcopy(data) if data is not None else None

    async def query(self, collection, filters, limit=None):
        matches = [
            (doc_id, data)
            for doc_id, data in self._children(collection)
            if all(data.get(field) == value for field, value in filters.items())
        ]
        return matches[:limit] if limit is not None else matches

    async def stream(self, collection):
        return self._children(collection)

    async def set(self, path, data, merge=False):
        if merge and path in self.documents:
            _merge_into(self.documents[path], data)
        else:
            self.documents[path] = copy.deepcopy(data)

    async def update(self, path, fields):
        if path not in self.documents:
            raise NotFoundError(f"No document to update: {path}")
        doc = self.documents[path]
        for key, value in fields.items():
            *parents, leaf = key.split(".")
            target = doc
            for part in parents:
                target = target.setdefault(part, {})
            target[leaf] = copy.deepcopy(value)

    async def create(self, path, data):
        if path in self.documents:
            return False
        self.documents[path] = copy.deepcopy(data)
        return True

    async def add(self, collection, data):
        doc_id = self.new_id(collection)
        self.documents[f"{collection}/{doc_id}"] = copy.deepcopy(data)
        return doc_id

    def new_id(self, collection):
        return uuid4().hex[:20]

    async def increment(self, path, field, amount=1):
        doc = self.documents.setdefault(path, {})
        doc[field] = doc.get(field, 0) + amount

    def server_timestamp(self) -> Any:
        return datetime.now(timezone.utc)


def _merge_into(target: Document, data: Document) -> None:
    """Firestore merge semantics: nested maps merge key by key, anything else replaces."""
    for key, value in data.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _merge_into(target[key], value)
        else:
            target[key] = copy.deepcopy(value)
