"""
Document store access.

The handlers, the dispatcher and the escrow service only talk to `DocumentStore`.
`FirestoreStore` is the production implementation; `InMemoryStore`
(adon/core/memory_store.py) backs local runs and the test suite.

Paths are slash-separated Firestore paths: "users/u1",
"conversations/c1/messages/m1". Documents are plain dicts.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from google.api_core.exceptions import Conflict
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

logger = logging.getLogger(__name__)

Document = Dict[str, Any]


class DocumentStore(ABC):
    """Point reads, equality queries and merge-writes over a document store."""

    @abstractmethod
    async def get(self, path: str) -> Optional[Document]:
        """Return the document at `path`, or None when it does not exist."""

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: Dict[str, Any],
        limit: Optional[int] = None,
    ) -> List[Tuple[str, Document]]:
        """Equality query. Returns (document id, data) pairs."""

    @abstractmethod
    async def stream(self, collection: str) -> List[Tuple[str, Document]]:
        """Every document in a top-level collection."""

    @abstractmethod
    async def set(self, path: str, data: Document, merge: bool = False) -> None:
        ...

    @abstractmethod
    async def update(self, path: str, fields: Dict[str, Any]) -> None:
        """Partial update; dotted keys address nested fields."""

    @abstractmethod
    async def create(self, path: str, data: Document) -> bool:
        """Create-if-absent. Returns False when the document already exists."""

    @abstractmethod
    async def add(self, collection: str, data: Document) -> str:
        """Insert with a generated id and return it."""

    @abstractmethod
    def new_id(self, collection: str) -> str:
        ...

    @abstractmethod
    async def increment(self, path: str, field: str, amount: int = 1) -> None:
        ...

    @abstractmethod
    def server_timestamp(self) -> Any:
        """Value to store for "now"; resolved by the store on write."""


class FirestoreStore(DocumentStore):
    """
    DocumentStore over the google-cloud-firestore client from firebase_admin.

    The client is synchronous, so every call runs in a worker thread
    (same pattern as the FCM send).
    """

    def __init__(self, client: firestore.Client):
        self.client = client

    async def get(self, path: str) -> Optional[Document]:
        snapshot = await asyncio.to_thread(self.client.document(path).get)
        if not snapshot.exists:
            return None
        return snapshot.to_dict()

    async def query(self, collection, filters, limit=None):
        query = self.client.collection(collection)
        for field, value in filters.items():
            query = query.where(filter=FieldFilter(field, "==", value))
        if limit is not None:
            query = query.limit(limit)

        def _run():
            return [(doc.id, doc.to_dict()) for doc in query.stream()]

        return await asyncio.to_thread(_run)

    async def stream(self, collection):
        def _run():
            return [(doc.id, doc.to_dict()) for doc in self.client.collection(collection).stream()]

        return await asyncio.to_thread(_run)

    async def set(self, path, data, merge=False):
        await asyncio.to_thread(self.client.document(path).set, data, merge=merge)

    async def update(self, path, fields):
        await asyncio.to_thread(self.client.document(path).update, fields)

    async def create(self, path, data):
        try:
            await asyncio.to_thread(self.client.document(path).create, data)
        except Conflict:
            logger.info(f"Document {path} already exists, create skipped")
            return False
        return True

    async def add(self, collection, data):
        ref = self.client.collection(collection).document()
        await asyncio.to_thread(ref.set, data)
        return ref.id

    def new_id(self, collection):
        return self.client.collection(collection).document().id

    async def increment(self, path, field, amount=1):
        await asyncio.to_thread(
            self.client.document(path).set, {field: firestore.Increment(amount)}, merge=True
        )

    def server_timestamp(self):
        return firestore.SERVER_TIMESTAMP
