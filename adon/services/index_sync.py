"""
Keeps the Algolia listings index consistent with the listings collection.

Deletes remove the object; creates and updates upsert a normalized copy of
the document. Any non-2xx answer from Algolia is raised, never swallowed,
so the trigger fails and the write event is redelivered.
"""
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, NamedTuple, Optional
from urllib.parse import quote

import httpx
from google.cloud.firestore import DocumentReference, GeoPoint

from adon.core.config import Settings
from adon.core.errors import ConfigurationError, IndexSyncError
from adon.core.store import DocumentStore

logger = logging.getLogger(__name__)

LISTINGS = "listings"
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_millis(value: datetime) -> int:
    """Milliseconds since the epoch; naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - _EPOCH) // timedelta(milliseconds=1)


def normalize(value: Any) -> Any:
    """
    Convert store-native values into JSON-safe ones, recursively.

    Timestamps (Firestore returns datetime subclasses) and dates become epoch
    milliseconds, geo points become {lat, lng}, references become their path.
    """
    if isinstance(value, datetime):
        return to_millis(value)
    if isinstance(value, date):
        return to_millis(datetime.combine(value, time.min, tzinfo=timezone.utc))
    if isinstance(value, GeoPoint):
        return {"lat": value.latitude, "lng": value.longitude}
    if isinstance(value, DocumentReference):
        return value.path
    if isinstance(value, dict):
        return {key: normalize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize(item) for item in value]
    return value


def build_index_object(document_id: str, document: Dict[str, Any]) -> Dict[str, Any]:
    """Normalized document with objectID and id pinned to the document id."""
    return {
        **normalize(document),
        "objectID": document_id,
        "id": document_id,
    }


class AlgoliaCredentials(NamedTuple):
    app_id: str
    api_key: str
    index_name: str

    @classmethod
    def from_settings(cls, settings: Settings) -> "AlgoliaCredentials":
        if not settings.ALGOLIA_APP_ID or not settings.ALGOLIA_ADMIN_KEY:
            raise ConfigurationError("Algolia credentials are not configured (ALGOLIA_APP_ID / ALGOLIA_ADMIN_KEY)")
        return cls(settings.ALGOLIA_APP_ID, settings.ALGOLIA_ADMIN_KEY, settings.ALGOLIA_INDEX_NAME)

    @property
    def base_url(self) -> str:
        return f"https://{self.app_id}.algolia.net/1/indexes/{quote(self.index_name, safe='')}"

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "X-Algolia-Application-Id": self.app_id,
            "X-Algolia-API-Key": self.api_key,
        }


class IndexSynchronizer:
    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        # Injected client (tests); otherwise one short-lived client per call
        self._client = client

    async def _request(self, method: str, object_id: str, payload: Optional[Dict[str, Any]] = None) -> httpx.Response:
        creds = AlgoliaCredentials.from_settings(self.settings)
        url = f"{creds.base_url}/{quote(object_id, safe='')}"

        if self._client is not None:
            response = await self._client.request(method, url, json=payload, headers=creds.headers)
        else:
            async with httpx.AsyncClient(timeout=self.settings.HTTP_TIMEOUT_SECONDS) as client:
                response = await client.request(method, url, json=payload, headers=creds.headers)

        if not response.is_success:
            logger.error(f"❌ Algolia {method} {object_id} failed {response.status_code}: {response.text}")
            raise IndexSyncError(
                f"Algolia {method} {object_id} failed with {response.status_code}: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )
        return response

    async def upsert(self, document_id: str, document: Dict[str, Any]) -> None:
        await self._request("PUT", document_id, build_index_object(document_id, document))
        logger.info(f"🔎 Indexed listing {document_id}")

    async def delete(self, document_id: str) -> None:
        await self._request("DELETE", document_id)
        logger.info(f"🗑️ Removed listing {document_id} from index")

    async def sync(self, document_id: str, after: Optional[Dict[str, Any]]) -> None:
        """Mirror one write: no post-write document means delete."""
        if after is None:
            await self.delete(document_id)
        else:
            await self.upsert(document_id, after)

    async def reindex_all(self, store: DocumentStore, collection: str = LISTINGS) -> int:
        """Upsert every document of `collection`; stops at the first failure."""
        documents = await store.stream(collection)
        for document_id, document in documents:
            await self.upsert(document_id, document)
        logger.info(f"✅ Re-indexed {len(documents)} {collection}")
        return len(documents)
