import json
from datetime import date, datetime, timezone

import httpx
import pytest
from google.cloud.firestore import GeoPoint

from adon.core.errors import ConfigurationError, IndexSyncError
from adon.services.index_sync import IndexSynchronizer, build_index_object, normalize, to_millis


class RecordingTransport:
    """Collects requests and answers with a fixed status."""

    def __init__(self, status_code=200, body=None):
        self.requests = []
        self.status_code = status_code
        self.body = body if body is not None else {"taskID": 1}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.body)


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def synchronizer(settings, transport):
    client = httpx.AsyncClient(transport=httpx.MockTransport(transport))
    return IndexSynchronizer(settings, client=client)


def test_timestamps_become_epoch_millis():
    ts = datetime(2024, 3, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)
    assert to_millis(ts) == 1709294400123
    assert normalize({"createdAt": ts}) == {"createdAt": 1709294400123}


def test_normalize_is_recursive():
    ts = datetime(2024, 1, 1, tzinfo=timezone.utc)
    doc = {
        "location": GeoPoint(47.4979, 19.0402),
        "history": [{"at": ts, "price": 10}],
        "meta": {"listedOn": date(2024, 1, 1), "tags": ("a", "b")},
        "title": "Lamp",
        "sold": False,
    }
    assert normalize(doc) == {
        "location": {"lat": 47.4979, "lng": 19.0402},
        "history": [{"at": 1704067200000, "price": 10}],
        "meta": {"listedOn": 1704067200000, "tags": ["a", "b"]},
        "title": "Lamp",
        "sold": False,
    }


def test_object_id_and_id_cannot_be_shadowed():
    obj = build_index_object("l1", {"id": "spoofed", "objectID": "spoofed", "title": "Lamp"})
    assert obj["objectID"] == "l1"
    assert obj["id"] == "l1"
    assert obj["title"] == "Lamp"


@pytest.mark.asyncio
async def test_upsert_puts_normalized_document(synchronizer, transport):
    ts = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

    await synchronizer.sync("l1", {"title": "Lamp", "createdAt": ts})

    assert len(transport.requests) == 1
    request = transport.requests[0]
    assert request.method == "PUT"
    assert request.url.host.lower() == "testapp.algolia.net"
    assert request.url.path == "/1/indexes/listings/l1"
    assert request.headers["X-Algolia-Application-Id"] == "TESTAPP"
    assert request.headers["X-Algolia-API-Key"] == "algolia-key"
    assert json.loads(request.content) == {"title": "Lamp", "createdAt": 1709294400000, "objectID": "l1", "id": "l1"}


@pytest.mark.asyncio
async def test_delete_sends_exactly_one_delete(synchronizer, transport):
    await synchronizer.sync("l1", None)

    assert [r.method for r in transport.requests] == ["DELETE"]
    assert transport.requests[0].url.path == "/1/indexes/listings/l1"


@pytest.mark.asyncio
async def test_non_2xx_raises_with_status_and_body(settings):
    transport = RecordingTransport(status_code=403, body={"message": "Invalid API key"})
    synchronizer = IndexSynchronizer(settings, client=httpx.AsyncClient(transport=httpx.MockTransport(transport)))

    with pytest.raises(IndexSyncError) as exc_info:
        await synchronizer.upsert("l1", {"title": "Lamp"})

    assert exc_info.value.status_code == 403
    assert "Invalid API key" in exc_info.value.body
    assert "403" in str(exc_info.value)


@pytest.mark.asyncio
async def test_missing_credentials_fail_before_any_request(settings, transport):
    settings.ALGOLIA_ADMIN_KEY = None
    synchronizer = IndexSynchronizer(settings, client=httpx.AsyncClient(transport=httpx.MockTransport(transport)))

    with pytest.raises(ConfigurationError):
        await synchronizer.sync("l1", {"title": "Lamp"})
    assert transport.requests == []


@pytest.mark.asyncio
async def test_reindex_all_upserts_every_listing(synchronizer, transport, store):
    store.seed("listings/a", {"title": "A"})
    store.seed("listings/b", {"title": "B"})
    store.seed("users/u1", {"name": "not a listing"})

    count = await synchronizer.reindex_all(store)

    assert count == 2
    assert sorted(r.url.path for r in transport.requests) == ["/1/indexes/listings/a", "/1/indexes/listings/b"]
