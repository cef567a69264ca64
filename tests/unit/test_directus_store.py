"""
Unit tests for the headless REST backend item store
"""
import json
from datetime import datetime, timezone

import httpx
import pytest

from app.errors import BackendError, ConfigurationError
from app.services.directus_store import DirectusItemStore


class Backend:
    """Records requests and replays canned responses by (method, path)"""

    def __init__(self, responses=None):
        self.requests = []
        self.responses = responses or {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.responses:
            return httpx.Response(200, json={"data": []})
        status_code, payload = self.responses[key]
        if payload is None:
            return httpx.Response(status_code)
        return httpx.Response(status_code, json=payload)


def make_store(backend, token="static-admin-token"):
    client = httpx.AsyncClient(base_url="https://cms.example", transport=httpx.MockTransport(backend))
    return DirectusItemStore(base_url="https://cms.example", admin_token=token, client=client)


class TestListItems:

    @pytest.mark.asyncio
    async def test_filter_sort_and_limit_are_query_parameters(self):
        backend = Backend({("GET", "/items/sessions"): (200, {"data": [{"id": "s1"}]})})
        store = make_store(backend)
        now = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)

        items = await store.list_items(
            "sessions",
            filter={"_and": [{"end_at": {"_lt": now}}, {"status": {"_in": ["scheduled", "in_progress"]}}]},
            sort=["end_at", "-start_at"],
            limit=100,
        )

        assert items == [{"id": "s1"}]
        request = backend.requests[0]
        assert request.headers["authorization"] == "Bearer static-admin-token"
        assert request.url.params["limit"] == "100"
        assert request.url.params["sort"] == "end_at,-start_at"
        assert json.loads(request.url.params["filter"]) == {
            "_and": [
                {"end_at": {"_lt": "2026-03-02T12:00:00Z"}},
                {"status": {"_in": ["scheduled", "in_progress"]}},
            ]
        }

    @pytest.mark.asyncio
    async def test_unlimited_by_default(self):
        backend = Backend()
        store = make_store(backend)

        assert await store.list_items("week_slots") == []
        assert backend.requests[0].url.params["limit"] == "-1"
        assert "filter" not in backend.requests[0].url.params


class TestReadAndWrite:

    @pytest.mark.asyncio
    async def test_read_missing_item(self):
        backend = Backend({("GET", "/items/subscriptions/abc"): (404, {"errors": [{"message": "Not found"}]})})

        assert await make_store(backend).read_item("subscriptions", "abc") is None

    @pytest.mark.asyncio
    async def test_create_item_posts_json(self):
        backend = Backend({("POST", "/items/sessions"): (200, {"data": {"id": "new", "status": "scheduled"}})})
        store = make_store(backend)

        item = await store.create_item(
            "sessions",
            {"status": "scheduled", "start_at": datetime(2026, 3, 2, 15, 0, tzinfo=timezone.utc)},
        )

        assert item == {"id": "new", "status": "scheduled"}
        body = json.loads(backend.requests[0].content)
        assert body == {"status": "scheduled", "start_at": "2026-03-02T15:00:00Z"}

    @pytest.mark.asyncio
    async def test_conditional_update_sends_query_filter(self):
        backend = Backend({("PATCH", "/items/subscription_weeks"): (200, {"data": [{"id": "w1", "status": "approved"}]})})
        store = make_store(backend)

        item = await store.update_item_if(
            "subscription_weeks", "w1", {"status": {"_eq": "submitted"}}, {"status": "approved"}
        )

        assert item == {"id": "w1", "status": "approved"}
        body = json.loads(backend.requests[0].content)
        assert body == {
            "query": {"filter": {"_and": [{"id": {"_eq": "w1"}}, {"status": {"_eq": "submitted"}}]}},
            "data": {"status": "approved"},
        }

    @pytest.mark.asyncio
    async def test_conditional_update_with_no_match(self):
        backend = Backend({("PATCH", "/items/subscription_weeks"): (200, {"data": []})})

        item = await make_store(backend).update_item_if(
            "subscription_weeks", "w1", {"status": {"_eq": "submitted"}}, {"status": "approved"}
        )

        assert item is None

    @pytest.mark.asyncio
    async def test_delete_item(self):
        backend = Backend({
            ("GET", "/items/week_slots/s1"): (200, {"data": {"id": "s1"}}),
            ("DELETE", "/items/week_slots/s1"): (204, None),
        })

        assert await make_store(backend).delete_item("week_slots", "s1") is True
        assert [r.method for r in backend.requests] == ["GET", "DELETE"]


class TestErrors:

    @pytest.mark.asyncio
    async def test_missing_admin_token(self):
        backend = Backend()
        store = make_store(backend, token="")

        with pytest.raises(ConfigurationError) as exc_info:
            await store.read_item("subscriptions", "abc")

        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "Server configuration error: backend admin token missing"
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_invalid_token(self):
        backend = Backend({("GET", "/items/subscriptions/abc"): (401, {"errors": [{"message": "Invalid user credentials."}]})})

        with pytest.raises(BackendError) as exc_info:
            await make_store(backend).read_item("subscriptions", "abc")

        assert exc_info.value.status_code == 401
        assert "static access token" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_backend_message_is_forwarded(self):
        backend = Backend({
            ("POST", "/items/sessions"): (400, {"errors": [{"message": "Value for field \"start_at\" is invalid"}]})
        })

        with pytest.raises(BackendError) as exc_info:
            await make_store(backend).create_item("sessions", {"start_at": "tomorrow"})

        assert exc_info.value.status_code == 400
        assert exc_info.value.message == 'Value for field "start_at" is invalid'

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def unreachable(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(BackendError, match="Backend request failed"):
            await make_store(unreachable).list_items("sessions")
