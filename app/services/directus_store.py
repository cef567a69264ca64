"""
Headless Backend Item Store

Talks to a Directus-compatible REST API (`/items/{collection}`) with a static
server-held admin bearer token. Filters are JSON-encoded into the `filter`
query parameter, the same way the backend's own SDK does it.
"""
import json
import logging
from typing import Any, Dict, Optional

import httpx
from pydantic_core import to_jsonable_python

from app import config
from app.errors import BackendError, ConfigurationError
from app.services.item_store import ItemStore

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    """First error message reported by the backend, if any"""
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    errors = payload.get("errors") if isinstance(payload, dict) else None
    if errors:
        return errors[0].get("message") or response.reason_phrase
    return response.reason_phrase


class DirectusItemStore(ItemStore):
    """Item store backed by the headless backend's REST API"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        admin_token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = (base_url if base_url is not None else config.DIRECTUS_URL).rstrip("/")
        self.admin_token = admin_token if admin_token is not None else config.DIRECTUS_ADMIN_TOKEN
        self.timeout = timeout if timeout is not None else config.HTTP_TIMEOUT_SECONDS
        self._client = client

    def _check_configuration(self) -> None:
        if not self.admin_token:
            raise ConfigurationError("Server configuration error: backend admin token missing")
        if not self.base_url:
            raise ConfigurationError("Server configuration error: backend URL missing")

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
        return self._client

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        body: Any = None,
        allow_not_found: bool = False,
    ) -> Any:
        self._check_configuration()
        client = self._get_client()

        try:
            response = await client.request(
                method,
                path,
                params=params,
                json=to_jsonable_python(body) if body is not None else None,
                headers={"Authorization": f"Bearer {self.admin_token}"},
            )
        except httpx.HTTPError as e:
            logger.error(f"Backend request {method} {path} failed: {e}")
            raise BackendError(f"Backend request failed: {e}")

        if allow_not_found and response.status_code == 404:
            return None

        if response.status_code == 401:
            raise BackendError(
                "Invalid backend admin token. Use a static access token, not a session token.",
                status_code=401,
            )

        if response.is_error:
            message = _error_message(response)
            logger.error(f"Backend {method} {path} returned {response.status_code}: {message}")
            raise BackendError(message, status_code=response.status_code)

        if response.status_code == 204 or not response.content:
            return None
        return response.json().get("data")

    async def list_items(self, collection, filter=None, sort=None, limit=None):
        params: Dict[str, Any] = {"limit": limit if limit is not None else -1}
        if filter:
            params["filter"] = json.dumps(to_jsonable_python(filter))
        if sort:
            params["sort"] = ",".join(sort)

        data = await self._request("GET", f"/items/{collection}", params=params)
        return data or []

    async def read_item(self, collection, item_id):
        return await self._request("GET", f"/items/{collection}/{item_id}", allow_not_found=True)

    async def create_item(self, collection, data):
        return await self._request("POST", f"/items/{collection}", body=data)

    async def update_item(self, collection, item_id, data):
        return await self._request(
            "PATCH", f"/items/{collection}/{item_id}", body=data, allow_not_found=True
        )

    async def update_item_if(self, collection, item_id, condition, data):
        # Update-by-query: the backend applies the filter and the patch in one transaction
        query_filter = {"_and": [{"id": {"_eq": item_id}}, condition]} if condition else {"id": {"_eq": item_id}}
        updated = await self._request(
            "PATCH",
            f"/items/{collection}",
            body={"query": {"filter": query_filter}, "data": data},
        )
        if not updated:
            return None
        return updated[0] if isinstance(updated, list) else updated

    async def delete_item(self, collection, item_id):
        if await self.read_item(collection, item_id) is None:
            return False
        await self._request("DELETE", f"/items/{collection}/{item_id}")
        return True

    async def aclose(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None
