import os
from typing import Any, Optional
import aiohttp

from datahub.config import API_KEY_HEADER


class DataHubClientError(Exception):
    def __init__(self, status: int, message: str):
        super().__init__(f"{status}: {message}")
        self.status = status
        self.message = message


def build_search_params(
    q: str,
    source_type: Optional[str] = None,
    status: Optional[str] = None,
    owner: Optional[str] = None,
    tags: Optional[list[str]] = None,
    fuzzy: bool = False,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> dict[str, str]:
    params = {"q": q}
    if source_type:
        params["source_type"] = source_type
    if status:
        params["status"] = status
    if owner:
        params["owner"] = owner
    if tags:
        params["tags"] = ",".join(tags)
    if fuzzy:
        params["fuzzy"] = "true"
    if limit:
        params["limit"] = str(limit)
    if offset:
        params["offset"] = str(offset)
    return params


def format_bytes(num_bytes: int) -> str:
    if num_bytes >= 1024**3:
        return f"{num_bytes / 1024**3:.1f} GB"
    if num_bytes >= 1024**2:
        return f"{num_bytes / 1024**2:.1f} MB"
    if num_bytes >= 1024:
        return f"{num_bytes / 1024:.1f} KB"
    return f"{num_bytes} B"


class DataHubClient:
    """Async client for the DataHub REST API.

    Usage::

        async with DataHubClient() as client:
            results = await client.search_datasets("handbook", fuzzy=True)
    """

    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None):
        self.base_url = (base_url or os.getenv("DATAHUB_URL", "http://localhost:8000")).rstrip("/")
        self.api_key = api_key or os.getenv("DATAHUB_API_KEY")
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        headers = {API_KEY_HEADER: self.api_key} if self.api_key else {}
        self._session = aiohttp.ClientSession(headers=headers)
        return self

    async def __aexit__(self, *exc):
        await self.close()

    async def close(self):
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        if self._session is None:
            raise RuntimeError("DataHubClient must be used as an async context manager")

        async with self._session.request(method, f"{self.base_url}{path}", **kwargs) as response:
            if response.status >= 400:
                try:
                    body = await response.json()
                    message = body.get("error", response.reason)
                except (aiohttp.ContentTypeError, ValueError):
                    message = await response.text()
                raise DataHubClientError(response.status, message)
            if response.status == 204:
                return None
            return await response.json()

    async def list_datasets(
        self,
        source_type: Optional[str] = None,
        status: Optional[str] = None,
        owner: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> dict[str, Any]:
        params = {
            key: str(value)
            for key, value in {
                "source_type": source_type,
                "status": status,
                "owner": owner,
                "limit": limit,
                "offset": offset,
            }.items()
            if value
        }
        return await self._request("GET", "/api/datasets", params=params)

    async def get_dataset(self, dataset_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/api/datasets/{dataset_id}")

    async def create_dataset(self, dataset: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", "/api/datasets", json=dataset)

    async def search_datasets(self, q: str, **filters) -> dict[str, Any]:
        return await self._request(
            "GET", "/api/datasets/search", params=build_search_params(q, **filters)
        )

    async def get_stats(self) -> dict[str, Any]:
        return await self._request("GET", "/api/datasets/stats")

    async def update_dataset(self, dataset_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        return await self._request("PATCH", f"/api/datasets/{dataset_id}", json=updates)

    async def delete_dataset(self, dataset_id: str) -> None:
        await self._request("DELETE", f"/api/datasets/{dataset_id}")
