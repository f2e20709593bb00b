import pytest
from aiohttp import web
from aiohttp import test_utils

from datahub.client import (
    DataHubClient,
    DataHubClientError,
    build_search_params,
    format_bytes,
)
from datahub.config import API_KEY_HEADER


def test_build_search_params():
    params = build_search_params(
        "handbook", source_type="confluence", tags=["engineering", "docs"], fuzzy=True, limit=5
    )

    assert params == {
        "q": "handbook",
        "source_type": "confluence",
        "tags": "engineering,docs",
        "fuzzy": "true",
        "limit": "5",
    }


def test_build_search_params_omits_defaults():
    assert build_search_params("handbook") == {"q": "handbook"}


@pytest.mark.parametrize(
    "num_bytes, expected",
    [(512, "512 B"), (2048, "2.0 KB"), (1048576, "1.0 MB"), (5 * 1073741824, "5.0 GB")],
)
def test_format_bytes(num_bytes, expected):
    assert format_bytes(num_bytes) == expected


async def test_client_requires_context_manager():
    client = DataHubClient("http://localhost:8000")

    with pytest.raises(RuntimeError):
        await client.get_stats()


async def test_search_sends_key_and_params():
    seen = {}

    async def handler(request):
        seen["key"] = request.headers.get(API_KEY_HEADER)
        seen["query"] = dict(request.query)
        return web.json_response({"items": [], "total": 0, "query": request.query["q"]})

    app = web.Application()
    app.router.add_get("/api/datasets/search", handler)

    async with test_utils.TestServer(app) as server:
        async with DataHubClient(str(server.make_url("/")), api_key="dh_test") as client:
            result = await client.search_datasets("enginering", fuzzy=True)

    assert result == {"items": [], "total": 0, "query": "enginering"}
    assert seen["key"] == "dh_test"
    assert seen["query"] == {"q": "enginering", "fuzzy": "true"}


async def test_error_response_raises_with_server_message():
    async def handler(request):
        return web.json_response({"error": "Dataset not found"}, status=404)

    app = web.Application()
    app.router.add_get("/api/datasets/{dataset_id}", handler)

    async with test_utils.TestServer(app) as server:
        async with DataHubClient(str(server.make_url("/"))) as client:
            with pytest.raises(DataHubClientError) as exc_info:
                await client.get_dataset("missing")

    assert exc_info.value.status == 404
    assert exc_info.value.message == "Dataset not found"


async def test_delete_returns_none_on_204():
    async def handler(request):
        return web.Response(status=204)

    app = web.Application()
    app.router.add_delete("/api/datasets/{dataset_id}", handler)

    async with test_utils.TestServer(app) as server:
        async with DataHubClient(str(server.make_url("/"))) as client:
            assert await client.delete_dataset("abc") is None
