"""Tests for forum post endpoints."""

import pytest
from httpx import AsyncClient


@pytest.fixture
async def writer(auth_headers) -> dict[str, str]:
    return await auth_headers()


async def _create(client: AsyncClient, headers: dict[str, str], title: str = "Hello", content: str = "World") -> dict:
    resp = await client.post("/v1/forum", json={"title": title, "content": content}, headers=headers)
    assert resp.status_code == 201
    return resp.json()["forum"]


@pytest.mark.asyncio
async def test_create_forum(async_client: AsyncClient, writer):
    """POST /forum should create a post at version 1."""
    resp = await async_client.post("/v1/forum", json={"title": "Hello", "content": "World"}, headers=writer)
    assert resp.status_code == 201
    data = resp.json()["forum"]
    assert data == {"id": data["id"], "title": "Hello", "content": "World", "version": 1}
    assert resp.headers["location"] == f"/v1/forum/{data['id']}"


@pytest.mark.asyncio
async def test_create_forum_validation(async_client: AsyncClient, writer):
    resp = await async_client.post("/v1/forum", json={"title": "", "content": "x" * 601}, headers=writer)
    assert resp.status_code == 422
    assert resp.json()["error"] == {
        "title": "must be provided",
        "content": "must not be more than 600 bytes long",
    }


@pytest.mark.asyncio
async def test_create_forum_malformed_json(async_client: AsyncClient, writer):
    resp = await async_client.post(
        "/v1/forum",
        content=b'{"title": "oops",',
        headers={**writer, "Content-Type": "application/json"},
    )
    assert resp.status_code == 400
    assert "badly-formed JSON" in resp.json()["error"]


@pytest.mark.asyncio
async def test_show_forum(async_client: AsyncClient, writer):
    created = await _create(async_client, writer, title="Solo")
    resp = await async_client.get(f"/v1/forum/{created['id']}", headers=writer)
    assert resp.status_code == 200
    assert resp.json()["forum"]["title"] == "Solo"


@pytest.mark.asyncio
@pytest.mark.parametrize("forum_id", ["9999", "0", "-3"])
async def test_show_forum_not_found(async_client: AsyncClient, writer, forum_id: str):
    resp = await async_client.get(f"/v1/forum/{forum_id}", headers=writer)
    assert resp.status_code == 404
    assert resp.json()["error"] == "the requested resource could not be found"


@pytest.mark.asyncio
async def test_non_numeric_id_is_not_found(async_client: AsyncClient, writer):
    for method, url in [("GET", "/v1/forum/abc"), ("DELETE", "/v1/forum/1.5"), ("GET", "/v1/comment/abc")]:
        resp = await async_client.request(method, url, headers=writer)
        assert resp.status_code == 404, url
        assert resp.json() == {"error": "the requested resource could not be found"}

    resp = await async_client.patch("/v1/forum/abc", json={"title": "x"}, headers=writer)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_update_missing_forum_with_bad_body_is_not_found(async_client: AsyncClient, writer):
    resp = await async_client.patch("/v1/forum/9999", json={"title": ""}, headers=writer)
    assert resp.status_code == 404

    resp = await async_client.patch(
        "/v1/forum/9999",
        content=b"{not json",
        headers={**writer, "Content-Type": "application/json"},
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_update_forum_partial(async_client: AsyncClient, writer):
    created = await _create(async_client, writer, title="Old", content="Body")
    resp = await async_client.patch(f"/v1/forum/{created['id']}", json={"title": "New"}, headers=writer)
    assert resp.status_code == 200
    data = resp.json()["forum"]
    assert (data["title"], data["content"], data["version"]) == ("New", "Body", 2)


@pytest.mark.asyncio
async def test_update_with_stale_expected_version(async_client: AsyncClient, writer):
    created = await _create(async_client, writer)
    url = f"/v1/forum/{created['id']}"

    ok = await async_client.patch(url, json={"content": "A"}, headers={**writer, "X-Expected-Version": "1"})
    assert ok.status_code == 200
    assert ok.json()["forum"]["version"] == 2

    stale = await async_client.patch(url, json={"content": "B"}, headers={**writer, "X-Expected-Version": "1"})
    assert stale.status_code == 422
    assert "edit conflict" in stale.json()["error"]

    current = (await async_client.get(url, headers=writer)).json()["forum"]
    assert (current["content"], current["version"]) == ("A", 2)


@pytest.mark.asyncio
async def test_update_forum_validation(async_client: AsyncClient, writer):
    created = await _create(async_client, writer)
    resp = await async_client.patch(f"/v1/forum/{created['id']}", json={"title": "t" * 201}, headers=writer)
    assert resp.status_code == 422
    assert resp.json()["error"] == {"title": "must not be more than 200 bytes long"}


@pytest.mark.asyncio
async def test_delete_forum(async_client: AsyncClient, writer):
    created = await _create(async_client, writer)
    url = f"/v1/forum/{created['id']}"

    resp = await async_client.delete(url, headers=writer)
    assert resp.status_code == 200
    assert resp.json() == {"message": "forum successfully deleted"}

    assert (await async_client.get(url, headers=writer)).status_code == 404
    assert (await async_client.delete(url, headers=writer)).status_code == 404


@pytest.mark.asyncio
async def test_list_forums_with_metadata(async_client: AsyncClient, writer):
    for i in range(5):
        await _create(async_client, writer, title=f"Post {i}", content="python" if i % 2 else "golang")

    resp = await async_client.get("/v1/forum?content=python&page_size=1&sort=-id", headers=writer)
    assert resp.status_code == 200
    body = resp.json()
    assert [f["title"] for f in body["forums"]] == ["Post 3"]
    assert body["metadata"] == {
        "current_page": 1,
        "page_size": 1,
        "first_page": 1,
        "last_page": 2,
        "total_records": 2,
    }


@pytest.mark.asyncio
async def test_list_forums_empty_metadata(async_client: AsyncClient, writer):
    resp = await async_client.get("/v1/forum?title=nothing-matches", headers=writer)
    assert resp.status_code == 200
    assert resp.json() == {
        "forums": [],
        "metadata": {"current_page": 0, "page_size": 0, "first_page": 0, "last_page": 0, "total_records": 0},
    }


@pytest.mark.asyncio
async def test_list_forums_rejects_bad_filters(async_client: AsyncClient, writer):
    resp = await async_client.get("/v1/forum?sort=version", headers=writer)
    assert resp.status_code == 422
    assert resp.json()["error"] == {"sort": "invalid sort value"}

    resp = await async_client.get("/v1/forum?page=0&page_size=101", headers=writer)
    assert resp.status_code == 422
    assert set(resp.json()["error"]) == {"page", "page_size"}


@pytest.mark.asyncio
async def test_unknown_route_and_method(async_client: AsyncClient, writer):
    resp = await async_client.get("/v1/nothing-here")
    assert resp.status_code == 404
    assert resp.json() == {"error": "the requested resource could not be found"}

    resp = await async_client.put("/v1/forum/1", json={}, headers=writer)
    assert resp.status_code == 405
    assert resp.json()["error"] == "the PUT method is not supported for this resource"
