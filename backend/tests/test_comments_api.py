"""Comment API endpoint tests."""

import pytest
from conftest import API
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


async def _comment(
    client: AsyncClient, headers: dict[str, str], post_id: int, content: str, parent_id=None
) -> dict:
    resp = await client.post(
        f"{API}/comments",
        json={"post_id": post_id, "content": content, "parent_id": parent_id},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


async def test_create_and_list(
    client: AsyncClient, auth_headers: dict[str, str], published_post: dict
):
    created = await _comment(client, auth_headers, published_post["id"], "  First!  ")

    assert created["content"] == "First!"
    assert created["author"]["username"] == "testuser"
    assert created["like_count"] == 0

    resp = await client.get(f"{API}/comments/post/{published_post['id']}")
    data = resp.json()
    assert [c["id"] for c in data["comments"]] == [created["id"]]
    assert data["pagination"]["total"] == 1


async def test_replies_nest_under_top_level(
    client: AsyncClient,
    auth_headers: dict[str, str],
    second_headers: dict[str, str],
    published_post: dict,
):
    post_id = published_post["id"]
    top = await _comment(client, auth_headers, post_id, "Top")
    reply = await _comment(client, second_headers, post_id, "Reply", top["id"])
    nested = await _comment(client, auth_headers, post_id, "Reply to reply", reply["id"])

    assert nested["parent_id"] == top["id"]

    listing = (await client.get(f"{API}/comments/post/{post_id}")).json()
    assert len(listing["comments"]) == 1
    assert [r["content"] for r in listing["comments"][0]["replies"]] == ["Reply", "Reply to reply"]

    replies = (await client.get(f"{API}/comments/post/{post_id}?parent={top['id']}")).json()
    assert [r["id"] for r in replies["comments"]] == [reply["id"], nested["id"]]


async def test_parent_must_belong_to_post(
    client: AsyncClient, auth_headers: dict[str, str], published_post: dict
):
    other = (
        await client.post(
            f"{API}/posts",
            json={"title": "Other", "content": "x", "status": "published"},
            headers=auth_headers,
        )
    ).json()
    foreign = await _comment(client, auth_headers, other["id"], "Elsewhere")

    resp = await client.post(
        f"{API}/comments",
        json={"post_id": published_post["id"], "content": "x", "parent_id": foreign["id"]},
        headers=auth_headers,
    )
    assert resp.status_code == 422


async def test_comment_on_missing_post(client: AsyncClient, auth_headers: dict[str, str]):
    resp = await client.post(
        f"{API}/comments", json={"post_id": 404, "content": "x"}, headers=auth_headers
    )
    assert resp.status_code == 404


async def test_update_comment(
    client: AsyncClient,
    auth_headers: dict[str, str],
    second_headers: dict[str, str],
    published_post: dict,
):
    comment = await _comment(client, auth_headers, published_post["id"], "Tpyo")

    forbidden = await client.put(
        f"{API}/comments/{comment['id']}", json={"content": "Mine now"}, headers=second_headers
    )
    assert forbidden.status_code == 403

    resp = await client.put(
        f"{API}/comments/{comment['id']}", json={"content": "Typo"}, headers=auth_headers
    )
    assert resp.status_code == 200
    assert resp.json()["content"] == "Typo"
    assert (await client.get(f"{API}/comments/{comment['id']}")).json()["content"] == "Typo"


async def test_delete_removes_replies(
    client: AsyncClient,
    auth_headers: dict[str, str],
    second_headers: dict[str, str],
    published_post: dict,
):
    post_id = published_post["id"]
    top = await _comment(client, auth_headers, post_id, "Top")
    reply = await _comment(client, second_headers, post_id, "Reply", top["id"])

    resp = await client.delete(f"{API}/comments/{top['id']}", headers=auth_headers)

    assert resp.status_code == 200
    assert (await client.get(f"{API}/comments/{reply['id']}")).status_code == 404
    assert (await client.get(f"{API}/comments/post/{post_id}")).json()["comments"] == []


async def test_comment_count_on_post(
    client: AsyncClient, auth_headers: dict[str, str], published_post: dict
):
    detail = f"{API}/posts/{published_post['id']}"
    assert (await client.get(detail)).json()["comment_count"] == 0

    await _comment(client, auth_headers, published_post["id"], "One")

    assert (await client.get(detail)).json()["comment_count"] == 1
