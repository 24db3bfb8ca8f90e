"""Videos API tests: publish, browse, views, watch history."""

import uuid

import pytest


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def video_body(title: str = "My first video", **overrides) -> dict:
    body = {
        "video_file": "https://cdn.example.com/v/1.mp4",
        "thumbnail": "https://cdn.example.com/v/1.jpg",
        "title": title,
        "description": "A video about things",
        "duration": 61.5,
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
async def test_create_video(client, login):
    tokens = await login("alice")
    r = await client.post(
        "/api/v1/videos", json=video_body(), headers=auth(tokens["access_token"])
    )
    assert r.status_code == 201
    video = r.json()
    assert video["title"] == "My first video"
    assert video["views"] == 0
    assert video["is_published"] is True
    assert video["owner_id"] == tokens["user"]["id"]


@pytest.mark.asyncio
async def test_create_video_requires_auth(client):
    r = await client.post("/api/v1/videos", json=video_body())
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_create_video_validates_duration(client, login):
    tokens = await login("alice")
    r = await client.post(
        "/api/v1/videos",
        json=video_body(duration=0),
        headers=auth(tokens["access_token"]),
    )
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_list_only_published(client, login):
    tokens = await login("alice")
    headers = auth(tokens["access_token"])
    await client.post("/api/v1/videos", json=video_body("public"), headers=headers)
    await client.post(
        "/api/v1/videos", json=video_body("draft", is_published=False), headers=headers
    )

    r = await client.get("/api/v1/videos")
    assert r.status_code == 200
    titles = [v["title"] for v in r.json()]
    assert titles == ["public"]


@pytest.mark.asyncio
async def test_list_pagination(client, login):
    tokens = await login("alice")
    headers = auth(tokens["access_token"])
    for i in range(3):
        await client.post("/api/v1/videos", json=video_body(f"v{i}"), headers=headers)

    r = await client.get("/api/v1/videos", params={"limit": 2})
    assert len(r.json()) == 2
    r = await client.get("/api/v1/videos", params={"limit": 2, "offset": 2})
    assert len(r.json()) == 1


@pytest.mark.asyncio
async def test_unpublished_video_hidden_from_others(client, login):
    owner = await login("alice")
    r = await client.post(
        "/api/v1/videos",
        json=video_body("draft", is_published=False),
        headers=auth(owner["access_token"]),
    )
    video_id = r.json()["id"]

    # Anonymous
    r = await client.get(f"/api/v1/videos/{video_id}")
    assert r.status_code == 404

    # Another user
    other = await login("bob")
    r = await client.get(
        f"/api/v1/videos/{video_id}", headers=auth(other["access_token"])
    )
    assert r.status_code == 404

    # Owner
    r = await client.get(
        f"/api/v1/videos/{video_id}", headers=auth(owner["access_token"])
    )
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_get_missing_video(client):
    r = await client.get(f"/api/v1/videos/{uuid.uuid4()}")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_views_and_watch_history(client, login):
    owner = await login("alice")
    headers = auth(owner["access_token"])
    first = (await client.post("/api/v1/videos", json=video_body("first"), headers=headers)).json()
    second = (await client.post("/api/v1/videos", json=video_body("second"), headers=headers)).json()

    viewer = await login("bob")
    vh = auth(viewer["access_token"])
    r = await client.post(f"/api/v1/videos/{first['id']}/views", headers=vh)
    assert r.status_code == 200
    assert r.json()["views"] == 1
    await client.post(f"/api/v1/videos/{second['id']}/views", headers=vh)
    r = await client.post(f"/api/v1/videos/{first['id']}/views", headers=vh)
    assert r.json()["views"] == 2

    r = await client.get("/api/v1/users/me/history", headers=vh)
    assert r.status_code == 200
    # Most recent first, each video once
    assert [v["title"] for v in r.json()] == ["first", "second"]

    # The owner hasn't watched anything
    r = await client.get("/api/v1/users/me/history", headers=headers)
    assert r.json() == []


@pytest.mark.asyncio
async def test_view_requires_auth(client, login):
    owner = await login("alice")
    video = (
        await client.post(
            "/api/v1/videos", json=video_body(), headers=auth(owner["access_token"])
        )
    ).json()
    r = await client.post(f"/api/v1/videos/{video['id']}/views")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_view_missing_video(client, login):
    tokens = await login("alice")
    r = await client.post(
        f"/api/v1/videos/{uuid.uuid4()}/views", headers=auth(tokens["access_token"])
    )
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_history_limit_counts_videos_not_views(client, login):
    owner = await login("alice")
    headers = auth(owner["access_token"])
    ids = {}
    for title in ("a", "b", "c"):
        r = await client.post("/api/v1/videos", json=video_body(title), headers=headers)
        ids[title] = r.json()["id"]

    viewer = await login("bob")
    vh = auth(viewer["access_token"])
    await client.post(f"/api/v1/videos/{ids['b']}/views", headers=vh)
    await client.post(f"/api/v1/videos/{ids['c']}/views", headers=vh)
    # More views of one video than the page holds
    for _ in range(3):
        await client.post(f"/api/v1/videos/{ids['a']}/views", headers=vh)

    r = await client.get("/api/v1/users/me/history", params={"limit": 2}, headers=vh)
    assert r.status_code == 200
    assert [v["title"] for v in r.json()] == ["a", "c"]

    r = await client.get("/api/v1/users/me/history", headers=vh)
    assert [v["title"] for v in r.json()] == ["a", "c", "b"]
