import uuid


def _thread_body(author: str, **overrides) -> dict:
    body = {
        "title": "Weeknight pasta ideas",
        "content": "Looking for quick pasta recipes under 30 minutes.",
        "author": author,
    }
    body.update(overrides)
    return body


async def test_create_thread(client, alice):
    response = await client.post("/community/threads", json=_thread_body("alice"))
    assert response.status_code == 201
    data = response.json()
    assert data["title"] == "Weeknight pasta ideas"
    assert data["author"] == "alice"
    assert data["category"] == "general"
    assert data["tags"] == []
    assert data["likes"] == 0
    assert data["comments"] == []
    uuid.UUID(data["id"])


async def test_create_thread_rewards_author(client, alice):
    await client.post("/community/threads", json=_thread_body("alice"))

    profile = (await client.get("/community/users/alice")).json()
    assert profile["post_count"] == 1
    assert profile["reputation"] == 5


async def test_create_thread_unknown_author(client):
    response = await client.post("/community/threads", json=_thread_body("ghost"))
    assert response.status_code == 404


async def test_create_thread_title_too_short(client, alice):
    response = await client.post(
        "/community/threads", json=_thread_body("alice", title="Hey")
    )
    assert response.status_code == 422


async def test_create_thread_content_too_short(client, alice):
    response = await client.post(
        "/community/threads", json=_thread_body("alice", content="short")
    )
    assert response.status_code == 422


async def test_list_threads_pagination(client, alice):
    for i in range(3):
        await client.post(
            "/community/threads", json=_thread_body("alice", title=f"Thread number {i}")
        )

    response = await client.get("/community/threads", params={"page": 1, "per_page": 2})
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert data["page"] == 1
    assert data["per_page"] == 2
    assert data["has_more"] is True
    assert len(data["items"]) == 2
    assert "comments" not in data["items"][0]

    page2 = (
        await client.get("/community/threads", params={"page": 2, "per_page": 2})
    ).json()
    assert len(page2["items"]) == 1
    assert page2["has_more"] is False


async def test_list_threads_category_filter(client, alice):
    await client.post(
        "/community/threads", json=_thread_body("alice", category="baking")
    )
    await client.post(
        "/community/threads", json=_thread_body("alice", category="grilling")
    )

    data = (
        await client.get("/community/threads", params={"category": "baking"})
    ).json()
    assert data["total"] == 1
    assert data["items"][0]["category"] == "baking"

    everything = (
        await client.get("/community/threads", params={"category": "all"})
    ).json()
    assert everything["total"] == 2


async def test_list_threads_search(client, alice):
    await client.post(
        "/community/threads",
        json=_thread_body("alice", title="Sourdough troubleshooting"),
    )
    await client.post(
        "/community/threads",
        json=_thread_body("alice", title="Grill temps", tags=["bbq"]),
    )

    by_title = (
        await client.get("/community/threads", params={"search": "SOURDOUGH"})
    ).json()
    assert [item["title"] for item in by_title["items"]] == ["Sourdough troubleshooting"]

    by_tag = (await client.get("/community/threads", params={"search": "bbq"})).json()
    assert by_tag["total"] == 1


async def test_list_threads_popular_sort(client, alice):
    first = (
        await client.post("/community/threads", json=_thread_body("alice"))
    ).json()
    second = (
        await client.post(
            "/community/threads", json=_thread_body("alice", title="Another thread")
        )
    ).json()
    await client.post("/community/like", json={"thread_id": first["id"]})

    newest = (await client.get("/community/threads")).json()
    assert newest["items"][0]["id"] == second["id"]

    popular = (
        await client.get("/community/threads", params={"sort": "popular"})
    ).json()
    assert popular["items"][0]["id"] == first["id"]


async def test_list_threads_invalid_sort(client):
    response = await client.get("/community/threads", params={"sort": "random"})
    assert response.status_code == 422


async def test_get_thread_detail_includes_authors(client, thread):
    response = await client.get(f"/community/threads/{thread['id']}")
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == thread["id"]
    assert data["tags"] == ["bread", "sourdough"]
    assert data["authors"]["alice"]["display_name"] == "Alice A."


async def test_get_thread_not_found(client):
    response = await client.get(f"/community/threads/{uuid.uuid4()}")
    assert response.status_code == 404
    assert "not found" in response.json()["detail"]


async def test_track_view(client, thread):
    await client.post(f"/community/threads/{thread['id']}/views")
    response = await client.post(f"/community/threads/{thread['id']}/views")
    assert response.status_code == 200
    assert response.json() == {"views": 2}


async def test_track_view_unknown_thread(client):
    response = await client.post(f"/community/threads/{uuid.uuid4()}/views")
    assert response.status_code == 404
