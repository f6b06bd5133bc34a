import pytest
from httpx import AsyncClient

from app.core.publication_id import is_publication_id


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.mark.asyncio
async def test_submit_recommend_publish_against_supabase(client: AsyncClient, make_test_user, supabase_admin_client):
    author = make_test_user("author")
    editor = make_test_user("editor")
    admin = make_test_user("admin")

    res = await client.post(
        "/api/v1/papers",
        json={"title": "Soil Retention in Arid Zones"},
        headers=auth_headers(author.token),
    )
    assert res.status_code == 201
    paper = res.json()["data"]
    assert paper["status"] == "submitted"

    notes = (
        supabase_admin_client.table("notifications")
        .select("message, paper_id")
        .eq("user_id", editor.id)
        .execute()
        .data
    )
    assert {"message": "New paper submitted: Soil Retention in Arid Zones", "paper_id": paper["id"]} in notes

    res = await client.post(f"/api/v1/papers/{paper['id']}/recommend", headers=auth_headers(editor.token))
    assert res.status_code == 200
    assert res.json()["data"]["status"] == "recommended_for_publication"

    res = await client.put(
        f"/api/v1/papers/{paper['id']}/details",
        json={"journal_name": "Arid Lands"},
        headers=auth_headers(editor.token),
    )
    assert res.status_code == 200
    assert is_publication_id(res.json()["data"]["publication_id"])

    res = await client.put(
        f"/api/v1/papers/{paper['id']}",
        json={"title": paper["title"], "status": "published"},
        headers=auth_headers(admin.token),
    )
    assert res.status_code == 200
    assert res.json()["data"]["status"] == "published"


@pytest.mark.asyncio
async def test_notifications_are_scoped_to_owner(client: AsyncClient, make_test_user):
    author = make_test_user("author")
    other = make_test_user("author")

    res = await client.post(
        "/api/v1/notifications",
        json={"user_id": author.id, "message": "hello"},
        headers=auth_headers(other.token),
    )
    assert res.status_code == 201
    notification_id = res.json()["data"]["id"]

    res = await client.put(f"/api/v1/notifications/{notification_id}/read", headers=auth_headers(other.token))
    assert res.status_code == 404

    res = await client.put(f"/api/v1/notifications/{notification_id}/read", headers=auth_headers(author.token))
    assert res.status_code == 200
    assert res.json()["data"]["is_read"] is True
