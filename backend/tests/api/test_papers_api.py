import pytest
from httpx import AsyncClient

from app.api.v1.papers import get_workflow_service
from app.core.roles import get_current_profile
from main import app

API = "/api/v1"


def _as(actor):
    async def _profile():
        return {"id": actor.id, "email": f"{actor.role}@example.com", "role": actor.role, "roles": [actor.role]}

    return _profile


@pytest.fixture
def service(make_service):
    svc = make_service()
    app.dependency_overrides[get_workflow_service] = lambda: svc
    return svc


@pytest.mark.asyncio
async def test_paper_lifecycle_over_http(client: AsyncClient, service, store, actors):
    app.dependency_overrides[get_current_profile] = _as(actors["author"])
    res = await client.post(f"{API}/papers", json={"title": "Soil Retention in Arid Zones"})
    assert res.status_code == 201
    paper = res.json()["data"]
    assert paper["status"] == "submitted"
    assert paper["type"] == "research"

    # BackgroundTasks 在响应完成后执行
    assert len(store.notifications_for(actors["editor"].id)) == 1
    assert len(store.notifications_for(actors["editor2"].id)) == 1

    app.dependency_overrides[get_current_profile] = _as(actors["editor"])
    res = await client.post(f"{API}/papers/{paper['id']}/recommend")
    assert res.status_code == 200
    assert res.json()["data"]["status"] == "recommended_for_publication"

    res = await client.put(f"{API}/papers/{paper['id']}/details", json={"journal_name": "Arid Lands"})
    assert res.status_code == 200
    assert res.json()["data"]["publication_id"] == "SMU_P201817001"

    app.dependency_overrides[get_current_profile] = _as(actors["admin"])
    res = await client.put(
        f"{API}/papers/{paper['id']}", json={"title": paper["title"], "status": "published"}
    )
    assert res.status_code == 200
    assert res.json()["data"]["status"] == "published"

    res = await client.get(f"{API}/papers")
    assert res.status_code == 200
    assert res.json()["data"][0]["author_name"] == "Author A"


@pytest.mark.asyncio
async def test_create_requires_author_or_admin(client: AsyncClient, service, actors):
    app.dependency_overrides[get_current_profile] = _as(actors["editor"])
    res = await client.post(f"{API}/papers", json={"title": "T"})
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_create_validates_title(client: AsyncClient, service, actors):
    app.dependency_overrides[get_current_profile] = _as(actors["author"])
    res = await client.post(f"{API}/papers", json={"title": "x" * 501})
    assert res.status_code == 422
    res = await client.post(f"{API}/papers", json={"abstract": "no title"})
    assert res.status_code == 422


@pytest.mark.asyncio
async def test_update_rejects_unknown_status(client: AsyncClient, service, store, actors):
    paper = store.insert_paper({"title": "T", "author_id": actors["author"].id, "status": "submitted"})
    app.dependency_overrides[get_current_profile] = _as(actors["editor"])

    res = await client.put(f"{API}/papers/{paper.id}", json={"title": "T", "status": "archived"})
    assert res.status_code == 422
    assert store.get_paper(str(paper.id)).status.value == "submitted"


@pytest.mark.asyncio
async def test_strict_mode_maps_transition_errors(client: AsyncClient, make_service, store, actors):
    svc = make_service(strict=True)
    app.dependency_overrides[get_workflow_service] = lambda: svc
    paper = store.insert_paper({"title": "T", "author_id": actors["author"].id, "status": "published"})

    app.dependency_overrides[get_current_profile] = _as(actors["admin"])
    res = await client.put(f"{API}/papers/{paper.id}", json={"title": "T", "status": "draft"})
    assert res.status_code == 409
    assert res.json()["code"] == "transition_not_allowed"

    submitted = store.insert_paper({"title": "S", "author_id": actors["author"].id, "status": "submitted"})
    app.dependency_overrides[get_current_profile] = _as(actors["editor"])
    res = await client.put(f"{API}/papers/{submitted.id}", json={"title": "S", "status": "draft"})
    assert res.status_code == 403
    assert res.json()["code"] == "role_not_permitted"


@pytest.mark.asyncio
async def test_missing_paper_is_404(client: AsyncClient, service, actors):
    app.dependency_overrides[get_current_profile] = _as(actors["admin"])
    missing = "00000000-0000-0000-0000-00000000dead"
    assert (await client.get(f"{API}/papers/{missing}")).status_code == 404
    assert (await client.delete(f"{API}/papers/{missing}")).status_code == 404
    assert (await client.post(f"{API}/papers/{missing}/recommend")).status_code == 404


@pytest.mark.asyncio
async def test_delete_paper(client: AsyncClient, service, store, actors):
    paper = store.insert_paper({"title": "T", "author_id": actors["author"].id, "status": "draft"})
    app.dependency_overrides[get_current_profile] = _as(actors["author"])

    res = await client.delete(f"{API}/papers/{paper.id}")
    assert res.status_code == 200
    assert res.json()["success"] is True
    assert str(paper.id) not in store.papers


@pytest.mark.asyncio
async def test_papers_require_auth(client: AsyncClient):
    res = await client.get(f"{API}/papers")
    assert res.status_code in {401, 403}


@pytest.mark.asyncio
async def test_malformed_paper_id_is_422(client: AsyncClient, service, actors):
    app.dependency_overrides[get_current_profile] = _as(actors["admin"])
    assert (await client.get(f"{API}/papers/not-a-uuid")).status_code == 422
    assert (await client.delete(f"{API}/papers/not-a-uuid")).status_code == 422
    assert (await client.post(f"{API}/papers/not-a-uuid/recommend")).status_code == 422
    res = await client.put(f"{API}/papers/not-a-uuid/details", json={})
    assert res.status_code == 422


@pytest.mark.asyncio
async def test_details_rejects_overlong_publication_id(client: AsyncClient, service, store, actors):
    paper = store.insert_paper({"title": "T", "author_id": actors["author"].id, "status": "submitted"})
    app.dependency_overrides[get_current_profile] = _as(actors["editor"])

    res = await client.put(f"{API}/papers/{paper.id}/details", json={"publication_id": "SMU_P" + "9" * 25})
    assert res.status_code == 422
    assert store.get_paper(str(paper.id)).publication_id is None


@pytest.mark.asyncio
async def test_route_roles_follow_action_matrix(client: AsyncClient, service, store, actors):
    paper = store.insert_paper({"title": "T", "author_id": actors["author"].id, "status": "submitted"})

    # coordinator 只能维护出版元数据
    app.dependency_overrides[get_current_profile] = _as(actors["coordinator"])
    assert (await client.post(f"{API}/papers", json={"title": "T"})).status_code == 403
    assert (await client.post(f"{API}/papers/{paper.id}/recommend")).status_code == 403
    assert (await client.delete(f"{API}/papers/{paper.id}")).status_code == 403
    res = await client.put(f"{API}/papers/{paper.id}/details", json={"journal_name": "J"})
    assert res.status_code == 200

    app.dependency_overrides[get_current_profile] = _as(actors["author"])
    assert (await client.post(f"{API}/papers/{paper.id}/recommend")).status_code == 403
    assert (await client.put(f"{API}/papers/{paper.id}/details", json={})).status_code == 403
