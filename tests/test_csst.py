from uuid import uuid4

import pytest
from httpx import AsyncClient


def _url(ctx, suffix: str = "") -> str:
    return f"/api/a/{ctx['masjid_id']}/class-section-subject-teachers{suffix}"


async def _create(client: AsyncClient, ctx, structure, **extra):
    body = {
        "section_id": structure["section_id"],
        "class_subject_id": structure["class_subject_id"],
        "teacher_id": structure["teacher_id"],
        **extra,
    }
    return await client.post(_url(ctx), json=body, headers=ctx["headers"])


@pytest.mark.asyncio
async def test_create_builds_slug_and_teacher_snapshot(client: AsyncClient, tenant, make_structure) -> None:
    structure = await make_structure(tenant)
    response = await _create(client, tenant, structure, capacity=25, delivery_mode="hybrid")
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["slug"] == "a-tahfidz"
    assert data["delivery_mode"] == "hybrid"
    assert data["capacity"] == 25
    assert data["enrolled_count"] == 0
    assert data["teacher_name_snap"] == "Ustadz Hasan"
    assert data["teacher_snapshot"]["id"] == structure["teacher_id"]
    assert data["teacher_snapshot"]["title"] == "Ustadz"
    assert data["assistant_teacher_id"] is None


@pytest.mark.asyncio
async def test_duplicate_assignment_conflicts(client: AsyncClient, tenant, make_structure) -> None:
    structure = await make_structure(tenant)
    await _create(client, tenant, structure)
    response = await _create(client, tenant, structure, slug="another-slug")
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_section_and_class_subject_must_share_class(client: AsyncClient, tenant, make_structure) -> None:
    first = await make_structure(tenant, class_name="Kelas 1")
    second = await make_structure(tenant, class_name="Kelas 2", subject_name="Fiqih")
    response = await client.post(
        _url(tenant),
        json={
            "section_id": first["section_id"],
            "class_subject_id": second["class_subject_id"],
            "teacher_id": first["teacher_id"],
        },
        headers=tenant["headers"],
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_foreign_teacher_is_rejected(client: AsyncClient, tenant, other_tenant, make_structure) -> None:
    local = await make_structure(tenant)
    foreign = await make_structure(other_tenant)
    response = await client.post(
        _url(tenant),
        json={
            "section_id": local["section_id"],
            "class_subject_id": local["class_subject_id"],
            "teacher_id": foreign["teacher_id"],
        },
        headers=tenant["headers"],
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_invalid_capacity_is_bad_request(client: AsyncClient, tenant, make_structure) -> None:
    structure = await make_structure(tenant)
    response = await _create(client, tenant, structure, capacity=-1)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_cross_tenant_get_is_not_found(client: AsyncClient, tenant, other_tenant, make_structure) -> None:
    structure = await make_structure(tenant)
    csst_id = (await _create(client, tenant, structure)).json()["data"]["id"]

    assert (await client.get(_url(other_tenant, f"/{csst_id}"), headers=other_tenant["headers"])).status_code == 404
    assert (
        await client.patch(_url(other_tenant, f"/{csst_id}"), json={"capacity": 1}, headers=other_tenant["headers"])
    ).status_code == 404
    assert (await client.delete(_url(other_tenant, f"/{csst_id}"), headers=other_tenant["headers"])).status_code == 404
    assert (await client.get(_url(tenant, f"/{csst_id}"), headers=tenant["headers"])).status_code == 200


@pytest.mark.asyncio
async def test_update_fields_and_regenerate_slug(client: AsyncClient, tenant, make_structure) -> None:
    structure = await make_structure(tenant)
    csst_id = (await _create(client, tenant, structure, slug="custom-slug", description="Halaqah")).json()["data"]["id"]

    updated = await client.patch(
        _url(tenant, f"/{csst_id}"),
        json={"slug": "", "description": "", "delivery_mode": "online", "is_active": False},
        headers=tenant["headers"],
    )
    assert updated.status_code == 200
    data = updated.json()["data"]
    assert data["slug"] == "a-tahfidz"
    assert data["description"] is None
    assert data["delivery_mode"] == "online"
    assert data["is_active"] is False

    readback = await client.get(_url(tenant, f"/{csst_id}"), headers=tenant["headers"])
    assert readback.json()["data"]["delivery_mode"] == "online"


@pytest.mark.asyncio
async def test_assistant_teacher_set_and_clear(client: AsyncClient, tenant, make_structure, make_user) -> None:
    structure = await make_structure(tenant)
    csst_id = (await _create(client, tenant, structure)).json()["data"]["id"]
    user_id, _ = await make_user(full_name="Ustadzah Aisyah")
    assistant_id = (
        await client.post(
            f"/api/a/{tenant['masjid_id']}/masjid-teachers", json={"user_id": str(user_id)}, headers=tenant["headers"]
        )
    ).json()["data"]["id"]

    with_assistant = await client.patch(
        _url(tenant, f"/{csst_id}"), json={"assistant_teacher_id": assistant_id}, headers=tenant["headers"]
    )
    assert with_assistant.json()["data"]["assistant_teacher_name_snap"] == "Ustadzah Aisyah"

    filtered = await client.get(_url(tenant), params={"teacher_id": assistant_id}, headers=tenant["headers"])
    assert [r["id"] for r in filtered.json()["data"]] == [csst_id]

    cleared = await client.patch(
        _url(tenant, f"/{csst_id}"), json={"clear_assistant_teacher": True}, headers=tenant["headers"]
    )
    assert cleared.json()["data"]["assistant_teacher_id"] is None
    assert cleared.json()["data"]["assistant_teacher_snapshot"] is None


@pytest.mark.asyncio
async def test_teacher_update_refreshes_snapshot(client: AsyncClient, tenant, make_structure) -> None:
    structure = await make_structure(tenant)
    csst_id = (await _create(client, tenant, structure)).json()["data"]["id"]

    await client.patch(
        f"/api/a/{tenant['masjid_id']}/masjid-teachers/{structure['teacher_id']}",
        json={"title": "Kyai"},
        headers=tenant["headers"],
    )

    readback = await client.get(_url(tenant, f"/{csst_id}"), headers=tenant["headers"])
    assert readback.json()["data"]["teacher_snapshot"]["title"] == "Kyai"


@pytest.mark.asyncio
async def test_delete_twice_and_include_deleted(client: AsyncClient, tenant, make_structure) -> None:
    structure = await make_structure(tenant)
    csst_id = (await _create(client, tenant, structure)).json()["data"]["id"]

    first = await client.delete(_url(tenant, f"/{csst_id}"), headers=tenant["headers"])
    assert first.json()["message"] == "Assignment deleted"
    second = await client.delete(_url(tenant, f"/{csst_id}"), headers=tenant["headers"])
    assert second.status_code == 200
    assert second.json()["message"] == "Assignment already deleted"

    assert (await client.get(_url(tenant, f"/{csst_id}"), headers=tenant["headers"])).status_code == 404
    listing = await client.get(_url(tenant), headers=tenant["headers"])
    assert listing.json()["pagination"]["total"] == 0
    with_deleted = await client.get(_url(tenant), params={"include_deleted": "true"}, headers=tenant["headers"])
    assert with_deleted.json()["pagination"]["total"] == 1

    # A deleted assignment no longer blocks a new one
    assert (await _create(client, tenant, structure)).status_code == 201


@pytest.mark.asyncio
async def test_unknown_id_is_not_found(client: AsyncClient, tenant) -> None:
    response = await client.get(_url(tenant, f"/{uuid4()}"), headers=tenant["headers"])
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_teacher_lists_own_assignments(client: AsyncClient, tenant, make_structure) -> None:
    structure = await make_structure(tenant)
    csst_id = (await _create(client, tenant, structure)).json()["data"]["id"]

    mine = await client.get("/api/u/class-section-subject-teachers/mine", headers=structure["teacher_headers"])
    assert mine.status_code == 200
    assert [r["id"] for r in mine.json()["data"]] == [csst_id]

    roster = await client.get(_url(tenant), headers=structure["teacher_headers"])
    assert roster.status_code == 200
