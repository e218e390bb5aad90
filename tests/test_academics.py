import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_class_and_section_slugs(client: AsyncClient, tenant) -> None:
    base = f"/api/a/{tenant['masjid_id']}"
    headers = tenant["headers"]

    first = await client.post(f"{base}/classes", json={"name": "Kelas Tahsin"}, headers=headers)
    second = await client.post(f"{base}/classes", json={"name": "Kelas Tahsin"}, headers=headers)
    assert first.status_code == 201
    assert first.json()["data"]["slug"] == "kelas-tahsin"
    assert second.json()["data"]["slug"] == "kelas-tahsin-2"

    section = await client.post(
        f"{base}/class-sections",
        json={"class_id": first.json()["data"]["id"], "name": "Putra"},
        headers=headers,
    )
    assert section.status_code == 201
    assert section.json()["data"]["slug"] == "kelas-tahsin-putra"


@pytest.mark.asyncio
async def test_same_slug_allowed_in_other_masjid(client: AsyncClient, tenant, other_tenant) -> None:
    for ctx in (tenant, other_tenant):
        response = await client.post(
            f"/api/a/{ctx['masjid_id']}/classes", json={"name": "Kelas 1"}, headers=ctx["headers"]
        )
        assert response.json()["data"]["slug"] == "kelas-1"


@pytest.mark.asyncio
async def test_section_with_foreign_class_is_rejected(client: AsyncClient, tenant, other_tenant) -> None:
    foreign_class = await client.post(
        f"/api/a/{other_tenant['masjid_id']}/classes", json={"name": "Kelas Asing"}, headers=other_tenant["headers"]
    )
    response = await client.post(
        f"/api/a/{tenant['masjid_id']}/class-sections",
        json={"class_id": foreign_class.json()["data"]["id"], "name": "A"},
        headers=tenant["headers"],
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_class_subject_duplicate_conflicts(client: AsyncClient, tenant, make_structure) -> None:
    structure = await make_structure(tenant)
    response = await client.post(
        f"/api/a/{tenant['masjid_id']}/class-subjects",
        json={"class_id": structure["class_id"], "subject_id": structure["subject_id"]},
        headers=tenant["headers"],
    )
    assert response.status_code == 409

    listing = await client.get(f"/api/a/{tenant['masjid_id']}/class-subjects", headers=tenant["headers"])
    items = listing.json()["data"]
    assert len(items) == 1
    assert items[0]["class_name"] == "Kelas 1"
    assert items[0]["subject_name"] == "Tahfidz"


@pytest.mark.asyncio
async def test_teacher_reads_but_cannot_write(client: AsyncClient, tenant, make_structure) -> None:
    structure = await make_structure(tenant)
    base = f"/api/a/{tenant['masjid_id']}"

    listing = await client.get(f"{base}/classes", headers=structure["teacher_headers"])
    assert listing.status_code == 200
    assert listing.json()["pagination"]["total"] == 1

    response = await client.post(f"{base}/classes", json={"name": "Baru"}, headers=structure["teacher_headers"])
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_anonymous_is_unauthorized(client: AsyncClient, tenant) -> None:
    response = await client.get(f"/api/a/{tenant['masjid_id']}/classes")
    assert response.status_code == 401
