import pytest
from httpx import AsyncClient

BASE = "/api/u/profile/documents"


@pytest.mark.asyncio
async def test_create_get_and_duplicate(client: AsyncClient, make_user) -> None:
    _, headers = await make_user()
    body = {"doc_type": "ktp", "file_url": "https://files.test/ktp.webp"}

    created = await client.post(BASE, json=body, headers=headers)
    assert created.status_code == 201
    assert created.json()["data"]["doc_type"] == "ktp"

    fetched = await client.get(f"{BASE}/ktp", headers=headers)
    assert fetched.status_code == 200
    assert fetched.json()["data"]["file_url"] == "https://files.test/ktp.webp"

    assert (await client.post(BASE, json=body, headers=headers)).status_code == 409


@pytest.mark.asyncio
async def test_documents_are_per_user(client: AsyncClient, make_user) -> None:
    _, headers_a = await make_user()
    _, headers_b = await make_user()
    await client.post(BASE, json={"doc_type": "ijazah", "file_url": "https://files.test/a"}, headers=headers_a)

    assert (await client.get(f"{BASE}/ijazah", headers=headers_b)).status_code == 404
    # The same doc_type is free for another user
    response = await client.post(BASE, json={"doc_type": "ijazah", "file_url": "https://files.test/b"}, headers=headers_b)
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_doc_type_too_long(client: AsyncClient, make_user) -> None:
    _, headers = await make_user()
    response = await client.post(BASE, json={"doc_type": "x" * 51, "file_url": "https://files.test/x"}, headers=headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_upload_with_parallel_doc_types(client: AsyncClient, make_user, storage) -> None:
    user_id, headers = await make_user()
    files = [
        ("files", ("kk.jpg", b"kk-bytes", "image/jpeg")),
        ("files", ("akta.png", b"akta-bytes", "image/png")),
    ]
    response = await client.post(
        f"{BASE}/upload", files=files, data={"doc_type": ["kartu_keluarga", "akta"]}, headers=headers
    )
    assert response.status_code == 201
    docs = response.json()["data"]
    assert [d["doc_type"] for d in docs] == ["kartu_keluarga", "akta"]
    assert len(storage.uploads) == 2
    assert all(path.startswith(f"users/documents/{user_id}/") for path, _, _ in storage.uploads)
    assert storage.uploads[0][1] == b"kk-bytes"
    assert docs[0]["file_url"] == f"https://storage.test/{storage.uploads[0][0]}"


@pytest.mark.asyncio
async def test_upload_doc_type_from_filename(client: AsyncClient, make_user) -> None:
    _, headers = await make_user()
    response = await client.post(
        f"{BASE}/upload", files=[("files", ("sertifikat.pdf", b"pdf", "application/pdf"))], headers=headers
    )
    assert response.status_code == 201
    assert response.json()["data"][0]["doc_type"] == "sertifikat"


@pytest.mark.asyncio
async def test_upload_count_mismatch(client: AsyncClient, make_user, storage) -> None:
    _, headers = await make_user()
    files = [("files", ("a.jpg", b"a", "image/jpeg")), ("files", ("b.jpg", b"b", "image/jpeg"))]
    response = await client.post(f"{BASE}/upload", files=files, data={"doc_type": ["only_one"]}, headers=headers)
    assert response.status_code == 400
    assert storage.uploads == []


@pytest.mark.asyncio
async def test_upload_storage_failure_stores_nothing(client: AsyncClient, make_user, storage) -> None:
    _, headers = await make_user()
    storage.fail = True
    response = await client.post(
        f"{BASE}/upload", files=[("files", ("ktp.jpg", b"ktp", "image/jpeg"))], headers=headers
    )
    assert response.status_code == 502

    listing = await client.get(BASE, headers=headers)
    assert listing.json()["pagination"]["total"] == 0


@pytest.mark.asyncio
async def test_upload_failure_removes_already_stored_files(client: AsyncClient, make_user, storage) -> None:
    _, headers = await make_user()
    storage.fail_after = 1
    files = [("files", ("kk.jpg", b"kk", "image/jpeg")), ("files", ("akta.jpg", b"akta", "image/jpeg"))]
    response = await client.post(f"{BASE}/upload", files=files, headers=headers)
    assert response.status_code == 502

    assert len(storage.uploads) == 1
    assert storage.deleted == [storage.uploads[0][0]]
    listing = await client.get(BASE, headers=headers)
    assert listing.json()["pagination"]["total"] == 0


@pytest.mark.asyncio
async def test_patch_multipart_file_replaces_url(client: AsyncClient, make_user, storage) -> None:
    user_id, headers = await make_user()
    await client.post(BASE, json={"doc_type": "ktp", "file_url": "https://files.test/old"}, headers=headers)

    response = await client.patch(
        f"{BASE}/ktp",
        files={"file": ("ktp-baru.png", b"new-bytes", "image/png")},
        data={"file_url": "https://files.test/ignored", "file_trash_url": "https://files.test/old"},
        headers=headers,
    )
    assert response.status_code == 200
    data = response.json()["data"]
    path = storage.uploads[0][0]
    assert path.startswith(f"users/documents/{user_id}/")
    assert path.endswith(".png")
    assert data["file_url"] == f"https://storage.test/{path}"
    assert data["file_trash_url"] == "https://files.test/old"


@pytest.mark.asyncio
async def test_patch_multipart_without_file_updates_fields(client: AsyncClient, make_user, storage) -> None:
    _, headers = await make_user()
    await client.post(BASE, json={"doc_type": "ktp", "file_url": "https://files.test/old"}, headers=headers)

    response = await client.patch(f"{BASE}/ktp", data={"file_url": "https://files.test/new"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["data"]["file_url"] == "https://files.test/new"
    assert storage.uploads == []


@pytest.mark.asyncio
async def test_patch_multipart_storage_failure_keeps_document(client: AsyncClient, make_user, storage) -> None:
    _, headers = await make_user()
    await client.post(BASE, json={"doc_type": "ktp", "file_url": "https://files.test/old"}, headers=headers)
    storage.fail = True

    response = await client.patch(
        f"{BASE}/ktp", files={"file": ("ktp.png", b"bytes", "image/png")}, headers=headers
    )
    assert response.status_code == 502
    assert response.json()["error_code"] == "UPSTREAM_ERROR"

    current = await client.get(f"{BASE}/ktp", headers=headers)
    assert current.json()["data"]["file_url"] == "https://files.test/old"


@pytest.mark.asyncio
async def test_urls_must_be_valid(client: AsyncClient, make_user) -> None:
    _, headers = await make_user()
    bad_create = await client.post(BASE, json={"doc_type": "ktp", "file_url": "not a url"}, headers=headers)
    assert bad_create.status_code == 400

    await client.post(BASE, json={"doc_type": "ktp", "file_url": "https://files.test/ktp"}, headers=headers)

    bad_json = await client.patch(f"{BASE}/ktp", json={"file_trash_url": "ftp//broken"}, headers=headers)
    assert bad_json.status_code == 400
    assert bad_json.json()["errors"][0]["field"] == "file_trash_url"

    bad_form = await client.patch(f"{BASE}/ktp", data={"file_url": "nope"}, headers=headers)
    assert bad_form.status_code == 400

    current = await client.get(f"{BASE}/ktp", headers=headers)
    assert current.json()["data"]["file_url"] == "https://files.test/ktp"


@pytest.mark.asyncio
async def test_patch_plain_updates(client: AsyncClient, make_user) -> None:
    _, headers = await make_user()
    await client.post(BASE, json={"doc_type": "ktp", "file_url": "https://files.test/old"}, headers=headers)

    moved = await client.patch(
        f"{BASE}/ktp",
        json={
            "file_url": "https://files.test/new",
            "file_trash_url": "https://files.test/old",
            "file_delete_pending_until": "2030-01-01T00:00:00+00:00",
        },
        headers=headers,
    )
    assert moved.status_code == 200
    data = moved.json()["data"]
    assert data["file_url"] == "https://files.test/new"
    assert data["file_trash_url"] == "https://files.test/old"
    assert data["file_delete_pending_until"].startswith("2030-01-01")

    # Omitted fields are untouched, "" clears the trash fields
    cleared = await client.patch(
        f"{BASE}/ktp", json={"file_trash_url": "", "file_delete_pending_until": ""}, headers=headers
    )
    data = cleared.json()["data"]
    assert data["file_url"] == "https://files.test/new"
    assert data["file_trash_url"] is None
    assert data["file_delete_pending_until"] is None


@pytest.mark.asyncio
async def test_soft_and_hard_delete(client: AsyncClient, make_user) -> None:
    _, headers = await make_user()
    for doc_type in ("ktp", "npwp"):
        await client.post(BASE, json={"doc_type": doc_type, "file_url": f"https://files.test/{doc_type}"}, headers=headers)

    soft = await client.delete(f"{BASE}/ktp", headers=headers)
    assert soft.status_code == 200
    assert soft.json()["data"] == {"doc_type": "ktp"}
    assert (await client.get(f"{BASE}/ktp", headers=headers)).status_code == 404

    hard = await client.delete(f"{BASE}/npwp", params={"hard": "true"}, headers=headers)
    assert hard.json()["message"] == "Document permanently deleted"

    alive_only = await client.get(BASE, headers=headers)
    assert alive_only.json()["pagination"]["total"] == 0
    everything = await client.get(BASE, params={"only_alive": "false"}, headers=headers)
    assert [d["doc_type"] for d in everything.json()["data"]] == ["ktp"]

    # A soft-deleted doc_type can be created again
    again = await client.post(BASE, json={"doc_type": "ktp", "file_url": "https://files.test/ktp2"}, headers=headers)
    assert again.status_code == 201


@pytest.mark.asyncio
async def test_requires_authentication(client: AsyncClient) -> None:
    assert (await client.get(BASE)).status_code == 401
