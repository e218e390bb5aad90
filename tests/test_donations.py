import pytest
from httpx import AsyncClient

from masjidku.api.v1.donations.service import map_transaction_status
from masjidku.core.config import settings
from masjidku.integrations.midtrans import notification_signature


async def _donate(client: AsyncClient, slug: str, headers=None, **overrides):
    body = {"name": "Hamba Allah", "email": "donor@example.com", "message": "Semoga berkah", "amount": 100000}
    body.update(overrides)
    return await client.post(f"/public/masjids/{slug}/donations", json=body, headers=headers or {})


async def _notify(client: AsyncClient, order_id: str, transaction_status: str, **extra):
    body = {"order_id": order_id, "transaction_status": transaction_status, **extra}
    return await client.post("/api/donations/notification", json=body)


@pytest.mark.parametrize(
    "transaction_status, expected",
    [
        ("settlement", "completed"),
        ("success", "completed"),
        ("SETTLEMENT", "completed"),
        ("failed", "failed"),
        ("cancelled", "failed"),
        ("pending", None),
        ("expire", None),
        ("deny", None),
    ],
)
def test_transaction_status_mapping(transaction_status, expected) -> None:
    assert map_transaction_status(transaction_status) == expected


@pytest.mark.asyncio
async def test_create_donation_returns_snap_token(client: AsyncClient, tenant, midtrans) -> None:
    response = await _donate(client, "al-ikhlas")
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["order_id"].startswith("DONATION-")
    assert data["snap_token"] == f"snap-{data['order_id']}"
    assert data["redirect_url"].endswith(data["order_id"])
    assert midtrans.calls == [{"order_id": data["order_id"], "gross_amount": 100000, "customer_name": "Hamba Allah"}]


@pytest.mark.asyncio
async def test_create_donation_unknown_masjid(client: AsyncClient) -> None:
    response = await _donate(client, "tidak-ada")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_non_positive_amount_rejected(client: AsyncClient, tenant) -> None:
    response = await _donate(client, "al-ikhlas", amount=0)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_breakdown_must_add_up(client: AsyncClient, tenant) -> None:
    response = await _donate(client, "al-ikhlas", amount=100000, amount_masjid=90000, amount_masjidku=5000)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_breakdown_is_completed(client: AsyncClient, tenant, owner) -> None:
    _, owner_headers = owner
    await _donate(client, "al-ikhlas", amount=100000, amount_masjid=90000, amount_masjidku=10001)
    await _donate(client, "al-ikhlas", amount=50000, amount_masjidku=1000)
    # The first request is rejected: 90000 + 10001 != 100000
    listing = await client.get("/api/a/donations", headers=owner_headers)
    rows = listing.json()["data"]
    assert len(rows) == 1
    row = rows[0]
    assert row["amount_masjid"] == 49000
    assert row["amount_masjidku"] == 1000
    assert row["amount_masjidku_to_masjid"] == 500
    assert row["amount_masjidku_to_app"] == 500


@pytest.mark.asyncio
async def test_gateway_failure_keeps_pending_row(client: AsyncClient, tenant, owner, midtrans) -> None:
    _, owner_headers = owner
    midtrans.fail = True
    response = await _donate(client, "al-ikhlas")
    assert response.status_code == 502
    assert response.json()["error_code"] == "UPSTREAM_ERROR"

    listing = await client.get("/api/a/donations", params={"status": "pending"}, headers=owner_headers)
    assert listing.json()["pagination"]["total"] == 1


@pytest.mark.asyncio
async def test_settlement_completes_donation(client: AsyncClient, tenant) -> None:
    order_id = (await _donate(client, "al-ikhlas")).json()["data"]["order_id"]

    settled = await _notify(client, order_id, "settlement", payment_type="bank_transfer")
    assert settled.status_code == 200
    assert settled.json()["data"] == {
        "order_id": order_id,
        "transaction_status": "settlement",
        "status": "completed",
        "changed": True,
    }

    wall = await client.get("/public/masjids/slug/al-ikhlas/donations")
    entries = wall.json()["data"]
    assert len(entries) == 1
    assert entries[0]["name"] == "Hamba Allah"
    assert entries[0]["paid_at"] is not None
    assert "email" not in entries[0]


@pytest.mark.asyncio
async def test_failure_after_settlement_marks_failed(client: AsyncClient, tenant) -> None:
    order_id = (await _donate(client, "al-ikhlas")).json()["data"]["order_id"]
    await _notify(client, order_id, "settlement")

    late_failure = await _notify(client, order_id, "cancelled")
    assert late_failure.status_code == 200
    assert late_failure.json()["data"]["status"] == "failed"
    assert late_failure.json()["data"]["changed"] is True

    wall = await client.get("/public/masjids/slug/al-ikhlas/donations")
    assert wall.json()["data"] == []


@pytest.mark.asyncio
async def test_failure_and_unmapped_statuses(client: AsyncClient, tenant) -> None:
    order_id = (await _donate(client, "al-ikhlas")).json()["data"]["order_id"]

    pending = await _notify(client, order_id, "pending")
    assert pending.json()["data"]["status"] == "pending"
    assert pending.json()["data"]["changed"] is False

    failed = await _notify(client, order_id, "cancelled")
    assert failed.json()["data"]["status"] == "failed"

    wall = await client.get(f"/public/masjids/{tenant['masjid_id']}/donations")
    assert wall.json()["data"] == []


@pytest.mark.asyncio
async def test_notification_unknown_order_and_missing_fields(client: AsyncClient) -> None:
    assert (await _notify(client, "DONATION-0", "settlement")).status_code == 404
    response = await client.post("/api/donations/notification", json={"transaction_status": "settlement"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_notification_signature_checked_when_enabled(client: AsyncClient, tenant, monkeypatch) -> None:
    monkeypatch.setattr(settings, "midtrans_verify_signature", True)
    monkeypatch.setattr(settings, "midtrans_server_key", "SB-server-key")
    order_id = (await _donate(client, "al-ikhlas")).json()["data"]["order_id"]

    forged = await _notify(
        client, order_id, "settlement", status_code="200", gross_amount="100000.00", signature_key="forged"
    )
    assert forged.status_code == 403

    signature = notification_signature(order_id, "200", "100000.00", "SB-server-key")
    genuine = await _notify(
        client, order_id, "settlement", status_code="200", gross_amount="100000.00", signature_key=signature
    )
    assert genuine.status_code == 200
    assert genuine.json()["data"]["status"] == "completed"


@pytest.mark.asyncio
async def test_logged_in_donor_sees_own_donations(client: AsyncClient, tenant, make_user) -> None:
    _, headers = await make_user("donatur")
    await _donate(client, "al-ikhlas", headers=headers)
    await _donate(client, "al-ikhlas")

    mine = await client.get("/api/u/masjids/al-ikhlas/donations/mine", headers=headers)
    assert mine.status_code == 200
    assert mine.json()["pagination"]["total"] == 1


@pytest.mark.asyncio
async def test_bad_token_on_optional_auth_is_rejected(client: AsyncClient, tenant) -> None:
    response = await _donate(client, "al-ikhlas", headers={"Authorization": "Bearer broken"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_dkm_list_is_scoped_to_masjid(client: AsyncClient, tenant, other_tenant) -> None:
    await _donate(client, "al-ikhlas", name="Untuk Ikhlas")
    await _donate(client, "an-nur", name="Untuk Nur")

    response = await client.get(f"/api/a/{tenant['masjid_id']}/donations", headers=tenant["headers"])
    assert response.status_code == 200
    assert [d["name"] for d in response.json()["data"]] == ["Untuk Ikhlas"]

    forbidden = await client.get(f"/api/a/{tenant['masjid_id']}/donations", headers=other_tenant["headers"])
    assert forbidden.status_code == 403


@pytest.mark.asyncio
async def test_owner_list_filters_and_date_range(client: AsyncClient, tenant, owner) -> None:
    _, headers = owner
    await _donate(client, "al-ikhlas", name="Budi", amount=5000)
    await _donate(client, "al-ikhlas", name="Siti", amount=7000)

    searched = await client.get("/api/a/donations", params={"q": "sit"}, headers=headers)
    assert [d["name"] for d in searched.json()["data"]] == ["Siti"]

    by_amount = await client.get("/api/a/donations", params={"sort_by": "amount", "order": "asc"}, headers=headers)
    assert [d["amount"] for d in by_amount.json()["data"]] == [5000, 7000]

    bad_range = await client.get(
        "/api/a/donations", params={"date_from": "2025-02-01", "date_to": "2025-01-01"}, headers=headers
    )
    assert bad_range.status_code == 400

    bad_status = await client.get("/api/a/donations", params={"status": "refunded"}, headers=headers)
    assert bad_status.status_code == 400


@pytest.mark.asyncio
async def test_owner_soft_deletes_donation(client: AsyncClient, tenant, owner) -> None:
    _, headers = owner
    donation_id = (await _donate(client, "al-ikhlas")).json()["data"]["donation_id"]

    assert (await client.delete(f"/api/a/donations/{donation_id}", headers=headers)).status_code == 200
    assert (await client.delete(f"/api/a/donations/{donation_id}", headers=headers)).status_code == 404

    alive_only = await client.get("/api/a/donations", headers=headers)
    assert alive_only.json()["pagination"]["total"] == 0
    with_deleted = await client.get("/api/a/donations", params={"include_deleted": "true"}, headers=headers)
    assert with_deleted.json()["pagination"]["total"] == 1
