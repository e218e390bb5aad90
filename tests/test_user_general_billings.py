import pytest
from httpx import AsyncClient

from masjidku.api.v1.user_general_billings.service import check_transition
from masjidku.core.exceptions import BadRequestError


async def _billing(client: AsyncClient, ctx, **overrides) -> str:
    body = {"category": "spp", "title": "SPP Juli", "default_amount_idr": 150000, **overrides}
    response = await client.post(f"/api/a/{ctx['masjid_id']}/general-billings", json=body, headers=ctx["headers"])
    return response.json()["data"]["id"]


async def _assign(client: AsyncClient, ctx, billing_id: str, payer_id, **extra):
    return await client.post(
        f"/api/a/{ctx['masjid_id']}/general-billings/{billing_id}/user-billings",
        json={"payer_user_id": str(payer_id), **extra},
        headers=ctx["headers"],
    )


def _item_url(ctx, user_billing_id: str) -> str:
    return f"/api/a/{ctx['masjid_id']}/user-general-billings/{user_billing_id}"


@pytest.mark.parametrize(
    "current, target",
    [("unpaid", "paid"), ("unpaid", "canceled"), ("canceled", "unpaid"), ("paid", "unpaid"), ("paid", "paid")],
)
def test_allowed_transitions(current, target) -> None:
    check_transition(current, target)


@pytest.mark.parametrize("current, target", [("paid", "canceled"), ("canceled", "paid")])
def test_rejected_transitions(current, target) -> None:
    with pytest.raises(BadRequestError):
        check_transition(current, target)


@pytest.mark.asyncio
async def test_create_copies_snapshot_and_default_amount(client: AsyncClient, tenant, make_user) -> None:
    payer_id, _ = await make_user("wali_santri")
    billing_id = await _billing(client, tenant)

    response = await _assign(client, tenant, billing_id, payer_id, note="Anak pertama")
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["amount_idr"] == 150000
    assert data["status"] == "unpaid"
    assert data["title_snapshot"] == "SPP Juli"
    assert data["category_snapshot"] == "spp"
    assert data["bill_code_snapshot"] == "SPP"
    assert data["note"] == "Anak pertama"


@pytest.mark.asyncio
async def test_amount_required_without_default(client: AsyncClient, tenant, make_user) -> None:
    payer_id, _ = await make_user()
    billing_id = await _billing(client, tenant, default_amount_idr=None)

    assert (await _assign(client, tenant, billing_id, payer_id)).status_code == 400
    assert (await _assign(client, tenant, billing_id, payer_id, amount_idr=50000)).status_code == 201


@pytest.mark.asyncio
async def test_duplicate_payer_conflicts(client: AsyncClient, tenant, make_user) -> None:
    payer_id, _ = await make_user()
    billing_id = await _billing(client, tenant)
    await _assign(client, tenant, billing_id, payer_id)
    assert (await _assign(client, tenant, billing_id, payer_id)).status_code == 409


@pytest.mark.asyncio
async def test_billing_from_other_masjid_not_found(client: AsyncClient, tenant, other_tenant, make_user) -> None:
    payer_id, _ = await make_user()
    billing_id = await _billing(client, tenant)
    response = await _assign(client, other_tenant, billing_id, payer_id)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_pay_then_revert(client: AsyncClient, tenant, make_user) -> None:
    payer_id, _ = await make_user()
    billing_id = await _billing(client, tenant)
    user_billing_id = (await _assign(client, tenant, billing_id, payer_id)).json()["data"]["id"]
    url = _item_url(tenant, user_billing_id)

    paid = await client.patch(url, json={"status": "paid"}, headers=tenant["headers"])
    assert paid.status_code == 200
    assert paid.json()["data"]["status"] == "paid"
    assert paid.json()["data"]["paid_at"] is not None

    cancel = await client.patch(url, json={"status": "canceled"}, headers=tenant["headers"])
    assert cancel.status_code == 400

    reverted = await client.patch(url, json={"status": "unpaid"}, headers=tenant["headers"])
    assert reverted.json()["data"]["status"] == "unpaid"
    assert reverted.json()["data"]["paid_at"] is None


@pytest.mark.asyncio
async def test_paid_at_only_accepted_for_paid_status(client: AsyncClient, tenant, make_user) -> None:
    payer_id, _ = await make_user()
    billing_id = await _billing(client, tenant)
    user_billing_id = (await _assign(client, tenant, billing_id, payer_id)).json()["data"]["id"]
    url = _item_url(tenant, user_billing_id)

    stray = await client.patch(url, json={"paid_at": "2025-01-01T00:00:00Z"}, headers=tenant["headers"])
    assert stray.status_code == 400
    current = await client.get(url, headers=tenant["headers"])
    assert current.json()["data"]["paid_at"] is None

    canceled = await client.patch(
        url, json={"status": "canceled", "paid_at": "2025-01-01T00:00:00Z"}, headers=tenant["headers"]
    )
    assert canceled.status_code == 400

    paid = await client.patch(
        url, json={"status": "paid", "paid_at": "2025-01-01T00:00:00Z"}, headers=tenant["headers"]
    )
    assert paid.status_code == 200
    assert paid.json()["data"]["paid_at"].startswith("2025-01-01T00:00:00")


@pytest.mark.asyncio
async def test_patch_tri_state_fields(client: AsyncClient, tenant, make_user) -> None:
    payer_id, _ = await make_user()
    billing_id = await _billing(client, tenant)
    user_billing_id = (
        await _assign(client, tenant, billing_id, payer_id, note="awal", meta={"nis": "001"})
    ).json()["data"]["id"]
    url = _item_url(tenant, user_billing_id)

    response = await client.patch(url, json={"note": None, "amount_idr": 120000}, headers=tenant["headers"])
    data = response.json()["data"]
    assert data["note"] is None
    assert data["amount_idr"] == 120000
    assert data["meta"] == {"nis": "001"}

    assert (await client.patch(url, json={"amount_idr": None}, headers=tenant["headers"])).status_code == 400
    assert (await client.patch(url, json={"status": None}, headers=tenant["headers"])).status_code == 400
    assert (await client.patch(url, json={"status": "lunas"}, headers=tenant["headers"])).status_code == 400


@pytest.mark.asyncio
async def test_list_for_billing_and_mine(client: AsyncClient, tenant, make_user) -> None:
    payer_a, headers_a = await make_user("payer_a")
    payer_b, _ = await make_user("payer_b")
    billing_id = await _billing(client, tenant)
    first = (await _assign(client, tenant, billing_id, payer_a)).json()["data"]["id"]
    await _assign(client, tenant, billing_id, payer_b)
    await client.patch(_item_url(tenant, first), json={"status": "paid"}, headers=tenant["headers"])

    list_url = f"/api/a/{tenant['masjid_id']}/general-billings/{billing_id}/user-billings"
    everything = await client.get(list_url, headers=tenant["headers"])
    assert everything.json()["pagination"]["total"] == 2
    unpaid = await client.get(list_url, params={"status": "unpaid"}, headers=tenant["headers"])
    assert unpaid.json()["pagination"]["total"] == 1

    mine = await client.get("/api/u/user-general-billings", headers=headers_a)
    assert [b["id"] for b in mine.json()["data"]] == [first]


@pytest.mark.asyncio
async def test_soft_delete_allows_reassign(client: AsyncClient, tenant, make_user) -> None:
    payer_id, _ = await make_user()
    billing_id = await _billing(client, tenant)
    user_billing_id = (await _assign(client, tenant, billing_id, payer_id)).json()["data"]["id"]

    assert (await client.delete(_item_url(tenant, user_billing_id), headers=tenant["headers"])).status_code == 200
    assert (await client.get(_item_url(tenant, user_billing_id), headers=tenant["headers"])).status_code == 404
    assert (await _assign(client, tenant, billing_id, payer_id)).status_code == 201
