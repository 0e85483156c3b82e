from decimal import Decimal

import pytest


pytestmark = pytest.mark.integration


async def _create_po(client, headers, seed, item_id=None, qty="100", rate="50"):
    response = await client.post(
        "/purchase-orders/",
        json={
            "purchase_order_date": "2025-01-10",
            "site_id": seed.site_id,
            "vendor_id": seed.vendor_id,
            "lines": [{"item_id": item_id or seed.item_id, "ordered_qty": qty, "rate": rate}],
        },
        headers=headers(seed.users.purchase_manager),
    )
    assert response.status_code == 200, response.text
    return response.json()["data"]


# =====================================================
# HEALTH / AUTH
# =====================================================
async def test_health_check(client):
    response = await client.get("/")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["service"] == "contractor-backoffice-api"


async def test_login_returns_token(client, seed):
    response = await client.post(
        "/auth/login",
        json={"username": seed.users.site_engineer.username, "password": seed.password},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["token_type"] == "bearer"
    assert body["data"]["user"]["role"] == "site_engineer"


async def test_login_rejects_bad_password(client, seed):
    response = await client.post(
        "/auth/login",
        json={"username": seed.users.site_engineer.username, "password": "wrong"},
    )

    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert body["error_code"] == "UNAUTHORIZED"


async def test_invalid_token_is_unauthorized(client, seed):
    response = await client.get("/indents/1", headers={"Authorization": "Bearer not-a-token"})

    assert response.status_code == 401


# =====================================================
# ERROR ENVELOPE
# =====================================================
async def test_missing_capability_is_forbidden(client, seed, auth_headers):
    response = await client.post(
        "/indents/",
        json={
            "indent_date": "2025-01-05",
            "site_id": seed.site_id,
            "items": [{"item_id": seed.item_id, "indent_qty": "5"}],
        },
        headers=auth_headers(seed.users.store_keeper),
    )

    assert response.status_code == 403
    body = response.json()
    assert body["error_code"] == "PERMISSION_DENIED"
    assert body["details"] == {"capability": "CREATE_INDENTS"}


async def test_invalid_body_is_rejected(client, seed, auth_headers):
    response = await client.post(
        "/indents/",
        json={"indent_date": "2025-01-05", "site_id": seed.site_id, "items": []},
        headers=auth_headers(seed.users.site_engineer),
    )

    assert response.status_code == 422
    assert response.json()["error_code"] == "VALIDATION_ERROR"


async def test_unknown_document_is_not_found(client, seed, auth_headers):
    response = await client.get("/purchase-orders/999", headers=auth_headers(seed.users.purchase_manager))

    assert response.status_code == 404
    assert response.json()["error_code"] == "NOT_FOUND"


# =====================================================
# INDENT FLOW
# =====================================================
async def test_indent_create_and_approve(client, seed, auth_headers):
    created = await client.post(
        "/indents/",
        json={
            "indent_date": "2025-01-05",
            "site_id": seed.site_id,
            "items": [{"item_id": seed.item_id, "indent_qty": "40"}],
        },
        headers=auth_headers(seed.users.site_engineer),
    )
    assert created.status_code == 200, created.text
    indent = created.json()["data"]
    assert indent["approval_status"] == "DRAFT"

    self_approve = await client.patch(
        f"/indents/{indent['id']}",
        json={"status_action": "approve1"},
        headers=auth_headers(seed.users.site_engineer),
    )
    assert self_approve.status_code == 403

    approved = await client.patch(
        f"/indents/{indent['id']}",
        json={"status_action": "approve1", "items": [{"id": indent["items"][0]["id"], "approved_qty": "35"}]},
        headers=auth_headers(seed.users.purchase_manager),
    )
    assert approved.status_code == 200, approved.text
    data = approved.json()["data"]
    assert data["approval_status"] == "APPROVED_LEVEL_1"
    assert Decimal(data["items"][0]["approved_qty"]) == Decimal("35")


# =====================================================
# INWARD CHALLANS
# =====================================================
async def test_challan_lifecycle(client, seed, auth_headers):
    po = await _create_po(client, auth_headers, seed)
    po_line_id = po["lines"][0]["id"]
    keeper = auth_headers(seed.users.store_keeper)

    created = await client.post(
        "/inward-delivery-challans/",
        json={
            "inward_challan_date": "2025-01-15",
            "purchase_order_id": po["id"],
            "items": [{"purchase_order_line_id": po_line_id, "receiving_qty": "60"}],
        },
        headers=keeper,
    )
    assert created.status_code == 200, created.text
    challan = created.json()["data"]
    assert challan["inward_challan_no"] == "0001-0001"
    assert challan["version"] == 1

    fetched = await client.get(f"/inward-delivery-challans/{challan['id']}", headers=keeper)
    assert fetched.status_code == 200
    closing = fetched.json()["data"]["closing_stock_by_item_id"]
    assert Decimal(closing[str(seed.item_id)]) == Decimal("60")

    listed = await client.get(
        "/inward-delivery-challans/",
        params={"purchase_order_id": po["id"], "status": "UNPAID"},
        headers=keeper,
    )
    assert listed.status_code == 200
    assert listed.json()["data"]["total"] == 1

    too_much = await client.patch(
        f"/inward-delivery-challans/{challan['id']}",
        json={"version": 1, "items": [{"purchase_order_line_id": po_line_id, "receiving_qty": "101"}]},
        headers=keeper,
    )
    assert too_much.status_code == 409
    assert too_much.json()["error_code"] == "QUANTITY_EXCEEDED"

    deleted = await client.delete(f"/inward-delivery-challans/{challan['id']}", headers=keeper)
    assert deleted.status_code == 200
    assert deleted.json()["data"] == {"id": challan["id"]}

    gone = await client.get(f"/inward-delivery-challans/{challan['id']}", headers=keeper)
    assert gone.status_code == 404


async def test_challan_bill_and_payment(client, seed, auth_headers):
    po = await _create_po(client, auth_headers, seed)
    created = await client.post(
        "/inward-delivery-challans/",
        json={
            "inward_challan_date": "2025-01-15",
            "purchase_order_id": po["id"],
            "items": [{"purchase_order_line_id": po["lines"][0]["id"], "receiving_qty": "20"}],
        },
        headers=auth_headers(seed.users.store_keeper),
    )
    challan_id = created.json()["data"]["id"]
    accountant = auth_headers(seed.users.accountant)

    keeper_bill = await client.post(
        f"/inward-delivery-challans/{challan_id}/bill",
        json={"bill_no": "B-1", "bill_date": "2025-01-20", "bill_amount": "1000"},
        headers=auth_headers(seed.users.store_keeper),
    )
    assert keeper_bill.status_code == 403

    billed = await client.post(
        f"/inward-delivery-challans/{challan_id}/bill",
        json={"bill_no": "B-1", "bill_date": "2025-01-20", "bill_amount": "1000", "due_days": 15},
        headers=accountant,
    )
    assert billed.status_code == 200, billed.text
    assert billed.json()["data"]["due_date"] == "2025-02-04"

    paid = await client.post(
        f"/inward-delivery-challans/{challan_id}/payments",
        json={"amount": "1000"},
        headers=accountant,
    )
    assert paid.status_code == 200
    assert paid.json()["data"]["status"] == "PAID"

    over = await client.post(
        f"/inward-delivery-challans/{challan_id}/payments",
        json={"amount": "1"},
        headers=accountant,
    )
    assert over.status_code == 400
    assert over.json()["error_code"] == "VALIDATION_ERROR"


# =====================================================
# STOCKS
# =====================================================
async def test_stock_queries(client, seed, auth_headers):
    po = await _create_po(client, auth_headers, seed)
    headers = auth_headers(seed.users.store_keeper)
    tracked_po = await _create_po(client, auth_headers, seed, item_id=seed.tracked_item_id, qty="10", rate="100")

    await client.post(
        "/inward-delivery-challans/",
        json={
            "inward_challan_date": "2025-01-15",
            "purchase_order_id": po["id"],
            "items": [{"purchase_order_line_id": po["lines"][0]["id"], "receiving_qty": "25"}],
        },
        headers=headers,
    )
    await client.post(
        "/inward-delivery-challans/",
        json={
            "inward_challan_date": "2025-01-16",
            "purchase_order_id": tracked_po["id"],
            "items": [
                {
                    "purchase_order_line_id": tracked_po["lines"][0]["id"],
                    "receiving_qty": "4",
                    "batches": [{"batch_number": "S-1", "expiry_date": "2026-06", "receiving_qty": "4"}],
                }
            ],
        },
        headers=headers,
    )

    for source in ("balance", "ledger"):
        response = await client.get(
            "/stocks/closing-stock",
            params={"site_id": seed.site_id, "item_ids": f"{seed.item_id},{seed.tracked_item_id}", "source": source},
            headers=headers,
        )
        assert response.status_code == 200
        items = {row["item_id"]: Decimal(row["closing_qty"]) for row in response.json()["data"]["items"]}
        assert items == {seed.item_id: Decimal("25"), seed.tracked_item_id: Decimal("4")}

    bad = await client.get(
        "/stocks/closing-stock",
        params={"site_id": seed.site_id, "item_ids": "1,abc"},
        headers=headers,
    )
    assert bad.status_code == 400

    batches = await client.get("/stocks/site-item-batches", params={"site_id": seed.site_id}, headers=headers)
    assert batches.status_code == 200
    [batch] = batches.json()["data"]
    assert batch["batch_number"] == "S-1"
    assert batch["expiry_date"] == "2026-06-01"
    assert Decimal(batch["closing_qty"]) == Decimal("4")
