import uuid
from datetime import datetime

import pytest

from conftest import order_payload


def parse_ts(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def get_order(client, principal, order_id, prefix="/api/orders"):
    return client.get(f"{prefix}/{order_id}", headers=principal.headers)


def advance(client, provider, order_id, status, note=None):
    body = {"status": status}
    if note is not None:
        body["note"] = note
    return client.patch(
        f"/api/provider/orders/{order_id}/status",
        json=body,
        headers=provider.headers,
    )


def cancel(client, customer, order_id, reason="Changed my mind"):
    return client.patch(
        f"/api/orders/{order_id}/cancel",
        json={"reason": reason},
        headers=customer.headers,
    )


# -------- Checkout --------


def test_place_order_computes_total_and_starts_pending(place_order, customer, provider):
    order = place_order()

    assert order["status"] == "PENDING"
    assert order["totalAmount"] == 21.50
    assert order["customerId"] == str(customer.id)
    assert order["providerId"] == str(provider.id)
    assert order["paymentMethod"] == "CASH_ON_DELIVERY"
    assert order["paymentStatus"] == "PENDING"
    assert [i["lineTotal"] for i in order["orderItems"]] == [16.0, 5.5]
    assert [h["status"] for h in order["statusHistory"]] == ["PENDING"]


@pytest.mark.parametrize(
    "overrides",
    [
        {"deliveryAddress": "   "},
        {"contactPhone": "12345"},
        {"items": []},
        {"items": [{"mealId": str(uuid.uuid4()), "quantity": 0, "priceAtOrder": 3.0}]},
    ],
)
def test_place_order_validation(client, customer, provider, overrides):
    response = client.post(
        "/api/orders",
        json=order_payload(provider.id, **overrides),
        headers=customer.headers,
    )
    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "VALIDATION_ERROR"


def test_providers_cannot_place_orders(client, provider, other_provider):
    response = client.post(
        "/api/orders",
        json=order_payload(other_provider.id),
        headers=provider.headers,
    )
    assert response.status_code == 403
    assert response.json()["error"] == "FORBIDDEN"


def test_missing_token_is_unauthorized(client):
    response = client.get("/api/orders")
    assert response.status_code == 401
    assert response.json() == {
        "success": False,
        "error": "UNAUTHORIZED",
        "message": "Authentication required",
    }


# -------- Reads & ownership --------


def test_customer_reads_own_order_only(client, place_order, customer, other_customer):
    order = place_order()

    assert get_order(client, customer, order["id"]).json()["data"]["id"] == order["id"]

    response = get_order(client, other_customer, order["id"])
    assert response.status_code == 404
    assert response.json()["error"] == "NOT_FOUND"


def test_provider_reads_addressed_orders_only(client, place_order, provider, other_provider):
    order = place_order()

    ok = get_order(client, provider, order["id"], prefix="/api/provider/orders")
    assert ok.status_code == 200

    foreign = get_order(client, other_provider, order["id"], prefix="/api/provider/orders")
    assert foreign.status_code == 404


def test_admin_reads_any_order(client, place_order, admin, customer):
    order = place_order()

    response = get_order(client, admin, order["id"], prefix="/api/admin/orders")
    assert response.status_code == 200
    assert response.json()["data"]["statusHistory"][0]["status"] == "PENDING"

    assert get_order(client, customer, order["id"], prefix="/api/admin/orders").status_code == 403


def test_unknown_order_is_not_found(client, customer):
    assert get_order(client, customer, uuid.uuid4()).status_code == 404


def test_lists_are_paginated_and_filterable(client, place_order, customer, provider, admin):
    ids = [place_order()["id"] for _ in range(3)]
    advance(client, provider, ids[0], "CONFIRMED")

    page = client.get("/api/orders", params={"page": 1, "limit": 2}, headers=customer.headers).json()
    assert page["success"] is True
    assert len(page["data"]) == 2
    assert page["pagination"] == {"page": 1, "limit": 2, "total": 3, "totalPages": 2}

    second = client.get("/api/orders", params={"page": 2, "limit": 2}, headers=customer.headers).json()
    assert len(second["data"]) == 1

    confirmed = client.get(
        "/api/provider/orders",
        params={"status": "CONFIRMED"},
        headers=provider.headers,
    ).json()
    assert [o["id"] for o in confirmed["data"]] == [ids[0]]

    everything = client.get("/api/admin/orders", headers=admin.headers).json()
    assert everything["pagination"]["total"] == 3


def test_list_rejects_unknown_status_filter(client, provider):
    response = client.get("/api/provider/orders", params={"status": "LOST"}, headers=provider.headers)
    assert response.status_code == 422


# -------- Transitions --------


def test_customer_cancel_then_everything_is_rejected(client, place_order, customer, provider):
    order = place_order()

    response = cancel(client, customer, order["id"], "Changed my mind")
    assert response.status_code == 200
    cancelled = response.json()["data"]
    assert cancelled["status"] == "CANCELLED"
    assert cancelled["cancellationReason"] == "Changed my mind"
    assert cancelled["statusHistory"][-1] == {
        "status": "CANCELLED",
        "note": "Changed my mind",
        "createdAt": cancelled["statusHistory"][-1]["createdAt"],
    }
    assert cancelled["totalAmount"] == 21.50

    again = cancel(client, customer, order["id"])
    assert again.status_code == 409
    assert again.json()["error"] == "INVALID_TRANSITION"

    assert advance(client, provider, order["id"], "CONFIRMED").status_code == 409


def test_customer_may_cancel_confirmed_order(client, place_order, customer, provider):
    order = place_order()
    advance(client, provider, order["id"], "CONFIRMED")

    assert cancel(client, customer, order["id"]).status_code == 200


def test_customer_cannot_cancel_out_for_delivery(client, place_order, customer, provider):
    order = place_order()
    for status in ("CONFIRMED", "PREPARING", "OUT_FOR_DELIVERY"):
        assert advance(client, provider, order["id"], status).status_code == 200

    response = cancel(client, customer, order["id"])
    assert response.status_code == 409
    assert get_order(client, customer, order["id"]).json()["data"]["status"] == "OUT_FOR_DELIVERY"


def test_cancel_requires_reason(client, place_order, customer):
    order = place_order()
    for reason in ("", "   ", "Other"):
        response = cancel(client, customer, order["id"], reason)
        assert response.status_code == 422
    assert get_order(client, customer, order["id"]).json()["data"]["status"] == "PENDING"


def test_cannot_cancel_someone_elses_order(client, place_order, other_customer):
    order = place_order()
    assert cancel(client, other_customer, order["id"]).status_code == 404


def test_provider_backward_move_is_rejected(client, place_order, provider):
    order = place_order()
    advance(client, provider, order["id"], "CONFIRMED")
    advance(client, provider, order["id"], "PREPARING")

    rejected = advance(client, provider, order["id"], "CONFIRMED")
    assert rejected.status_code == 409
    assert "PREPARING -> CONFIRMED" in rejected.json()["message"]

    accepted = advance(client, provider, order["id"], "OUT_FOR_DELIVERY")
    assert accepted.status_code == 200
    assert accepted.json()["data"]["status"] == "OUT_FOR_DELIVERY"


def test_provider_cancel_needs_note(client, place_order, provider):
    order = place_order()
    assert advance(client, provider, order["id"], "CANCELLED").status_code == 422

    response = advance(client, provider, order["id"], "CANCELLED", note="Out of ingredients")
    assert response.status_code == 200
    assert response.json()["data"]["cancellationReason"] == "Out of ingredients"


def test_provider_cannot_touch_foreign_order(client, place_order, other_provider):
    order = place_order()
    assert advance(client, other_provider, order["id"], "CONFIRMED").status_code == 404


def test_unmapped_target_status_is_validation_error(client, place_order, provider):
    order = place_order()
    assert advance(client, provider, order["id"], "TELEPORTED").status_code == 422


def test_full_lifecycle_history_and_side_effects(client, place_order, customer, provider):
    order = place_order()
    path = ["CONFIRMED", "PREPARING", "OUT_FOR_DELIVERY", "DELIVERED"]

    updated_at = [order["updatedAt"]]
    for status in path:
        response = advance(client, provider, order["id"], status)
        assert response.status_code == 200
        updated_at.append(response.json()["data"]["updatedAt"])

    final = get_order(client, customer, order["id"]).json()["data"]
    entries = final["statusHistory"]
    stamps = [parse_ts(e["createdAt"]) for e in entries]

    assert len(entries) == len(path) + 1
    assert [e["status"] for e in entries] == ["PENDING", *path]
    assert stamps == sorted(stamps)
    assert entries[-1]["status"] == final["status"] == "DELIVERED"
    parsed = [parse_ts(u) for u in updated_at]
    assert parsed == sorted(parsed) and len(set(parsed)) == len(parsed)

    assert final["totalAmount"] == 21.50
    assert final["paymentStatus"] == "PAID"
    assert final["actualDeliveryTime"] is not None
    assert final["estimatedDeliveryTime"] is not None

    for status in ("CANCELLED", "OUT_FOR_DELIVERY", "DELIVERED"):
        assert advance(client, provider, order["id"], status, note="x").status_code == 409
