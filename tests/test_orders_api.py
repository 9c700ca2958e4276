from pos_api.core.errors import StoreError

ITEMS = [
    {"name": "Pad Thai", "price": 10, "quantity": 2, "note": "no peanuts"},
    {"name": "Iced Tea", "price": 5, "quantity": 1},
]


def create(client, **body):
    return client.post("/orders", json={"items": ITEMS, **body})


def test_end_to_end_create_then_pay(client):
    response = create(client, table="T1")

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert "idempotent" not in body
    order = body["data"]
    assert order["subtotal"] == 25
    assert order["tax"] == 2.5
    assert order["total"] == 27.5
    assert order["status"] == "pending"
    assert order["orderNumber"] == 1
    assert order["items"][0]["note"] == "no peanuts"

    response = client.post(
        f"/orders/{order['id']}/payment", json={"paymentMethod": "cash", "discount": 2.5}
    )

    assert response.status_code == 200
    paid = response.json()["data"]
    assert paid["total"] == 25
    assert paid["discount"] == 2.5
    assert paid["status"] == "paid"
    assert paid["paidAt"] is not None
    assert paid["paymentMethod"] == "cash"


def test_idempotent_create_returns_200_with_flag(client):
    first = create(client, clientRequestId="req-1")
    second = create(client, clientRequestId="req-1")

    assert first.status_code == 201
    assert second.status_code == 200
    assert second.json()["idempotent"] is True
    assert second.json()["data"]["id"] == first.json()["data"]["id"]
    assert len(client.get("/orders").json()["data"]) == 1


def test_empty_items_is_rejected(client):
    response = client.post("/orders", json={"items": []})

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert "items" in response.json()["error"]


def test_bad_line_items_are_rejected(client):
    for item in [
        {"name": "Soup", "price": 4, "quantity": 0},
        {"name": "Soup", "price": 4, "quantity": 1.5},
        {"name": "Soup", "price": "four", "quantity": 1},
        {"name": "", "price": 4, "quantity": 1},
        {"price": 4, "quantity": 1},
    ]:
        response = client.post("/orders", json={"items": [item]})
        assert response.status_code == 400, item
        assert response.json()["success"] is False


def test_listing_is_branch_scoped(client, auth_as, admin, waiter_b1):
    auth_as(admin)
    create(client, branchId="B1")
    create(client, branchId="B2")

    auth_as(waiter_b1)
    response = client.get("/orders", params={"branchId": "B2"})

    assert response.status_code == 200
    assert [o["branchId"] for o in response.json()["data"]] == ["B1"]

    auth_as(admin)
    assert [o["branchId"] for o in client.get("/orders").json()["data"]] == ["B2", "B1"]
    assert [o["branchId"] for o in client.get("/orders", params={"branchId": "B2"}).json()["data"]] == ["B2"]


def test_status_update(client):
    order_id = create(client).json()["data"]["id"]

    response = client.put(f"/orders/{order_id}/status", json={"status": "prepared"})

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "prepared"
    assert response.json()["data"]["preparedAt"] is not None


def test_status_update_rejects_unknown_status(client):
    order_id = create(client).json()["data"]["id"]

    response = client.put(f"/orders/{order_id}/status", json={"status": "cancelled"})

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_status_update_unknown_order(client):
    response = client.put("/orders/nope/status", json={"status": "accepted"})

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Order not found"}


def test_payment_unknown_order(client):
    response = client.post("/orders/nope/payment", json={"paymentMethod": "card"})

    assert response.status_code == 404


def test_payment_rejects_unknown_method(client):
    order_id = create(client).json()["data"]["id"]

    response = client.post(f"/orders/{order_id}/payment", json={"paymentMethod": "bitcoin"})

    assert response.status_code == 400


def test_payment_method_correction(client):
    order_id = create(client).json()["data"]["id"]
    client.post(f"/orders/{order_id}/payment", json={"paymentMethod": "bank", "bankType": "SCB"})

    response = client.put(f"/orders/{order_id}/payment-method", json={"paymentMethod": "cash"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["paymentMethod"] == "cash"
    assert data["bankType"] is None
    assert data["total"] == 27.5


def test_payment_method_correction_forbidden_for_waiter(client, auth_as, waiter_b1):
    order_id = create(client).json()["data"]["id"]
    auth_as(waiter_b1)

    response = client.put(f"/orders/{order_id}/payment-method", json={"paymentMethod": "card"})

    assert response.status_code == 403
    assert response.json() == {"success": False, "error": "Forbidden"}


def test_store_failure_is_a_generic_500(client, service, monkeypatch):
    async def broken_list(*args, **kwargs):
        raise StoreError()

    monkeypatch.setattr(service.store, "list", broken_list)

    response = client.get("/orders")

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Order store failure"}


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Process-Time" in response.headers
