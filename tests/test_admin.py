from models.order import Order
from tests.conftest import bearer


def submit_payment(client, order_id, email, **overrides):
    payload = {"payment_ref": "UTR123456789", "rating": 5, "feedback": "Smooth"}
    payload.update(overrides)
    return client.post(f"/api/orders/{order_id}/payments", headers=bearer(email), json=payload)


def test_admin_routes_require_admin(client, placed_order):
    assert client.get("/api/admin/orders").status_code == 401

    response = client.get("/api/admin/orders", headers=bearer("asha@example.com"))
    assert response.status_code == 403
    assert response.get_json()["error"] == "FORBIDDEN"

    role_admin = bearer("ops@example.com", sub="ops", role="admin")
    assert client.get("/api/admin/orders", headers=role_admin).status_code == 200


def test_admin_order_list(client, placed_order, admin_headers):
    order_id, _ = placed_order
    body = client.get("/api/admin/orders", headers=admin_headers).get_json()
    assert [order["id"] for order in body["orders"]] == [order_id]
    assert body["total_orders"] == 1
    assert body["total_revenue"] == 0

    searched = client.get("/api/admin/orders?search=nobody", headers=admin_headers).get_json()
    assert searched["orders"] == []


def test_payment_submission_and_verification(app, client, placed_order, admin_headers):
    order_id, email = placed_order

    response = submit_payment(client, order_id, email)
    assert response.status_code == 201
    body = response.get_json()
    assert body["payment_status"] == "UNDER_REVIEW"
    assert body["payment"]["amount"] == 3980
    payment_id = body["payment"]["id"]

    duplicate = submit_payment(client, order_id, email)
    assert duplicate.status_code == 409

    listed = client.get("/api/admin/payments?status=PENDING", headers=admin_headers).get_json()
    assert [p["id"] for p in listed["payments"]] == [payment_id]

    verified = client.post(f"/api/admin/payments/{payment_id}/verify", headers=admin_headers,
                           json={"status": "verified", "note": "Credit seen in bank statement"})
    assert verified.status_code == 200
    body = verified.get_json()
    assert body["order_payment_status"] == "PAID"
    assert body["order_status"] == "Confirmed"

    again = client.post(f"/api/admin/payments/{payment_id}/verify", headers=admin_headers,
                        json={"status": "VERIFIED"})
    assert again.status_code == 409

    assert submit_payment(client, order_id, email, payment_ref="UTR999999").status_code == 409

    summary = client.get("/api/admin/orders", headers=admin_headers).get_json()
    assert summary["total_revenue"] == 3980
    with app.app_context():
        assert "Credit seen" in Order.query.get(order_id).notes


def test_rejected_payment(client, placed_order, admin_headers):
    order_id, email = placed_order
    payment_id = submit_payment(client, order_id, email).get_json()["payment"]["id"]

    response = client.post(f"/api/admin/payments/{payment_id}/verify", headers=admin_headers,
                           json={"status": "REJECTED"})
    assert response.get_json()["order_payment_status"] == "REJECTED"

    bad = client.post(f"/api/admin/payments/{payment_id}/verify", headers=admin_headers,
                      json={"status": "MAYBE"})
    assert bad.status_code == 400


def test_payment_validation(client, placed_order):
    order_id, email = placed_order
    response = submit_payment(client, order_id, email, payment_ref="x!", rating=9)
    assert response.status_code == 400
    assert len(response.get_json()["errors"]) == 2

    stranger = client.post(f"/api/orders/{order_id}/payments", headers=bearer("stranger@example.com"),
                           json={"payment_ref": "UTR123456789"})
    assert stranger.status_code == 403


def test_update_order(client, placed_order, admin_headers):
    order_id, _ = placed_order
    response = client.patch(f"/api/admin/orders/{order_id}", headers=admin_headers,
                            json={"order_status": "Shipped", "notes": "Dispatched via road"})
    assert response.status_code == 200
    assert response.get_json()["order"]["order_status"] == "Shipped"

    invalid = client.patch(f"/api/admin/orders/{order_id}", headers=admin_headers,
                           json={"order_status": "Lost"})
    assert invalid.status_code == 400

    empty = client.patch(f"/api/admin/orders/{order_id}", headers=admin_headers, json={})
    assert empty.status_code == 400


def test_export_csv(client, placed_order, admin_headers):
    order_id, email = placed_order
    response = client.get("/api/admin/orders/export/csv", headers=admin_headers)
    assert response.status_code == 200
    assert response.headers["Content-Type"].startswith("text/csv")
    lines = response.get_data(as_text=True).strip().splitlines()
    assert lines[0].startswith("Order ID,")
    assert lines[1].startswith(f"{order_id},")
    assert email in lines[1]


def test_admin_reply_and_delete(client, placed_order, admin_headers):
    order_id, email = placed_order
    reply = client.post(f"/api/admin/orders/{order_id}/messages", headers=admin_headers,
                        json={"message": "Shipping tomorrow."})
    assert reply.status_code == 201
    assert reply.get_json()["data"]["sender"] == "admin"

    thread = client.get(f"/api/orders/{order_id}/messages", headers=bearer(email)).get_json()
    assert [m["sender"] for m in thread] == ["admin"]

    assert client.delete(f"/api/admin/orders/{order_id}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/admin/orders/{order_id}", headers=admin_headers).status_code == 404


def test_notifications_feed(client, placed_order, admin_headers):
    order_id, email = placed_order
    submit_payment(client, order_id, email)

    feed = client.get("/api/admin/notifications", headers=admin_headers).get_json()
    assert feed["unread_count"] == 2
    assert [n["type"] for n in feed["notifications"]] == ["payment", "order"]

    first_id = feed["notifications"][0]["id"]
    assert client.post(f"/api/admin/notifications/{first_id}/read", headers=admin_headers).status_code == 200
    assert client.get("/api/admin/notifications?unread_only=true",
                      headers=admin_headers).get_json()["unread_count"] == 1

    client.post("/api/admin/notifications/read-all", headers=admin_headers)
    feed = client.get("/api/admin/notifications", headers=admin_headers).get_json()
    assert feed["unread_count"] == 0
    assert client.post("/api/admin/notifications/999/read", headers=admin_headers).status_code == 404
