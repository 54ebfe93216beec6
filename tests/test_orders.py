from unittest.mock import patch

from models import db
from models.email_otp import EmailOtpSession
from models.order import Order
from models.product_page import ProductPage
from utils.otp_store import OtpSessionStore
from tests.conftest import bearer, order_payload, send_and_verify

EMAIL = "asha@example.com"


def test_shop_items_lists_seeded_catalog(client):
    response = client.get("/api/shop-items")
    assert response.status_code == 200
    items = response.get_json()
    assert [item["name"] for item in items] == ["Bio Fermented Manure", "Liquid Bio Stimulant"]
    assert [pack["pack_size"] for pack in items[0]["packs"]] == ["1 kg", "5 kg", "25 kg"]


def test_public_settings_and_health(client):
    assert client.get("/api/settings/public").get_json() == {"brochure_url": "assets/brochure.pdf"}
    assert client.get("/api/test").get_json()["status"] == "Backend running"


def test_checkout_prices_cart_on_server(app, client):
    token = send_and_verify(client, EMAIL)
    payload = order_payload(EMAIL, token, items=[
        {"shop_item_id": 1, "pack_size": "5 kg", "quantity": 2, "unit_price": 1},
        {"shop_item_id": 2, "pack_size": "1 L", "quantity": 1},
    ])
    response = client.post("/api/orders", json=payload)

    assert response.status_code == 201
    body = response.get_json()
    assert body["totalprice"] == 2 * 1990 + 580
    assert body["upi_uri"].startswith("upi://pay?pa=chemsus%40okaxis")
    assert "am=4560.00" in body["upi_uri"]

    with app.app_context():
        order = Order.query.get(body["order_id"])
        assert order.payment_status == "PENDING"
        assert order.order_status == "Processing"
        assert len(order.items) == 2
        otp_session = EmailOtpSession.query.filter_by(order_id=order.id).one()
        assert otp_session.used_at is not None


def test_wrong_code_then_checkout_once(app, client):
    sent = client.post("/api/otp/send", json={"email": EMAIL}).get_json()
    wrong = "100000" if sent["debug_code"] != "100000" else "100001"

    miss = client.post("/api/otp/verify", json={
        "email": EMAIL, "challenge_id": sent["challenge_id"], "otp": wrong,
    })
    assert miss.status_code == 400
    assert miss.get_json()["attempts_remaining"] == 4
    with app.app_context():
        assert EmailOtpSession.query.filter_by(challenge_id=sent["challenge_id"]).one().attempts == 1

    token = client.post("/api/otp/verify", json={
        "email": EMAIL, "challenge_id": sent["challenge_id"], "otp": sent["debug_code"],
    }).get_json()["verification_token"]

    first = client.post("/api/orders", json=order_payload(EMAIL, token))
    assert first.status_code == 201
    with app.app_context():
        used = EmailOtpSession.query.filter_by(challenge_id=sent["challenge_id"]).one()
        assert used.order_id == first.get_json()["order_id"]

    second = client.post("/api/orders", json=order_payload(EMAIL, token))
    assert second.status_code == 400
    assert second.get_json()["error"] == "INVALID_VERIFICATION"


def test_checkout_token_is_single_use(client):
    token = send_and_verify(client, EMAIL)
    assert client.post("/api/orders", json=order_payload(EMAIL, token)).status_code == 201

    response = client.post("/api/orders", json=order_payload(EMAIL, token))
    assert response.status_code == 400
    assert response.get_json()["error"] == "INVALID_VERIFICATION"


def test_checkout_requires_verification(client):
    response = client.post("/api/orders", json=order_payload(EMAIL, None))
    assert response.status_code == 400
    assert response.get_json()["error"] == "INVALID_VERIFICATION"


def test_checkout_token_for_other_email_rejected(client):
    token = send_and_verify(client, "someone.else@example.com")
    response = client.post("/api/orders", json=order_payload(EMAIL, token))
    assert response.status_code == 400
    assert response.get_json()["error"] == "INVALID_VERIFICATION"


def test_checkout_expired_token_rejected(client, clock):
    token = send_and_verify(client, EMAIL)
    clock.advance(minutes=16)
    response = client.post("/api/orders", json=order_payload(EMAIL, token))
    assert response.status_code == 400
    assert response.get_json()["error"] == "INVALID_VERIFICATION"


def test_checkout_validation_reports_every_field(client):
    token = send_and_verify(client, EMAIL)
    response = client.post("/api/orders", json=order_payload(
        EMAIL, token, customername="", phone="12", pincode="",
    ))
    assert response.status_code == 400
    body = response.get_json()
    assert body["error"] == "VALIDATION_FAILED"
    assert len(body["errors"]) == 3


def test_checkout_rejects_unknown_pack_and_empty_cart(client):
    token = send_and_verify(client, EMAIL)

    response = client.post("/api/orders", json=order_payload(EMAIL, token, items=[]))
    assert response.status_code == 400
    assert response.get_json()["error"] == "VALIDATION_FAILED"

    response = client.post("/api/orders", json=order_payload(
        EMAIL, token, items=[{"shop_item_id": 1, "pack_size": "2 kg", "quantity": 1}],
    ))
    assert response.status_code == 400

    # The token survives rejected attempts
    assert client.post("/api/orders", json=order_payload(EMAIL, token)).status_code == 201


def test_checkout_requires_whole_pack_quantities(app, client):
    token = send_and_verify(client, EMAIL)
    for quantity in (0.5, 0.01, 1.5, 0, -1, "2", True):
        response = client.post("/api/orders", json=order_payload(
            EMAIL, token, items=[{"shop_item_id": 1, "pack_size": "5 kg", "quantity": quantity}],
        ))
        assert response.status_code == 400, quantity
        assert response.get_json()["error"] == "VALIDATION_FAILED"

    with app.app_context():
        assert Order.query.count() == 0

    response = client.post("/api/orders", json=order_payload(
        EMAIL, token, items=[{"shop_item_id": 1, "pack_size": "5 kg", "quantity": 3.0}],
    ))
    assert response.status_code == 201
    assert response.get_json()["totalprice"] == 3 * 1990


def test_products_page_lists_active_products(app, client):
    with app.app_context():
        db.session.add_all([
            ProductPage(name="Biochar", sort_order=2, link="/biochar"),
            ProductPage(name="Compost", sort_order=1),
            ProductPage(name="Retired", sort_order=0, is_active=False),
        ])
        db.session.commit()

    products = client.get("/api/products").get_json()
    assert [p["name"] for p in products] == ["Compost", "Biochar"]
    assert products[1]["link"] == "/biochar"


def test_checkout_rejects_non_object_body(client):
    response = client.post("/api/orders", json=["not", "an", "object"])
    assert response.status_code == 400
    assert response.get_json()["error"] == "VALIDATION_FAILED"


def test_failed_order_leaves_token_redeemable(app, client):
    token = send_and_verify(client, EMAIL)

    with patch.object(OtpSessionStore, "mark_used", side_effect=RuntimeError("disk full")):
        response = client.post("/api/orders", json=order_payload(EMAIL, token))
    assert response.status_code == 500
    assert response.get_json()["error"] == "INTERNAL_ERROR"

    with app.app_context():
        assert Order.query.count() == 0

    response = client.post("/api/orders", json=order_payload(EMAIL, token))
    assert response.status_code == 201
    with app.app_context():
        assert Order.query.count() == 1


def test_my_orders_and_detail(client, placed_order):
    order_id, email = placed_order
    headers = bearer(email, sub="customer-42")

    mine = client.get("/api/orders/mine", headers=headers)
    assert mine.status_code == 200
    assert [order["id"] for order in mine.get_json()] == [order_id]

    detail = client.get(f"/api/orders/{order_id}", headers=headers).get_json()
    assert detail["items"][0]["pack_size"] == "5 kg"
    assert detail["payments"] == []

    upi = client.get(f"/api/orders/{order_id}/upi", headers=headers).get_json()
    assert upi["amount"] == 3980


def test_orders_require_sign_in(client, placed_order):
    order_id, _ = placed_order
    response = client.get(f"/api/orders/{order_id}")
    assert response.status_code == 401
    assert response.get_json()["error"] == "UNAUTHORIZED"


def test_other_customers_cannot_see_order(client, placed_order):
    order_id, _ = placed_order
    headers = bearer("stranger@example.com", sub="stranger")
    assert client.get(f"/api/orders/{order_id}", headers=headers).status_code == 403
    assert client.get("/api/orders/mine", headers=headers).get_json() == []
    assert client.get("/api/orders/9999", headers=headers).status_code == 404


def test_customer_messages(app, client, placed_order):
    order_id, email = placed_order
    headers = bearer(email)

    empty = client.post(f"/api/orders/{order_id}/messages", headers=headers, json={"message": "  "})
    assert empty.status_code == 400

    response = client.post(f"/api/orders/{order_id}/messages", headers=headers,
                           json={"message": "When will this ship?"})
    assert response.status_code == 201
    assert response.get_json()["data"]["sender"] == "user"

    thread = client.get(f"/api/orders/{order_id}/messages", headers=headers).get_json()
    assert [m["message"] for m in thread] == ["When will this ship?"]
