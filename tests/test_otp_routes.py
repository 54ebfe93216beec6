from unittest.mock import patch

from models.email_otp import EmailOtpSession
from utils.mail import mail

EMAIL = "buyer@example.com"


def send(client, email=EMAIL):
    return client.post("/api/otp/send", json={"email": email})


def test_send_otp_dev_fallback(client):
    response = send(client)
    assert response.status_code == 200
    body = response.get_json()
    assert body["success"] is True
    assert body["delivered"] is False
    assert len(body["debug_code"]) == 6
    assert body["expires_in_sec"] == 600
    assert body["resend_in_sec"] == 60


def test_send_otp_accepts_form_data(client):
    response = client.post("/api/otp/send", data={"email": EMAIL})
    assert response.status_code == 200
    assert response.get_json()["challenge_id"]


def test_send_otp_invalid_email(client):
    response = client.post("/api/otp/send", json={"email": "nope"})
    assert response.status_code == 400
    body = response.get_json()
    assert body == {"success": False, "error": "INVALID_EMAIL", "message": body["message"]}


def test_send_otp_cooldown(client, clock):
    assert send(client).status_code == 200
    clock.advance(seconds=15)

    response = send(client)
    assert response.status_code == 429
    body = response.get_json()
    assert body["error"] == "COOLDOWN_ACTIVE"
    assert body["retry_after_seconds"] == 45
    assert response.headers["Retry-After"] == "45"


def test_send_otp_delivered_by_email(app, client):
    app.config.update(MAIL_SERVER="smtp.example.com", MAIL_USERNAME="orders@chemsus.in")
    with patch.object(mail, "send") as smtp_send:
        response = send(client)

    body = response.get_json()
    assert response.status_code == 200
    assert body["delivered"] is True
    assert "debug_code" not in body
    message = smtp_send.call_args[0][0]
    assert message.recipients == [EMAIL]


def test_send_otp_smtp_failure_still_issues_challenge(app, client):
    app.config.update(MAIL_SERVER="smtp.example.com", MAIL_USERNAME="orders@chemsus.in")
    with patch.object(mail, "send", side_effect=OSError("connection refused")):
        response = send(client)

    body = response.get_json()
    assert response.status_code == 200
    assert body["delivered"] is False
    assert body["debug_code"]
    with app.app_context():
        assert EmailOtpSession.query.filter_by(challenge_id=body["challenge_id"]).count() == 1


def test_verify_otp(client):
    body = send(client).get_json()
    response = client.post("/api/otp/verify", json={
        "email": EMAIL.upper(),
        "challenge_id": body["challenge_id"],
        "otp": body["debug_code"],
    })
    assert response.status_code == 200
    verified = response.get_json()
    assert verified["success"] is True
    assert len(verified["verification_token"]) == 64
    assert verified["token_expires_in_sec"] == 900

    again = client.post("/api/otp/verify", json={
        "email": EMAIL,
        "challenge_id": body["challenge_id"],
        "code": body["debug_code"],
    })
    assert again.status_code == 400
    assert again.get_json()["error"] == "ALREADY_VERIFIED"


def test_verify_otp_wrong_code_then_locked(client):
    body = send(client).get_json()
    wrong = "100000" if body["debug_code"] != "100000" else "100001"
    payload = {"email": EMAIL, "challenge_id": body["challenge_id"], "otp": wrong}

    for remaining in (4, 3, 2, 1, 0):
        response = client.post("/api/otp/verify", json=payload)
        assert response.status_code == 400
        assert response.get_json()["error"] == "INVALID_CODE"
        assert response.get_json()["attempts_remaining"] == remaining

    payload["otp"] = body["debug_code"]
    response = client.post("/api/otp/verify", json=payload)
    assert response.status_code == 429
    assert response.get_json()["error"] == "LOCKED"


def test_verify_otp_expired(client, clock):
    body = send(client).get_json()
    clock.advance(minutes=11)
    response = client.post("/api/otp/verify", json={
        "email": EMAIL, "challenge_id": body["challenge_id"], "otp": body["debug_code"],
    })
    assert response.status_code == 400
    assert response.get_json()["error"] == "EXPIRED"


def test_verify_otp_format_errors(client):
    cases = [
        ({"email": EMAIL, "challenge_id": "zz", "otp": "123456"}, "INVALID_CHALLENGE_FORMAT"),
        ({"email": EMAIL, "challenge_id": "a" * 32, "otp": "12345"}, "INVALID_CODE_FORMAT"),
        ({"email": EMAIL, "challenge_id": "a" * 32, "otp": "123456"}, "NOT_FOUND"),
        ({}, "INVALID_EMAIL"),
    ]
    for payload, error in cases:
        response = client.post("/api/otp/verify", json=payload)
        assert response.status_code == 400, payload
        assert response.get_json()["error"] == error


def test_non_object_json_body_is_rejected(client):
    for url in ("/api/otp/send", "/api/otp/verify"):
        response = client.post(url, json=[EMAIL])
        assert response.status_code == 400, url
        assert response.get_json()["error"] == "VALIDATION_FAILED"


def test_verify_otp_numeric_code(client):
    body = send(client).get_json()
    response = client.post("/api/otp/verify", json={
        "email": EMAIL, "challenge_id": body["challenge_id"], "otp": int(body["debug_code"]),
    })
    assert response.status_code == 200
    assert response.get_json()["verification_token"]


def test_unexpected_failure_is_generic_500(client):
    with patch("routes.otp.get_otp_engine", side_effect=RuntimeError("db exploded")):
        response = send(client)
    assert response.status_code == 500
    body = response.get_json()
    assert body["error"] == "INTERNAL_ERROR"
    assert "exploded" not in body["message"]
