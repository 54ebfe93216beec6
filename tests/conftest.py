from datetime import datetime, timedelta, timezone

import jwt
import pytest
from sqlalchemy.pool import StaticPool

from app import create_app
from config import Config
from models import db as _db

JWT_SECRET = "test-jwt-secret-0123456789abcdef0123456789"
ADMIN_EMAIL = "admin@chemsus.in"


class FakeClock:
    """Stands in for the database clock so expiry and cooldown can be stepped precisely."""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 3, 2, 9, 30, 0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret-key"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {
        "connect_args": {"check_same_thread": False},
        "poolclass": StaticPool,
    }
    MAIL_SERVER = None
    MAIL_USERNAME = None
    MAIL_SUPPRESS_SEND = True
    OTP_SECRET = "test-otp-secret"
    OTP_TTL_SECONDS = 600
    OTP_RESEND_COOLDOWN_SECONDS = 60
    OTP_MAX_ATTEMPTS = 5
    OTP_TOKEN_TTL_SECONDS = 900
    OTP_DEV_MODE = True
    AUTH_JWT_SECRET = JWT_SECRET
    AUTH_JWKS_URL = None
    AUTH_JWT_ALGORITHMS = ["HS256"]
    AUTH_JWT_AUDIENCE = None
    AUTH_JWT_ISSUER = None
    ADMIN_EMAILS = [ADMIN_EMAIL]
    ADMIN_ROLES = ["admin"]
    UPI_VPA = "chemsus@okaxis"
    UPI_PAYEE_NAME = "ChemSus"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def app(clock):
    app = create_app(TestingConfig)
    app.config["OTP_CLOCK"] = clock
    yield app
    with app.app_context():
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


def make_token(email, sub="user-1", role=None, expires_in=3600, secret=JWT_SECRET):
    claims = {
        "sub": sub,
        "email": email,
        "exp": datetime.now(tz=timezone.utc) + timedelta(seconds=expires_in),
    }
    if role:
        claims["app_metadata"] = {"role": role}
    return jwt.encode(claims, secret, algorithm="HS256")


def bearer(email, **kwargs):
    return {"Authorization": f"Bearer {make_token(email, **kwargs)}"}


@pytest.fixture
def admin_headers():
    return bearer(ADMIN_EMAIL, sub="admin-1")


def send_and_verify(client, email):
    """Run the OTP flow through the API and return the verification token."""
    sent = client.post("/api/otp/send", json={"email": email})
    assert sent.status_code == 200, sent.get_json()
    body = sent.get_json()
    verified = client.post("/api/otp/verify", json={
        "email": email,
        "challenge_id": body["challenge_id"],
        "otp": body["debug_code"],
    })
    assert verified.status_code == 200, verified.get_json()
    return verified.get_json()["verification_token"]


def order_payload(email, token, **overrides):
    payload = {
        "customername": "Asha Rao",
        "email": email,
        "phone": "9876543210",
        "address": "12 MG Road",
        "city": "Bengaluru",
        "region": "Karnataka",
        "pincode": "560001",
        "items": [{"shop_item_id": 1, "pack_size": "5 kg", "quantity": 2}],
        "verification_token": token,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def placed_order(client):
    """An order placed through the full OTP checkout; returns (order_id, email)."""
    email = "asha@example.com"
    token = send_and_verify(client, email)
    response = client.post("/api/orders", json=order_payload(email, token))
    assert response.status_code == 201, response.get_json()
    return response.get_json()["order_id"], email
