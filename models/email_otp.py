"""
Email OTP sessions gating order placement (PostgreSQL-compatible).
One row per challenge; the raw code is never stored, only its digest.
"""
from models import db
from datetime import datetime


class EmailOtpSession(db.Model):
    """
    One outstanding or historical OTP challenge.

    PENDING   verified_at is NULL
    VERIFIED  verified_at set, used_at NULL (token redeemable until token_expires_at)
    CONSUMED  used_at set, order_id links the order that redeemed the token
    """
    __tablename__ = 'email_otp_sessions'

    id = db.Column(db.Integer, primary_key=True)
    challenge_id = db.Column(db.String(64), unique=True, nullable=False, index=True)
    email = db.Column(db.String(254), nullable=False, index=True)
    otp_hash = db.Column(db.String(128), nullable=False)
    attempts = db.Column(db.Integer, nullable=False, default=0)
    max_attempts = db.Column(db.Integer, nullable=False, default=5)
    expires_at = db.Column(db.DateTime, nullable=False)
    cooldown_until = db.Column(db.DateTime, nullable=False)
    verified_at = db.Column(db.DateTime, nullable=True)
    verification_token = db.Column(db.String(128), nullable=True, index=True)
    token_expires_at = db.Column(db.DateTime, nullable=True)
    used_at = db.Column(db.DateTime, nullable=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id', ondelete='SET NULL'), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def is_verified(self):
        return self.verified_at is not None

    @property
    def is_used(self):
        return self.used_at is not None

    def is_expired(self, now):
        return now > self.expires_at

    def is_locked(self):
        return self.attempts >= self.max_attempts

    def attempts_remaining(self):
        return max(0, self.max_attempts - self.attempts)

    def state(self, now):
        """Derived state name; EXPIRED/LOCKED/TOKEN_EXPIRED are never stored."""
        if self.used_at is not None:
            return 'CONSUMED'
        if self.verified_at is not None:
            if self.token_expires_at is not None and now > self.token_expires_at:
                return 'TOKEN_EXPIRED'
            return 'VERIFIED'
        if self.is_expired(now):
            return 'EXPIRED'
        if self.is_locked():
            return 'LOCKED'
        return 'PENDING'

    def __repr__(self):
        return f'<EmailOtpSession {self.challenge_id[:8]}... {self.email}>'
