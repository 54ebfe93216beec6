"""
Email OTP engine gating order placement.

PENDING --verify(correct)--> VERIFIED --order placed--> CONSUMED

EXPIRED, LOCKED and TOKEN_EXPIRED are derived on every call from the stored
timestamps and counters, never stored. All state lives in the database, so
any number of app servers can share it.
"""
import logging
import math
from datetime import timedelta

from flask import current_app

from utils.errors import (
    AlreadyUsed,
    AlreadyVerified,
    CooldownActive,
    Expired,
    InvalidChallengeFormat,
    InvalidCode,
    InvalidCodeFormat,
    InvalidEmail,
    InvalidVerification,
    Locked,
    NotFound,
)
from utils.otp_helper import (
    generate_challenge_id,
    generate_otp,
    generate_verification_token,
    hash_otp,
    verify_otp,
)
from utils.otp_store import OtpSessionStore
from utils.validators import normalize_email, validate_email, validate_hex_token, validate_otp_code

logger = logging.getLogger(__name__)


def _seconds_until(deadline, now):
    return max(0, math.ceil((deadline - now).total_seconds()))


class OtpEngine:
    """Send / Verify / Consume / Purge over an OtpSessionStore."""

    def __init__(self, store, secret, otp_ttl=600, resend_cooldown=60, max_attempts=5,
                 token_ttl=900, deliver=None, dev_mode=False, clock=None):
        if not secret:
            raise ValueError("OTP secret must be configured")
        self.store = store
        self.secret = secret
        self.otp_ttl = timedelta(seconds=otp_ttl)
        self.resend_cooldown = timedelta(seconds=resend_cooldown)
        self.max_attempts = max_attempts
        self.token_ttl = timedelta(seconds=token_ttl)
        self.deliver = deliver
        self.dev_mode = dev_mode
        self.clock = clock or store.now

    # ---------- send ----------

    def send(self, email):
        email = normalize_email(email)
        if not validate_email(email):
            raise InvalidEmail()

        now = self.clock()
        self._purge_quietly(now)

        # Held until create() commits
        self.store.lock_email(email)
        pending = self.store.active_cooldown(email, now)
        if pending is not None:
            retry_after = max(1, _seconds_until(pending.cooldown_until, now))
            self.store.session.rollback()
            raise CooldownActive(retry_after)

        code = generate_otp()
        challenge_id = generate_challenge_id()
        row = self.store.create(
            challenge_id=challenge_id,
            email=email,
            otp_hash=hash_otp(email, code, challenge_id, self.secret),
            attempts=0,
            max_attempts=self.max_attempts,
            expires_at=now + self.otp_ttl,
            cooldown_until=now + self.resend_cooldown,
        )

        # The session is already committed; delivery can only change how the code reaches the user
        delivered = self._deliver(email, code)

        result = {
            "challenge_id": challenge_id,
            "expires_in_sec": _seconds_until(row.expires_at, now),
            "resend_in_sec": _seconds_until(row.cooldown_until, now),
            "delivered": delivered,
        }
        if not delivered and self.dev_mode:
            result["debug_code"] = code
        return result

    def _deliver(self, email, code):
        if self.deliver is not None:
            try:
                if self.deliver(email, code, int(self.otp_ttl.total_seconds())):
                    return True
            except Exception as e:
                logger.error("OTP email delivery to %s failed: %s", email, e, exc_info=True)
        logger.warning("OTP email not delivered; fallback code for %s is %s", email, code)
        return False

    # ---------- verify ----------

    def verify(self, email, challenge_id, code):
        email = normalize_email(email)
        challenge_id = challenge_id.strip().lower() if isinstance(challenge_id, str) else ""
        # JSON clients may send the code as a number; every issued code has 6 digits
        if isinstance(code, int) and not isinstance(code, bool):
            code = str(code)
        code = code.strip() if isinstance(code, str) else ""
        if not validate_email(email):
            raise InvalidEmail()
        if not validate_hex_token(challenge_id):
            raise InvalidChallengeFormat()
        if not validate_otp_code(code):
            raise InvalidCodeFormat()

        now = self.clock()
        self._purge_quietly(now)

        row = self.store.get_challenge(challenge_id, email)
        if row is None:
            raise NotFound()
        self._check_pending(row, now)

        if not verify_otp(email, code, challenge_id, self.secret, row.otp_hash):
            if not self.store.increment_attempts(row.id, now):
                self._check_pending(row, now)
                raise Locked()
            raise InvalidCode(attempts_remaining=row.attempts_remaining())

        token = generate_verification_token()
        token_expires_at = now + self.token_ttl
        if not self.store.mark_verified(row.id, token, token_expires_at, now):
            # Another request changed the row between our read and write
            self._check_pending(row, now)
            raise AlreadyVerified()

        logger.info("Email %s verified for challenge %s...", email, challenge_id[:8])
        return {
            "verification_token": token,
            "token_expires_in_sec": _seconds_until(token_expires_at, now),
        }

    def _check_pending(self, row, now):
        if row.used_at is not None:
            raise AlreadyUsed()
        if row.verified_at is not None:
            raise AlreadyVerified()
        if row.is_expired(now):
            raise Expired()
        if row.is_locked():
            raise Locked()

    # ---------- consume (order flow) ----------

    def find_redeemable(self, email, token):
        """Session whose token may place an order now, or InvalidVerification."""
        email = normalize_email(email)
        token = token.strip().lower() if isinstance(token, str) else ""
        if not validate_email(email) or not validate_hex_token(token):
            raise InvalidVerification()
        row = self.store.find_redeemable(email, token, self.clock())
        if row is None:
            raise InvalidVerification()
        return row

    def mark_consumed(self, row, order_id):
        """
        Final step of order placement, inside the order's transaction.
        Raises InvalidVerification if a concurrent order already redeemed the token.
        """
        if not self.store.mark_used(row.id, row.verification_token, order_id, self.clock()):
            raise InvalidVerification()

    # ---------- purge ----------

    def purge(self):
        removed = self.store.purge(self.clock())
        if removed:
            logger.info("Purged %d stale OTP sessions", removed)
        return removed

    def _purge_quietly(self, now):
        try:
            self.store.purge(now)
        except Exception as e:
            self.store.session.rollback()
            logger.warning("OTP session purge skipped: %s", e)


def get_otp_engine():
    """Engine wired to the current app's config, mail channel and database."""
    from utils.mail import send_checkout_otp_email

    cfg = current_app.config
    store = OtpSessionStore()
    return OtpEngine(
        store=store,
        secret=cfg.get("OTP_SECRET") or cfg.get("SECRET_KEY"),
        otp_ttl=cfg.get("OTP_TTL_SECONDS", 600),
        resend_cooldown=cfg.get("OTP_RESEND_COOLDOWN_SECONDS", 60),
        max_attempts=cfg.get("OTP_MAX_ATTEMPTS", 5),
        token_ttl=cfg.get("OTP_TOKEN_TTL_SECONDS", 900),
        deliver=send_checkout_otp_email,
        dev_mode=cfg.get("OTP_DEV_MODE", False),
        clock=cfg.get("OTP_CLOCK"),
    )
