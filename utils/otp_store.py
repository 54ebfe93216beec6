"""
Durable store for email OTP sessions.

Every state transition is a conditional UPDATE whose WHERE clause restates the
precondition (verified_at IS NULL, used_at IS NULL, ...). The affected-row count
tells the caller whether it won; two concurrent requests can never both win.
"""
from datetime import datetime, timedelta

from sqlalchemy import and_, or_, text

from models import db
from models.email_otp import EmailOtpSession

USED_RETENTION = timedelta(days=7)
EXPIRED_RETENTION = timedelta(days=1)
TOKEN_EXPIRED_RETENTION = timedelta(days=1)


class OtpSessionStore:

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session or db.session

    def now(self):
        """
        Authoritative clock as naive UTC. PostgreSQL answers with its own now() so
        limits hold across app servers with skewed clocks.
        """
        bind = self.session.get_bind()
        if bind.dialect.name == 'postgresql':
            return self.session.execute(text("SELECT timezone('utc', now())")).scalar()
        return datetime.utcnow()

    def lock_email(self, email):
        """
        Serialize Send for one email until the current transaction ends, so the
        cooldown check and the insert that follows cannot interleave. PostgreSQL
        only; SQLite already serializes writers.
        """
        bind = self.session.get_bind()
        if bind.dialect.name == 'postgresql':
            self.session.execute(text("SELECT pg_advisory_xact_lock(hashtext(:email))"), {"email": email})

    # ---------- reads ----------

    def active_cooldown(self, email, now):
        """Latest pending session for the email whose resend cooldown is still running."""
        return (
            self.session.query(EmailOtpSession)
            .filter(
                EmailOtpSession.email == email,
                EmailOtpSession.verified_at.is_(None),
                EmailOtpSession.used_at.is_(None),
                EmailOtpSession.cooldown_until > now,
            )
            .order_by(EmailOtpSession.cooldown_until.desc())
            .first()
        )

    def get_challenge(self, challenge_id, email):
        return (
            self.session.query(EmailOtpSession)
            .filter_by(challenge_id=challenge_id, email=email)
            .first()
        )

    def find_redeemable(self, email, token, now):
        return (
            self.session.query(EmailOtpSession)
            .filter(
                EmailOtpSession.email == email,
                EmailOtpSession.verification_token == token,
                EmailOtpSession.verified_at.isnot(None),
                EmailOtpSession.used_at.is_(None),
                EmailOtpSession.token_expires_at > now,
            )
            .first()
        )

    # ---------- writes ----------

    def create(self, **fields):
        row = EmailOtpSession(**fields)
        self.session.add(row)
        self.session.commit()
        return row

    def increment_attempts(self, session_id, now):
        """Count a wrong guess; only while the session is still pending and unlocked."""
        changed = (
            self.session.query(EmailOtpSession)
            .filter(
                EmailOtpSession.id == session_id,
                EmailOtpSession.verified_at.is_(None),
                EmailOtpSession.used_at.is_(None),
                EmailOtpSession.attempts < EmailOtpSession.max_attempts,
            )
            .update(
                {
                    EmailOtpSession.attempts: EmailOtpSession.attempts + 1,
                    EmailOtpSession.updated_at: now,
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return changed == 1

    def mark_verified(self, session_id, token, token_expires_at, now):
        changed = (
            self.session.query(EmailOtpSession)
            .filter(
                EmailOtpSession.id == session_id,
                EmailOtpSession.verified_at.is_(None),
                EmailOtpSession.used_at.is_(None),
                EmailOtpSession.attempts < EmailOtpSession.max_attempts,
                EmailOtpSession.expires_at >= now,
            )
            .update(
                {
                    EmailOtpSession.verified_at: now,
                    EmailOtpSession.verification_token: token,
                    EmailOtpSession.token_expires_at: token_expires_at,
                    EmailOtpSession.updated_at: now,
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return changed == 1

    def mark_used(self, session_id, token, order_id, now):
        """
        Redeem the verification token for an order. Does not commit: the caller
        commits together with the order so a failed order leaves the token usable.
        """
        changed = (
            self.session.query(EmailOtpSession)
            .filter(
                EmailOtpSession.id == session_id,
                EmailOtpSession.verification_token == token,
                EmailOtpSession.verified_at.isnot(None),
                EmailOtpSession.used_at.is_(None),
                EmailOtpSession.token_expires_at > now,
            )
            .update(
                {
                    EmailOtpSession.used_at: now,
                    EmailOtpSession.order_id: order_id,
                    EmailOtpSession.updated_at: now,
                },
                synchronize_session=False,
            )
        )
        return changed == 1

    def purge(self, now):
        """Delete sessions well past their useful life. Returns the number of rows removed."""
        stale = or_(
            and_(
                EmailOtpSession.used_at.isnot(None),
                EmailOtpSession.used_at < now - USED_RETENTION,
            ),
            and_(
                EmailOtpSession.verified_at.is_(None),
                EmailOtpSession.expires_at < now - EXPIRED_RETENTION,
            ),
            and_(
                EmailOtpSession.verified_at.isnot(None),
                EmailOtpSession.used_at.is_(None),
                EmailOtpSession.token_expires_at < now - TOKEN_EXPIRED_RETENTION,
            ),
        )
        removed = (
            self.session.query(EmailOtpSession)
            .filter(stale)
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return removed
