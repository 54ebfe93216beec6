"""
OTP generation and hashing for the checkout email verification.
OTPs are hashed before storage; never store plain OTP in DB.
"""
import hashlib
import hmac
import secrets

OTP_LENGTH = 6
OTP_MIN = 100000
OTP_MAX = 999999
CHALLENGE_ID_BYTES = 16     # 32 hex characters
VERIFICATION_TOKEN_BYTES = 32  # 64 hex characters


def generate_otp() -> str:
    """Generate a 6-digit numeric OTP drawn uniformly from [100000, 999999]."""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


def generate_challenge_id() -> str:
    return secrets.token_hex(CHALLENGE_ID_BYTES)


def generate_verification_token() -> str:
    return secrets.token_hex(VERIFICATION_TOKEN_BYTES)


def hash_otp(email: str, otp: str, challenge_id: str, secret: str) -> str:
    """
    Bind the code to its email and challenge with an HMAC keyed by the server secret.
    The same code issued for a different challenge produces an unrelated digest.
    """
    message = f"{email}|{challenge_id}|{otp}".encode('utf-8')
    return hmac.new(secret.encode('utf-8'), message, hashlib.sha256).hexdigest()


def verify_otp(email: str, plain_otp: str, challenge_id: str, secret: str, otp_hash: str) -> bool:
    """Verify a plain OTP against stored hash (constant-time compare)."""
    return hmac.compare_digest(hash_otp(email, plain_otp, challenge_id, secret), otp_hash or '')
