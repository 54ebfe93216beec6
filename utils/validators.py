"""
Input validation helpers
"""
import re

EMAIL_RE = re.compile(r'^[A-Za-z0-9._%+\-]+@[A-Za-z0-9](?:[A-Za-z0-9\-]*[A-Za-z0-9])?(?:\.[A-Za-z0-9](?:[A-Za-z0-9\-]*[A-Za-z0-9])?)+$')
HEX_TOKEN_RE = re.compile(r'^[0-9a-f]{20,128}$')
OTP_CODE_RE = re.compile(r'^[0-9]{6}$')
PHONE_RE = re.compile(r'^\+?[0-9]{10,15}$')
PINCODE_RE = re.compile(r'^[0-9A-Za-z \-]{3,12}$')


def normalize_email(email):
    """Trim and lower-case; every email comparison uses this form."""
    if not isinstance(email, str):
        return ''
    return email.strip().lower()


def validate_email(email):
    """Structural check only; no DNS lookup."""
    if not email or len(email) > 254:
        return False
    return EMAIL_RE.match(email) is not None


def validate_hex_token(value):
    """Challenge ids and verification tokens: lower-case hex, at least 20 characters."""
    if not isinstance(value, str):
        return False
    return HEX_TOKEN_RE.match(value) is not None


def validate_otp_code(code):
    # str.isdigit() accepts non-ASCII digits, so use an explicit ASCII pattern
    if not isinstance(code, str):
        return False
    return OTP_CODE_RE.match(code) is not None


def validate_phone(phone):
    digits = re.sub(r'[\s\-()]', '', phone or '')
    return PHONE_RE.match(digits) is not None


def validate_pincode(pincode):
    return bool(pincode) and PINCODE_RE.match(pincode) is not None
