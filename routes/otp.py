"""
Checkout email verification routes: send OTP, verify OTP
"""
from flask import Blueprint, jsonify, request, current_app
from models import db
from utils.errors import ApiError, ValidationFailed
from utils.otp_engine import get_otp_engine

otp_bp = Blueprint('otp', __name__, url_prefix='/api/otp')

GENERIC_ERROR = "Something went wrong. Please try again later."
OTP_SENT_MSG = "Verification code sent. Check your email."
OTP_FALLBACK_MSG = "Verification code generated, but email delivery is unavailable."
OTP_VERIFY_SUCCESS_MSG = "Email verified successfully."


def _request_data():
    data = request.get_json(silent=True)
    if data is None:
        return request.form
    if not isinstance(data, dict):
        raise ValidationFailed('Expected a JSON object.')
    return data


def _internal_error(e, action):
    db.session.rollback()
    current_app.logger.error(f"Unexpected error in {action}: {str(e)}", exc_info=True)
    message = GENERIC_ERROR
    if current_app.config.get('DEBUG'):
        message = f"{action} failed: {str(e)}"
    return jsonify({"success": False, "error": "INTERNAL_ERROR", "message": message}), 500


@otp_bp.route('/send', methods=['POST'])
def send_otp():
    """
    Issue a 6-digit code for the email. Input (JSON or form): email.
    429 with retry_after_seconds while the previous code's resend cooldown runs.
    """
    try:
        data = _request_data()
        result = get_otp_engine().send(data.get("email"))
        message = OTP_SENT_MSG if result["delivered"] else OTP_FALLBACK_MSG
        return jsonify({"success": True, "message": message, **result})
    except ApiError as e:
        return e.to_response()
    except Exception as e:
        return _internal_error(e, "send OTP")


@otp_bp.route('/verify', methods=['POST'])
def verify_otp():
    """
    Verify a code. Input: email, challenge_id, otp.
    Returns the single-use verification_token that checkout requires.
    """
    try:
        data = _request_data()
        result = get_otp_engine().verify(
            data.get("email"),
            data.get("challenge_id"),
            data.get("otp") or data.get("code"),
        )
        return jsonify({"success": True, "message": OTP_VERIFY_SUCCESS_MSG, **result})
    except ApiError as e:
        return e.to_response()
    except Exception as e:
        return _internal_error(e, "verify OTP")
