"""
API error types.

Validation errors (400) are the caller's fault, policy errors (429) clear by
waiting, state errors (400) clear only by requesting a new code.
"""
from flask import jsonify


class ApiError(Exception):
    status_code = 400
    error = 'BAD_REQUEST'
    message = 'Bad request.'

    def __init__(self, message=None, **extra):
        super().__init__(message or self.message)
        if message:
            self.message = message
        self.extra = extra

    def to_response(self):
        body = {"success": False, "error": self.error, "message": self.message}
        body.update(self.extra)
        return jsonify(body), self.status_code


# ---------- validation ----------

class InvalidEmail(ApiError):
    error = 'INVALID_EMAIL'
    message = 'Please provide a valid email address.'


class InvalidChallengeFormat(ApiError):
    error = 'INVALID_CHALLENGE_FORMAT'
    message = 'Invalid verification challenge.'


class InvalidCodeFormat(ApiError):
    error = 'INVALID_CODE_FORMAT'
    message = 'Verification code must be 6 digits.'


class ValidationFailed(ApiError):
    error = 'VALIDATION_FAILED'
    message = 'Please correct the highlighted fields.'


# ---------- policy ----------

class CooldownActive(ApiError):
    status_code = 429
    error = 'COOLDOWN_ACTIVE'
    message = 'Please wait before requesting another code.'

    def __init__(self, retry_after_sec):
        super().__init__(retry_after_seconds=retry_after_sec)
        self.retry_after_sec = retry_after_sec

    def to_response(self):
        response, status = super().to_response()
        response.headers['Retry-After'] = str(self.retry_after_sec)
        return response, status


class Locked(ApiError):
    status_code = 429
    error = 'LOCKED'
    message = 'Too many attempts. Please request a new code.'


# ---------- state ----------

class NotFound(ApiError):
    error = 'NOT_FOUND'
    message = 'Verification request not found. Please request a new code.'


class AlreadyUsed(ApiError):
    error = 'ALREADY_USED'
    message = 'This verification has already been used for an order.'


class AlreadyVerified(ApiError):
    error = 'ALREADY_VERIFIED'
    message = 'This code has already been verified.'


class Expired(ApiError):
    error = 'EXPIRED'
    message = 'Verification code has expired. Please request a new one.'


class InvalidCode(ApiError):
    error = 'INVALID_CODE'
    message = 'Invalid verification code.'


class InvalidVerification(ApiError):
    error = 'INVALID_VERIFICATION'
    message = 'Email verification is missing, expired or already used. Please verify your email again.'


# ---------- access ----------

class Forbidden(ApiError):
    status_code = 403
    error = 'FORBIDDEN'
    message = 'You do not have access to this resource.'


class ResourceNotFound(ApiError):
    status_code = 404
    error = 'NOT_FOUND'
    message = 'Resource not found.'


class Conflict(ApiError):
    status_code = 409
    error = 'CONFLICT'
    message = 'Request conflicts with the current state.'
