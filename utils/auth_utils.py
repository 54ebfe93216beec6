"""
Authentication utility functions.

Customers and staff sign in with the external identity provider; this API only
receives its bearer JWTs. Signatures are always verified, either with the shared
HS256 secret or against the issuer's JWKS.
"""
from functools import wraps

import jwt
from flask import current_app, jsonify, request
from flask_login import LoginManager, UserMixin, current_user

login_manager = LoginManager()

_jwks_clients = {}


class Identity(UserMixin):
    """Verified bearer identity for the current request"""

    def __init__(self, subject, email, roles=()):
        self.id = subject
        self.email = (email or '').strip().lower()
        self.roles = {r.lower() for r in roles if r}

    def get_id(self):
        return self.id

    @property
    def is_admin(self):
        cfg = current_app.config
        if self.email and self.email in (cfg.get('ADMIN_EMAILS') or []):
            return True
        return bool(self.roles & set(cfg.get('ADMIN_ROLES') or []))

    def __repr__(self):
        return f'<Identity {self.email or self.id}>'


def _jwks_client(url):
    client = _jwks_clients.get(url)
    if client is None:
        client = jwt.PyJWKClient(url, cache_keys=True)
        _jwks_clients[url] = client
    return client


def decode_bearer_token(token):
    """
    Verify signature, expiry and (when configured) audience and issuer.
    Raises jwt.InvalidTokenError on any failure.
    """
    cfg = current_app.config
    header = jwt.get_unverified_header(token)
    algorithm = header.get('alg')
    if algorithm not in cfg.get('AUTH_JWT_ALGORITHMS', []):
        raise jwt.InvalidAlgorithmError(f"Algorithm {algorithm} not allowed")

    if algorithm.startswith('HS'):
        key = cfg.get('AUTH_JWT_SECRET')
    elif cfg.get('AUTH_JWKS_URL'):
        key = _jwks_client(cfg['AUTH_JWKS_URL']).get_signing_key_from_jwt(token).key
    else:
        key = None
    if not key:
        raise jwt.InvalidKeyError(f"No verification key configured for {algorithm}")

    audience = cfg.get('AUTH_JWT_AUDIENCE')
    return jwt.decode(
        token,
        key,
        algorithms=[algorithm],
        audience=audience,
        issuer=cfg.get('AUTH_JWT_ISSUER'),
        options={"require": ["exp", "sub"], "verify_aud": audience is not None},
    )


def _roles_from_claims(claims):
    roles = []
    for source in (claims, claims.get('app_metadata') or {}):
        value = source.get('role')
        if isinstance(value, str):
            roles.append(value)
        value = source.get('roles')
        if isinstance(value, (list, tuple)):
            roles.extend(r for r in value if isinstance(r, str))
    return roles


@login_manager.request_loader
def load_identity_from_request(req):
    """Flask-Login hook: build the identity from the Authorization header."""
    auth = req.headers.get('Authorization', '')
    if not auth.lower().startswith('bearer '):
        return None
    token = auth[7:].strip()
    if not token:
        return None
    try:
        claims = decode_bearer_token(token)
    except jwt.PyJWTError as e:
        current_app.logger.info(f"Rejected bearer token: {str(e)}")
        return None
    return Identity(claims.get('sub'), claims.get('email'), _roles_from_claims(claims))


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"success": False, "error": "UNAUTHORIZED", "message": "Please sign in to continue."}), 401


def get_current_identity():
    """Current bearer identity or None when the request is anonymous"""
    if current_user and current_user.is_authenticated:
        return current_user._get_current_object()
    return None


def admin_required(f):
    """Decorator to require a verified bearer identity with an admin role or email"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        identity = get_current_identity()
        if identity is None:
            return login_manager.unauthorized()
        if not identity.is_admin:
            current_app.logger.warning(f"Non-admin {identity.email or identity.id} attempted {request.method} {request.path}")
            return jsonify({"success": False, "error": "FORBIDDEN", "message": "Admin access required."}), 403
        return f(*args, **kwargs)
    return decorated_function
