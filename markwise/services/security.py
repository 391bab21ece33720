"""Bearer-token authentication for the JSON API.

Browser sessions from Flask-Login are accepted too, so the edit page's
scripts and API clients share the same endpoints.
"""

from functools import wraps

from flask import g, jsonify, request
from flask_login import current_user

from markwise.extensions import db
from markwise.models import ApiToken, User, utcnow


BEARER_PREFIX = "Bearer "


def bearer_token(header: str | None) -> str | None:
    if not header or not header.startswith(BEARER_PREFIX):
        return None
    return header[len(BEARER_PREFIX):].strip() or None


def token_owner(token: str) -> User | None:
    """Active owner of a live token; records when the token was last used."""
    row = (
        ApiToken.query.join(User, ApiToken.user_id == User.id)
        .filter(
            ApiToken.token_hash == ApiToken.hash_token(token),
            ApiToken.revoked_at.is_(None),
            User.is_active.is_(True),
        )
        .first()
    )
    if row is None:
        return None
    row.last_used_at = utcnow()
    db.session.commit()
    return row.user


def current_api_user() -> User | None:
    if current_user.is_authenticated:
        return current_user
    token = bearer_token(request.headers.get("Authorization"))
    return token_owner(token) if token else None


def api_auth_required(func):
    @wraps(func)
    def wrapped(*args, **kwargs):
        user = current_api_user()
        if user is None:
            response = jsonify({"error": "authentication required"})
            response.headers["WWW-Authenticate"] = 'Bearer realm="markwise"'
            return response, 401
        g.api_user = user
        return func(*args, **kwargs)

    return wrapped
