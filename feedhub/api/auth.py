from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Callable

from flask import current_app, g, jsonify, request
from itsdangerous import BadSignature, URLSafeTimedSerializer

from feedhub.errors import AuthRejected

logger = logging.getLogger(__name__)

_TOKEN_SALT = "feedhub-auth"


def _serializer(secret_key: str) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(secret_key, salt=_TOKEN_SALT)


def issue_token(secret_key: str, user_id: str) -> str:
    return _serializer(secret_key).dumps({"user_id": user_id})


def verify_token(secret_key: str, token: str, max_age: int | None = None) -> str:
    """Return the user id carried by *token*; raises AuthRejected when it is
    forged, malformed or older than *max_age* seconds."""
    try:
        data = _serializer(secret_key).loads(token, max_age=max_age)
    except BadSignature as exc:
        raise AuthRejected("Invalid or expired token") from exc
    user_id = data.get("user_id") if isinstance(data, dict) else None
    if not user_id:
        raise AuthRejected("Token carries no user")
    return str(user_id)


def require_auth(view: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(view)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        scheme, _, token = request.headers.get("Authorization", "").partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            return jsonify({"error": "Access token required"}), 401

        settings = current_app.config["SETTINGS"]
        try:
            g.user_id = verify_token(
                current_app.config["SECRET_KEY"],
                token.strip(),
                max_age=settings.token_max_age_seconds,
            )
        except AuthRejected as exc:
            logger.warning("Rejected token on %s: %s", request.path, exc)
            return jsonify({"error": "Invalid token"}), 403
        return view(*args, **kwargs)

    return wrapper
